"""Format migration and post-migration validation."""

from .migrator import (
	PlanMigrator,
	create_migrator,
	delete_plan_storage,
	move_plan_storage,
	generate_target_path,
	infer_target_format,
)
from .models import (
	MigrationOptions,
	MigrationProgress,
	MigrationResult,
	MigrationStats,
	ValidationErrorType,
	ValidationIssue,
	ValidationResult,
	ValidationStats,
)
from .validator import MigrationValidator, create_validator

__all__ = [
	"MigrationOptions",
	"MigrationProgress",
	"MigrationResult",
	"MigrationStats",
	"MigrationValidator",
	"PlanMigrator",
	"ValidationErrorType",
	"ValidationIssue",
	"ValidationResult",
	"ValidationStats",
	"create_migrator",
	"create_validator",
	"delete_plan_storage",
	"move_plan_storage",
	"generate_target_path",
	"infer_target_format",
]
