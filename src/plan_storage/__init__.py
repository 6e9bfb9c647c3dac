"""plan-storage - Dual-format plan storage with format detection and migration."""

from .config import DirectoryConfig, FormatConfig, SqliteConfig, merge_format_config
from .migration import (
	MigrationOptions,
	MigrationResult,
	MigrationValidator,
	PlanMigrator,
	ValidationResult,
	create_migrator,
	create_validator,
	generate_target_path,
	infer_target_format,
)
from .models import (
	Checkpoint,
	CheckpointSnapshot,
	EvidenceRecord,
	FeedbackRecord,
	PlanFile,
	PlanFileType,
	PlanMetadata,
	PlanStage,
	PlanStep,
	StepStatus,
	StorageFormat,
	StorageResult,
	TimelineEvent,
	TimelineEventType,
)
from .renderer import RenderedPlan, RenderOptions, render_plan_to_markdown
from .storage import (
	SCHEMA_VERSION,
	PlanNotFoundError,
	ProviderUnavailableError,
	SearchResult,
	SqliteStorageProvider,
	StorageProvider,
	StorageProviderFactory,
	create_provider,
	create_storage_factory,
	detect_plan_format,
	infer_format_from_path,
)

VERSION = "1.0.0"

__all__ = [
	"VERSION",
	"SCHEMA_VERSION",
	# Models
	"StorageFormat",
	"PlanStage",
	"StepStatus",
	"PlanFileType",
	"TimelineEventType",
	"PlanMetadata",
	"PlanStep",
	"PlanFile",
	"TimelineEvent",
	"EvidenceRecord",
	"FeedbackRecord",
	"Checkpoint",
	"CheckpointSnapshot",
	"StorageResult",
	# Config
	"FormatConfig",
	"SqliteConfig",
	"DirectoryConfig",
	"merge_format_config",
	# Storage
	"StorageProvider",
	"SqliteStorageProvider",
	"StorageProviderFactory",
	"SearchResult",
	"PlanNotFoundError",
	"ProviderUnavailableError",
	"create_provider",
	"create_storage_factory",
	"detect_plan_format",
	"infer_format_from_path",
	# Migration
	"PlanMigrator",
	"MigrationValidator",
	"MigrationOptions",
	"MigrationResult",
	"ValidationResult",
	"create_migrator",
	"create_validator",
	"generate_target_path",
	"infer_target_format",
	# Rendering
	"RenderOptions",
	"RenderedPlan",
	"render_plan_to_markdown",
]
