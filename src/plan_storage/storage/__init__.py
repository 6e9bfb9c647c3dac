"""Storage providers, format heuristics and the provider factory."""

from .factory import (
	ProviderUnavailableError,
	StorageProviderFactory,
	create_provider,
	create_storage_factory,
)
from .formats import (
	detect_plan_format,
	ensure_format_extension,
	get_format_extension,
	get_plan_name_from_path,
	has_sqlite_header,
	infer_format_from_path,
	is_directory_path,
	is_sqlite_path,
	validate_plan_path,
)
from .provider import PlanNotFoundError, SearchResult, StorageProvider
from .schema import SCHEMA_SQL, SCHEMA_VERSION
from .sqlite_provider import SqliteStorageProvider

__all__ = [
	"PlanNotFoundError",
	"ProviderUnavailableError",
	"SCHEMA_SQL",
	"SCHEMA_VERSION",
	"SearchResult",
	"SqliteStorageProvider",
	"StorageProvider",
	"StorageProviderFactory",
	"create_provider",
	"create_storage_factory",
	"detect_plan_format",
	"ensure_format_extension",
	"get_format_extension",
	"get_plan_name_from_path",
	"has_sqlite_header",
	"infer_format_from_path",
	"is_directory_path",
	"is_sqlite_path",
	"validate_plan_path",
]
