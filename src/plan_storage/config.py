"""Configuration for storage format selection, using platformdirs for paths."""

import os
import tomllib
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Optional, Union

import platformdirs

from .models import StorageFormat

APP_NAME = "plan-storage"
APP_AUTHOR = "plan-storage"

DEFAULT_PRAGMAS: dict[str, Union[str, int, bool]] = {
	"journal_mode": "WAL",
	"synchronous": "NORMAL",
	"foreign_keys": True,
	"temp_store": "memory",
}


@dataclass
class SqliteConfig:
	"""Options for the single-file database format."""
	wal_mode: bool = True
	pragmas: dict[str, Union[str, int, bool]] = field(default_factory=lambda: dict(DEFAULT_PRAGMAS))
	extension: str = ".plan"


@dataclass
class DirectoryConfig:
	"""Options for the directory-of-markdown format."""
	use_plan_subdir: bool = True
	permissions: str = "0755"


@dataclass
class FormatConfig:
	"""Format selection plus per-format options."""
	default_format: StorageFormat = StorageFormat.DIRECTORY
	sqlite: SqliteConfig = field(default_factory=SqliteConfig)
	directory: DirectoryConfig = field(default_factory=DirectoryConfig)


def _known_keys(section: dict[str, Any], cls: type) -> dict[str, Any]:
	names = {f.name for f in fields(cls)}
	return {k: v for k, v in section.items() if k in names}


def merge_format_config(user_config: Union[FormatConfig, dict, None] = None) -> FormatConfig:
	"""
	Merge user-supplied format options over the defaults.

	Sections are merged key by key; sqlite pragmas are merged individually
	so a user can override one pragma without dropping the others.
	"""
	if isinstance(user_config, FormatConfig):
		return user_config
	if not user_config:
		return FormatConfig()

	sqlite_section = dict(user_config.get("sqlite") or {})
	pragmas = dict(DEFAULT_PRAGMAS)
	pragmas.update(sqlite_section.pop("pragmas", None) or {})

	default_format = user_config.get("default_format", StorageFormat.DIRECTORY)

	return FormatConfig(
		default_format=StorageFormat(default_format),
		sqlite=SqliteConfig(pragmas=pragmas, **_known_keys(sqlite_section, SqliteConfig)),
		directory=DirectoryConfig(**_known_keys(user_config.get("directory") or {}, DirectoryConfig)),
	)


@dataclass
class Config:
	"""Central configuration with XDG/platform conventions."""

	config_dir: Path = field(default_factory=lambda: Path(platformdirs.user_config_dir(APP_NAME)))
	data_dir: Path = field(default_factory=lambda: Path(platformdirs.user_data_dir(APP_NAME)))
	format: FormatConfig = field(default_factory=FormatConfig)

	# Derived paths
	config_file: Path = field(init=False)
	log_dir: Path = field(init=False)

	def __post_init__(self) -> None:
		self.config_file = self.config_dir / "config.toml"
		self.log_dir = self.data_dir / "logs"

	def ensure_dirs(self) -> None:
		"""Create all required directories."""
		self.config_dir.mkdir(parents=True, exist_ok=True)
		self.data_dir.mkdir(parents=True, exist_ok=True)
		self.log_dir.mkdir(parents=True, exist_ok=True)


def _apply_env_overrides(config: Config) -> Config:
	"""Apply PLAN_STORAGE_* environment variable overrides."""
	env_map = {
		"PLAN_STORAGE_CONFIG_DIR": "config_dir",
		"PLAN_STORAGE_DATA_DIR": "data_dir",
	}
	for env_key, attr in env_map.items():
		val = os.getenv(env_key)
		if val:
			setattr(config, attr, Path(val))

	default_format = os.getenv("PLAN_STORAGE_DEFAULT_FORMAT")
	if default_format:
		config.format.default_format = StorageFormat(default_format)
	extension = os.getenv("PLAN_STORAGE_EXTENSION")
	if extension:
		config.format.sqlite.extension = extension

	# Recompute derived paths after overrides
	config.__post_init__()
	return config


def _apply_toml(config: Config) -> Config:
	"""Apply config.toml overrides if the file exists."""
	toml_path = config.config_dir / "config.toml"
	if not toml_path.exists():
		return config

	with open(toml_path, "rb") as f:
		data = tomllib.load(f)

	if "data_dir" in data:
		config.data_dir = Path(os.path.expanduser(data["data_dir"]))

	format_keys = {"default_format", "sqlite", "directory"}
	format_data = {k: v for k, v in data.items() if k in format_keys}
	if format_data:
		config.format = merge_format_config(format_data)

	config.__post_init__()
	return config


def load_config() -> Config:
	"""Load config with precedence: env vars > config.toml > defaults."""
	config = Config()
	config_dir = os.getenv("PLAN_STORAGE_CONFIG_DIR")
	if config_dir:
		config.config_dir = Path(config_dir)
	config = _apply_toml(config)
	config = _apply_env_overrides(config)
	config.ensure_dirs()
	return config


def format_config_to_dict(config: FormatConfig) -> dict[str, Any]:
	"""Plain-dict view of a format config (enum values as strings)."""
	data = asdict(config)
	data["default_format"] = config.default_format.value
	return data


# Singleton
_config: Optional[Config] = None


def get_config() -> Config:
	"""Get or create the global config instance."""
	global _config
	if _config is None:
		_config = load_config()
	return _config
