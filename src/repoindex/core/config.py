"""
Configuration module for repoindex.

Supports loading from YAML/JSON files with environment variable overrides.
Default values are loaded from defaults.yaml for maintainability.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

# Path to the default configuration file
_DEFAULTS_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

# Cache for default values
_defaults_cache: dict[str, Any] | None = None


def _load_defaults() -> dict[str, Any]:
    """Load default configuration values from defaults.yaml."""
    global _defaults_cache

    if _defaults_cache is not None:
        return _defaults_cache

    if not _DEFAULTS_CONFIG_PATH.exists():
        logger.warning(f"Defaults config not found: {_DEFAULTS_CONFIG_PATH}")
        _defaults_cache = {}
        return _defaults_cache

    try:
        content = _DEFAULTS_CONFIG_PATH.read_text(encoding="utf-8")
        _defaults_cache = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse defaults config: {e}")
        _defaults_cache = {}

    return _defaults_cache


def _get_default(section: str, key: str, fallback: Any = None) -> Any:
    """Get a default value from the defaults config."""
    defaults = _load_defaults()
    section_defaults = defaults.get(section, {})
    return section_defaults.get(key, fallback)


@dataclass
class AdmissionConfig:
    """Thresholds for the shared in-flight file budget."""

    ceiling: int = field(default_factory=lambda: _get_default("admission", "ceiling", 25000))
    low_water_mark: int = field(
        default_factory=lambda: _get_default("admission", "low_water_mark", 1000)
    )
    poll_interval_seconds: float = field(
        default_factory=lambda: _get_default("admission", "poll_interval_seconds", 10.0)
    )


@dataclass
class PipelineConfig:
    """Configuration for the worker loops."""

    max_files_per_unit: int = field(
        default_factory=lambda: _get_default("pipeline", "max_files_per_unit", 20000)
    )
    num_workers: int = field(default_factory=lambda: _get_default("pipeline", "num_workers", 4))
    index_name: str = field(default_factory=lambda: _get_default("pipeline", "index_name", "java"))


@dataclass
class StorageConfig:
    """Locations of durable output and local staging areas."""

    base_path: str = field(
        default_factory=lambda: _get_default("storage", "base_path", "/data/repoindex/indices")
    )
    language: str = field(default_factory=lambda: _get_default("storage", "language", "java"))
    staging_dir: str = field(
        default_factory=lambda: _get_default("storage", "staging_dir", "/tmp")
    )
    work_dir: str = field(
        default_factory=lambda: _get_default("storage", "work_dir", "/tmp/repoindex")
    )


@dataclass
class MetadataConfig:
    """Configuration for repository metadata selection."""

    base_path: str = field(
        default_factory=lambda: _get_default("metadata", "base_path", "/data/repoindex/metadata")
    )
    chunk_size: int = field(default_factory=lambda: _get_default("metadata", "chunk_size", 1000))
    min_stars: int = field(default_factory=lambda: _get_default("metadata", "min_stars", 5))
    max_size_kb: int = field(
        default_factory=lambda: _get_default("metadata", "max_size_kb", 1000000)
    )
    languages: list[str] = field(
        default_factory=lambda: list(_get_default("metadata", "languages", ["Java", "Scala"]))
    )


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = field(default_factory=lambda: _get_default("logging", "level", "INFO"))
    format: str = field(
        default_factory=lambda: _get_default(
            "logging", "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    )


@dataclass
class RepoIndexConfig:
    """Main configuration class for repoindex."""

    admission: AdmissionConfig = field(default_factory=AdmissionConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    metadata: MetadataConfig = field(default_factory=MetadataConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "RepoIndexConfig":
        """
        Load configuration from a YAML or JSON file.

        Args:
            path: Path to the configuration file (.yaml, .yml, or .json)

        Returns:
            RepoIndexConfig instance with loaded values

        Raises:
            FileNotFoundError: If the config file doesn't exist
            ValueError: If the file format is unsupported
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text(encoding="utf-8")

        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content) or {}
        elif path.suffix == ".json":
            data = json.loads(content) if content.strip() else {}
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "RepoIndexConfig":
        """Create RepoIndexConfig from a dictionary."""
        config = cls()

        if "admission" in data:
            config.admission = AdmissionConfig(**data["admission"])
        if "pipeline" in data:
            config.pipeline = PipelineConfig(**data["pipeline"])
        if "storage" in data:
            config.storage = StorageConfig(**data["storage"])
        if "metadata" in data:
            config.metadata = MetadataConfig(**data["metadata"])
        if "logging" in data:
            config.logging = LoggingConfig(**data["logging"])

        return config

    def apply_env_overrides(self) -> "RepoIndexConfig":
        """
        Apply environment variable overrides to the configuration.

        Environment variables follow the pattern: REPOINDEX_<SECTION>_<KEY>
        Examples:
            - REPOINDEX_ADMISSION_CEILING
            - REPOINDEX_PIPELINE_NUM_WORKERS
            - REPOINDEX_STORAGE_BASE_PATH
            - REPOINDEX_METADATA_LANGUAGES (comma separated)
            - REPOINDEX_LOGGING_LEVEL

        Returns:
            Self with environment overrides applied
        """
        env_mappings = {
            # Admission config
            "REPOINDEX_ADMISSION_CEILING": ("admission", "ceiling", int),
            "REPOINDEX_ADMISSION_LOW_WATER_MARK": ("admission", "low_water_mark", int),
            "REPOINDEX_ADMISSION_POLL_INTERVAL_SECONDS": (
                "admission",
                "poll_interval_seconds",
                float,
            ),
            # Pipeline config
            "REPOINDEX_PIPELINE_MAX_FILES_PER_UNIT": ("pipeline", "max_files_per_unit", int),
            "REPOINDEX_PIPELINE_NUM_WORKERS": ("pipeline", "num_workers", int),
            "REPOINDEX_PIPELINE_INDEX_NAME": ("pipeline", "index_name", str),
            # Storage config
            "REPOINDEX_STORAGE_BASE_PATH": ("storage", "base_path", str),
            "REPOINDEX_STORAGE_LANGUAGE": ("storage", "language", str),
            "REPOINDEX_STORAGE_STAGING_DIR": ("storage", "staging_dir", str),
            "REPOINDEX_STORAGE_WORK_DIR": ("storage", "work_dir", str),
            # Metadata config
            "REPOINDEX_METADATA_BASE_PATH": ("metadata", "base_path", str),
            "REPOINDEX_METADATA_CHUNK_SIZE": ("metadata", "chunk_size", int),
            "REPOINDEX_METADATA_MIN_STARS": ("metadata", "min_stars", int),
            "REPOINDEX_METADATA_MAX_SIZE_KB": ("metadata", "max_size_kb", int),
            "REPOINDEX_METADATA_LANGUAGES": ("metadata", "languages", _parse_list),
            # Logging config
            "REPOINDEX_LOGGING_LEVEL": ("logging", "level", str),
        }

        for env_var, (section, key, converter) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is not None:
                section_obj = getattr(self, section)
                setattr(section_obj, key, converter(value))

        return self

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary."""
        return asdict(self)

    def to_yaml(self) -> str:
        """Serialize configuration to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def to_json(self) -> str:
        """Serialize configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    def save(self, path: Path | str) -> None:
        """
        Save configuration to a file.

        Args:
            path: Path to save the configuration (.yaml, .yml, or .json)

        Raises:
            ValueError: If the file format is unsupported
        """
        path = Path(path)

        if path.suffix in (".yaml", ".yml"):
            content = self.to_yaml()
        elif path.suffix == ".json":
            content = self.to_json()
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def _parse_list(value: str) -> list[str]:
    """Parse a comma separated string into a list of trimmed items."""
    return [item.strip() for item in value.split(",") if item.strip()]


def load_config(
    config_path: Optional[Path | str] = None, apply_env: bool = True
) -> RepoIndexConfig:
    """
    Load configuration with optional environment variable overrides.

    Args:
        config_path: Optional path to config file. If None, uses defaults.
        apply_env: Whether to apply environment variable overrides.

    Returns:
        RepoIndexConfig instance
    """
    if config_path:
        config = RepoIndexConfig.from_file(config_path)
    else:
        config = RepoIndexConfig()

    if apply_env:
        config.apply_env_overrides()

    return config
