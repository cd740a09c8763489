"""
Core Layer - Configuration, repository units, index records and metadata selection.
"""

from repoindex.core.config import (
    AdmissionConfig,
    LoggingConfig,
    MetadataConfig,
    PipelineConfig,
    RepoIndexConfig,
    StorageConfig,
    load_config,
)
from repoindex.core.index_records import (
    RECORD_KINDS,
    DocumentationRecord,
    IndexKind,
    SourceFileRecord,
    to_bare_json,
    to_index_record_json,
)
from repoindex.core.logging_setup import configure_logging
from repoindex.core.repo_metadata import (
    RepoFilter,
    RepoInfo,
    expand_metadata_locations,
    load_repo_infos,
)
from repoindex.core.repository_unit import (
    FileRecord,
    RecordReleasedError,
    RepositoryUnit,
    load_units,
)

__all__ = [
    # Config
    "RepoIndexConfig",
    "AdmissionConfig",
    "PipelineConfig",
    "StorageConfig",
    "MetadataConfig",
    "LoggingConfig",
    "load_config",
    "configure_logging",
    # Repository units
    "RepositoryUnit",
    "FileRecord",
    "RecordReleasedError",
    "load_units",
    # Index records
    "IndexKind",
    "RECORD_KINDS",
    "SourceFileRecord",
    "DocumentationRecord",
    "to_index_record_json",
    "to_bare_json",
    # Metadata selection
    "RepoInfo",
    "RepoFilter",
    "expand_metadata_locations",
    "load_repo_infos",
]
