"""
Centralized services container module for repoindex.

Builds the pipeline components from configuration so entry points and tests
share one wiring path.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from repoindex.core.config import RepoIndexConfig, load_config
from repoindex.infrastructure.durable_storage import (
    DurableStorageInterface,
    create_durable_storage,
)
from repoindex.services.admission import AdmissionController
from repoindex.services.index_writer import IndexWriter
from repoindex.services.pipeline import IndexPipeline
from repoindex.services.publisher import Publisher


@dataclass
class ServicesContainer:
    """
    Container holding all pipeline service instances.

    Attributes:
        config: Application configuration
        storage: Durable storage handle
        admission: Admission controller shared by all workers
        writer: Per-unit index writer
        publisher: Artifact publisher
        pipeline: Pipeline driver wired to the components above
    """

    config: RepoIndexConfig
    storage: DurableStorageInterface
    admission: AdmissionController
    writer: IndexWriter
    publisher: Publisher
    pipeline: IndexPipeline


def create_services(
    config: Optional[RepoIndexConfig] = None,
    config_path: Optional[Path] = None,
    storage: Optional[DurableStorageInterface] = None,
) -> ServicesContainer:
    """
    Create and wire all pipeline services.

    Args:
        config: Configuration to use. If None, loaded from config_path.
        config_path: Optional path to configuration file. If None, uses
                    environment variables and defaults.
        storage: Durable storage override (default: LocalDurableStorage)

    Returns:
        ServicesContainer with all initialized services.
    """
    config = config or load_config(config_path)
    storage = storage or create_durable_storage()

    admission = AdmissionController(
        ceiling=config.admission.ceiling,
        low_water_mark=config.admission.low_water_mark,
        poll_interval_seconds=config.admission.poll_interval_seconds,
    )
    writer = IndexWriter(
        staging_dir=config.storage.staging_dir,
        index_name=config.pipeline.index_name,
    )
    publisher = Publisher(
        storage=storage,
        base_path=config.storage.base_path,
        language=config.storage.language,
        work_dir=config.storage.work_dir,
    )
    pipeline = IndexPipeline(
        admission=admission,
        writer=writer,
        publisher=publisher,
        max_files_per_unit=config.pipeline.max_files_per_unit,
    )

    return ServicesContainer(
        config=config,
        storage=storage,
        admission=admission,
        writer=writer,
        publisher=publisher,
        pipeline=pipeline,
    )
