"""
Service Layer - Admission control, index writing, publishing and worker loops.
"""

from repoindex.services.admission import AdmissionController
from repoindex.services.container import ServicesContainer, create_services
from repoindex.services.index_writer import IndexWriter, StagingArtifact
from repoindex.services.pipeline import IndexPipeline, UnitFeed
from repoindex.services.pipeline_models import (
    AdmissionViolation,
    PartitionResult,
    PipelineError,
    PipelineResult,
    PublishFailure,
    PublishReport,
    UnitOutcome,
    UnitState,
    WriterFailure,
)
from repoindex.services.publisher import Publisher
from repoindex.services.worker_loop import WorkerLoop

__all__ = [
    # Container and factory
    "ServicesContainer",
    "create_services",
    # Services
    "AdmissionController",
    "IndexWriter",
    "StagingArtifact",
    "Publisher",
    "WorkerLoop",
    "IndexPipeline",
    "UnitFeed",
    # Models
    "UnitState",
    "UnitOutcome",
    "PartitionResult",
    "PipelineResult",
    "PublishReport",
    "PublishFailure",
    # Errors
    "PipelineError",
    "AdmissionViolation",
    "WriterFailure",
]
