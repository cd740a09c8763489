"""
Pipeline data models.

Contains the unit lifecycle states, per-unit and per-partition results, and
the pipeline's exception types.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from repoindex.core.index_records import IndexKind


class UnitState(str, Enum):
    """Lifecycle states of a repository unit inside a worker loop."""

    PENDING = "pending"
    ADMITTED = "admitted"
    WRITTEN = "written"
    PUBLISHED = "published"
    RELEASED = "released"
    SKIPPED = "skipped"
    FAILED = "failed"


class PipelineError(Exception):
    """Base exception for pipeline errors."""

    pass


class AdmissionViolation(PipelineError):
    """
    Raised when the shared file budget would be driven negative.

    Indicates a reservation/release mismatch. This is a programming error
    and is never handled by worker loops.
    """

    def __init__(self, message: str, aggregate: int, requested: int):
        self.aggregate = aggregate
        self.requested = requested
        super().__init__(message)


class WriterFailure(PipelineError):
    """Raised when a staging artifact cannot be written for a unit."""

    def __init__(
        self,
        message: str,
        unit_key: str,
        index_kind: Optional[IndexKind] = None,
        file_index: Optional[int] = None,
    ):
        self.unit_key = unit_key
        self.index_kind = index_kind
        self.file_index = file_index
        super().__init__(message)


@dataclass
class PublishFailure:
    """A single artifact that could not be moved to durable storage."""

    unit_key: str
    index_kind: IndexKind
    durable_path: str
    error: str


@dataclass
class PublishReport:
    """Outcome of publishing one unit's artifacts."""

    unit_key: str
    published: dict[IndexKind, str] = field(default_factory=dict)
    failures: list[PublishFailure] = field(default_factory=list)
    residue_cleaned: bool = True

    @property
    def succeeded(self) -> bool:
        return not self.failures


@dataclass
class UnitOutcome:
    """Result of driving one unit through a worker loop."""

    unit_key: str
    file_count: int
    state: UnitState = UnitState.PENDING
    reservation_released: bool = False
    waited_seconds: float = 0.0
    publish_report: Optional[PublishReport] = None
    error: Optional[str] = None


@dataclass
class PartitionResult:
    """Result of one worker loop over its partition."""

    worker_id: int
    outcomes: list[UnitOutcome] = field(default_factory=list)

    def count(self, state: UnitState) -> int:
        return sum(1 for outcome in self.outcomes if outcome.state == state)


@dataclass
class PipelineResult:
    """Aggregate result of a pipeline run."""

    partitions: list[PartitionResult] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def outcomes(self) -> list[UnitOutcome]:
        return [o for partition in self.partitions for o in partition.outcomes]

    @property
    def total_units(self) -> int:
        return len(self.outcomes)

    @property
    def completed_units(self) -> int:
        return sum(1 for o in self.outcomes if o.state == UnitState.RELEASED)

    @property
    def skipped_units(self) -> int:
        return sum(1 for o in self.outcomes if o.state == UnitState.SKIPPED)

    @property
    def failed_units(self) -> int:
        return sum(1 for o in self.outcomes if o.state == UnitState.FAILED)

    @property
    def publish_failures(self) -> list[PublishFailure]:
        return [
            failure
            for o in self.outcomes
            if o.publish_report is not None
            for failure in o.publish_report.failures
        ]
