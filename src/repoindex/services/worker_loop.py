"""
Worker loop.

Drives one partition of repository units, one unit at a time, through
admission, index writing, publishing and release:

    PENDING -> ADMITTED -> WRITTEN -> PUBLISHED -> RELEASED
    PENDING -> SKIPPED              (too many files, never admitted)
    ADMITTED | WRITTEN -> FAILED    (reservation still released)
"""

import logging
import time
from collections.abc import Iterable

from repoindex.core.repository_unit import RepositoryUnit
from repoindex.services.admission import AdmissionController
from repoindex.services.index_writer import IndexWriter
from repoindex.services.pipeline_models import (
    AdmissionViolation,
    PartitionResult,
    UnitOutcome,
    UnitState,
    WriterFailure,
)
from repoindex.services.publisher import Publisher

logger = logging.getLogger(__name__)


class WorkerLoop:
    """Processes a partition of units sequentially."""

    def __init__(
        self,
        admission: AdmissionController,
        writer: IndexWriter,
        publisher: Publisher,
        max_files_per_unit: int = 20000,
        worker_id: int = 0,
    ):
        """
        Initialize the worker loop.

        Args:
            admission: Controller shared by all workers
            writer: Index writer for staging artifacts
            publisher: Publisher for durable placement
            max_files_per_unit: Units with more files are skipped
            worker_id: Identifier used in logs and results
        """
        self._admission = admission
        self._writer = writer
        self._publisher = publisher
        self._max_files_per_unit = max_files_per_unit
        self._worker_id = worker_id

    @property
    def worker_id(self) -> int:
        return self._worker_id

    def run(self, units: Iterable[RepositoryUnit]) -> PartitionResult:
        """
        Process every unit of a partition.

        A failed unit never stops the loop. AdmissionViolation does: it
        signals a broken reservation invariant and is propagated.
        """
        result = PartitionResult(worker_id=self._worker_id)
        for unit in units:
            result.outcomes.append(self.process_unit(unit))
        logger.info(
            f"Worker {self._worker_id} finished partition: "
            f"{result.count(UnitState.RELEASED)} done, "
            f"{result.count(UnitState.SKIPPED)} skipped, "
            f"{result.count(UnitState.FAILED)} failed",
            extra={"worker_id": self._worker_id},
        )
        return result

    def process_unit(self, unit: RepositoryUnit) -> UnitOutcome:
        """Drive one unit through its lifecycle and return the outcome."""
        file_count = unit.file_count
        outcome = UnitOutcome(unit_key=unit.unit_key, file_count=file_count)

        if file_count > self._max_files_per_unit:
            outcome.state = UnitState.SKIPPED
            logger.info(
                f"Repo {unit.display_name} has {file_count} files "
                f"(> {self._max_files_per_unit}), ignoring for now",
                extra={"unit_key": unit.unit_key, "file_count": file_count},
            )
            unit.files.clear()
            return outcome

        outcome.waited_seconds = self._admission.reserve(file_count, unit.unit_key)
        outcome.state = UnitState.ADMITTED
        started = time.time()
        logger.info(
            f"Processing repo {unit.display_name}, size is {self._admission.aggregate}",
            extra={
                "unit_key": unit.unit_key,
                "file_count": file_count,
                "worker_id": self._worker_id,
            },
        )

        try:
            artifacts = self._writer.write(unit)
            outcome.state = UnitState.WRITTEN
            outcome.publish_report = self._publisher.publish(unit, artifacts)
            outcome.state = UnitState.PUBLISHED
        except AdmissionViolation:
            raise
        except WriterFailure as e:
            outcome.state = UnitState.FAILED
            outcome.error = str(e)
            logger.error(
                f"Repo {unit.display_name} failed: {e}",
                extra={"unit_key": unit.unit_key},
            )
        except Exception as e:
            outcome.state = UnitState.FAILED
            outcome.error = str(e)
            logger.exception(
                f"Repo {unit.display_name} failed unexpectedly: {e}",
                extra={"unit_key": unit.unit_key},
            )
        finally:
            self._admission.release(file_count)
            outcome.reservation_released = True

        if outcome.state == UnitState.PUBLISHED:
            outcome.state = UnitState.RELEASED

        logger.info(
            f"Done processing repo {unit.display_name}",
            extra={
                "unit_key": unit.unit_key,
                "state": outcome.state.value,
                "duration_seconds": time.time() - started,
            },
        )
        return outcome
