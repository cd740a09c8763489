"""
Index pipeline driver.

Runs one WorkerLoop per partition in parallel. Units are dealt round-robin
from the input stream into disjoint partitions, one unit at a time and only
when the owning worker asks for its next unit, so the stream is never read
ahead of the workers. Workers share only the AdmissionController.
"""

import logging
import queue
import threading
import time
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from repoindex.core.repository_unit import RepositoryUnit
from repoindex.services.admission import AdmissionController
from repoindex.services.index_writer import IndexWriter
from repoindex.services.pipeline_models import PipelineResult
from repoindex.services.publisher import Publisher
from repoindex.services.worker_loop import WorkerLoop

logger = logging.getLogger(__name__)

# Marks the end of a partition
_END = object()


class UnitFeed:
    """
    Lazy partition handed to one worker loop.

    Iterating the feed signals demand and then waits for the dispatcher to
    deliver the next unit. At most one unit is in transit per feed.
    """

    def __init__(self):
        self._demand = threading.Semaphore(0)
        self._units: queue.Queue = queue.Queue(maxsize=1)

    def __iter__(self) -> Iterator[RepositoryUnit]:
        while True:
            self._demand.release()
            unit = self._units.get()
            if unit is _END:
                return
            yield unit

    def wait_for_demand(self, timeout: float) -> bool:
        return self._demand.acquire(timeout=timeout)

    def put(self, unit: RepositoryUnit) -> None:
        self._units.put(unit)

    def close(self) -> None:
        self._units.put(_END)


class IndexPipeline:
    """
    Runs worker loops over partitions of repository units.

    Each worker gets its own WorkerLoop bound to one partition; all loops
    share the same AdmissionController, IndexWriter and Publisher (the
    latter two hold no per-unit state).
    """

    def __init__(
        self,
        admission: AdmissionController,
        writer: IndexWriter,
        publisher: Publisher,
        max_files_per_unit: int = 20000,
        progress_callback: Optional[Callable[[int, int, str], None]] = None,
        demand_poll_seconds: float = 0.1,
    ):
        """
        Initialize the pipeline.

        Args:
            admission: Shared admission controller
            writer: Index writer
            publisher: Artifact publisher
            max_files_per_unit: Units with more files are skipped
            progress_callback: Optional callback(finished_partitions, total, message)
            demand_poll_seconds: How often the dispatcher checks for a dead
                worker while waiting for it to ask for a unit
        """
        self._admission = admission
        self._writer = writer
        self._publisher = publisher
        self._max_files_per_unit = max_files_per_unit
        self._progress_callback = progress_callback
        self._demand_poll_seconds = demand_poll_seconds

    @property
    def admission(self) -> AdmissionController:
        return self._admission

    def _report_progress(self, current: int, total: int, message: str) -> None:
        """Report progress if callback is set."""
        if self._progress_callback:
            self._progress_callback(current, total, message)
        logger.info(f"Progress: {current}/{total} - {message}")

    def create_worker(self, worker_id: int) -> WorkerLoop:
        return WorkerLoop(
            admission=self._admission,
            writer=self._writer,
            publisher=self._publisher,
            max_files_per_unit=self._max_files_per_unit,
            worker_id=worker_id,
        )

    def run(self, units: Iterable[RepositoryUnit], num_workers: int = 4) -> PipelineResult:
        """
        Process a unit stream with num_workers worker loops and wait for all of them.

        Unit i goes to worker i % num_workers. The stream is consumed lazily:
        a unit is pulled only once its worker has finished the previous one.

        Raises:
            ValueError: If num_workers is less than 1
            AdmissionViolation: If any worker breaks the reservation invariant
        """
        if num_workers < 1:
            raise ValueError(f"num_workers must be at least 1, got {num_workers}")

        start_time = time.time()
        result = PipelineResult()
        feeds = [UnitFeed() for _ in range(num_workers)]

        self._report_progress(0, num_workers, "Starting workers...")
        with ThreadPoolExecutor(
            max_workers=num_workers, thread_name_prefix="repoindex-worker"
        ) as executor:
            futures = [
                executor.submit(self.create_worker(worker_id).run, feed)
                for worker_id, feed in enumerate(feeds)
            ]
            self._dispatch(units, feeds, futures)
            for finished, future in enumerate(futures, start=1):
                result.partitions.append(future.result())
                self._report_progress(finished, num_workers, f"Finished {finished} partitions")

        result.duration_seconds = time.time() - start_time

        logger.info(
            "Pipeline completed",
            extra={
                "total_units": result.total_units,
                "completed_units": result.completed_units,
                "skipped_units": result.skipped_units,
                "failed_units": result.failed_units,
                "publish_failures": len(result.publish_failures),
                "duration_seconds": result.duration_seconds,
            },
        )
        return result

    def _dispatch(
        self,
        units: Iterable[RepositoryUnit],
        feeds: list[UnitFeed],
        futures: list[Future],
    ) -> None:
        """Deal units round-robin to the feeds, then close every feed."""
        iterator = iter(units)
        turn = 0
        try:
            while True:
                index = turn % len(feeds)
                if not self._await_demand(feeds[index], futures[index]):
                    logger.error(
                        f"Worker {index} stopped unexpectedly, no more units are dispatched"
                    )
                    return
                try:
                    unit = next(iterator)
                except StopIteration:
                    return
                feeds[index].put(unit)
                turn += 1
        finally:
            for feed in feeds:
                feed.close()

    def _await_demand(self, feed: UnitFeed, future: Future) -> bool:
        """Wait until the feed's worker asks for a unit; False if it has died."""
        while not feed.wait_for_demand(self._demand_poll_seconds):
            if future.done():
                return False
        return True
