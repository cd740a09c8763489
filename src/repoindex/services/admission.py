"""
Admission control for concurrent worker loops.

Worker loops share one AdmissionController that counts the files currently
staged by all in-flight units. A worker asking to admit a unit polls until
the admission predicate clears, so local staging space is not exhausted
before units reach the publish step.
"""

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from repoindex.services.pipeline_models import AdmissionViolation

logger = logging.getLogger(__name__)


class AdmissionController:
    """
    Shared in-flight file budget with a ceiling and a low-water mark.

    A reservation of ``n`` files blocks while
    ``aggregate + n > ceiling and aggregate > low_water_mark``. The gate
    therefore never engages on a nearly idle system, even for a single unit
    larger than the ceiling.

    Waiting is a poll with a fixed sleep. No fairness is guaranteed between
    waiting workers.
    """

    def __init__(
        self,
        ceiling: int = 25000,
        low_water_mark: int = 1000,
        poll_interval_seconds: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the controller.

        Args:
            ceiling: Aggregate file count that admissions may not exceed
            low_water_mark: Aggregate below or at which admission is unconditional
            poll_interval_seconds: Sleep between admission checks while blocked
            sleep: Sleep function, injectable for tests
        """
        if low_water_mark > ceiling:
            raise ValueError(
                f"low_water_mark ({low_water_mark}) must not exceed ceiling ({ceiling})"
            )
        self._ceiling = ceiling
        self._low_water_mark = low_water_mark
        self._poll_interval = poll_interval_seconds
        self._sleep = sleep
        self._aggregate = 0
        self._lock = threading.Lock()

    @property
    def ceiling(self) -> int:
        return self._ceiling

    @property
    def low_water_mark(self) -> int:
        return self._low_water_mark

    @property
    def aggregate(self) -> int:
        """Files currently reserved by all in-flight units."""
        with self._lock:
            return self._aggregate

    def _blocked(self, n: int) -> bool:
        # Caller must hold self._lock
        return (self._aggregate + n > self._ceiling) and (
            self._aggregate > self._low_water_mark
        )

    def would_block(self, n: int) -> bool:
        """Check whether reserving n files right now would have to wait."""
        with self._lock:
            return self._blocked(n)

    def reserve(self, n: int, unit_key: str = "") -> float:
        """
        Block until n files can be admitted, then add them to the aggregate.

        The predicate check and the increment happen under one lock
        acquisition, so two workers can never both pass on the same
        headroom.

        Args:
            n: Number of files to reserve
            unit_key: Identity of the unit being admitted, for logging

        Returns:
            Seconds spent waiting for admission

        Raises:
            ValueError: If n is negative
        """
        if n < 0:
            raise ValueError(f"Cannot reserve a negative file count: {n}")

        started = time.monotonic()
        while True:
            with self._lock:
                if not self._blocked(n):
                    self._aggregate += n
                    aggregate = self._aggregate
                    break
                aggregate = self._aggregate

            logger.info(
                f"Size is {aggregate}, going to sleep for [{unit_key}].",
                extra={"aggregate": aggregate, "requested": n, "unit_key": unit_key},
            )
            self._sleep(self._poll_interval)

        waited = time.monotonic() - started
        logger.debug(
            f"Reserved {n} files for [{unit_key}], aggregate is {aggregate}",
            extra={"aggregate": aggregate, "requested": n, "waited_seconds": waited},
        )
        return waited

    def release(self, n: int) -> None:
        """
        Subtract n files from the aggregate.

        Raises:
            ValueError: If n is negative
            AdmissionViolation: If the aggregate would become negative
        """
        if n < 0:
            raise ValueError(f"Cannot release a negative file count: {n}")

        with self._lock:
            if self._aggregate - n < 0:
                aggregate = self._aggregate
                logger.error(
                    f"Admission invariant violated: releasing {n} with aggregate {aggregate}",
                    extra={"aggregate": aggregate, "requested": n},
                )
                raise AdmissionViolation(
                    f"Release of {n} files would drive aggregate {aggregate} negative",
                    aggregate=aggregate,
                    requested=n,
                )
            self._aggregate -= n

    @contextmanager
    def reservation(self, n: int, unit_key: str = "") -> Iterator[float]:
        """
        Hold a reservation for the duration of a with-block.

        Yields the seconds spent waiting; releases exactly once on exit,
        whether the block completes or raises.
        """
        waited = self.reserve(n, unit_key)
        try:
            yield waited
        finally:
            self.release(n)
