"""
Unit tests for WorkerLoop lifecycle transitions.
"""

import pytest

from repoindex.core.index_records import IndexKind
from repoindex.infrastructure.fakes import InMemoryDurableStorage
from repoindex.services.admission import AdmissionController
from repoindex.services.index_writer import IndexWriter
from repoindex.services.pipeline_models import AdmissionViolation, UnitState
from repoindex.services.publisher import Publisher
from repoindex.services.worker_loop import WorkerLoop
from tests.support.unit_builders import capture_logs, make_bare_unit, make_unit


class CountingAdmission(AdmissionController):
    """AdmissionController that records every reserve and release."""

    def __init__(self, **kwargs):
        kwargs.setdefault("poll_interval_seconds", 0.01)
        super().__init__(**kwargs)
        self.reserved: list[int] = []
        self.released: list[int] = []

    def reserve(self, n: int, unit_key: str = "") -> float:
        self.reserved.append(n)
        return super().reserve(n, unit_key)

    def release(self, n: int) -> None:
        self.released.append(n)
        super().release(n)


class ExplodingPublisher(Publisher):
    """Publisher whose publish raises an unexpected error."""

    def publish(self, unit, artifacts):
        raise RuntimeError("durable store unreachable")


class OverReleasingAdmission(CountingAdmission):
    """Releases one file more than requested, breaking the invariant."""

    def release(self, n: int) -> None:
        super().release(n + 1)


@pytest.fixture
def storage():
    return InMemoryDurableStorage()


@pytest.fixture
def admission():
    return CountingAdmission()


def _loop(admission, tmp_path, storage, publisher=None, **kwargs) -> WorkerLoop:
    writer = kwargs.pop("writer", None) or IndexWriter(staging_dir=tmp_path / "staging")
    publisher = publisher or Publisher(storage, base_path="/idx", work_dir=tmp_path / "work")
    return WorkerLoop(admission=admission, writer=writer, publisher=publisher, **kwargs)


class TestHappyPath:
    def test_unit_reaches_released(self, admission, tmp_path, storage):
        loop = _loop(admission, tmp_path, storage)

        outcome = loop.process_unit(make_unit(file_count=2))

        assert outcome.state == UnitState.RELEASED
        assert outcome.reservation_released
        assert outcome.publish_report.succeeded
        assert admission.reserved == [2]
        assert admission.released == [2]
        assert admission.aggregate == 0
        assert len(storage.list_paths()) == 5

    def test_processing_and_done_are_logged(self, admission, tmp_path, storage):
        loop = _loop(admission, tmp_path, storage)

        with capture_logs("repoindex.services.worker_loop") as logs:
            loop.process_unit(make_unit(file_count=2))

        messages = logs.messages()
        assert "Processing repo alice/demo, size is 2" in messages
        assert "Done processing repo alice/demo" in messages


class TestSkip:
    def test_unit_over_file_cap_is_skipped_without_reserving(self, admission, tmp_path, storage):
        loop = _loop(admission, tmp_path, storage)
        unit = make_bare_unit("big", "monorepo", 20001)

        outcome = loop.process_unit(unit)

        assert outcome.state == UnitState.SKIPPED
        assert outcome.file_count == 20001
        assert not outcome.reservation_released
        assert admission.reserved == []
        assert admission.released == []
        assert admission.aggregate == 0
        assert storage.list_paths() == []
        assert unit.files == []

    def test_unit_at_file_cap_is_processed(self, admission, tmp_path, storage):
        loop = _loop(admission, tmp_path, storage, max_files_per_unit=3)

        outcome = loop.process_unit(make_unit(file_count=3))

        assert outcome.state == UnitState.RELEASED

    def test_skip_is_logged(self, admission, tmp_path, storage):
        loop = _loop(admission, tmp_path, storage, max_files_per_unit=1)

        with capture_logs("repoindex.services.worker_loop") as logs:
            loop.process_unit(make_unit(file_count=2))

        assert any("ignoring" in m for m in logs.messages())


class TestFailures:
    def test_writer_failure_releases_reservation_once(self, admission, tmp_path, storage):
        def factory(path):
            raise OSError(28, "No space left on device")

        writer = IndexWriter(staging_dir=tmp_path / "staging", stream_factory=factory)
        loop = _loop(admission, tmp_path, storage, writer=writer)

        outcome = loop.process_unit(make_unit(file_count=4))

        assert outcome.state == UnitState.FAILED
        assert "No space left" in outcome.error
        assert outcome.reservation_released
        assert admission.released == [4]
        assert admission.aggregate == 0
        assert storage.list_paths() == []

    def test_partial_publish_still_reaches_released(self, admission, tmp_path):
        storage = InMemoryDurableStorage(fail_paths={"/comments/"})
        loop = _loop(admission, tmp_path, storage)

        outcome = loop.process_unit(make_unit(file_count=1))

        assert outcome.state == UnitState.RELEASED
        assert [f.index_kind for f in outcome.publish_report.failures] == [IndexKind.COMMENTS]
        assert admission.aggregate == 0

    def test_unexpected_publish_error_fails_unit(self, admission, tmp_path, storage):
        publisher = ExplodingPublisher(storage, base_path="/idx")
        loop = _loop(admission, tmp_path, storage, publisher=publisher)

        with capture_logs("repoindex.services.worker_loop") as logs:
            outcome = loop.process_unit(make_unit(file_count=2))

        assert outcome.state == UnitState.FAILED
        assert outcome.error == "durable store unreachable"
        assert admission.released == [2]
        assert any("failed unexpectedly" in m for m in logs.messages())

    def test_admission_violation_propagates(self, tmp_path, storage):
        admission = OverReleasingAdmission()
        loop = _loop(admission, tmp_path, storage)

        with pytest.raises(AdmissionViolation):
            loop.process_unit(make_unit(file_count=2))


class TestRun:
    def test_loop_continues_after_failure(self, admission, tmp_path, storage):
        failing = make_unit(owner="bob", repo="broken", file_count=1)
        failing.files[0].released = True
        units = [
            make_unit(owner="alice", repo="one", file_count=1),
            failing,
            make_bare_unit("carol", "huge", 6),
            make_unit(owner="dave", repo="two", file_count=2),
        ]
        loop = _loop(admission, tmp_path, storage, max_files_per_unit=5, worker_id=3)

        result = loop.run(units)

        assert result.worker_id == 3
        assert [o.state for o in result.outcomes] == [
            UnitState.RELEASED,
            UnitState.FAILED,
            UnitState.SKIPPED,
            UnitState.RELEASED,
        ]
        assert result.count(UnitState.RELEASED) == 2
        assert admission.aggregate == 0
        assert admission.released == [1, 1, 2]
