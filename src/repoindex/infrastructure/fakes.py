"""
Fake implementations for testing.

Provides in-memory implementations of infrastructure interfaces
for use in unit and integration tests without a durable filesystem.
"""

from __future__ import annotations

import shutil
import threading
from pathlib import Path

from repoindex.infrastructure.durable_storage import (
    DurableStorageInterface,
    StorageError,
)


class InMemoryDurableStorage(DurableStorageInterface):
    """
    In-memory durable storage for testing.

    Moving a local file reads its content into a dictionary keyed by durable
    path and removes the local file. Moves to paths containing any of the
    configured failure markers raise StorageError and leave the local file
    in place. Deletes operate on the real local filesystem.
    """

    def __init__(
        self,
        fail_paths: set[str] | None = None,
        fail_deletes: set[str] | None = None,
    ):
        """
        Initialize in-memory storage.

        Args:
            fail_paths: Substrings of durable paths whose moves should fail
            fail_deletes: Substrings of local paths whose deletes should fail
        """
        self._objects: dict[str, bytes] = {}
        self._fail_paths = set(fail_paths or ())
        self._fail_deletes = set(fail_deletes or ())
        self._lock = threading.Lock()
        self.moves: list[tuple[str, str]] = []
        self.deletes: list[str] = []

    def move_local_file_to(self, local_path: Path | str, durable_path: str) -> None:
        """Read the local file into memory under durable_path, then remove it."""
        if any(marker in durable_path for marker in self._fail_paths):
            raise StorageError(f"Simulated move failure for {durable_path}")

        source = Path(local_path)
        try:
            content = source.read_bytes()
            source.unlink()
        except OSError as e:
            raise StorageError(f"Failed to move {source} to {durable_path}: {e}") from e

        with self._lock:
            self._objects[durable_path] = content
            self.moves.append((str(source), durable_path))

    def recursive_delete(self, local_path: Path | str) -> bool:
        """Delete a local path, failing for configured markers."""
        path = Path(local_path)
        if any(marker in str(path) for marker in self._fail_deletes):
            raise StorageError(f"Simulated delete failure for {path}")

        with self._lock:
            self.deletes.append(str(path))

        if not path.exists():
            return False
        if path.is_dir():
            shutil.rmtree(path)
        else:
            path.unlink()
        return True

    def read_text(self, durable_path: str) -> str:
        """Return the stored object as text (KeyError if absent)."""
        with self._lock:
            return self._objects[durable_path].decode("utf-8")

    def read_lines(self, durable_path: str) -> list[str]:
        """Return the stored object's non-empty lines."""
        return [line for line in self.read_text(durable_path).split("\n") if line]

    def exists(self, durable_path: str) -> bool:
        with self._lock:
            return durable_path in self._objects

    def list_paths(self) -> list[str]:
        """Return all stored durable paths, sorted."""
        with self._lock:
            return sorted(self._objects)

    def clear(self) -> None:
        """Clear all stored objects and recorded calls."""
        with self._lock:
            self._objects.clear()
            self.moves.clear()
            self.deletes.clear()
