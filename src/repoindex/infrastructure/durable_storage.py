"""
Durable storage for published index artifacts.

Contains the abstract storage interface used by the Publisher and a
filesystem implementation that places objects with an atomic rename so a
concurrent reader never observes a partially written object.
"""

import errno
import logging
import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for durable storage errors."""

    pass


class DurableStorageInterface(ABC):
    """Abstract interface for durable artifact storage."""

    @abstractmethod
    def move_local_file_to(self, local_path: Path | str, durable_path: str) -> None:
        """
        Move a local file to a durable location, replacing any existing object.

        The local file no longer exists after a successful move.

        Raises:
            StorageError: If the move fails
        """
        pass

    @abstractmethod
    def recursive_delete(self, local_path: Path | str) -> bool:
        """
        Delete a local file or directory tree.

        Returns:
            True if something was deleted, False if the path did not exist

        Raises:
            StorageError: If the path exists but could not be deleted
        """
        pass


class LocalDurableStorage(DurableStorageInterface):
    """
    Durable storage backed by a (possibly network mounted) filesystem.

    Durable paths are absolute filesystem paths. Placement uses os.replace,
    which is atomic within one filesystem. When source and destination live
    on different filesystems the file is first copied to a temporary file
    next to the destination and then renamed into place.
    """

    def move_local_file_to(self, local_path: Path | str, durable_path: str) -> None:
        source = Path(local_path)
        target = Path(durable_path)

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            try:
                os.replace(source, target)
            except OSError as e:
                if e.errno != errno.EXDEV:
                    raise
                self._copy_then_replace(source, target)
                source.unlink()
        except OSError as e:
            raise StorageError(f"Failed to move {source} to {target}: {e}") from e

        logger.debug(f"Moved {source} to {target}")

    def _copy_then_replace(self, source: Path, target: Path) -> None:
        # Write to temp file in the target directory, then rename over the target
        temp_fd, temp_path = tempfile.mkstemp(
            dir=target.parent,
            prefix=f".{target.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(temp_fd, "wb") as dst, source.open("rb") as src:
                shutil.copyfileobj(src, dst)
            os.replace(temp_path, target)
        except OSError:
            try:
                os.unlink(temp_path)
            except OSError:
                logger.debug(f"Could not remove temporary file {temp_path}")
            raise

    def recursive_delete(self, local_path: Path | str) -> bool:
        path = Path(local_path)
        if not path.exists() and not path.is_symlink():
            return False
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
        except OSError as e:
            raise StorageError(f"Failed to delete {path}: {e}") from e
        return True


def create_durable_storage() -> DurableStorageInterface:
    """Create the default durable storage implementation."""
    return LocalDurableStorage()
