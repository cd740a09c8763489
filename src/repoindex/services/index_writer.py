"""
Per-unit index writer.

Fans every file record of a repository unit out into five append-only
JSON-lines staging files, one per index kind. Records are written in the
unit's file order and each file record is released as soon as all five of
its lines are written, so peak memory stays near one record's payload.
"""

import logging
from collections.abc import Callable, Iterable
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, TextIO

from repoindex.core.index_records import (
    RECORD_KINDS,
    DocumentationRecord,
    IndexKind,
    SourceFileRecord,
    to_bare_json,
    to_index_record_json,
)
from repoindex.core.repository_unit import FileRecord, RepositoryUnit
from repoindex.services.pipeline_models import WriterFailure

logger = logging.getLogger(__name__)

StreamFactory = Callable[[Path], TextIO]


@dataclass
class StagingArtifact:
    """A local staging file holding one index stream of one unit."""

    index_kind: IndexKind
    path: Path
    record_count: int = 0


def _open_text_stream(path: Path) -> TextIO:
    return open(path, "w", encoding="utf-8")


class IndexWriter:
    """
    Writes the five staging artifacts of a repository unit.

    Staging files are named after the index kind and the unit key, so
    workers processing different units never collide.
    """

    def __init__(
        self,
        staging_dir: Path | str,
        index_name: str = "java",
        stream_factory: Optional[StreamFactory] = None,
    ):
        """
        Initialize the writer.

        Args:
            staging_dir: Directory that receives staging files
            index_name: Index family written into every record envelope
            stream_factory: Opens a staging file for writing (default: open())
        """
        self._staging_dir = Path(staging_dir)
        self._index_name = index_name
        self._stream_factory = stream_factory or _open_text_stream

    @property
    def staging_dir(self) -> Path:
        return self._staging_dir

    def staging_path(self, unit: RepositoryUnit, kind: IndexKind) -> Path:
        return self._staging_dir / f"repoindex-{kind.value}-{unit.unit_key}"

    def staging_paths(self, unit: RepositoryUnit) -> dict[IndexKind, Path]:
        return {kind: self.staging_path(unit, kind) for kind in IndexKind}

    def write(self, unit: RepositoryUnit) -> dict[IndexKind, StagingArtifact]:
        """
        Write all staging artifacts for a unit.

        Args:
            unit: The repository unit to serialize

        Returns:
            Mapping of index kind to its closed staging artifact

        Raises:
            WriterFailure: If any staging file cannot be opened, written or
                closed, or a payload cannot be serialized. Partially written
                staging files are removed before raising.
        """
        artifacts = {
            kind: StagingArtifact(index_kind=kind, path=path)
            for kind, path in self.staging_paths(unit).items()
        }
        kind: Optional[IndexKind] = None
        position: Optional[int] = None

        try:
            self._staging_dir.mkdir(parents=True, exist_ok=True)
            with ExitStack() as stack:
                streams: dict[IndexKind, TextIO] = {}
                for kind, artifact in artifacts.items():
                    streams[kind] = stack.enter_context(self._stream_factory(artifact.path))
                kind = None

                if not unit.files:
                    logger.info(
                        f"Repo {unit.display_name} does not seem to contain any files.",
                        extra={"unit_key": unit.unit_key},
                    )

                for position, record in enumerate(unit.files, start=1):
                    kind = None
                    lines = self._render(unit, record)
                    for kind, line in lines.items():
                        streams[kind].write(line + "\n")
                        artifacts[kind].record_count += 1
                    kind = None
                    record.release()

                position = None
        except Exception as e:
            self.discard(artifacts.values())
            if isinstance(e, (OSError, TypeError, ValueError)):
                where = f" ({kind.value})" if kind is not None else ""
                at_file = f" at file {position}" if position is not None else ""
                logger.error(
                    f"Failed writing index for {unit.display_name}{where}{at_file}: {e}",
                    extra={"unit_key": unit.unit_key, "file_index": position},
                )
                raise WriterFailure(
                    f"Failed writing index for {unit.unit_key}{where}{at_file}: {e}",
                    unit_key=unit.unit_key,
                    index_kind=kind,
                    file_index=position,
                ) from e
            raise

        return artifacts

    def _render(self, unit: RepositoryUnit, record: FileRecord) -> dict[IndexKind, str]:
        """Serialize one file record into one line per index kind."""
        record.ensure_live()
        location = record.file_location
        return {
            IndexKind.TOKENS: to_index_record_json(
                self._index_name, RECORD_KINDS[IndexKind.TOKENS], record.searchable_refs, location
            ),
            IndexKind.META: to_index_record_json(
                self._index_name, RECORD_KINDS[IndexKind.META], record.file_metadata, location
            ),
            IndexKind.SOURCES: to_index_record_json(
                self._index_name,
                RECORD_KINDS[IndexKind.SOURCES],
                SourceFileRecord(unit.repo_id, location, record.source_content),
                location,
            ),
            IndexKind.TYPESINFO: to_bare_json(record.type_facts),
            IndexKind.COMMENTS: to_index_record_json(
                self._index_name,
                RECORD_KINDS[IndexKind.COMMENTS],
                DocumentationRecord(unit.repo_id, location, record.doc_comments),
                location,
            ),
        }

    def discard(self, artifacts: Iterable[StagingArtifact]) -> None:
        """Remove staging files, ignoring ones that do not exist."""
        for artifact in artifacts:
            try:
                artifact.path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not remove staging file {artifact.path}: {e}")
