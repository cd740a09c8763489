"""
Repository unit data models.

A RepositoryUnit is one repository's worth of processable files together
with the facts extracted from them. The payload fields on FileRecord are
opaque: they are produced upstream and only serialized and routed here.
"""

import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


class RecordReleasedError(RuntimeError):
    """Raised when a FileRecord is read after it has been released."""

    pass


@dataclass
class FileRecord:
    """
    One source file and its extracted facts.

    Attributes:
        file_location: Repository-relative location of the file, if known
        searchable_refs: Searchable type references (tokens index)
        file_metadata: File level metadata (meta index)
        source_content: Raw file content (sources index)
        doc_comments: Documentation comments (comments index)
        type_facts: Types declared and used in the file (typesinfo index)
    """

    file_location: Optional[str] = None
    searchable_refs: Any = None
    file_metadata: Any = None
    source_content: Any = None
    doc_comments: Any = None
    type_facts: Any = None
    released: bool = field(default=False, compare=False)

    def ensure_live(self) -> None:
        """Raise RecordReleasedError if the record's payloads were freed."""
        if self.released:
            raise RecordReleasedError(
                f"File record {self.file_location!r} was already released"
            )

    def release(self) -> None:
        """Drop references to all payloads so their memory can be reclaimed."""
        self.searchable_refs = None
        self.file_metadata = None
        self.source_content = None
        self.doc_comments = None
        self.type_facts = None
        self.released = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileRecord":
        return cls(
            file_location=data.get("file_location"),
            searchable_refs=data.get("searchable_refs"),
            file_metadata=data.get("file_metadata"),
            source_content=data.get("source_content"),
            doc_comments=data.get("doc_comments"),
            type_facts=data.get("type_facts"),
        )


@dataclass
class RepositoryUnit:
    """
    A repository and its files, the unit of work for a worker loop.

    Attributes:
        owner_login: Login of the repository owner
        repo_name: Repository name
        files: File records in their stored order
        repo_id: Numeric repository id, 0 when unknown
    """

    owner_login: str
    repo_name: str
    files: list[FileRecord] = field(default_factory=list)
    repo_id: int = 0

    @property
    def unit_key(self) -> str:
        """Namespaced identity used in staging and durable paths."""
        return f"{self.owner_login}~{self.repo_name}"

    @property
    def display_name(self) -> str:
        return f"{self.owner_login}/{self.repo_name}"

    @property
    def file_count(self) -> int:
        return len(self.files)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RepositoryUnit":
        """
        Create a RepositoryUnit from a dictionary.

        Args:
            data: Dictionary with owner_login, repo_name, optional repo_id
                and a list of file dictionaries.

        Returns:
            RepositoryUnit instance.

        Raises:
            ValueError: If owner_login or repo_name is missing or empty.
        """
        owner_login = data.get("owner_login") or ""
        repo_name = data.get("repo_name") or ""
        if not owner_login or not repo_name:
            raise ValueError("Repository unit requires owner_login and repo_name")

        return cls(
            owner_login=owner_login,
            repo_name=repo_name,
            repo_id=int(data.get("repo_id") or 0),
            files=[FileRecord.from_dict(f) for f in data.get("files") or []],
        )


def load_units(path: Path | str) -> Iterator[RepositoryUnit]:
    """
    Lazily read repository units from a JSON-lines file.

    Blank lines are skipped. A malformed line is logged and skipped so a
    single bad unit does not stop the stream.

    Args:
        path: Path to the JSON-lines file

    Yields:
        RepositoryUnit for each valid line
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                unit = RepositoryUnit.from_dict(json.loads(line))
            except (ValueError, TypeError) as e:
                logger.warning(f"Skipping malformed unit at {path}:{line_number}: {e}")
                continue
            yield unit
