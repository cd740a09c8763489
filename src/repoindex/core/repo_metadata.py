"""
Repository metadata selection.

Reads GitHub repository metadata rows, decides which repositories are worth
indexing, and expands the metadata location argument accepted by the CLI.
"""

import json
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepoInfo:
    """Metadata of one GitHub repository."""

    repo_id: int
    login: str
    name: str
    full_name: str
    is_private: bool = False
    is_fork: bool = False
    size: int = 0
    watchers_count: int = 0
    language: Optional[str] = None
    forks_count: int = 0
    subscribers_count: int = 0
    default_branch: str = ""
    stargazers_count: int = 0

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> "RepoInfo":
        """
        Build a RepoInfo from a GitHub API repository object.

        Missing or null fields fall back to empty defaults; the owner login
        is read from the nested ``owner`` object when present.
        """
        owner = row.get("owner") or {}
        login = owner.get("login") if isinstance(owner, dict) else None
        return cls(
            repo_id=int(row.get("id") or 0),
            login=login or row.get("login") or "",
            name=row.get("name") or "",
            full_name=row.get("full_name") or "",
            is_private=bool(row.get("private") or False),
            is_fork=bool(row.get("fork") or False),
            size=int(row.get("size") or 0),
            watchers_count=int(row.get("watchers_count") or 0),
            language=row.get("language"),
            forks_count=int(row.get("forks_count") or 0),
            subscribers_count=int(row.get("subscribers_count") or 0),
            default_branch=row.get("default_branch") or "",
            stargazers_count=int(row.get("stargazers_count") or 0),
        )


@dataclass
class RepoFilter:
    """
    Selection policy for repositories to index.

    Attributes:
        min_stars: Repositories need strictly more stars than this
        max_size_kb: Repositories must be strictly smaller than this
        languages: Accepted primary languages, compared case-insensitively
    """

    min_stars: int = 5
    max_size_kb: int = 1000 * 1000
    languages: list[str] = field(default_factory=lambda: ["Java", "Scala"])

    def is_indexable(self, info: RepoInfo) -> bool:
        if info.size >= self.max_size_kb:
            return False
        if info.stargazers_count <= self.min_stars:
            return False
        if not info.language:
            return False
        if info.language.lower() not in {lang.lower() for lang in self.languages}:
            return False
        return bool(info.repo_id and info.name and info.full_name and info.login)

    def select(self, infos: Iterable[RepoInfo]) -> Iterator[RepoInfo]:
        return (info for info in infos if self.is_indexable(info))


def expand_metadata_locations(
    arg: Optional[str], base_path: str, chunk_size: int
) -> list[str]:
    """
    Expand a metadata location argument into concrete locations.

    Supported forms:
        - ``"a,b"``: one location per comma separated item
        - ``"0-3000"``: the range is cut into chunk_size chunks, each
          named ``"{head}-{head + chunk_size - 1}"``
        - an absolute path: used as given
        - anything else: a single location named relative to base_path
        - empty or None: the base path itself

    A range whose bounds are not integers is logged and falls back to the
    base path.

    Args:
        arg: Location argument, typically from the command line
        base_path: Directory holding the metadata chunks
        chunk_size: Number of repository ids per metadata chunk

    Returns:
        List of location strings
    """
    if not arg or not arg.strip():
        return [base_path]

    base = base_path.rstrip("/")
    if "," in arg:
        return [f"{base}/{item.strip()}" for item in arg.split(",") if item.strip()]

    arg = arg.strip()
    if Path(arg).is_absolute():
        return [arg]

    if "-" in arg:
        try:
            bounds = [int(part.strip()) for part in arg.split("-")]
        except ValueError:
            logger.warning(
                f"Invalid metadata range {arg!r}, reading all metadata under {base_path}"
            )
            return [base_path]
        start, end = bounds[0], bounds[-1]
        return [
            f"{base}/{head}-{head + chunk_size - 1}"
            for head in range(start, end, chunk_size)
        ]

    return [f"{base}/{arg}"]


def _iter_metadata_files(location: Path) -> Iterator[Path]:
    if location.is_dir():
        yield from sorted(p for p in location.rglob("*") if p.is_file())
    else:
        yield location


def load_repo_infos(locations: Iterable[Path | str]) -> Iterator[RepoInfo]:
    """
    Read repository metadata from JSON-lines files or directories of them.

    Missing locations are logged and skipped. Blank lines are ignored and
    malformed lines are logged and skipped.
    """
    for location in locations:
        location = Path(location)
        if not location.exists():
            logger.warning(f"Metadata location not found: {location}")
            continue
        for path in _iter_metadata_files(location):
            with path.open("r", encoding="utf-8") as handle:
                for line_number, line in enumerate(handle, start=1):
                    if not line.strip():
                        continue
                    try:
                        info = RepoInfo.from_dict(json.loads(line))
                    except (ValueError, TypeError, AttributeError) as e:
                        logger.warning(
                            f"Skipping malformed metadata at {path}:{line_number}: {e}"
                        )
                        continue
                    yield info
