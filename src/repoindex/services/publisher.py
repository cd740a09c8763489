"""
Publisher for staged index artifacts.

Moves each closed staging file of a unit to its durable location
``{base_path}/{language}/{index_kind}/{owner}~{repo}`` and then removes the
unit's local residue. Artifacts are moved independently: a failed move is
logged and reported, the remaining artifacts are still attempted, and
already-moved artifacts are not rolled back.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Optional

from repoindex.core.index_records import IndexKind
from repoindex.core.repository_unit import RepositoryUnit
from repoindex.infrastructure.durable_storage import DurableStorageInterface, StorageError
from repoindex.services.index_writer import StagingArtifact
from repoindex.services.pipeline_models import PublishFailure, PublishReport

logger = logging.getLogger(__name__)

PUBLISH_ORDER = (
    IndexKind.SOURCES,
    IndexKind.TOKENS,
    IndexKind.META,
    IndexKind.TYPESINFO,
    IndexKind.COMMENTS,
)


class Publisher:
    """Places staging artifacts in durable storage and cleans up after a unit."""

    def __init__(
        self,
        storage: DurableStorageInterface,
        base_path: str,
        language: str = "java",
        work_dir: Optional[Path | str] = None,
    ):
        """
        Initialize the publisher.

        Args:
            storage: Durable storage handle
            base_path: Root of the durable index tree
            language: Language tag used in durable paths
            work_dir: Root of per-unit working directories
                (``{work_dir}/{owner}/{repo}``) removed after publishing
        """
        self._storage = storage
        self._base_path = base_path.rstrip("/")
        self._language = language
        self._work_dir = Path(work_dir) if work_dir is not None else None

    def durable_path(self, unit: RepositoryUnit, kind: IndexKind) -> str:
        return f"{self._base_path}/{self._language}/{kind.value}/{unit.unit_key}"

    def residue_path(self, unit: RepositoryUnit) -> Optional[Path]:
        if self._work_dir is None:
            return None
        return self._work_dir / unit.owner_login / unit.repo_name

    def publish(
        self,
        unit: RepositoryUnit,
        artifacts: Mapping[IndexKind, StagingArtifact],
    ) -> PublishReport:
        """
        Publish all artifacts of a unit.

        Re-publishing a unit replaces the durable objects rather than
        appending to them.

        Args:
            unit: The unit the artifacts belong to
            artifacts: Closed staging artifacts keyed by index kind

        Returns:
            PublishReport listing published paths and per-artifact failures
        """
        report = PublishReport(unit_key=unit.unit_key)

        for kind in PUBLISH_ORDER:
            durable_path = self.durable_path(unit, kind)
            artifact = artifacts.get(kind)
            if artifact is None:
                self._record_failure(report, unit, kind, durable_path, "no staging artifact")
                continue
            try:
                self._storage.move_local_file_to(artifact.path, durable_path)
            except (StorageError, OSError) as e:
                self._record_failure(report, unit, kind, durable_path, str(e))
                continue
            report.published[kind] = durable_path

        report.residue_cleaned = self._cleanup(unit, artifacts)
        return report

    def _record_failure(
        self,
        report: PublishReport,
        unit: RepositoryUnit,
        kind: IndexKind,
        durable_path: str,
        error: str,
    ) -> None:
        logger.error(
            f"Failed to publish {kind.value} index for {unit.display_name}: {error}",
            extra={"unit_key": unit.unit_key, "index_kind": kind.value},
        )
        report.failures.append(
            PublishFailure(
                unit_key=unit.unit_key,
                index_kind=kind,
                durable_path=durable_path,
                error=error,
            )
        )

    def _cleanup(
        self,
        unit: RepositoryUnit,
        artifacts: Mapping[IndexKind, StagingArtifact],
    ) -> bool:
        """Best-effort removal of the working directory and leftover staging files."""
        targets: list[Path] = []
        residue = self.residue_path(unit)
        if residue is not None:
            targets.append(residue)
        targets.extend(a.path for a in artifacts.values() if a.path.exists())

        cleaned = True
        for target in targets:
            try:
                self._storage.recursive_delete(target)
            except (StorageError, OSError) as e:
                cleaned = False
                logger.warning(
                    f"Could not remove local residue {target} for {unit.display_name}: {e}",
                    extra={"unit_key": unit.unit_key},
                )
        return cleaned
