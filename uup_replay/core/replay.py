"""Replay orchestration.

A replay starts from a persisted metadata document. Without a fix-up the
update is handed to an ``UpdateProcessor`` unchanged; with the appx fix-up
the loose appx files under the appx root are reconciled against the
canonical manifest.
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import structlog

from uup_replay.core.archive import ArchiveReader
from uup_replay.core.build_string import resolve_build_string
from uup_replay.core.errors import ArchiveError, MetadataError
from uup_replay.core.license_map import build_license_map, discover_containers
from uup_replay.core.manifest_selector import select_canonical_manifest
from uup_replay.core.metadata import MetadataSource
from uup_replay.core.reconciler import ReconcileResult, Reconciler, discover_loose_files
from uup_replay.core.types import Fixup, UpdateMetadata
from uup_replay.core.utils import safe_filename

logger = structlog.get_logger()


class ReplayStatus(enum.Enum):
    """Terminal state of a replay run."""

    completed = "completed"
    handed_off = "handed_off"
    aborted = "aborted"


class UpdateProcessor(Protocol):
    """Downloads or otherwise processes an update that needs no fix-up."""

    def process(self, update: UpdateMetadata, build_string: str) -> None:
        ...


@dataclass
class ReplayOptions:
    """Options for one replay run.

    Attributes:
        fixup: Fix-up to apply, None hands the update off for processing
        appx_root: Directory with loose appx files, required for the appx fix-up
        cabs_root: Directory scanned for license containers, defaults to appx_root
        loose_file_pattern: Glob matching loose files in appx_root
        container_patterns: Globs matching license containers
        hash_workers: Threads used to hash loose files
    """

    fixup: Fixup | None = None
    appx_root: Path | None = None
    cabs_root: Path | None = None
    loose_file_pattern: str = "appx_*"
    container_patterns: tuple[str, ...] = ("*.cab",)
    hash_workers: int = 1


@dataclass
class ReplayOutcome:
    """Run-level result reported to the caller."""

    status: ReplayStatus
    build_string: str | None = None
    update: UpdateMetadata | None = None
    result: ReconcileResult | None = None
    error: str | None = None

    @property
    def placed_count(self) -> int:
        return self.result.placed_count if self.result else 0


class MetadataExportProcessor:
    """Writes the update metadata and build label into the output folder.

    Files land in ``<output>/<build label>/``: ``update.json`` holds the
    metadata document and ``build.txt`` the label.
    """

    def __init__(self, output_folder: Path, log=None):
        self.output_folder = output_folder
        self.log = log or logger

    def process(self, update: UpdateMetadata, build_string: str) -> None:
        target = self.output_folder / safe_filename(build_string)
        target.mkdir(parents=True, exist_ok=True)

        metadata_path = target / "update.json"
        with open(metadata_path, "w", encoding="utf-8") as f:
            json.dump(update.model_dump(mode="json", by_alias=True), f, indent=2)
        (target / "build.txt").write_text(build_string + "\n", encoding="utf-8")

        self.log.info("metadata_exported", path=str(metadata_path))


class ReplayOrchestrator:
    """Sequences metadata loading, build resolution and the fix-up.

    Args:
        source: Metadata collaborator
        archive_reader: Archive collaborator used for license maps
        processor: Receives updates that need no fix-up
        log: Logger to report to
    """

    def __init__(
        self,
        source: MetadataSource,
        archive_reader: ArchiveReader,
        processor: UpdateProcessor,
        log=None,
    ):
        self.source = source
        self.archive_reader = archive_reader
        self.processor = processor
        self.log = log or logger

    def run(self, metadata_path: Path, options: ReplayOptions) -> ReplayOutcome:
        """Replay one metadata document. Never raises collaborator errors."""
        try:
            update = self.source.load(metadata_path)
        except MetadataError as e:
            self.log.error("replay_aborted", stage="load", error=str(e))
            return ReplayOutcome(status=ReplayStatus.aborted, error=str(e))

        self.log.info("update_title", title=update.title)
        self.log.info("update_description", description=update.description)

        build_string = resolve_build_string(update.manifests, update.title, update.build_string, log=self.log)
        self.log.info("build_string", build_string=build_string)

        if options.fixup is Fixup.APPX:
            return self.apply_appx_fixup(update, build_string, options)

        try:
            self.processor.process(update, build_string)
        except (MetadataError, ArchiveError, OSError) as e:
            self.log.error("replay_aborted", stage="process", error=str(e))
            return ReplayOutcome(
                status=ReplayStatus.aborted, build_string=build_string, update=update, error=str(e)
            )
        return ReplayOutcome(status=ReplayStatus.handed_off, build_string=build_string, update=update)

    def apply_appx_fixup(self, update: UpdateMetadata, build_string: str, options: ReplayOptions) -> ReplayOutcome:
        """Reconcile loose appx files against the canonical manifest."""
        if options.appx_root is None:
            error = "The appx fix-up requires an appx root"
            self.log.error("replay_aborted", stage="fixup", error=error)
            return ReplayOutcome(status=ReplayStatus.aborted, build_string=build_string, update=update, error=error)

        appx_root = options.appx_root.resolve()
        cabs_root = options.cabs_root or appx_root

        try:
            selection = select_canonical_manifest(update, self.source, log=self.log)
        except MetadataError as e:
            self.log.error("replay_aborted", stage="manifest_refresh", error=str(e))
            return ReplayOutcome(status=ReplayStatus.aborted, build_string=build_string, update=update, error=str(e))

        update = selection.update
        if selection.manifest is None:
            self.log.warning("appx_fixup_skipped", reason="no canonical manifest with appx packages")
            return ReplayOutcome(
                status=ReplayStatus.completed,
                build_string=build_string,
                update=update,
                result=ReconcileResult(),
            )

        self.log.info("building_license_map", root=str(cabs_root))
        try:
            containers = discover_containers(cabs_root, options.container_patterns)
            license_map = build_license_map(containers, self.archive_reader, log=self.log)
        except ArchiveError as e:
            self.log.error("replay_aborted", stage="license_map", error=str(e))
            return ReplayOutcome(status=ReplayStatus.aborted, build_string=build_string, update=update, error=str(e))

        loose_files = discover_loose_files(appx_root, options.loose_file_pattern)
        self.log.info("loose_files_found", count=len(loose_files), root=str(appx_root))

        reconciler = Reconciler(appx_root, log=self.log, max_workers=options.hash_workers)
        result = reconciler.reconcile(selection.manifest, loose_files, license_map)

        self.log.info("appx_fixup_applied", placed=result.placed_count)
        return ReplayOutcome(
            status=ReplayStatus.completed,
            build_string=build_string,
            update=update,
            result=result,
        )
