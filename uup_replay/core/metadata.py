"""Update metadata sources.

The replay pipeline never talks to the update service itself. It reads the
metadata document the discovery step persisted, and when that document lacks
package detail it asks a ``MetadataSource`` for a fresh manifest set.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import ValidationError

from uup_replay.core.errors import MetadataError
from uup_replay.core.types import Manifest, UpdateMetadata
from uup_replay.formats.compdb import CompDBParser

logger = structlog.get_logger()


class MetadataSource(Protocol):
    """Supplies update metadata and refreshed manifest sets."""

    def load(self, path: Path) -> UpdateMetadata:
        ...

    def fetch_manifests(self, update: UpdateMetadata) -> Sequence[Manifest]:
        ...


class ReplayMetadataSource:
    """Metadata source backed by local files.

    Replay documents are JSON encoded ``UpdateMetadata``. Manifest refreshes
    read CompDB XML documents from ``compdb_dir``; when a subdirectory named
    after the update id exists, only that subdirectory is used.

    Args:
        compdb_dir: Directory holding CompDB documents, None disables refresh
        log: Logger to report to
    """

    def __init__(self, compdb_dir: Path | None = None, log=None):
        self.compdb_dir = compdb_dir
        self.log = log or logger
        self._parser = CompDBParser()

    def load(self, path: Path) -> UpdateMetadata:
        """Deserialize a replay metadata document.

        Raises:
            MetadataError: If the file cannot be read or is not valid metadata
        """
        try:
            text = path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            raise MetadataError(f"Cannot read replay metadata {path}: {e}", path=path) from e

        try:
            update = UpdateMetadata.model_validate_json(text)
        except ValidationError as e:
            raise MetadataError(f"Invalid replay metadata {path}: {e}", path=path) from e

        self.log.debug("metadata_loaded", path=str(path), manifests=len(update.manifests))
        return update

    def fetch_manifests(self, update: UpdateMetadata) -> list[Manifest]:
        """Read a fresh manifest set for ``update``.

        Raises:
            MetadataError: If no CompDB directory is configured, a document
                is malformed, or no documents are found
        """
        if self.compdb_dir is None:
            raise MetadataError("No CompDB directory configured for manifest refresh")

        directory = self.compdb_dir
        if update.update_id and (directory / update.update_id).is_dir():
            directory = directory / update.update_id

        if not directory.is_dir():
            raise MetadataError(f"CompDB directory does not exist: {directory}", path=directory)

        manifests = [self._parser.parse_file(path) for path in sorted(directory.glob("*.xml"))]
        if not manifests:
            raise MetadataError(f"No CompDB documents found in {directory}", path=directory)

        self.log.info("manifests_refreshed", directory=str(directory), count=len(manifests))
        return manifests
