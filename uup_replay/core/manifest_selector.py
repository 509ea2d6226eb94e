"""Canonical manifest selection.

An update usually ships several CompDBs; the one tagged
``UpdateType=Canonical`` that carries appx package detail is authoritative
for reconciliation. Older replay documents were written without package
detail, in which case the manifest set is refreshed once from the metadata
source.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from uup_replay.core.metadata import MetadataSource
from uup_replay.core.types import Manifest, UpdateMetadata

logger = structlog.get_logger()

CANONICAL_TAG = ("UpdateType", "Canonical")


@dataclass(frozen=True)
class CanonicalSelection:
    """Outcome of canonical manifest selection.

    Attributes:
        update: Metadata the selection was made from (refreshed if needed)
        manifest: Selected manifest, None if no manifest qualified
        refreshed: Whether the manifest set was re-fetched
    """

    update: UpdateMetadata
    manifest: Manifest | None
    refreshed: bool = False


def is_canonical(manifest: Manifest) -> bool:
    """Check whether a manifest is canonical and carries package detail."""
    return manifest.has_package_detail and manifest.has_tag(*CANONICAL_TAG)


def find_canonical(manifests: tuple[Manifest, ...] | list[Manifest]) -> Manifest | None:
    """First canonical manifest with package detail, in collection order."""
    return next((m for m in manifests if is_canonical(m)), None)


def select_canonical_manifest(update: UpdateMetadata, source: MetadataSource, log=None) -> CanonicalSelection:
    """Select the canonical manifest of an update.

    Args:
        update: Loaded update metadata
        source: Metadata collaborator used for the one-time refresh
        log: Logger to report to

    Returns:
        CanonicalSelection; its ``manifest`` is None when nothing qualified

    Raises:
        MetadataError: Propagated from the refresh
    """
    log = log or logger
    refreshed = False

    if not any(m.has_package_detail for m in update.manifests):
        log.info("manifest_refresh_required", reason="no package metadata in replay")
        update = update.with_manifests(tuple(source.fetch_manifests(update)))
        refreshed = True

    manifest = find_canonical(update.manifests)
    if manifest is None:
        log.warning("canonical_manifest_not_found", manifests=len(update.manifests), refreshed=refreshed)
    else:
        log.info(
            "canonical_manifest_selected",
            name=manifest.name,
            packages=len(manifest.packages.packages) if manifest.packages else 0,
            refreshed=refreshed,
        )

    return CanonicalSelection(update=update, manifest=manifest, refreshed=refreshed)
