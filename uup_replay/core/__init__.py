"""Core functionality for uup_replay.

This module provides the replay pipeline:
- Type definitions for update metadata and manifests
- Build string resolution
- Canonical manifest selection
- Content-hash reconciliation of loose package files
- Configuration and shared utilities
"""

from uup_replay.core.errors import (
    ArchiveError,
    CompDBParseError,
    MetadataError,
    ReplayError,
)
from uup_replay.core.types import (
    Fixup,
    Manifest,
    Package,
    PackageSet,
    PayloadItem,
    PlacedPackage,
    Tag,
    UpdateMetadata,
)
from uup_replay.core.utils import (
    chunked_read,
    compute_payload_hash,
    is_plain_file_name,
    normalize_payload_path,
    resolve_under,
    safe_filename,
)

__all__ = [
    # Errors
    "ReplayError",
    "MetadataError",
    "CompDBParseError",
    "ArchiveError",
    # Types
    "Fixup",
    "Manifest",
    "Package",
    "PackageSet",
    "PayloadItem",
    "PlacedPackage",
    "Tag",
    "UpdateMetadata",
    # Utils
    "chunked_read",
    "compute_payload_hash",
    "is_plain_file_name",
    "normalize_payload_path",
    "resolve_under",
    "safe_filename",
]
