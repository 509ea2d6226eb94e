"""UUP Replay - reconcile replayed Windows update data.

This package derives build labels from update metadata and restores
extracted appx packages to the layout declared by an update's canonical
composition database.

Key modules:
- core: Data model, build strings, manifest selection, reconciliation
- formats: CompDB and feature manifest parsers
- commands: CLI command implementations
"""

__version__ = "0.1.0"
__author__ = "UUP Replay Team"

# Re-export commonly used types and functions
from uup_replay.core.types import (
    Fixup,
    Manifest,
    UpdateMetadata,
)

__all__ = [
    "__version__",
    "__author__",
    "Fixup",
    "Manifest",
    "UpdateMetadata",
]
