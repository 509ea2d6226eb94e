"""Exceptions raised by the replay pipeline.

Only collaborator failures are exceptional. Expected "not found" outcomes
(no canonical manifest, no matching package, no license entry) are reported
as ``None`` or result values instead.
"""

from __future__ import annotations

from pathlib import Path


class ReplayError(Exception):
    """Base class for replay pipeline failures.

    Attributes:
        path: File or directory involved in the failure, if any
    """

    def __init__(self, message: str, *, path: Path | str | None = None):
        self.path = Path(path) if path is not None else None
        super().__init__(message)


class MetadataError(ReplayError):
    """Raised when update metadata cannot be loaded or refreshed."""


class CompDBParseError(MetadataError):
    """Raised when a composition database document is malformed."""


class ArchiveError(ReplayError):
    """Raised when a license container cannot be decoded.

    Attributes:
        returncode: Exit status of the external extractor, if one ran
    """

    def __init__(
        self,
        message: str,
        *,
        path: Path | str | None = None,
        returncode: int | None = None,
    ):
        self.returncode = returncode
        super().__init__(message, path=path)
