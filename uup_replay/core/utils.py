"""Shared utilities for uup-replay."""

from __future__ import annotations

import base64
import hashlib
import re
from collections.abc import Iterator
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import BinaryIO

_UNSAFE_NAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def chunked_read(
    stream: BinaryIO,
    chunk_size: int = 1024 * 1024
) -> Iterator[bytes]:
    """Read stream in chunks.

    Args:
        stream: Binary stream to read from
        chunk_size: Size of each chunk in bytes

    Yields:
        Data chunks as bytes

    Raises:
        ValueError: If chunk_size is not positive

    Example:
        >>> import io
        >>> stream = io.BytesIO(b"hello world")
        >>> list(chunked_read(stream, chunk_size=5))
        [b'hello', b' worl', b'd']
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        yield chunk


def compute_payload_hash(path: Path) -> str:
    """Compute the base64 encoded SHA-256 digest of a file.

    This is the representation CompDB documents use for ``PayloadHash``.

    Args:
        path: File to hash

    Returns:
        Base64 string of the 32-byte digest

    Raises:
        OSError: If the file cannot be read
    """
    sha = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in chunked_read(f):
            sha.update(chunk)
    return base64.b64encode(sha.digest()).decode("ascii")


def normalize_payload_path(path: str) -> PurePosixPath:
    """Convert a manifest payload path to a relative POSIX path.

    Example:
        >>> normalize_payload_path("Packages\\\\Foo.appx")
        PurePosixPath('Packages/Foo.appx')
    """
    return PurePosixPath(*PureWindowsPath(path).parts)


def resolve_under(root: Path, relative: str) -> Path | None:
    """Resolve a manifest path below ``root``.

    Args:
        root: Reconciliation root directory
        relative: Backslash or slash delimited relative path

    Returns:
        Absolute destination path, or None if the path is empty, absolute,
        or would escape the root
    """
    if not relative or PureWindowsPath(relative).anchor or relative.startswith("/"):
        return None

    rel = normalize_payload_path(relative)
    if not rel.parts or ".." in rel.parts:
        return None

    return root.resolve() / rel


def is_plain_file_name(name: str) -> bool:
    """Check that ``name`` is a single path component.

    Example:
        >>> is_plain_file_name("Foo_License.xml")
        True
        >>> is_plain_file_name("..\\\\Foo_License.xml")
        False
    """
    return bool(name) and name not in {".", ".."} and PureWindowsPath(name).name == name


def safe_filename(name: str, default: str = "unknown") -> str:
    """Make a string usable as a single path component.

    Example:
        >>> safe_filename("10.0.22621.1 (ni_release.220506-1250)")
        '10.0.22621.1 (ni_release.220506-1250)'
        >>> safe_filename("a/b:c")
        'a_b_c'
    """
    cleaned = _UNSAFE_NAME_CHARS.sub("_", name).strip(" .")
    return cleaned or default
