"""License map construction.

Merges the license declarations of every container into one mapping from a
package file name to its license file name. When two containers disagree
about the same package the first container wins and the conflict is logged.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import structlog

from uup_replay.core.archive import ArchiveReader

logger = structlog.get_logger()

LicenseMap = dict[str, str]


def discover_containers(root: Path, patterns: Iterable[str] = ("*.cab",)) -> list[Path]:
    """Recursively list license containers below ``root``.

    Args:
        root: Directory to scan
        patterns: File name globs to match

    Returns:
        Sorted, de-duplicated container paths
    """
    found: set[Path] = set()
    for pattern in patterns:
        found.update(p for p in root.rglob(pattern) if p.is_file())
    return sorted(found)


def build_license_map(container_paths: Iterable[Path], reader: ArchiveReader, log=None) -> LicenseMap:
    """Build the license map for a set of containers.

    Args:
        container_paths: Containers to decode, in precedence order
        reader: Archive collaborator decoding a single container
        log: Logger to report to

    Returns:
        Package file name to license file name

    Raises:
        ArchiveError: Propagated unchanged from the reader
    """
    log = log or logger
    license_map: LicenseMap = {}
    containers = 0

    for path in container_paths:
        containers += 1
        for name, license_file in reader.read_license_map(path).items():
            existing = license_map.get(name)
            if existing is None:
                license_map[name] = license_file
            elif existing != license_file:
                log.warning(
                    "license_map_conflict",
                    package_file=name,
                    kept=existing,
                    ignored=license_file,
                    container=str(path),
                )

    log.info("license_map_built", containers=containers, entries=len(license_map))
    return license_map
