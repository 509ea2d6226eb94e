"""Content-hash reconciliation of loose appx files.

Extracted appx payloads arrive as ``appx_*`` files whose names say nothing
about what they are. Each file is identified by the SHA-256 of its content
against the payload hashes of the canonical manifest, then moved to the path
the manifest declares. Afterwards every package that carries license data
gets its license written next to it, under the name the license map gives.

Outcomes are per file: an unmatched hash or a failed move is logged and the
remaining files are still processed. A second file with the content of an
already placed package is left where it is and reported as a duplicate.
Moves are not rolled back.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from uup_replay.core.types import Manifest, Package, PlacedPackage
from uup_replay.core.utils import compute_payload_hash, is_plain_file_name, resolve_under

logger = structlog.get_logger()


def _placed_list() -> list[PlacedPackage]:
    """Factory for typed empty list of PlacedPackage."""
    return []


def _path_list() -> list[Path]:
    """Factory for typed empty list of Path."""
    return []


@dataclass
class ReconcileResult:
    """Result of reconciling loose files against a manifest."""

    placed: list[PlacedPackage] = field(default_factory=_placed_list)
    unmatched: list[Path] = field(default_factory=_path_list)
    failed: list[Path] = field(default_factory=_path_list)
    duplicates: list[Path] = field(default_factory=_path_list)
    licenses_written: list[Path] = field(default_factory=_path_list)
    licenses_skipped: int = 0
    licenses_failed: int = 0

    @property
    def placed_count(self) -> int:
        return len(self.placed)


def discover_loose_files(root: Path, pattern: str = "appx_*") -> list[Path]:
    """List loose package files directly inside ``root``.

    Args:
        root: Directory to scan (not recursed into)
        pattern: File name glob

    Returns:
        Sorted regular files matching the pattern
    """
    return sorted(p for p in root.glob(pattern) if p.is_file())


def index_packages(manifest: Manifest) -> dict[str, Package]:
    """Map primary payload hash to package, keeping the first declaration."""
    index: dict[str, Package] = {}
    if manifest.packages is None:
        return index
    for package in manifest.packages.packages:
        payload_hash = package.payload_hash
        if payload_hash is not None:
            index.setdefault(payload_hash, package)
    return index


class Reconciler:
    """Relocates loose files and attaches licenses under one root.

    Args:
        root: Reconciliation root; manifest paths are relative to it
        log: Logger to report to
        max_workers: Threads used to hash loose files
    """

    def __init__(self, root: Path, log=None, max_workers: int = 1):
        self.root = root
        self.log = log or logger
        self.max_workers = max(1, max_workers)
        self._dir_lock = threading.Lock()

    def ensure_directory(self, directory: Path) -> None:
        """Create a directory if absent; safe to call from several threads."""
        with self._dir_lock:
            if not directory.is_dir():
                self.log.info("creating_directory", path=str(directory))
                directory.mkdir(parents=True, exist_ok=True)

    def destination_for(self, package: Package) -> Path | None:
        """Absolute destination of a package's primary payload."""
        destination = package.destination
        if destination is None:
            return None
        return resolve_under(self.root, destination)

    def reconcile(
        self,
        manifest: Manifest,
        loose_files: Iterable[Path],
        license_map: Mapping[str, str],
    ) -> ReconcileResult:
        """Place loose files, then attach licenses.

        Args:
            manifest: Canonical manifest with package detail
            loose_files: Files to identify and move
            license_map: Package file name to license file name

        Returns:
            ReconcileResult describing every file and license outcome
        """
        result = ReconcileResult()
        packages = index_packages(manifest)

        self._place_files(list(loose_files), packages, result)
        self._attach_licenses(manifest, license_map, result)

        self.log.info(
            "reconciliation_complete",
            placed=result.placed_count,
            unmatched=len(result.unmatched),
            failed=len(result.failed),
            duplicates=len(result.duplicates),
            licenses=len(result.licenses_written),
            licenses_skipped=result.licenses_skipped,
            licenses_failed=result.licenses_failed,
        )
        return result

    def _place_files(self, loose_files: list[Path], packages: dict[str, Package], result: ReconcileResult) -> None:
        if not loose_files:
            return

        # one placement per package; later copies of the same content stay put
        placed_hashes: set[str] = set()

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(loose_files))) as executor:
            future_to_path: dict[Future[str], Path] = {
                executor.submit(compute_payload_hash, path): path
                for path in loose_files
            }

            for future in as_completed(future_to_path):
                path = future_to_path[future]
                try:
                    payload_hash = future.result()
                except OSError as e:
                    self.log.error("hash_failed", path=str(path), error=str(e))
                    result.failed.append(path)
                    continue

                package = packages.get(payload_hash)
                if package is None:
                    self.log.info("no_matching_package", path=str(path), payload_hash=payload_hash)
                    result.unmatched.append(path)
                    continue

                if payload_hash in placed_hashes:
                    self.log.warning("duplicate_payload", path=str(path), payload_hash=payload_hash)
                    result.duplicates.append(path)
                    continue

                placed = self._place(path, payload_hash, package)
                if placed is None:
                    result.failed.append(path)
                else:
                    placed_hashes.add(payload_hash)
                    result.placed.append(placed)

    def _place(self, path: Path, payload_hash: str, package: Package) -> PlacedPackage | None:
        destination = self.destination_for(package)
        if destination is None:
            self.log.error("invalid_destination", path=str(path), destination=package.destination)
            return None

        try:
            if path.resolve() == destination:
                return PlacedPackage(package=package, source=path, path=destination)

            if destination.is_file() and compute_payload_hash(destination) != payload_hash:
                self.log.error(
                    "destination_conflict",
                    path=str(path),
                    destination=str(destination),
                )
                return None

            self.ensure_directory(destination.parent)
            self.log.info("moving_package", source=str(path), destination=str(destination))
            path.replace(destination)
        except OSError as e:
            self.log.error("move_failed", path=str(path), destination=str(destination), error=str(e))
            return None

        return PlacedPackage(package=package, source=path, path=destination)

    def _attach_licenses(self, manifest: Manifest, license_map: Mapping[str, str], result: ReconcileResult) -> None:
        if manifest.packages is None:
            return

        for package in manifest.packages.packages:
            if package.license_data is None:
                continue

            destination = self.destination_for(package)
            if destination is None:
                self.log.error("invalid_destination", package=package.id, destination=package.destination)
                result.licenses_failed += 1
                continue

            license_name = license_map.get(destination.name)
            if license_name is None:
                self.log.warning("license_not_mapped", package_file=destination.name)
                result.licenses_skipped += 1
                continue

            if not is_plain_file_name(license_name):
                self.log.error("invalid_license_name", package_file=destination.name, license_file=license_name)
                result.licenses_failed += 1
                continue

            license_path = destination.parent / license_name
            if license_name.casefold() == destination.name.casefold():
                self.log.error("license_overwrites_package", package_file=destination.name, license_file=license_name)
                result.licenses_failed += 1
                continue

            try:
                self.ensure_directory(destination.parent)
                self.log.info("writing_license", path=str(license_path))
                license_path.write_text(package.license_data, encoding="utf-8")
            except OSError as e:
                self.log.error("license_write_failed", path=str(license_path), error=str(e))
                result.licenses_failed += 1
                continue

            result.licenses_written.append(license_path)


def reconcile(
    manifest: Manifest,
    loose_files: Iterable[Path],
    license_map: Mapping[str, str],
    root: Path,
    log=None,
    max_workers: int = 1,
) -> ReconcileResult:
    """Reconcile loose files under ``root`` against ``manifest``.

    See ``Reconciler.reconcile``.
    """
    return Reconciler(root, log=log, max_workers=max_workers).reconcile(manifest, loose_files, license_map)
