"""License container decoding.

Update CABs carry feature manifests that name the license file belonging to
each appx package. CAB decoding is delegated to an external extractor
(``cabextract`` by default); feature manifests that were already extracted
can be passed directly as ``.xml`` containers.
"""

from __future__ import annotations

import shutil
import subprocess
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

import structlog

from uup_replay.core.errors import ArchiveError
from uup_replay.formats.feature_manifest import FeatureManifestParser

logger = structlog.get_logger()


class ArchiveReader(Protocol):
    """Decodes one container into package file name -> license file name."""

    def read_license_map(self, path: Path) -> Mapping[str, str]:
        ...


class FeatureManifestArchiveReader:
    """Reads license declarations from CABs and feature manifest files.

    Args:
        extractor: Extractor program name or path
        timeout: Timeout in seconds for one extractor run
        log: Logger to report to
    """

    def __init__(self, extractor: str = "cabextract", timeout: float = 300.0, log=None):
        self.extractor = extractor
        self.timeout = timeout
        self.log = log or logger
        self._parser = FeatureManifestParser()

    def read_license_map(self, path: Path) -> dict[str, str]:
        """Decode one container.

        Raises:
            ArchiveError: If the container cannot be decoded
        """
        suffix = path.suffix.lower()
        if suffix == ".xml":
            return dict(self._parser.parse_file(path).licenses)
        if suffix == ".cab":
            return self._read_cab(path)
        raise ArchiveError(f"Unsupported container type: {path.name}", path=path)

    def _read_cab(self, path: Path) -> dict[str, str]:
        executable = shutil.which(self.extractor)
        if executable is None:
            raise ArchiveError(f"Extractor not found: {self.extractor}", path=path)

        licenses: dict[str, str] = {}
        with tempfile.TemporaryDirectory(prefix="uup-replay-") as tmp_dir:
            cmd = [executable, "-q", "-F", "*.xml", "-d", tmp_dir, str(path)]
            try:
                result = subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
            except subprocess.TimeoutExpired as e:
                raise ArchiveError(
                    f"Extractor timed out after {self.timeout} seconds", path=path
                ) from e
            except OSError as e:
                raise ArchiveError(f"Cannot run extractor: {e}", path=path) from e

            if result.returncode != 0:
                error_msg = result.stderr.strip() if result.stderr else "Unknown error"
                raise ArchiveError(
                    f"Extractor failed on {path.name}: {error_msg}",
                    path=path,
                    returncode=result.returncode,
                )

            for manifest_path in sorted(Path(tmp_dir).rglob("*.xml")):
                for name, license_file in self._parser.parse_file(manifest_path).licenses.items():
                    licenses.setdefault(name, license_file)

        self.log.debug("container_decoded", path=str(path), licenses=len(licenses))
        return licenses
