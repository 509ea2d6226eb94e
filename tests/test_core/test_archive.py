"""Tests for license container decoding."""

import subprocess
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from uup_replay.core.archive import FeatureManifestArchiveReader
from uup_replay.core.errors import ArchiveError

FEATURE_MANIFEST = """<?xml version="1.0" encoding="utf-8"?>
<FeatureManifest xmlns="http://schemas.microsoft.com/embedded/2004/10/ImageUpdate">
  <AppXPackages>
    <PackageFile Path="$(mspackageroot)\\Retail\\Store.appxbundle"
                 LicenseFile="$(mspackageroot)\\Retail\\Store_License.xml"/>
  </AppXPackages>
</FeatureManifest>
"""


def _fake_extract(manifest_text: str, returncode: int = 0, stderr: str = ""):
    """Side effect writing an extracted feature manifest into the -d directory."""

    def run(cmd, **kwargs):
        target = Path(cmd[cmd.index("-d") + 1])
        if returncode == 0:
            (target / "sub").mkdir()
            (target / "sub" / "AppxFeatureManifest.xml").write_text(manifest_text, encoding="utf-8")
        return subprocess.CompletedProcess(cmd, returncode, stdout="", stderr=stderr)

    return run


class TestFeatureManifestArchiveReader:
    """Test container decoding."""

    def test_reads_xml_directly(self, tmp_path: Path):
        path = tmp_path / "AppxFeatureManifest.xml"
        path.write_text(FEATURE_MANIFEST, encoding="utf-8")

        result = FeatureManifestArchiveReader().read_license_map(path)

        assert result == {"Store.appxbundle": "Store_License.xml"}

    def test_unsupported_container(self, tmp_path: Path):
        with pytest.raises(ArchiveError, match="Unsupported container"):
            FeatureManifestArchiveReader().read_license_map(tmp_path / "thing.zip")

    def test_cab_via_extractor(self, tmp_path: Path):
        cab = tmp_path / "Microsoft-Windows-Store.cab"
        cab.write_bytes(b"MSCF")

        with patch("uup_replay.core.archive.shutil.which", return_value="/usr/bin/cabextract"), \
                patch("uup_replay.core.archive.subprocess.run", side_effect=_fake_extract(FEATURE_MANIFEST)) as run:
            result = FeatureManifestArchiveReader().read_license_map(cab)

        assert result == {"Store.appxbundle": "Store_License.xml"}
        cmd = run.call_args.args[0]
        assert cmd[0] == "/usr/bin/cabextract"
        assert cmd[-1] == str(cab)
        assert "*.xml" in cmd

    def test_missing_extractor(self, tmp_path: Path):
        with patch("uup_replay.core.archive.shutil.which", return_value=None):
            with pytest.raises(ArchiveError, match="Extractor not found"):
                FeatureManifestArchiveReader(extractor="nope").read_license_map(tmp_path / "a.cab")

    def test_extractor_failure(self, tmp_path: Path):
        cab = tmp_path / "broken.cab"

        with patch("uup_replay.core.archive.shutil.which", return_value="/usr/bin/cabextract"), \
                patch("uup_replay.core.archive.subprocess.run",
                      side_effect=_fake_extract("", returncode=1, stderr="not a cabinet")):
            with pytest.raises(ArchiveError) as exc_info:
                FeatureManifestArchiveReader().read_license_map(cab)

        assert exc_info.value.returncode == 1
        assert exc_info.value.path == cab
        assert "not a cabinet" in str(exc_info.value)

    def test_extractor_timeout(self, tmp_path: Path):
        run = Mock(side_effect=subprocess.TimeoutExpired(cmd="cabextract", timeout=1))

        with patch("uup_replay.core.archive.shutil.which", return_value="/usr/bin/cabextract"), \
                patch("uup_replay.core.archive.subprocess.run", run):
            with pytest.raises(ArchiveError, match="timed out"):
                FeatureManifestArchiveReader(timeout=1).read_license_map(tmp_path / "slow.cab")

    def test_malformed_extracted_manifest(self, tmp_path: Path):
        with patch("uup_replay.core.archive.shutil.which", return_value="/usr/bin/cabextract"), \
                patch("uup_replay.core.archive.subprocess.run", side_effect=_fake_extract("<broken")):
            with pytest.raises(ArchiveError, match="Malformed XML"):
                FeatureManifestArchiveReader().read_license_map(tmp_path / "a.cab")
