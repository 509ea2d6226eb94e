"""Pytest configuration and shared fixtures for uup_replay tests."""

import base64
import hashlib
import logging
from collections.abc import Callable
from pathlib import Path
from unittest.mock import Mock

import pytest
import structlog
from structlog.testing import LogCapture

from uup_replay.core.config import AppConfig
from uup_replay.core.types import (
    Manifest,
    Package,
    PackageSet,
    PayloadItem,
    Tag,
    UpdateMetadata,
)


def sha256_b64(content: bytes) -> str:
    """Payload hash as CompDB documents encode it."""
    return base64.b64encode(hashlib.sha256(content).digest()).decode("ascii")


def make_package(
    content: bytes,
    path: str,
    license_data: str | None = None,
    package_id: str | None = None,
) -> Package:
    """Create a Package whose primary payload hash is SHA-256(content)."""
    return Package(
        id=package_id,
        payload=(PayloadItem(path=path, payload_hash=sha256_b64(content), size=len(content)),),
        license_data=license_data,
    )


def make_manifest(
    packages: list[Package] | None = None,
    canonical: bool = True,
    version: str | None = None,
    build_info: str | None = None,
    name: str | None = None,
) -> Manifest:
    """Create a Manifest; ``packages=None`` means no package detail."""
    tags = (Tag(name="UpdateType", value="Canonical"),) if canonical else (Tag(name="UpdateType", value="Diff"),)
    return Manifest(
        name=name,
        target_os_version=version,
        target_build_info=build_info,
        tags=tags,
        packages=PackageSet(packages=tuple(packages)) if packages is not None else None,
    )


@pytest.fixture
def log_capture() -> LogCapture:
    """Capture structured log events."""
    return LogCapture()


@pytest.fixture
def capture_logger(log_capture: LogCapture):
    """Bound logger that records every event into ``log_capture``."""
    return structlog.wrap_logger(
        structlog.testing.ReturnLogger(),
        processors=[log_capture],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
    )


@pytest.fixture
def event_names(log_capture: LogCapture) -> Callable[[], list[str]]:
    """Names of captured events, in order."""
    return lambda: [entry["event"] for entry in log_capture.entries]


@pytest.fixture
def sample_update() -> UpdateMetadata:
    """Sample UpdateMetadata with a canonical manifest."""
    return UpdateMetadata(
        update_id="0b1c2d3e-0000-4000-8000-000000000001",
        title="Windows 11, version 22H2 (22621.1)",
        description="Install the latest version of Windows",
        manifests=(
            make_manifest(
                [make_package(b"store", "Packages\\Store.appxbundle", license_data="<License/>")],
                version="10.0.22621.1",
                build_info="ni_release.22621.1.220506-1250",
                name="Build~22621.1~amd64",
            ),
        ),
    )


@pytest.fixture
def mock_source() -> Mock:
    """Metadata collaborator mock."""
    source = Mock()
    source.fetch_manifests.return_value = []
    return source


@pytest.fixture
def mock_config(tmp_path: Path) -> Mock:
    """Create standardized mock app config for CLI testing."""
    config = Mock(spec=AppConfig)
    config.output_format = "rich"
    config.appx_root = None
    config.cabs_root = None
    config.compdb_dir = None
    config.output_folder = tmp_path / "output"
    config.loose_file_pattern = "appx_*"
    config.container_patterns = ["*.cab", "*.xml"]
    config.extractor = "cabextract"
    config.extractor_timeout = 30.0
    config.hash_workers = 2
    return config


# Pytest configuration
def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest settings."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    """Add the unit marker to every test not marked as integration."""
    for item in items:
        if not any(marker.name == "integration" for marker in item.iter_markers()):
            item.add_marker(pytest.mark.unit)
