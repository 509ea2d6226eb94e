"""Tests for core type definitions."""

import pytest
from conftest import make_manifest, make_package
from pydantic import ValidationError

from uup_replay.core.types import (
    Fixup,
    Manifest,
    Package,
    PackageSet,
    PayloadItem,
    Tag,
    UpdateMetadata,
)


class TestFixup:
    """Test Fixup enum."""

    def test_values(self):
        assert Fixup.APPX == "appx"
        assert Fixup("appx") is Fixup.APPX


class TestPackage:
    """Test Package model."""

    def test_primary_payload_is_first_item(self):
        package = Package(payload=(
            PayloadItem(path="Packages\\A.appx", payload_hash="aaa="),
            PayloadItem(path="Packages\\B.appx", payload_hash="bbb="),
        ))

        assert package.primary_payload.path == "Packages\\A.appx"
        assert package.payload_hash == "aaa="
        assert package.destination == "Packages\\A.appx"

    def test_without_payload(self):
        package = Package()

        assert package.primary_payload is None
        assert package.payload_hash is None
        assert package.destination is None

    def test_license_absent_vs_empty(self):
        assert Package().license_data is None
        assert Package(license_data="").license_data == ""

    def test_alias_and_field_names(self):
        by_alias = Package.model_validate({"ID": "x", "Payload": [{"Path": "p", "PayloadHash": "h"}]})
        by_name = Package.model_validate({"id": "x", "payload": [{"path": "p", "payload_hash": "h"}]})

        assert by_alias == by_name

    def test_frozen(self):
        package = Package(id="x")
        with pytest.raises(ValidationError):
            package.id = "y"


class TestManifest:
    """Test Manifest model."""

    def test_package_detail_absent_vs_empty(self):
        assert not make_manifest(None).has_package_detail
        assert make_manifest([]).has_package_detail

    def test_has_tag_case_insensitive(self):
        manifest = Manifest(tags=(Tag(name="UPDATETYPE", value="canonical"),))

        assert manifest.has_tag("UpdateType", "Canonical")
        assert not manifest.has_tag("UpdateType", "Diff")

    def test_appx_alias(self):
        manifest = Manifest.model_validate({"AppX": {"Packages": []}})

        assert manifest.packages == PackageSet()

    def test_wrapped_appx_layout(self):
        manifest = Manifest.model_validate({
            "Tags": {"Tag": {"Name": "UpdateType", "Value": "Canonical"}},
            "AppX": {"AppXPackages": None},
        })

        assert manifest.has_tag("UpdateType", "Canonical")
        assert manifest.packages == PackageSet()
        assert manifest.has_package_detail


class TestUpdateMetadata:
    """Test UpdateMetadata model."""

    def test_with_manifests_replaces_collection(self):
        original = UpdateMetadata(title="t", manifests=(make_manifest(None, name="old"),))
        replacement = [make_manifest([make_package(b"a", "a.appx")], name="new")]

        updated = original.with_manifests(replacement)

        assert [m.name for m in updated.manifests] == ["new"]
        assert isinstance(updated.manifests, tuple)
        assert [m.name for m in original.manifests] == ["old"]
        assert updated.title == "t"

    def test_by_alias_dump(self):
        update = UpdateMetadata(title="t", manifests=(make_manifest([]),))

        data = update.model_dump(by_alias=True)

        assert data["Title"] == "t"
        assert data["CompDBs"][0]["AppX"] == {"Packages": ()}
