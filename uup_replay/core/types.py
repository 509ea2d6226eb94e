"""Core type definitions for uup_replay."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, AliasPath, BaseModel, ConfigDict, Field, model_validator

# Keys follow the PascalCase layout of persisted replay documents; snake_case
# field names are accepted as well.
_MODEL_CONFIG = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


def _unwrap(value: Any, key: str) -> Any:
    """Flatten an XML-style list wrapper such as ``{"Tag": [...]}``.

    Serialized CompDB documents wrap repeated elements in a container
    object, and a single element is not wrapped in a list.
    """
    if value is None:
        return []
    if not isinstance(value, dict):
        return value
    inner = value.get(key)
    if inner is None:
        return []
    if isinstance(inner, dict):
        return [inner]
    return inner


def _unwrap_field(data: Any, alias: str, key: str) -> Any:
    if isinstance(data, dict) and alias in data:
        return {**data, alias: _unwrap(data[alias], key)}
    return data


class Fixup(StrEnum):
    """Post-hoc corrections that can be applied to replayed update data."""
    APPX = "appx"


class PayloadItem(BaseModel):
    """One payload file declared by a package."""
    path: str = Field(..., alias="Path", description="Relative path, backslash delimited")
    payload_hash: str = Field(..., alias="PayloadHash", description="Base64 SHA-256 digest")
    size: int | None = Field(None, alias="PayloadSize", description="Payload size in bytes")

    model_config = _MODEL_CONFIG


class Package(BaseModel):
    """A declared unit of content inside a manifest."""
    id: str | None = Field(None, alias="ID", description="Package identifier")
    payload: tuple[PayloadItem, ...] = Field(
        default_factory=tuple, alias="Payload", description="Declared payload items"
    )
    license_data: str | None = Field(None, alias="LicenseData", description="License blob")

    model_config = _MODEL_CONFIG

    @model_validator(mode="before")
    @classmethod
    def unwrap_payload(cls, data: Any) -> Any:
        return _unwrap_field(data, "Payload", "PayloadItem")

    @property
    def primary_payload(self) -> PayloadItem | None:
        """First declared payload item, which identifies the package."""
        return self.payload[0] if self.payload else None

    @property
    def payload_hash(self) -> str | None:
        item = self.primary_payload
        return item.payload_hash if item else None

    @property
    def destination(self) -> str | None:
        item = self.primary_payload
        return item.path if item else None


class PackageSet(BaseModel):
    """Package-level detail of a manifest.

    A manifest either has a ``PackageSet`` or it does not; an empty
    ``packages`` tuple still counts as package detail being present.
    """
    packages: tuple[Package, ...] = Field(
        default_factory=tuple, alias="Packages", description="Declared packages"
    )

    model_config = _MODEL_CONFIG

    @model_validator(mode="before")
    @classmethod
    def unwrap_packages(cls, data: Any) -> Any:
        """Accept the ``{"AppXPackages": {"Package": [...]}}`` layout."""
        if isinstance(data, dict) and "AppXPackages" in data and not ({"Packages", "packages"} & data.keys()):
            return {"Packages": _unwrap(data["AppXPackages"], "Package")}
        return data


class Tag(BaseModel):
    """Descriptive name/value pair attached to a manifest."""
    name: str = Field(..., alias="Name")
    value: str | None = Field(None, alias="Value")

    model_config = _MODEL_CONFIG


class Manifest(BaseModel):
    """One composition database (CompDB) view of an update."""
    name: str | None = Field(None, alias="Name", description="Manifest name")
    target_os_version: str | None = Field(
        None, alias="TargetOSVersion", description="Target OS version, e.g. 10.0.22621.1"
    )
    target_build_info: str | None = Field(
        None, alias="TargetBuildInfo", description="Dot delimited build info"
    )
    tags: tuple[Tag, ...] = Field(default_factory=tuple, alias="Tags")
    packages: PackageSet | None = Field(None, alias="AppX", description="Package detail")

    model_config = _MODEL_CONFIG

    @model_validator(mode="before")
    @classmethod
    def unwrap_tags(cls, data: Any) -> Any:
        return _unwrap_field(data, "Tags", "Tag")

    @property
    def has_package_detail(self) -> bool:
        return self.packages is not None

    def has_tag(self, name: str, value: str) -> bool:
        """Check for a tag, comparing name and value case-insensitively."""
        name = name.casefold()
        value = value.casefold()
        return any(
            tag.name.casefold() == name
            and tag.value is not None
            and tag.value.casefold() == value
            for tag in self.tags
        )


class UpdateMetadata(BaseModel):
    """Metadata of a single discovered update."""
    update_id: str | None = Field(None, alias="UpdateId", description="Update identifier")
    title: str = Field(
        "",
        alias="Title",
        validation_alias=AliasChoices("Title", AliasPath("Xml", "LocalizedProperties", "Title")),
        description="Localized title",
    )
    description: str = Field(
        "",
        alias="Description",
        validation_alias=AliasChoices("Description", AliasPath("Xml", "LocalizedProperties", "Description")),
        description="Localized description",
    )
    build_string: str | None = Field(
        None, alias="BuildString", description="Build string reported by the update service"
    )
    manifests: tuple[Manifest, ...] = Field(
        default_factory=tuple, alias="CompDBs", description="Composition databases"
    )

    model_config = _MODEL_CONFIG

    def with_manifests(self, manifests: tuple[Manifest, ...] | list[Manifest]) -> UpdateMetadata:
        """Return a copy whose manifest collection is replaced wholesale."""
        return self.model_copy(update={"manifests": tuple(manifests)})


class PlacedPackage(BaseModel):
    """A package whose payload has been relocated to its declared path."""
    package: Package
    source: Path = Field(..., description="Original loose file path")
    path: Path = Field(..., description="Final on-disk path")

    model_config = ConfigDict(frozen=True)
