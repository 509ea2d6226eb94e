"""Composition database (CompDB) document parser and builder.

A CompDB enumerates the constituents of an update. The parts used here:

    <CompDB TargetOSVersion="10.0.22621.1"
            TargetBuildInfo="ni_release.22621.1.amd64fre.220506-1250">
      <Tags>
        <Tag Name="UpdateType" Value="Canonical"/>
      </Tags>
      <AppX>
        <AppXPackages>
          <Package ID="Microsoft.WindowsStore">
            <Payload>
              <PayloadItem Path="Packages\\Store.appxbundle"
                           PayloadHash="<base64 sha256>" PayloadSize="123"/>
            </Payload>
            <LicenseData>...</LicenseData>
          </Package>
        </AppXPackages>
      </AppX>
    </CompDB>

Documents usually carry the ``urn:schemas-microsoft-com:embedded.compdb.v1``
namespace; elements are matched by local name so either form parses.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

from uup_replay.core.errors import CompDBParseError
from uup_replay.core.types import Manifest, Package, PackageSet, PayloadItem, Tag
from uup_replay.formats.base import FormatParser, attributes, local_name


def _children(element: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in element if local_name(child.tag) == name]


def _child(element: ET.Element, name: str) -> ET.Element | None:
    found = _children(element, name)
    return found[0] if found else None


class CompDBParser(FormatParser[Manifest]):
    """Parser for CompDB XML documents."""

    error_class = CompDBParseError

    def parse_element(self, root: ET.Element) -> Manifest:
        """Convert a ``<CompDB>`` root element to a Manifest."""
        if local_name(root.tag) != "CompDB":
            raise CompDBParseError(f"Expected CompDB root element, got {local_name(root.tag)}")

        attrs = attributes(root)

        tags: list[Tag] = []
        for tags_element in _children(root, "Tags"):
            for tag in _children(tags_element, "Tag"):
                tag_attrs = attributes(tag)
                if "Name" not in tag_attrs:
                    raise CompDBParseError("Tag element without Name attribute")
                tags.append(Tag(name=tag_attrs["Name"], value=tag_attrs.get("Value")))

        packages: PackageSet | None = None
        appx = _child(root, "AppX")
        if appx is not None:
            packages = PackageSet(packages=tuple(self._parse_packages(appx)))

        return Manifest(
            name=attrs.get("Name"),
            target_os_version=attrs.get("TargetOSVersion"),
            target_build_info=attrs.get("TargetBuildInfo"),
            tags=tuple(tags),
            packages=packages,
        )

    def _parse_packages(self, appx: ET.Element) -> list[Package]:
        packages: list[Package] = []
        for container in _children(appx, "AppXPackages"):
            for element in _children(container, "Package"):
                payload: list[PayloadItem] = []
                for payload_element in _children(element, "Payload"):
                    for item in _children(payload_element, "PayloadItem"):
                        item_attrs = attributes(item)
                        try:
                            size = int(item_attrs["PayloadSize"]) if "PayloadSize" in item_attrs else None
                            payload.append(PayloadItem(
                                path=item_attrs["Path"],
                                payload_hash=item_attrs["PayloadHash"],
                                size=size,
                            ))
                        except (KeyError, ValueError) as e:
                            raise CompDBParseError(f"Invalid PayloadItem: {e}") from e

                license_element = _child(element, "LicenseData")
                license_data = None
                if license_element is not None:
                    license_data = license_element.text or ""

                packages.append(Package(
                    id=attributes(element).get("ID"),
                    payload=tuple(payload),
                    license_data=license_data,
                ))
        return packages

    def build_element(self, obj: Manifest) -> ET.Element:
        """Convert a Manifest to a ``<CompDB>`` root element."""
        root = ET.Element("CompDB")
        if obj.name is not None:
            root.set("Name", obj.name)
        if obj.target_os_version is not None:
            root.set("TargetOSVersion", obj.target_os_version)
        if obj.target_build_info is not None:
            root.set("TargetBuildInfo", obj.target_build_info)

        if obj.tags:
            tags_element = ET.SubElement(root, "Tags")
            for tag in obj.tags:
                tag_element = ET.SubElement(tags_element, "Tag", Name=tag.name)
                if tag.value is not None:
                    tag_element.set("Value", tag.value)

        if obj.packages is not None:
            container = ET.SubElement(ET.SubElement(root, "AppX"), "AppXPackages")
            for package in obj.packages.packages:
                element = ET.SubElement(container, "Package")
                if package.id is not None:
                    element.set("ID", package.id)
                payload_element = ET.SubElement(element, "Payload")
                for item in package.payload:
                    item_element = ET.SubElement(
                        payload_element, "PayloadItem",
                        Path=item.path, PayloadHash=item.payload_hash,
                    )
                    if item.size is not None:
                        item_element.set("PayloadSize", str(item.size))
                if package.license_data is not None:
                    ET.SubElement(element, "LicenseData").text = package.license_data

        return root


def parse_compdb(data: bytes | str) -> Manifest:
    """Parse a CompDB document."""
    return CompDBParser().parse(data)
