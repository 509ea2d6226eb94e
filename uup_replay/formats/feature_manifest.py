"""Feature manifest license declarations.

Feature manifests shipped inside update CABs reference appx packages
together with the license file that belongs to each of them, e.g.

    <PackageFile Path="$(mspackageroot)\\Retail\\Store.appxbundle"
                 LicenseFile="$(mspackageroot)\\Retail\\Store_License.xml"/>

Only file names matter for reconciliation, so every element that carries a
``LicenseFile`` attribute next to a ``Path`` or ``Name`` attribute
contributes ``<package file name> -> <license file name>``.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import PureWindowsPath

from pydantic import BaseModel, ConfigDict, Field

from uup_replay.core.errors import ArchiveError
from uup_replay.formats.base import FormatParser, attributes


class FeatureManifest(BaseModel):
    """License declarations found in one feature manifest."""
    licenses: dict[str, str] = Field(
        default_factory=dict, description="Package file name to license file name"
    )

    model_config = ConfigDict(frozen=True)


def file_name(path: str) -> str:
    """Last component of a backslash or slash delimited path.

    Example:
        >>> file_name("$(mspackageroot)\\\\Retail\\\\Store.appxbundle")
        'Store.appxbundle'
    """
    return PureWindowsPath(path).name


class FeatureManifestParser(FormatParser[FeatureManifest]):
    """Parser for license declarations in feature manifests."""

    error_class = ArchiveError

    def parse_element(self, root: ET.Element) -> FeatureManifest:
        licenses: dict[str, str] = {}
        for element in root.iter():
            attrs = attributes(element)
            license_file = attrs.get("LicenseFile")
            package_file = attrs.get("Path") or attrs.get("Name")
            if not license_file or not package_file:
                continue
            name = file_name(package_file)
            # first declaration wins within one document
            licenses.setdefault(name, file_name(license_file))
        return FeatureManifest(licenses=licenses)

    def build_element(self, obj: FeatureManifest) -> ET.Element:
        root = ET.Element("FeatureManifest")
        container = ET.SubElement(root, "AppXPackages")
        for package_file, license_file in obj.licenses.items():
            ET.SubElement(container, "PackageFile", Path=package_file, LicenseFile=license_file)
        return root
