"""Base classes for XML document parsers."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Generic, TypeVar

import structlog
from pydantic import BaseModel

logger = structlog.get_logger()

T = TypeVar("T", bound=BaseModel)


def local_name(tag: str) -> str:
    """Strip the ``{namespace}`` prefix ElementTree puts on tags and attributes."""
    return tag.rsplit("}", 1)[-1]


def attributes(element: ET.Element) -> dict[str, str]:
    """Element attributes keyed by local name."""
    return {local_name(key): value for key, value in element.attrib.items()}


class FormatParser(ABC, Generic[T]):
    """Base class for XML document parsers.

    Subclasses set ``error_class`` to the exception raised for malformed
    documents and unreadable files.
    """

    error_class: type[Exception] = ValueError

    @abstractmethod
    def parse_element(self, root: ET.Element) -> T:
        """Convert a parsed document root.

        Args:
            root: Document root element

        Returns:
            Parsed format object
        """
        ...

    @abstractmethod
    def build_element(self, obj: T) -> ET.Element:
        """Convert an object back to a document root element.

        Args:
            obj: Format object

        Returns:
            Document root element
        """
        ...

    def parse(self, data: bytes | str | BinaryIO) -> T:
        """Parse an XML document.

        Args:
            data: Document bytes, text, or binary stream

        Returns:
            Parsed format object
        """
        try:
            if isinstance(data, bytes | str):
                root = ET.fromstring(data)
            else:
                root = ET.parse(data).getroot()
        except ET.ParseError as e:
            raise self.error_class(f"Malformed XML: {e}") from e
        return self.parse_element(root)

    def parse_file(self, path: str | Path) -> T:
        """Parse format from file.

        Args:
            path: File path

        Returns:
            Parsed format object
        """
        try:
            with open(path, "rb") as f:
                return self.parse(f)
        except OSError as e:
            logger.error("Failed to read file", path=str(path), error=str(e))
            raise self.error_class(f"Cannot read file {path}: {e}") from e

    def build(self, obj: T) -> bytes:
        """Build an XML document.

        Args:
            obj: Format object

        Returns:
            UTF-8 encoded document with XML declaration
        """
        root = self.build_element(obj)
        ET.indent(root)
        return ET.tostring(root, encoding="utf-8", xml_declaration=True)

    def build_file(self, obj: T, path: str | Path) -> None:
        """Build format to file.

        Args:
            obj: Format object
            path: Output file path
        """
        try:
            data = self.build(obj)
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            logger.error("Failed to write file", path=str(path), error=str(e))
            raise self.error_class(f"Cannot write file {path}: {e}") from e
