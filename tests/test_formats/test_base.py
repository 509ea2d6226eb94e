"""Tests for uup_replay.formats.base module."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from io import BytesIO
from pathlib import Path

import pytest
from pydantic import BaseModel

from uup_replay.formats.base import FormatParser, attributes, local_name


class SimpleModel(BaseModel):
    """Test model for testing format parser."""

    value: int
    text: str


class SimpleError(Exception):
    """Error raised by the test parser."""


class SimpleParser(FormatParser[SimpleModel]):
    """Concrete implementation of FormatParser for testing."""

    error_class = SimpleError

    def parse_element(self, root: ET.Element) -> SimpleModel:
        if local_name(root.tag) != "Simple":
            raise SimpleError("Expected Simple root element")
        attrs = attributes(root)
        return SimpleModel(value=int(attrs["Value"]), text=root.text or "")

    def build_element(self, obj: SimpleModel) -> ET.Element:
        root = ET.Element("Simple", Value=str(obj.value))
        root.text = obj.text
        return root


class TestHelpers:
    """Test namespace helpers."""

    def test_local_name(self):
        assert local_name("{urn:example}Package") == "Package"
        assert local_name("Package") == "Package"

    def test_attributes_strip_namespace(self):
        root = ET.fromstring('<a xmlns:x="urn:x" x:Path="p" Name="n"/>')

        assert attributes(root) == {"Path": "p", "Name": "n"}


class TestFormatParser:
    """Test FormatParser base class."""

    def test_parse_sources(self):
        parser = SimpleParser()
        expected = SimpleModel(value=42, text="hello")

        assert parser.parse('<Simple Value="42">hello</Simple>') == expected
        assert parser.parse(b'<Simple Value="42">hello</Simple>') == expected
        assert parser.parse(BytesIO(b'<Simple Value="42">hello</Simple>')) == expected

    def test_malformed_xml_uses_error_class(self):
        with pytest.raises(SimpleError, match="Malformed XML"):
            SimpleParser().parse(b"<Simple")

    def test_build(self):
        data = SimpleParser().build(SimpleModel(value=7, text="seven"))

        assert data.startswith(b"<?xml")
        assert b'Value="7"' in data

    def test_file_round_trip(self, tmp_path: Path):
        parser = SimpleParser()
        obj = SimpleModel(value=1, text="one")
        path = tmp_path / "simple.xml"

        parser.build_file(obj, path)

        assert parser.parse_file(path) == obj

    def test_parse_file_missing(self, tmp_path: Path):
        with pytest.raises(SimpleError, match="Cannot read file"):
            SimpleParser().parse_file(tmp_path / "missing.xml")

    def test_build_file_unwritable(self, tmp_path: Path):
        with pytest.raises(SimpleError, match="Cannot write file"):
            SimpleParser().build_file(SimpleModel(value=1, text=""), tmp_path / "no" / "such" / "dir.xml")

    def test_abstract(self):
        with pytest.raises(TypeError):
            FormatParser()  # type: ignore[abstract]
