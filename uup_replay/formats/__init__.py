"""Document parsers and builders for update metadata formats.

- CompDB: composition databases describing an update's packages
- Feature manifests: package to license file declarations
"""

from uup_replay.formats.base import FormatParser
from uup_replay.formats.compdb import CompDBParser, parse_compdb
from uup_replay.formats.feature_manifest import (
    FeatureManifest,
    FeatureManifestParser,
    file_name,
)

__all__ = [
    "FormatParser",
    "CompDBParser",
    "parse_compdb",
    "FeatureManifest",
    "FeatureManifestParser",
    "file_name",
]
