"""Build string resolution.

Update metadata rarely states the build it installs in one reliable place.
The label is derived by trying an ordered list of strategies, first result
wins:

0. the build string reported by the update service, unless it is the
   ``GitEnlistment(winpbld)`` placeholder
1. the highest ``TargetOSVersion`` among manifests with usable build info,
   formatted as ``10.0.22621.1 (ni_release.220506-1250)``
2. for ``(UUP-CTv2)`` titles, the build encoded in the leading title token
3. the raw title
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import structlog

from uup_replay.core.types import Manifest

logger = structlog.get_logger()

PLACEHOLDER_BUILD_STRING = "GitEnlistment(winpbld)"
CHANNEL_MARKER = "(UUP-CTv2)"
UNKNOWN_BUILD = "Unknown"


@dataclass(frozen=True)
class BuildContext:
    """Inputs available to build string strategies."""

    manifests: Sequence[Manifest]
    title: str
    reported: str | None = None


class BuildStringStrategy(Protocol):
    """One way of deriving a build label."""

    name: str

    def resolve(self, context: BuildContext) -> str | None:
        ...


def parse_version(value: str | None) -> tuple[int, ...] | None:
    """Parse a dotted numeric version with two to four components.

    Shorter versions order before longer ones with the same prefix.

    Example:
        >>> parse_version("10.0.22621.1")
        (10, 0, 22621, 1)
        >>> parse_version("10.0.x") is None
        True
    """
    if not value:
        return None

    parts = value.strip().split(".")
    if not 2 <= len(parts) <= 4:
        return None
    if not all(part.isdigit() and part.isascii() for part in parts):
        return None
    return tuple(int(part) for part in parts)


def split_build_info(build_info: str | None) -> list[str] | None:
    """Split build info into dot delimited segments.

    Returns:
        Segments, or None when there are fewer than four
    """
    if not build_info:
        return None
    segments = build_info.split(".")
    if len(segments) < 4:
        return None
    return segments


class ReportedBuildString:
    """Use the build string the update service reported."""

    name = "reported"

    def resolve(self, context: BuildContext) -> str | None:
        reported = (context.reported or "").strip()
        if not reported or PLACEHOLDER_BUILD_STRING in reported:
            return None
        return reported


class HighestManifestVersion:
    """Use the highest target version among manifests with build info."""

    name = "manifest"

    def resolve(self, context: BuildContext) -> str | None:
        selected: Manifest | None = None
        selected_segments: list[str] = []
        highest: tuple[int, ...] | None = None

        for manifest in context.manifests:
            version = parse_version(manifest.target_os_version)
            if version is None:
                continue
            segments = split_build_info(manifest.target_build_info)
            if segments is None:
                continue
            # strict comparison keeps the first of equal versions
            if highest is None or version > highest:
                highest = version
                selected = manifest
                selected_segments = segments

        if selected is None:
            return None
        return f"{selected.target_os_version} ({selected_segments[0]}.{selected_segments[3]})"


class ChannelTitle:
    """Decode the build from titles like ``22621.1.ni_release.220506-1250 (UUP-CTv2)``."""

    name = "channel_title"

    def resolve(self, context: BuildContext) -> str | None:
        if CHANNEL_MARKER not in context.title:
            return None

        tokens = context.title.split()
        if not tokens:
            return None
        components = tokens[0].split(".")
        if len(components) < 4:
            return None
        return f"10.0.{components[0]}.{components[1]} ({components[2]}.{components[3]})"


class RawTitle:
    """Fall back to the update title."""

    name = "title"

    def resolve(self, context: BuildContext) -> str | None:
        return context.title or None


DEFAULT_STRATEGIES: tuple[BuildStringStrategy, ...] = (
    ReportedBuildString(),
    HighestManifestVersion(),
    ChannelTitle(),
    RawTitle(),
)


def resolve_with_strategy(
    manifests: Sequence[Manifest],
    title: str,
    reported: str | None = None,
    strategies: Sequence[BuildStringStrategy] = DEFAULT_STRATEGIES,
    log=None,
) -> tuple[str, str]:
    """Resolve a build label and report which strategy produced it.

    Returns:
        Tuple of (label, strategy name); the strategy name is ``"unknown"``
        when no strategy produced a label
    """
    log = log or logger
    context = BuildContext(manifests=manifests, title=title, reported=reported)

    for strategy in strategies:
        label = strategy.resolve(context)
        if label:
            log.debug("build_string_resolved", strategy=strategy.name, build_string=label)
            return label, strategy.name
        log.debug("build_string_strategy_declined", strategy=strategy.name)

    return UNKNOWN_BUILD, "unknown"


def resolve_build_string(
    manifests: Sequence[Manifest],
    title: str,
    reported: str | None = None,
    log=None,
) -> str:
    """Derive the canonical build label for an update. Never empty."""
    label, _ = resolve_with_strategy(manifests, title, reported, log=log)
    return label
