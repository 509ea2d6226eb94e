"""CLI command implementations for uup_replay.

- replay: Replay update metadata, optionally applying a fix-up
- build-string: Show the build label derived from update metadata
"""

from uup_replay.commands.replay import build_string, replay

__all__ = ["build_string", "replay"]
