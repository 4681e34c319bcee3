"""Noise filtering for file-system change paths."""

from __future__ import annotations

from pathlib import PurePath
from typing import Iterable

import pathspec

from gitai_tracker.utils import to_posix

# Editor swap/backup files never represent an agent edit.
_IGNORED_SUFFIXES = (".swp", ".tmp", ".bak", "~")


class PathFilter:
    """gitwildmatch rules built from ignored directory names (node_modules, .git, ...)."""

    def __init__(self, ignored_segments: Iterable[str]) -> None:
        self._segments = tuple(ignored_segments)
        patterns = [f"{segment.strip('/')}/" for segment in self._segments if segment.strip("/")]
        self._spec = pathspec.PathSpec.from_lines("gitwildmatch", patterns)

    @property
    def segments(self) -> tuple[str, ...]:
        return self._segments

    def is_ignored(self, rel_path: str) -> bool:
        """Match a root-relative path against the ignore rules."""
        posix = to_posix(rel_path)
        name = PurePath(posix).name
        if name.endswith(_IGNORED_SUFFIXES):
            return True
        return self._spec.match_file(posix)
