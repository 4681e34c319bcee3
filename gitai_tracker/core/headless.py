"""Host implementation for running the engine outside an editor.

Documents are plain files on disk: never dirty, never virtual. There is no
clipboard and the agent integration is considered active.
"""

from __future__ import annotations

import bisect
import os
from pathlib import Path
from typing import Iterable, Optional, Sequence

from instrukt_ai_logging import get_logger

from gitai_tracker.core.host import Document
from gitai_tracker.core.models import Position

logger = get_logger(__name__)


class FileDocument:
    def __init__(self, path: str) -> None:
        self._path = os.path.abspath(path)

    @property
    def path(self) -> str:
        return self._path

    @property
    def is_file(self) -> bool:
        return True

    @property
    def is_dirty(self) -> bool:
        return False

    def get_text(self) -> str:
        return Path(self._path).read_text(encoding="utf-8", errors="replace")

    def position_at(self, offset: int) -> Position:
        text = self.get_text()
        offset = max(0, min(offset, len(text)))
        line_starts = [0] + [i + 1 for i, ch in enumerate(text) if ch == "\n"]
        line = bisect.bisect_right(line_starts, offset) - 1
        return Position(line=line, character=offset - line_starts[line])


class HeadlessWorkspace:
    def __init__(self, roots: Iterable[str], active: Optional[Document] = None) -> None:
        self._roots = [os.path.abspath(r) for r in roots]
        self._active = active

    @property
    def roots(self) -> list[str]:
        return list(self._roots)

    def workspace_root_for(self, path: str) -> Optional[str]:
        target = os.path.abspath(path)
        best: Optional[str] = None
        for root in self._roots:
            try:
                common = os.path.commonpath([root, target])
            except ValueError:
                continue
            if common == root and (best is None or len(root) > len(best)):
                best = root
        return best

    def open_documents(self) -> Sequence[Document]:
        return [self._active] if self._active is not None else []

    def active_document(self) -> Optional[Document]:
        return self._active

    def set_active(self, document: Optional[Document]) -> None:
        self._active = document


class NullClipboard:
    async def read_text(self) -> str:
        return ""


class LogNotifier:
    def info(self, message: str) -> None:
        logger.info(message)

    def warning(self, message: str) -> None:
        logger.warning(message)


class AlwaysActive:
    def is_active(self) -> bool:
        return True
