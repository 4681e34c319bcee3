"""Agent-vs-human heuristics for a single content change.

Pure functions only: the host reads the clipboard once per evaluation window
and passes the snapshot in.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from instrukt_ai_logging import get_logger

from gitai_tracker.constants import STRUCTURAL_CHARS
from gitai_tracker.core.models import ClassificationVerdict, RawChange

logger = get_logger(__name__)

_STRUCTURAL_RE = re.compile("[" + re.escape(STRUCTURAL_CHARS) + "]")


def has_structural_char(text: str) -> bool:
    return _STRUCTURAL_RE.search(text) is not None


def classify(change: RawChange, min_size: int, clipboard: Optional[str] = None) -> bool:
    """Return True when the change looks agent-authored.

    A change whose text equals the clipboard snapshot is a manual paste and is
    never attributable. Otherwise it must be multi-line or a pure insertion,
    at least `min_size` characters long, and not a lone non-structural keystroke.
    """
    text = change.inserted_text
    if clipboard is not None and text == clipboard:
        return False

    n = len(text)
    is_multi_line = "\n" in text
    is_pure_insertion = change.replaced_length == 0
    is_large_enough = n >= min_size
    is_single_char_typing = n == 1 and not has_structural_char(text)
    return (is_multi_line or is_pure_insertion) and is_large_enough and not is_single_char_typing


def classify_changes(
    changes: Iterable[RawChange], min_size: int, clipboard: Optional[str] = None
) -> list[ClassificationVerdict]:
    """Classify each change of one evaluation window, preserving order."""
    verdicts = []
    for change in changes:
        verdict = ClassificationVerdict(change=change, is_attributable=classify(change, min_size, clipboard))
        logger.trace(
            "Change analysis: length=%d replaced=%d attributable=%s",
            len(change.inserted_text),
            change.replaced_length,
            verdict.is_attributable,
        )
        verdicts.append(verdict)
    return verdicts
