"""Data models for edit attribution."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from gitai_tracker.constants import PAYLOAD_TYPE_AGENT, PAYLOAD_TYPE_HUMAN


@dataclass(frozen=True)
class RawChange:
    """One atomic edit reported by the host for one document."""

    inserted_text: str
    replaced_length: int
    start_offset: int

    @property
    def end_offset(self) -> int:
        """Offset just past the inserted text."""
        return self.start_offset + len(self.inserted_text)


@dataclass(frozen=True)
class ClassificationVerdict:
    change: RawChange
    is_attributable: bool


@dataclass(frozen=True)
class Position:
    """Zero-based line/character pair."""

    line: int
    character: int


@dataclass(frozen=True)
class AttributionRange:
    """Half-open offset span `[start_offset, end_offset)` within one document."""

    start_offset: int
    end_offset: int
    start: Optional[Position] = None
    end: Optional[Position] = None

    @property
    def line_count(self) -> int:
        if self.start is None or self.end is None:
            return 0
        return self.end.line - self.start.line + 1


@dataclass
class HumanCheckpoint:
    repo_root: str
    will_edit_files: list[str]
    dirty_files: dict[str, str] = field(default_factory=dict)

    def to_payload(self) -> dict[str, object]:
        return {
            "type": PAYLOAD_TYPE_HUMAN,
            "repo_working_dir": self.repo_root,
            "will_edit_filepaths": list(self.will_edit_files),
            "dirty_files": dict(self.dirty_files),
        }


@dataclass
class AgentCheckpoint:
    repo_root: str
    edited_files: list[str]
    agent_name: str
    model: str
    conversation_id: str
    dirty_files: dict[str, str] = field(default_factory=dict)
    transcript: dict[str, object] = field(default_factory=lambda: {"messages": []})

    def to_payload(self) -> dict[str, object]:
        return {
            "type": PAYLOAD_TYPE_AGENT,
            "repo_working_dir": self.repo_root,
            "edited_filepaths": list(self.edited_files),
            "dirty_files": dict(self.dirty_files),
            "transcript": self.transcript,
            "agent_name": self.agent_name,
            "model": self.model,
            "conversation_id": self.conversation_id,
        }


CheckpointPayload = Union[HumanCheckpoint, AgentCheckpoint]


@dataclass(frozen=True)
class RecentChangeRecord:
    file_path: str
    range: Optional[AttributionRange]
    timestamp_ms: int


@dataclass
class DispatchResult:
    """Outcome of one external checkpoint invocation."""

    ok: bool
    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None
    skipped: bool = False

    @classmethod
    def skip(cls, reason: str) -> "DispatchResult":
        return cls(ok=False, skipped=True, error=reason)
