"""Protocol definitions for the host editor boundary.

The engine never talks to an editor API directly. A host integration
implements these protocols and forwards its change notifications as
`TextChangeEvent`s.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, runtime_checkable

from gitai_tracker.core.models import Position, RawChange


@runtime_checkable
class Document(Protocol):
    """An open document. Identity is compared by reference or equality only."""

    @property
    def path(self) -> str:
        """Absolute file-system path of the backing file."""
        ...

    @property
    def is_file(self) -> bool:
        """False for virtual or unsaved buffers with no file on disk."""
        ...

    @property
    def is_dirty(self) -> bool: ...

    def get_text(self) -> str: ...

    def position_at(self, offset: int) -> Position: ...


@runtime_checkable
class Workspace(Protocol):
    def workspace_root_for(self, path: str) -> Optional[str]:
        """Return the workspace folder containing `path`, or None when outside all folders."""
        ...

    def open_documents(self) -> Sequence[Document]: ...

    def active_document(self) -> Optional[Document]: ...


class Clipboard(Protocol):
    async def read_text(self) -> str: ...


class Notifier(Protocol):
    def info(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...


class IntegrationProbe(Protocol):
    def is_active(self) -> bool:
        """True while the coding agent integration is running in the host."""
        ...


@dataclass(frozen=True)
class TextChangeEvent:
    """One host notification: ordered changes applied to one document."""

    document: Document
    changes: Sequence[RawChange]
