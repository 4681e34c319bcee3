"""Repository allow/exclude policy."""

from __future__ import annotations

from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Sequence

from instrukt_ai_logging import get_logger

from gitai_tracker.config.schema import TrackerConfig
from gitai_tracker.utils import to_posix

logger = get_logger(__name__)


@dataclass(frozen=True)
class RepositoryPolicy:
    """Shell-glob rules deciding which workspace roots take part in attribution."""

    allow_patterns: Sequence[str] = field(default_factory=lambda: ("*",))
    exclude_patterns: Sequence[str] = field(default_factory=tuple)

    @classmethod
    def from_config(cls, config: TrackerConfig) -> "RepositoryPolicy":
        return cls(
            allow_patterns=tuple(config.allow_repositories),
            exclude_patterns=tuple(config.exclude_repositories),
        )

    def is_allowed(self, repo_root: str) -> bool:
        """Excludes win over allows; no matching allow pattern means rejected."""
        normalized = to_posix(repo_root)

        for pattern in self.exclude_patterns:
            if fnmatchcase(normalized, to_posix(pattern)):
                logger.debug("Repository excluded by pattern %s: %s", pattern, repo_root)
                return False

        for pattern in self.allow_patterns:
            if fnmatchcase(normalized, to_posix(pattern)):
                return True

        logger.debug("Repository not allowed: %s", repo_root)
        return False
