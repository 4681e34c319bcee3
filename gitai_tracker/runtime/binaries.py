"""Runtime resolution of the external git-ai executable.

Installing git-ai is out of scope; this only finds an existing binary.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional

from gitai_tracker.constants import GIT_AI_BINARY_NAME, GIT_AI_INSTALL_DIR_NAME


def default_install_path() -> Path:
    return Path.home() / GIT_AI_INSTALL_DIR_NAME / "bin" / GIT_AI_BINARY_NAME


def resolve_git_ai_binary(configured: Optional[str] = None) -> str:
    """Resolve the git-ai binary.

    Order: explicit configured path, the default per-user install location,
    then whatever `git-ai` resolves to on PATH. When nothing is found the bare
    name is returned and the spawn reports the failure.
    """
    if configured:
        return str(Path(configured).expanduser())

    installed = default_install_path()
    if installed.is_file():
        return str(installed)

    return shutil.which(GIT_AI_BINARY_NAME) or GIT_AI_BINARY_NAME
