"""gitai-tracker logging configuration.

gitai-tracker uses the shared InstruktAI logging standard (`instrukt_ai_logging`).
Logs go to the library's canonical location for the `gitai_tracker` app name.
"""

from __future__ import annotations

import os
from typing import Optional

from instrukt_ai_logging import configure_logging

from gitai_tracker.constants import LOG_LEVEL_ENV


def setup_logging(level: Optional[str] = None) -> None:
    """Configure gitai-tracker logging.

    Args:
        level: Optional override for `GITAI_TRACKER_LOG_LEVEL`.
    """
    if level:
        os.environ[LOG_LEVEL_ENV] = level

    configure_logging("gitai_tracker")
