"""Constants used across gitai-tracker.

This module defines internal values that are not user-configurable.
"""

# External checkpoint tool
GIT_AI_BINARY_NAME = "git-ai"
GIT_AI_INSTALL_DIR_NAME = ".git-ai"
CHECKPOINT_COMMAND = "checkpoint"
CHECKPOINT_HUMAN_SUBCOMMAND = "human"
CHECKPOINT_AGENT_SUBCOMMAND = "agent-v1"
HOOK_INPUT_FLAG = "--hook-input"

# Payload discriminators (owned by the external tool's schema)
PAYLOAD_TYPE_HUMAN = "human"
PAYLOAD_TYPE_AGENT = "ai_agent"

CONVERSATION_ID_PREFIX = "vscode-"
MANUAL_AGENT_SUFFIX = "-manual"

# Recent-activity window shown in the status text
RECENT_ACTIVITY_WINDOW_MS = 5 * 60 * 1000

# Characters that mark a single-character insertion as structural rather than typing
STRUCTURAL_CHARS = ";{}[]()"

# Config
DEFAULT_CONFIG_PATH = "~/.gitai-tracker/config.yml"
CONFIG_PATH_ENV = "GITAI_TRACKER_CONFIG_PATH"
ENV_PATH_ENV = "GITAI_TRACKER_ENV_PATH"
LOG_LEVEL_ENV = "GITAI_TRACKER_LOG_LEVEL"

# Seconds to wait for in-flight dispatches on shutdown
SHUTDOWN_TIMEOUT_S = 5.0
