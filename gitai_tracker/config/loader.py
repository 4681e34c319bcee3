from pathlib import Path

import yaml
from instrukt_ai_logging import get_logger

from gitai_tracker.config.schema import TrackerConfig
from gitai_tracker.utils import expand_env_vars

logger = get_logger(__name__)


def _warn_unknown_keys(model: TrackerConfig, config_path: Path) -> None:
    if model.model_extra:
        logger.warning("Unknown keys in %s: %s", config_path, list(model.model_extra.keys()))


def load_config(path: Path) -> TrackerConfig:
    """Load and validate tracker configuration from a YAML file.

    Args:
        path: Path to the config.yml file.

    Returns:
        The validated configuration. Defaults when the file is missing.

    Raises:
        ValueError: If the file cannot be read, is not valid YAML or is not a mapping.
        pydantic.ValidationError: If the file parses but violates the schema.
    """
    if not path.exists():
        return TrackerConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ValueError(f"Failed to read config file {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(raw).__name__}")

    expanded = expand_env_vars(raw)
    model = TrackerConfig.model_validate(expanded)
    _warn_unknown_keys(model, path)
    return model
