from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TrackerConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    agent_name: str = "amazon-q"
    model: str = "amazon-q-unknown-model"
    min_change_size: int = Field(default=3, ge=1)
    debounce_ms: int = Field(default=200, ge=0)
    allow_repositories: List[str] = ["*"]
    exclude_repositories: List[str] = []
    binary: Optional[str] = None  # Explicit git-ai executable; resolved by runtime policy when unset
    ignored_path_segments: List[str] = ["node_modules", ".git", "out"]

    @field_validator("allow_repositories", "exclude_repositories", "ignored_path_segments", mode="before")
    @classmethod
    def coerce_pattern_list(cls, v: object) -> object:
        """Accept a single pattern string or a null list from hand-written YAML."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("agent_name")
    @classmethod
    def validate_agent_name(cls, v: str) -> str:
        name = v.strip()
        if not name:
            raise ValueError("agent_name must not be empty")
        return name

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0
