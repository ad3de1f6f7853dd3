"""shiftdesk Configuration.

Includes:
- AppConfig: Main application settings with environment variable support
- MatcherSettings: Fuzzy matching thresholds for the chat intent matcher

Environment Variables:
    SHIFTDESK_API_ENDPOINT: Base URL of the shiftdesk web app
    SHIFTDESK_ACCESS_TOKEN: Bearer token of the signed-in employee
    SHIFTDESK_LOCALES: JSON list of phrase locales, e.g. '["en", "it"]'
    SHIFTDESK_PHRASES_FILE: Extra YAML phrase table
    SHIFTDESK_GEOCODER_ENDPOINT: Nominatim API endpoint URL
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.intent import MatchThresholds

# Keys persisted to config.yaml (secrets stay in the environment)
FILE_KEYS = (
    "api_endpoint",
    "request_timeout",
    "locales",
    "phrases_file",
    "matcher",
    "geocoder_endpoint",
    "geocoder_user_agent",
    "geocode_cache_ttl",
    "geocode_cache_size",
    "geocode_precision",
)


class MatcherSettings(BaseModel):
    """Fuzzy matching thresholds.

    The defaults are empirical; see MatchThresholds.

    Attributes:
        similarity: Minimum normalized similarity for a fuzzy match
        short_length: Length limit for the short-string rescue
        short_distance: Edit distance limit for the short-string rescue
        min_length: Shortest input the fuzzy layer considers (0 = off)
    """

    similarity: float = Field(default=0.78, ge=0.0, le=1.0)
    short_length: int = Field(default=8, ge=0)
    short_distance: int = Field(default=2, ge=0)
    min_length: int = Field(default=0, ge=0)

    def to_thresholds(self) -> MatchThresholds:
        """Convert to the matcher's threshold record."""
        return MatchThresholds(
            similarity=self.similarity,
            short_length=self.short_length,
            short_distance=self.short_distance,
            min_length=self.min_length,
        )


class AppConfig(BaseSettings):
    """Application configuration with environment variable support.

    Configuration is loaded from environment variables with SHIFTDESK_ prefix.
    For example, SHIFTDESK_API_ENDPOINT sets api_endpoint.

    Precedence (highest to lowest):
        1. Environment variables (SHIFTDESK_*)
        2. Config file (.shiftdesk/config.yaml)
        3. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="SHIFTDESK_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    project_path: Path = Field(default_factory=Path.cwd)

    # Backend API
    api_endpoint: str = "http://localhost:3000"
    access_token: Optional[str] = None
    request_timeout: float = 15.0

    # Intent matching
    locales: list[str] = Field(default_factory=lambda: ["en"])
    phrases_file: Optional[Path] = None
    matcher: MatcherSettings = Field(default_factory=MatcherSettings)

    # Reverse geocoding
    geocoder_endpoint: str = "https://nominatim.openstreetmap.org"
    geocoder_user_agent: str = "shiftdesk/0.1 (admin@example.com)"
    geocode_cache_ttl: float = 86400.0
    geocode_cache_size: int = 512
    geocode_precision: int = 4

    @property
    def config_file(self) -> Path:
        return self.project_path / ".shiftdesk" / "config.yaml"

    @classmethod
    def load(cls, path: Path) -> "AppConfig":
        """Load configuration from .shiftdesk/config.yaml if it exists.

        Values from the file fill in anything not set through SHIFTDESK_*
        environment variables.

        Args:
            path: Project path to load configuration for

        Returns:
            AppConfig with file values applied (or defaults if no file exists)
        """
        from ruamel.yaml import YAML

        env_config = cls(project_path=path)
        config_file = env_config.config_file
        if not config_file.exists():
            return env_config

        yaml = YAML(typ="safe")
        with config_file.open(encoding="utf-8") as f:
            data = yaml.load(f) or {}

        merged = {k: v for k, v in data.items() if k in FILE_KEYS}
        for name in env_config.model_fields_set:
            value = getattr(env_config, name)
            if isinstance(value, BaseModel) and isinstance(merged.get(name), dict):
                # Nested settings merge per field, e.g. SHIFTDESK_MATCHER__MIN_LENGTH
                value = {**merged[name], **value.model_dump(exclude_unset=True)}
            merged[name] = value
        merged["project_path"] = path

        config = cls.model_validate(merged)
        if config.phrases_file is not None and not config.phrases_file.is_absolute():
            config.phrases_file = path / config.phrases_file
        return config

    def save(self) -> None:
        """Save configuration to .shiftdesk/config.yaml in the project path."""
        from ruamel.yaml import YAML

        config_file = self.config_file
        config_file.parent.mkdir(parents=True, exist_ok=True)

        yaml = YAML()
        yaml.default_flow_style = False

        data = self.model_dump(mode="json", include=set(FILE_KEYS))

        with config_file.open("w", encoding="utf-8") as f:
            yaml.dump(data, f)


__all__ = ["AppConfig", "MatcherSettings"]
