"""Configuration management using Pydantic Settings."""

import tempfile
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from canvas_mcp.api.exceptions import ConfigError

# Config file location
CONFIG_PATH = Path.home() / ".config" / "canvas-mcp" / "config.yaml"

API_PATH = "/api/v1"

# Field name -> environment variable, used for error messages
ENV_VARS = {
    "api_token": "CANVAS_API_TOKEN",
    "api_url": "CANVAS_API_URL",
    "institution_name": "INSTITUTION_NAME",
    "timezone": "TIMEZONE",
    "enable_anonymization": "ENABLE_DATA_ANONYMIZATION",
    "debug": "DEBUG",
    "log_dir": "CANVAS_MCP_LOG_DIR",
}


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from YAML config file."""

    def get_field_value(
        self, field: Any, field_name: str
    ) -> tuple[Any, str, bool]:
        """Get field value from YAML config."""
        config = self._load_config()
        if field_name in config:
            return config[field_name], field_name, False
        return None, field_name, False

    def _load_config(self) -> dict:
        """Load config from YAML file."""
        if not CONFIG_PATH.exists():
            return {}
        try:
            with open(CONFIG_PATH) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError:
            return {}
        return data if isinstance(data, dict) else {}

    def __call__(self) -> dict[str, Any]:
        """Return all config values, keyed by environment variable name."""
        return {ENV_VARS.get(key, key): value for key, value in self._load_config().items()}


def normalize_api_url(url: str) -> str:
    """Make sure the URL ends with the versioned API path.

    Examples:
        https://x.edu         -> https://x.edu/api/v1
        https://x.edu/        -> https://x.edu/api/v1
        https://x.edu/api/v1  -> https://x.edu/api/v1
    """
    if url.endswith(API_PATH):
        return url
    if url.endswith("/"):
        return url + API_PATH.lstrip("/")
    return url + API_PATH


class CanvasConfig(BaseSettings):
    """Server settings loaded from environment variables.

    Instances are frozen; one is built at startup and shared by the
    client and the MCP server.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    api_token: SecretStr = Field(
        validation_alias=AliasChoices("CANVAS_API_TOKEN", "api_token"),
        description="Canvas API access token",
    )
    api_url: str = Field(
        validation_alias=AliasChoices("CANVAS_API_URL", "api_url"),
        description="Canvas API base URL (e.g., https://school.instructure.com/api/v1)",
    )
    institution_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("INSTITUTION_NAME", "institution_name"),
        description="Institution name, for display only",
    )
    timezone: str | None = Field(
        default=None,
        validation_alias=AliasChoices("TIMEZONE", "timezone"),
        description="Timezone for date/time operations",
    )
    enable_anonymization: bool = Field(
        default=False,
        validation_alias=AliasChoices("ENABLE_DATA_ANONYMIZATION", "enable_anonymization"),
        description="Anonymize student information in tool output",
    )
    debug: bool = Field(
        default=False,
        validation_alias=AliasChoices("DEBUG", "debug"),
        description="Log at DEBUG level",
    )
    log_dir: Path = Field(
        default=Path(tempfile.gettempdir()) / "canvas-mcp",
        validation_alias=AliasChoices("CANVAS_MCP_LOG_DIR", "log_dir"),
        description="Directory for the rotating server log",
    )

    @field_validator("api_token", mode="after")
    @classmethod
    def token_not_blank(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value().strip():
            raise ValueError("CANVAS_API_TOKEN cannot be empty")
        return v

    @field_validator("api_url", mode="after")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Require an http(s) scheme and normalize the API path."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("CANVAS_API_URL must start with http:// or https://")
        return normalize_api_url(v)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources - priority: init > env > .env > yaml > defaults."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
        )


def _env_name(loc: Any) -> str:
    key = str(loc).lower()
    for field_name, env_var in ENV_VARS.items():
        if key in (field_name, env_var.lower()):
            return env_var
    return str(loc).upper()


def _describe(error: dict[str, Any]) -> str:
    name = _env_name(error["loc"][0]) if error.get("loc") else "configuration"
    if error["type"] == "missing":
        return f"{name} environment variable is required"
    if error["type"] == "value_error":
        return str(error["ctx"]["error"])
    return f"{name}: {error['msg']}"


def load_config(**overrides: Any) -> CanvasConfig:
    """Load and validate the configuration.

    Args:
        **overrides: Explicit values, taking priority over every other source.

    Raises:
        ConfigError: If a required value is missing or a value is invalid.
    """
    try:
        return CanvasConfig(**overrides)
    except ValidationError as e:
        raise ConfigError("; ".join(_describe(err) for err in e.errors())) from e
