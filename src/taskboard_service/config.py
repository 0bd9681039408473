"""Configuration management using pydantic-settings.

This module provides configuration loading with the following precedence:
1. CLI arguments (highest priority)
2. Environment variables (TASKBOARD_* prefix)
3. Global config file (~/.config/taskboard/config.toml)
4. Built-in defaults (lowest priority)
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_config_path() -> Path:
    """Get the global config file path (XDG compliant).

    Returns:
        Path to config file:
        - Linux/macOS: ~/.config/taskboard/config.toml
        - Windows: %APPDATA%/taskboard/config.toml
    """
    if os.name == "nt":  # Windows
        base = Path(os.environ.get("APPDATA", Path.home()))
    else:  # Linux/macOS
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return base / "taskboard" / "config.toml"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Environment variables use TASKBOARD_ prefix:
    - TASKBOARD_JWT_SECRET
    - TASKBOARD_STORE_BACKEND
    - TASKBOARD_ENFORCE_TASK_OWNERSHIP
    etc.
    """

    model_config = SettingsConfigDict(
        env_prefix="TASKBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Token Configuration
    jwt_secret: SecretStr = Field(default=SecretStr("change-me"), description="HMAC secret for signing tokens")
    jwt_algorithm: Literal["HS256", "HS384", "HS512"] = Field(default="HS256", description="Token signing algorithm")
    token_expire_minutes: int = Field(default=10, ge=1, le=1440, description="Token lifetime in minutes")

    # Password Hashing
    bcrypt_rounds: int = Field(default=10, ge=4, le=16, description="bcrypt cost factor")

    # Storage Configuration
    store_backend: Literal["memory", "sqlite"] = Field(default="sqlite", description="Document store backend")
    store_path: str = Field(default="~/.local/share/taskboard/taskboard.db", description="SQLite database path")

    # Access Policy
    enforce_task_ownership: bool = Field(
        default=True,
        description="Only the owner (or an admin) may edit or delete a personal task",
    )
    restrict_user_mutations: bool = Field(
        default=False,
        description="Only the user themself (or an admin) may update or delete a user record",
    )
    require_group_membership: bool = Field(
        default=False,
        description="Only group members and the creator may list a group's tasks",
    )
    public_task_listing: bool = Field(default=True, description="GET /all-tasks needs no authentication")
    public_user_listing: bool = Field(default=True, description="GET /users needs no authentication")
    strict_board_statuses: bool = Field(
        default=False,
        description="Reject group task statuses outside ToDo/InProgress/Done",
    )

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "console"] = Field(
        default="json",
        description="Log output format",
    )
    log_file: str | None = Field(default=None, description="Log file path (optional)")

    # HTTP Configuration
    http_host: str = Field(default="127.0.0.1", description="HTTP server bind address")
    http_port: int = Field(default=3000, description="HTTP server port")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")

    # Metrics Configuration
    metrics_enabled: bool = Field(default=True, description="Expose Prometheus metrics at /metrics")


def load_toml_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration from TOML file.

    Args:
        path: Path to config file (uses default if None)

    Returns:
        Configuration dictionary (empty if file doesn't exist)
    """
    try:
        import tomli
    except ImportError:
        # Python 3.11+ has tomllib in stdlib
        import tomllib as tomli  # type: ignore

    config_path = path or get_config_path()
    if config_path.exists():
        with open(config_path, "rb") as f:
            return tomli.load(f)
    return {}


# TOML section -> {key: settings field}
TOML_SECTIONS: dict[str, dict[str, str]] = {
    "auth": {
        "jwt_secret": "jwt_secret",
        "jwt_algorithm": "jwt_algorithm",
        "token_expire_minutes": "token_expire_minutes",
        "bcrypt_rounds": "bcrypt_rounds",
    },
    "store": {
        "backend": "store_backend",
        "path": "store_path",
    },
    "policy": {
        "enforce_task_ownership": "enforce_task_ownership",
        "restrict_user_mutations": "restrict_user_mutations",
        "require_group_membership": "require_group_membership",
        "public_task_listing": "public_task_listing",
        "public_user_listing": "public_user_listing",
        "strict_board_statuses": "strict_board_statuses",
    },
    "server": {
        "host": "http_host",
        "port": "http_port",
        "cors_origins": "cors_origins",
        "log_level": "log_level",
        "log_format": "log_format",
        "log_file": "log_file",
    },
    "metrics": {
        "enabled": "metrics_enabled",
    },
}


def flatten_toml_config(toml_config: dict[str, Any]) -> dict[str, Any]:
    """Flatten nested TOML config to flat dictionary for Settings.

    Args:
        toml_config: Nested TOML configuration

    Returns:
        Flattened configuration dictionary
    """
    overrides: dict[str, Any] = {}

    for section, keys in TOML_SECTIONS.items():
        values = toml_config.get(section)
        if not isinstance(values, dict):
            continue
        for key, field_name in keys.items():
            if key in values:
                overrides[field_name] = values[key]

    return overrides


def load_settings_with_toml(config_path: Path | None = None) -> Settings:
    """Load settings with TOML config as base, env vars as override.

    Args:
        config_path: Optional path to TOML config file

    Returns:
        Settings instance with merged configuration
    """
    toml_config = load_toml_config(config_path)
    overrides = flatten_toml_config(toml_config)
    settings = Settings(**overrides)

    # Init kwargs outrank the environment in pydantic-settings, so re-apply
    # any TASKBOARD_* variables on top of the file values.
    env_keys = {key.upper() for key in os.environ}
    env_settings = Settings()
    for field_name in overrides:
        if f"TASKBOARD_{field_name.upper()}" in env_keys:
            setattr(settings, field_name, getattr(env_settings, field_name))
    return settings


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings instance (cached)
    """
    return load_settings_with_toml()
