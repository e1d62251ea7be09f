"""
reqtree Configuration Management

Provides centralized configuration management with validation and environment support.
"""

from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Logging level")
    file_path: Optional[str] = Field(default=None, description="Log file path")
    max_file_size: int = Field(
        default=10_000_000, description="Max log file size in bytes"
    )
    backup_count: int = Field(default=5, description="Number of backup log files")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class HTTPConfig(BaseModel):
    """Outbound request configuration."""

    request_timeout: int = Field(
        default=30, description="Timeout in seconds for requests without a body"
    )
    verify_ssl: bool = Field(
        default=False, description="Verify TLS certificates of target servers"
    )
    allow_redirects: bool = Field(default=True, description="Follow redirects")
    user_agent: str = Field(
        default="reqtree/0.1.0", description="User-Agent sent when the tab sets none"
    )

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Invalid request timeout: {v}. Must be positive")
        return v


class StorageConfig(BaseModel):
    """Snapshot storage configuration."""

    snapshot_path: str = Field(
        default="./reqtree.json", description="Default session snapshot file"
    )
    indent: int = Field(default=2, description="JSON indent for written snapshots")


class ReqtreeConfig(BaseSettings):
    """Main reqtree configuration."""

    debug: bool = Field(default=False, description="Enable debug mode")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    http: HTTPConfig = Field(default_factory=HTTPConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    model_config = SettingsConfigDict(
        env_prefix="REQTREE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
    )


# Global configuration instance
_config: Optional[ReqtreeConfig] = None


def get_config() -> ReqtreeConfig:
    """
    Get the global configuration instance.

    Returns:
        The global ReqtreeConfig instance
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def load_config(config_file: Optional[Path] = None) -> ReqtreeConfig:
    """
    Load configuration from an env file and environment variables.

    Args:
        config_file: Optional path to a dotenv-style configuration file

    Returns:
        Loaded configuration instance
    """
    if config_file and config_file.exists():
        return ReqtreeConfig(_env_file=str(config_file))
    return ReqtreeConfig()


def reload_config(config_file: Optional[Path] = None) -> ReqtreeConfig:
    """
    Reload the global configuration.

    Args:
        config_file: Optional path to configuration file

    Returns:
        Reloaded configuration instance
    """
    global _config
    _config = load_config(config_file)
    return _config


def update_config(**kwargs: Any) -> None:
    """
    Update configuration values at runtime.

    Args:
        **kwargs: Configuration values to update
    """
    global _config
    if _config is None:
        _config = load_config()

    for key, value in kwargs.items():
        if hasattr(_config, key):
            setattr(_config, key, value)
        else:
            raise ValueError(f"Unknown configuration key: {key}")


def get_snapshot_path() -> Path:
    """
    Get the configured default snapshot path.

    Returns:
        Path to the snapshot file
    """
    config = get_config()
    snapshot_path = Path(config.storage.snapshot_path)
    snapshot_path.parent.mkdir(parents=True, exist_ok=True)
    return snapshot_path
