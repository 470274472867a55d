"""
Configuration Management for deepproxy

Uses Pydantic Settings for environment-based defaults of the proxy
policy and logging.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application configuration loaded from environment variables.

    Environment variables should be prefixed with DEEPPROXY_.
    Example: DEEPPROXY_MAX_DEPTH=4
    """

    model_config = SettingsConfigDict(
        env_prefix="DEEPPROXY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # =========================================================================
    # General Settings
    # =========================================================================

    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging level for the CLI"
    )

    # =========================================================================
    # Proxy Defaults
    # =========================================================================

    max_depth: int = Field(
        default=10,
        ge=0,
        description="Default maximum wrapping depth"
    )

    proxy_arrays: bool = Field(
        default=False,
        description="Wrap lists and tuples by default"
    )

    proxy_functions: bool = Field(
        default=False,
        description="Wrap callables by default"
    )

    # =========================================================================
    # File Paths
    # =========================================================================

    policies_dir: Path = Field(
        default=Path("policies"),
        description="Directory searched for policy YAML files by name"
    )

    def policy_file(self, name: str) -> Path:
        """Resolve a policy given as a path or as a name in policies_dir."""
        path = Path(name)
        if path.suffix in (".yaml", ".yml") or path.exists():
            return path
        return self.policies_dir / f"{name}.yaml"


# Global settings instance - lazy loaded
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the application settings instance.

    Uses lazy loading to defer configuration parsing until first use.

    Returns:
        Settings: The application configuration.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """
    Reset the settings instance.

    Useful for testing or when environment variables change.
    """
    global _settings
    _settings = None
