"""Configuration settings for openshift_pipeline.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

import tempfile
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_tmp_dir() -> Path:
    """Return the default directory for build context archives."""
    return Path(tempfile.gettempdir())


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the OSPIPE_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="OSPIPE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Cluster
    namespace: str | None = Field(
        default=None,
        description="Default namespace (uses the current oc project if not set)",
    )
    oc_binary: str = Field(
        default="oc",
        description="Path or name of the oc client executable",
    )
    git_binary: str = Field(
        default="git",
        description="Path or name of the git executable",
    )

    # Paths
    workdir: Path | None = Field(
        default=None,
        description="Working tree root (uses the git top level if not set)",
    )
    tmp_dir: Path = Field(
        default_factory=_default_tmp_dir,
        description="Directory for binary build context archives",
    )

    # Operational modes
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    wait_for_builds: bool = Field(
        default=True,
        description=(
            "Block on each triggered build until it finishes; builds whose output"
            " other build definitions consume always block"
        ),
    )

    # Concurrency
    max_concurrent_builds: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Maximum concurrently dispatched builds",
    )

    # Build deduplication
    build_hash_env: str = Field(
        default="_BUILD_HASH",
        description="Environment key carrying the build content hash",
    )
    template_hash_label: str = Field(
        default="template-hash",
        description="Build definition label carrying the template hash",
    )

    # Rollouts
    app_label: str = Field(
        default="app",
        description="Label key used to select an application's deployments",
    )
    rollout_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Rollout wait limit in seconds (None waits indefinitely)",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
