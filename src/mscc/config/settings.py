"""Environment-driven application settings.

All values are loaded from environment variables (prefix ``MSCC_``) or a
``.env`` file at the project root.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ScriptingSettings(BaseSettings):
    """Connector scripting runtime configuration."""

    model_config = SettingsConfigDict(env_prefix="MSCC_SCRIPTING_")

    scripts_dir: Path | None = None
    """Directory holding script sources and ``.meta`` sidecars.

    ``None`` means ``<mscc_home>/scripts``.
    """
    source_suffix: str = ".py"
    completion_limit: int = Field(default=50, ge=1, le=500)
    """Maximum number of completion candidates returned per request."""
    extra_reference_modules: list[str] = Field(default_factory=list)
    """Additional importable modules granted to scripts (host-controlled)."""


class Settings(BaseSettings):
    """Top-level settings aggregator."""

    model_config = SettingsConfigDict(
        env_prefix="MSCC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    scripting: ScriptingSettings = Field(default_factory=ScriptingSettings)

    log_level: str = "INFO"

    mscc_home: Path = Path.home() / ".mscc"
    """Root directory for MSCC persistent data."""

    @property
    def scripts_dir(self) -> Path:
        """Resolved scripts directory."""
        return self.scripting.scripts_dir or self.mscc_home / "scripts"


# Module-level singleton — import and use directly.
settings = Settings()


def get_settings() -> Settings:
    """Return the module-level Settings singleton."""
    return settings
