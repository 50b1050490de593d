"""TokenHub settings.

Values come from (highest priority first): constructor arguments, ``TOKENHUB_*``
environment variables, then ``<config dir>/config.json``.

The session secret signs owner session tokens. When it is not configured it is
generated once and kept in ``<config dir>/session.key`` (mode 0600);
regenerating it invalidates every outstanding session token.
"""

from __future__ import annotations

import logging
import os
import secrets
from pathlib import Path

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

logger = logging.getLogger(__name__)


def get_config_dir() -> Path:
    """Return the TokenHub home directory, creating it if needed."""
    override = os.environ.get("TOKENHUB_HOME")
    path = Path(override).expanduser() if override else Path.home() / ".tokenhub"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_path() -> Path:
    return get_config_dir() / "config.json"


class Settings(BaseSettings):
    """Runtime configuration."""

    model_config = SettingsConfigDict(env_prefix="TOKENHUB_", extra="ignore")

    # Token lifecycle
    token_ttl_days: int = Field(default=30, ge=1)
    prune_retention_days: int = Field(default=30, ge=0)
    prune_batch_size: int = Field(default=100, ge=1)

    # Owner sessions
    session_secret: str | None = None
    session_token_ttl_hours: int = Field(default=24, ge=1)

    # API server
    api_host: str = "127.0.0.1"
    api_port: int = 8890
    api_cors_allowed_origins: list[str] = Field(default_factory=list)
    per_page: int = Field(default=10, ge=1, le=100)

    log_level: str = "INFO"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            JsonConfigSettingsSource(settings_cls, json_file=get_config_path()),
        )

    @classmethod
    def load(cls) -> Settings:
        """Build settings from the environment and the config file."""
        return cls()

    @property
    def token_ttl_seconds(self) -> int:
        return self.token_ttl_days * 86400


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reset_settings() -> None:
    """Reset singleton (for testing)."""
    global _settings
    _settings = None


def _session_key_path() -> Path:
    return get_config_dir() / "session.key"


def get_session_secret() -> str:
    """Return the session signing secret, creating a persistent one on first use."""
    configured = get_settings().session_secret
    if configured:
        return configured

    path = _session_key_path()
    if path.exists():
        value = path.read_text().strip()
        if value:
            return value
    return regenerate_session_secret()


def regenerate_session_secret() -> str:
    """Write a fresh session secret. Every issued session token stops verifying."""
    value = secrets.token_urlsafe(48)
    path = _session_key_path()
    path.write_text(value)
    try:
        path.chmod(0o600)
    except OSError:
        pass
    logger.info("Generated new session secret at %s", path)
    return value
