"""
zenload Settings - cache location, credentials and network limits.

Values come from DIODE_* environment variables or a .env file; tokens also
accept the plain GITHUB_TOKEN / GITLAB_TOKEN names.
"""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ZenloadSettings(BaseSettings):
    """
    Settings shared by the fetcher, the cache manager and the CLI.

    Precedence: explicit constructor arguments, then the process
    environment, then .env in the working directory, then defaults.
    Components take an instance explicitly and only fall back to
    get_settings() when none is passed.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="DIODE_",
        populate_by_name=True,
    )

    # Cache Configuration
    star_cache_dir: Path | None = Field(
        default=None,
        description="Override for the remote cache root (env: DIODE_STAR_CACHE_DIR)",
    )

    # Hosting provider credentials, only used by the archive download fallback
    github_token: str | None = Field(
        default=None,
        description="GitHub access token (env: DIODE_GITHUB_TOKEN or GITHUB_TOKEN)",
        validation_alias=AliasChoices("DIODE_GITHUB_TOKEN", "GITHUB_TOKEN"),
    )

    gitlab_token: str | None = Field(
        default=None,
        description="GitLab access token (env: DIODE_GITLAB_TOKEN or GITLAB_TOKEN)",
        validation_alias=AliasChoices("DIODE_GITLAB_TOKEN", "GITLAB_TOKEN"),
    )

    # Network Configuration
    fetch_timeout: float = Field(
        default=300.0,
        gt=0,
        description="Timeout in seconds for each git command and HTTP request (env: DIODE_FETCH_TIMEOUT)",
    )

    offline: bool = Field(
        default=False,
        description="Refuse to fetch anything from the network (env: DIODE_OFFLINE)",
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR) (env: DIODE_LOG_LEVEL)",
    )


# Process-wide default, built lazily
_settings: ZenloadSettings | None = None


def get_settings() -> ZenloadSettings:
    """
    Return the process-wide settings, reading the environment on first use.

    Returns:
        ZenloadSettings instance
    """
    global _settings
    if _settings is None:
        _settings = ZenloadSettings()
    return _settings


def reload_settings() -> ZenloadSettings:
    """
    Re-read the environment and replace the process-wide settings.

    Tests call this after changing DIODE_* variables.

    Returns:
        The new ZenloadSettings instance
    """
    global _settings
    _settings = ZenloadSettings()
    return _settings
