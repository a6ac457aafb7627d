"""Settings for record-spine applications.

``RecordSpineSettings`` collects the few knobs the reference storage
collaborators and the logging setup need, read from ``RECORD_SPINE_*``
environment variables or a ``.env`` file.

Examples:
    >>> from record_spine.settings import RecordSpineSettings
    >>> settings = RecordSpineSettings()
    >>> settings.database_url
    'sqlite:///:memory:'

    Subclass for an application with its own prefix:

    >>> class UsersSettings(RecordSpineSettings):
    ...     model_config = {"env_prefix": "USERS_"}

Tags:
    settings, configuration, pydantic, environment, record-spine
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class RecordSpineSettings(BaseSettings):
    """Configuration shared by record-spine stores and logging.

    Fields
    ──────
    database_url : SQLAlchemy URL used by ``create_store_engine``
    echo_sql     : Log every SQL statement the SQLAlchemy store emits
    log_level    : Structlog log level
    json_logs    : JSON output (True), console (False), auto-detect (None)
    service_name : ``service.name`` attached to every log line
    """

    model_config = SettingsConfigDict(
        env_prefix="RECORD_SPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────────────
    database_url: str = Field(
        default="sqlite:///:memory:",
        description="SQLAlchemy database URL for the SQL store",
    )
    echo_sql: bool = False

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None
    service_name: str = "record-spine"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}")
        return level

    def configure_logging(self) -> None:
        """Apply the logging fields to structlog."""
        from record_spine.logging import configure_logging

        configure_logging(
            level=self.log_level,
            json_format=self.json_logs,
            service=self.service_name,
        )
