# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the
temporary enrolments service. Settings are loaded from environment
variables (and an optional .env file) with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.enrolment.duration_seconds)
    1209600
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DAY_SECONDS = 86400


class DatabaseSettings(BaseSettings):
    """Platform database configuration.

    The service shares the host platform's PostgreSQL database: it reads
    role assignments, users, courses and enrolments from the platform tables
    and keeps its own tracking table next to them.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        url_override: Full connection URL, takes precedence over components.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
        migrate_on_start: Apply pending tracking table migrations when the
            API starts.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    user: str = "moodle"
    password: SecretStr = SecretStr("moodle_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "moodle"
    url_override: str | None = Field(default=None, validation_alias="DB_URL")
    pool_size: int = 5
    max_overflow: int = 10
    migrate_on_start: bool = False

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        if self.url_override:
            return self.url_override
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class RedisSettings(BaseSettings):
    """Redis configuration for the Dramatiq broker.

    Attributes:
        host: Redis server host.
        port: Redis server port.
        password: Redis password.
        database: Redis database number.
    """

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = "localhost"
    port: int = 6379
    password: SecretStr | None = None
    database: int = 0

    @property
    def url(self) -> str:
        """Build the Redis connection URL."""
        if self.password is None:
            return f"redis://{self.host}:{self.port}/{self.database}"
        pwd = self.password.get_secret_value()
        return f"redis://:{pwd}@{self.host}:{self.port}/{self.database}"


class SMTPSettings(BaseSettings):
    """Outgoing mail configuration.

    Email delivery is skipped (not failed) while host, username,
    password or from_email is missing.

    Attributes:
        host: SMTP server hostname.
        port: SMTP server port.
        username: SMTP authentication username.
        password: SMTP authentication password.
        use_tls: Use STARTTLS.
        from_email: Sender address (the platform's no-reply address).
        from_name: Sender display name.
        timeout: Connection timeout in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="SMTP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str | None = None
    port: int = 587
    username: str | None = None
    password: SecretStr | None = None
    use_tls: bool = True
    from_email: str | None = None
    from_name: str = "Temporary Enrolments"
    timeout: float = 30.0

    @property
    def is_configured(self) -> bool:
        """Check whether all required SMTP values are present."""
        return all([self.host, self.username, self.password, self.from_email])


class APISettings(BaseSettings):
    """Webhook API server configuration.

    Attributes:
        host: Host to bind to.
        port: Port to listen on.
        webhook_secret: Shared secret expected in the X-Webhook-Secret header.
            When unset, webhook requests are not authenticated.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 8080
    webhook_secret: SecretStr | None = None


class WorkerSettings(BaseSettings):
    """Background worker and scheduler configuration.

    Attributes:
        processes: Number of worker processes.
        threads: Number of threads per process.
        expire_interval_minutes: Minutes between expiration sweeps.
        reminder_cron: Cron expression for the reminder sweep.
        maintenance_on_start: Run backfill and duration reconciliation
            once when the scheduler starts.
    """

    model_config = SettingsConfigDict(
        env_prefix="WORKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    processes: int = 1
    threads: int = 2
    expire_interval_minutes: int = 5
    reminder_cron: str = "0 8 * * *"
    maintenance_on_start: bool = True


class TemporaryEnrolmentSettings(BaseSettings):
    """Temporary enrolment behaviour.

    Per email kind there is an on/off switch and an optional template.
    A template left as None falls back to the YAML override file (if any)
    and then to the built-in default; an empty string disables that email.

    Attributes:
        enabled: Master on/off switch.
        marker_role_id: Role whose assignment marks an enrolment as temporary.
        duration_seconds: Length of a temporary enrolment.
        reminder_interval_days: Days between reminder emails.
        manage_existing_assignments: Bring pre-existing marker role
            assignments under management during backfill.
        existing_assignments_send_email: Send the student initial email for
            backfilled assignments.
        existing_assignments_start: Start the clock of backfilled assignments
            at the assignment time or now.
        templates_path: YAML file with per-kind template overrides.
        system_user_id: User reported as assigner for sweep-originated emails.
        enrol_method: Enrolment method removed on expiry.
    """

    model_config = SettingsConfigDict(
        env_prefix="TEMP_ENROL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    enabled: bool = False
    marker_role_id: int | None = None
    duration_seconds: int = 14 * DAY_SECONDS
    reminder_interval_days: int = 7

    student_init_enabled: bool = True
    teacher_init_enabled: bool = True
    upgrade_enabled: bool = True
    expire_enabled: bool = True
    reminder_enabled: bool = True

    student_init_template: str | None = None
    teacher_init_template: str | None = None
    upgrade_template: str | None = None
    expire_template: str | None = None
    reminder_template: str | None = None

    manage_existing_assignments: bool = False
    existing_assignments_send_email: bool = False
    existing_assignments_start: Literal["assignment", "now"] = "assignment"

    templates_path: Path | None = None
    system_user_id: int = 2
    enrol_method: str = "manual"


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        database: Platform database settings.
        redis: Redis broker settings.
        smtp: Outgoing mail settings.
        api: Webhook API settings.
        worker: Background worker settings.
        enrolment: Temporary enrolment behaviour.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    smtp: SMTPSettings = Field(default_factory=SMTPSettings)
    api: APISettings = Field(default_factory=APISettings)
    worker: WorkerSettings = Field(default_factory=WorkerSettings)
    enrolment: TemporaryEnrolmentSettings = Field(default_factory=TemporaryEnrolmentSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production without a webhook secret.
        """
        if self.environment == "production" and self.api.webhook_secret is None:
            raise ValueError(
                "Webhook secret must be set in production. "
                "Set API_WEBHOOK_SECRET environment variable."
            )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or after an administrator changes the configuration.
    """
    get_settings.cache_clear()
