"""Settings models and configuration loading for the artguard application."""

from functools import cached_property, lru_cache
from typing import Annotated, Any, Self

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    HttpUrl,
    SecretStr,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from artguard.lib.config.constants import DEFAULT_ALERT_THRESHOLD_MINUTES
from artguard.lib.config.enums import NotificationBackend


def _parse_bool(v: Any) -> bool:
    """Parse boolean from string '1'/'true' or actual bool."""
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        return v.strip().lower() in ("1", "true", "yes")
    return bool(v)


_BoolFromStr = Annotated[bool, BeforeValidator(_parse_bool)]


def _validate_email_or_empty(v: str) -> str:
    """Validate email format, allowing empty string."""
    if not v:
        return v
    from pydantic import validate_email

    validate_email(v)
    return v


def _validate_http_url_or_empty(v: str) -> str:
    """Validate HTTP URL format, allowing empty string."""
    if not v:
        return v
    HttpUrl(v)
    return v


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


_EmailOrEmpty = Annotated[str, AfterValidator(_validate_email_or_empty)]
_HttpUrlOrEmpty = Annotated[str, AfterValidator(_validate_http_url_or_empty)]


class EmailSettings(BaseModel):
    """SMTP e-mail notification settings."""

    model_config = ConfigDict(frozen=True)

    host: str = "mail.gmx.com"
    port: int = 465
    secure: bool = True  # Implicit TLS; STARTTLS when False
    username: str = ""
    password: SecretStr = SecretStr("")
    sender: str = ""
    recipients: tuple[str, ...] = ()

    @property
    def is_configured(self) -> bool:
        """Whether every value needed to send an e-mail is present."""
        return bool(
            self.host
            and self.port
            and self.username
            and self.password.get_secret_value()
            and self.sender
            and self.recipients
        )


class SlackSettings(BaseModel):
    """Slack notification settings."""

    model_config = ConfigDict(frozen=True)

    webhook_url: _HttpUrlOrEmpty = ""


class NotificationSettings(BaseModel):
    """Notification service settings."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    backends: list[NotificationBackend] = []
    email: EmailSettings = EmailSettings()
    slack: SlackSettings = SlackSettings()
    max_retries: int = 3
    initial_backoff_sec: float = 2.0
    timeout_sec: float = 30.0


class DispatchSettings(BaseModel):
    """Notification dispatch loop settings."""

    model_config = ConfigDict(frozen=True)

    threshold_minutes: int = DEFAULT_ALERT_THRESHOLD_MINUTES
    interval_sec: int = 60


class EngineSettings(BaseModel):
    """Alert evaluation settings."""

    model_config = ConfigDict(frozen=True)

    max_concurrent_evaluations: int = 8


class EventBusSettings(BaseModel):
    """Redis event bus settings."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    redis_url: str = "redis://localhost:6379/0"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    db_path: str = "artguard.sqlite3"
    db_timeout_sec: float = Field(default=30.0, gt=0)
    db_pool_size: int = Field(default=5, ge=1)

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    enable_event_bus: _BoolFromStr = False

    # Notifications
    enable_notification_service: _BoolFromStr = False
    notification_backends: str = "email"
    email_smtp_host: str = "mail.gmx.com"
    email_smtp_port: int = Field(default=465, gt=0, le=65535)
    email_smtp_secure: _BoolFromStr = True
    email_smtp_user: str = ""
    email_smtp_password: SecretStr = SecretStr("")
    email_from: _EmailOrEmpty = ""
    email_alert_recipients: str = ""  # Comma-separated list
    slack_webhook_url: _HttpUrlOrEmpty = ""
    notification_max_retries: int = Field(default=3, ge=1)
    notification_initial_backoff_sec: float = Field(default=2.0, ge=0)
    notification_timeout_sec: float = Field(default=30.0, gt=0)

    # Dispatch
    alert_threshold_minutes: int = Field(
        default=DEFAULT_ALERT_THRESHOLD_MINUTES, ge=0
    )
    dispatch_interval_sec: int = Field(default=60, ge=1)

    # Engine
    max_concurrent_evaluations: int = Field(default=8, ge=1)

    # Server
    cron_secret: SecretStr = SecretStr("")

    @cached_property
    def notifications(self) -> NotificationSettings:
        """Get notification settings as nested object."""
        return NotificationSettings(
            enabled=self.enable_notification_service,
            backends=[
                NotificationBackend(b)
                for b in _split_csv(self.notification_backends)
            ],
            email=EmailSettings(
                host=self.email_smtp_host,
                port=self.email_smtp_port,
                secure=self.email_smtp_secure,
                username=self.email_smtp_user,
                password=self.email_smtp_password,
                sender=self.email_from,
                recipients=tuple(_split_csv(self.email_alert_recipients)),
            ),
            slack=SlackSettings(webhook_url=self.slack_webhook_url),
            max_retries=self.notification_max_retries,
            initial_backoff_sec=self.notification_initial_backoff_sec,
            timeout_sec=self.notification_timeout_sec,
        )

    @cached_property
    def dispatch(self) -> DispatchSettings:
        """Get dispatch loop settings."""
        return DispatchSettings(
            threshold_minutes=self.alert_threshold_minutes,
            interval_sec=self.dispatch_interval_sec,
        )

    @cached_property
    def engine(self) -> EngineSettings:
        """Get alert evaluation settings."""
        return EngineSettings(
            max_concurrent_evaluations=self.max_concurrent_evaluations,
        )

    @cached_property
    def eventbus(self) -> EventBusSettings:
        """Get event bus settings."""
        return EventBusSettings(
            enabled=self.enable_event_bus, redis_url=self.redis_url
        )

    @model_validator(mode="after")
    def validate_settings(self) -> Self:
        """Validate cross-field configuration constraints."""
        errors: list[str] = []

        backends = _split_csv(self.notification_backends)
        valid = {b.value for b in NotificationBackend}
        unknown = [b for b in backends if b not in valid]
        if unknown:
            errors.append(
                f"NOTIFICATION_BACKENDS has unknown values: {', '.join(unknown)}"
            )

        # Notification credential checks
        if self.enable_notification_service:
            if NotificationBackend.EMAIL in backends:
                missing = []
                if not self.email_smtp_host:
                    missing.append("EMAIL_SMTP_HOST")
                if not self.email_smtp_user:
                    missing.append("EMAIL_SMTP_USER")
                if not self.email_smtp_password.get_secret_value():
                    missing.append("EMAIL_SMTP_PASSWORD")
                if not self.email_from:
                    missing.append("EMAIL_FROM")
                if not _split_csv(self.email_alert_recipients):
                    missing.append("EMAIL_ALERT_RECIPIENTS")
                if missing:
                    errors.append(
                        f"E-mail enabled but missing: {', '.join(missing)}"
                    )

            if NotificationBackend.SLACK in backends:
                if not self.slack_webhook_url:
                    errors.append(
                        "Slack enabled but SLACK_WEBHOOK_URL is not set"
                    )

        if errors:
            raise ValueError(
                "Configuration validation failed:\n  - "
                + "\n  - ".join(errors)
            )

        return self


# Settings override for testing - allows injecting custom Settings without
# modifying environment variables or clearing the lru_cache.
_settings_override: Settings | None = None


@lru_cache(maxsize=1)
def _load_settings() -> Settings:
    """Load settings from environment (cached)."""
    return Settings()


def get_settings() -> Settings:
    """Get the global settings instance.

    Returns the test override if set, otherwise loads from environment
    variables (cached after first load). For testing, use set_settings()
    from artguard.lib.config.testing to override.
    """
    if _settings_override is not None:
        return _settings_override
    return _load_settings()
