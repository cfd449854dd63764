"""Application settings and configuration helpers."""
from functools import lru_cache
import os

from pydantic import BaseModel, Field, field_validator
from dotenv import load_dotenv

load_dotenv()

DEFAULT_ALLOWED_NETWORKS = [
    "127.0.0.0/8",
    "::1/128",
    "10.0.0.0/8",
    "172.16.0.0/12",
    "192.168.0.0/16",
]


class Settings(BaseModel):
    """Runtime configuration loaded from environment variables."""

    database_url: str = Field(
        default="sqlite+aiosqlite:///./trustpass.db", alias="DATABASE_URL"
    )
    secret_key: str = Field(default="change-me", alias="SECRET_KEY")
    access_token_expires_minutes: int = Field(
        default=60 * 24, alias="ACCESS_TOKEN_EXPIRES_MINUTES"
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Verification links embedded in QR codes
    public_base_url: str = Field(default="http://localhost:8000", alias="PUBLIC_BASE_URL")

    # Mail
    smtp_host: str | None = Field(default=None, alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_username: str | None = Field(default=None, alias="SMTP_USERNAME")
    smtp_password: str | None = Field(default=None, alias="SMTP_PASSWORD")
    smtp_tls: bool = Field(default=True, alias="SMTP_TLS")
    mail_from: str | None = Field(default=None, alias="MAIL_FROM")
    admin_notification_emails: list[str] = Field(
        default_factory=list, alias="ADMIN_NOTIFICATION_EMAILS"
    )

    # DBS expiry checks
    dbs_expiry_horizon_days: int = Field(default=60, alias="DBS_EXPIRY_HORIZON_DAYS")
    dbs_notification_window_days: int = Field(default=7, alias="DBS_NOTIFICATION_WINDOW_DAYS")
    status_notification_window_days: int = Field(
        default=1, alias="STATUS_NOTIFICATION_WINDOW_DAYS"
    )
    scheduler_enabled: bool = Field(default=True, alias="SCHEDULER_ENABLED")
    scheduler_interval_seconds: int = Field(default=60 * 60, alias="SCHEDULER_INTERVAL_SECONDS")

    # Admin area is only reachable from these networks
    restrict_admin_network: bool = Field(default=True, alias="RESTRICT_ADMIN_NETWORK")
    admin_allowed_networks: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_NETWORKS),
        alias="ADMIN_ALLOWED_NETWORKS",
    )

    # Photo uploads
    upload_dir: str = Field(default="uploads", alias="UPLOAD_DIR")
    max_upload_bytes: int = Field(default=5 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }

    @field_validator("admin_notification_emails", "admin_allowed_networks", mode="before")
    @classmethod
    def split_csv(cls, value):
        """Accept comma separated strings from the environment."""

        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.mail_from)


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings.model_validate(dict(os.environ))
