"""
Configuration Management for Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every external collaborator (spreadsheet store, image host, mail relay)
has its own settings class so a partially configured deployment can
still start in local mode.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Required configuration is missing or unusable."""
    pass


class CloudinarySettings(BaseSettings):
    """Cloudinary object storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CLOUDINARY_",
        extra="ignore"
    )

    cloud_name: str = Field(
        ...,
        description="Cloudinary cloud name"
    )
    api_key: str = Field(
        ...,
        description="Cloudinary API key"
    )
    api_secret: str = Field(
        ...,
        description="Cloudinary API secret"
    )
    folder: str = Field(
        default="finance_tracker",
        description="Root folder for every uploaded object"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets document store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the spreadsheet holding one worksheet per collection"
    )
    poll_interval_seconds: float = Field(
        default=5.0,
        ge=0.5,
        le=300.0,
        description="How often live queries re-read their worksheet"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class EmailSettings(BaseSettings):
    """
    Mail relay configuration for the contact notifier.

    Credentials are optional at load time. The notifier raises
    ConfigurationError when it needs them and they are missing.
    """

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
        extra="ignore",
        populate_by_name=True,
    )

    user: Optional[str] = Field(
        default=None,
        description="Mailbox used as sender and recipient of notifications"
    )
    password: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("EMAIL_PASS", "EMAIL_PASSWORD"),
        description="App password for the mailbox"
    )
    smtp_host: str = Field(
        default="smtp.gmail.com",
        description="SMTP relay host"
    )
    smtp_port: int = Field(
        default=465,
        ge=1,
        le=65535,
        description="SMTP relay port (implicit TLS)"
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Socket timeout for the relay connection"
    )

    def require_credentials(self) -> tuple[str, str]:
        """Return (user, password) or raise ConfigurationError."""
        if not self.user or not self.password:
            raise ConfigurationError("Email credentials not configured")
        return self.user, self.password


class AppSettings(BaseSettings):
    """Settings for the app itself (not its hosted collaborators)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )

    # File upload limits
    max_upload_size_mb: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum upload file size in MB"
    )
    supported_image_formats: str = Field(
        default="jpg,jpeg,png,webp,gif",
        description="Comma-separated list of supported image formats"
    )

    # Accounts
    default_avatar_url: str = Field(
        default="/icons/default-avatar.svg",
        description="Avatar used when none was uploaded"
    )
    min_password_length: int = Field(
        default=6,
        ge=1,
        description="Shortest password accepted at sign-up"
    )

    # Activity log
    persist_audit_events: bool = Field(
        default=False,
        description="Also write audit events to the auditEvents collection"
    )

    @property
    def supported_formats_list(self) -> list[str]:
        """Get supported formats as a list."""
        return [fmt.strip().lower() for fmt in self.supported_image_formats.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def cloudinary(self) -> CloudinarySettings:
        return CloudinarySettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def email(self) -> EmailSettings:
        return EmailSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks and the settings page.
    """
    results = {}
    settings = get_settings()

    for name in ("cloudinary", "google_sheets", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    try:
        settings.email.require_credentials()
        results["email"] = True
    except ConfigurationError as e:
        results["email"] = False
        results["email_error"] = str(e)

    return results
