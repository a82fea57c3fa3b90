"""Configuration management for the Gmail IMAP client.

This module handles client configuration using Pydantic settings.
Configuration can be loaded from environment variables or .env files.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings with environment variable support.

    All settings can be overridden via environment variables with
    the GMAIL_IMAP_ prefix (e.g., GMAIL_IMAP_IMAP_HOST).
    """

    model_config = SettingsConfigDict(
        env_prefix="GMAIL_IMAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # IMAP Configuration
    imap_host: str = Field(
        default="imap.gmail.com",
        description="IMAP server host name",
    )
    imap_port: int = Field(
        default=993,
        description="IMAP server port (implicit TLS)",
    )
    timeout: float | None = Field(
        default=30.0,
        description="Socket timeout in seconds for the IMAP connection",
    )

    # SMTP Configuration
    smtp_host: str = Field(
        default="smtp.gmail.com",
        description="SMTP server host name handed to the delivery transport",
    )
    smtp_port: int = Field(
        default=587,
        description="SMTP submission port (STARTTLS)",
    )
    mail_domain: str = Field(
        default="gmail.com",
        description="HELO domain used by the delivery transport",
    )

    # Authentication
    default_scheme: str = Field(
        default="plain",
        description="Authentication scheme used when none is given explicitly",
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached client settings.

    Returns:
        Settings: Client settings instance.
    """
    return Settings()
