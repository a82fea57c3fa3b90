"""Utility functions for the Gmail IMAP client."""

from __future__ import annotations

import logging
from datetime import date, datetime

import structlog

from gmail_imap.config import Settings

logger = structlog.get_logger()

_IMAP_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog to drop events below ``settings.log_level``.

    Args:
        settings: Client settings. If None, uses default settings.
    """
    from gmail_imap.config import get_settings

    settings = settings or get_settings()
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
    )
    logger.debug("logging_configured", log_level=settings.log_level, debug=settings.debug)


def to_imap_date(value: date | datetime | str) -> str:
    """Format a date as an IMAP search ``date`` (``01-Feb-2024``).

    Strings are parsed as ISO 8601 dates first.

    Raises:
        ValueError: If a string value is not an ISO 8601 date.
    """

    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip())
    if isinstance(value, datetime):
        value = value.date()
    # Month names are fixed by RFC 3501 and must not follow the locale.
    return f"{value.day:02d}-{_IMAP_MONTHS[value.month - 1]}-{value.year:04d}"
