"""Gmail IMAP client.

This package authenticates against Gmail's IMAP service with pluggable
strategies and parses FETCH responses, including Gmail's X-GM-MSGID and
X-GM-THRID extensions, into envelope and address value objects.
"""

__version__ = "0.1.0"

from gmail_imap.auth import (
    AuthStrategy,
    OAuth2Auth,
    PlainAuth,
    StrategyRegistry,
    XOAuth,
    default_registry,
)
from gmail_imap.client import connect, connect_or_raise
from gmail_imap.config import Settings, get_settings
from gmail_imap.exceptions import AuthorizationError, ConfigurationError, GmailIMAPError, ParseError
from gmail_imap.models import Address, Envelope
from gmail_imap.utils import configure_logging

__all__ = [
    "Address",
    "AuthStrategy",
    "AuthorizationError",
    "ConfigurationError",
    "Envelope",
    "GmailIMAPError",
    "OAuth2Auth",
    "ParseError",
    "PlainAuth",
    "Settings",
    "StrategyRegistry",
    "XOAuth",
    "configure_logging",
    "connect",
    "connect_or_raise",
    "default_registry",
    "get_settings",
    "__version__",
]
