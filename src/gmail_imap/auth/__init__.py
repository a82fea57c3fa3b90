"""Authentication strategies.

Each strategy turns a username plus scheme-specific options into an
authenticated IMAP session and into SMTP settings for the same account.
"""

from .base import AuthStrategy, SmtpSettings, TokenCredentials
from .oauth2 import OAuth2Auth
from .plain import PlainAuth
from .registry import StrategyRegistry, default_registry
from .xoauth import XOAuth

__all__ = [
    "AuthStrategy",
    "OAuth2Auth",
    "PlainAuth",
    "SmtpSettings",
    "StrategyRegistry",
    "TokenCredentials",
    "XOAuth",
    "default_registry",
]
