"""OAuth 1.0a authentication through Gmail's XOAUTH SASL mechanism.

The client sends a signed request line instead of a password::

    GET https://mail.google.com/mail/b/<user>/imap/ oauth_consumer_key="...",...

The signature is computed by :mod:`oauthlib` with HMAC-SHA1.
"""

from __future__ import annotations

from typing import Any

import structlog
from oauthlib.oauth1 import SIGNATURE_HMAC_SHA1, Client

from gmail_imap.auth.base import AuthStrategy, SmtpSettings, TokenCredentials
from gmail_imap.config import Settings
from gmail_imap.exceptions import (
    AuthorizationError,
    CommandError,
    ConfigurationError,
    ImapConnectionError,
)

logger = structlog.get_logger()

XOAUTH_URL = "https://mail.google.com/mail/b/{username}/{protocol}/"

# Google accepts "anonymous" for installed applications without a registered key.
ANONYMOUS_CONSUMER = "anonymous"


def xoauth_string(
    username: str,
    credentials: TokenCredentials,
    protocol: str = "imap",
    nonce: str | None = None,
    timestamp: str | None = None,
) -> str:
    """Build the signed XOAUTH request line for ``username``."""

    url = XOAUTH_URL.format(username=username, protocol=protocol)
    client = Client(
        credentials.consumer_key,
        client_secret=credentials.consumer_secret,
        resource_owner_key=credentials.token,
        resource_owner_secret=credentials.token_secret,
        signature_method=SIGNATURE_HMAC_SHA1,
        nonce=nonce,
        timestamp=timestamp,
    )
    _, headers, _ = client.sign(url, http_method="GET")
    params = headers["Authorization"].removeprefix("OAuth ")
    signed = ",".join(sorted(part.strip() for part in params.split(",")))
    return f"GET {url} {signed}"


class XOAuth(AuthStrategy):
    """Authenticate with an OAuth 1.0a access token."""

    scheme = "xoauth"

    def __init__(
        self,
        username: str,
        *,
        settings: Settings | None = None,
        token: str | None = None,
        secret: str | None = None,
        consumer_key: str = ANONYMOUS_CONSUMER,
        consumer_secret: str = ANONYMOUS_CONSUMER,
        **options: Any,
    ) -> None:
        if not token or not secret:
            raise ConfigurationError(self.scheme, "xoauth requires both token and secret")
        super().__init__(username, settings=settings, **options)
        self.token = token
        self.secret = secret
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret

    @property
    def credentials(self) -> TokenCredentials:
        return TokenCredentials(
            consumer_key=self.consumer_key,
            consumer_secret=self.consumer_secret,
            token=self.token,
            token_secret=self.secret,
        )

    def login(self) -> bool:
        if self._connection is None:
            return False

        payload = xoauth_string(self.username, self.credentials).encode("utf-8")
        try:
            typ, _ = self._connection.authenticate("XOAUTH", payload)
        except (CommandError, ImapConnectionError) as exc:
            logger.warning("imap_login_failed", scheme=self.scheme, username=self.username)
            raise AuthorizationError(self.username) from exc
        return self._complete_login(typ)

    def smtp_settings(self) -> SmtpSettings:
        return SmtpSettings(
            address=self.settings.smtp_host,
            port=self.settings.smtp_port,
            domain=self.mail_domain,
            user_name=self.username,
            password=self.credentials,
            authentication="xoauth",
            enable_starttls_auto=True,
        )
