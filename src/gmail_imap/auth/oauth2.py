"""OAuth 2.0 bearer-token authentication through the XOAUTH2 SASL mechanism."""

from __future__ import annotations

from typing import Any

import structlog
from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from gmail_imap.auth.base import AuthStrategy, SmtpSettings
from gmail_imap.config import Settings
from gmail_imap.exceptions import (
    AuthorizationError,
    CommandError,
    ConfigurationError,
    ImapConnectionError,
)

logger = structlog.get_logger()

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
GMAIL_SCOPE = "https://mail.google.com/"


def xoauth2_string(username: str, access_token: str) -> str:
    """Build the XOAUTH2 initial client response."""
    return f"user={username}\x01auth=Bearer {access_token}\x01\x01"


class OAuth2Auth(AuthStrategy):
    """Authenticate with an OAuth 2.0 access token, refreshing it when expired."""

    scheme = "xoauth2"

    def __init__(
        self,
        username: str,
        *,
        settings: Settings | None = None,
        access_token: str | None = None,
        refresh_token: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        token_uri: str = GOOGLE_TOKEN_URI,
        **options: Any,
    ) -> None:
        if not access_token and not (refresh_token and client_id and client_secret):
            raise ConfigurationError(
                self.scheme,
                "xoauth2 requires an access_token, "
                "or a refresh_token with client_id and client_secret",
            )
        super().__init__(username, settings=settings, **options)
        self._credentials = Credentials(
            token=access_token,
            refresh_token=refresh_token,
            client_id=client_id,
            client_secret=client_secret,
            token_uri=token_uri,
            scopes=[GMAIL_SCOPE],
        )

    @property
    def access_token(self) -> str | None:
        return self._credentials.token

    def _ensure_fresh_token(self) -> str:
        creds = self._credentials
        if not creds.valid and creds.refresh_token:
            logger.info("oauth2_token_refresh_started", username=self.username)
            try:
                creds.refresh(Request())
            except RefreshError as exc:
                logger.warning("oauth2_token_refresh_failed", username=self.username)
                raise AuthorizationError(
                    self.username, f"Couldn't refresh token for {self.username}"
                ) from exc
        if not creds.token:
            raise AuthorizationError(
                self.username, f"No access token available for {self.username}"
            )
        return creds.token

    def login(self) -> bool:
        if self._connection is None:
            return False

        token = self._ensure_fresh_token()
        payload = xoauth2_string(self.username, token).encode("utf-8")
        try:
            typ, _ = self._connection.authenticate("XOAUTH2", payload)
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
            password=self._ensure_fresh_token(),
            authentication="xoauth2",
            enable_starttls_auto=True,
        )
