"""Base class shared by all authentication strategies.

A strategy owns one IMAP connection and knows two things about its
credentials: how to present them to the IMAP server, and how to hand them to
an SMTP delivery transport.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field

from gmail_imap.config import Settings
from gmail_imap.exceptions import AuthorizationError, ImapConnectionError
from gmail_imap.imap.connection import ImapConnection

logger = structlog.get_logger()


class TokenCredentials(BaseModel):
    """OAuth 1.0a token material for the XOAUTH mechanism."""

    model_config = ConfigDict(frozen=True)

    consumer_key: str
    consumer_secret: str
    token: str
    token_secret: str


class SmtpSettings(BaseModel):
    """Connection parameters for an SMTP delivery transport."""

    model_config = ConfigDict(frozen=True)

    delivery_method: Literal["smtp"] = "smtp"
    address: str = Field(description="SMTP server host name")
    port: int = Field(description="SMTP server port")
    domain: str = Field(description="HELO domain")
    user_name: str = Field(description="Account to authenticate as")
    password: str | TokenCredentials | None = Field(
        default=None,
        description="Plain secret, bearer token, or OAuth 1.0a token material",
    )
    authentication: Literal["plain", "xoauth", "xoauth2"] = Field(
        default="plain",
        description="SASL mechanism the transport must negotiate",
    )
    enable_starttls_auto: bool = Field(default=True, description="Upgrade with STARTTLS")


class AuthStrategy(ABC):
    """Common connection lifecycle for authentication strategies.

    Subclasses implement :meth:`login` and may override :meth:`smtp_settings`.
    """

    scheme: ClassVar[str]
    password: str | None = None

    def __init__(self, username: str, settings: Settings | None = None, **options: Any) -> None:
        """Initialize the strategy.

        Args:
            username: Account to authenticate as.
            settings: Client settings. If None, uses default settings.
            options: Remaining scheme options, e.g. ``domain``.
        """
        from gmail_imap.config import get_settings

        self._username = username
        self.settings = settings or get_settings()
        self.options = options
        self._connection: ImapConnection | None = None
        self._logged_in = False

    @property
    def username(self) -> str:
        return self._username

    @property
    def logged_in(self) -> bool:
        return self._logged_in

    @property
    def connection(self) -> ImapConnection:
        """The live IMAP connection.

        Raises:
            ImapConnectionError: If :meth:`connect` has not succeeded.
        """
        if self._connection is None:
            raise ImapConnectionError("Not connected; call connect() first")
        return self._connection

    @property
    def mail_domain(self) -> str:
        return self.options.get("domain") or self.settings.mail_domain

    def connect(self) -> bool:
        """Open the IMAP connection.

        Returns:
            True when connected, False if the server could not be reached.
        """
        try:
            self.connect_or_raise()
        except ImapConnectionError:
            return False
        return True

    def connect_or_raise(self) -> ImapConnection:
        """Open the IMAP connection.

        Raises:
            ImapConnectionError: If the server could not be reached.
        """
        connection = self._connection or ImapConnection(
            self.settings.imap_host,
            self.settings.imap_port,
            timeout=self.settings.timeout,
        )
        connection.connect()
        self._connection = connection
        return connection

    @abstractmethod
    def login(self) -> bool:
        """Authenticate the connection.

        Returns:
            True on success, False when not connected or the server answered
            with a non-OK status.

        Raises:
            AuthorizationError: If the server rejected the credentials or did
                not respond.
        """

    def login_or_raise(self) -> bool:
        """Authenticate, raising :class:`AuthorizationError` on any failure."""
        if not self.login():
            raise AuthorizationError(self.username)
        return True

    def logout(self) -> bool:
        """End the session and close the connection.

        Returns:
            True if a session was open.
        """
        was_logged_in = self._logged_in
        self._logged_in = False
        if self._connection is not None:
            connection, self._connection = self._connection, None
            connection.disconnect()
        logger.info("imap_logged_out", scheme=self.scheme, username=self.username)
        return was_logged_in

    def smtp_settings(self) -> SmtpSettings:
        """SMTP parameters for the same account, reusing the secret as-is."""
        return SmtpSettings(
            address=self.settings.smtp_host,
            port=self.settings.smtp_port,
            domain=self.mail_domain,
            user_name=self.username,
            password=self.password,
            authentication="plain",
            enable_starttls_auto=True,
        )

    def _complete_login(self, typ: str) -> bool:
        self._logged_in = typ == "OK"
        if self._logged_in:
            logger.info("imap_login_succeeded", scheme=self.scheme, username=self.username)
        else:
            logger.warning(
                "imap_login_rejected", scheme=self.scheme, username=self.username, status=typ
            )
        return self._logged_in

    def __enter__(self) -> AuthStrategy:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.logout()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} username={self.username!r} logged_in={self.logged_in}>"
