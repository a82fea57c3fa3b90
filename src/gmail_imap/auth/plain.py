"""Username and password authentication (IMAP LOGIN)."""

from __future__ import annotations

from typing import Any

import structlog

from gmail_imap.auth.base import AuthStrategy
from gmail_imap.config import Settings
from gmail_imap.exceptions import AuthorizationError, CommandError, ImapConnectionError

logger = structlog.get_logger()


class PlainAuth(AuthStrategy):
    """Log in with a password or an application-specific password."""

    scheme = "plain"

    def __init__(
        self,
        username: str,
        password: str,
        settings: Settings | None = None,
        **options: Any,
    ) -> None:
        super().__init__(username, settings=settings, **options)
        self.password = password

    def login(self) -> bool:
        if self._connection is None:
            return False

        try:
            typ, _ = self._connection.login(self.username, self.password)
        except (CommandError, ImapConnectionError) as exc:
            logger.warning("imap_login_failed", scheme=self.scheme, username=self.username)
            raise AuthorizationError(self.username) from exc
        return self._complete_login(typ)
