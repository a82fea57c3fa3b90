"""Entry points that build, connect and log in a strategy in one call."""

from __future__ import annotations

from typing import Any

import structlog

from gmail_imap.auth.base import AuthStrategy
from gmail_imap.auth.registry import StrategyRegistry, default_registry
from gmail_imap.config import Settings, get_settings

logger = structlog.get_logger()


def _build(
    username: str,
    args: tuple[Any, ...],
    scheme: str | None,
    registry: StrategyRegistry | None,
    settings: Settings | None,
    options: dict[str, Any],
) -> AuthStrategy:
    settings = settings or get_settings()
    registry = registry or default_registry()
    scheme = scheme or settings.default_scheme
    return registry.create(scheme, username, *args, settings=settings, **options)


def connect(
    username: str,
    *args: Any,
    scheme: str | None = None,
    registry: StrategyRegistry | None = None,
    settings: Settings | None = None,
    **options: Any,
) -> AuthStrategy:
    """Create a strategy by scheme name, connect it and log in.

    Failures to connect or log in are reported through ``logged_in`` rather
    than raised; use :func:`connect_or_raise` to fail loudly.

    Examples:
        >>> gmail = connect("foo@gmail.com", "password")  # doctest: +SKIP
        >>> gmail = connect(
        ...     "foo@gmail.com",
        ...     scheme="xoauth",
        ...     token="...",
        ...     secret="...",
        ... )  # doctest: +SKIP
        >>> with connect("foo@gmail.com", "password") as gmail:  # doctest: +SKIP
        ...     gmail.connection.select("INBOX")

    Raises:
        ConfigurationError: If the scheme is unknown.
        AuthorizationError: If the server rejected the credentials.
    """

    strategy = _build(username, args, scheme, registry, settings, options)
    if strategy.connect():
        strategy.login()
    logger.info(
        "gmail_client_connected",
        scheme=strategy.scheme,
        username=username,
        logged_in=strategy.logged_in,
    )
    return strategy


def connect_or_raise(
    username: str,
    *args: Any,
    scheme: str | None = None,
    registry: StrategyRegistry | None = None,
    settings: Settings | None = None,
    **options: Any,
) -> AuthStrategy:
    """Like :func:`connect`, but raise when connecting or logging in fails.

    Raises:
        ConfigurationError: If the scheme is unknown.
        ImapConnectionError: If the server could not be reached.
        AuthorizationError: If the server did not accept the credentials.
    """

    strategy = _build(username, args, scheme, registry, settings, options)
    strategy.connect_or_raise()
    strategy.login_or_raise()
    logger.info("gmail_client_connected", scheme=strategy.scheme, username=username, logged_in=True)
    return strategy
