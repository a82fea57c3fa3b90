"""Name-to-strategy lookup for authentication schemes.

A registry is an explicit value: build it once at start-up (usually with
:func:`default_registry`), then share it read-only between clients.
"""

from __future__ import annotations

import inspect
from typing import Any

import structlog

from gmail_imap.auth.base import AuthStrategy
from gmail_imap.exceptions import ConfigurationError

logger = structlog.get_logger()


class StrategyRegistry:
    """Maps case-insensitive scheme names to :class:`AuthStrategy` subclasses."""

    def __init__(self) -> None:
        self._strategies: dict[str, type[AuthStrategy]] = {}

    def register(self, name: str, strategy_cls: type[AuthStrategy]) -> None:
        """Associate ``name`` with ``strategy_cls``.

        Raises:
            ConfigurationError: If the name is taken or the class is not a strategy.
        """
        key = name.lower()
        if not (isinstance(strategy_cls, type) and issubclass(strategy_cls, AuthStrategy)):
            raise ConfigurationError(name, f"{strategy_cls!r} is not an AuthStrategy subclass")
        if key in self._strategies:
            raise ConfigurationError(name, f"Authentication scheme {name!r} is already registered")
        self._strategies[key] = strategy_cls

    def resolve(self, name: str) -> type[AuthStrategy]:
        """Return the strategy class registered under ``name``.

        Raises:
            ConfigurationError: If no strategy is registered under ``name``.
        """
        try:
            return self._strategies[name.lower()]
        except KeyError:
            raise ConfigurationError(name) from None

    def create(self, name: str, username: str, *args: Any, **options: Any) -> AuthStrategy:
        """Resolve ``name`` and construct the strategy for ``username``.

        Raises:
            ConfigurationError: If the scheme is unknown or does not accept the
                given credentials and options.
        """
        strategy_cls = self.resolve(name)
        try:
            inspect.signature(strategy_cls).bind(username, *args, **options)
        except TypeError as exc:
            raise ConfigurationError(name, f"Invalid arguments for scheme {name!r}: {exc}") from exc
        logger.debug("auth_strategy_resolved", scheme=name.lower(), strategy=strategy_cls.__name__)
        return strategy_cls(username, *args, **options)

    def names(self) -> list[str]:
        return sorted(self._strategies)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._strategies

    def __len__(self) -> int:
        return len(self._strategies)


def default_registry() -> StrategyRegistry:
    """Build a registry holding the built-in schemes."""
    from gmail_imap.auth.oauth2 import OAuth2Auth
    from gmail_imap.auth.plain import PlainAuth
    from gmail_imap.auth.xoauth import XOAuth

    registry = StrategyRegistry()
    for strategy_cls in (PlainAuth, XOAuth, OAuth2Auth):
        registry.register(strategy_cls.scheme, strategy_cls)
    return registry
