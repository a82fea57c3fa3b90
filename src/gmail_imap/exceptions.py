"""Custom exceptions for the Gmail IMAP client."""

from __future__ import annotations


class GmailIMAPError(Exception):
    """Base exception for all Gmail IMAP client errors."""


class AuthorizationError(GmailIMAPError):
    """Exception raised when the server does not accept the credentials."""

    def __init__(self, username: str, message: str | None = None) -> None:
        self.username = username
        super().__init__(message or f"Couldn't login to given Gmail account: {username}")


class ConfigurationError(GmailIMAPError):
    """Exception raised for an unknown or conflicting authentication scheme."""

    def __init__(self, requested_scheme: str, message: str | None = None) -> None:
        self.requested_scheme = requested_scheme
        super().__init__(message or f"Unknown authentication scheme: {requested_scheme!r}")


class ParseError(GmailIMAPError):
    """Exception raised when a server response cannot be parsed.

    The reader is assumed to be out of sync with the stream afterwards, so the
    connection that produced the response should not be reused.
    """

    def __init__(self, offending_token: str, message: str | None = None) -> None:
        self.offending_token = offending_token
        super().__init__(message or f"unknown attribute `{offending_token}'")


class ImapConnectionError(GmailIMAPError):
    """Exception raised when the IMAP transport is unavailable."""


class CommandError(GmailIMAPError):
    """Exception raised when the server answers a command with NO or BAD."""

    def __init__(self, command: str, message: str) -> None:
        self.command = command
        super().__init__(f"{command} failed: {message}")
