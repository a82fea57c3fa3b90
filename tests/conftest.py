"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import imaplib
import io
from typing import Any

import pytest


SAMPLE_ENVELOPE = (
    b'ENVELOPE ("Tue, 15 Oct 2024 10:00:00 +0000" "Weekly report" '
    b'(("Foo Bar" NIL "foo" "example.com")) '
    b'(("Foo Bar" NIL "foo" "example.com")) '
    b'(("Replies" NIL "replies" "example.com")) '
    b'((NIL NIL "bar" "example.com") ("Baz" NIL "baz" "example.org")) '
    b'NIL NIL NIL "<abc@example.com>")'
)


class FakeIMAP:
    """Stand-in for imaplib.IMAP4_SSL that never touches the network."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.host: str | None = None
        self.port: int | None = None
        self.timeout: float | None = None
        self.login_result: tuple[str, list[bytes]] = ("OK", [b"LOGIN completed"])
        self.login_error: Exception | None = None
        self.authenticate_result: tuple[str, list[bytes]] = ("OK", [b"AUTHENTICATE completed"])
        self.authenticate_error: Exception | None = None
        self.auth_payload: bytes | None = None
        self.fetch_data: list[Any] = []
        self.logout_error: Exception | None = None
        self.logged_out = False

    def open(self, host: str, port: int, timeout: float | None = None) -> FakeIMAP:
        self.host, self.port, self.timeout = host, port, timeout
        return self

    def login(self, user: str, password: str) -> tuple[str, list[bytes]]:
        self.calls.append(("LOGIN", user, password))
        if self.login_error is not None:
            raise self.login_error
        return self.login_result

    def authenticate(self, mechanism: str, authobject: Any) -> tuple[str, list[bytes]]:
        self.auth_payload = authobject(b"")
        self.calls.append(("AUTHENTICATE", mechanism))
        if self.authenticate_error is not None:
            raise self.authenticate_error
        return self.authenticate_result

    def select(self, mailbox: str = "INBOX", readonly: bool = False) -> tuple[str, list[bytes]]:
        self.calls.append(("SELECT", mailbox, readonly))
        return "OK", [b"3"]

    def fetch(self, message_set: str, parts: str) -> tuple[str, list[Any]]:
        self.calls.append(("FETCH", message_set, parts))
        return "OK", self.fetch_data

    def uid(self, command: str, *args: Any) -> tuple[str, list[Any]]:
        self.calls.append(("UID", command, *args))
        return "OK", self.fetch_data

    def logout(self) -> tuple[str, list[bytes]]:
        self.calls.append(("LOGOUT",))
        if self.logout_error is not None:
            raise self.logout_error
        self.logged_out = True
        return "BYE", [b"LOGOUT Requested"]


class ScriptedIMAP(imaplib.IMAP4):
    """A real imaplib.IMAP4 reading from an in-memory server.

    Every command is answered with the untagged lines in ``replies`` for its
    name, then a tagged OK. Replacing only the I/O methods keeps imaplib's own
    response handling in play, as IMAP4_stream does.
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float | None,
        replies: dict[str, bytes],
    ) -> None:
        self.replies = {
            "CAPABILITY": b"* CAPABILITY IMAP4rev1 X-GM-EXT-1\r\n",
            "LOGOUT": b"* BYE LOGOUT Requested\r\n",
            **replies,
        }
        self.sent: list[bytes] = []
        super().__init__(host, port, timeout)

    def open(self, host: str = "", port: int = imaplib.IMAP4_PORT, timeout: float | None = None):
        self.host, self.port, self.timeout = host, port, timeout
        self._incoming = io.BytesIO(b"* OK Gimap ready\r\n")

    def read(self, size: int) -> bytes:
        return self._incoming.read(size)

    def readline(self) -> bytes:
        return self._incoming.readline()

    def send(self, data: bytes) -> None:
        self.sent.append(data)
        tag, command = data.rstrip(b"\r\n").split(b" ", 2)[:2]
        pending = self._incoming.read()
        reply = self.replies.get(command.decode().upper(), b"")
        self._incoming = io.BytesIO(pending + reply + tag + b" OK " + command + b" completed\r\n")

    def shutdown(self) -> None:
        self._incoming.close()


@pytest.fixture
def mock_settings():
    """Provide settings for testing."""
    from gmail_imap.config import Settings

    return Settings(
        imap_host="imap.test",
        imap_port=9993,
        smtp_host="smtp.test",
        smtp_port=2587,
        timeout=5.0,
        log_level="DEBUG",
        debug=True,
    )


@pytest.fixture
def fake_imap(monkeypatch: pytest.MonkeyPatch) -> FakeIMAP:
    """Replace imaplib.IMAP4_SSL with a FakeIMAP shared by the test."""
    server = FakeIMAP()
    monkeypatch.setattr(imaplib, "IMAP4_SSL", server.open)
    return server


@pytest.fixture
def scripted_imap(monkeypatch: pytest.MonkeyPatch) -> dict[str, bytes]:
    """Open every connection as a ScriptedIMAP; fill the returned dict to script replies."""
    replies: dict[str, bytes] = {}

    def open_scripted(host: str, port: int, timeout: float | None = None) -> ScriptedIMAP:
        return ScriptedIMAP(host, port, timeout, replies)

    monkeypatch.setattr(imaplib, "IMAP4_SSL", open_scripted)
    return replies


@pytest.fixture
def unreachable_imap(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make every connection attempt fail like an unreachable host."""

    def refuse(host: str, port: int, timeout: float | None = None) -> None:
        raise ConnectionRefusedError(111, "Connection refused")

    monkeypatch.setattr(imaplib, "IMAP4_SSL", refuse)


@pytest.fixture
def sample_fetch_line() -> bytes:
    """Provide a FETCH response with Gmail attributes around the envelope."""
    return (
        b"* 12 FETCH (X-GM-THRID 1484169545317055256 X-GM-MSGID 1484169545317055256 "
        b"UID 4 FLAGS (\\Seen $Forwarded) " + SAMPLE_ENVELOPE + b")"
    )


@pytest.fixture
def sample_envelope() -> bytes:
    """Provide an ENVELOPE attribute with two To addresses and no Cc."""
    return SAMPLE_ENVELOPE
