"""IMAP transport built on :mod:`imaplib`.

One connection carries one command at a time: every call blocks until the
tagged response for that command has arrived.
"""

from __future__ import annotations

import imaplib
from collections.abc import Sequence
from typing import Any

import structlog

from gmail_imap.exceptions import CommandError, ImapConnectionError
from gmail_imap.imap.response_parser import ATTRIBUTE_RULES, AttributeRules, parse_fetch_response
from gmail_imap.imap.structures import FetchData

logger = structlog.get_logger()


def join_fetch_data(data: Sequence[Any]) -> list[bytes]:
    """Re-assemble imaplib FETCH data into one response per message.

    imaplib splits a response at every literal: the text up to ``{n}`` and the
    literal payload arrive as a tuple, the rest of the line as the next item.
    Items following a tuple therefore belong to the same response.
    """

    responses: list[bytes] = []
    current: bytearray | None = None
    continues = False
    for item in data:
        if item is None:
            continue
        if isinstance(item, tuple):
            head, literal = item
            if current is None or not continues:
                if current is not None:
                    responses.append(bytes(current))
                current = bytearray()
            current += head + b"\r\n" + literal
            continues = True
            continue

        if continues and current is not None:
            current += item
        else:
            if current is not None:
                responses.append(bytes(current))
            current = bytearray(item)
        continues = False

    if current is not None:
        responses.append(bytes(current))
    return responses


def _format_attributes(attributes: str | Sequence[str]) -> str:
    if isinstance(attributes, str):
        return attributes if attributes.startswith("(") else f"({attributes})"
    return "(" + " ".join(attributes) + ")"


class ImapConnection:
    """A single IMAP-over-TLS connection.

    Args:
        host: IMAP server host name.
        port: IMAP server port.
        timeout: Socket timeout in seconds, or None to block indefinitely.
        rules: Attribute table handed to the FETCH response parser.
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float | None = None,
        rules: AttributeRules = ATTRIBUTE_RULES,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self._rules = rules
        self._imap: imaplib.IMAP4 | None = None

    @property
    def is_connected(self) -> bool:
        return self._imap is not None

    @property
    def handle(self) -> imaplib.IMAP4:
        """The underlying imaplib connection.

        Raises:
            ImapConnectionError: If the connection is not open.
        """

        if self._imap is None:
            raise ImapConnectionError(f"Not connected to {self.host}:{self.port}")
        return self._imap

    def connect(self) -> imaplib.IMAP4:
        """Open the connection if it is not open yet.

        Raises:
            ImapConnectionError: If the server cannot be reached.
        """

        if self._imap is not None:
            return self._imap

        logger.info("imap_connecting", host=self.host, port=self.port)
        try:
            self._imap = imaplib.IMAP4_SSL(self.host, self.port, timeout=self.timeout)
        except (OSError, imaplib.IMAP4.error) as exc:
            logger.error("imap_connect_failed", host=self.host, port=self.port, error=str(exc))
            raise ImapConnectionError(
                f"Couldn't establish connection with IMAP service at {self.host}:{self.port}"
            ) from exc

        logger.info("imap_connected", host=self.host, port=self.port)
        return self._imap

    def send(self, command: str, *args: Any) -> tuple[str, list[Any]]:
        """Issue one command and wait for its tagged response.

        Args:
            command: imaplib command name, e.g. ``"LOGIN"`` or ``"SELECT"``.
            args: Command arguments, passed through to imaplib.

        Returns:
            The tagged status (``"OK"``) and the untagged response data.

        Raises:
            CommandError: If the server answers NO or BAD.
            ImapConnectionError: If the connection is closed or drops.
        """

        imap = self.handle
        method = getattr(imap, command.lower())
        logger.debug("imap_command", command=command.upper())
        try:
            typ, data = method(*args)
        except imaplib.IMAP4.abort as exc:
            logger.error("imap_connection_aborted", command=command.upper(), error=str(exc))
            self._imap = None
            raise ImapConnectionError(f"{command.upper()}: connection aborted: {exc}") from exc
        except imaplib.IMAP4.error as exc:
            raise CommandError(command.upper(), str(exc)) from exc
        except OSError as exc:
            logger.error("imap_connection_lost", command=command.upper(), error=str(exc))
            self._imap = None
            raise ImapConnectionError(f"{command.upper()}: {exc}") from exc
        return typ, data

    def login(self, username: str, password: str) -> tuple[str, list[Any]]:
        return self.send("LOGIN", username, password)

    def authenticate(self, mechanism: str, payload: bytes) -> tuple[str, list[Any]]:
        """Run a SASL exchange that answers every challenge with ``payload``."""
        return self.send("AUTHENTICATE", mechanism, lambda _challenge: payload)

    def select(self, mailbox: str = "INBOX", readonly: bool = False) -> int:
        """Select a mailbox and return its message count."""

        typ, data = self.send("SELECT", mailbox, readonly)
        if typ != "OK":
            raise CommandError("SELECT", f"{mailbox}: {data!r}")
        return int(data[0] or 0)

    def fetch(
        self,
        message_set: str,
        attributes: str | Sequence[str],
        uid: bool = False,
    ) -> list[FetchData]:
        """Fetch attributes for a set of messages and parse the responses.

        Args:
            message_set: Sequence set, e.g. ``"1:*"`` or ``"4,7"``.
            attributes: Attribute names, e.g. ``["X-GM-MSGID", "ENVELOPE"]``.
            uid: Interpret ``message_set`` as UIDs.

        Raises:
            ParseError: If a response cannot be parsed; the connection should be discarded.
        """

        items = _format_attributes(attributes)
        if uid:
            typ, data = self.send("UID", "FETCH", message_set, items)
        else:
            typ, data = self.send("FETCH", message_set, items)
        if typ != "OK":
            raise CommandError("FETCH", f"{message_set}: {data!r}")

        results = [parse_fetch_response(line, self._rules) for line in join_fetch_data(data)]
        logger.info("imap_fetch_completed", message_set=message_set, count=len(results))
        return results

    def disconnect(self) -> None:
        """Send LOGOUT and close the socket.

        Raises:
            ImapConnectionError: If the server did not acknowledge the logout.
        """

        if self._imap is None:
            return
        imap, self._imap = self._imap, None
        try:
            imap.logout()
        except (OSError, imaplib.IMAP4.error) as exc:
            logger.warning("imap_logout_failed", host=self.host, error=str(exc))
            raise ImapConnectionError(f"LOGOUT failed: {exc}") from exc
        logger.info("imap_disconnected", host=self.host)

    def __enter__(self) -> ImapConnection:
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.disconnect()
