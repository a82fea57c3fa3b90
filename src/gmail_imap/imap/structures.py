"""Protocol-level records produced by the FETCH response parser.

These mirror the IMAP4rev1 grammar (RFC 3501, section 9) field for field.
They are the raw material for the value objects in ``gmail_imap.models``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class ImapAddress:
    """One ``address`` production: ``(name adl mailbox host)``."""

    name: str | None
    route: str | None
    mailbox: str | None
    host: str | None


@dataclass(frozen=True)
class ImapEnvelope:
    """The ``envelope`` production, in wire order.

    Address lists are ``None`` when the server sent NIL.
    """

    date: str | None
    subject: str | None
    from_: tuple[ImapAddress, ...] | None
    sender: tuple[ImapAddress, ...] | None
    reply_to: tuple[ImapAddress, ...] | None
    to: tuple[ImapAddress, ...] | None
    cc: tuple[ImapAddress, ...] | None
    bcc: tuple[ImapAddress, ...] | None
    in_reply_to: str | None
    message_id: str | None


@dataclass(frozen=True)
class ContentDisposition:
    dsp_type: str | None
    param: dict[str, str] | None


@dataclass(frozen=True)
class BodyTypeBasic:
    """A non-text, non-message single part."""

    media_type: str | None
    subtype: str | None
    param: dict[str, str] | None = None
    content_id: str | None = None
    description: str | None = None
    encoding: str | None = None
    size: int | None = None
    md5: str | None = None
    disposition: ContentDisposition | None = None
    language: list[str] | str | None = None
    location: str | None = None
    extension: list[Any] | None = None

    @property
    def multipart(self) -> bool:
        return False


@dataclass(frozen=True)
class BodyTypeText(BodyTypeBasic):
    lines: int | None = None


@dataclass(frozen=True)
class BodyTypeMessage(BodyTypeBasic):
    """A ``MESSAGE/RFC822`` part carrying its own envelope and body."""

    envelope: ImapEnvelope | None = None
    body: Any = None
    lines: int | None = None


@dataclass(frozen=True)
class BodyTypeMultipart:
    media_type: str
    subtype: str | None
    parts: tuple[Any, ...] = ()
    param: dict[str, str] | None = None
    disposition: ContentDisposition | None = None
    language: list[str] | str | None = None
    location: str | None = None
    extension: list[Any] | None = None

    @property
    def multipart(self) -> bool:
        return True


@dataclass(frozen=True)
class FetchData:
    """One untagged FETCH response: the sequence number and its attributes."""

    seqno: int
    attr: dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        return self.attr.get(name.upper(), default)

    @property
    def internal_date(self) -> datetime | None:
        return self.attr.get("INTERNALDATE")
