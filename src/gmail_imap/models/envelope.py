"""Address and envelope value objects with Gmail's persistent identifiers.

The envelope keeps the participants and header fields of one message together
with Gmail's message and thread ids. The ids are opaque: they are only stored,
compared and rendered, never computed with.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gmail_imap.imap.structures import ImapAddress, ImapEnvelope

PERMALINK_BASE = "https://mail.google.com/mail/#inbox/"


def _parse_date(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError, OverflowError):
        return None


class Address(BaseModel):
    """One mailbox reference from an envelope address list."""

    model_config = ConfigDict(frozen=True)

    mailbox: str | None = Field(default=None, description="Local part")
    name: str | None = Field(default=None, description="Display name")
    route: str | None = Field(default=None, description="Source route (obsolete)")
    host: str | None = Field(default=None, description="Domain part")

    @classmethod
    def from_source(cls, src: ImapAddress) -> Address:
        return cls(mailbox=src.mailbox, name=src.name, route=src.route, host=src.host)

    @property
    def recipient_address(self) -> str | None:
        """``mailbox@host``, or None when either part is missing."""
        if not self.mailbox or not self.host:
            return None
        return f"{self.mailbox}@{self.host}"


def _addresses(src: Iterable[ImapAddress] | None) -> tuple[Address, ...]:
    return tuple(Address.from_source(a) for a in src or ())


class Envelope(BaseModel):
    """Header-derived metadata of one message plus Gmail's persistent ids."""

    model_config = ConfigDict(frozen=True)

    sender: tuple[Address, ...] = Field(default=(), description="Sender addresses")
    to: tuple[Address, ...] = Field(default=(), description="To addresses")
    cc: tuple[Address, ...] = Field(default=(), description="Cc addresses")
    bcc: tuple[Address, ...] = Field(default=(), description="Bcc addresses")
    reply_to: Address | None = Field(default=None, description="First Reply-To address")

    subject: str | None = Field(default=None, description="Subject header")
    date: datetime | None = Field(default=None, description="Parsed Date header")
    in_reply_to: str | None = Field(default=None, description="Raw In-Reply-To header")
    message_id: str | None = Field(default=None, description="Raw Message-ID header")

    gm_msg_id: int | str | None = Field(
        default=None, description="Gmail message id (X-GM-MSGID), number or opaque token"
    )
    gm_thread_id: int | str | None = Field(
        default=None, description="Gmail thread id (X-GM-THRID), number or opaque token"
    )

    @field_validator("date", mode="before")
    @classmethod
    def _tolerate_bad_date(cls, value: Any) -> datetime | None:
        return _parse_date(value)

    @classmethod
    def from_source(
        cls,
        src: ImapEnvelope | None,
        gm_msg_id: int | str | None = None,
        gm_thread_id: int | str | None = None,
    ) -> Envelope:
        """Flatten a protocol envelope and attach the Gmail ids.

        The ids are not part of the ENVELOPE structure; they arrive as sibling
        attributes of the same FETCH response.
        """

        if src is None:
            return cls(gm_msg_id=gm_msg_id, gm_thread_id=gm_thread_id)

        reply_to = _addresses(src.reply_to)
        return cls(
            sender=_addresses(src.sender),
            to=_addresses(src.to),
            cc=_addresses(src.cc),
            bcc=_addresses(src.bcc),
            reply_to=reply_to[0] if reply_to else None,
            subject=src.subject,
            date=src.date,
            in_reply_to=src.in_reply_to,
            message_id=src.message_id,
            gm_msg_id=gm_msg_id,
            gm_thread_id=gm_thread_id,
        )

    @classmethod
    def from_attributes(cls, attr: Mapping[str, Any]) -> Envelope | None:
        """Build an envelope from a parsed FETCH attribute map.

        Returns:
            The envelope, or None if the map has no ENVELOPE attribute.
        """

        if "ENVELOPE" not in attr:
            return None
        return cls.from_source(
            attr["ENVELOPE"],
            gm_msg_id=attr.get("X-GM-MSGID"),
            gm_thread_id=attr.get("X-GM-THRID"),
        )

    def url(self) -> str | None:
        """Gmail web link for this message, or None without a message id."""
        if self.gm_msg_id is None:
            return None
        return f"{PERMALINK_BASE}{self.gm_msg_id}"
