"""Parser for IMAP FETCH responses, including Gmail's vendor attributes.

A FETCH response carries one message's attributes as a parenthesised list of
``NAME value`` pairs::

    * 12 FETCH (X-GM-MSGID 1484169545317055256 UID 4 FLAGS (\\Seen) ENVELOPE (...))

Attribute names are looked up in :data:`ATTRIBUTE_RULES`, an ordered table of
``(pattern, rule)`` pairs. Gmail's ``X-GM-MSGID`` and ``X-GM-THRID`` reuse the
UID value rule; they are added in :data:`GMAIL_ATTRIBUTE_RULES`, the one place
where the vendor vocabulary is defined.

An attribute name that matches no rule raises :class:`ParseError`. Skipping it
is not an option because the length of its value is unknown. When a name
appears twice in one response, the later value wins.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from gmail_imap.exceptions import ParseError
from gmail_imap.imap.structures import (
    BodyTypeBasic,
    BodyTypeMessage,
    BodyTypeMultipart,
    BodyTypeText,
    ContentDisposition,
    FetchData,
    ImapAddress,
    ImapEnvelope,
)
from gmail_imap.imap.tokenizer import ResponseTokenizer, Token, TokenKind

logger = structlog.get_logger()

AttributeRules = tuple[tuple[re.Pattern[str], str], ...]


def _rule(pattern: str) -> re.Pattern[str]:
    return re.compile(rf"\A(?:{pattern})\Z", re.IGNORECASE)


STANDARD_ATTRIBUTE_RULES: AttributeRules = (
    (_rule(r"ENVELOPE"), "envelope_data"),
    (_rule(r"FLAGS"), "flags_data"),
    (_rule(r"INTERNALDATE"), "internaldate_data"),
    (_rule(r"RFC822(?:\.HEADER|\.TEXT)?"), "rfc822_text"),
    (_rule(r"RFC822\.SIZE"), "rfc822_size"),
    (_rule(r"BODY(?:STRUCTURE)?"), "body_data"),
    (_rule(r"UID"), "uid_data"),
)

GMAIL_ATTRIBUTE_RULES: AttributeRules = (
    (_rule(r"X-GM-MSGID"), "uid_data"),
    (_rule(r"X-GM-THRID"), "uid_data"),
)

ATTRIBUTE_RULES: AttributeRules = STANDARD_ATTRIBUTE_RULES + GMAIL_ATTRIBUTE_RULES

_MONTHS = {
    "JAN": 1,
    "FEB": 2,
    "MAR": 3,
    "APR": 4,
    "MAY": 5,
    "JUN": 6,
    "JUL": 7,
    "AUG": 8,
    "SEP": 9,
    "OCT": 10,
    "NOV": 11,
    "DEC": 12,
}

_INTERNALDATE_RE = re.compile(
    r"\A ?(?P<day>\d{1,2})-(?P<mon>[A-Za-z]{3})-(?P<year>\d{4})"
    r" (?P<hour>\d{2}):(?P<min>\d{2}):(?P<sec>\d{2})"
    r" (?P<zonen>[-+])(?P<zoneh>\d{2})(?P<zonem>\d{2})\Z"
)

_SECTION_ORIGIN_RE = re.compile(r"\A<\d+>\Z")


def _decode(value: bytes) -> str:
    return value.decode("utf-8", errors="replace")


def parse_internaldate(value: str) -> datetime:
    """Convert an IMAP ``date-time`` (``17-Jul-1996 02:44:25 -0700``) to a datetime.

    Raises:
        ParseError: If the value is not a valid date-time.
    """

    m = _INTERNALDATE_RE.match(value)
    month = _MONTHS.get(m.group("mon").upper()) if m else None
    if m is None or month is None:
        raise ParseError(value, f"malformed INTERNALDATE {value!r}")

    offset = timedelta(hours=int(m.group("zoneh")), minutes=int(m.group("zonem")))
    if m.group("zonen") == "-":
        offset = -offset

    try:
        return datetime(
            int(m.group("year")),
            month,
            int(m.group("day")),
            int(m.group("hour")),
            int(m.group("min")),
            int(m.group("sec")),
            tzinfo=timezone(offset),
        )
    except ValueError as exc:
        raise ParseError(value, f"malformed INTERNALDATE {value!r}") from exc


class FetchResponseParser:
    """Recursive-descent parser for the ``msg-att`` production.

    Args:
        data: One complete FETCH response, literals inlined as ``{n}\\r\\n`` + data.
        rules: Attribute table to dispatch on. Defaults to :data:`ATTRIBUTE_RULES`.
    """

    def __init__(self, data: bytes | str, rules: AttributeRules = ATTRIBUTE_RULES) -> None:
        self._tokens = ResponseTokenizer(data)
        self._rules = rules

    def parse_fetch(self) -> FetchData:
        """Parse ``[* ]<seqno> [FETCH ](<msg-att>)``.

        imaplib files FETCH data under the ``FETCH`` key and strips the
        keyword, leaving ``<seqno> (<msg-att>)``; both forms are accepted.
        """

        if self._tokens.peek().kind == TokenKind.STAR:
            self._tokens.shift()
            self._tokens.match(TokenKind.SPACE)
        seqno = self._tokens.match(TokenKind.NUMBER).value
        self._tokens.match(TokenKind.SPACE)
        token = self._tokens.peek()
        if token.kind == TokenKind.ATOM:
            if token.value.upper() != "FETCH":
                raise ParseError(token.value, f"expected FETCH, got {token.value!r}")
            self._tokens.shift()
            self._tokens.match(TokenKind.SPACE)
        attr = self.msg_att()
        self._end_of_response()

        logger.debug("fetch_response_parsed", seqno=seqno, attributes=sorted(attr))
        return FetchData(seqno=seqno, attr=attr)

    def parse_attributes(self) -> dict[str, Any]:
        """Parse a bare ``(<msg-att>)`` list."""

        attr = self.msg_att()
        self._end_of_response()
        return attr

    def msg_att(self) -> dict[str, Any]:
        self._tokens.match(TokenKind.LPAR)
        attr: dict[str, Any] = {}
        while True:
            token = self._tokens.peek()
            if token.kind == TokenKind.RPAR:
                self._tokens.shift()
                break
            if token.kind == TokenKind.SPACE:
                self._tokens.shift()
                token = self._tokens.peek()

            rule = self._lookup_rule(token)
            name, value = getattr(self, rule)()
            if name in attr:
                logger.debug("fetch_attribute_repeated", attribute=name)
            attr[name] = value
        return attr

    def _lookup_rule(self, token: Token) -> str:
        if token.kind == TokenKind.EOF:
            raise ParseError("", "unexpected end of response inside attribute list")
        if token.kind == TokenKind.ATOM:
            for pattern, rule in self._rules:
                if pattern.match(token.value):
                    return rule
        raise ParseError(token.text(), f"unknown attribute `{token.text()}'")

    def _end_of_response(self) -> None:
        if self._tokens.peek().kind == TokenKind.CRLF:
            self._tokens.shift()
        self._tokens.match(TokenKind.EOF)

    # -- attribute rules -------------------------------------------------

    def envelope_data(self) -> tuple[str, ImapEnvelope | None]:
        name = self._tokens.shift().value.upper()
        self._tokens.match(TokenKind.SPACE)
        return name, self.envelope()

    def flags_data(self) -> tuple[str, tuple[str, ...]]:
        name = self._tokens.shift().value.upper()
        self._tokens.match(TokenKind.SPACE)
        return name, self.flag_list()

    def internaldate_data(self) -> tuple[str, datetime]:
        name = self._tokens.shift().value.upper()
        self._tokens.match(TokenKind.SPACE)
        token = self._tokens.match(TokenKind.QUOTED)
        return name, parse_internaldate(_decode(token.value))

    def rfc822_text(self) -> tuple[str, bytes | None]:
        name = self._tokens.shift().value.upper()
        self._tokens.match(TokenKind.SPACE)
        return name, self.nstring_bytes()

    def rfc822_size(self) -> tuple[str, int | None]:
        name = self._tokens.shift().value.upper()
        self._tokens.match(TokenKind.SPACE)
        return name, self.number()

    def body_data(self) -> tuple[str, Any]:
        name = self._tokens.shift().value.upper()
        if self._tokens.peek().kind == TokenKind.SPACE:
            self._tokens.shift()
            return name, self.body()

        name += self.section()
        token = self._tokens.peek()
        if token.kind == TokenKind.ATOM and _SECTION_ORIGIN_RE.match(token.value):
            name += token.value
            self._tokens.shift()
        self._tokens.match(TokenKind.SPACE)
        return name, self.nstring_bytes()

    def uid_data(self) -> tuple[str, int | None]:
        name = self._tokens.shift().value.upper()
        self._tokens.match(TokenKind.SPACE)
        return name, self.number()

    # -- envelope ---------------------------------------------------------

    def envelope(self) -> ImapEnvelope | None:
        if self._tokens.peek().kind == TokenKind.NIL:
            self._tokens.shift()
            return None

        self._tokens.match(TokenKind.LPAR)
        date = self.nstring()
        self._tokens.match(TokenKind.SPACE)
        subject = self.nstring()
        self._tokens.match(TokenKind.SPACE)
        from_ = self.address_list()
        self._tokens.match(TokenKind.SPACE)
        sender = self.address_list()
        self._tokens.match(TokenKind.SPACE)
        reply_to = self.address_list()
        self._tokens.match(TokenKind.SPACE)
        to = self.address_list()
        self._tokens.match(TokenKind.SPACE)
        cc = self.address_list()
        self._tokens.match(TokenKind.SPACE)
        bcc = self.address_list()
        self._tokens.match(TokenKind.SPACE)
        in_reply_to = self.nstring()
        self._tokens.match(TokenKind.SPACE)
        message_id = self.nstring()
        self._tokens.match(TokenKind.RPAR)
        return ImapEnvelope(
            date=date,
            subject=subject,
            from_=from_,
            sender=sender,
            reply_to=reply_to,
            to=to,
            cc=cc,
            bcc=bcc,
            in_reply_to=in_reply_to,
            message_id=message_id,
        )

    def address_list(self) -> tuple[ImapAddress, ...] | None:
        if self._tokens.peek().kind == TokenKind.NIL:
            self._tokens.shift()
            return None

        self._tokens.match(TokenKind.LPAR)
        addresses: list[ImapAddress] = []
        while True:
            token = self._tokens.peek()
            if token.kind == TokenKind.RPAR:
                self._tokens.shift()
                break
            if token.kind == TokenKind.SPACE:
                self._tokens.shift()
            addresses.append(self.address())
        return tuple(addresses)

    def address(self) -> ImapAddress:
        self._tokens.match(TokenKind.LPAR)
        name = self.nstring()
        self._tokens.match(TokenKind.SPACE)
        route = self.nstring()
        self._tokens.match(TokenKind.SPACE)
        mailbox = self.nstring()
        self._tokens.match(TokenKind.SPACE)
        host = self.nstring()
        self._tokens.match(TokenKind.RPAR)
        return ImapAddress(name=name, route=route, mailbox=mailbox, host=host)

    def flag_list(self) -> tuple[str, ...]:
        self._tokens.match(TokenKind.LPAR)
        flags: list[str] = []
        while True:
            token = self._tokens.shift()
            if token.kind == TokenKind.RPAR:
                break
            if token.kind == TokenKind.SPACE:
                continue
            if token.kind not in (TokenKind.ATOM, TokenKind.NUMBER):
                raise ParseError(token.text(), f"unexpected token in flag list: {token.text()!r}")
            flags.append(str(token.value))
        return tuple(flags)

    # -- body structure ---------------------------------------------------

    def section(self) -> str:
        """Consume ``[section-spec]`` and return it verbatim, brackets included."""

        self._tokens.match(TokenKind.LBRA)
        parts = ["["]
        while True:
            token = self._tokens.shift()
            if token.kind == TokenKind.RBRA:
                parts.append("]")
                return "".join(parts)
            if token.kind == TokenKind.EOF:
                raise ParseError("[", "unterminated section specification")
            if token.kind == TokenKind.QUOTED:
                parts.append(f'"{token.text()}"')
            else:
                parts.append(token.text().upper())

    def body(self) -> Any:
        if self._tokens.peek().kind == TokenKind.NIL:
            self._tokens.shift()
            return None

        self._tokens.match(TokenKind.LPAR)
        if self._tokens.peek().kind == TokenKind.LPAR:
            result = self.body_type_mpart()
        else:
            result = self.body_type_1part()
        self._tokens.match(TokenKind.RPAR)
        return result

    def body_type_1part(self) -> BodyTypeBasic:
        media_type, subtype = self.media_type()
        if media_type == "TEXT":
            return self.body_type_text(media_type, subtype)
        if media_type == "MESSAGE" and subtype == "RFC822":
            return self.body_type_msg(media_type, subtype)
        return self.body_type_basic(media_type, subtype)

    def body_type_basic(self, media_type: str | None, subtype: str | None) -> BodyTypeBasic:
        if self._tokens.peek().kind == TokenKind.RPAR:
            return BodyTypeBasic(media_type, subtype)
        self._tokens.match(TokenKind.SPACE)
        fields = self.body_fields()
        return BodyTypeBasic(media_type, subtype, *fields, **self.body_ext_1part())

    def body_type_text(self, media_type: str | None, subtype: str | None) -> BodyTypeText:
        self._tokens.match(TokenKind.SPACE)
        fields = self.body_fields()
        self._tokens.match(TokenKind.SPACE)
        lines = self.number()
        return BodyTypeText(media_type, subtype, *fields, lines=lines, **self.body_ext_1part())

    def body_type_msg(self, media_type: str | None, subtype: str | None) -> BodyTypeMessage:
        self._tokens.match(TokenKind.SPACE)
        fields = self.body_fields()
        self._tokens.match(TokenKind.SPACE)
        envelope = self.envelope()
        self._tokens.match(TokenKind.SPACE)
        body = self.body()
        self._tokens.match(TokenKind.SPACE)
        lines = self.number()
        return BodyTypeMessage(
            media_type,
            subtype,
            *fields,
            envelope=envelope,
            body=body,
            lines=lines,
            **self.body_ext_1part(),
        )

    def body_type_mpart(self) -> BodyTypeMultipart:
        parts = []
        while True:
            token = self._tokens.peek()
            if token.kind == TokenKind.SPACE:
                self._tokens.shift()
                break
            if token.kind != TokenKind.LPAR:
                break
            parts.append(self.body())
        subtype = self.case_insensitive_string()
        return BodyTypeMultipart("MULTIPART", subtype, tuple(parts), **self.body_ext_mpart())

    def media_type(self) -> tuple[str | None, str | None]:
        media_type = self.case_insensitive_string()
        if self._tokens.peek().kind != TokenKind.SPACE:
            return media_type, None
        self._tokens.match(TokenKind.SPACE)
        return media_type, self.case_insensitive_string()

    def body_fields(self) -> tuple[Any, ...]:
        param = self.body_fld_param()
        self._tokens.match(TokenKind.SPACE)
        content_id = self.nstring()
        self._tokens.match(TokenKind.SPACE)
        description = self.nstring()
        self._tokens.match(TokenKind.SPACE)
        encoding = self.case_insensitive_string()
        self._tokens.match(TokenKind.SPACE)
        size = self.number()
        return param, content_id, description, encoding, size

    def body_ext_1part(self) -> dict[str, Any]:
        ext: dict[str, Any] = {}
        for key, rule in (
            ("md5", self.nstring),
            ("disposition", self.body_fld_dsp),
            ("language", self.body_fld_lang),
            ("location", self.nstring),
            ("extension", self.body_extensions),
        ):
            if self._tokens.peek().kind != TokenKind.SPACE:
                break
            self._tokens.shift()
            ext[key] = rule()
        return ext

    def body_ext_mpart(self) -> dict[str, Any]:
        ext: dict[str, Any] = {}
        for key, rule in (
            ("param", self.body_fld_param),
            ("disposition", self.body_fld_dsp),
            ("language", self.body_fld_lang),
            ("location", self.nstring),
            ("extension", self.body_extensions),
        ):
            if self._tokens.peek().kind != TokenKind.SPACE:
                break
            self._tokens.shift()
            ext[key] = rule()
        return ext

    def body_fld_param(self) -> dict[str, str] | None:
        if self._tokens.peek().kind == TokenKind.NIL:
            self._tokens.shift()
            return None

        self._tokens.match(TokenKind.LPAR)
        param: dict[str, str] = {}
        while True:
            token = self._tokens.peek()
            if token.kind == TokenKind.RPAR:
                self._tokens.shift()
                break
            if token.kind == TokenKind.SPACE:
                self._tokens.shift()
            name = self.case_insensitive_string()
            self._tokens.match(TokenKind.SPACE)
            value = self.string()
            if name is not None:
                param[name] = value
        return param

    def body_fld_dsp(self) -> ContentDisposition | None:
        if self._tokens.peek().kind == TokenKind.NIL:
            self._tokens.shift()
            return None

        self._tokens.match(TokenKind.LPAR)
        dsp_type = self.case_insensitive_string()
        self._tokens.match(TokenKind.SPACE)
        param = self.body_fld_param()
        self._tokens.match(TokenKind.RPAR)
        return ContentDisposition(dsp_type=dsp_type, param=param)

    def body_fld_lang(self) -> list[str] | str | None:
        if self._tokens.peek().kind != TokenKind.LPAR:
            return self.case_insensitive_string()

        self._tokens.shift()
        languages: list[str] = []
        while True:
            token = self._tokens.peek()
            if token.kind == TokenKind.RPAR:
                self._tokens.shift()
                break
            if token.kind == TokenKind.SPACE:
                self._tokens.shift()
            language = self.case_insensitive_string()
            if language is not None:
                languages.append(language)
        return languages

    def body_extensions(self) -> list[Any]:
        extensions: list[Any] = []
        while True:
            token = self._tokens.peek()
            if token.kind in (TokenKind.RPAR, TokenKind.EOF):
                break
            if token.kind == TokenKind.SPACE:
                self._tokens.shift()
                continue
            extensions.append(self.body_extension())
        return extensions

    def body_extension(self) -> Any:
        token = self._tokens.peek()
        if token.kind == TokenKind.LPAR:
            self._tokens.shift()
            nested = self.body_extensions()
            self._tokens.match(TokenKind.RPAR)
            return nested
        if token.kind == TokenKind.NUMBER:
            return self.number()
        return self.nstring()

    # -- primitives -------------------------------------------------------

    def nstring(self) -> str | None:
        if self._tokens.peek().kind == TokenKind.NIL:
            self._tokens.shift()
            return None
        return self.string()

    def nstring_bytes(self) -> bytes | None:
        token = self._tokens.match(TokenKind.NIL, TokenKind.QUOTED, TokenKind.LITERAL)
        return token.value

    def string(self) -> str:
        token = self._tokens.match(TokenKind.QUOTED, TokenKind.LITERAL)
        return _decode(token.value)

    def case_insensitive_string(self) -> str | None:
        token = self._tokens.peek()
        if token.kind == TokenKind.NIL:
            self._tokens.shift()
            return None
        if token.kind == TokenKind.ATOM:
            self._tokens.shift()
            return token.value.upper()
        return self.string().upper()

    def number(self) -> int | None:
        token = self._tokens.match(TokenKind.NUMBER, TokenKind.NIL)
        return token.value


def parse_fetch_response(data: bytes | str, rules: AttributeRules = ATTRIBUTE_RULES) -> FetchData:
    """Parse one untagged FETCH response line.

    Raises:
        ParseError: If the line is malformed or names an unknown attribute.
    """

    return FetchResponseParser(data, rules).parse_fetch()


def parse_attributes(data: bytes | str, rules: AttributeRules = ATTRIBUTE_RULES) -> dict[str, Any]:
    """Parse a bare attribute list such as ``(UID 4 X-GM-MSGID 1)``."""

    return FetchResponseParser(data, rules).parse_attributes()
