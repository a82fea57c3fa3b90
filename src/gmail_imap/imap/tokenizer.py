"""Lexical analysis of a single IMAP server response.

The tokenizer works on raw bytes so that literals keep their exact payload.
Consumers look at the next token with :meth:`ResponseTokenizer.peek` and
consume it with :meth:`ResponseTokenizer.shift`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from gmail_imap.exceptions import ParseError


class TokenKind(str, Enum):
    """Token kinds produced by the tokenizer."""

    LPAR = "("
    RPAR = ")"
    LBRA = "["
    RBRA = "]"
    SPACE = "SPACE"
    STAR = "*"
    CRLF = "CRLF"
    NIL = "NIL"
    NUMBER = "NUMBER"
    ATOM = "ATOM"
    QUOTED = "QUOTED"
    LITERAL = "LITERAL"
    EOF = "EOF"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: Any
    position: int

    def text(self) -> str:
        """Render the token roughly as it appeared on the wire."""
        if self.kind in (TokenKind.QUOTED, TokenKind.LITERAL):
            return self.value.decode("utf-8", errors="replace")
        if self.kind in (TokenKind.ATOM, TokenKind.NUMBER):
            return str(self.value)
        if self.kind == TokenKind.SPACE:
            return " "
        if self.kind == TokenKind.CRLF:
            return "\r\n"
        if self.kind == TokenKind.EOF:
            return ""
        return self.kind.value


_SINGLE_CHAR_TOKENS = {
    ord("("): TokenKind.LPAR,
    ord(")"): TokenKind.RPAR,
    ord("["): TokenKind.LBRA,
    ord("]"): TokenKind.RBRA,
    ord(" "): TokenKind.SPACE,
    ord("*"): TokenKind.STAR,
}

# atom-char excludes atom-specials; "]" ends a section, so it is excluded too.
_ATOM_RE = re.compile(rb'[^\x00-\x1f\x7f-\xff(){ %*"\[\]]+')
_QUOTED_RE = re.compile(rb'"((?:[^"\\\r\n]|\\["\\])*)"')
_QUOTED_ESCAPE_RE = re.compile(rb"\\([\"\\])")
_LITERAL_RE = re.compile(rb"\{(\d+)\}\r\n")


class ResponseTokenizer:
    """Split one server response into tokens with one token of lookahead."""

    def __init__(self, data: bytes | str) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._data = data
        self._pos = 0
        self._token: Token | None = None

    @property
    def position(self) -> int:
        """Offset of the next unread token."""
        if self._token is not None:
            return self._token.position
        return self._pos

    def peek(self) -> Token:
        """Return the next token without consuming it."""
        if self._token is None:
            self._token = self._next_token()
        return self._token

    def shift(self) -> Token:
        """Consume and return the next token."""
        token = self.peek()
        self._token = None
        return token

    def match(self, *kinds: TokenKind) -> Token:
        """Consume the next token, which must be of one of ``kinds``."""
        token = self.peek()
        if token.kind not in kinds:
            expected = " or ".join(kind.name for kind in kinds)
            raise ParseError(
                token.text(),
                f"unexpected token {token.kind.name} {token.text()!r} at {token.position} "
                f"(expected {expected})",
            )
        return self.shift()

    def _next_token(self) -> Token:
        data = self._data
        pos = self._pos
        if pos >= len(data):
            return Token(TokenKind.EOF, None, pos)

        char = data[pos]
        kind = _SINGLE_CHAR_TOKENS.get(char)
        if kind is not None:
            self._pos = pos + 1
            return Token(kind, chr(char), pos)

        if data.startswith(b"\r\n", pos):
            self._pos = pos + 2
            return Token(TokenKind.CRLF, "\r\n", pos)

        if char == ord('"'):
            m = _QUOTED_RE.match(data, pos)
            if m is None:
                raise ParseError(
                    data[pos : pos + 20].decode("utf-8", errors="replace"),
                    f"unterminated quoted string at {pos}",
                )
            self._pos = m.end()
            return Token(TokenKind.QUOTED, _QUOTED_ESCAPE_RE.sub(rb"\1", m.group(1)), pos)

        if char == ord("{"):
            m = _LITERAL_RE.match(data, pos)
            if m is None:
                raise ParseError(
                    data[pos : pos + 20].decode("utf-8", errors="replace"),
                    f"malformed literal at {pos}",
                )
            start = m.end()
            end = start + int(m.group(1))
            if end > len(data):
                raise ParseError(
                    m.group(0).decode("ascii").strip(),
                    f"literal at {pos} runs past the end of the response",
                )
            self._pos = end
            return Token(TokenKind.LITERAL, data[start:end], pos)

        m = _ATOM_RE.match(data, pos)
        if m is None:
            raise ParseError(chr(char), f"unexpected character {chr(char)!r} at {pos}")
        self._pos = m.end()
        raw = m.group(0)
        if raw.isdigit():
            return Token(TokenKind.NUMBER, int(raw), pos)
        atom = raw.decode("ascii")
        if atom.upper() == "NIL":
            return Token(TokenKind.NIL, None, pos)
        return Token(TokenKind.ATOM, atom, pos)
