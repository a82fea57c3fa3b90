"""IMAP transport and FETCH response parsing.

This package contains the connection wrapper around imaplib and the
parser that turns FETCH responses, including Gmail's X-GM-MSGID and
X-GM-THRID attributes, into attribute maps.
"""

from .connection import ImapConnection
from .response_parser import (
    ATTRIBUTE_RULES,
    GMAIL_ATTRIBUTE_RULES,
    STANDARD_ATTRIBUTE_RULES,
    FetchResponseParser,
    parse_attributes,
    parse_fetch_response,
)
from .structures import FetchData, ImapAddress, ImapEnvelope
from .tokenizer import ResponseTokenizer, Token, TokenKind

__all__ = [
    "ATTRIBUTE_RULES",
    "GMAIL_ATTRIBUTE_RULES",
    "STANDARD_ATTRIBUTE_RULES",
    "FetchData",
    "FetchResponseParser",
    "ImapAddress",
    "ImapConnection",
    "ImapEnvelope",
    "ResponseTokenizer",
    "Token",
    "TokenKind",
    "parse_attributes",
    "parse_fetch_response",
]
