"""Value objects for messages fetched from Gmail.

This module contains Pydantic models for the envelope and address data
lifted out of parsed FETCH responses.
"""

from gmail_imap.models.envelope import PERMALINK_BASE, Address, Envelope

__all__ = ["Address", "Envelope", "PERMALINK_BASE"]
