"""Caller identity for Poker Ledger."""

from pokerledger.auth.dependencies import get_identity, get_optional_identity
from pokerledger.auth.identity import Identity

__all__ = [
    "Identity",
    "get_identity",
    "get_optional_identity",
]
