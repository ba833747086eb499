"""Identifier decoding helpers shared by the gateway routes.

Attributes:
    nip19: Bech32 NIP-19 entity and bare hex decoding into plain payloads.
"""

from .nip19 import (
    ArticleCoordinate,
    DecodedIdentifier,
    EventPointer,
    IdentifierKind,
    ProfilePointer,
    decode,
)


__all__ = [
    "ArticleCoordinate",
    "DecodedIdentifier",
    "EventPointer",
    "IdentifierKind",
    "ProfilePointer",
    "decode",
]
