"""NIP-19 identifier decoding for the gateway routes.

Routes accept either bare hex or a bech32 entity. This module turns both
into a [DecodedIdentifier][nostria.utils.nip19.DecodedIdentifier] whose
payload carries plain hex strings and relay URL strings, so nothing
downstream touches ``nostr_sdk`` types.

| Prefix     | Kind                  | Payload                                  |
|------------|-----------------------|------------------------------------------|
| ``note``   | ``note-id``           | hex event id                             |
| ``nevent`` | ``event-pointer``     | [EventPointer][nostria.utils.nip19.EventPointer]       |
| ``npub``   | ``public-key``        | hex pubkey                               |
| ``nprofile`` | ``profile-pointer``  | [ProfilePointer][nostria.utils.nip19.ProfilePointer]   |
| ``naddr``  | ``article-coordinate``| [ArticleCoordinate][nostria.utils.nip19.ArticleCoordinate] |

Bare 64-character hex decodes as ``note-id`` or ``public-key`` depending on
the ``hex_kind`` the caller expects.

See Also:
    [Gateway][nostria.services.gateway.service.Gateway]: Consumes decoded
        identifiers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from nostr_sdk import EventId, Nip19Coordinate, Nip19Event, Nip19Profile, NostrSdkError, PublicKey

from nostria.core.exceptions import PreconditionError
from nostria.models._validation import is_hex


class IdentifierKind(StrEnum):
    """Kinds of identifier a route can receive."""

    NOTE_ID = "note-id"
    EVENT_POINTER = "event-pointer"
    PUBLIC_KEY = "public-key"
    PROFILE_POINTER = "profile-pointer"
    ARTICLE_COORDINATE = "article-coordinate"


@dataclass(frozen=True, slots=True)
class EventPointer:
    event_id: str
    relays: tuple[str, ...] = ()
    author: str | None = None
    kind: int | None = None


@dataclass(frozen=True, slots=True)
class ProfilePointer:
    pubkey: str
    relays: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ArticleCoordinate:
    pubkey: str
    kind: int
    identifier: str
    relays: tuple[str, ...] = ()


Payload = str | EventPointer | ProfilePointer | ArticleCoordinate


@dataclass(frozen=True, slots=True)
class DecodedIdentifier:
    """Result of [decode()][nostria.utils.nip19.decode].

    Attributes:
        kind: Which identifier family was decoded.
        payload: Hex string for ``note-id`` and ``public-key``; a pointer
            dataclass otherwise.
    """

    kind: IdentifierKind
    payload: Payload

    @property
    def relays(self) -> tuple[str, ...]:
        """Relay hints embedded in the identifier (empty for bare ids)."""
        if isinstance(self.payload, str):
            return ()
        return self.payload.relays


def _relay_strings(relays: Any) -> tuple[str, ...]:
    return tuple(str(relay) for relay in relays or ())


def _decode_bech32(identifier: str) -> DecodedIdentifier:
    if identifier.startswith("npub1"):
        return DecodedIdentifier(IdentifierKind.PUBLIC_KEY, PublicKey.parse(identifier).to_hex())

    if identifier.startswith("note1"):
        return DecodedIdentifier(IdentifierKind.NOTE_ID, EventId.parse(identifier).to_hex())

    if identifier.startswith("nprofile1"):
        profile = Nip19Profile.from_bech32(identifier)
        return DecodedIdentifier(
            IdentifierKind.PROFILE_POINTER,
            ProfilePointer(
                pubkey=profile.public_key().to_hex(),
                relays=_relay_strings(profile.relays()),
            ),
        )

    if identifier.startswith("nevent1"):
        event = Nip19Event.from_bech32(identifier)
        author = event.author()
        kind = event.kind()
        return DecodedIdentifier(
            IdentifierKind.EVENT_POINTER,
            EventPointer(
                event_id=event.event_id().to_hex(),
                relays=_relay_strings(event.relays()),
                author=author.to_hex() if author is not None else None,
                kind=kind.as_u16() if kind is not None else None,
            ),
        )

    if identifier.startswith("naddr1"):
        naddr = Nip19Coordinate.from_bech32(identifier)
        coordinate = naddr.coordinate()
        return DecodedIdentifier(
            IdentifierKind.ARTICLE_COORDINATE,
            ArticleCoordinate(
                pubkey=coordinate.public_key().to_hex(),
                kind=coordinate.kind().as_u16(),
                identifier=coordinate.identifier(),
                relays=_relay_strings(naddr.relays()),
            ),
        )

    raise PreconditionError(f"unsupported identifier prefix: {identifier[:12]!r}")


def decode(identifier: str, *, hex_kind: IdentifierKind | None = None) -> DecodedIdentifier:
    """Decode a route identifier.

    Args:
        identifier: Bech32 NIP-19 entity or 64-character hex.
        hex_kind: How to interpret bare hex (``NOTE_ID`` or ``PUBLIC_KEY``).
            When ``None``, bare hex is rejected.

    Returns:
        The decoded identifier.

    Raises:
        PreconditionError: If the identifier is empty, malformed, or of an
            unsupported type.

    Examples:
        ```python
        decoded = decode("npub1...")
        assert decoded.kind is IdentifierKind.PUBLIC_KEY
        ```
    """
    if not isinstance(identifier, str) or not identifier.strip():
        raise PreconditionError("identifier is required")

    identifier = identifier.strip().lower()
    if is_hex(identifier, 64):
        if hex_kind is None:
            raise PreconditionError("bare hex is not accepted here")
        return DecodedIdentifier(hex_kind, identifier)

    try:
        return _decode_bech32(identifier)
    except NostrSdkError as e:
        raise PreconditionError(f"invalid NIP-19 identifier: {e}") from e
