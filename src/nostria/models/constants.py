"""Shared constants for the models layer.

Enumerations and defaults used by more than one model module. Keeping them
here avoids circular imports between models, utils and services.

See Also:
    [nostria.models.relay][]: Uses [NetworkType][nostria.models.constants.NetworkType]
        to classify relay URLs during construction.
    [nostria.models.record][]: Dispatches record variants on
        [EventKind][nostria.models.constants.EventKind] and the addressable
        kind range.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class NetworkType(StrEnum):
    """Network type detected from a relay hostname.

    ``LOCAL`` covers loopback, private and other special-purpose addresses;
    relay hints with such hosts are dropped.

    Warning:
        ``UNKNOWN`` makes [Relay][nostria.models.relay.Relay] construction
        fail. It never appears on a constructed instance.
    """

    CLEARNET = "clearnet"
    TOR = "tor"
    I2P = "i2p"
    LOKI = "loki"
    LOCAL = "local"
    UNKNOWN = "unknown"


class RelayPurpose(StrEnum):
    """Which default relay list a query draws on.

    Attributes:
        EVENT: Lookups by event id and article coordinate.
        PROFILE: Lookups of kind-0 profile metadata.
    """

    EVENT = "event"
    PROFILE = "profile"


class ServiceName(StrEnum):
    """Identifiers used in logging and metrics labels."""

    GATEWAY = "gateway"
    RESOLVER = "resolver"


class EventKind(IntEnum):
    """Nostr event kinds the resolver treats specially.

    Attributes:
        SET_METADATA: Kind 0 -- user profile metadata (NIP-01).
        TEXT_NOTE: Kind 1 -- short text note (NIP-01).
        LONG_FORM_CONTENT: Kind 30023 -- long-form article (NIP-23).
    """

    SET_METADATA = 0
    TEXT_NOTE = 1
    LONG_FORM_CONTENT = 30_023


# NIP-01 addressable (parameterized replaceable) kinds: 30000 <= kind < 40000
ADDRESSABLE_KIND_MIN = 30_000
ADDRESSABLE_KIND_MAX = 39_999

EVENT_KIND_MAX = 65_535

DEFAULT_RELAYS: tuple[str, ...] = (
    "wss://relay.damus.io",
    "wss://relay.nostr.band",
    "wss://nos.lol",
)
