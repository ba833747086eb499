"""Immutable data models for relays, relay lists, filters and records.

The bottom layer of the package: depends on nothing inside ``nostria`` and is
consumed by ``nostria.core``, ``nostria.utils`` and ``nostria.services``.

Attributes:
    Relay: Validated, normalized relay URL with network detection.
    RelayList: Deduplicated, insertion-ordered relay URL set.
    build_relay_list: Configuration-to-RelayList builder with fallback.
    IdFilter, AuthorKindsFilter, AddressFilter: The three query filter shapes.
    RawRecord: Validated signed event as received from a relay.
    PlainRecord, ProfileRecord, ArticleRecord: Record variants by kind.
"""

from .constants import (
    DEFAULT_RELAYS,
    EventKind,
    NetworkType,
    RelayPurpose,
    ServiceName,
)
from .filters import AddressFilter, AuthorKindsFilter, IdFilter, QueryFilter
from .record import (
    ArticleRecord,
    EnrichableRecord,
    PlainRecord,
    ProfileRecord,
    RawRecord,
    Record,
    is_addressable_kind,
    parse_profile_content,
    parse_record,
)
from .relay import Relay
from .relay_list import RelayList, build_relay_list


__all__ = [
    "DEFAULT_RELAYS",
    "AddressFilter",
    "ArticleRecord",
    "AuthorKindsFilter",
    "EnrichableRecord",
    "EventKind",
    "IdFilter",
    "NetworkType",
    "PlainRecord",
    "ProfileRecord",
    "QueryFilter",
    "RawRecord",
    "Record",
    "Relay",
    "RelayList",
    "RelayPurpose",
    "ServiceName",
    "build_relay_list",
    "is_addressable_kind",
    "parse_profile_content",
    "parse_record",
]
