"""
Query filters sent to relays.

Exactly one filter shape is used per query:

* ``IdFilter`` -- a single event by id.
* ``AuthorKindsFilter`` -- the newest event of the given kinds by an author
  (profile lookups use kind 0).
* ``AddressFilter`` -- an addressable event by author, kind and ``d`` tag.

Each filter converts itself to a ``nostr_sdk.Filter`` with ``limit(1)`` for
the wire, and can check locally whether a returned record actually satisfies
it. Relays are not trusted to honour filters, so the query client discards
non-matching records. Hex ids and pubkeys are stored lowercase, matching
the canonical form relays return.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from nostr_sdk import EventId, Filter, Kind, PublicKey

from ._validation import validate_int, validate_str_not_empty
from .constants import EVENT_KIND_MAX


if TYPE_CHECKING:
    from .record import RawRecord


@dataclass(frozen=True, slots=True)
class IdFilter:
    """Match a single event by its id."""

    event_id: str

    def __post_init__(self) -> None:
        validate_str_not_empty(self.event_id, "event_id")
        object.__setattr__(self, "event_id", self.event_id.lower())

    def to_nostr_filter(self) -> Filter:
        return Filter().id(EventId.parse(self.event_id)).limit(1)

    def matches(self, record: RawRecord) -> bool:
        return record.id == self.event_id

    def describe(self) -> str:
        return f"id:{self.event_id}"


@dataclass(frozen=True, slots=True)
class AuthorKindsFilter:
    """Match events of any of ``kinds`` published by ``author``."""

    author: str
    kinds: tuple[int, ...]

    def __post_init__(self) -> None:
        validate_str_not_empty(self.author, "author")
        object.__setattr__(self, "author", self.author.lower())
        if not self.kinds:
            raise ValueError("kinds must not be empty")
        for kind in self.kinds:
            validate_int(kind, "kind", maximum=EVENT_KIND_MAX)

    def to_nostr_filter(self) -> Filter:
        return (
            Filter()
            .author(PublicKey.parse(self.author))
            .kinds([Kind(k) for k in self.kinds])
            .limit(1)
        )

    def matches(self, record: RawRecord) -> bool:
        return record.pubkey == self.author and record.kind in self.kinds

    def describe(self) -> str:
        return f"author:{self.author} kinds:{','.join(map(str, self.kinds))}"


@dataclass(frozen=True, slots=True)
class AddressFilter:
    """Match the addressable event ``kind:author:identifier``."""

    author: str
    kind: int
    identifier: str

    def __post_init__(self) -> None:
        validate_str_not_empty(self.author, "author")
        object.__setattr__(self, "author", self.author.lower())
        validate_int(self.kind, "kind", maximum=EVENT_KIND_MAX)
        if not isinstance(self.identifier, str):
            raise TypeError(f"identifier must be a str, got {type(self.identifier).__name__}")

    def to_nostr_filter(self) -> Filter:
        return (
            Filter()
            .author(PublicKey.parse(self.author))
            .kind(Kind(self.kind))
            .identifier(self.identifier)
            .limit(1)
        )

    def matches(self, record: RawRecord) -> bool:
        return (
            record.pubkey == self.author
            and record.kind == self.kind
            and (record.tag_value("d") or "") == self.identifier
        )

    def describe(self) -> str:
        return f"address:{self.kind}:{self.author}:{self.identifier}"


QueryFilter = IdFilter | AuthorKindsFilter | AddressFilter
