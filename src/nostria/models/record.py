"""
Relay records as a tagged variant over event kinds.

Relays answer with signed JSON events. The resolver treats the payload as
opaque except for the author key, the kind and the content, but it does not
trust the shape: [RawRecord.from_dict()][nostria.models.record.RawRecord.from_dict]
validates every field before anything else sees it.

A validated ``RawRecord`` is then classified by
[parse_record()][nostria.models.record.parse_record]:

* ``ProfileRecord`` -- kind 0; ``content`` parsed as profile JSON. A parse
  failure degrades to an empty profile, never an error.
* ``ArticleRecord`` -- addressable kinds (30000-39999); carries the ``d``
  tag identifier.
* ``PlainRecord`` -- everything else.

``PlainRecord`` and ``ArticleRecord`` may carry the author's resolved
``ProfileRecord``; [with_author()][nostria.models.record.PlainRecord.with_author]
returns a new record since all records are immutable.

See Also:
    [nostria.models.filters][]: Query filters that test records with
        ``matches()``.
    [Resolver][nostria.services.resolver.service.Resolver]: Produces and
        enriches these records.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Self

from ._validation import deep_freeze, thaw, validate_hex, validate_int, validate_str_no_null
from .constants import ADDRESSABLE_KIND_MAX, ADDRESSABLE_KIND_MIN, EVENT_KIND_MAX, EventKind


if TYPE_CHECKING:
    from nostr_sdk import Event as NostrEvent


logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("id", "pubkey", "created_at", "kind", "tags", "content", "sig")


@dataclass(frozen=True, slots=True)
class RawRecord:
    """Unmodified signed event as received from a relay.

    Attributes:
        id: Event id, 64 lowercase hex chars.
        pubkey: Author public key, 64 lowercase hex chars.
        created_at: Unix timestamp of creation.
        kind: Event kind (0-65535).
        tags: Tag arrays, each a tuple of strings.
        content: Raw content string.
        sig: Schnorr signature, 128 lowercase hex chars.

    Raises:
        ValueError: If a field has the right type but an invalid value.
        TypeError: If a field has the wrong type.
    """

    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: tuple[tuple[str, ...], ...]
    content: str
    sig: str = field(repr=False)

    def __post_init__(self) -> None:
        validate_hex(self.id, "id", 64)
        validate_hex(self.pubkey, "pubkey", 64)
        validate_hex(self.sig, "sig", 128)
        validate_int(self.created_at, "created_at")
        validate_int(self.kind, "kind", maximum=EVENT_KIND_MAX)
        validate_str_no_null(self.content, "content")
        if not isinstance(self.tags, tuple):
            raise TypeError(f"tags must be a tuple, got {type(self.tags).__name__}")
        for tag in self.tags:
            if not isinstance(tag, tuple) or not all(isinstance(v, str) for v in tag):
                raise TypeError("tags must contain tuples of strings")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Validate a decoded JSON event and build a record from it.

        Raises:
            ValueError: If a required field is missing or invalid.
            TypeError: If a field has the wrong type.
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"event must be a mapping, got {type(data).__name__}")
        missing = [name for name in _REQUIRED_FIELDS if name not in data]
        if missing:
            raise ValueError(f"event missing fields: {', '.join(missing)}")

        tags = data["tags"]
        if not isinstance(tags, list | tuple) or not all(isinstance(t, list | tuple) for t in tags):
            raise TypeError("tags must be a list of lists")

        return cls(
            id=data["id"],
            pubkey=data["pubkey"],
            created_at=data["created_at"],
            kind=data["kind"],
            tags=tuple(tuple(tag) for tag in tags),
            content=data["content"],
            sig=data["sig"],
        )

    @classmethod
    def from_json(cls, raw: str) -> Self:
        """Parse a JSON-encoded event.

        Raises:
            ValueError: If the JSON is malformed or the event invalid.
        """
        return cls.from_dict(json.loads(raw))

    @classmethod
    def from_nostr_event(cls, event: NostrEvent) -> Self:
        """Convert a ``nostr_sdk.Event`` delivered by the relay pool."""
        return cls.from_json(event.as_json())

    def tag_value(self, name: str) -> str | None:
        """Return the first value of the first tag called *name*, if any."""
        for tag in self.tags:
            if len(tag) >= 2 and tag[0] == name:
                return tag[1]
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
            "sig": self.sig,
        }


def parse_profile_content(content: str) -> Mapping[str, Any]:
    """Parse kind-0 content as a profile object.

    Malformed JSON and JSON that is not an object both yield an empty
    profile; the failure is logged, never raised.
    """
    try:
        data = json.loads(content)
    except (ValueError, TypeError) as e:
        logger.debug("profile_content_invalid error=%s", e)
        return deep_freeze({})
    if not isinstance(data, dict):
        logger.debug("profile_content_not_object type=%s", type(data).__name__)
        return deep_freeze({})
    return deep_freeze(data)


class _RecordFields:
    """Read-only accessors shared by every record variant."""

    __slots__ = ()

    raw: RawRecord

    @property
    def id(self) -> str:
        return self.raw.id

    @property
    def pubkey(self) -> str:
        return self.raw.pubkey

    @property
    def kind(self) -> int:
        return self.raw.kind

    @property
    def created_at(self) -> int:
        return self.raw.created_at

    @property
    def content(self) -> str:
        return self.raw.content


@dataclass(frozen=True, slots=True)
class ProfileRecord(_RecordFields):
    """Kind-0 metadata record with its content parsed as a profile.

    Attributes:
        raw: The underlying record.
        profile: Parsed profile fields (``name``, ``about``, ``picture``...),
            read-only. Empty when the content was not a JSON object.
    """

    raw: RawRecord
    profile: Mapping[str, Any] = field(default_factory=lambda: deep_freeze({}))

    @classmethod
    def from_raw(cls, raw: RawRecord) -> ProfileRecord:
        if raw.kind != EventKind.SET_METADATA:
            raise ValueError(f"profile record must be kind 0, got {raw.kind}")
        return cls(raw=raw, profile=parse_profile_content(raw.content))

    def to_dict(self) -> dict[str, Any]:
        return {**self.raw.to_dict(), "profile": thaw(self.profile)}


@dataclass(frozen=True, slots=True)
class PlainRecord(_RecordFields):
    """Any non-profile, non-addressable record, optionally author-enriched."""

    raw: RawRecord
    author: ProfileRecord | None = None

    def with_author(self, author: ProfileRecord) -> PlainRecord:
        return dataclasses.replace(self, author=author)

    def to_dict(self) -> dict[str, Any]:
        data = self.raw.to_dict()
        if self.author is not None:
            data["author"] = self.author.to_dict()
        return data


@dataclass(frozen=True, slots=True)
class ArticleRecord(_RecordFields):
    """Addressable record (e.g. a NIP-23 article), optionally author-enriched.

    Attributes:
        raw: The underlying record.
        identifier: Value of the ``d`` tag (empty string when absent).
        author: The author's resolved profile, if enrichment succeeded.
    """

    raw: RawRecord
    identifier: str = ""
    author: ProfileRecord | None = None

    @classmethod
    def from_raw(cls, raw: RawRecord) -> ArticleRecord:
        if not is_addressable_kind(raw.kind):
            raise ValueError(f"article record must be an addressable kind, got {raw.kind}")
        return cls(raw=raw, identifier=raw.tag_value("d") or "")

    def with_author(self, author: ProfileRecord) -> ArticleRecord:
        return dataclasses.replace(self, author=author)

    def to_dict(self) -> dict[str, Any]:
        data = self.raw.to_dict()
        if self.author is not None:
            data["author"] = self.author.to_dict()
        return data


Record = PlainRecord | ProfileRecord | ArticleRecord
EnrichableRecord = PlainRecord | ArticleRecord


def is_addressable_kind(kind: int) -> bool:
    return ADDRESSABLE_KIND_MIN <= kind <= ADDRESSABLE_KIND_MAX


def parse_record(raw: RawRecord) -> Record:
    """Classify a validated raw record into its variant by kind."""
    if raw.kind == EventKind.SET_METADATA:
        return ProfileRecord.from_raw(raw)
    if is_addressable_kind(raw.kind):
        return ArticleRecord.from_raw(raw)
    return PlainRecord(raw=raw)
