"""
Immutable ordered set of relay URLs.

A ``RelayList`` is what the query client hands to the relay pool. Order is
insertion order with duplicates removed, so the first spelling of a relay
wins its position: when hint relays are merged ahead of the defaults, a
transport that contacts relays in order sees the hints first.

Use [build_relay_list()][nostria.models.relay_list.build_relay_list] to turn
operator configuration (a comma separated string or a list) into a list
that is never empty.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from .relay import Relay


logger = logging.getLogger(__name__)


class RelayList:
    """Deduplicated, insertion-ordered, immutable sequence of relay URLs.

    Entries are normalized ``Relay.url`` strings. Invalid entries passed to
    the constructor are dropped silently (logged at DEBUG).

    Examples:
        ```python
        relays = RelayList(["wss://nos.lol", "wss://nos.lol/", "https://x.com"])
        list(relays)                            # ['wss://nos.lol']
        relays.union(["wss://relay.damus.io"])  # 2 relays, nos.lol first
        ```
    """

    __slots__ = ("_urls",)

    def __init__(self, relays: Iterable[str | Relay] = ()) -> None:
        urls: dict[str, None] = {}
        for entry in relays:
            relay = entry if isinstance(entry, Relay) else Relay.parse(entry)
            if relay is None:
                logger.debug("relay_dropped url=%s", entry)
                continue
            urls.setdefault(relay.url, None)
        self._urls: tuple[str, ...] = tuple(urls)

    def union(self, other: Iterable[str | Relay]) -> RelayList:
        """Return a new list with *other*'s relays appended after this list's."""
        return RelayList((*self._urls, *other))

    @property
    def urls(self) -> tuple[str, ...]:
        return self._urls

    def __iter__(self) -> Iterator[str]:
        return iter(self._urls)

    def __len__(self) -> int:
        return len(self._urls)

    def __bool__(self) -> bool:
        return bool(self._urls)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, Relay):
            return item.url in self._urls
        if isinstance(item, str):
            relay = Relay.parse(item)
            return relay is not None and relay.url in self._urls
        return False

    def __getitem__(self, index: int) -> str:
        return self._urls[index]

    def __eq__(self, other: object) -> bool:
        """Set equality: two lists with the same relays are equal in any order."""
        if not isinstance(other, RelayList):
            return NotImplemented
        return set(self._urls) == set(other._urls)

    def __hash__(self) -> int:
        return hash(frozenset(self._urls))

    def __repr__(self) -> str:
        return f"RelayList({list(self._urls)!r})"


def build_relay_list(
    configured: str | Iterable[str] | None,
    fallback_defaults: RelayList,
) -> RelayList:
    """Build a relay list from configuration, never returning an empty list.

    A string is split on commas and each part trimmed; blank parts are
    ignored. Invalid URLs are dropped and duplicates collapsed.

    Args:
        configured: Comma separated URLs, an iterable of URLs, or ``None``.
        fallback_defaults: Returned unchanged when nothing valid remains.

    Returns:
        The valid configured relays, or *fallback_defaults*.
    """
    if configured is None:
        return fallback_defaults

    parts = configured.split(",") if isinstance(configured, str) else configured
    candidates = [part.strip() for part in parts if isinstance(part, str) and part.strip()]
    relays = RelayList(candidates)

    if not relays:
        if candidates:
            logger.warning(
                "relay_list_fallback configured=%s fallback=%s",
                ",".join(candidates),
                ",".join(fallback_defaults),
            )
        return fallback_defaults

    dropped = len(candidates) - len(relays)
    if dropped:
        logger.debug("relay_list_built kept=%s skipped=%s", len(relays), dropped)
    return relays
