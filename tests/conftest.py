"""
Pytest configuration and shared fixtures for Nostria tests.

Provides:
- Record factories producing structurally valid ``RawRecord`` instances
- ``FakeRelayPool``: an in-memory stand-in for the relay pool that stores
  records per relay and counts fetches
- A resolver wired to the fake pool with short timeouts
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

import pytest

from nostria.models.filters import QueryFilter
from nostria.models.record import RawRecord
from nostria.models.relay import Relay
from nostria.models.relay_list import RelayList
from nostria.services.resolver import Resolver, ResolverConfig


# ============================================================================
# Constants
# ============================================================================

EVENT_RELAYS = ["wss://relay.alpha.com", "wss://relay.beta.com"]
PROFILE_RELAYS = ["wss://profiles.gamma.com"]
HINT_RELAY = "wss://hint.delta.com"

AUTHOR = "a" * 64
OTHER_AUTHOR = "b" * 64


def hex_id(n: int) -> str:
    """Deterministic 64-char hex id for test record number *n*."""
    return f"{n:064x}"


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Record Factories
# ============================================================================


def make_raw(
    *,
    id: str | None = None,  # noqa: A002
    pubkey: str = AUTHOR,
    created_at: int = 1_700_000_000,
    kind: int = 1,
    tags: tuple[tuple[str, ...], ...] = (),
    content: str = "hello nostr",
    sig: str = "f" * 128,
) -> RawRecord:
    return RawRecord(
        id=id if id is not None else hex_id(created_at + kind),
        pubkey=pubkey,
        created_at=created_at,
        kind=kind,
        tags=tags,
        content=content,
        sig=sig,
    )


def make_profile_raw(
    pubkey: str = AUTHOR,
    profile: dict[str, Any] | None = None,
    created_at: int = 1_700_000_000,
) -> RawRecord:
    content = json.dumps(profile if profile is not None else {"name": "alice", "about": "hi"})
    return make_raw(
        id=hex_id(created_at)[:-8] + "0000cafe",
        pubkey=pubkey,
        created_at=created_at,
        kind=0,
        content=content,
    )


def make_article_raw(
    pubkey: str = AUTHOR,
    identifier: str = "my-article",
    kind: int = 30023,
    created_at: int = 1_700_000_000,
) -> RawRecord:
    return make_raw(
        id=hex_id(created_at)[:-8] + "0000beef",
        pubkey=pubkey,
        created_at=created_at,
        kind=kind,
        tags=(("d", identifier), ("title", "Hello")),
        content="# Long form",
    )


@pytest.fixture
def raw_factory() -> Callable[..., RawRecord]:
    return make_raw


@pytest.fixture
def profile_factory() -> Callable[..., RawRecord]:
    return make_profile_raw


@pytest.fixture
def article_factory() -> Callable[..., RawRecord]:
    return make_article_raw


# ============================================================================
# Fake Relay Pool
# ============================================================================


class FakeRelayPool:
    """In-memory relay pool.

    Records are published to individual relays; ``fetch`` returns every
    record stored on any requested relay (matching is the query client's
    job). ``errors`` maps a filter type to an exception raised for queries
    using that filter type.
    """

    def __init__(self) -> None:
        self.stored: dict[str, list[RawRecord]] = {}
        self.calls: list[tuple[tuple[str, ...], QueryFilter, float]] = []
        self.errors: dict[type, BaseException] = {}
        self.connected = False
        self.closed = False

    def publish(self, relay_url: str, record: RawRecord) -> None:
        self.stored.setdefault(Relay(relay_url).url, []).append(record)

    def calls_for(self, filter_type: type) -> int:
        return sum(1 for _, query_filter, _ in self.calls if isinstance(query_filter, filter_type))

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.closed = True
        self.connected = False

    async def fetch(
        self,
        relays: RelayList,
        query_filter: QueryFilter,
        timeout: float,  # noqa: ASYNC109
    ) -> list[RawRecord]:
        self.calls.append((tuple(relays), query_filter, timeout))
        error = self.errors.get(type(query_filter))
        if error is not None:
            raise error
        records: list[RawRecord] = []
        for url in relays:
            records.extend(self.stored.get(url, []))
        return records


@pytest.fixture
def fake_pool() -> FakeRelayPool:
    return FakeRelayPool()


# ============================================================================
# Resolver
# ============================================================================


@pytest.fixture
def resolver_config() -> ResolverConfig:
    """Resolver config with disjoint event and profile relays and short timeouts."""
    return ResolverConfig(
        event_relays=EVENT_RELAYS,
        profile_relays=PROFILE_RELAYS,
        timeout=0.5,
        retry_timeout=1.0,
        profile_cache_ttl=60.0,
    )


@pytest.fixture
def resolver(resolver_config: ResolverConfig, fake_pool: FakeRelayPool) -> Resolver:
    return Resolver(resolver_config, pool=fake_pool)  # type: ignore[arg-type]
