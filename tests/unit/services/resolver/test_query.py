"""
Unit tests for services.resolver.query module.

Tests:
- Newest matching record wins
- Non-matching records from relays are discarded
- Absent result returns None
- TransportError propagates
"""

import pytest

from nostria.core.exceptions import TransportError
from nostria.models.filters import AuthorKindsFilter, IdFilter
from nostria.models.relay_list import RelayList
from nostria.services.resolver.query import RelayQueryClient


RELAYS = RelayList(["wss://relay.alpha.com", "wss://relay.beta.com"])
AUTHOR = "a" * 64


@pytest.fixture
def client(fake_pool) -> RelayQueryClient:
    return RelayQueryClient(fake_pool)


class TestQuery:
    async def test_found(self, client, fake_pool, raw_factory) -> None:
        record = raw_factory()
        fake_pool.publish("wss://relay.beta.com", record)

        assert await client.query(RELAYS, IdFilter(record.id), 1.0) == record

    async def test_passes_relays_and_timeout(self, client, fake_pool) -> None:
        await client.query(RELAYS, IdFilter("1" * 64), 2.5)
        relays, _, timeout = fake_pool.calls[0]
        assert relays == RELAYS.urls
        assert timeout == 2.5

    async def test_absent(self, client) -> None:
        assert await client.query(RELAYS, IdFilter("deadbeef"), 1.0) is None

    async def test_newest_wins(self, client, fake_pool, profile_factory) -> None:
        old = profile_factory(created_at=100)
        new = profile_factory(created_at=200)
        fake_pool.publish("wss://relay.alpha.com", old)
        fake_pool.publish("wss://relay.beta.com", new)

        found = await client.query(RELAYS, AuthorKindsFilter(AUTHOR, (0,)), 1.0)
        assert found == new

    async def test_non_matching_discarded(self, client, fake_pool, raw_factory) -> None:
        fake_pool.publish("wss://relay.alpha.com", raw_factory(kind=1))

        assert await client.query(RELAYS, AuthorKindsFilter(AUTHOR, (0,)), 1.0) is None

    async def test_records_on_other_relays_invisible(self, client, fake_pool, raw_factory) -> None:
        record = raw_factory()
        fake_pool.publish("wss://elsewhere.example.com", record)

        assert await client.query(RELAYS, IdFilter(record.id), 1.0) is None

    async def test_transport_error_propagates(self, client, fake_pool) -> None:
        fake_pool.errors[IdFilter] = TransportError("Relay pool is not connected")

        with pytest.raises(TransportError):
            await client.query(RELAYS, IdFilter("1" * 64), 1.0)
