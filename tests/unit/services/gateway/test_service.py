"""Unit tests for services.gateway.service module.

Tests:
- Gateway initialization and lifecycle
- /e, /p and /a routes via TestClient
- Error mapping (400 invalid, 404 absent, 500 transport and unexpected)
- Per-route response caching
- Run cycle sweeping, metrics and server task monitoring
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from nostr_sdk import EventId, Keys

from nostria.core.cache import TTLCache
from nostria.core.exceptions import PreconditionError, TransportError
from nostria.models.constants import ServiceName
from nostria.models.record import ArticleRecord, PlainRecord, ProfileRecord
from nostria.services.gateway import Gateway
from nostria.utils.nip19 import (
    ArticleCoordinate,
    DecodedIdentifier,
    EventPointer,
    IdentifierKind,
    ProfilePointer,
)


HEX_ID = "1" * 64
PUBKEY = "a" * 64
HINT = "wss://hint.delta.com"


def _decoded(kind: IdentifierKind, payload: object) -> MagicMock:
    return MagicMock(return_value=DecodedIdentifier(kind, payload))


# ============================================================================
# Gateway Service Tests
# ============================================================================


class TestGateway:
    """Tests for Gateway service class."""

    def test_service_name(self) -> None:
        assert Gateway.SERVICE_NAME == ServiceName.GATEWAY

    def test_init(self, gateway: Gateway, mock_resolver: MagicMock) -> None:
        assert gateway.resolver is mock_resolver
        assert gateway._requests_total == 0
        assert gateway._requests_failed == 0
        assert gateway._server_task is None

    def test_builds_resolver_from_config(self, gateway_config) -> None:
        with patch("nostria.services.gateway.service.Resolver") as resolver_cls:
            gateway = Gateway(gateway_config)
        resolver_cls.assert_called_once_with(gateway_config.resolver)
        assert gateway.resolver is resolver_cls.return_value

    async def test_lifecycle(self, gateway: Gateway, mock_resolver: MagicMock) -> None:
        with patch.object(gateway, "_run_server", new_callable=AsyncMock):
            async with gateway:
                mock_resolver.initialize.assert_awaited_once()
                assert gateway._server_task is not None
            assert gateway._server_task is None
        mock_resolver.close.assert_awaited_once()


# ============================================================================
# /e Route Tests
# ============================================================================


class TestEventRoute:
    """Tests for GET /e/{identifier}."""

    def test_hex_found(
        self, test_client: TestClient, mock_resolver: MagicMock, raw_factory
    ) -> None:
        record = PlainRecord(raw=raw_factory(id=HEX_ID))
        mock_resolver.resolve_event.return_value = record

        resp = test_client.get(f"/e/{HEX_ID}")

        assert resp.status_code == 200
        assert resp.json() == record.to_dict()
        mock_resolver.resolve_event.assert_awaited_once_with(HEX_ID, ())

    def test_note_found(
        self, test_client: TestClient, mock_resolver: MagicMock, raw_factory
    ) -> None:
        mock_resolver.resolve_event.return_value = PlainRecord(raw=raw_factory(id=HEX_ID))

        resp = test_client.get(f"/e/{EventId.parse(HEX_ID).to_bech32()}")

        assert resp.status_code == 200
        assert resp.json()["id"] == HEX_ID
        mock_resolver.resolve_event.assert_awaited_once_with(HEX_ID, ())

    def test_author_included(
        self, test_client: TestClient, mock_resolver: MagicMock, raw_factory, profile_factory
    ) -> None:
        author = ProfileRecord.from_raw(profile_factory())
        mock_resolver.resolve_event.return_value = PlainRecord(
            raw=raw_factory(id=HEX_ID), author=author
        )

        body = test_client.get(f"/e/{HEX_ID}").json()

        assert body["author"]["profile"] == {"name": "alice", "about": "hi"}

    def test_nevent_hints_passed(self, test_client: TestClient, mock_resolver: MagicMock) -> None:
        pointer = EventPointer(event_id=HEX_ID, relays=(HINT,))
        with patch(
            "nostria.services.gateway.service.decode",
            _decoded(IdentifierKind.EVENT_POINTER, pointer),
        ):
            resp = test_client.get("/e/nevent1qqsexample")

        assert resp.status_code == 404
        mock_resolver.resolve_event.assert_awaited_once_with(HEX_ID, (HINT,))

    def test_not_found(self, test_client: TestClient) -> None:
        resp = test_client.get(f"/e/{HEX_ID}")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Event not found"}

    def test_short_hex_rejected(self, test_client: TestClient, mock_resolver: MagicMock) -> None:
        resp = test_client.get("/e/deadbeef")

        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid event identifier"
        mock_resolver.resolve_event.assert_not_awaited()

    def test_wrong_identifier_kind(self, test_client: TestClient, mock_resolver: MagicMock) -> None:
        npub = Keys.generate().public_key().to_bech32()

        resp = test_client.get(f"/e/{npub}")

        assert resp.status_code == 400
        assert "expected" in resp.json()["details"]
        mock_resolver.resolve_event.assert_not_awaited()

    def test_transport_error(self, test_client: TestClient, mock_resolver: MagicMock) -> None:
        mock_resolver.resolve_event.side_effect = TransportError("pool closed")

        resp = test_client.get(f"/e/{HEX_ID}")

        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to fetch event", "details": "pool closed"}

    def test_resolver_precondition_error(
        self, test_client: TestClient, mock_resolver: MagicMock
    ) -> None:
        mock_resolver.resolve_event.side_effect = PreconditionError("event_id is empty")

        resp = test_client.get(f"/e/{HEX_ID}")

        assert resp.status_code == 400
        assert resp.json()["details"] == "event_id is empty"


# ============================================================================
# /p Route Tests
# ============================================================================


class TestProfileRoute:
    """Tests for GET /p/{identifier}."""

    def test_hex_found(
        self, test_client: TestClient, mock_resolver: MagicMock, profile_factory
    ) -> None:
        profile = ProfileRecord.from_raw(profile_factory())
        mock_resolver.resolve_profile.return_value = profile

        resp = test_client.get(f"/p/{PUBKEY}")

        assert resp.status_code == 200
        assert resp.json() == {"content": "hi", "author": profile.to_dict()}
        mock_resolver.resolve_profile.assert_awaited_once_with(PUBKEY, ())

    def test_npub_found(
        self, test_client: TestClient, mock_resolver: MagicMock, profile_factory
    ) -> None:
        public_key = Keys.generate().public_key()
        mock_resolver.resolve_profile.return_value = ProfileRecord.from_raw(profile_factory())

        resp = test_client.get(f"/p/{public_key.to_bech32()}")

        assert resp.status_code == 200
        mock_resolver.resolve_profile.assert_awaited_once_with(public_key.to_hex(), ())

    def test_missing_about_yields_empty_content(
        self, test_client: TestClient, mock_resolver: MagicMock, profile_factory
    ) -> None:
        mock_resolver.resolve_profile.return_value = ProfileRecord.from_raw(
            profile_factory(profile={"name": "bob", "about": 42})
        )

        assert test_client.get(f"/p/{PUBKEY}").json()["content"] == ""

    def test_nprofile_hints_passed(
        self, test_client: TestClient, mock_resolver: MagicMock
    ) -> None:
        pointer = ProfilePointer(pubkey=PUBKEY, relays=(HINT,))
        with patch(
            "nostria.services.gateway.service.decode",
            _decoded(IdentifierKind.PROFILE_POINTER, pointer),
        ):
            test_client.get("/p/nprofile1qqsexample")

        mock_resolver.resolve_profile.assert_awaited_once_with(PUBKEY, (HINT,))

    def test_not_found(self, test_client: TestClient) -> None:
        resp = test_client.get(f"/p/{PUBKEY}")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Profile not found"}

    def test_garbage_rejected(self, test_client: TestClient) -> None:
        resp = test_client.get("/p/npub1notvalid")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid profile identifier"


# ============================================================================
# /a Route Tests
# ============================================================================


class TestArticleRoute:
    """Tests for GET /a/{identifier}."""

    def test_naddr_found(
        self, test_client: TestClient, mock_resolver: MagicMock, article_factory
    ) -> None:
        record = ArticleRecord.from_raw(article_factory(identifier="my-post"))
        mock_resolver.resolve_article.return_value = record
        coordinate = ArticleCoordinate(
            pubkey=PUBKEY, kind=30023, identifier="my-post", relays=(HINT,)
        )
        with patch(
            "nostria.services.gateway.service.decode",
            _decoded(IdentifierKind.ARTICLE_COORDINATE, coordinate),
        ):
            resp = test_client.get("/a/naddr1qqsexample")

        assert resp.status_code == 200
        assert resp.json() == record.to_dict()
        mock_resolver.resolve_article.assert_awaited_once_with(PUBKEY, "my-post", 30023, (HINT,))

    def test_hex_rejected(self, test_client: TestClient, mock_resolver: MagicMock) -> None:
        resp = test_client.get(f"/a/{HEX_ID}")

        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid article identifier"
        mock_resolver.resolve_article.assert_not_awaited()

    def test_note_rejected(self, test_client: TestClient) -> None:
        resp = test_client.get(f"/a/{EventId.parse(HEX_ID).to_bech32()}")
        assert resp.status_code == 400

    def test_not_found(self, test_client: TestClient) -> None:
        coordinate = ArticleCoordinate(pubkey=PUBKEY, kind=30023, identifier="gone")
        with patch(
            "nostria.services.gateway.service.decode",
            _decoded(IdentifierKind.ARTICLE_COORDINATE, coordinate),
        ):
            resp = test_client.get("/a/naddr1qqsexample")

        assert resp.status_code == 404
        assert resp.json() == {"error": "Article not found"}

    def test_malformed_coordinate_payload_rejected(
        self, test_client: TestClient, mock_resolver: MagicMock
    ) -> None:
        with patch(
            "nostria.services.gateway.service.decode",
            _decoded(IdentifierKind.ARTICLE_COORDINATE, "not-a-coordinate"),
        ):
            resp = test_client.get("/a/naddr1qqsexample")

        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid article identifier"
        mock_resolver.resolve_article.assert_not_awaited()


# ============================================================================
# Caching and Fallback Tests
# ============================================================================


class TestResponseCache:
    """Tests for per-route response caching."""

    def test_found_response_cached(
        self, test_client: TestClient, mock_resolver: MagicMock, raw_factory
    ) -> None:
        mock_resolver.resolve_event.return_value = PlainRecord(raw=raw_factory(id=HEX_ID))

        first = test_client.get(f"/e/{HEX_ID}")
        second = test_client.get(f"/e/{HEX_ID}")

        assert second.json() == first.json()
        assert mock_resolver.resolve_event.await_count == 1

    def test_not_found_not_cached(self, test_client: TestClient, mock_resolver: MagicMock) -> None:
        test_client.get(f"/e/{HEX_ID}")
        test_client.get(f"/e/{HEX_ID}")

        assert mock_resolver.resolve_event.await_count == 2

    def test_caches_are_per_route(
        self, test_client: TestClient, mock_resolver: MagicMock, raw_factory
    ) -> None:
        mock_resolver.resolve_event.return_value = PlainRecord(raw=raw_factory(id=HEX_ID))
        test_client.get(f"/e/{HEX_ID}")

        resp = test_client.get(f"/p/{HEX_ID}")

        assert resp.status_code == 404
        mock_resolver.resolve_profile.assert_awaited_once()


class TestFallbackHandler:
    """Tests for the unhandled error boundary."""

    def test_unexpected_exception_returns_json_500(
        self, test_client: TestClient, mock_resolver: MagicMock
    ) -> None:
        mock_resolver.resolve_event.side_effect = RuntimeError("unexpected failure")

        resp = test_client.get(f"/e/{HEX_ID}")

        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error", "details": "unexpected failure"}

    def test_request_counters(self, test_client: TestClient, gateway: Gateway) -> None:
        test_client.get(f"/e/{HEX_ID}")
        test_client.get("/e/deadbeef")

        assert gateway._requests_total == 2
        assert gateway._requests_failed == 2


# ============================================================================
# Run Cycle Tests
# ============================================================================


class TestGatewayRun:
    """Tests for Gateway.run() cycle."""

    async def test_run_reports_metrics(self, gateway: Gateway, mock_resolver: MagicMock) -> None:
        gateway._requests_total = 42
        gateway._requests_failed = 3
        mock_resolver.sweep.return_value = 2

        with (
            patch.object(gateway, "inc_counter") as mock_counter,
            patch.object(gateway, "set_gauge") as mock_gauge,
        ):
            await gateway.run()

        mock_resolver.sweep.assert_called_once()
        mock_counter.assert_any_call("requests_total", 42)
        mock_counter.assert_any_call("requests_failed", 3)
        mock_counter.assert_any_call("cache_swept", 2)
        mock_gauge.assert_any_call("responses_cached", 0)
        mock_gauge.assert_any_call("profiles_cached", 0)

    async def test_run_resets_counters(self, gateway: Gateway) -> None:
        gateway._requests_total = 10
        gateway._requests_failed = 2

        with patch.object(gateway, "inc_counter"), patch.object(gateway, "set_gauge"):
            await gateway.run()

        assert gateway._requests_total == 0
        assert gateway._requests_failed == 0

    async def test_run_sweeps_expired_responses(self, gateway: Gateway) -> None:
        now = [0.0]
        gateway._event_cache = TTLCache(60.0, name="event", clock=lambda: now[0])
        gateway._event_cache.set(HEX_ID, {"id": HEX_ID}, ttl=1.0)
        gateway._article_cache.set("naddr", {"id": HEX_ID})
        now[0] = 5.0

        with (
            patch.object(gateway, "inc_counter") as mock_counter,
            patch.object(gateway, "set_gauge") as mock_gauge,
        ):
            await gateway.run()

        mock_counter.assert_any_call("cache_swept", 1)
        mock_gauge.assert_any_call("responses_cached", 1)

    async def test_run_detects_crashed_server_task(self, gateway: Gateway) -> None:
        failed_task = MagicMock(spec=asyncio.Task)
        failed_task.done.return_value = True
        failed_task.cancelled.return_value = False
        failed_task.exception.return_value = OSError("bind failed")
        gateway._server_task = failed_task

        with pytest.raises(RuntimeError, match="HTTP server task has stopped unexpectedly"):
            await gateway.run()

    async def test_run_ok_when_server_task_running(self, gateway: Gateway) -> None:
        running_task = MagicMock(spec=asyncio.Task)
        running_task.done.return_value = False
        gateway._server_task = running_task

        with patch.object(gateway, "inc_counter"), patch.object(gateway, "set_gauge"):
            await gateway.run()
