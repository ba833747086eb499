"""Shared fixtures and helpers for services.gateway test package."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from nostria.core.cache import TTLCache
from nostria.services.gateway import Gateway, GatewayConfig
from nostria.services.resolver import Resolver


@pytest.fixture
def gateway_config() -> GatewayConfig:
    """Minimal gateway config for testing."""
    return GatewayConfig(
        interval=60.0,
        host="127.0.0.1",
        port=9999,
        response_cache_ttl=60.0,
    )


@pytest.fixture
def mock_resolver() -> MagicMock:
    """Resolver double with awaitable entry points and a real profile cache."""
    resolver = MagicMock(spec=Resolver)
    resolver.resolve_event = AsyncMock(return_value=None)
    resolver.resolve_profile = AsyncMock(return_value=None)
    resolver.resolve_article = AsyncMock(return_value=None)
    resolver.initialize = AsyncMock()
    resolver.close = AsyncMock()
    resolver.sweep = MagicMock(return_value=0)
    resolver.profile_cache = TTLCache(60.0, name="profile")
    return resolver


@pytest.fixture
def gateway(gateway_config: GatewayConfig, mock_resolver: MagicMock) -> Gateway:
    return Gateway(gateway_config, resolver=mock_resolver)


@pytest.fixture
def test_client(gateway: Gateway) -> TestClient:
    """FastAPI TestClient from the Gateway service."""
    return TestClient(gateway._build_app())
