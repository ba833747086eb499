"""
Prometheus metrics collection and HTTP exposition.

Module-level metric objects are process-wide singletons shared by the
resolver and the gateway service. ``BaseService.run_forever()`` records
cycle counts and durations; the resolver records resolution outcomes, relay
query outcomes, cache lookups and retry expansions.

The ``MetricsServer`` exposes a ``/metrics`` endpoint over aiohttp for
Prometheus scraping. It is configured through ``MetricsConfig``, embedded in
the gateway's YAML configuration.

Architecture:
    SERVICE_INFO:            Static metadata set once at startup.
    SERVICE_GAUGE:           Point-in-time values (current state).
    SERVICE_COUNTER:         Cumulative totals (monotonically increasing).
    CYCLE_DURATION_SECONDS:  Histogram of sweep cycle durations.
    RESOLUTIONS_TOTAL:       Resolver outcomes by operation.
    RELAY_QUERIES_TOTAL:     Single bounded-time query outcomes.
    RETRIES_TOTAL:           Retry expansions actually issued.
    CACHE_LOOKUPS_TOTAL:     TTL cache hits and misses by cache name.
"""

from __future__ import annotations

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class MetricsConfig(BaseModel):
    """Configuration for the Prometheus metrics endpoint.

    The endpoint is only started when ``enabled`` is True. Set ``host`` to
    ``"0.0.0.0"`` in container environments to allow external scraping.
    """

    enabled: bool = Field(default=False, description="Enable metrics collection")
    port: int = Field(default=8000, ge=1024, le=65535, description="Metrics HTTP port")
    host: str = Field(default="127.0.0.1", description="Metrics HTTP bind address")
    path: str = Field(default="/metrics", description="Metrics endpoint path")


# ---------------------------------------------------------------------------
# Service Metrics (auto-tracked by BaseService.run_forever)
# ---------------------------------------------------------------------------

SERVICE_INFO = Info(
    "service",
    "Service information and metadata",
)

CYCLE_DURATION_SECONDS = Histogram(
    "cycle_duration_seconds",
    "Duration of service cycle in seconds",
    ["service"],
    buckets=(0.001, 0.01, 0.1, 0.5, 1, 5, 10, 30, 60),
)

SERVICE_GAUGE = Gauge(
    "service_gauge",
    "Service gauge values (point-in-time state)",
    ["service", "name"],
)

SERVICE_COUNTER = Counter(
    "service_counter",
    "Service counter values (cumulative totals)",
    ["service", "name"],
)


# ---------------------------------------------------------------------------
# Resolution Metrics
# ---------------------------------------------------------------------------

# operation: event | profile | article
# outcome:   found | absent | failed | invalid
RESOLUTIONS_TOTAL = Counter(
    "resolutions_total",
    "Resolver calls by operation and outcome",
    ["operation", "outcome"],
)

# outcome: found | absent | error
RELAY_QUERIES_TOTAL = Counter(
    "relay_queries_total",
    "Bounded-time relay queries by outcome",
    ["outcome"],
)

RETRIES_TOTAL = Counter(
    "retries_total",
    "Retries issued against the expanded relay set",
    ["label"],
)

# result: hit | miss
CACHE_LOOKUPS_TOTAL = Counter(
    "cache_lookups_total",
    "TTL cache lookups by cache name and result",
    ["cache", "result"],
)


# ---------------------------------------------------------------------------
# HTTP Server
# ---------------------------------------------------------------------------


class MetricsServer:
    """Async HTTP server exposing a Prometheus-compatible metrics endpoint.

    Example:
        server = MetricsServer(MetricsConfig(enabled=True, port=8001))
        await server.start()
        # ... gateway runs ...
        await server.stop()
    """

    def __init__(self, config: MetricsConfig) -> None:
        self._config = config
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Bind the endpoint. No-op when metrics are disabled.

        Raises:
            OSError: If the port is already in use or binding fails.
        """
        if not self._config.enabled:
            return

        app = web.Application()
        app.router.add_get(self._config.path, self._handle_metrics)

        self._runner = web.AppRunner(app, access_log=None)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.host, self._config.port)
        await site.start()

    async def stop(self) -> None:
        """Release the bound port. Idempotent."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    @staticmethod
    async def _handle_metrics(_request: web.Request) -> web.Response:
        return web.Response(
            body=generate_latest(),
            headers={"Content-Type": CONTENT_TYPE_LATEST},
        )


async def start_metrics_server(config: MetricsConfig | None = None) -> MetricsServer:
    """Create and start a metrics server (no-op server when disabled)."""
    server = MetricsServer(config or MetricsConfig())
    await server.start()
    return server
