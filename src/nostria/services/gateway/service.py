"""HTTP gateway exposing the resolution engine via FastAPI.

Three read-only routes, each accepting a bech32 NIP-19 entity and, where it
makes sense, bare hex:

* ``GET /e/{identifier}`` -- hex event id, ``note1`` or ``nevent1``.
* ``GET /p/{identifier}`` -- hex pubkey, ``npub1`` or ``nprofile1``.
* ``GET /a/{identifier}`` -- ``naddr1`` only.

Successful responses are cached per route and identifier for
``response_cache_ttl`` seconds. Relay hints embedded in pointers are passed
to the resolver ahead of the defaults.

The HTTP server runs as a background ``asyncio.Task`` alongside the
standard ``run_forever()`` cycle. Each ``run()`` cycle sweeps expired cache
entries, logs request statistics and updates Prometheus metrics.

See Also:
    [Resolver][nostria.services.resolver.service.Resolver]: The engine
        behind every route.
    [decode()][nostria.utils.nip19.decode]: Identifier decoding.
    [BaseService][nostria.core.base_service.BaseService]: Abstract
        base class providing lifecycle and metrics.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, ClassVar

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nostria.core.base_service import BaseService
from nostria.core.cache import TTLCache
from nostria.core.exceptions import PreconditionError, TransportError
from nostria.models.constants import ServiceName
from nostria.services.resolver.service import Resolver
from nostria.utils.nip19 import (
    ArticleCoordinate,
    DecodedIdentifier,
    EventPointer,
    IdentifierKind,
    ProfilePointer,
    decode,
)

from .configs import GatewayConfig


if TYPE_CHECKING:
    from types import TracebackType

_HTTP_ERROR_THRESHOLD = 400

JsonBody = dict[str, Any]


class Gateway(BaseService[GatewayConfig]):
    """HTTP front end for identifier resolution.

    Lifecycle:
        1. ``__aenter__``: initialize the resolver, build the FastAPI app,
           start uvicorn.
        2. ``run()``: sweep caches, log statistics, update Prometheus gauges.
        3. ``__aexit__``: cancel the HTTP server task, close the resolver.

    Args:
        config: Gateway configuration (defaults if omitted).
        resolver: Resolver to use instead of one built from
            ``config.resolver``.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.GATEWAY
    CONFIG_CLASS: ClassVar[type[GatewayConfig]] = GatewayConfig

    def __init__(self, config: GatewayConfig | None = None, *, resolver: Resolver | None = None) -> None:
        super().__init__(config)
        self._resolver = resolver if resolver is not None else Resolver(self._config.resolver)
        ttl = self._config.response_cache_ttl
        self._event_cache: TTLCache[JsonBody] = TTLCache(ttl, name="event")
        self._profile_cache: TTLCache[JsonBody] = TTLCache(ttl, name="profile_response")
        self._article_cache: TTLCache[JsonBody] = TTLCache(ttl, name="article")
        self._server_task: asyncio.Task[None] | None = None
        self._requests_total = 0
        self._requests_failed = 0

    @property
    def resolver(self) -> Resolver:
        return self._resolver

    async def __aenter__(self) -> Gateway:
        await super().__aenter__()
        await self._resolver.initialize()

        app = self._build_app()
        self._server_task = asyncio.create_task(self._run_server(app))
        self._logger.info(
            "http_server_started",
            host=self._config.host,
            port=self._config.port,
        )
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        if self._server_task is not None:
            self._server_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._server_task
            self._server_task = None
        self._logger.info("http_server_stopped")
        await self._resolver.close()
        await super().__aexit__(_exc_type, _exc_val, _exc_tb)

    async def run(self) -> None:
        """Sweep expired cache entries and report request statistics."""
        if self._server_task is not None and self._server_task.done():
            exc = self._server_task.exception() if not self._server_task.cancelled() else None
            self._logger.error("http_server_crashed", error=str(exc) if exc else "cancelled")
            raise RuntimeError("HTTP server task has stopped unexpectedly") from exc

        swept = self._resolver.sweep()
        for cache in (self._event_cache, self._profile_cache, self._article_cache):
            swept += cache.sweep()

        total = self._requests_total
        failed = self._requests_failed
        self._requests_total = 0
        self._requests_failed = 0

        cached = len(self._event_cache) + len(self._profile_cache) + len(self._article_cache)
        self._logger.info(
            "cycle_stats",
            requests_total=total,
            requests_failed=failed,
            cache_swept=swept,
            responses_cached=cached,
            profiles_cached=len(self._resolver.profile_cache),
        )
        self.inc_counter("requests_total", total)
        self.inc_counter("requests_failed", failed)
        self.inc_counter("cache_swept", swept)
        self.set_gauge("responses_cached", cached)
        self.set_gauge("profiles_cached", len(self._resolver.profile_cache))

    # -------------------------------------------------------------------------
    # HTTP application
    # -------------------------------------------------------------------------

    def _build_app(self) -> FastAPI:
        """Construct the FastAPI application with the resolution routes."""
        app = FastAPI(title="Nostria Gateway")

        if self._config.cors_origins:
            app.add_middleware(
                CORSMiddleware,
                allow_origins=self._config.cors_origins,
                allow_methods=["GET"],
                allow_headers=["*"],
            )

        @app.middleware("http")
        async def log_requests(request: Request, call_next: Any) -> Response:
            start = time.monotonic()
            try:
                response: Response = await call_next(request)
            except Exception as exc:  # HTTP request error boundary
                self._logger.error(
                    "unhandled_error",
                    error=str(exc),
                    path=request.url.path,
                )
                response = JSONResponse(
                    {"error": "Internal server error", "details": str(exc)},
                    status_code=500,
                )
            duration_ms = round((time.monotonic() - start) * 1000, 1)
            self._requests_total += 1
            if response.status_code >= _HTTP_ERROR_THRESHOLD:
                self._requests_failed += 1
                self._logger.warning(
                    "request_failed",
                    method=request.method,
                    path=request.url.path,
                    status=response.status_code,
                    duration_ms=duration_ms,
                )
            else:
                self._logger.info(
                    "request_completed",
                    method=request.method,
                    path=request.url.path,
                    status=response.status_code,
                    duration_ms=duration_ms,
                )
            return response

        @app.get("/e/{identifier}")
        async def get_event(identifier: str) -> JSONResponse:
            return await self._serve(
                self._event_cache,
                identifier,
                what="event",
                resolve=lambda: self._resolve_event(identifier),
            )

        @app.get("/p/{identifier}")
        async def get_profile(identifier: str) -> JSONResponse:
            return await self._serve(
                self._profile_cache,
                identifier,
                what="profile",
                resolve=lambda: self._resolve_profile(identifier),
            )

        @app.get("/a/{identifier}")
        async def get_article(identifier: str) -> JSONResponse:
            return await self._serve(
                self._article_cache,
                identifier,
                what="article",
                resolve=lambda: self._resolve_article(identifier),
            )

        return app

    async def _serve(
        self,
        cache: TTLCache[JsonBody],
        identifier: str,
        *,
        what: str,
        resolve: Callable[[], Awaitable[JsonBody | None]],
    ) -> JSONResponse:
        """Cache-first response with the shared error mapping.

        ``PreconditionError`` maps to 400, ``None`` to 404 and
        ``TransportError`` to 500. Only found bodies are cached.
        """
        cached = cache.get(identifier)
        if cached is not None:
            return JSONResponse(cached)

        try:
            body = await resolve()
        except PreconditionError as e:
            return JSONResponse(
                {"error": f"Invalid {what} identifier", "details": str(e)},
                status_code=400,
            )
        except TransportError as e:
            self._logger.error(f"{what}_fetch_failed", identifier=identifier, error=str(e))
            return JSONResponse(
                {"error": f"Failed to fetch {what}", "details": str(e)},
                status_code=500,
            )

        if body is None:
            return JSONResponse({"error": f"{what.capitalize()} not found"}, status_code=404)

        cache.set(identifier, body)
        return JSONResponse(body)

    # -------------------------------------------------------------------------
    # Route resolution
    # -------------------------------------------------------------------------

    @staticmethod
    def _expect(decoded: DecodedIdentifier, *kinds: IdentifierKind) -> None:
        if decoded.kind not in kinds:
            expected = ", ".join(kinds)
            raise PreconditionError(f"expected {expected}, got {decoded.kind}")

    async def _resolve_event(self, identifier: str) -> JsonBody | None:
        decoded = decode(identifier, hex_kind=IdentifierKind.NOTE_ID)
        self._expect(decoded, IdentifierKind.NOTE_ID, IdentifierKind.EVENT_POINTER)

        payload = decoded.payload
        event_id = payload.event_id if isinstance(payload, EventPointer) else str(payload)
        record = await self._resolver.resolve_event(event_id, decoded.relays)
        return record.to_dict() if record is not None else None

    async def _resolve_profile(self, identifier: str) -> JsonBody | None:
        decoded = decode(identifier, hex_kind=IdentifierKind.PUBLIC_KEY)
        self._expect(decoded, IdentifierKind.PUBLIC_KEY, IdentifierKind.PROFILE_POINTER)

        payload = decoded.payload
        pubkey = payload.pubkey if isinstance(payload, ProfilePointer) else str(payload)
        profile = await self._resolver.resolve_profile(pubkey, decoded.relays)
        if profile is None:
            return None

        about = profile.profile.get("about")
        return {
            "content": about if isinstance(about, str) else "",
            "author": profile.to_dict(),
        }

    async def _resolve_article(self, identifier: str) -> JsonBody | None:
        decoded = decode(identifier)
        self._expect(decoded, IdentifierKind.ARTICLE_COORDINATE)

        coordinate = decoded.payload
        if not isinstance(coordinate, ArticleCoordinate):
            raise PreconditionError(f"malformed article coordinate: {identifier}")
        record = await self._resolver.resolve_article(
            coordinate.pubkey,
            coordinate.identifier,
            coordinate.kind,
            coordinate.relays,
        )
        return record.to_dict() if record is not None else None

    async def _run_server(self, app: FastAPI) -> None:
        """Run uvicorn as an asyncio server."""
        config = uvicorn.Config(
            app,
            host=self._config.host,
            port=self._config.port,
            log_level="warning",
            access_log=False,
        )
        server = uvicorn.Server(config)
        await server.serve()
