"""
Resolution engine: identifiers in, enriched records out.

Three entry points, one per identifier family:

* [resolve_event()][nostria.services.resolver.service.Resolver.resolve_event]
  -- an event by id, enriched with its author's profile.
* [resolve_profile()][nostria.services.resolver.service.Resolver.resolve_profile]
  -- the newest kind-0 profile of a pubkey, cache-first.
* [resolve_article()][nostria.services.resolver.service.Resolver.resolve_article]
  -- an addressable event by coordinate, with the author's profile fetched
  concurrently.

Outcomes:
    * a record -- found (possibly without ``author`` if enrichment failed);
    * ``None`` -- well-formed query, no relay in the initial or expanded set
      had a match;
    * [PreconditionError][nostria.core.exceptions.PreconditionError] -- a
      required identifier component is missing;
    * [TransportError][nostria.core.exceptions.TransportError] -- the relay
      pool is unusable.

Author enrichment never turns a found record into a failure: errors and
misses on the profile branch are logged and the ``author`` field is simply
left unset.

Examples:
    ```python
    async with Resolver(ResolverConfig.from_env()) as resolver:
        note = await resolver.resolve_event(event_id, hints=["wss://nos.lol"])
        if note is not None:
            print(note.to_dict())
    ```
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from nostria.core.cache import TTLCache
from nostria.core.exceptions import PreconditionError, TransportError
from nostria.core.logger import Logger
from nostria.core.metrics import RESOLUTIONS_TOTAL
from nostria.core.relay_pool import RelayPool
from nostria.models.constants import EventKind, RelayPurpose, ServiceName
from nostria.models.filters import AddressFilter, AuthorKindsFilter, IdFilter, QueryFilter
from nostria.models.record import ProfileRecord, Record, parse_record

from .configs import ResolverConfig
from .query import RelayQueryClient
from .relays import RelaySetManager
from .retry import RetryCoordinator


if TYPE_CHECKING:
    from nostria.models.record import RawRecord
    from nostria.models.relay_list import RelayList


Hints = Iterable[str] | None


class Resolver:
    """Facade over relay selection, retrying queries and profile caching.

    Args:
        config: Resolver configuration (defaults if omitted).
        pool: Relay pool to use. When omitted the resolver creates and owns
            one, connecting it in ``initialize()`` and closing it in
            ``close()``. An injected pool is connected on ``initialize()``
            but left open on ``close()``.
        profile_cache: Cache for resolved profiles. Defaults to a
            [TTLCache][nostria.core.cache.TTLCache] with
            ``config.profile_cache_ttl``.
    """

    def __init__(
        self,
        config: ResolverConfig | None = None,
        *,
        pool: RelayPool | None = None,
        profile_cache: TTLCache[ProfileRecord] | None = None,
    ) -> None:
        self._config = config or ResolverConfig()
        self._owns_pool = pool is None
        self._pool = pool if pool is not None else RelayPool(fetch_overhead=self._config.fetch_overhead)
        self._relays = RelaySetManager.from_config(self._config)
        self._retry = RetryCoordinator(RelayQueryClient(self._pool))
        self._profile_cache: TTLCache[ProfileRecord] = (
            profile_cache
            if profile_cache is not None
            else TTLCache(self._config.profile_cache_ttl, name="profile")
        )
        self._logger = Logger(ServiceName.RESOLVER)

    @property
    def config(self) -> ResolverConfig:
        return self._config

    @property
    def relays(self) -> RelaySetManager:
        return self._relays

    @property
    def profile_cache(self) -> TTLCache[ProfileRecord]:
        return self._profile_cache

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        """Connect the relay pool.

        Raises:
            TransportError: If the pool cannot be created.
        """
        await self._pool.connect()
        self._logger.info(
            "resolver_initialized",
            event_relays=",".join(self._relays.event_relays),
            profile_relays=",".join(self._relays.profile_relays),
            timeout_s=self._config.timeout,
            retry_timeout_s=self._config.retry_timeout,
        )

    async def close(self) -> None:
        """Close the relay pool if this resolver created it."""
        if self._owns_pool:
            await self._pool.close()
        self._profile_cache.clear()
        self._logger.info("resolver_closed")

    async def __aenter__(self) -> Resolver:
        await self.initialize()
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        await self.close()

    def sweep(self) -> int:
        """Purge expired profile cache entries; return how many were removed."""
        return self._profile_cache.sweep()

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    async def resolve_event(self, event_id: str, hints: Hints = None) -> Record | None:
        """Resolve an event by id and attach its author's profile.

        Args:
            event_id: Hex event id.
            hints: Relay URLs to try ahead of the event defaults. Any iterable,
                read once and reused for the author lookup.

        Returns:
            The event (with ``author`` when the profile resolved), or
            ``None`` if no relay has it.

        Raises:
            PreconditionError: If *event_id* is empty.
            TransportError: If the relay pool is unusable.
        """
        hints = tuple(hints or ())
        query_filter = self._make_filter("event", lambda: IdFilter(event_id))
        relays = self._relays.relays_for_query(hints, RelayPurpose.EVENT)

        raw = await self._query("event", relays, query_filter, self._config.timeout)
        if raw is None:
            return None

        record = parse_record(raw)
        if isinstance(record, ProfileRecord):
            return record

        author = await self._author_profile(raw.pubkey, hints, event_id)
        return record.with_author(author) if author is not None else record

    async def resolve_profile(self, pubkey: str, hints: Hints = None) -> ProfileRecord | None:
        """Resolve the newest profile of *pubkey*, serving from cache when fresh.

        A cache hit contacts no relay. Misses are resolved with the profile
        relay list and timeout; only found profiles are cached.

        Raises:
            PreconditionError: If *pubkey* is empty.
            TransportError: If the relay pool is unusable.
        """
        query_filter = self._make_filter(
            "profile", lambda: AuthorKindsFilter(pubkey, (EventKind.SET_METADATA,))
        )
        hints = tuple(hints or ())
        pubkey = pubkey.lower()

        cached = self._profile_cache.get(pubkey)
        if cached is not None:
            self._logger.debug("profile_cache_hit", pubkey=pubkey)
            RESOLUTIONS_TOTAL.labels(operation="profile", outcome="found").inc()
            return cached

        relays = self._relays.relays_for_query(hints, RelayPurpose.PROFILE)
        raw = await self._query(
            "profile", relays, query_filter, self._config.effective_profile_timeout
        )
        if raw is None:
            return None

        profile = ProfileRecord.from_raw(raw)
        self._profile_cache.set(pubkey, profile)
        return profile

    async def resolve_article(
        self,
        author: str,
        identifier: str,
        kind: int,
        hints: Hints = None,
    ) -> Record | None:
        """Resolve an addressable event by coordinate.

        The article query and the author's profile resolution run
        concurrently and are both awaited before returning; neither cancels
        the other.

        Args:
            author: Hex pubkey of the article author.
            identifier: ``d`` tag value.
            kind: Addressable event kind (e.g. 30023).
            hints: Relay URLs to try ahead of the event defaults.

        Raises:
            PreconditionError: If any coordinate component is missing.
            TransportError: If the relay pool is unusable.
        """
        missing = [
            name
            for name, value in (("author", author), ("identifier", identifier), ("kind", kind))
            if value is None or value == ""
        ]
        if missing:
            RESOLUTIONS_TOTAL.labels(operation="article", outcome="invalid").inc()
            raise PreconditionError(f"article coordinate missing: {', '.join(missing)}")

        hints = tuple(hints or ())
        query_filter = self._make_filter(
            "article", lambda: AddressFilter(author, kind, identifier)
        )
        relays = self._relays.relays_for_query(hints, RelayPurpose.EVENT)

        raw, author_profile = await asyncio.gather(
            self._query("article", relays, query_filter, self._config.timeout),
            self._author_profile(author, hints, query_filter.describe()),
            return_exceptions=True,
        )
        if isinstance(raw, BaseException):
            raise raw
        if raw is None:
            return None

        record = parse_record(raw)
        if isinstance(record, ProfileRecord) or not isinstance(author_profile, ProfileRecord):
            return record
        return record.with_author(author_profile)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _make_filter(self, operation: str, factory: Callable[[], QueryFilter]) -> QueryFilter:
        try:
            return factory()
        except (ValueError, TypeError) as e:
            RESOLUTIONS_TOTAL.labels(operation=operation, outcome="invalid").inc()
            raise PreconditionError(f"invalid {operation} request: {e}") from e

    async def _query(
        self,
        operation: str,
        relays: RelayList,
        query_filter: QueryFilter,
        timeout: float,  # noqa: ASYNC109
    ) -> RawRecord | None:
        """Run a retrying query and record the outcome."""
        try:
            raw = await self._retry.resolve(
                relays,
                query_filter,
                timeout,
                self._relays.all_known_relays(),
                self._config.retry_timeout,
                operation,
            )
        except TransportError as e:
            RESOLUTIONS_TOTAL.labels(operation=operation, outcome="failed").inc()
            self._logger.error(
                f"{operation}_query_failed", filter=query_filter.describe(), error=str(e)
            )
            raise

        outcome = "found" if raw is not None else "absent"
        RESOLUTIONS_TOTAL.labels(operation=operation, outcome=outcome).inc()
        self._logger.info(
            f"{operation}_{outcome}",
            filter=query_filter.describe(),
            relays=len(relays),
        )
        return raw

    async def _author_profile(self, pubkey: str, hints: Hints, context: str) -> ProfileRecord | None:
        """Resolve an author profile for enrichment, absorbing every failure."""
        try:
            profile = await self.resolve_profile(pubkey, hints)
        except Exception as e:  # Intentionally broad: enrichment never fails the primary record
            self._logger.warning(
                "author_profile_failed",
                pubkey=pubkey,
                context=context,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        if profile is None:
            self._logger.info("author_profile_absent", pubkey=pubkey, context=context)
        return profile
