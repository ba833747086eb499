"""
Long-lived relay connection pool.

Wraps a single ``nostr_sdk.Client`` shared by every resolution in the
process. Relays are registered on the client the first time a query names
them and then stay connected, so repeated lookups against the same relays
reuse warm WebSocket connections instead of paying a handshake per request.

The pool is an explicitly owned resource with a
[connect()][nostria.core.relay_pool.RelayPool.connect] /
[close()][nostria.core.relay_pool.RelayPool.close] lifecycle (or
``async with``). The [Resolver][nostria.services.resolver.service.Resolver]
owns one and injects it into its query client.

Failure model:
    * Using the pool before ``connect()`` (or after ``close()``) raises
      [TransportError][nostria.core.exceptions.TransportError].
    * A single relay failing to connect, erroring, or timing out is absorbed:
      the fetch simply returns whatever the other relays delivered.
    * A filter the SDK cannot encode (e.g. an id that is not valid hex) can
      never match a stored event, so it yields no records instead of an error.

Examples:
    ```python
    pool = RelayPool()
    async with pool:
        records = await pool.fetch(relays, IdFilter(event_id), timeout=3.0)
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from nostr_sdk import ClientBuilder, NostrSdkError, RelayUrl

from nostria.models.record import RawRecord

from .exceptions import TransportError
from .logger import Logger


if TYPE_CHECKING:
    from nostr_sdk import Client

    from nostria.models.filters import QueryFilter
    from nostria.models.relay_list import RelayList


DEFAULT_FETCH_OVERHEAD = 1.0
DEFAULT_CONNECT_TIMEOUT = 10.0


class RelayPool:
    """Shared nostr-sdk client with lazy relay registration.

    Args:
        fetch_overhead: Seconds added to each query timeout as a hard cap on
            the whole call (relay registration, subscription teardown,
            result conversion). A fetch never blocks longer than
            ``timeout + fetch_overhead``.
        connect_timeout: Seconds a background connection attempt to newly
            registered relays may take.

    Note:
        The ``asyncio.Lock`` guards relay registration bookkeeping only.
        Connections to new relays are started in background tasks that no
        query awaits, so an unreachable relay cannot use up the time budget
        of the query that named it or of any other. A query that hits its
        timeout abandons its subscription rather than tearing down
        connections, which remain pooled for later queries.
    """

    def __init__(
        self,
        *,
        fetch_overhead: float = DEFAULT_FETCH_OVERHEAD,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        if fetch_overhead < 0:
            raise ValueError(f"fetch_overhead must be non-negative, got {fetch_overhead}")
        if connect_timeout <= 0:
            raise ValueError(f"connect_timeout must be positive, got {connect_timeout}")
        self._fetch_overhead = fetch_overhead
        self._connect_timeout = connect_timeout
        self._connect_tasks: set[asyncio.Task[None]] = set()
        self._client: Client | None = None
        self._known: set[str] = set()
        self._lock = asyncio.Lock()
        self._logger = Logger("relay_pool")

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """Create the underlying client. Idempotent.

        Raises:
            TransportError: If the nostr-sdk client cannot be built.
        """
        async with self._lock:
            if self._client is not None:
                return
            try:
                self._client = ClientBuilder().build()
            except NostrSdkError as e:
                self._logger.error("client_create_failed", error=str(e))
                raise TransportError(f"Failed to create relay client: {e}") from e
            self._logger.info("pool_connected")

    async def close(self) -> None:
        """Disconnect from every relay and drop the client. Idempotent."""
        async with self._lock:
            if self._client is None:
                return
            client, self._client = self._client, None
            relays = len(self._known)
            self._known.clear()
            for task in self._connect_tasks:
                task.cancel()
            self._connect_tasks.clear()
            # nostr-sdk Rust FFI can raise arbitrary exception types during shutdown
            with contextlib.suppress(Exception):
                await client.shutdown()
            self._logger.info("pool_closed", relays=relays)

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def known_relays(self) -> frozenset[str]:
        """Relays registered on the client so far."""
        return frozenset(self._known)

    async def __aenter__(self) -> RelayPool:
        await self.connect()
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Fetching
    # -------------------------------------------------------------------------

    async def fetch(
        self,
        relays: RelayList,
        query_filter: QueryFilter,
        timeout: float,  # noqa: ASYNC109
    ) -> list[RawRecord]:
        """Fetch events matching *query_filter* from *relays*.

        Waits until every relay has answered (EOSE) or *timeout* elapses,
        then returns the structurally valid events received so far. Events
        that fail validation are dropped.

        Args:
            relays: Relays to query. Unregistered relays are added first.
            query_filter: Filter to send.
            timeout: Seconds to wait for relay answers.

        Returns:
            Validated records, possibly empty.

        Raises:
            TransportError: If the pool is not connected.
        """
        client = self._client
        if client is None:
            raise TransportError("Relay pool is not connected")
        if not relays:
            return []

        try:
            nostr_filter = query_filter.to_nostr_filter()
        except NostrSdkError as e:
            self._logger.debug("filter_unencodable", filter=query_filter.describe(), error=str(e))
            return []

        try:
            async with asyncio.timeout(timeout + self._fetch_overhead):
                urls = await self._register(client, relays)
                if not urls:
                    return []
                events = await client.fetch_events_from(
                    urls, nostr_filter, timedelta(seconds=timeout)
                )
        except TimeoutError:
            self._logger.debug("fetch_deadline_exceeded", relays=len(relays), timeout_s=timeout)
            return []
        except NostrSdkError as e:
            self._logger.debug("fetch_failed", relays=len(relays), error=str(e))
            return []

        records: list[RawRecord] = []
        for event in events.to_vec():
            try:
                records.append(RawRecord.from_nostr_event(event))
            except (ValueError, TypeError) as e:
                self._logger.debug("record_invalid", error=str(e))
        return records

    async def _register(self, client: Client, relays: RelayList) -> list[RelayUrl]:
        """Add any relays the client does not know yet and start connecting them.

        Only the ``add_relay`` bookkeeping runs under the lock. Connection
        attempts run in background tasks, so the caller's fetch gets its
        full timeout; relays still connecting are handled by the SDK like
        any other slow relay.

        Returns:
            Parsed URLs of the requested relays the client accepted.
        """
        pending = [url for url in relays if url not in self._known]
        if pending:
            added: list[str] = []
            async with self._lock:
                for url in pending:
                    if url in self._known:
                        continue
                    try:
                        await client.add_relay(RelayUrl.parse(url))
                    except NostrSdkError as e:
                        self._logger.debug("relay_add_failed", relay=url, error=str(e))
                        continue
                    self._known.add(url)
                    added.append(url)
            if added:
                task = asyncio.create_task(self._connect(client, added))
                self._connect_tasks.add(task)
                task.add_done_callback(self._connect_tasks.discard)

        return [RelayUrl.parse(url) for url in relays if url in self._known]

    async def _connect(self, client: Client, urls: list[str]) -> None:
        """Connect newly added relays; failures are logged, never raised."""
        try:
            output = await client.try_connect(timedelta(seconds=self._connect_timeout))
        except NostrSdkError as e:
            self._logger.debug("relay_connect_failed", relays=",".join(urls), error=str(e))
            return
        for failed_url, error in output.failed.items():
            self._logger.debug("relay_connect_failed", relay=str(failed_url), error=error)
