"""Retry against the full relay universe on miss.

A record can exist on the network without being on any hinted or default
relay: there is no global index. On a miss the coordinator widens the relay
set to every relay the gateway knows and asks exactly once more, with its
own (usually longer) timeout. Worst-case latency is therefore bounded by
``timeout + retry_timeout``.

The retry is skipped when the widened set is no larger than the original.
Note that this also skips it when the original relays covered the universe
but one of them failed transiently rather than lacking the record; that
trade keeps the latency contract intact.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from nostria.core.logger import Logger
from nostria.core.metrics import RETRIES_TOTAL


if TYPE_CHECKING:
    from nostria.models.filters import QueryFilter
    from nostria.models.record import RawRecord
    from nostria.models.relay_list import RelayList

    from .query import RelayQueryClient


class RetryCoordinator:
    """Wraps a [RelayQueryClient][nostria.services.resolver.query.RelayQueryClient]
    with one expansion retry."""

    def __init__(self, query_client: RelayQueryClient) -> None:
        self._query_client = query_client
        self._logger = Logger("retry")

    async def resolve(
        self,
        relays: RelayList,
        query_filter: QueryFilter,
        timeout: float,  # noqa: ASYNC109
        all_relays_fallback: RelayList,
        retry_timeout: float,
        label: str,
    ) -> RawRecord | None:
        """Query *relays*, then the union with *all_relays_fallback* on miss.

        Args:
            relays: Initial relay set.
            query_filter: Filter for both attempts.
            timeout: Seconds for the first attempt.
            all_relays_fallback: Relay universe used for expansion.
            retry_timeout: Seconds for the retry.
            label: Short name for logs and metrics (``event``, ``profile``...).

        Returns:
            The record from whichever attempt found it, or ``None``.

        Raises:
            TransportError: If the relay pool is unusable.
        """
        record = await self._query_client.query(relays, query_filter, timeout)
        if record is not None:
            return record

        expanded = relays.union(all_relays_fallback)
        if len(expanded) <= len(relays):
            self._logger.debug(
                "retry_skipped",
                label=label,
                filter=query_filter.describe(),
                relays=len(relays),
            )
            return None

        self._logger.info(
            "retry_started",
            label=label,
            filter=query_filter.describe(),
            relays=len(relays),
            expanded=len(expanded),
            timeout_s=retry_timeout,
        )
        RETRIES_TOTAL.labels(label=label).inc()

        record = await self._query_client.query(expanded, query_filter, retry_timeout)
        self._logger.info(
            "retry_completed",
            label=label,
            filter=query_filter.describe(),
            found=record is not None,
        )
        return record
