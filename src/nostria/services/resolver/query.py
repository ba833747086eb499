"""Single bounded-time relay query.

Contract relied on by the retry coordinator: the call returns the freshest
record that actually matches the filter, or ``None`` when nothing matching
arrived before the timeout. Which relay answered first is irrelevant and no
ordering among relays is guaranteed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from nostria.core.logger import Logger
from nostria.core.metrics import RELAY_QUERIES_TOTAL


if TYPE_CHECKING:
    from nostria.core.relay_pool import RelayPool
    from nostria.models.filters import QueryFilter
    from nostria.models.record import RawRecord
    from nostria.models.relay_list import RelayList


class RelayQueryClient:
    """Issues one query against one relay set through the shared pool.

    Args:
        pool: The shared [RelayPool][nostria.core.relay_pool.RelayPool].

    Note:
        Per-relay failures never surface here: the pool absorbs them and
        returns whatever the other relays delivered. Only a pool that cannot
        be used at all raises
        [TransportError][nostria.core.exceptions.TransportError], which this
        client lets propagate.
    """

    def __init__(self, pool: RelayPool) -> None:
        self._pool = pool
        self._logger = Logger("relay_query")

    async def query(
        self,
        relays: RelayList,
        query_filter: QueryFilter,
        timeout: float,  # noqa: ASYNC109
    ) -> RawRecord | None:
        """Return the newest record matching *query_filter*, or ``None``.

        Raises:
            TransportError: If the relay pool is unusable.
        """
        try:
            records = await self._pool.fetch(relays, query_filter, timeout)
        except Exception:
            RELAY_QUERIES_TOTAL.labels(outcome="error").inc()
            raise

        matching = [record for record in records if query_filter.matches(record)]
        dropped = len(records) - len(matching)
        if dropped:
            self._logger.debug(
                "non_matching_records_dropped",
                filter=query_filter.describe(),
                dropped=dropped,
            )

        if not matching:
            RELAY_QUERIES_TOTAL.labels(outcome="absent").inc()
            return None

        RELAY_QUERIES_TOTAL.labels(outcome="found").inc()
        return max(matching, key=lambda record: record.created_at)
