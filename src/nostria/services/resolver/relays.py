"""Default relay sets and per-query relay selection.

The manager is built once per resolver and never changes afterwards, so it
is shared by concurrent resolutions without locking.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from nostria.models.constants import DEFAULT_RELAYS, RelayPurpose
from nostria.models.relay import Relay
from nostria.models.relay_list import RelayList, build_relay_list

from .configs import ResolverConfig


logger = logging.getLogger(__name__)

BUILTIN_RELAYS = RelayList(DEFAULT_RELAYS)


class RelaySetManager:
    """Holds the default event and profile relay lists.

    Args:
        event_relays: Defaults for event and article lookups.
        profile_relays: Defaults for profile lookups.

    Raises:
        ValueError: If either list is empty.
    """

    __slots__ = ("_all", "_event", "_profile")

    def __init__(self, event_relays: RelayList, profile_relays: RelayList) -> None:
        if not event_relays or not profile_relays:
            raise ValueError("default relay lists must not be empty")
        self._event = event_relays
        self._profile = profile_relays
        self._all = event_relays.union(profile_relays)

    @classmethod
    def from_config(cls, config: ResolverConfig) -> RelaySetManager:
        """Build both lists, falling back to the built-in defaults.

        An unset profile list uses the event list.
        """
        event_relays = build_relay_list(config.event_relays, BUILTIN_RELAYS)
        if config.profile_relays is None:
            profile_relays = event_relays
        else:
            profile_relays = build_relay_list(config.profile_relays, event_relays)
        return cls(event_relays, profile_relays)

    @property
    def event_relays(self) -> RelayList:
        return self._event

    @property
    def profile_relays(self) -> RelayList:
        return self._profile

    def defaults_for(self, purpose: RelayPurpose) -> RelayList:
        return self._profile if purpose == RelayPurpose.PROFILE else self._event

    def all_known_relays(self) -> RelayList:
        """Union of the event and profile defaults; the retry universe."""
        return self._all

    def relays_for_query(self, hints: Iterable[str] | None, purpose: RelayPurpose) -> RelayList:
        """Hint relays first, then the purpose's defaults, deduplicated.

        Invalid hints are dropped, and so are hints pointing at local or
        private hosts: hints arrive inside user-supplied identifiers.
        Configured defaults may be local.
        """
        return RelayList(_public_hints(hints or ())).union(self.defaults_for(purpose))


def _public_hints(hints: Iterable[str]) -> list[Relay]:
    relays: list[Relay] = []
    for hint in hints:
        relay = Relay.parse(hint)
        if relay is None:
            continue
        if relay.is_local:
            logger.debug("local_hint_dropped url=%s", relay.url)
            continue
        relays.append(relay)
    return relays
