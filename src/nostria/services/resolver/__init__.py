"""Identifier resolution against the Nostr relay network.

See Also:
    [Resolver][nostria.services.resolver.service.Resolver]: The engine facade.
    [ResolverConfig][nostria.services.resolver.configs.ResolverConfig]:
        Engine configuration.
"""

from .configs import ResolverConfig
from .query import RelayQueryClient
from .relays import BUILTIN_RELAYS, RelaySetManager
from .retry import RetryCoordinator
from .service import Resolver


__all__ = [
    "BUILTIN_RELAYS",
    "RelayQueryClient",
    "RelaySetManager",
    "Resolver",
    "ResolverConfig",
    "RetryCoordinator",
]
