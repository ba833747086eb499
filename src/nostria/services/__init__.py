"""Resolution engine and the HTTP gateway in front of it.

Services are the top layer, depending on [nostria.core][nostria.core],
[nostria.utils][nostria.utils] and [nostria.models][nostria.models].

```text
Gateway (HTTP, long-running) -> Resolver -> RetryCoordinator -> RelayQueryClient -> RelayPool
```

Attributes:
    Resolver: Library-level engine resolving events, profiles and articles
        against the relay network, with a profile cache and one expansion
        retry on miss.
    Gateway: FastAPI front end over the resolver with per-route response
        caching; its ``run()`` cycle sweeps expired cache entries.

Examples:
    ```python
    from nostria.services import Resolver, ResolverConfig

    async with Resolver(ResolverConfig.from_env()) as resolver:
        profile = await resolver.resolve_profile(pubkey)
    ```
"""

from .gateway import Gateway, GatewayConfig
from .resolver import Resolver, ResolverConfig


__all__ = [
    "Gateway",
    "GatewayConfig",
    "Resolver",
    "ResolverConfig",
]
