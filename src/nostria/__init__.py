r"""Nostria -- resolve Nostr identifiers into records over a relay network.

Events, profiles and long-form articles are looked up by identifier across
a set of relays, with relay hints, one expansion retry on miss, author
profile enrichment and in-memory TTL caching. An HTTP gateway exposes the
engine to clients that do not speak Nostr.

Imports flow strictly downward:

```text
             services          Resolver engine and HTTP gateway
             /      \
          core      utils      Relay pool, cache, logging, metrics; NIP-19
             \      /
              models           Frozen dataclasses (zero I/O)
```

Note:
    Top-level imports (``from nostria import Resolver``) use lazy loading
    and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("nostria")

__all__ = [
    "BaseService",
    "Gateway",
    "GatewayConfig",
    "Logger",
    "RawRecord",
    "Relay",
    "RelayList",
    "RelayPool",
    "Resolver",
    "ResolverConfig",
    "TTLCache",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseService": ("nostria.core", "BaseService"),
    "Logger": ("nostria.core", "Logger"),
    "RelayPool": ("nostria.core", "RelayPool"),
    "TTLCache": ("nostria.core", "TTLCache"),
    "RawRecord": ("nostria.models", "RawRecord"),
    "Relay": ("nostria.models", "Relay"),
    "RelayList": ("nostria.models", "RelayList"),
    "Gateway": ("nostria.services", "Gateway"),
    "GatewayConfig": ("nostria.services", "GatewayConfig"),
    "Resolver": ("nostria.services", "Resolver"),
    "ResolverConfig": ("nostria.services", "ResolverConfig"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'nostria' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
