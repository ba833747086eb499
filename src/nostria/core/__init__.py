"""Core layer: infrastructure shared by the resolver and the gateway.

Depends only on ``nostria.models`` and is depended upon by
``nostria.services``.

Attributes:
    RelayPool: The single long-lived nostr-sdk client, with explicit
        ``connect()``/``close()`` lifecycle.
        See [RelayPool][nostria.core.relay_pool.RelayPool].
    TTLCache: Generic key/value cache with per-entry expiry.
        See [TTLCache][nostria.core.cache.TTLCache].
    BaseService: Abstract generic base class with lifecycle management and
        Prometheus metrics integration.
    Logger: Structured logger supporting key=value and JSON output modes.
    MetricsServer: Prometheus ``/metrics`` HTTP endpoint.
    load_yaml: Safe YAML loading with ``yaml.safe_load()``.
"""

from .base_service import BaseService, BaseServiceConfig, ConfigT
from .cache import CacheEntry, TTLCache
from .exceptions import (
    ConfigurationError,
    NostriaError,
    PreconditionError,
    TransportError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import MetricsConfig, MetricsServer, start_metrics_server
from .relay_pool import RelayPool
from .yaml import load_yaml


__all__ = [
    "BaseService",
    "BaseServiceConfig",
    "CacheEntry",
    "ConfigT",
    "ConfigurationError",
    "Logger",
    "MetricsConfig",
    "MetricsServer",
    "NostriaError",
    "PreconditionError",
    "RelayPool",
    "StructuredFormatter",
    "TTLCache",
    "TransportError",
    "format_kv_pairs",
    "load_yaml",
    "start_metrics_server",
]
