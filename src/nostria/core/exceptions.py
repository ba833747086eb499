"""Nostria exception hierarchy.

Separates the three outcomes a resolution can have besides success: a caller
mistake, a broken relay transport, and plain absence. Absence is not an
exception at all -- resolution methods return ``None`` for it.

Exception hierarchy:

```text
NostriaError (base -- never raised directly)
├── ConfigurationError   -- config validation, missing keys, bad YAML/env
├── PreconditionError    -- caller omitted a required identifier component
└── TransportError       -- the relay pool itself cannot be used
```

See Also:
    [Resolver][nostria.services.resolver.service.Resolver]: Raises
        [PreconditionError][nostria.core.exceptions.PreconditionError] and
        propagates [TransportError][nostria.core.exceptions.TransportError].
    [RelayPool][nostria.core.relay_pool.RelayPool]: Raises
        [TransportError][nostria.core.exceptions.TransportError] when used
        before ``connect()`` or when client creation fails.
    [Gateway][nostria.services.gateway.service.Gateway]: Maps these
        exceptions to HTTP status codes.
"""

from __future__ import annotations


class NostriaError(Exception):
    """Base exception for all Nostria errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(NostriaError):
    """Invalid or missing configuration (YAML, env vars, CLI flags)."""


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class PreconditionError(NostriaError, ValueError):
    """A required identifier component is missing or malformed.

    Never retried. The HTTP boundary maps it to a client error (400).
    """


class TransportError(NostriaError):
    """The relay transport layer could not be used at all.

    Raised for pool-level failures (not connected, client construction
    failed), never for a single relay being unreachable: individual relay
    failures are absorbed by the query client. Not retried by the resolver,
    whose retry only ever concerns relay-set expansion.
    """
