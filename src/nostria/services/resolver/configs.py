"""Resolver configuration models.

Every option is optional. Durations are seconds in YAML and in the model;
the environment surface keeps the millisecond units operators already use
for ``RELAY_TIMEOUT`` and friends, and
[ResolverConfig.from_env()][nostria.services.resolver.configs.ResolverConfig.from_env]
converts them.

Examples:
    ```yaml
    resolver:
      event_relays: [wss://relay.damus.io, wss://nos.lol]
      profile_relays: wss://purplepag.es,wss://relay.damus.io
      timeout: 3.0
      retry_timeout: 6.0
      profile_cache_ttl: 60.0
    ```

See Also:
    [Resolver][nostria.services.resolver.service.Resolver]: Consumes this
        configuration.
    [RelaySetManager.from_config()][nostria.services.resolver.relays.RelaySetManager.from_config]:
        Builds the default relay lists from it.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Self

from pydantic import BaseModel, Field, field_validator

from nostria.core.exceptions import ConfigurationError
from nostria.models.constants import DEFAULT_RELAYS


# Environment variable names (millisecond values for durations)
ENV_EVENT_RELAYS = "DEFAULT_RELAYS"
ENV_PROFILE_RELAYS = "PROFILE_RELAYS"
ENV_TIMEOUT = "RELAY_TIMEOUT"
ENV_PROFILE_TIMEOUT = "PROFILE_RELAY_TIMEOUT"
ENV_RETRY_TIMEOUT = "RETRY_TIMEOUT"
ENV_PROFILE_CACHE_TTL = "PROFILE_CACHE_TTL"

_MS_FIELDS: dict[str, str] = {
    ENV_TIMEOUT: "timeout",
    ENV_PROFILE_TIMEOUT: "profile_timeout",
    ENV_RETRY_TIMEOUT: "retry_timeout",
    ENV_PROFILE_CACHE_TTL: "profile_cache_ttl",
}


class ResolverConfig(BaseModel):
    """Configuration for the resolution engine.

    Attributes:
        event_relays: Default relays for event and article lookups. Entries
            are validated when the relay lists are built; an empty or fully
            invalid list falls back to the built-in defaults.
        profile_relays: Default relays for profile lookups. ``None`` means
            "same as ``event_relays``".
        timeout: Per-query timeout in seconds for the first attempt.
        profile_timeout: Per-query timeout for profile lookups. ``None``
            means "same as ``timeout``".
        retry_timeout: Timeout for the single retry against the expanded
            relay set.
        profile_cache_ttl: Seconds a resolved profile stays cached.
        fetch_overhead: Extra seconds a query may take beyond its timeout
            for relay registration and teardown.
    """

    event_relays: list[str] = Field(default_factory=lambda: list(DEFAULT_RELAYS))
    profile_relays: list[str] | None = None
    timeout: float = Field(default=3.0, gt=0.0, le=120.0)
    profile_timeout: float | None = Field(default=None, gt=0.0, le=120.0)
    retry_timeout: float = Field(default=6.0, gt=0.0, le=300.0)
    profile_cache_ttl: float = Field(default=60.0, gt=0.0)
    fetch_overhead: float = Field(default=1.0, ge=0.0, le=30.0)

    @field_validator("event_relays", "profile_relays", mode="before")
    @classmethod
    def _split_csv(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @property
    def effective_profile_timeout(self) -> float:
        return self.profile_timeout if self.profile_timeout is not None else self.timeout

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> Self:
        """Build a config from environment variables.

        Unset or blank variables keep their defaults. Duration variables are
        integers in milliseconds.

        Args:
            environ: Mapping to read instead of ``os.environ``.
            **overrides: Field values that take precedence over the
                environment.

        Raises:
            ConfigurationError: If a duration variable is not an integer.
        """
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}

        if relays := env.get(ENV_EVENT_RELAYS, "").strip():
            data["event_relays"] = relays
        if relays := env.get(ENV_PROFILE_RELAYS, "").strip():
            data["profile_relays"] = relays

        for env_name, field_name in _MS_FIELDS.items():
            raw = env.get(env_name, "").strip()
            if not raw:
                continue
            try:
                data[field_name] = int(raw) / 1000
            except ValueError:
                raise ConfigurationError(
                    f"{env_name} must be an integer number of milliseconds, got {raw!r}"
                ) from None

        data.update(overrides)
        return cls(**data)
