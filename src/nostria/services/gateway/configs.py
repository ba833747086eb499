"""Gateway service configuration models.

See Also:
    [Gateway][nostria.services.gateway.Gateway]: The service class that
        consumes these configurations.
    [BaseServiceConfig][nostria.core.base_service.BaseServiceConfig]:
        Base class providing ``interval``, ``max_consecutive_failures``,
        and ``metrics`` fields.
    [ResolverConfig][nostria.services.resolver.configs.ResolverConfig]:
        Nested resolution engine options.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Self

from pydantic import Field, field_validator

from nostria.core.base_service import BaseServiceConfig
from nostria.core.exceptions import ConfigurationError
from nostria.services.resolver.configs import ResolverConfig


ENV_PORT = "PORT"


class GatewayConfig(BaseServiceConfig):
    """Configuration for the HTTP gateway.

    Attributes:
        host: Bind address for the HTTP server.
        port: Port for the HTTP server.
        cors_origins: Allowed CORS origins. Empty list disables CORS.
        response_cache_ttl: Seconds a successful route response is cached.
        resolver: Resolution engine options.
    """

    interval: float = Field(default=600.0, ge=1.0, description="Seconds between cache sweeps")
    host: str = Field(default="0.0.0.0", min_length=1, description="HTTP bind address")  # noqa: S104
    port: int = Field(default=3000, ge=1, le=65535, description="HTTP port")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    response_cache_ttl: float = Field(default=3600.0, gt=0.0)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> Self:
        """Build a config from ``PORT`` and the resolver environment variables.

        Raises:
            ConfigurationError: If ``PORT`` or a duration variable is not an
                integer.
        """
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {"resolver": ResolverConfig.from_env(env)}

        if port := env.get(ENV_PORT, "").strip():
            try:
                data["port"] = int(port)
            except ValueError:
                raise ConfigurationError(f"{ENV_PORT} must be an integer, got {port!r}") from None

        data.update(overrides)
        return cls(**data)
