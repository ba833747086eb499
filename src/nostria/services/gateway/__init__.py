"""HTTP gateway resolving Nostr identifiers.

See Also:
    [Gateway][nostria.services.gateway.service.Gateway]: The service class.
    [GatewayConfig][nostria.services.gateway.configs.GatewayConfig]: Service
        configuration.
"""

from .configs import GatewayConfig
from .service import Gateway


__all__ = ["Gateway", "GatewayConfig"]
