"""
Validated Nostr relay URL with network type detection.

Parses, normalizes, and validates WebSocket relay URLs (``ws://`` or
``wss://``). The scheme is kept as supplied: a relay that only serves plain
``ws`` must stay reachable. Local and private hosts are valid here and
flagged with ``NetworkType.LOCAL``; callers handling untrusted URLs (relay
hints) filter them with
[is_local][nostria.models.relay.Relay.is_local].
"""

from __future__ import annotations

from dataclasses import dataclass, field
from ipaddress import IPv4Network, IPv6Network, ip_address, ip_network
from typing import ClassVar, NamedTuple

from rfc3986 import uri_reference
from rfc3986.exceptions import UnpermittedComponentError, ValidationError
from rfc3986.validators import Validator

from .constants import NetworkType


class _ParsedUrl(NamedTuple):
    url: str
    scheme: str
    host: str
    port: int | None
    path: str | None
    network: NetworkType


@dataclass(frozen=True, slots=True)
class Relay:
    """Immutable, normalized relay address.

    The scheme is never rewritten. Default ports, duplicate slashes and
    trailing slashes are stripped, so two spellings of the same endpoint
    compare equal.

    Attributes:
        url: Fully normalized URL including scheme.
        network: Detected ``NetworkType``.
        scheme: ``ws`` or ``wss``.
        host: Hostname or IP address (IPv6 brackets stripped).
        port: Explicit non-default port, or ``None``.
        path: Normalized path, or ``None``.

    Raises:
        ValueError: If the URL is malformed, uses a non-WebSocket scheme,
            carries a query or fragment, or has no usable host.

    Examples:
        ```python
        Relay("ws://relay.damus.io/").url      # 'ws://relay.damus.io'
        Relay("ws://localhost:7777").is_local  # True
        Relay("https://relay.damus.io")         # ValueError
        ```
    """

    raw_url: str = field(repr=False, compare=False, hash=False)

    url: str = field(init=False)
    network: NetworkType = field(init=False, compare=False, hash=False)
    scheme: str = field(init=False, compare=False, hash=False)
    host: str = field(init=False, compare=False, hash=False)
    port: int | None = field(init=False, compare=False, hash=False)
    path: str | None = field(init=False, compare=False, hash=False)

    _PORT_WS: ClassVar[int] = 80
    _PORT_WSS: ClassVar[int] = 443

    _NETWORK_TLDS: ClassVar[dict[str, NetworkType]] = {
        ".onion": NetworkType.TOR,
        ".i2p": NetworkType.I2P,
        ".loki": NetworkType.LOKI,
    }

    # IANA special-purpose ranges; see iana-ipv4/ipv6-special-registry
    _LOCAL_NETWORKS: ClassVar[tuple[IPv4Network | IPv6Network, ...]] = tuple(
        ip_network(net)
        for net in (
            "0.0.0.0/8",
            "10.0.0.0/8",
            "100.64.0.0/10",
            "127.0.0.0/8",
            "169.254.0.0/16",
            "172.16.0.0/12",
            "192.0.0.0/24",
            "192.0.2.0/24",
            "192.168.0.0/16",
            "198.18.0.0/15",
            "198.51.100.0/24",
            "203.0.113.0/24",
            "224.0.0.0/4",
            "240.0.0.0/4",
            "::1/128",
            "::/128",
            "::ffff:0:0/96",
            "fc00::/7",
            "fe80::/10",
            "ff00::/8",
        )
    )

    def __post_init__(self) -> None:
        if not isinstance(self.raw_url, str):
            raise ValueError(f"Relay URL must be a str, got {type(self.raw_url).__name__}")
        if "\x00" in self.raw_url:
            raise ValueError("Relay URL contains null bytes")

        parsed = self._parse(self.raw_url)
        if parsed.network == NetworkType.UNKNOWN:
            raise ValueError(f"Invalid host: '{parsed.host}'")

        # Frozen dataclass: computed fields are set through object.__setattr__
        object.__setattr__(self, "url", parsed.url)
        object.__setattr__(self, "network", parsed.network)
        object.__setattr__(self, "scheme", parsed.scheme)
        object.__setattr__(self, "host", parsed.host)
        object.__setattr__(self, "port", parsed.port)
        object.__setattr__(self, "path", parsed.path)

    def __str__(self) -> str:
        return self.url

    @property
    def is_local(self) -> bool:
        """True for loopback, private and other special-purpose hosts."""
        return self.network == NetworkType.LOCAL

    @classmethod
    def parse(cls, raw: str) -> Relay | None:
        """Return a Relay for *raw*, or ``None`` if it is not a valid relay URL."""
        try:
            return cls(raw)
        except ValueError:
            return None

    @staticmethod
    def _detect_network(host: str) -> NetworkType:
        if not host:
            return NetworkType.UNKNOWN

        host_bare = host.lower().strip("[]")
        for tld, network in Relay._NETWORK_TLDS.items():
            if host_bare.endswith(tld):
                return network

        if host_bare in ("localhost", "localhost.localdomain"):
            return NetworkType.LOCAL

        try:
            ip = ip_address(host_bare)
        except ValueError:
            pass
        else:
            is_local = any(ip in net for net in Relay._LOCAL_NETWORKS)
            return NetworkType.LOCAL if is_local else NetworkType.CLEARNET

        labels = host_bare.split(".")
        if len(labels) < 2:
            return NetworkType.UNKNOWN
        valid = all(label and not label.startswith("-") and not label.endswith("-") for label in labels)
        return NetworkType.CLEARNET if valid else NetworkType.UNKNOWN

    @staticmethod
    def _parse(raw: str) -> _ParsedUrl:
        uri = uri_reference(raw.strip()).normalize()

        validator = (
            Validator()
            .require_presence_of("scheme", "host")
            .allow_schemes("ws", "wss")
            .check_validity_of("scheme", "host", "port", "path")
        )
        try:
            validator.validate(uri)
        except UnpermittedComponentError:
            raise ValueError("Invalid scheme: must be ws or wss") from None
        except ValidationError as e:
            raise ValueError(f"Invalid URL: {e}") from None

        if uri.query:
            raise ValueError(f"Relay URL must not contain a query string: ?{uri.query}")
        if uri.fragment:
            raise ValueError(f"Relay URL must not contain a fragment: #{uri.fragment}")

        host = uri.host.strip("[]")
        port = int(uri.port) if uri.port else None

        path = uri.path or ""
        while "//" in path:
            path = path.replace("//", "/")
        path = path.rstrip("/") or None

        network = Relay._detect_network(host)
        scheme = uri.scheme

        formatted_host = f"[{host}]" if ":" in host else host
        default_port = Relay._PORT_WSS if scheme == "wss" else Relay._PORT_WS
        authority = f"{formatted_host}:{port}" if port and port != default_port else formatted_host

        return _ParsedUrl(
            url=f"{scheme}://{authority}{path or ''}",
            scheme=scheme,
            host=host,
            port=port,
            path=path,
            network=network,
        )
