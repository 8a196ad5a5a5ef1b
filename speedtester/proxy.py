"""
Proxy directory: turns raw Clash proxy entries into testable handles.

A :class:`ProxyHandle` carries the proxy's identity plus a *dial* capability:
a zero-argument callable returning a fresh ``aiohttp`` connector that opens
every connection through the proxy.  Only kinds we can actually dial from
Python are resolved; everything else raises :class:`UnsupportedProxyError`
before the engine ever sees it.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

import aiohttp
from aiohttp_socks import ProxyConnector
from aiohttp_socks import ProxyType as SocksType

from .exceptions import ProxyConfigError, UnsupportedProxyError


Dialer = Callable[[], aiohttp.BaseConnector]


class ProxyType(str, enum.Enum):
    """Proxy kinds understood by Clash / mihomo configuration files."""

    SHADOWSOCKS = "ss"
    SHADOWSOCKSR = "ssr"
    SNELL = "snell"
    SOCKS5 = "socks5"
    HTTP = "http"
    VMESS = "vmess"
    VLESS = "vless"
    TROJAN = "trojan"
    HYSTERIA = "hysteria"
    HYSTERIA2 = "hysteria2"
    WIREGUARD = "wireguard"
    TUIC = "tuic"
    SSH = "ssh"
    DIRECT = "direct"

    def __str__(self) -> str:
        return self.value


# Kinds aiohttp-socks (or a plain TCP connector) can tunnel through.
DIALABLE_TYPES = frozenset({ProxyType.SOCKS5, ProxyType.HTTP, ProxyType.DIRECT})


@dataclass(frozen=True)
class ProxyHandle:
    """A named proxy the engine can open connections through."""

    name: str
    type: ProxyType
    dial: Dialer = field(compare=False, repr=False)
    config: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)
    source: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.source}_{self.name}" if self.source else self.name


# ---------------------------------------------------------------------------
# Dialers
# ---------------------------------------------------------------------------

def direct_dialer() -> Dialer:
    """Connections go straight to the destination."""
    return lambda: aiohttp.TCPConnector(force_close=False)


def socks_dialer(
    kind: SocksType,
    host: str,
    port: int,
    username: Optional[str] = None,
    password: Optional[str] = None,
) -> Dialer:
    """Connections are tunnelled through a SOCKS5 / HTTP CONNECT proxy."""

    def _dial() -> aiohttp.BaseConnector:
        return ProxyConnector(
            proxy_type=kind,
            host=host,
            port=port,
            username=username or None,
            password=password or None,
            rdns=True,
        )

    return _dial


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def parse_type(value: Any) -> ProxyType:
    try:
        return ProxyType(str(value).lower())
    except ValueError:
        raise UnsupportedProxyError(f"unknown proxy type: {value!r}") from None


def _server(config: Dict[str, Any], name: str) -> Tuple[str, int]:
    host = config.get("server")
    if not host:
        raise ProxyConfigError(f"proxy {name!r}: missing server")
    try:
        port = int(config.get("port", 0))
    except (TypeError, ValueError):
        raise ProxyConfigError(f"proxy {name!r}: invalid port {config.get('port')!r}") from None
    if not 0 < port < 65536:
        raise ProxyConfigError(f"proxy {name!r}: invalid port {port}")
    return str(host), port


def resolve_proxy(config: Dict[str, Any], source: str = "") -> ProxyHandle:
    """Build a :class:`ProxyHandle` from one raw Clash proxy entry.

    Raises:
        ProxyConfigError: the entry is malformed.
        UnsupportedProxyError: the entry is valid Clash but cannot be dialled.
    """
    if not isinstance(config, dict):
        raise ProxyConfigError(f"proxy entry must be a mapping, got {type(config).__name__}")

    name = config.get("name")
    if not name:
        raise ProxyConfigError("proxy entry without a name")
    name = str(name)

    kind = parse_type(config.get("type"))
    if kind not in DIALABLE_TYPES:
        raise UnsupportedProxyError(f"proxy {name!r}: no dialer for type {kind.value}")

    if kind is ProxyType.DIRECT:
        dial = direct_dialer()
    else:
        if config.get("tls"):
            raise UnsupportedProxyError(f"proxy {name!r}: TLS-wrapped {kind.value} is not supported")
        host, port = _server(config, name)
        socks_kind = SocksType.SOCKS5 if kind is ProxyType.SOCKS5 else SocksType.HTTP
        dial = socks_dialer(
            socks_kind,
            host,
            port,
            username=config.get("username"),
            password=config.get("password"),
        )

    return ProxyHandle(name=name, type=kind, dial=dial, config=config, source=source)
