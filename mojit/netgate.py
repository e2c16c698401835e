"""Network policy enforcement for a guest process.

The gate decides whether socket creation, connect/sendto destinations,
bind addresses and accepted peers are permitted under a ``NetPolicy``.
Denials are raised as exceptions carrying the errno the guest sees.
"""

from __future__ import annotations

import errno
import ipaddress
from dataclasses import dataclass
from typing import List, Union

from mojit.policy import NetPolicy

__all__ = [
    "AF_UNIX",
    "AF_INET",
    "AF_INET6",
    "BlockedByPolicyError",
    "AddrPort",
    "parse_addr_port",
    "builtin_deny",
    "NetGate",
]

# Guest (Linux) address family numbers.
AF_UNIX = 1
AF_INET = 2
AF_INET6 = 10

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

_MODE_ERROR = "unknown NetPolicy mode (want none|loopback-only|internet)"

_BUILTIN_DENY = (
    "127.0.0.0/8",
    "::1/128",
    "169.254.0.0/16",
    "fe80::/10",
    "10.0.0.0/8",
    "172.16.0.0/12",
    "192.168.0.0/16",
)

_IPV4_UNSPECIFIED = ipaddress.IPv4Address("0.0.0.0")
_IPV6_UNSPECIFIED = ipaddress.IPv6Address("::")


class BlockedByPolicyError(PermissionError):
    """A network operation was denied by the policy (EACCES)."""

    def __init__(self, message: str = "network destination blocked by policy") -> None:
        super().__init__(errno.EACCES, message)


@dataclass(frozen=True)
class AddrPort:
    """An IP address together with a port number."""

    addr: IPAddress
    port: int

    def __post_init__(self) -> None:
        if isinstance(self.addr, str):
            object.__setattr__(self, "addr", ipaddress.ip_address(self.addr))
        if not 0 <= self.port <= 0xFFFF:
            raise ValueError(f"port {self.port} out of range")

    def __str__(self) -> str:
        if self.addr.version == 6:
            return f"[{self.addr}]:{self.port}"
        return f"{self.addr}:{self.port}"


def parse_addr_port(text: str) -> AddrPort:
    """Parse ``"1.2.3.4:80"`` or ``"[::1]:80"`` into an ``AddrPort``."""
    if text.startswith("["):
        host, sep, port = text[1:].partition("]:")
        if not sep:
            raise ValueError(f"{text!r}: missing ']:' after IPv6 address")
    else:
        host, sep, port = text.rpartition(":")
        if not sep:
            raise ValueError(f"{text!r}: missing port")
        if ":" in host:
            raise ValueError(f"{text!r}: IPv6 address must be in brackets")
    try:
        addr = ipaddress.ip_address(host)
    except ValueError as exc:
        raise ValueError(f"{text!r}: bad address") from exc
    if text.startswith("[") and addr.version != 6:
        raise ValueError(f"{text!r}: only IPv6 addresses may be bracketed")
    if not (port.isascii() and port.isdigit()):
        raise ValueError(f"{text!r}: bad port")
    number = int(port)
    if number > 0xFFFF:
        raise ValueError(f"{text!r}: port out of range")
    return AddrPort(addr, number)


def builtin_deny() -> List[IPNetwork]:
    """Return the ranges every internet-mode guest is denied."""
    return [ipaddress.ip_network(prefix) for prefix in _BUILTIN_DENY]


def _is_loopback(addr: IPAddress) -> bool:
    if addr.version == 6 and addr.ipv4_mapped is not None:
        addr = addr.ipv4_mapped
    return addr.is_loopback


def _is_unspecified(addr: IPAddress) -> bool:
    return addr == _IPV4_UNSPECIFIED or addr == _IPV6_UNSPECIFIED


def _contains(prefix: IPNetwork, addr: IPAddress) -> bool:
    if prefix.version != addr.version:
        return False
    if getattr(addr, "scope_id", None):
        return False
    return addr in prefix


class NetGate:
    """Enforces a ``NetPolicy`` for a guest process."""

    def __init__(self, policy: NetPolicy) -> None:
        self.policy = policy
        self.deny: List[IPNetwork] = builtin_deny() + list(policy.deny_cidrs)

    def check_connect(self, addr: AddrPort) -> None:
        """Raise ``BlockedByPolicyError`` unless ``addr`` may be reached."""
        mode = self.policy.mode
        if mode in ("none", ""):
            raise BlockedByPolicyError()
        if mode == "loopback-only":
            if not _is_loopback(addr.addr):
                raise BlockedByPolicyError()
            return
        if mode == "internet":
            if any(_contains(prefix, addr.addr) for prefix in self.deny):
                raise BlockedByPolicyError()
            return
        raise ValueError(_MODE_ERROR)

    def check_accept(self, peer: AddrPort) -> None:
        """Raise ``BlockedByPolicyError`` unless ``peer`` may be accepted."""
        mode = self.policy.mode
        if mode in ("none", ""):
            raise BlockedByPolicyError()
        if mode == "loopback-only":
            if not _is_loopback(peer.addr):
                raise BlockedByPolicyError()
            return
        if mode == "internet":
            return
        raise ValueError(_MODE_ERROR)

    def check_bind(self, addr: AddrPort) -> None:
        """Raise ``BlockedByPolicyError`` unless ``addr`` may be bound.

        Loopback-only guests may bind loopback or wildcard addresses.
        """
        mode = self.policy.mode
        if mode in ("none", ""):
            raise BlockedByPolicyError()
        if mode == "loopback-only":
            if _is_loopback(addr.addr) or _is_unspecified(addr.addr):
                return
            raise BlockedByPolicyError()
        if mode == "internet":
            return
        raise ValueError(_MODE_ERROR)

    def allow_socket(self, domain: int) -> None:
        """Decide whether the guest may create a socket of ``domain``.

        Mode ``"none"`` refuses internet families with EACCES; families
        other than unix, inet and inet6 fail with EAFNOSUPPORT.
        """
        if domain in (AF_INET, AF_INET6):
            if self.policy.mode == "none":
                raise BlockedByPolicyError("internet sockets blocked by policy")
            return
        if domain == AF_UNIX:
            return
        raise OSError(errno.EAFNOSUPPORT, f"address family {domain} not supported")