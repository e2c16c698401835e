"""Immutable configuration for a gated guest process."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Union

__all__ = ["BindMount", "NetPolicy", "Policy"]

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]
IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


@dataclass(frozen=True)
class BindMount:
    """Overlays a single host path into the guest rootfs."""

    host_path: str
    guest_path: str
    read_only: bool = False


@dataclass(frozen=True)
class NetPolicy:
    """Controls the network gate.

    ``mode`` is ``"none"``, ``"loopback-only"`` or ``"internet"``; the
    empty string behaves like ``"none"`` for destination checks.
    ``deny_cidrs`` extends the built-in deny list and ``dns_servers``
    lists upstream resolvers.  Strings are accepted and parsed.
    """

    mode: str = ""
    deny_cidrs: Iterable[Union[str, IPNetwork]] = ()
    dns_servers: Iterable[Union[str, IPAddress]] = ()

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "deny_cidrs",
            tuple(ipaddress.ip_network(c, strict=False) for c in self.deny_cidrs),
        )
        object.__setattr__(
            self,
            "dns_servers",
            tuple(ipaddress.ip_address(a) for a in self.dns_servers),
        )


@dataclass(frozen=True)
class Policy:
    """Configuration for a gated guest process.

    ``lower_dir`` is the read-only base rootfs, ``upper_dir`` the
    writable overlay layer, ``binds`` extra host paths mounted into the
    guest, ``net`` the network policy, ``env`` the environment of the
    guest's first process and ``work_dir`` its working directory (empty
    meaning ``/``).
    """

    lower_dir: str = ""
    upper_dir: str = ""
    binds: Iterable[BindMount] = ()
    net: NetPolicy = field(default_factory=NetPolicy)
    env: Mapping[str, str] = field(default_factory=dict)
    work_dir: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "binds", tuple(self.binds))
        object.__setattr__(self, "env", dict(self.env))