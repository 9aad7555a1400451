"""Description of a host network interface as shown in the settings UI."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import Optional

from .logging_utils import get_module_logger

logger = get_module_logger("NetworkInterface")


def prefix_to_netmask(prefix_length: int) -> Optional[str]:
    """Dotted IPv4 netmask for a prefix length, or None when out of range."""
    try:
        return str(ipaddress.IPv4Network(f"0.0.0.0/{prefix_length}").netmask)
    except (ValueError, TypeError) as exc:
        logger.error("Failed to get netmask for /%s: %s", prefix_length, exc)
        return None


def broadcast_for(ip_address: str) -> str:
    """The address with its last octet replaced by 255."""
    octets = ip_address.split(".")
    if len(octets) != 4:
        raise ValueError(f"Not an IPv4 address: {ip_address!r}")
    octets[3] = "255"
    return ".".join(octets)


@dataclass(frozen=True)
class NetworkInterface:
    name: str
    display_name: str
    ip_address: str
    netmask: Optional[str]
    broadcast: str

    @classmethod
    def from_address(
        cls,
        name: str,
        display_name: str,
        ip_address: str,
        prefix_length: int,
    ) -> "NetworkInterface":
        return cls(
            name=name,
            display_name=display_name,
            ip_address=ip_address,
            netmask=prefix_to_netmask(prefix_length),
            broadcast=broadcast_for(ip_address),
        )


__all__ = ["NetworkInterface", "broadcast_for", "prefix_to_netmask"]
