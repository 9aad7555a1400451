"""Unit tests for the network interface description helper."""

import pytest

from photon_config.core.network_interface import NetworkInterface, broadcast_for, prefix_to_netmask


@pytest.mark.parametrize(
    "prefix,expected",
    [(0, "0.0.0.0"), (8, "255.0.0.0"), (24, "255.255.255.0"), (20, "255.255.240.0"), (32, "255.255.255.255")],
)
def test_prefix_to_netmask(prefix, expected):
    assert prefix_to_netmask(prefix) == expected


def test_out_of_range_prefix_gives_none():
    assert prefix_to_netmask(33) is None


def test_broadcast_replaces_last_octet():
    assert broadcast_for("10.12.34.11") == "10.12.34.255"


def test_broadcast_rejects_non_ipv4():
    with pytest.raises(ValueError):
        broadcast_for("fe80::1")


def test_from_address():
    iface = NetworkInterface.from_address("eth0", "Ethernet", "192.168.1.20", 16)
    assert iface.netmask == "255.255.0.0"
    # Always the last octet, whatever the prefix length
    assert iface.broadcast == "192.168.1.255"
