# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/brokerctl/deploy/validation.py
"""
Pure checks run before any cluster mutation.

Nothing here talks to the cluster or the filesystem, so a typo in the
deployment parameters is caught before RBAC or the operator are touched.
"""

from __future__ import annotations

import ipaddress
from typing import AbstractSet, Iterable, Optional

from ..errors import InvalidCIDR, InvalidClusterSize, InvalidComponents
from .components import VALID_COMPONENTS

# Smallest subnet that still leaves a usable host range (network, broadcast, 2 hosts).
MIN_CLUSTER_SIZE = 4

# Number of clusters a derived default size must leave room for.
DEFAULT_MIN_CLUSTER_COUNT = 256

# Reserved blocks a globalnet range must not touch. Class E (240.0.0.0/4) is
# not reserved here: the default range lives there.
RESERVED_NETWORKS = (
    ("unspecified", ipaddress.ip_network("0.0.0.0/8")),
    ("loopback", ipaddress.ip_network("127.0.0.0/8")),
    ("link-local", ipaddress.ip_network("169.254.0.0/16")),
    ("multicast", ipaddress.ip_network("224.0.0.0/4")),
)


def validate_components(
    requested: Iterable[str],
    valid: AbstractSet[str] = VALID_COMPONENTS,
) -> None:
    component_set = set(requested)
    if not component_set:
        raise InvalidComponents("at least one component must be provided for deployment")

    unknown = sorted(component_set - set(valid))
    if unknown:
        raise InvalidComponents(f"unknown component: {', '.join(unknown)}")


def _is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def _largest_power_of_two_at_most(n: int) -> int:
    return 1 << (n.bit_length() - 1) if n > 0 else 0


def parse_globalnet_cidr(cidr: str) -> ipaddress.IPv4Network:
    """
    Parse and vet a globalnet range.

    Host bits are tolerated (``242.1.0.0/8`` is read as ``242.0.0.0/8``) but
    the resulting network must not overlap any of ``RESERVED_NETWORKS``.
    """
    try:
        iface = ipaddress.ip_interface(cidr)
    except ValueError as exc:
        raise InvalidCIDR(f"{cidr!r} is not a valid CIDR: {exc}") from exc

    if "/" not in cidr:
        raise InvalidCIDR(f"{cidr!r} is not a valid CIDR: missing prefix length")
    if iface.version != 4:
        raise InvalidCIDR(f"{cidr}: only IPv4 ranges are supported")

    network = iface.network
    for label, reserved in RESERVED_NETWORKS:
        if network.overlaps(reserved):
            raise InvalidCIDR(f"{cidr} can't overlap the {label} range {reserved}")

    return network


def resolve_cluster_size(
    network: ipaddress.IPv4Network,
    cluster_size: Optional[int],
    min_cluster_count: int = DEFAULT_MIN_CLUSTER_COUNT,
) -> int:
    available = network.num_addresses

    if cluster_size:
        if not _is_power_of_two(cluster_size):
            raise InvalidClusterSize(
                f"cluster size {cluster_size} does not evenly divide {network}: it must be a power of 2"
            )
        if cluster_size < MIN_CLUSTER_SIZE:
            raise InvalidClusterSize(
                f"cluster size {cluster_size} should be >= {MIN_CLUSTER_SIZE}"
            )
        if cluster_size > available // 2:
            raise InvalidClusterSize(
                f"cluster size {cluster_size}, should be <= {available // 2}"
            )
        return cluster_size

    derived = _largest_power_of_two_at_most(available // max(min_cluster_count, 1))
    if derived < MIN_CLUSTER_SIZE:
        raise InvalidClusterSize(
            f"{network} is too small for {min_cluster_count} clusters of at least {MIN_CLUSTER_SIZE} addresses"
        )
    return derived


def validate_globalnet_config(request, min_cluster_count: int = DEFAULT_MIN_CLUSTER_COUNT) -> int:
    """
    Validate the globalnet parameters of *request*.

    Returns the resolved per-cluster size, or 0 when globalnet is disabled.
    """
    if not request.globalnet_enabled:
        return 0

    network = parse_globalnet_cidr(request.globalnet_cidr_range)
    return resolve_cluster_size(network, request.globalnet_cluster_size, min_cluster_count)
