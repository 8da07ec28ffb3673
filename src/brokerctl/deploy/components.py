# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/brokerctl/deploy/components.py
from __future__ import annotations

from typing import FrozenSet, Iterable, List

SERVICE_DISCOVERY = "service-discovery"
CONNECTIVITY = "connectivity"
GLOBALNET = "globalnet"

# Components a user may request; globalnet is derived from the addressing mode.
VALID_COMPONENTS: FrozenSet[str] = frozenset({SERVICE_DISCOVERY, CONNECTIVITY})


def final_components(requested: Iterable[str], globalnet_enabled: bool) -> List[str]:
    """Deduplicated, sorted component list with globalnet added when enabled."""
    result = set(requested)
    if globalnet_enabled:
        result.add(GLOBALNET)
    return sorted(result)
