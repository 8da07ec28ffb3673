# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/brokerctl/reporter/interface.py
"""
Progress reporting contract used by the broker orchestrator.

``started`` hands back a Phase token and every other call takes that token,
so the end of a unit of work is always tied to the start it belongs to.
Phases form a flat sequence; nothing here assumes nesting.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class Phase:
    id: int
    message: str


class Reporter(Protocol):
    def started(self, message: str) -> Phase:
        """Announce that a unit of work started."""
        ...

    def succeeded(self, phase: Phase, message: str) -> None:
        """Attach a success note to *phase*; an empty message is ignored."""
        ...

    def warned(self, phase: Phase, message: str) -> None:
        ...

    def failed(self, phase: Phase, message: str) -> None:
        ...

    def ended_with(self, phase: Phase, err: Optional[BaseException]) -> None:
        """Close *phase*: success when *err* is None, failure otherwise."""
        ...
