# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/brokerctl/observers/console.py
from __future__ import annotations

import sys
from typing import TextIO

from .events import BaseEvent, PhaseStarted, PhaseMessage, PhaseEnded

_MARKS = {"SUCCESS": "✓", "WARNING": "⚠", "FAILURE": "✗"}


class ConsoleObserver:
    """Renders phase events as the familiar start / queued messages / end lines."""

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream

    def _out(self) -> TextIO:
        return self.stream or sys.stdout

    def notify(self, event: BaseEvent) -> None:
        out = self._out()
        if isinstance(event, PhaseStarted):
            print(f" ⚙ {event.message}", file=out, flush=True)
        elif isinstance(event, PhaseMessage):
            print(f" {_MARKS.get(event.severity, '-')} {event.message}", file=out, flush=True)
        elif isinstance(event, PhaseEnded):
            if event.status == "FAILURE":
                print(f" {_MARKS['FAILURE']} {event.message}: {event.error}", file=out, flush=True)
            else:
                print(f" {_MARKS['SUCCESS']} {event.message}", file=out, flush=True)
