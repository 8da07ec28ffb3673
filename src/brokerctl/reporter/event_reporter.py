# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/brokerctl/reporter/event_reporter.py
from __future__ import annotations

import itertools
import logging
from typing import Dict, List, Optional, Tuple

from ..observers.dispatcher import EventBus
from ..observers.events import PhaseEnded, PhaseMessage, PhaseStarted, new_ctx, now_ts
from .interface import Phase

log = logging.getLogger("brokerctl")

SUCCESS = "SUCCESS"
WARNING = "WARNING"
FAILURE = "FAILURE"

# Upper bound on phases started but not yet ended.
MAX_OPEN_PHASES = 32


class EventReporter:
    """
    Reporter that publishes phase events on an EventBus.

    Rendering is left to the observers (console, logger, JSONL file). Only
    phases that are still open are tracked; ending a phase drops its state.
    At most ``max_open`` phases are tracked: starting one more closes the
    oldest open phase as a failure.
    """

    def __init__(
        self,
        bus: EventBus,
        *,
        namespace: str,
        context: Optional[str] = None,
        run_id: Optional[str] = None,
        max_open: int = MAX_OPEN_PHASES,
    ):
        self.bus = bus
        self.run_ctx = new_ctx(namespace=namespace, context=context, run_id=run_id)
        self.max_open = max_open
        self._ids = itertools.count(1)
        self._open: Dict[int, Tuple[Phase, List[Tuple[str, str]]]] = {}

    def _ctx(self) -> dict:
        ctx = dict(self.run_ctx)
        ctx["ts"] = now_ts()
        return ctx

    def started(self, message: str) -> Phase:
        while len(self._open) >= self.max_open:
            oldest, _ = self._open[next(iter(self._open))]
            log.warning("phase %r was never ended; closing it", oldest.message)
            self.ended_with(oldest, RuntimeError("phase was never ended"))

        phase = Phase(id=next(self._ids), message=message)
        self._open[phase.id] = (phase, [])
        self.bus.emit(PhaseStarted(phase_id=phase.id, message=message, **self._ctx()))
        return phase

    def _queue(self, phase: Phase, severity: str, message: str) -> None:
        if not message:
            return
        if phase.id not in self._open:
            raise ValueError(f"phase {phase.id} ({phase.message!r}) is not open")
        self._open[phase.id][1].append((severity, message))
        self.bus.emit(PhaseMessage(phase_id=phase.id, severity=severity, message=message, **self._ctx()))

    def succeeded(self, phase: Phase, message: str) -> None:
        self._queue(phase, SUCCESS, message)

    def warned(self, phase: Phase, message: str) -> None:
        self._queue(phase, WARNING, message)

    def failed(self, phase: Phase, message: str) -> None:
        self._queue(phase, FAILURE, message)

    def ended_with(self, phase: Phase, err: Optional[BaseException]) -> None:
        if self._open.pop(phase.id, None) is None:
            raise ValueError(f"phase {phase.id} ({phase.message!r}) is not open")
        self.bus.emit(
            PhaseEnded(
                phase_id=phase.id,
                message=phase.message,
                status=FAILURE if err is not None else SUCCESS,
                error=str(err) if err is not None else None,
                **self._ctx(),
            )
        )

    def messages(self, phase: Phase) -> List[Tuple[str, str]]:
        """Messages queued so far for an open phase."""
        entry = self._open.get(phase.id)
        return list(entry[1]) if entry else []

    @property
    def open_phases(self) -> int:
        return len(self._open)
