# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations
import logging
from .events import BaseEvent, PhaseMessage, PhaseEnded


class LoggerObserver:
    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        etype = event.__class__.__name__
        msg = ", ".join(f"{k}={v}" for k, v in d.items() if k not in ("ts",))

        failed = (
            (isinstance(event, PhaseEnded) and event.status == "FAILURE")
            or (isinstance(event, PhaseMessage) and event.severity == "FAILURE")
        )
        warned = isinstance(event, PhaseMessage) and event.severity == "WARNING"

        level = logging.ERROR if failed else logging.WARNING if warned else logging.DEBUG
        self.logger.log(level, "[EVENT] %s: %s", etype, msg)
