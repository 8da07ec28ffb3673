# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/brokerctl/observers/dispatcher.py
from __future__ import annotations
import logging
from typing import Iterable, List, Optional
from .events import BaseEvent
from .interface import Observer

log = logging.getLogger("brokerctl")


class EventBus:
    def __init__(self, observers: Optional[Iterable[Observer]] = None):
        self._observers: List[Observer] = list(observers or [])
        for ob in self._observers:
            if not isinstance(ob, Observer):
                raise TypeError(f"{type(ob).__name__} has no notify(event) method")

    def emit(self, event: BaseEvent) -> None:
        for ob in self._observers:
            try:
                ob.notify(event)
            except Exception:
                # observers must not break deploys
                log.warning("observer %s failed on %s", type(ob).__name__, type(event).__name__, exc_info=True)
