"""Event-name keyed handler lists with copy-before-dispatch semantics."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger("EventHandlers")

Handler = Callable[[Any], None]


class EventHandlerRegistry:
    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = {}

    def on(self, event_type: str, handler: Handler) -> None:
        """Register handler; registering the same handler twice is a no-op."""
        handlers = self._handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)

    def off(self, event_type: str, handler: Handler) -> None:
        handlers = self._handlers.get(event_type)
        if handlers:
            self._handlers[event_type] = [h for h in handlers if h != handler]

    def handlers(self, event_type: str) -> List[Handler]:
        return list(self._handlers.get(event_type, ()))

    def has_handlers(self, event_type: str) -> bool:
        return bool(self._handlers.get(event_type))

    def dispatch(self, event_type: str, payload: Any) -> int:
        """
        Invoke every handler for event_type with payload.

        Iterates over a snapshot, so handlers added or removed during dispatch
        take effect on the next event. Returns the number of handlers called.
        """
        snapshot = self.handlers(event_type)
        for handler in snapshot:
            try:
                handler(payload)
            except Exception:
                logger.exception("Event handler failed (%s)", event_type)
        return len(snapshot)

    def clear(self) -> None:
        self._handlers.clear()
