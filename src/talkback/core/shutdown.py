import threading
from typing import Protocol


class StopSignal(Protocol):
    """Anything a capture thread can poll to learn it should exit."""

    def is_set(self) -> bool: ...


class GracefulShutdown:
    """Stop flag shared between the asyncio side and device threads."""

    def __init__(self):
        self.stop_event = threading.Event()

    def stop(self):
        self.stop_event.set()

    def is_set(self) -> bool:
        return self.stop_event.is_set()
