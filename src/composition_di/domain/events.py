import threading
from typing import Any, Callable, List

Handler = Callable[[Any], None]


class EventHook:
    """Minimal synchronous event: handlers are called with the sender, in subscription order."""

    def __init__(self) -> None:
        self._handlers: List[Handler] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: Handler) -> None:
        with self._lock:
            if handler not in self._handlers:
                self._handlers.append(handler)

    def unsubscribe(self, handler: Handler) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def fire(self, sender: Any) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            handler(sender)

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()

    def __len__(self) -> int:
        return len(self._handlers)
