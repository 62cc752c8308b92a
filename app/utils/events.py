"""
Minimal observer subject for listener registration.
"""
import logging
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventSubject(Generic[T]):
    """
    Holds listeners and invokes them synchronously, in registration order.

    A listener that raises is logged and does not prevent the remaining
    listeners from running.
    """

    def __init__(self, name: str):
        self.name = name
        self._listeners: List[Callable[[T], None]] = []

    def subscribe(self, listener: Callable[[T], None]) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            A callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, value: T) -> None:
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                logger.exception(f"Listener for '{self.name}' raised")

    def __len__(self) -> int:
        return len(self._listeners)
