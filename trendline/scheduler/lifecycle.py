"""Foreground/background state of the host application."""

import logging
from typing import Callable, List

logger = logging.getLogger(__name__)

FOREGROUND = "active"
BACKGROUND = "background"

LifecycleListener = Callable[[str], None]


class AppLifecycle:
    """
    Publishes foreground/background transitions to registered listeners.

    Listeners are called only when the state actually changes, so repeated
    ``to_foreground()`` calls produce a single notification.
    """

    def __init__(self, state: str = FOREGROUND):
        if state not in (FOREGROUND, BACKGROUND):
            raise ValueError(f"Unknown lifecycle state: {state}")
        self._state = state
        self._listeners: List[LifecycleListener] = []

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_foreground(self) -> bool:
        return self._state == FOREGROUND

    def add_listener(self, listener: LifecycleListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def set_state(self, state: str) -> None:
        if state not in (FOREGROUND, BACKGROUND):
            raise ValueError(f"Unknown lifecycle state: {state}")
        if state == self._state:
            return
        self._state = state
        logger.debug(f"App lifecycle -> {state}")
        for listener in list(self._listeners):
            listener(state)

    def to_foreground(self) -> None:
        self.set_state(FOREGROUND)

    def to_background(self) -> None:
        self.set_state(BACKGROUND)
