from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum

logger = logging.getLogger(__name__)


class LifecycleEvent(StrEnum):
    FOREGROUND = "foreground"
    RECONNECTED = "reconnected"


EventHandler = Callable[[LifecycleEvent], None]


class EventBus:
    """Synchronous in-process publish/subscribe for lifecycle events."""

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def publish(self, event: LifecycleEvent) -> None:
        logger.debug("lifecycle event: %s", event)
        for handler in list(self._handlers):
            handler(event)


class ConnectivityMonitor:
    """Tracks network reachability; publishes RECONNECTED on offline -> online."""

    def __init__(self, bus: EventBus, *, online: bool = True) -> None:
        self._bus = bus
        self._online = online

    @property
    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        was_online = self._online
        self._online = online
        if online and not was_online:
            self._bus.publish(LifecycleEvent.RECONNECTED)


class AppStateMonitor:
    """Tracks foreground state; publishes FOREGROUND on background -> active."""

    def __init__(self, bus: EventBus, *, active: bool = True) -> None:
        self._bus = bus
        self._active = active

    @property
    def is_active(self) -> bool:
        return self._active

    def set_active(self, active: bool) -> None:
        was_active = self._active
        self._active = active
        if active and not was_active:
            self._bus.publish(LifecycleEvent.FOREGROUND)
