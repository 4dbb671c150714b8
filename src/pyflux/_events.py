"""Synchronous named-event channel used by stores and dispatchers.

Listeners are called in registration order on the emitter's stack;
exceptions bubble up to the caller of :meth:`EventChannel.emit`.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

Listener = Callable[..., Any]


@dataclass(slots=True, eq=False)
class _Registration:
    listener: Listener
    once: bool = False


class EventChannel:
    """Named-event publish/subscribe with one-shot subscriptions."""

    def __init__(self) -> None:
        self._registrations: dict[str, list[_Registration]] = {}

    def on(self, event: str, listener: Listener) -> Listener:
        """Subscribe *listener* to *event*.  Returns the listener."""
        if not callable(listener):
            raise TypeError(f"listener for {event!r} must be callable")
        self._registrations.setdefault(event, []).append(_Registration(listener))
        return listener

    def once(self, event: str, listener: Listener) -> Listener:
        """Subscribe *listener* to the next *event* only."""
        if not callable(listener):
            raise TypeError(f"listener for {event!r} must be callable")
        self._registrations.setdefault(event, []).append(_Registration(listener, once=True))
        return listener

    def off(self, event: str, listener: Listener) -> bool:
        """Remove the most recent registration of *listener* for *event*.

        Returns ``True`` when a registration was removed.
        """
        registrations = self._registrations.get(event)
        if not registrations:
            return False
        for index in range(len(registrations) - 1, -1, -1):
            if registrations[index].listener is listener:
                del registrations[index]
                if not registrations:
                    del self._registrations[event]
                return True
        return False

    def remove_all_listeners(self, event: str | None = None) -> None:
        """Drop every listener for *event*, or for all events when ``None``."""
        if event is None:
            self._registrations.clear()
            return
        self._registrations.pop(event, None)

    def emit(self, event: str, *args: Any) -> bool:
        """Call every listener registered for *event* with *args*.

        Returns ``True`` if at least one listener was called.
        """
        registrations = self._registrations.get(event)
        if not registrations:
            return False

        snapshot = list(registrations)
        # One-shot registrations are consumed before any listener runs so a
        # re-entrant emit of the same event cannot fire them twice.
        for registration in snapshot:
            if registration.once:
                self._discard(event, registration)

        for registration in snapshot:
            registration.listener(*args)
        return True

    def listeners(self, event: str) -> list[Listener]:
        return [registration.listener for registration in self._registrations.get(event, ())]

    def listener_count(self, event: str) -> int:
        return len(self._registrations.get(event, ()))

    def _discard(self, event: str, registration: _Registration) -> None:
        registrations = self._registrations.get(event)
        if registrations is None:
            return
        try:
            registrations.remove(registration)
        except ValueError:
            return
        if not registrations:
            del self._registrations[event]
