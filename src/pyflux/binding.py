"""Framework-neutral binding between a view and a dispatcher's stores.

The dispatcher is handed in explicitly; a view layer creates one
:class:`StoreListener` per component and forwards its mount/unmount
lifecycle.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pyflux._constants import CHANGE, CHANGE_ALL
from pyflux.dispatcher import Dispatcher, StoreRegistry
from pyflux.exceptions import InvalidCallbackError, StoreNotFoundError

_logger = logging.getLogger(__name__)

StoreStates = dict[str, dict[str, dict[str, Any]]]


def _optional_callback(name: str, callback: Callable[..., Any] | None) -> Callable[..., Any] | None:
    if callback is not None and not callable(callback):
        raise InvalidCallbackError(f"{name} should be callable")
    return callback


class StoreListener:
    """Keeps a ``{"stores": {name: state}}`` snapshot in sync with the stores.

    Parameters
    ----------
    dispatcher : Dispatcher
        Owner of the stores to follow.
    store_did_change : callable, optional
        Called as ``store_did_change(name, *args)`` on every store change.
    stores_did_change : callable, optional
        Called with no arguments whenever a dispatch settles (``change:all``).
    on_state : callable, optional
        Receives the refreshed snapshot after every store change.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        *,
        store_did_change: Callable[..., Any] | None = None,
        stores_did_change: Callable[[], Any] | None = None,
        on_state: Callable[[StoreStates], Any] | None = None,
    ) -> None:
        self.dispatcher = dispatcher
        self._store_did_change = _optional_callback("store_did_change", store_did_change)
        self._stores_did_change = _optional_callback("stores_did_change", stores_did_change)
        self._on_state = _optional_callback("on_state", on_state)
        self._subscriptions: list[tuple[str, Callable[..., Any]]] = []
        self._settled_listener: Callable[[], Any] | None = None
        self.state: StoreStates = self.get_store_states()

    @property
    def stores(self) -> StoreRegistry:
        return self.dispatcher.stores

    @property
    def mounted(self) -> bool:
        return bool(self._subscriptions) or self._settled_listener is not None

    def get_store_states(self) -> StoreStates:
        return {"stores": {name: store.get_state() for name, store in self.stores.items()}}

    def get_store(self, name: str) -> dict[str, Any]:
        """State of store *name* from the latest snapshot."""
        try:
            return self.state["stores"][name]
        except KeyError:
            raise StoreNotFoundError(name) from None

    def mount(self) -> StoreStates:
        if self.mounted:
            return self.state

        for name, store in self.stores.items():
            listener = self._change_handler(name)
            store.on_change(listener)
            self._subscriptions.append((name, listener))

        if self._stores_did_change is not None:
            self._settled_listener = self.dispatcher.on(CHANGE_ALL, self._stores_did_change)

        self.state = self.get_store_states()
        _logger.debug("Mounted store listener on %s", list(self.stores))
        return self.state

    def unmount(self) -> None:
        for name, listener in self._subscriptions:
            self.stores[name].listener.off(CHANGE, listener)
        self._subscriptions.clear()
        if self._settled_listener is not None:
            self.dispatcher.off(CHANGE_ALL, self._settled_listener)
            self._settled_listener = None
        _logger.debug("Unmounted store listener")

    def _change_handler(self, name: str) -> Callable[..., None]:
        def _on_change(*args: Any) -> None:
            if self._store_did_change is not None:
                self._store_did_change(name, *args)
            self.state = self.get_store_states()
            if self._on_state is not None:
                self._on_state(self.state)

        return _on_change

    def __enter__(self) -> StoreListener:
        self.mount()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.unmount()
