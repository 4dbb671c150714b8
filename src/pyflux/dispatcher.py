"""Action router and settlement synchronization over a fixed set of stores."""

from __future__ import annotations

import asyncio
import functools
import keyword
import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Any

from pyflux._constants import CHANGE, CHANGE_ALL, ROLLBACK, ROLLBACK_BROADCAST
from pyflux._events import EventChannel
from pyflux.config import FluxConfig
from pyflux.exceptions import (
    ActionNameError,
    DispatcherError,
    InvalidCallbackError,
    InvalidStoreError,
    SettlementTimeoutError,
    StoreNotFoundError,
)
from pyflux.store import Store

_logger = logging.getLogger(__name__)


def _ensure_store(name: str, store: Any) -> Store:
    if not isinstance(store, Store):
        raise InvalidStoreError(
            f"Given store {name!r} is not a store instance (got {type(store).__name__})",
            name=name,
        )
    return store


class StoreRegistry(Mapping[str, Store]):
    """Read-only ``name -> Store`` view owned by a :class:`Dispatcher`.

    Registered dispatcher actions receive the registry as their first
    argument, so they can route follow-up work through the owning
    dispatcher via :meth:`dispatch`.
    """

    def __init__(self, dispatcher: Dispatcher, stores: dict[str, Store]) -> None:
        self._dispatcher = dispatcher
        self._stores = stores

    def __getitem__(self, name: str) -> Store:
        try:
            return self._stores[name]
        except KeyError:
            raise StoreNotFoundError(name) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._stores)

    def __len__(self) -> int:
        return len(self._stores)

    def __repr__(self) -> str:
        return f"StoreRegistry({list(self._stores)!r})"

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    def dispatch(self, action_name: str, payload: Any = None, *, timeout: float | None = None) -> asyncio.Future[None]:
        return self._dispatcher.dispatch(action_name, payload, timeout=timeout)

    def wait_for(
        self,
        stores: Iterable[Store] | Mapping[str, Store],
        *,
        timeout: float | None = None,
    ) -> asyncio.Future[None]:
        return self._dispatcher.wait_for(stores, timeout=timeout)

    def get_store(self, name: str) -> Any:
        return self._dispatcher.get_store(name)


class Dispatcher:
    """Fans actions out to a fixed registry of stores.

    Usage::

        dispatcher = Dispatcher({"todos": todo_store, "stats": stats_store})
        await dispatcher.dispatch("add_item", {"title": "milk"})

    Parameters
    ----------
    stores : Mapping[str, Store]
        The registry.  Membership is fixed after construction.
    loop : asyncio.AbstractEventLoop, optional
        Loop settlement futures are created on.  Defaults to the loop
        running at dispatch time.
    config : FluxConfig, optional
        Runtime configuration (default settlement timeout).
    """

    def __init__(
        self,
        stores: Mapping[str, Store] | None = None,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        config: FluxConfig | None = None,
    ) -> None:
        registry: dict[str, Store] = {}
        for name, store in (stores or {}).items():
            registry[name] = _ensure_store(name, store)

        self.listener = EventChannel()
        self._loop = loop
        self._config = config or FluxConfig()
        self._stores = registry
        self._registry = StoreRegistry(self, registry)
        self._actions: dict[str, Callable[..., Any]] = {}
        self._wire_rollback()

    def __repr__(self) -> str:
        return f"<Dispatcher stores={list(self._stores)!r}>"

    @property
    def stores(self) -> StoreRegistry:
        return self._registry

    @property
    def actions(self) -> Mapping[str, Callable[..., Any]]:
        return MappingProxyType(self._actions)

    def _wire_rollback(self) -> None:
        # A store registered under several names is notified once.
        stores = list({id(store): store for store in self._stores.values()}.values())

        def _broadcast(*args: Any) -> None:
            _logger.debug("Rollback requested; notifying %d stores", len(stores))
            for store in stores:
                store.listener.emit(ROLLBACK_BROADCAST, *args)

        for store in stores:
            store.listener.on(ROLLBACK, _broadcast)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, action_name: str, payload: Any = None, *, timeout: float | None = None) -> asyncio.Future[None]:
        """Run *action_name* on every store, in registry order.

        Returns the settlement future for this dispatch; it resolves once
        every store has emitted ``change``.  If a handler raises, the
        remaining stores are skipped, the settlement future is cancelled
        and the exception propagates.  Stores that already ran keep their
        changes.
        """
        stores = {name: _ensure_store(name, store) for name, store in self._stores.items()}

        # Subscribe before running handlers: they emit ``change`` synchronously.
        settlement = self.wait_for(stores, timeout=timeout)

        _logger.debug("Dispatching %s to %d stores", action_name, len(stores))
        for name, store in stores.items():
            try:
                store.dispatch_action(action_name, payload)
            except Exception:
                _logger.debug("Store %s failed handling %s; aborting dispatch", name, action_name, exc_info=True)
                settlement.cancel()
                raise
        return settlement

    def wait_for(
        self,
        stores: Iterable[Store] | Mapping[str, Store],
        *,
        timeout: float | None = None,
    ) -> asyncio.Future[None]:
        """Future resolving once every store in *stores* emitted ``change``.

        Each store is counted once, on its next ``change`` after this call.
        On success the dispatcher emits ``change:all``.  With a timeout
        (argument or ``FluxConfig.settle_timeout``) the future fails with
        :class:`SettlementTimeoutError`.  Cancelling the future detaches
        its listeners.
        """
        loop = self._resolve_loop()
        named = self._name_stores(stores)

        settlement: asyncio.Future[None] = loop.create_future()
        pending: dict[int, tuple[str, Store, Callable[..., None]]] = {}

        def _signal(index: int) -> Callable[..., None]:
            def _on_change(*_args: Any) -> None:
                pending.pop(index, None)
                if not pending and not settlement.done():
                    settlement.set_result(None)

            return _on_change

        for index, (name, store) in enumerate(named):
            listener = _signal(index)
            pending[index] = (name, store, listener)
            store.listener.once(CHANGE, listener)

        if not pending:
            settlement.set_result(None)

        effective_timeout = timeout if timeout is not None else self._config.settle_timeout
        timer: asyncio.TimerHandle | None = None
        if effective_timeout is not None and not settlement.done():

            def _expire() -> None:
                if settlement.done():
                    return
                waiting = [name for name, _store, _listener in pending.values()]
                settlement.set_exception(
                    SettlementTimeoutError(
                        f"Stores did not settle within {effective_timeout}s: {', '.join(waiting)}",
                        pending=waiting,
                    )
                )

            timer = loop.call_later(effective_timeout, _expire)

        def _finish(future: asyncio.Future[None]) -> None:
            if timer is not None:
                timer.cancel()
            for _name, store, listener in pending.values():
                store.listener.off(CHANGE, listener)
            pending.clear()
            if future.cancelled():
                return
            # Retrieving the exception keeps unawaited, timed-out futures quiet on collection.
            error = future.exception()
            if error is not None:
                _logger.debug("Settlement failed: %s", error)
                return
            _logger.debug("Settled %d stores", len(named))
            self.listener.emit(CHANGE_ALL)

        settlement.add_done_callback(_finish)
        return settlement

    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError as exc:
            raise DispatcherError(
                "Settlement futures need an event loop: dispatch from a coroutine or pass loop= to the dispatcher"
            ) from exc

    def _name_stores(self, stores: Iterable[Store] | Mapping[str, Store]) -> list[tuple[str, Store]]:
        if isinstance(stores, Mapping):
            return [(name, _ensure_store(name, store)) for name, store in stores.items()]

        names = {id(store): name for name, store in self._stores.items()}
        named: list[tuple[str, Store]] = []
        for store in stores:
            name = names.get(id(store), repr(store))
            named.append((name, _ensure_store(name, store)))
        return named

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def register_action(self, name: str, callback: Callable[..., Any]) -> Callable[..., Any]:
        """Install *callback* as ``dispatcher.<name>``.

        The installed method calls ``callback(self.stores, *args, **kwargs)``.
        """
        if not callable(callback):
            raise InvalidCallbackError(f"Action callback for {name!r} should be a function")
        if not isinstance(name, str) or not name.isidentifier() or keyword.iskeyword(name):
            raise ActionNameError(f"Action name {name!r} is not a valid identifier")
        if name not in self._actions and (hasattr(type(self), name) or name in vars(self)):
            raise ActionNameError(f"Action name {name!r} would shadow a dispatcher attribute")

        action = functools.partial(callback, self._registry)
        self._actions[name] = action
        setattr(self, name, action)
        return action

    def get_store(self, name: str) -> Any:
        """Definition object of the store registered as *name*."""
        return self._registry[name].definition

    # ------------------------------------------------------------------
    # Dispatcher-level events
    # ------------------------------------------------------------------

    def on(self, event: str, listener: Callable[..., Any]) -> Callable[..., Any]:
        return self.listener.on(event, listener)

    def once(self, event: str, listener: Callable[..., Any]) -> Callable[..., Any]:
        return self.listener.once(event, listener)

    def off(self, event: str, listener: Callable[..., Any]) -> bool:
        return self.listener.off(event, listener)

    def emit(self, event: str, *args: Any) -> bool:
        return self.listener.emit(event, *args)
