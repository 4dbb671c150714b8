"""Construction helpers: stores and dispatchers from plain definitions."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator, Mapping
from typing import Any

from pyflux.config import FluxConfig
from pyflux.dispatcher import Dispatcher
from pyflux.exceptions import InvalidDefinitionError
from pyflux.store import ChangeObserver, Store, definition_attr, ensure_definition

_logger = logging.getLogger(__name__)

_GET_STORES = "get_stores"


class StoreFactory:
    """Callable producing a fresh :class:`Store` per call.

    Positional and keyword arguments are forwarded to the definition's
    ``initialize``.
    """

    def __init__(
        self,
        definition: Any,
        *,
        observer: ChangeObserver | None = None,
        config: FluxConfig | None = None,
    ) -> None:
        ensure_definition(definition)
        self.definition = definition
        self._observer = observer
        self._config = config

    def __call__(self, *args: Any, **kwargs: Any) -> Store:
        return Store(self.definition, *args, observer=self._observer, config=self._config, **kwargs)

    def __repr__(self) -> str:
        return f"StoreFactory({type(self.definition).__name__})"


def create_store(
    definition: Any,
    *,
    observer: ChangeObserver | None = None,
    config: FluxConfig | None = None,
) -> StoreFactory:
    """Return a constructor for stores built from *definition*."""
    return StoreFactory(definition, observer=observer, config=config)


def _action_items(definition: Any) -> Iterator[tuple[str, Callable[..., Any]]]:
    if isinstance(definition, Mapping):
        for name, callback in definition.items():
            if name != _GET_STORES:
                yield name, callback
        return

    for name in dir(definition):
        if name.startswith("_") or name == _GET_STORES:
            continue
        callback = getattr(definition, name)
        if callable(callback):
            yield name, callback


def create_dispatcher(
    definition: Any,
    *,
    loop: asyncio.AbstractEventLoop | None = None,
    config: FluxConfig | None = None,
) -> Dispatcher:
    """Build a dispatcher from an action definition.

    ``definition.get_stores()`` (optional) supplies the ``name -> Store``
    registry; every other function on the definition becomes a registered
    dispatcher action receiving the registry as its first argument::

        dispatcher = create_dispatcher({
            "get_stores": lambda: {"todos": todos},
            "add_item": lambda stores, item: stores.dispatch("add_item", item),
        })
        dispatcher.add_item("milk")
    """
    ensure_definition(definition)

    stores: Mapping[str, Store] = {}
    get_stores = definition_attr(definition, _GET_STORES)
    if get_stores is not None:
        if not callable(get_stores):
            raise InvalidDefinitionError("get_stores should be a function returning the store registry")
        stores = get_stores() or {}
        if not isinstance(stores, Mapping):
            raise InvalidDefinitionError(f"get_stores should return a mapping, got {type(stores).__name__}")

    dispatcher = Dispatcher(stores, loop=loop, config=config)
    for name, callback in _action_items(definition):
        dispatcher.register_action(name, callback)

    _logger.debug("Created dispatcher with stores %s and actions %s", list(dispatcher.stores), list(dispatcher.actions))
    return dispatcher
