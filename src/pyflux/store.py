"""Schema-driven state container reacting to dispatched actions.

A :class:`Store` wraps a caller-owned *definition* without mutating it.
Every callable on the definition receives a :class:`StoreContext` as its
first argument, which is the only way it can emit events or touch the
store's state::

    def add_item(ctx, item):
        ctx.data["items"].append(item)
        ctx.emit_change()

    TodoStore = create_store({
        "schema": {"items": {"default": []}},
        "actions": {"add_item": "add_item"},
        "add_item": add_item,
    })
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Mapping, Sequence
from types import MappingProxyType
from typing import Any, Protocol

from pyflux._constants import CHANGE, ROLLBACK, ROLLBACK_BROADCAST, action_event
from pyflux._events import EventChannel
from pyflux.config import FluxConfig
from pyflux.exceptions import CapabilityUnavailableError, InvalidCallbackError, InvalidDefinitionError
from pyflux.schema import StoreSchema, merge_property, parse_schema, project_state

_logger = logging.getLogger(__name__)

_PRIMITIVE_TYPES = (str, bytes, bytearray, int, float, complex, bool)


class ChangeObserver(Protocol):
    """Automatic change-detection collaborator.

    ``observe`` must call *callback* (with any arguments describing the
    change) every time a field of *target* changes.
    """

    def observe(self, target: Any, callback: Callable[..., None]) -> None: ...


def ensure_definition(definition: Any) -> None:
    """Reject values that cannot act as a store definition."""
    if (
        definition is None
        or isinstance(definition, _PRIMITIVE_TYPES)
        or isinstance(definition, type)
        or (isinstance(definition, Sequence) and not isinstance(definition, Mapping))
    ):
        raise InvalidDefinitionError(
            "Stores should be defined by passing a definition mapping or object, "
            f"got {type(definition).__name__}"
        )


def definition_attr(definition: Any, name: str) -> Any:
    """Read *name* from a mapping or attribute-style definition."""
    if isinstance(definition, Mapping):
        return definition.get(name)
    return getattr(definition, name, None)


class StoreContext:
    """Capabilities a store hands to its definition's callables."""

    __slots__ = ("_store",)

    def __init__(self, store: Store) -> None:
        self._store = store

    @property
    def store(self) -> Store:
        return self._store

    @property
    def data(self) -> dict[str, Any]:
        """The store's live state mapping.

        Mutating it directly does not emit ``change``; call
        :meth:`emit_change` afterwards (or use :meth:`set_state`).
        """
        return self._store._data  # noqa: SLF001

    def emit(self, event: str, *args: Any) -> bool:
        return self._store.listener.emit(event, *args)

    def emit_change(self, *args: Any) -> bool:
        return self.emit(CHANGE, *args)

    def emit_rollback(self, *args: Any) -> bool:
        """Ask every store on the owning dispatcher to revert."""
        return self.emit(ROLLBACK, *args)

    def on_rollback(self, callback: Callable[..., Any]) -> Callable[..., Any]:
        """Run *callback* whenever the dispatcher broadcasts a rollback."""
        if not callable(callback):
            raise InvalidCallbackError("Rollback handlers should be callables")
        return self._store.listener.on(ROLLBACK_BROADCAST, callback)

    def listen_changes(self, target: Any, *, strict: bool | None = None) -> bool:
        return self._store.listen_changes(target, strict=strict)

    def set_state(self, prop: str, data: Any = None) -> None:
        self._store.set_state(prop, data)

    def get_state(self) -> dict[str, Any]:
        return self._store.get_state()

    def project_state(self) -> dict[str, Any]:
        """Schema projection of the state, ignoring any ``get_state`` override."""
        return self._store.project_state()


class Store:
    """Runtime wrapper around a store definition.

    Parameters
    ----------
    definition : Mapping or object
        Provides ``schema``, ``actions`` (action name -> method name or
        callable), optional ``initialize`` and ``get_state``, plus the
        handler callables themselves.
    *args, **kwargs
        Forwarded to ``initialize(ctx, *args, **kwargs)``.
    observer : ChangeObserver, optional
        Collaborator used by :meth:`listen_changes`.
    config : FluxConfig, optional
        Runtime configuration.
    """

    def __init__(
        self,
        definition: Any,
        *args: Any,
        observer: ChangeObserver | None = None,
        config: FluxConfig | None = None,
        **kwargs: Any,
    ) -> None:
        ensure_definition(definition)

        self.listener = EventChannel()
        self._definition = definition
        self._config = config or FluxConfig()
        self._observer = observer
        self._data: dict[str, Any] = {}
        self._auto_observing = False
        self._context = StoreContext(self)

        raw_schema = definition_attr(definition, "schema")
        self._schema: StoreSchema | None = parse_schema(raw_schema) if raw_schema is not None else None

        get_state = definition_attr(definition, "get_state")
        self._state_projection: Callable[[StoreContext], dict[str, Any]] | None = None
        if get_state is not None:
            if not callable(get_state):
                raise InvalidCallbackError("Store get_state override should be callable")
            self._state_projection = get_state

        self._bind_actions()

        initialize = definition_attr(definition, "initialize")
        if initialize is not None:
            if not callable(initialize):
                raise InvalidCallbackError("Store initialize should be callable")
            initialize(self._context, *args, **kwargs)

        if self._state_projection is None:
            if self._schema is None:
                if self._config.warn_schemaless:
                    _logger.warning(
                        "Store %r has neither a schema nor a get_state method; it will have no derived state",
                        self,
                    )
            else:
                for prop in self._schema:
                    self.set_state(prop)

        _logger.debug("Created store %r", self)

    def __repr__(self) -> str:
        name = definition_attr(self._definition, "name")
        label = name if isinstance(name, str) else type(self._definition).__name__
        return f"<Store {label}>"

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def definition(self) -> Any:
        return self._definition

    @property
    def schema(self) -> StoreSchema | None:
        return self._schema

    @property
    def data(self) -> Mapping[str, Any]:
        """Read-only view of the committed state."""
        return MappingProxyType(self._data)

    @property
    def auto_observing(self) -> bool:
        return self._auto_observing

    # ------------------------------------------------------------------
    # Actions and events
    # ------------------------------------------------------------------

    def _bind_actions(self) -> None:
        actions = definition_attr(self._definition, "actions")
        if actions is None:
            return
        if not isinstance(actions, Mapping):
            raise InvalidDefinitionError("Store actions should be a mapping of action name to method")

        for action_name, target in actions.items():
            if callable(target):
                handler = target
            elif isinstance(target, str):
                handler = definition_attr(self._definition, target)
            else:
                handler = None
            if not callable(handler):
                raise InvalidCallbackError(f"Callback for action {action_name!r} should be a method, got {target!r}")
            self.listener.on(action_event(action_name), functools.partial(handler, self._context))

    def dispatch_action(self, action_name: str, payload: Any = None) -> bool:
        """Run the handler bound to *action_name*, if any.

        Returns ``True`` when a handler ran.
        """
        return self.listener.emit(action_event(action_name), payload)

    def handles(self, action_name: str) -> bool:
        return self.listener.listener_count(action_event(action_name)) > 0

    def emit(self, event: str, *args: Any) -> bool:
        return self.listener.emit(event, *args)

    def on_change(self, callback: Callable[..., Any]) -> Callable[..., Any]:
        if not callable(callback):
            raise InvalidCallbackError("Change listeners should be callables")
        return self.listener.on(CHANGE, callback)

    def listen_changes(self, target: Any, *, strict: bool | None = None) -> bool:
        """Switch to automatic change detection on *target*.

        Returns ``True`` when the observer accepted *target*.  Without an
        observer the store stays in explicit-emit mode: a warning is
        logged and ``False`` returned, or
        :class:`CapabilityUnavailableError` raised in strict mode.
        """
        if strict is None:
            strict = self._config.strict_observation
        if self._observer is None:
            if strict:
                raise CapabilityUnavailableError(
                    "Automatic change detection is not available; emit changes manually"
                )
            _logger.warning(
                "Store %r: automatic change detection is not available, you should emit changes manually",
                self,
            )
            return False

        self._auto_observing = True
        self._observer.observe(target, self._on_observed_change)
        return True

    def _on_observed_change(self, *changes: Any) -> None:
        self.listener.emit(CHANGE, *changes)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def set_state(self, prop: str, data: Any = None) -> None:
        """Merge *data* into property *prop* and emit ``change``.

        Properties without a schema entry are replaced outright.  See
        :func:`pyflux.schema.merge_property` for the merge rules.
        """
        spec = self._schema.get(prop) if self._schema is not None else None
        if spec is None:
            self._data[prop] = data
        else:
            self._data[prop] = merge_property(spec, self._data.get(prop), data)

        if not self._auto_observing:
            self.listener.emit(CHANGE)

    def project_state(self) -> dict[str, Any]:
        return project_state(self._schema, self._data)

    def get_state(self) -> dict[str, Any]:
        """Snapshot of the state with calculated properties applied."""
        if self._state_projection is not None:
            return self._state_projection(self._context)
        return self.project_state()
