"""Custom exception hierarchy for pyflux."""

from __future__ import annotations

from collections.abc import Sequence


class FluxError(Exception):
    """Base exception for all pyflux errors."""


class InvalidDefinitionError(FluxError):
    """A store definition (or one of its schema entries) is not an object."""


class InvalidCallbackError(FluxError):
    """A value expected to be callable is not."""


class InvalidStoreError(FluxError):
    """A dispatcher registry entry is not a :class:`~pyflux.store.Store`."""

    def __init__(self, message: str, *, name: str = "") -> None:
        self.name = name
        super().__init__(message)


class StoreNotFoundError(FluxError, KeyError):
    """Lookup of a store by name missed.

    Also a :class:`KeyError` so that mapping-style access on the
    dispatcher registry behaves like any other mapping.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Store {name!r} does not exist")

    def __str__(self) -> str:
        return str(self.args[0])


class CapabilityUnavailableError(FluxError):
    """Automatic change detection was requested but no observer is available.

    Only raised in strict mode; otherwise the store logs a warning and
    keeps emitting changes explicitly.
    """


class DispatcherError(FluxError):
    """Dispatcher misuse (e.g. no event loop to create settlement futures on)."""


class ActionNameError(DispatcherError):
    """An action name is not a valid identifier or shadows a dispatcher attribute."""


class SettlementTimeoutError(DispatcherError):
    """A settlement future expired before every store emitted ``change``.

    ``pending`` lists the names of the stores that never reported.
    """

    def __init__(self, message: str, *, pending: Sequence[str] = ()) -> None:
        self.pending = tuple(pending)
        super().__init__(message)
