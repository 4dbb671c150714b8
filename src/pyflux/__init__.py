"""pyflux - unidirectional data-flow coordination: stores, dispatcher, settlement."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyflux")
except PackageNotFoundError:
    __version__ = "0+local"
from pyflux._constants import CHANGE, CHANGE_ALL, ROLLBACK, ROLLBACK_BROADCAST
from pyflux._events import EventChannel
from pyflux.binding import StoreListener
from pyflux.config import FluxConfig
from pyflux.dispatcher import Dispatcher, StoreRegistry
from pyflux.exceptions import (
    ActionNameError,
    CapabilityUnavailableError,
    DispatcherError,
    FluxError,
    InvalidCallbackError,
    InvalidDefinitionError,
    InvalidStoreError,
    SettlementTimeoutError,
    StoreNotFoundError,
)
from pyflux.flux import StoreFactory, create_dispatcher, create_store
from pyflux.schema import PropertySpec, StoreSchema
from pyflux.store import ChangeObserver, Store, StoreContext

__all__ = [
    "__version__",
    "CHANGE",
    "CHANGE_ALL",
    "ROLLBACK",
    "ROLLBACK_BROADCAST",
    "ActionNameError",
    "CapabilityUnavailableError",
    "ChangeObserver",
    "Dispatcher",
    "DispatcherError",
    "EventChannel",
    "FluxConfig",
    "FluxError",
    "InvalidCallbackError",
    "InvalidDefinitionError",
    "InvalidStoreError",
    "PropertySpec",
    "SettlementTimeoutError",
    "Store",
    "StoreContext",
    "StoreFactory",
    "StoreListener",
    "StoreNotFoundError",
    "StoreRegistry",
    "StoreSchema",
    "create_dispatcher",
    "create_store",
]
