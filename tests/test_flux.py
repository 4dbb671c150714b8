from __future__ import annotations

import asyncio
from typing import Any

import pytest

from pyflux.dispatcher import Dispatcher, StoreRegistry
from pyflux.exceptions import InvalidCallbackError, InvalidDefinitionError
from pyflux.flux import StoreFactory, create_dispatcher, create_store
from pyflux.store import Store, StoreContext


def _add_item(ctx: StoreContext, data: dict[str, Any]) -> None:
    ctx.data["list"].append(f"{ctx.data['label']}: {data['random']}")
    ctx.emit_change()


def _initialize(ctx: StoreContext, label: str = "ITEM") -> None:
    ctx.set_state("label", label)


ListStore = create_store(
    {
        "schema": {"list": {"default": []}},
        "actions": {"addItem": "add_item"},
        "initialize": _initialize,
        "add_item": _add_item,
    }
)


def test_create_store_returns_factory() -> None:
    assert isinstance(ListStore, StoreFactory)

    first = ListStore()
    second = ListStore("ANOTHER")

    assert isinstance(first, Store)
    assert first is not second
    assert first.get_state()["label"] == "ITEM"
    assert second.get_state()["label"] == "ANOTHER"


def test_create_store_rejects_non_object() -> None:
    with pytest.raises(InvalidDefinitionError):
        create_store("store")


@pytest.mark.asyncio
async def test_create_dispatcher_registers_actions_and_stores() -> None:
    my_store, my_store2 = ListStore(), ListStore("ANOTHER")

    def add_item(stores: StoreRegistry, data: dict[str, Any]) -> asyncio.Future[None]:
        return stores.dispatch("addItem", data)

    dispatcher = create_dispatcher(
        {
            "add_item": add_item,
            "get_stores": lambda: {"my_store": my_store, "my_store2": my_store2},
        }
    )

    assert isinstance(dispatcher, Dispatcher)
    assert list(dispatcher.stores) == ["my_store", "my_store2"]
    assert list(dispatcher.actions) == ["add_item"]

    await asyncio.wait_for(dispatcher.add_item({"random": "hello world"}), 1.0)  # type: ignore[attr-defined]

    assert my_store.get_state()["list"] == ["ITEM: hello world"]
    assert my_store2.get_state()["list"] == ["ANOTHER: hello world"]


def test_create_dispatcher_without_get_stores() -> None:
    dispatcher = create_dispatcher({"ping": lambda stores: len(stores)})

    assert len(dispatcher.stores) == 0
    assert dispatcher.ping() == 0  # type: ignore[attr-defined]


def test_create_dispatcher_from_object() -> None:
    store = ListStore()

    class Actions:
        label = "not an action"

        def get_stores(self) -> dict[str, Store]:
            return {"list": store}

        def count(self, stores: StoreRegistry) -> int:
            return len(stores["list"].get_state()["list"])

        def _helper(self) -> None:  # pragma: no cover
            raise AssertionError("private helpers are not actions")

    dispatcher = create_dispatcher(Actions())

    assert list(dispatcher.actions) == ["count"]
    assert dispatcher.count() == 0  # type: ignore[attr-defined]


def test_create_dispatcher_rejects_non_callable_mapping_entries() -> None:
    with pytest.raises(InvalidCallbackError):
        create_dispatcher({"add_item": "nope"})


def test_create_dispatcher_rejects_bad_get_stores() -> None:
    with pytest.raises(InvalidDefinitionError):
        create_dispatcher({"get_stores": {"a": 1}})
    with pytest.raises(InvalidDefinitionError):
        create_dispatcher({"get_stores": lambda: ["a"]})
