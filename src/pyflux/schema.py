"""Store schema model and the state merge/projection rules built on it.

A schema maps each state property to a spec of the form::

    {
        "default": <initial value>,
        "calculated": <zero-argument callable>,   # optional
        "<sub_key>": {"default": ..., "calculated": ...},  # optional, any number
    }

``default`` seeds the property the first time it is set.  ``calculated``
replaces the raw value in every :func:`project_state` snapshot and is
evaluated fresh on each read.  Sub-key specs apply one level deep to
mapping values.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterator, Mapping, MutableMapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, RootModel, ValidationError, model_validator

from pyflux._constants import RESERVED_SPEC_KEYS
from pyflux.exceptions import InvalidCallbackError, InvalidDefinitionError


class PropertySpec(BaseModel):
    """Declared default and derivation rules for one state property."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    default: Any = None
    calculated: Callable[[], Any] | None = None
    sub_properties: dict[str, PropertySpec] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _split_sub_properties(cls, value: Any) -> Any:
        """Turn a raw ``{default, calculated, <sub>: {...}}`` mapping into model fields."""
        if isinstance(value, PropertySpec):
            return value
        if not isinstance(value, Mapping):
            raise InvalidDefinitionError(f"Property specs should be mappings, got {type(value).__name__}")

        calculated = value.get("calculated")
        if calculated is not None and not callable(calculated):
            raise InvalidCallbackError("Calculated properties should be callables")

        return {
            "default": value.get("default"),
            "calculated": calculated,
            "sub_properties": {key: sub for key, sub in value.items() if key not in RESERVED_SPEC_KEYS},
        }

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def seed(self) -> Any:
        """Fresh initial value: a copy of ``default``, or an empty mapping."""
        if self.default is None:
            return {}
        return copy.deepcopy(self.default)


class StoreSchema(RootModel[dict[str, PropertySpec]]):
    """Mapping of property name to :class:`PropertySpec`."""

    model_config = ConfigDict(frozen=True)

    def __iter__(self) -> Iterator[str]:  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)

    def __contains__(self, name: object) -> bool:
        return name in self.root

    def get(self, name: str) -> PropertySpec | None:
        return self.root.get(name)


def parse_schema(raw: Any) -> StoreSchema:
    """Validate a raw schema mapping.

    Raises
    ------
    InvalidDefinitionError
        If *raw* (or any property spec in it) is not a mapping.
    InvalidCallbackError
        If a ``calculated`` entry is not callable.
    """
    if isinstance(raw, StoreSchema):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidDefinitionError(f"Store schema should be a mapping, got {type(raw).__name__}")
    try:
        return StoreSchema.model_validate(dict(raw))
    except ValidationError as exc:
        raise InvalidDefinitionError(f"Invalid store schema: {exc}") from exc


def is_composite(value: Any) -> bool:
    """Composite values are merged key by key instead of being replaced."""
    return isinstance(value, (MutableMapping, list))


def _is_sequence_patch(data: Any) -> bool:
    return isinstance(data, Sequence) and not isinstance(data, (str, bytes, bytearray))


def merge_property(spec: PropertySpec, current: Any, data: Any) -> Any:
    """Merge *data* into the current value of a schema property.

    Returns the new value, which is *current* itself when it was merged in
    place.

    - An unset property (``None``) is seeded from ``spec.default`` first.
    - A non-composite value is replaced by *data* unless *data* is ``None``.
    - A mapping takes *data*'s keys one by one; keys missing from *data*
      survive.  A list takes *data*'s items index by index, growing as
      needed.  Non-``None`` data of a different kind replaces the value.
    - Sub-keys of a mapping value that are still unset get their declared
      defaults.
    """
    value = spec.seed() if current is None else current

    if not is_composite(value):
        return value if data is None else data

    if data is None:
        pass
    elif isinstance(value, MutableMapping) and isinstance(data, Mapping):
        for key, item in data.items():
            value[key] = item
    elif isinstance(value, list) and _is_sequence_patch(data):
        for index, item in enumerate(data):
            if index < len(value):
                value[index] = item
            else:
                value.append(item)
    else:
        value = data

    if isinstance(value, MutableMapping):
        for key, sub in spec.sub_properties.items():
            if value.get(key) is None and sub.has_default:
                value[key] = copy.deepcopy(sub.default)
    return value


def _snapshot_value(value: Any) -> Any:
    """Deep copy of *value*, or *value* itself when it cannot be copied."""
    try:
        return copy.deepcopy(value)
    except (TypeError, copy.Error):
        return value


def project_state(schema: StoreSchema | None, data: Mapping[str, Any]) -> dict[str, Any]:
    """Build a read-only snapshot of *data* with calculated values applied.

    Never mutates *data*: raw values are deep-copied where possible (values
    holding locks, handles or generators are passed by reference) and
    calculated values are evaluated fresh on every call.
    """
    state: dict[str, Any] = {}
    for key, value in data.items():
        spec = schema.get(key) if schema is not None else None
        if spec is None:
            state[key] = _snapshot_value(value)
            continue

        projected = spec.calculated() if spec.calculated is not None else _snapshot_value(value)

        calculated_fields = {name: sub for name, sub in spec.sub_properties.items() if sub.calculated is not None}
        if calculated_fields and isinstance(projected, Mapping):
            # Sub-keys are written onto a copy; the container may be live state.
            projected = dict(projected)
            for name, sub in calculated_fields.items():
                projected[name] = sub.calculated()  # type: ignore[misc]
        state[key] = projected
    return state
