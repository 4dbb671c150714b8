"""Event names shared by stores, dispatchers and view bindings."""

from __future__ import annotations

#: Emitted by a store whenever its state changed.
CHANGE = "change"

#: Emitted by a store to ask every store on the dispatcher to revert.
ROLLBACK = "rollback"

#: Fanned out by the dispatcher to every store after any store emitted ``rollback``.
ROLLBACK_BROADCAST = "__rollback"

#: Emitted by the dispatcher once a settlement future resolved.
CHANGE_ALL = "change:all"

ACTION_PREFIX = "action:"

#: Keys of a property spec that are not nested sub-property specs.
RESERVED_SPEC_KEYS = frozenset({"default", "calculated"})


def action_event(name: str) -> str:
    """Channel event name a store binds the handler of action *name* to."""
    return ACTION_PREFIX + name
