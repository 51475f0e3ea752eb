"""In-process model of the host's game entities (actors, tokens, items, effects).

// [LAW:single-enforcer] Actor._commit is the only place an entity notifies about changes.
// [LAW:one-way-deps] No imports from session/visibility; they depend on this module.

Actors carry scoped flag storage: an opaque key-value namespace per owning
module. Reads are synchronous snapshots; writes are async (they stand for a
round trip to the host's persistence layer) and emit a diff of the changed
top-level keys once applied.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Item:
    """An owned game item. `system` holds ruleset-specific data (activities, ...)."""

    id: str
    name: str
    type: str = "feat"
    system: dict = field(default_factory=dict)


@dataclass
class ActiveEffect:
    id: str
    name: str
    disabled: bool = False


@dataclass
class Actor:
    """A character or creature record.

    system_id is the ruleset this record belongs to; empty means "whatever the
    world's active ruleset is".
    """

    id: str
    name: str
    system_id: str = ""
    system: dict = field(default_factory=dict)
    items: list[Item] = field(default_factory=list)
    effects: list[ActiveEffect] = field(default_factory=list)
    flags: dict[str, dict] = field(default_factory=dict)

    # Wired by World when the actor is registered.
    on_update: Callable[["Actor", dict], None] | None = field(
        default=None, repr=False, compare=False
    )

    def get_flag(self, scope: str, key: str):
        """Return a deep copy of one flag value, or None when absent."""
        value = self.flags.get(scope, {}).get(key)
        return copy.deepcopy(value)

    async def set_flag(self, scope: str, key: str, value) -> None:
        """Replace one flag value and notify listeners with a flags diff."""
        stored = copy.deepcopy(value)
        # Suspension point: stands for the host persistence round trip.
        await asyncio.sleep(0)
        self.flags.setdefault(scope, {})[key] = stored
        self._commit({"flags": {scope: {key: copy.deepcopy(stored)}}})

    async def update(self, changes: dict) -> None:
        """Apply top-level data changes (name, system, _stats, ...) and notify."""
        await asyncio.sleep(0)
        for name, value in changes.items():
            if name == "name":
                self.name = str(value)
            elif name == "system" and isinstance(value, dict):
                self.system.update(copy.deepcopy(value))
        self._commit(dict(changes))

    def instance_copy(self, instance_id: str) -> "Actor":
        """Detached deep copy under a new id, for an unlinked token.

        Data and flags start equal to this actor's and diverge from here on.
        """
        return Actor(
            id=instance_id,
            name=self.name,
            system_id=self.system_id,
            system=copy.deepcopy(self.system),
            items=copy.deepcopy(self.items),
            effects=copy.deepcopy(self.effects),
            flags=copy.deepcopy(self.flags),
        )

    def _commit(self, diff: dict) -> None:
        if self.on_update is None:
            logger.debug("actor %s changed with no listener attached", self.id)
            return
        self.on_update(self, diff)


@dataclass
class Token:
    """A placed instance of an actor.

    actor_id points at the base actor; `actor` is the instance this token
    displays (the base actor itself when linked, a synthetic copy otherwise).
    """

    id: str
    name: str
    actor_id: str | None = None
    actor_link: bool = False
    actor: Actor | None = None
