"""VisibilityStore: the persisted hidden-elements map on its owning entity.

// [LAW:single-enforcer] All reads and writes of the hidden-elements flag go through here.
// [LAW:one-source-of-truth] Flag scope/key and storage-mode names are defined only here.

The map is opaque scoped state on one owner actor. Absent keys mean visible;
unknown keys are preserved. Writes are full replacements, so callers build the
new map from a fresh read().
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Literal

from inspect_statblock.errors import FlagStorageError
from inspect_statblock.host.entities import Actor, Token
from inspect_statblock.host.world import World

logger = logging.getLogger(__name__)

FLAG_SCOPE = "inspect-statblock"
FLAG_KEY = "hiddenElements"

FlagStorageMode = Literal["per-actor", "per-token"]
PER_ACTOR: FlagStorageMode = "per-actor"
PER_TOKEN: FlagStorageMode = "per-token"
FLAG_STORAGE_MODES: tuple[str, ...] = (PER_ACTOR, PER_TOKEN)

HiddenElementsMap = dict[str, bool]


def normalize_storage_mode(value: object) -> FlagStorageMode:
    """Unknown or missing modes fall back to per-actor."""
    text = str(value or "").strip().lower()
    if text == PER_TOKEN:
        return PER_TOKEN
    if text and text != PER_ACTOR:
        logger.warning("unknown flag storage mode %r; using %s", value, PER_ACTOR)
    return PER_ACTOR


def coerce_flag_map(raw: object) -> HiddenElementsMap:
    """Normalize persisted data into a HiddenElementsMap.

    Non-mapping payloads read as empty. Every key is kept; values are
    truth-tested so legacy 0/1 or "" entries behave like booleans.
    """
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        logger.warning("ignoring malformed hidden-elements payload of type %s", type(raw).__name__)
        return {}
    return {str(key): bool(value) for key, value in raw.items()}


def flag_payload_from_diff(diff: Mapping) -> tuple[bool, object]:
    """Return (present, value) for the hidden-elements entry of an update diff."""
    flags = diff.get("flags") if isinstance(diff, Mapping) else None
    if not isinstance(flags, Mapping):
        return False, None
    scoped = flags.get(FLAG_SCOPE)
    if not isinstance(scoped, Mapping) or FLAG_KEY not in scoped:
        return False, None
    return True, scoped[FLAG_KEY]


def resolve_flag_owner(
    world: World, actor: Actor | None, token: Token | None, mode: str
) -> Actor | None:
    """Pick the entity that owns the hidden-elements map for one inspection.

    per-token: the displayed actor instance itself.
    per-actor: the base actor the token points at, when it can be found.
    Otherwise the displayed actor.
    """
    if normalize_storage_mode(mode) == PER_TOKEN:
        logger.debug("using token actor instance for flag storage (per-token)")
        return actor
    if token is not None and token.actor_id:
        base = world.get_actor(token.actor_id)
        if base is not None:
            logger.debug(
                "using base actor %s for flag storage (per-actor, linked=%s)",
                base.name,
                token.actor_link,
            )
            return base
    logger.debug("using actor instance for flag storage (fallback)")
    return actor


class VisibilityStore:
    """Read/replace the hidden-elements map on owner actors."""

    def __init__(self, scope: str = FLAG_SCOPE, key: str = FLAG_KEY):
        self._scope = scope
        self._key = key

    def read(self, owner: Actor | None) -> HiddenElementsMap:
        """Fresh copy of the owner's map; {} when nothing is persisted."""
        if owner is None:
            return {}
        return coerce_flag_map(owner.get_flag(self._scope, self._key))

    def has_flags(self, owner: Actor | None) -> bool:
        """True when the owner already carries a non-empty map."""
        return len(self.read(owner)) > 0

    async def write(self, owner: Actor | None, flags: Mapping[str, bool]) -> HiddenElementsMap:
        """Replace the owner's map wholesale. Failures propagate as FlagStorageError."""
        if owner is None:
            raise FlagStorageError("cannot write hidden elements without an owner entity")
        new_map = {str(key): bool(value) for key, value in flags.items()}
        try:
            await owner.set_flag(self._scope, self._key, new_map)
        except Exception as e:
            logger.error("failed to write hidden elements for %s: %s", owner.id, e)
            raise FlagStorageError(f"failed to write hidden elements for {owner.id}") from e
        logger.debug("wrote %d hidden-element flags for %s", len(new_map), owner.id)
        return new_map
