"""Key derivation straight from actor data, with no SIDS required.

// [LAW:one-source-of-truth] Item/effect/trait classification primitives live here and are
//   shared by the generators below and by the D&D 5e adapter's SIDS builder.

Default initialization runs when a token is placed, before any inspection view
has fetched SIDS, so it derives keys with the generators in this module. The
D&D 5e adapter enumerates keys by walking the SIDS it builds. Both paths use
the selectors below; tests/test_key_parity.py pins them to the same key sets.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

import inspect_statblock.core.keys as keys
from inspect_statblock.host.entities import ActiveEffect, Actor, Item

logger = logging.getLogger(__name__)

# Basic actions every creature has; never listed as features.
COMMON_ACTIONS = frozenset({
    "attack", "castaspell", "dash", "disengage", "dodge", "help", "hide", "ready",
    "search", "useanobject", "grapple", "shove", "improvisedaction", "readyaction",
    "readyspell", "squeeze", "stabilize", "fall", "underwater", "checkcover",
})

# (trait data path, defense category) in display order.
DEFENSE_TRAIT_PATHS: tuple[tuple[str, str], ...] = (
    ("dr", "resistances"),
    ("di", "immunities"),
    ("dv", "vulnerabilities"),
    ("ci", "conditionimmunities"),
)


# ─── Shared primitives ────────────────────────────────────────────────────────


def is_common_action(name: object) -> bool:
    return keys.normalize_trait_token(name) in COMMON_ACTIONS


def has_activities(item: Item) -> bool:
    """True when the item declares at least one activity."""
    activities = (item.system or {}).get("activities")
    if activities is None:
        return False
    if isinstance(activities, (Mapping, list, tuple, set, frozenset)):
        return len(activities) > 0
    return False


def trait_values(trait: object) -> list[str]:
    """Selected trait values from a list, a set, or a {type: enabled} mapping."""
    if not isinstance(trait, Mapping):
        return []
    value = trait.get("value")
    if not value:
        return []
    if isinstance(value, (set, frozenset)):
        return sorted(str(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    if isinstance(value, Mapping):
        return [str(name) for name, enabled in value.items() if enabled is True]
    return []


def custom_trait_values(trait: object) -> list[str]:
    """Free-text custom entries ("radiant damage; psychic") split on ';'."""
    if not isinstance(trait, Mapping):
        return []
    custom = trait.get("custom")
    if not isinstance(custom, str):
        return []
    return [part.strip() for part in custom.split(";") if part.strip()]


def defense_traits(actor: Actor) -> dict[str, object]:
    """Map defense category -> raw trait data for the actor."""
    traits = (actor.system or {}).get("traits") or {}
    return {category: traits.get(path) for path, category in DEFENSE_TRAIT_PATHS}


def passive_feature_items(actor: Actor) -> list[Item]:
    return [
        item for item in actor.items
        if item.type == "feat" and not is_common_action(item.name) and not has_activities(item)
    ]


def active_feature_items(actor: Actor) -> list[Item]:
    return [
        item for item in actor.items
        if item.type == "feat" and not is_common_action(item.name) and has_activities(item)
    ]


def enabled_effects(actor: Actor) -> list[ActiveEffect]:
    return [effect for effect in actor.effects if not effect.disabled]


# ─── Generators ───────────────────────────────────────────────────────────────


def generate_defense_tag_keys(actor: Actor | None) -> list[str]:
    if actor is None:
        return []
    result: list[str] = []
    for category, trait in defense_traits(actor).items():
        for value in trait_values(trait) + custom_trait_values(trait):
            result.append(keys.defense_tag(category, value).encode())
    logger.debug("generated defense tag keys for %s: %s", actor.id, result)
    return result


def generate_feature_keys(actor: Actor | None) -> list[str]:
    if actor is None:
        return []
    return [keys.feature(item.id).encode() for item in passive_feature_items(actor)]


def generate_active_feature_keys(actor: Actor | None) -> list[str]:
    if actor is None:
        return []
    return [keys.active_feature(item.id).encode() for item in active_feature_items(actor)]


def generate_active_effect_keys(actor: Actor | None) -> list[str]:
    if actor is None:
        return []
    return [keys.effect(effect.id).encode() for effect in enabled_effects(actor)]


def generate_instance_keys(actor: Actor | None) -> list[str]:
    """All four generators, concatenated in initialization order."""
    return (
        generate_defense_tag_keys(actor)
        + generate_feature_keys(actor)
        + generate_active_feature_keys(actor)
        + generate_active_effect_keys(actor)
    )
