"""VisibilityReconciler: pure transitions over hidden-elements maps.

// [LAW:dataflow-not-control-flow] Every operation is (current map, keys) -> new map;
//   no I/O, no host lookups. Callers supply the authoritative key sets.
// [LAW:single-enforcer] Majority-rule group semantics are implemented only in toggle_group.

Inputs are never mutated. Absent keys read as visible (False).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from enum import Enum

import inspect_statblock.core.keys as keys
from inspect_statblock.core.keys import KeyKind
from inspect_statblock.core.sids import StatblockData, iter_defense_tag_keys
from inspect_statblock.systems.plugin_api import SectionDefinition

logger = logging.getLogger(__name__)

ABILITY_GROUP_PATTERN = "ability-"
LEGACY_DEFENSES_SETTING_KEY = "dnd5e-showDefault-defensesSection"

ACTIVE_EFFECTS_SECTION = "section-active-effects"
PASSIVE_FEATURES_SECTION = "section-passive-features"
ACTIVE_FEATURES_SECTION = "section-active-features"

# Section headers whose click toggles every item listed under them.
BATCH_SECTIONS: tuple[str, ...] = (
    ACTIVE_EFFECTS_SECTION,
    PASSIVE_FEATURES_SECTION,
    ACTIVE_FEATURES_SECTION,
)

# Instance key family -> the section header whose default setting governs it.
_INSTANCE_FAMILY_SECTION: dict[KeyKind, str] = {
    KeyKind.FEATURE: PASSIVE_FEATURES_SECTION,
    KeyKind.ACTIVE_FEATURE: ACTIVE_FEATURES_SECTION,
    KeyKind.EFFECT: ACTIVE_EFFECTS_SECTION,
}


class ToggleKind(Enum):
    DEFENSE_CATEGORY = "defense-category"
    DEFENSE_TAG = "defense-tag"
    BATCH_SECTION = "batch-section"
    SINGLE = "single"


def classify_toggle(element_key: str) -> ToggleKind:
    """Which toggle rule applies to a clicked key."""
    parsed = keys.parse(element_key)
    if parsed.kind is KeyKind.DEFENSE_CATEGORY:
        return ToggleKind.DEFENSE_CATEGORY
    if parsed.kind is KeyKind.DEFENSE_TAG:
        return ToggleKind.DEFENSE_TAG
    if element_key in BATCH_SECTIONS:
        return ToggleKind.BATCH_SECTION
    return ToggleKind.SINGLE


# ─── Toggles ──────────────────────────────────────────────────────────────────


def toggle_single(current: Mapping[str, bool], element_key: str) -> dict[str, bool]:
    new_map = dict(current)
    new_map[element_key] = not bool(current.get(element_key))
    return new_map


def toggle_group(
    current: Mapping[str, bool], header_key: str, child_keys: Sequence[str]
) -> dict[str, bool]:
    """Majority-rule toggle of a group header and its children.

    Any visible child -> hide every child. All children hidden -> show every
    child. A header with its own entry follows the children. A group with no
    children toggles the header alone, hiding it when it has no entry yet.
    """
    new_map = dict(current)
    if not child_keys:
        new_map[header_key] = not bool(current[header_key]) if header_key in current else True
        return new_map
    hide = any(not current.get(key) for key in child_keys)
    for key in child_keys:
        new_map[key] = hide
    if header_key in current:
        new_map[header_key] = hide
    return new_map


# ─── Bulk ─────────────────────────────────────────────────────────────────────


def bulk_set(all_keys: Iterable[str], hidden: bool) -> dict[str, bool]:
    """A brand-new map with every key set to `hidden`. Stale keys are dropped."""
    return {key: hidden for key in all_keys}


def hide_all(all_keys: Iterable[str]) -> dict[str, bool]:
    return bulk_set(all_keys, True)


def show_all(all_keys: Iterable[str]) -> dict[str, bool]:
    return bulk_set(all_keys, False)


# ─── Fallback enumeration ─────────────────────────────────────────────────────


def fallback_keys(
    section_definitions: Mapping[str, SectionDefinition],
    default_ability_keys: Sequence[str],
    effect_keys: Sequence[str],
    passive_feature_keys: Sequence[str],
    sids: StatblockData | None,
) -> list[str]:
    """Best-effort toggleable keys for handlers without their own enumeration.

    Group sections other than the ability pattern cannot be expanded here and
    are reported with a warning.
    """
    ordered: dict[str, None] = {}
    for definition in section_definitions.values():
        if definition.type == "single":
            ordered[definition.key_pattern] = None
        elif definition.key_pattern == ABILITY_GROUP_PATTERN:
            for ability_id in default_ability_keys:
                ordered[keys.ability(ability_id).encode()] = None
        else:
            logger.warning(
                "fallback enumeration cannot expand group section %s (pattern %r)",
                definition.section_id,
                definition.key_pattern,
            )
    for key in effect_keys:
        ordered[key] = None
    for key in passive_feature_keys:
        ordered[key] = None
    if sids is not None:
        for key in iter_defense_tag_keys(sids):
            ordered[key] = None
    return list(ordered)


# ─── Default initialization ───────────────────────────────────────────────────


def _shown_by_default(settings: Mapping[str, object], setting_key: str | None) -> bool:
    if not setting_key:
        return True
    value = settings.get(setting_key)
    return True if value is None else bool(value)


def _explicitly_hidden(settings: Mapping[str, object], setting_key: str | None) -> bool:
    return bool(setting_key) and settings.get(setting_key) is False


def _governing_section_key(parsed: keys.ElementKey) -> str | None:
    if parsed.kind is KeyKind.DEFENSE_TAG:
        return keys.defense_category(parsed.category).encode()
    return _INSTANCE_FAMILY_SECTION.get(parsed.kind)


def default_flags(
    section_definitions: Mapping[str, SectionDefinition],
    settings: Mapping[str, object],
    default_ability_keys: Sequence[str],
    instance_keys: Sequence[str],
) -> dict[str, bool]:
    """Initial hidden-elements map built from default-visibility settings.

    Section keys always get an entry. Instance keys only get one when their
    governing section is configured hidden; the legacy defenses setting hides
    every defense category and defense tag.
    """
    legacy_defenses_hidden = _explicitly_hidden(settings, LEGACY_DEFENSES_SETTING_KEY)
    setting_by_section_key: dict[str, str | None] = {}
    new_map: dict[str, bool] = {}

    for definition in section_definitions.values():
        setting_by_section_key[definition.key_pattern] = definition.default_show_setting_key
        if not definition.default_show_setting_key:
            continue
        shown = _shown_by_default(settings, definition.default_show_setting_key)
        is_defense = keys.parse(definition.key_pattern).kind is KeyKind.DEFENSE_CATEGORY
        if legacy_defenses_hidden and is_defense:
            logger.debug("legacy defenses setting hides %s", definition.key_pattern)
            shown = False
        if definition.type == "single":
            new_map[definition.key_pattern] = not shown
        elif definition.key_pattern == ABILITY_GROUP_PATTERN:
            for ability_id in default_ability_keys:
                new_map[keys.ability(ability_id).encode()] = not shown

    for key in instance_keys:
        if key in new_map:
            continue
        parsed = keys.parse(key)
        section_key = _governing_section_key(parsed)
        if section_key is None:
            continue
        hide = _explicitly_hidden(settings, setting_by_section_key.get(section_key))
        if parsed.kind is KeyKind.DEFENSE_TAG and legacy_defenses_hidden:
            hide = True
        if hide:
            new_map[key] = True
    return new_map
