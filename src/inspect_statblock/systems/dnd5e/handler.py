"""D&D 5e system handler: converts dnd5e actor records into SIDS.

// [LAW:locality-or-seam] dnd5e data paths (abilities, attributes, traits) are read only here
//   and in visibility.derivation's shared selectors.
// [LAW:dataflow-not-control-flow] Redaction is one function applied to every field.

Implements the required capability and all four optional ones.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

import inspect_statblock.core.keys as keys
import inspect_statblock.visibility.derivation as derivation
from inspect_statblock.core.sids import (
    DefenseBlock,
    DefenseCategory,
    Header,
    Row,
    Section,
    StatblockData,
    Tag,
    iter_element_keys,
    redact,
)
from inspect_statblock.host.entities import Actor, Token
from inspect_statblock.systems.plugin_api import SectionDefinition
from inspect_statblock.visibility.reconciler import (
    ACTIVE_EFFECTS_SECTION,
    ACTIVE_FEATURES_SECTION,
    PASSIVE_FEATURES_SECTION,
)

logger = logging.getLogger(__name__)

SYSTEM_ID = "dnd5e"

ABILITY_KEYS: tuple[str, ...] = ("str", "dex", "con", "int", "wis", "cha")


def _single(section_id: str, setting: str) -> SectionDefinition:
    return SectionDefinition(
        section_id=section_id,
        type="single",
        key_pattern=section_id,
        default_show_setting_key=f"dnd5e-showDefault-{setting}",
    )


# // [LAW:one-source-of-truth] All dnd5e toggle groups and their default-visibility settings.
SECTION_DEFINITIONS: dict[str, SectionDefinition] = {
    "header-name": _single("header-name", "name"),
    "section-ac": _single("section-ac", "ac"),
    "section-hp": _single("section-hp", "hp"),
    "section-speed": _single("section-speed", "speed"),
    "abilities": SectionDefinition(
        section_id="abilities",
        type="group",
        key_pattern="ability-",
        default_show_setting_key="dnd5e-showDefault-abilities",
    ),
    "def-resistances": _single("def-resistances", "defenseResistances"),
    "def-immunities": _single("def-immunities", "defenseImmunities"),
    "def-vulnerabilities": _single("def-vulnerabilities", "defenseVulnerabilities"),
    "def-conditionimmunities": _single("def-conditionimmunities", "defenseConditions"),
    ACTIVE_EFFECTS_SECTION: _single(ACTIVE_EFFECTS_SECTION, "activeEffectsSection"),
    PASSIVE_FEATURES_SECTION: _single(PASSIVE_FEATURES_SECTION, "passiveFeaturesSection"),
    ACTIVE_FEATURES_SECTION: _single(ACTIVE_FEATURES_SECTION, "activeFeaturesSection"),
}

_DEFENSE_LABELS: dict[str, str] = {
    "resistances": "Resistances",
    "immunities": "Immunities",
    "vulnerabilities": "Vulnerabilities",
    "conditionimmunities": "Condition Immunities",
}

_ABILITY_LABELS: dict[str, str] = {
    "str": "STR", "dex": "DEX", "con": "CON", "int": "INT", "wis": "WIS", "cha": "CHA",
}


def _ability_modifier(score: int) -> str:
    mod = (score - 10) // 2
    return f"+{mod}" if mod >= 0 else str(mod)


def _display_name(actor: Actor, token: Token | None) -> str:
    """Token name when it differs from the actor's, else the actor's name."""
    if token is not None and token.name and token.name != actor.name:
        return token.name
    return actor.name


class Dnd5eSystemHandler:
    """Ruleset adapter for dnd5e actors."""

    system_id = SYSTEM_ID

    # ─── Required capability ──────────────────────────────────────────

    async def get_standardized_actor_data(
        self,
        actor: Actor,
        token: Token | None,
        hidden_flags: Mapping[str, bool],
        viewer_is_privileged: bool,
    ) -> StatblockData | None:
        if actor is None:
            return None
        flags = dict(hidden_flags or {})

        def hidden(key: str) -> bool:
            return bool(flags.get(key))

        return StatblockData(
            system_id=SYSTEM_ID,
            header=self._build_header(actor, token, hidden, viewer_is_privileged),
            sections=(
                self._build_attributes(actor, hidden, viewer_is_privileged),
                self._build_abilities(actor, hidden, viewer_is_privileged),
                self._build_item_section(
                    ACTIVE_EFFECTS_SECTION, "Active Effects",
                    [(keys.effect(e.id).encode(), e.name) for e in derivation.enabled_effects(actor)],
                    hidden, viewer_is_privileged,
                ),
                self._build_item_section(
                    PASSIVE_FEATURES_SECTION, "Features",
                    [(keys.feature(i.id).encode(), i.name) for i in derivation.passive_feature_items(actor)],
                    hidden, viewer_is_privileged,
                ),
                self._build_item_section(
                    ACTIVE_FEATURES_SECTION, "Actions",
                    [(keys.active_feature(i.id).encode(), i.name) for i in derivation.active_feature_items(actor)],
                    hidden, viewer_is_privileged,
                ),
            ),
            defenses=self._build_defenses(actor, hidden, viewer_is_privileged),
        )

    def _build_header(self, actor, token, hidden, privileged) -> Header:
        is_hidden = hidden("header-name")
        details = (actor.system or {}).get("details") or {}
        return Header(
            name=redact(_display_name(actor, token), is_hidden, privileged),
            subtitle=redact(details.get("type", ""), is_hidden, privileged),
            element_key="header-name",
            hidden=is_hidden,
        )

    def _build_attributes(self, actor, hidden, privileged) -> Section:
        attributes = (actor.system or {}).get("attributes") or {}
        ac = (attributes.get("ac") or {}).get("value", "")
        hp = attributes.get("hp") or {}
        hp_text = f"{hp.get('value', '')}/{hp.get('max', '')}" if hp else ""
        walk = (attributes.get("movement") or {}).get("walk")
        speed_text = f"{walk} ft." if walk is not None else ""
        rows = tuple(
            Row(
                element_key=key,
                label=label,
                value=redact(value, hidden(key), privileged),
                hidden=hidden(key),
            )
            for key, label, value in (
                ("section-ac", "Armor Class", ac),
                ("section-hp", "Hit Points", hp_text),
                ("section-speed", "Speed", speed_text),
            )
        )
        return Section(id="attributes", title="Attributes", rows=rows)

    def _build_abilities(self, actor, hidden, privileged) -> Section:
        abilities = (actor.system or {}).get("abilities") or {}
        rows = []
        for ability_id in ABILITY_KEYS:
            key = keys.ability(ability_id).encode()
            raw = (abilities.get(ability_id) or {}).get("value", 10)
            try:
                score = int(raw)
            except (TypeError, ValueError):
                score = 10
            rows.append(Row(
                element_key=key,
                label=_ABILITY_LABELS[ability_id],
                value=redact(f"{score} ({_ability_modifier(score)})", hidden(key), privileged),
                hidden=hidden(key),
            ))
        return Section(id="abilities", title="Abilities", rows=tuple(rows))

    def _build_item_section(self, section_id, title, entries, hidden, privileged) -> Section:
        section_hidden = hidden(section_id)
        rows = tuple(
            Row(
                element_key=key,
                label=redact(name, hidden(key) or section_hidden, privileged),
                hidden=hidden(key),
            )
            for key, name in entries
        )
        return Section(
            id=section_id,
            title=title,
            element_key=section_id,
            rows=rows,
            hidden=section_hidden,
        )

    def _build_defenses(self, actor, hidden, privileged) -> DefenseBlock:
        categories = []
        for category, trait in derivation.defense_traits(actor).items():
            header_key = keys.defense_category(category).encode()
            category_hidden = hidden(header_key)
            tags = []
            seen: set[str] = set()
            for value in derivation.trait_values(trait) + derivation.custom_trait_values(trait):
                tag_key = keys.defense_tag(category, value).encode()
                if tag_key in seen:
                    continue
                seen.add(tag_key)
                tags.append(Tag(
                    label=redact(value.title() if value.islower() else value,
                                 hidden(tag_key) or category_hidden, privileged),
                    element_key=tag_key,
                    hidden=hidden(tag_key),
                ))
            categories.append(DefenseCategory(
                id=header_key,
                label=_DEFENSE_LABELS[category],
                tags=tuple(tags),
                hidden=category_hidden,
            ))
        return DefenseBlock(items=tuple(categories))

    # ─── Optional capabilities ────────────────────────────────────────

    def get_system_section_definitions(self) -> Mapping[str, SectionDefinition]:
        return dict(SECTION_DEFINITIONS)

    def get_default_ability_keys(self) -> Sequence[str]:
        return ABILITY_KEYS

    async def get_all_toggleable_keys(
        self, actor: Actor, sids: StatblockData | None
    ) -> list[str]:
        """Every key that exists for this actor right now.

        Instance keys come from walking SIDS; a SIDS snapshot is built when the
        caller has none yet.
        """
        if sids is None:
            sids = await self.get_standardized_actor_data(actor, None, {}, True)
        ordered: dict[str, None] = {}
        for definition in SECTION_DEFINITIONS.values():
            if definition.type == "single":
                ordered[definition.key_pattern] = None
        for ability_id in ABILITY_KEYS:
            ordered[keys.ability(ability_id).encode()] = None
        if sids is not None:
            for key in iter_element_keys(sids):
                ordered[key] = None
        return list(ordered)

    async def get_in_section_item_keys(self, section_id: str, actor: Actor) -> list[str]:
        if section_id == ACTIVE_EFFECTS_SECTION:
            return derivation.generate_active_effect_keys(actor)
        if section_id == PASSIVE_FEATURES_SECTION:
            return derivation.generate_feature_keys(actor)
        if section_id == ACTIVE_FEATURES_SECTION:
            return derivation.generate_active_feature_keys(actor)
        logger.debug("no in-section items for %s", section_id)
        return []
