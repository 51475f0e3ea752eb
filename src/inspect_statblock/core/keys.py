"""Element keys: the tagged identity of every toggleable display unit.

// [LAW:one-source-of-truth] The prefix grammar for persisted keys lives only here.
// [LAW:single-enforcer] encode()/parse() are the sole string <-> key boundary.

Persisted flag maps and rendered markup carry keys as plain strings
("def-tag-resistances-fire"). Everything in between works with ElementKey,
which carries the structure explicitly instead of re-parsing prefixes.

This module is STABLE: safe for `from` imports everywhere.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class KeyKind(Enum):
    """Discriminator for element keys."""

    HEADER = "header"
    SECTION = "section"
    ABILITY = "ability"
    DEFENSE_CATEGORY = "def"
    DEFENSE_TAG = "def-tag"
    EFFECT = "effect"
    FEATURE = "feature"
    ACTIVE_FEATURE = "active-feature"
    OTHER = "other"


# Ordered for deterministic rendering and initialization.
DEFENSE_CATEGORIES: tuple[str, ...] = (
    "resistances",
    "immunities",
    "vulnerabilities",
    "conditionimmunities",
)
_DEFENSE_CATEGORY_SET = frozenset(DEFENSE_CATEGORIES)

# Instance-level prefixes. Longest first: "active-feature-" must win over "feature-".
_INSTANCE_PREFIXES: tuple[tuple[str, KeyKind], ...] = (
    ("active-feature-", KeyKind.ACTIVE_FEATURE),
    ("feature-", KeyKind.FEATURE),
    ("effect-", KeyKind.EFFECT),
    ("ability-", KeyKind.ABILITY),
    ("section-", KeyKind.SECTION),
    ("header-", KeyKind.HEADER),
)

_NON_TOKEN_CHARS = re.compile(r"[^a-z0-9]")


def normalize_trait_token(value: object) -> str:
    """Lowercase and strip everything that is not [a-z0-9].

    "Radiant Damage" -> "radiantdamage". Used for defense tag values and for
    common-action name matching.
    """
    return _NON_TOKEN_CHARS.sub("", str(value or "").lower())


@dataclass(frozen=True)
class ElementKey:
    """Structured element key.

    kind:        which family the key belongs to
    category:    defense category for DEFENSE_CATEGORY / DEFENSE_TAG
    instance_id: item/effect id, ability id, section/header name, tag value,
                 or the raw string for OTHER
    """

    kind: KeyKind
    category: str = ""
    instance_id: str = ""

    def encode(self) -> str:
        """Render the persisted string form."""
        if self.kind is KeyKind.DEFENSE_TAG:
            return f"def-tag-{self.category}-{self.instance_id}"
        if self.kind is KeyKind.DEFENSE_CATEGORY:
            return f"def-{self.category}"
        if self.kind is KeyKind.OTHER:
            return self.instance_id
        return f"{self.kind.value}-{self.instance_id}"

    def __str__(self) -> str:
        return self.encode()

    @property
    def is_group_header(self) -> bool:
        return self.kind in (KeyKind.SECTION, KeyKind.DEFENSE_CATEGORY)


def parse(raw: str) -> ElementKey:
    """Decode a persisted key string. Never raises; unknown shapes become OTHER.

    // [LAW:dataflow-not-control-flow] Legacy/unknown keys are preserved as OTHER
    // so a round trip through parse().encode() is lossless.
    """
    text = str(raw or "")
    if text.startswith("def-tag-"):
        rest = text[len("def-tag-"):]
        category, sep, value = rest.partition("-")
        if sep and category in _DEFENSE_CATEGORY_SET:
            return ElementKey(KeyKind.DEFENSE_TAG, category=category, instance_id=value)
        return ElementKey(KeyKind.OTHER, instance_id=text)
    if text.startswith("def-"):
        category = text[len("def-"):]
        if category in _DEFENSE_CATEGORY_SET:
            return ElementKey(KeyKind.DEFENSE_CATEGORY, category=category)
        return ElementKey(KeyKind.OTHER, instance_id=text)
    for prefix, kind in _INSTANCE_PREFIXES:
        if text.startswith(prefix):
            return ElementKey(kind, instance_id=text[len(prefix):])
    return ElementKey(KeyKind.OTHER, instance_id=text)


# ─── Constructors ─────────────────────────────────────────────────────────────


def header(name: str) -> ElementKey:
    return ElementKey(KeyKind.HEADER, instance_id=name)


def section(name: str) -> ElementKey:
    return ElementKey(KeyKind.SECTION, instance_id=name)


def ability(ability_id: str) -> ElementKey:
    return ElementKey(KeyKind.ABILITY, instance_id=ability_id)


def defense_category(category: str) -> ElementKey:
    if category not in _DEFENSE_CATEGORY_SET:
        raise ValueError(f"unknown defense category '{category}'")
    return ElementKey(KeyKind.DEFENSE_CATEGORY, category=category)


def defense_tag(category: str, raw_value: object) -> ElementKey:
    """Tag key for one defense trait; raw_value is normalized here."""
    if category not in _DEFENSE_CATEGORY_SET:
        raise ValueError(f"unknown defense category '{category}'")
    return ElementKey(
        KeyKind.DEFENSE_TAG,
        category=category,
        instance_id=normalize_trait_token(raw_value),
    )


def effect(effect_id: str) -> ElementKey:
    return ElementKey(KeyKind.EFFECT, instance_id=effect_id)


def feature(item_id: str) -> ElementKey:
    return ElementKey(KeyKind.FEATURE, instance_id=item_id)


def active_feature(item_id: str) -> ElementKey:
    return ElementKey(KeyKind.ACTIVE_FEATURE, instance_id=item_id)
