"""Standardized Inspectable Data Structure (SIDS).

// [LAW:one-type-per-behavior] Every ruleset adapter produces these same shapes.
// [LAW:one-way-deps] Depends on nothing but the stdlib; adapters and the renderer depend on it.

A SIDS snapshot is produced fresh on every data fetch and never mutated.
Element keys are carried as their persisted string form because SIDS is the
boundary the renderer (and any markup it emits) consumes.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

# Default redaction placeholder for values an unprivileged viewer may not see.
REDACTED = "??"


@dataclass(frozen=True)
class Tag:
    """One tagged sub-item (e.g. a single resistance)."""

    label: str
    element_key: str
    hidden: bool = False


@dataclass(frozen=True)
class Row:
    """One row in a section (an ability score, a feature, an effect)."""

    element_key: str
    label: str
    value: str = ""
    hidden: bool = False


@dataclass(frozen=True)
class Section:
    """A titled group of rows. An empty element_key means the title is not toggleable."""

    id: str
    title: str
    element_key: str = ""
    rows: tuple[Row, ...] = ()
    hidden: bool = False


@dataclass(frozen=True)
class DefenseCategory:
    """Defense category header (e.g. resistances) and its tags."""

    id: str
    label: str
    tags: tuple[Tag, ...] = ()
    hidden: bool = False


@dataclass(frozen=True)
class DefenseBlock:
    items: tuple[DefenseCategory, ...] = ()


@dataclass(frozen=True)
class Header:
    name: str
    subtitle: str = ""
    element_key: str = "header-name"
    hidden: bool = False


@dataclass(frozen=True)
class StatblockData:
    """Root of the SIDS tree."""

    system_id: str
    header: Header
    sections: tuple[Section, ...] = ()
    defenses: DefenseBlock = field(default_factory=DefenseBlock)

    def defense_category(self, element_key: str) -> DefenseCategory | None:
        for category in self.defenses.items:
            if category.id == element_key:
                return category
        return None

    def section(self, section_id: str) -> Section | None:
        for sec in self.sections:
            if sec.id == section_id:
                return sec
        return None


def redact(value: object, hidden: bool, viewer_is_privileged: bool) -> str:
    """Return the display value, or REDACTED when the viewer may not see it."""
    if hidden and not viewer_is_privileged:
        return REDACTED
    return str(value)


def iter_element_keys(sids: StatblockData) -> Iterator[str]:
    """Walk every element key in display order (header, sections, rows, defenses)."""
    if sids.header.element_key:
        yield sids.header.element_key
    for sec in sids.sections:
        if sec.element_key:
            yield sec.element_key
        for row in sec.rows:
            yield row.element_key
    for category in sids.defenses.items:
        yield category.id
        for tag in category.tags:
            yield tag.element_key


def iter_defense_tag_keys(sids: StatblockData) -> Iterator[str]:
    for category in sids.defenses.items:
        for tag in category.tags:
            yield tag.element_key
