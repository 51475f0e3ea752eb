"""Standard system-handler contract for ruleset adapters.

// [LAW:one-source-of-truth] Handler capabilities and section descriptors are defined here.
// [LAW:locality-or-seam] Core code talks only to this contract, never ruleset internals.

A handler must provide `system_id` and `get_standardized_actor_data`. Every
other method is an optional capability, declared as its own Protocol and
probed once at registration into a HandlerCapabilities descriptor. Optional
methods may be plain or async; callers go through maybe_await().
"""

from __future__ import annotations

import inspect
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal, Protocol, runtime_checkable

from inspect_statblock.core.sids import StatblockData


SectionType = Literal["single", "group"]


@dataclass(frozen=True)
class SectionDefinition:
    """One top-level toggle group declared by a handler.

    key_pattern is the section's own element key for "single" sections and the
    key prefix (e.g. "ability-") for "group" sections.
    """

    section_id: str
    type: SectionType
    key_pattern: str
    default_show_setting_key: str | None = None


class SystemHandler(Protocol):
    @property
    def system_id(self) -> str:
        ...

    async def get_standardized_actor_data(
        self,
        actor: Any,
        token: Any,
        hidden_flags: Mapping[str, bool],
        viewer_is_privileged: bool,
    ) -> StatblockData | None:
        ...


@runtime_checkable
class SectionDefinitionsCapable(Protocol):
    def get_system_section_definitions(self) -> Mapping[str, SectionDefinition]:
        ...


@runtime_checkable
class DefaultAbilityKeysCapable(Protocol):
    def get_default_ability_keys(self) -> Sequence[str]:
        ...


@runtime_checkable
class ToggleableKeysCapable(Protocol):
    async def get_all_toggleable_keys(
        self, actor: Any, sids: StatblockData | None
    ) -> Sequence[str]:
        ...


@runtime_checkable
class InSectionItemKeysCapable(Protocol):
    async def get_in_section_item_keys(self, section_id: str, actor: Any) -> Sequence[str]:
        ...


# (capability field, capability Protocol), one row per optional capability.
_CAPABILITY_PROTOCOLS: tuple[tuple[str, type], ...] = (
    ("section_definitions", SectionDefinitionsCapable),
    ("default_ability_keys", DefaultAbilityKeysCapable),
    ("all_toggleable_keys", ToggleableKeysCapable),
    ("in_section_item_keys", InSectionItemKeysCapable),
)


@dataclass(frozen=True)
class HandlerCapabilities:
    """Which optional capabilities a registered handler implements."""

    standardized_data: bool = False
    section_definitions: bool = False
    default_ability_keys: bool = False
    all_toggleable_keys: bool = False
    in_section_item_keys: bool = False


def probe_capabilities(handler: object) -> HandlerCapabilities:
    """Inspect a handler once and describe what it can do.

    // [LAW:single-enforcer] Capability probing happens only here.
    """
    found = {
        field_name: isinstance(handler, protocol)
        for field_name, protocol in _CAPABILITY_PROTOCOLS
    }
    return HandlerCapabilities(
        standardized_data=callable(getattr(handler, "get_standardized_actor_data", None)),
        **found,
    )


async def maybe_await(value):
    """Await value if it is awaitable; optional handler methods may be sync."""
    if inspect.isawaitable(value):
        return await value
    return value
