"""Key enumeration through a handler's capabilities, with generic fallbacks.

// [LAW:locality-or-seam] Capability checks and adapter-failure recovery for key
//   enumeration live here; sessions just ask for keys.
"""

from __future__ import annotations

import logging

import inspect_statblock.visibility.derivation as derivation
import inspect_statblock.visibility.reconciler as reconciler
from inspect_statblock.core.sids import StatblockData
from inspect_statblock.host.entities import Actor
from inspect_statblock.systems.plugin_api import (
    HandlerCapabilities,
    SystemHandler,
    maybe_await,
)

logger = logging.getLogger(__name__)


def section_definitions(handler: SystemHandler, capabilities: HandlerCapabilities) -> dict:
    if not capabilities.section_definitions:
        return {}
    try:
        return dict(handler.get_system_section_definitions() or {})
    except Exception:
        logger.exception("get_system_section_definitions failed for %s", handler.system_id)
        return {}


def default_ability_keys(handler: SystemHandler, capabilities: HandlerCapabilities) -> list[str]:
    if not capabilities.default_ability_keys:
        return []
    try:
        return list(handler.get_default_ability_keys() or [])
    except Exception:
        logger.exception("get_default_ability_keys failed for %s", handler.system_id)
        return []


async def in_section_item_keys(
    handler: SystemHandler | None,
    capabilities: HandlerCapabilities,
    section_id: str,
    actor: Actor | None,
) -> list[str]:
    """Item keys listed under a section header."""
    if actor is None:
        return []
    if handler is not None and capabilities.in_section_item_keys:
        try:
            return list(await maybe_await(handler.get_in_section_item_keys(section_id, actor)))
        except Exception:
            logger.exception("get_in_section_item_keys failed for %s", section_id)

    if section_id == reconciler.ACTIVE_EFFECTS_SECTION:
        return derivation.generate_active_effect_keys(actor)
    logger.warning(
        "no in-section item keys for %s; the system handler should implement "
        "get_in_section_item_keys",
        section_id,
    )
    return []


async def enumerate_toggleable_keys(
    handler: SystemHandler | None,
    capabilities: HandlerCapabilities,
    actor: Actor | None,
    sids: StatblockData | None,
) -> list[str]:
    """Every toggleable key for actor: the handler's own list, else a best-effort union."""
    if handler is None or actor is None:
        return []
    if capabilities.all_toggleable_keys:
        try:
            return list(await maybe_await(handler.get_all_toggleable_keys(actor, sids)))
        except Exception:
            logger.exception("get_all_toggleable_keys failed for %s; using fallback", handler.system_id)

    passive_feature_keys: list[str] = []
    if capabilities.in_section_item_keys:
        try:
            passive_feature_keys = list(
                await maybe_await(
                    handler.get_in_section_item_keys(reconciler.PASSIVE_FEATURES_SECTION, actor)
                )
            )
        except Exception as e:
            logger.warning("error getting passive feature keys from %s: %s", handler.system_id, e)

    return reconciler.fallback_keys(
        section_definitions(handler, capabilities),
        default_ability_keys(handler, capabilities),
        derivation.generate_active_effect_keys(actor),
        passive_feature_keys,
        sids,
    )
