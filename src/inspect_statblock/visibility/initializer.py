"""Default-visibility initialization when a token is first placed.

// [LAW:single-enforcer] The only code path that seeds a hidden-elements map from settings.

Runs from the world's pre-create-token hook, before any inspection view has
fetched SIDS, so instance keys come from visibility.derivation. Gated on the
owner having no flags at all; an existing map is never touched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

import inspect_statblock.visibility.derivation as derivation
import inspect_statblock.visibility.enumeration as enumeration
import inspect_statblock.visibility.reconciler as reconciler
from inspect_statblock.host.entities import Actor, Token
from inspect_statblock.host.world import World
from inspect_statblock.systems.registry import SystemHandlerRegistry
from inspect_statblock.visibility.store import HiddenElementsMap, VisibilityStore

logger = logging.getLogger(__name__)

SettingsProvider = Callable[[], Mapping[str, object]]


async def initialize_default_flags(
    actor: Actor,
    system_id: str,
    registry: SystemHandlerRegistry,
    store: VisibilityStore,
    settings: Mapping[str, object],
) -> HiddenElementsMap | None:
    """Seed actor's map from default-visibility settings.

    Returns the written map, or None when initialization was skipped.
    """
    if store.has_flags(actor):
        logger.debug("actor %s already has visibility flags; skipping initialization", actor.name)
        return None
    handler = registry.get_handler(system_id)
    if handler is None:
        logger.debug("no system handler for %s; skipping default flag initialization", system_id)
        return None

    capabilities = registry.capabilities(system_id)
    try:
        instance_keys = derivation.generate_instance_keys(actor)
    except Exception:
        logger.warning("could not derive instance keys for %s", actor.name, exc_info=True)
        instance_keys = []

    new_flags = reconciler.default_flags(
        enumeration.section_definitions(handler, capabilities),
        settings,
        enumeration.default_ability_keys(handler, capabilities),
        instance_keys,
    )
    logger.debug("initialized default flags for %s: %s", actor.name, new_flags)
    written = await store.write(actor, new_flags)
    logger.info("initialized default visibility flags for actor %s", actor.name)
    return written


def install_default_flag_hook(
    world: World,
    registry: SystemHandlerRegistry,
    store: VisibilityStore,
    settings_provider: SettingsProvider,
) -> Callable[[], None]:
    """Register the pre-create-token hook. Returns its disposer."""

    async def _on_pre_create_token(token: Token) -> None:
        if not token.actor_id:
            logger.debug("token %s has no actor; skipping default flag initialization", token.id)
            return
        actor = world.get_actor(token.actor_id)
        if actor is None:
            logger.debug("no actor %s for token %s; skipping", token.actor_id, token.id)
            return
        await initialize_default_flags(
            actor,
            world.active_system_id(actor),
            registry,
            store,
            settings_provider(),
        )

    return world.register_pre_create_token(_on_pre_create_token)
