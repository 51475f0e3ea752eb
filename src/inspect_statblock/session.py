"""InspectionSession: one open statblock view for an actor/token.

// [LAW:single-enforcer] Every flag mutation from a view goes read-fresh -> reconciler -> store.write.
// [LAW:one-way-deps] Session depends on registry/store/reconciler; nothing depends on session
//   except windows and the composition root.

Lifecycle: constructed closed; render() fetches SIDS, marks the session
rendered and subscribes to the world's actor update stream; close()
unsubscribes. Update notifications only re-render sessions that have been
rendered, so a bulk toggle in one view never opens another.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

import inspect_statblock.render
import inspect_statblock.visibility.enumeration as enumeration
import inspect_statblock.visibility.reconciler as reconciler
from inspect_statblock.core.sids import REDACTED, StatblockData
from inspect_statblock.host.entities import Actor, Token
from inspect_statblock.host.notifications import Notifier
from inspect_statblock.host.world import ActorUpdate, World
from inspect_statblock.systems.plugin_api import SystemHandler
from inspect_statblock.systems.registry import SystemHandlerRegistry
from inspect_statblock.visibility.reconciler import ToggleKind
from inspect_statblock.visibility.store import (
    HiddenElementsMap,
    VisibilityStore,
    coerce_flag_map,
    flag_payload_from_diff,
    resolve_flag_owner,
)
from rich.text import Text

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Inspect Statblock"
HEADER_NAME_KEY = "header-name"

Renderer = Callable[[StatblockData], Text]


class InspectionSession:
    """Orchestrates handler lookup, SIDS fetch, rendering and visibility toggles."""

    def __init__(
        self,
        actor: Actor | None,
        token: Token | None,
        *,
        world: World,
        registry: SystemHandlerRegistry,
        store: VisibilityStore,
        notifier: Notifier,
        viewer_is_privileged: bool,
        flag_storage_mode: str,
        renderer: Renderer = inspect_statblock.render.render_from_sids,
    ):
        self.actor = actor
        self.token = token
        self.token_id = token.id if token is not None else None
        self.viewer_is_privileged = viewer_is_privileged
        self._world = world
        self._registry = registry
        self._store = store
        self._notifier = notifier
        self._renderer = renderer

        self.owner: Actor | None = resolve_flag_owner(world, actor, token, flag_storage_mode)
        self.hidden_elements: HiddenElementsMap = store.read(self.owner)
        self.handler: SystemHandler | None = None
        self.sids: StatblockData | None = None
        self.output: Text | None = None
        self.rendered = False
        self.closed = False
        self.render_count = 0

        self._unsubscribe: Callable[[], None] | None = None
        self._pending: set[asyncio.Task] = set()

    # ─── Display ──────────────────────────────────────────────────────

    @property
    def system_id(self) -> str:
        return self._world.active_system_id(self.actor)

    def _name_hidden_for_viewer(self) -> bool:
        return not self.viewer_is_privileged and bool(self.hidden_elements.get(HEADER_NAME_KEY))

    @property
    def title(self) -> str:
        if self.actor is None:
            return DEFAULT_TITLE
        name = self.actor.name
        if self.token is not None and self.token.name and self.token.name != self.actor.name:
            name = self.token.name
        redacted = self._name_hidden_for_viewer()
        title = REDACTED if redacted else name
        if self.owner is not None and self.owner.id != self.actor.id:
            shared = REDACTED if redacted else self.owner.name
            title += f" (Shared: {shared})"
        return title

    async def get_data(self) -> Text:
        """Fetch fresh SIDS for the current flags and render it.

        Every failure degrades to an inline placeholder; the session stays open.
        """
        if self.actor is None:
            logger.error("get_data: no actor provided")
            self.sids = None
            return inspect_statblock.render.render_placeholder("Error: No actor data to display.")

        system_id = self.system_id
        handler = self._registry.get_handler(system_id)
        if handler is None:
            logger.warning("no system handler found for system: %s", system_id)
            self._notifier.warn(
                f"Inspect Statblock: No system handler configured for game system '{system_id}'."
            )
            self.sids = None
            return inspect_statblock.render.render_placeholder(
                f"Error: No system handler for {system_id}."
            )

        self.handler = handler
        try:
            self.hidden_elements = self._store.read(self.owner)
            sids = await handler.get_standardized_actor_data(
                self.actor, self.token, dict(self.hidden_elements), self.viewer_is_privileged
            )
            if sids is None:
                self.sids = None
                return inspect_statblock.render.render_placeholder(
                    "Error: Could not retrieve standardized data."
                )
            self.sids = sids
            return self._renderer(sids)
        except Exception:
            logger.exception("error getting SIDS data or rendering for %s", self.actor.name)
            self.sids = None
            return inspect_statblock.render.render_placeholder(
                inspect_statblock.render.ERROR_PLACEHOLDER
            )

    async def render(self) -> Text:
        """Render (or re-render) the view and start listening for actor updates."""
        if self.closed:
            logger.debug("render requested for closed session (token %s)", self.token_id)
            return self.output if self.output is not None else Text()
        self.output = await self.get_data()
        self.rendered = True
        self.render_count += 1
        if self._unsubscribe is None:
            self._unsubscribe = self._world.actor_updates.subscribe(self._on_actor_update)
        return self.output

    # ─── Change notifications ─────────────────────────────────────────

    def _on_actor_update(self, update: ActorUpdate) -> None:
        if self.closed:
            return
        actor = update.actor
        is_display_update = self.actor is not None and actor.id == self.actor.id
        is_owner_update = self.owner is not None and actor.id == self.owner.id
        if not is_display_update and not is_owner_update:
            return

        needs_render = False
        if is_owner_update:
            present, payload = flag_payload_from_diff(update.diff)
            if present:
                new_flags = coerce_flag_map(payload)
                if new_flags != self.hidden_elements:
                    logger.info("visibility flags changed for owner %s", actor.name)
                    self.hidden_elements = new_flags
                    needs_render = True

        if is_display_update and not needs_render:
            diff_keys = list(update.diff.keys())
            only_stats = diff_keys == ["_stats"]
            only_foreign_flags = diff_keys == ["flags"]
            if diff_keys and not only_stats and not only_foreign_flags:
                logger.info("actor data changed for %s (keys: %s)", actor.name, ", ".join(diff_keys))
                needs_render = True

        if not needs_render:
            return
        if not self.rendered:
            logger.debug("skipping render for non-rendered session (token %s)", self.token_id)
            return
        self._schedule_render()

    def _schedule_render(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("no running loop; render deferred for token %s", self.token_id)
            return
        task = loop.create_task(self.render())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def wait_idle(self) -> None:
        """Wait for every re-render scheduled by update notifications."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def rebind_owner(self, flag_storage_mode: str) -> None:
        """Re-resolve the flag owner after the storage mode changed."""
        owner = resolve_flag_owner(self._world, self.actor, self.token, flag_storage_mode)
        if owner is self.owner:
            return
        self.owner = owner
        self.hidden_elements = self._store.read(owner)
        if self.rendered and not self.closed:
            self._schedule_render()

    # ─── Toggle actions ───────────────────────────────────────────────

    async def toggle_visibility(self, element_key: str) -> HiddenElementsMap | None:
        """Toggle one element, or a whole group when element_key is a group header.

        Returns the written map, or None when nothing was written.
        """
        if not self.viewer_is_privileged:
            return None
        if not element_key:
            logger.warning("toggle_visibility: no element key given")
            return None
        if self.handler is None:
            logger.warning("toggle_visibility: no system handler available")
            return None
        if self.sids is None:
            logger.warning("toggle_visibility: no SIDS data available; re-rendering to fetch")
            await self.render()
            return None

        current = self._store.read(self.owner)
        kind = reconciler.classify_toggle(element_key)
        if kind is ToggleKind.DEFENSE_CATEGORY:
            category = self.sids.defense_category(element_key)
            children = [tag.element_key for tag in category.tags] if category is not None else []
            new_flags = reconciler.toggle_group(current, element_key, children)
        elif kind is ToggleKind.BATCH_SECTION:
            children = await enumeration.in_section_item_keys(
                self.handler, self._registry.capabilities(self.system_id), element_key, self.actor
            )
            new_flags = reconciler.toggle_group(current, element_key, children)
        else:
            new_flags = reconciler.toggle_single(current, element_key)
        return await self._store.write(self.owner, new_flags)

    async def _bulk(self, hidden: bool) -> HiddenElementsMap | None:
        if not self.viewer_is_privileged:
            return None
        system_id = self.system_id
        handler = self._registry.get_handler(system_id)
        if handler is None:
            logger.warning("bulk visibility change without a handler for %s", system_id)
            return None
        all_keys = await enumeration.enumerate_toggleable_keys(
            handler, self._registry.capabilities(system_id), self.actor, self.sids
        )
        logger.debug("%s %d keys for %s", "hiding" if hidden else "showing", len(all_keys), self.token_id)
        return await self._store.write(self.owner, reconciler.bulk_set(all_keys, hidden))

    async def hide_all(self) -> HiddenElementsMap | None:
        return await self._bulk(True)

    async def show_all(self) -> HiddenElementsMap | None:
        return await self._bulk(False)

    # ─── Teardown ─────────────────────────────────────────────────────

    def close(self) -> None:
        """Stop listening for updates and cancel scheduled re-renders."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for task in list(self._pending):
            task.cancel()
        self.closed = True
        self.rendered = False
