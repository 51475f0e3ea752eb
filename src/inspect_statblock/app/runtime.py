"""Composition root: builds the one registry and wires every collaborator.

// [LAW:single-enforcer] The only place a SystemHandlerRegistry is constructed for a process.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

import inspect_statblock.app.settings_store
import inspect_statblock.visibility.initializer
from inspect_statblock.api import InspectStatblockAPI
from inspect_statblock.host.entities import Token
from inspect_statblock.host.notifications import Notifier
from inspect_statblock.host.world import World
from inspect_statblock.session import InspectionSession
from inspect_statblock.systems.registry import SystemHandlerRegistry, discover_builtin_handlers
from inspect_statblock.visibility.store import VisibilityStore
from inspect_statblock.windows import InspectionWindows

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    world: World
    registry: SystemHandlerRegistry
    api: InspectStatblockAPI
    settings: object
    store: VisibilityStore
    notifier: Notifier
    windows: InspectionWindows
    viewer_is_privileged: bool
    disposers: list[Callable[[], None]] = field(default_factory=list)

    def session_for_token(self, token: Token) -> InspectionSession:
        """A new, not yet rendered session for token."""
        return InspectionSession(
            token.actor,
            token,
            world=self.world,
            registry=self.registry,
            store=self.store,
            notifier=self.notifier,
            viewer_is_privileged=self.viewer_is_privileged,
            flag_storage_mode=inspect_statblock.app.settings_store.flag_storage_mode(self.settings),
        )

    def shutdown(self) -> None:
        self.windows.close_all()
        for dispose in self.disposers:
            dispose()
        self.disposers.clear()


def create_runtime(
    world: World,
    viewer_is_privileged: bool = True,
    settings_overrides: dict | None = None,
    registry: SystemHandlerRegistry | None = None,
    persist_settings: bool = True,
) -> Runtime:
    """Build and wire a runtime for world.

    Built-in handlers are discovered into registry (a fresh one when None)
    before the settings schema is computed from their section definitions.
    """
    if registry is None:
        registry = SystemHandlerRegistry()
    added = discover_builtin_handlers(registry)
    for package_name, message in registry.load_errors().items():
        logger.warning("system handler package %s failed to load: %s", package_name, message)
    logger.info("built-in system handlers: %s", ", ".join(added) or "none")

    settings = inspect_statblock.app.settings_store.create(registry, settings_overrides)
    notifier = Notifier()
    # late-bound: runtime is assigned before any session is requested
    windows = InspectionWindows(lambda token: runtime.session_for_token(token), notifier)
    runtime = Runtime(
        world=world,
        registry=registry,
        api=InspectStatblockAPI(registry),
        settings=settings,
        store=VisibilityStore(),
        notifier=notifier,
        windows=windows,
        viewer_is_privileged=viewer_is_privileged,
    )
    runtime.disposers.append(
        inspect_statblock.visibility.initializer.install_default_flag_hook(
            world,
            registry,
            runtime.store,
            lambda: inspect_statblock.app.settings_store.default_visibility_settings(settings),
        )
    )
    runtime.disposers.extend(
        inspect_statblock.app.settings_store.setup_reactions(
            settings, {"windows": runtime.windows}, persist=persist_settings
        )
    )
    return runtime
