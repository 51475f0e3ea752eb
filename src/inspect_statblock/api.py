"""Public extension point for third-party system handlers.

// [LAW:locality-or-seam] Third-party adapters touch only this surface, never the registry's internals.
"""

from __future__ import annotations

import logging

from inspect_statblock.errors import HandlerRegistrationError
from inspect_statblock.systems.plugin_api import SystemHandler
from inspect_statblock.systems.registry import SystemHandlerRegistry

logger = logging.getLogger(__name__)


class InspectStatblockAPI:
    """Facade handed to system adapters at startup."""

    def __init__(self, registry: SystemHandlerRegistry):
        self._registry = registry

    def register_system_handler(self, system_id: str, handler: SystemHandler) -> bool:
        """Register handler for system_id. Errors are logged, never raised."""
        try:
            self._registry.register(system_id, handler)
        except HandlerRegistrationError as e:
            logger.error("failed to register system handler for %s: %s", system_id, e)
            return False
        return True

    def register_system_template_paths(self, system_id: str, paths: list[str]) -> None:
        self._registry.register_template_paths(system_id, paths)

    def get_system_registry(self) -> SystemHandlerRegistry:
        return self._registry

    def get_system_handler(self, system_id: str) -> SystemHandler | None:
        return self._registry.get_handler(system_id)
