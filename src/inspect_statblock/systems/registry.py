"""System handler registry and built-in handler discovery.

// [LAW:one-source-of-truth] Handler registration + template paths are centralized here.
// [LAW:single-enforcer] System-id normalization happens only in _normalize_system_id.

Lifecycle: the composition root (app.runtime) constructs exactly one
SystemHandlerRegistry per process and injects it everywhere it is needed.
Registration happens during startup; lookups afterwards. There is no teardown.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable, Mapping
from pathlib import Path

from inspect_statblock.errors import HandlerRegistrationError
from inspect_statblock.systems.plugin_api import (
    HandlerCapabilities,
    SystemHandler,
    probe_capabilities,
)

logger = logging.getLogger(__name__)

MODULE_ID = "inspect-statblock"
_TEMPLATE_ROOT = f"modules/{MODULE_ID}"


def _normalize_system_id(system_id: str) -> str:
    return str(system_id or "").strip().lower()


class SystemHandlerRegistry:
    """Mapping from ruleset id to its handler and probed capabilities."""

    def __init__(self):
        self._handlers: dict[str, SystemHandler] = {}
        self._capabilities: dict[str, HandlerCapabilities] = {}
        self._template_paths: dict[str, list[str]] = {}
        self._load_errors: dict[str, str] = {}

    def register(self, system_id: str, handler: SystemHandler) -> HandlerCapabilities:
        """Insert or overwrite the handler for system_id.

        Only presence is validated; a handler lacking a method is discovered by
        the caller through its capabilities descriptor.
        """
        if handler is None:
            raise HandlerRegistrationError(f"handler must be provided for system '{system_id}'")
        key = _normalize_system_id(system_id)
        if not key:
            raise HandlerRegistrationError("system id must be a non-empty string")
        if key in self._handlers and self._handlers[key] is not handler:
            logger.info("replacing system handler for %s", key)
        capabilities = probe_capabilities(handler)
        if not capabilities.standardized_data:
            logger.warning(
                "handler for %s has no get_standardized_actor_data; data fetches will fail",
                key,
            )
        self._handlers[key] = handler
        self._capabilities[key] = capabilities
        logger.info("registered system handler for %s: %s", key, capabilities)
        return capabilities

    def get_handler(self, system_id: str) -> SystemHandler | None:
        """Exact-match lookup. None means "no handler for this ruleset"."""
        return self._handlers.get(_normalize_system_id(system_id))

    def capabilities(self, system_id: str) -> HandlerCapabilities:
        return self._capabilities.get(_normalize_system_id(system_id), HandlerCapabilities())

    def system_ids(self) -> tuple[str, ...]:
        return tuple(self._handlers.keys())

    # ─── Template paths ───────────────────────────────────────────────

    def register_template_paths(self, system_id: str, paths: list[str]) -> None:
        """Append template paths for a ruleset. Paths accumulate across calls."""
        if not isinstance(paths, list):
            logger.error(
                "register_template_paths: paths must be a list for system %s", system_id
            )
            return
        key = _normalize_system_id(system_id)
        self._template_paths.setdefault(key, []).extend(str(p) for p in paths)
        logger.info("registered template paths for %s: %s", key, paths)

    def template_paths(self, system_id: str) -> tuple[str, ...]:
        """Module-prefixed template paths registered for a ruleset."""
        raw = self._template_paths.get(_normalize_system_id(system_id), [])
        return tuple(f"{_TEMPLATE_ROOT}/{path.lstrip('/')}" for path in raw)

    def load_system_templates(
        self, system_id: str, loader: Callable[[tuple[str, ...]], object]
    ) -> tuple[str, ...]:
        """Hand the registered templates for system_id to the host's loader."""
        paths = self.template_paths(system_id)
        if not paths:
            logger.info(
                "no templates registered for system %s; adapters may register them later",
                system_id,
            )
            return ()
        loader(paths)
        logger.info("loaded system-specific templates for %s", system_id)
        return paths

    # ─── Built-in discovery ───────────────────────────────────────────

    def record_load_error(self, package_name: str, message: str) -> None:
        self._load_errors[package_name] = message

    def load_errors(self) -> Mapping[str, str]:
        return dict(self._load_errors)


def _discover_handler_package_names() -> tuple[str, ...]:
    root = Path(__file__).resolve().parent
    # // [LAW:dataflow-not-control-flow] Discovery is deterministic from package layout.
    return tuple(
        sorted(
            entry.name
            for entry in root.iterdir()
            if entry.is_dir()
            and not entry.name.startswith("_")
            and (entry / "plugin.py").exists()
        )
    )


def _load_handler_from_package(registry: SystemHandlerRegistry, package_name: str) -> None:
    module_name = f"inspect_statblock.systems.{package_name}.plugin"
    try:
        module = importlib.import_module(module_name)
    except Exception as e:
        registry.record_load_error(package_name, f"import failed: {e}")
        return

    create_plugin = getattr(module, "create_plugin", None)
    if create_plugin is None or not callable(create_plugin):
        registry.record_load_error(package_name, "missing required create_plugin() factory")
        return
    try:
        handler = create_plugin()
        system_id = _normalize_system_id(handler.system_id)
    except Exception as e:
        registry.record_load_error(package_name, f"factory failed: {e}")
        return
    if not system_id:
        registry.record_load_error(package_name, "invalid empty system_id")
        return
    if registry.get_handler(system_id) is not None:
        registry.record_load_error(package_name, f"duplicate system_id '{system_id}'")
        return
    registry.register(system_id, handler)


def discover_builtin_handlers(registry: SystemHandlerRegistry) -> tuple[str, ...]:
    """Register every bundled handler package. Returns the system ids added.

    // [LAW:single-enforcer] Built-in handler loading/validation happens only here.
    """
    before = set(registry.system_ids())
    for package_name in _discover_handler_package_names():
        _load_handler_from_package(registry, package_name)
    return tuple(sid for sid in registry.system_ids() if sid not in before)
