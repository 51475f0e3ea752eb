"""Settings store schema and reactions.

// [LAW:one-source-of-truth] All known settings and their defaults live in the schema.
// [LAW:single-enforcer] Persistence reaction is the single writer to disk.
"""

import logging
import os

import inspect_statblock.io.settings
import inspect_statblock.visibility.enumeration
import inspect_statblock.visibility.store
from snarfx.hot_reload import HotReloadStore
from snarfx import reaction

logger = logging.getLogger(__name__)

FLAG_STORAGE_MODE = "flagStorageMode"
DEFAULT_VISIBILITY_SETTINGS = "defaultVisibilitySettings"

FLAG_STORAGE_MODE_ENV = "INSPECT_STATBLOCK_FLAG_STORAGE_MODE"

# [LAW:one-source-of-truth] Core (non-handler-specific) settings defaults.
_BASE_SCHEMA: dict[str, object] = {
    FLAG_STORAGE_MODE: inspect_statblock.visibility.store.PER_ACTOR,
    DEFAULT_VISIBILITY_SETTINGS: {},
}


def _handler_visibility_defaults(registry) -> dict[str, bool]:
    """Every registered handler's default-visibility setting key, shown by default."""
    defaults: dict[str, bool] = {}
    if registry is None:
        return defaults
    for system_id in registry.system_ids():
        handler = registry.get_handler(system_id)
        definitions = inspect_statblock.visibility.enumeration.section_definitions(
            handler, registry.capabilities(system_id)
        )
        for definition in definitions.values():
            key = str(definition.default_show_setting_key or "").strip()
            if key:
                defaults.setdefault(key, True)
    return defaults


def build_schema(registry=None) -> dict[str, object]:
    # // [LAW:one-source-of-truth] Effective schema is core defaults + handler section descriptors.
    merged = dict(_BASE_SCHEMA)
    merged[DEFAULT_VISIBILITY_SETTINGS] = _handler_visibility_defaults(registry)
    return merged


# [LAW:one-source-of-truth] All known settings keys and base defaults.
SCHEMA: dict[str, object] = build_schema()


def create(registry=None, initial_overrides: dict | None = None):
    """Create settings store, seeded from disk then environment then overrides."""
    schema = build_schema(registry)
    disk_data = inspect_statblock.io.settings.load_settings()
    # Filter disk data to known keys only
    merged = {k: disk_data.get(k, default) for k, default in schema.items()}

    disk_visibility = disk_data.get(DEFAULT_VISIBILITY_SETTINGS)
    visibility = dict(schema[DEFAULT_VISIBILITY_SETTINGS])
    if isinstance(disk_visibility, dict):
        visibility.update(disk_visibility)
    merged[DEFAULT_VISIBILITY_SETTINGS] = visibility

    env_mode = os.environ.get(FLAG_STORAGE_MODE_ENV)
    if env_mode:
        merged[FLAG_STORAGE_MODE] = env_mode
    if initial_overrides:
        merged.update(initial_overrides)
    merged[FLAG_STORAGE_MODE] = inspect_statblock.visibility.store.normalize_storage_mode(
        merged[FLAG_STORAGE_MODE]
    )
    return HotReloadStore(schema, initial=merged)


def flag_storage_mode(store) -> str:
    return inspect_statblock.visibility.store.normalize_storage_mode(store.get(FLAG_STORAGE_MODE))


def default_visibility_settings(store) -> dict:
    value = store.get(DEFAULT_VISIBILITY_SETTINGS)
    return dict(value) if isinstance(value, dict) else {}


def set_default_visibility(store, setting_key: str, shown: bool) -> None:
    """Replace the visibility defaults with one key changed."""
    updated = default_visibility_settings(store)
    updated[setting_key] = bool(shown)
    store.set(DEFAULT_VISIBILITY_SETTINGS, updated)


def setup_reactions(store, context=None, persist: bool = True):
    """Register all reactions. Returns a list of disposer callables.

    persist=False skips the disk-persistence reaction (tests, dry runs).

    context: dict with live component refs (e.g. "windows" for the open
    inspection sessions, refreshed when the storage mode changes).
    """
    disposers = []

    # Persistence: any setting change writes to disk
    if persist:
        disposers.append(reaction(
            lambda: {k: store.get(k) for k in SCHEMA},
            lambda snapshot: _safe_persist(snapshot),
        ).dispose)

    if context:
        windows = context.get("windows")
        if windows is not None:
            disposers.append(reaction(
                lambda: flag_storage_mode(store),
                lambda mode, w=windows: w.on_flag_storage_mode_changed(mode),
            ).dispose)

    return disposers


def _safe_persist(snapshot: dict) -> None:
    """Write settings to disk. Catches and logs I/O errors."""
    try:
        inspect_statblock.io.settings.merge_settings(snapshot)
    except Exception:
        logger.exception("Failed to persist settings to disk")
