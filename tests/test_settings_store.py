"""Tests for settings_store: schema from handler definitions, persistence, mode sync."""

import json
from unittest.mock import MagicMock

import inspect_statblock.app.settings_store as settings_store
import inspect_statblock.io.settings


class TestCreate:
    def test_creates_store_with_schema_defaults(self, tmp_settings):
        store = settings_store.create()
        assert store.get(settings_store.FLAG_STORAGE_MODE) == "per-actor"
        assert store.get(settings_store.DEFAULT_VISIBILITY_SETTINGS) == {}

    def test_handler_settings_default_to_shown(self, tmp_settings, registry):
        store = settings_store.create(registry)
        defaults = settings_store.default_visibility_settings(store)
        assert defaults["dnd5e-showDefault-name"] is True
        assert defaults["dnd5e-showDefault-activeEffectsSection"] is True
        assert all(defaults.values())

    def test_seeds_from_disk(self, tmp_settings, registry):
        tmp_settings.write_text(json.dumps({
            "flagStorageMode": "per-token",
            "defaultVisibilitySettings": {"dnd5e-showDefault-name": False},
            "unknownKey": 1,
        }))
        store = settings_store.create(registry)
        assert settings_store.flag_storage_mode(store) == "per-token"
        defaults = settings_store.default_visibility_settings(store)
        assert defaults["dnd5e-showDefault-name"] is False
        # Keys missing on disk keep handler defaults
        assert defaults["dnd5e-showDefault-hp"] is True

    def test_env_overrides_disk_and_overrides_win(self, tmp_settings, monkeypatch):
        tmp_settings.write_text(json.dumps({"flagStorageMode": "per-actor"}))
        monkeypatch.setenv(settings_store.FLAG_STORAGE_MODE_ENV, "per-token")
        assert settings_store.flag_storage_mode(settings_store.create()) == "per-token"
        store = settings_store.create(initial_overrides={"flagStorageMode": "per-actor"})
        assert settings_store.flag_storage_mode(store) == "per-actor"

    def test_invalid_mode_falls_back(self, tmp_settings):
        store = settings_store.create(initial_overrides={"flagStorageMode": "sideways"})
        assert settings_store.flag_storage_mode(store) == "per-actor"


class TestSetupReactions:
    def test_persistence_reaction(self, tmp_settings, registry):
        store = settings_store.create(registry)
        disposers = settings_store.setup_reactions(store)

        settings_store.set_default_visibility(store, "dnd5e-showDefault-abilities", False)

        data = json.loads(tmp_settings.read_text())
        assert data["defaultVisibilitySettings"]["dnd5e-showDefault-abilities"] is False
        for dispose in disposers:
            dispose()

    def test_disposed_reactions_stop_firing(self, tmp_settings):
        store = settings_store.create()
        windows = MagicMock()
        disposers = settings_store.setup_reactions(store, {"windows": windows}, persist=False)
        assert all(callable(dispose) for dispose in disposers)
        for dispose in disposers:
            dispose()

        store.set(settings_store.FLAG_STORAGE_MODE, "per-token")
        windows.on_flag_storage_mode_changed.assert_not_called()

    def test_persist_false_never_writes(self, tmp_settings):
        store = settings_store.create()
        settings_store.setup_reactions(store, persist=False)
        store.set(settings_store.FLAG_STORAGE_MODE, "per-token")
        assert not tmp_settings.exists()

    def test_storage_mode_change_notifies_windows(self, tmp_settings):
        store = settings_store.create()
        windows = MagicMock()
        settings_store.setup_reactions(store, {"windows": windows}, persist=False)

        store.set(settings_store.FLAG_STORAGE_MODE, "per-token")
        windows.on_flag_storage_mode_changed.assert_called_with("per-token")

    def test_persist_failure_is_logged(self, tmp_settings, monkeypatch, caplog):
        def boom(data):
            raise OSError("read-only")

        monkeypatch.setattr("inspect_statblock.io.settings.save_settings", boom)
        store = settings_store.create()
        settings_store.setup_reactions(store)
        store.set(settings_store.FLAG_STORAGE_MODE, "per-token")
        assert "Failed to persist settings" in caplog.text


class TestSettingsFile:
    def test_merge_keeps_unknown_keys(self, tmp_settings):
        tmp_settings.write_text(json.dumps({"fromNewerVersion": 1}))
        merged = inspect_statblock.io.settings.merge_settings({"flagStorageMode": "per-token"})
        assert merged == {"fromNewerVersion": 1, "flagStorageMode": "per-token"}
        assert json.loads(tmp_settings.read_text()) == merged

    def test_corrupt_or_non_object_file_reads_empty(self, tmp_settings):
        tmp_settings.write_text("{not json")
        assert inspect_statblock.io.settings.load_settings() == {}
        tmp_settings.write_text("[1]")
        assert inspect_statblock.io.settings.load_settings() == {}
