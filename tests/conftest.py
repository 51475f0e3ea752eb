"""Pytest configuration and shared fixtures for inspect-statblock tests."""

import pytest

from inspect_statblock.host.notifications import Notifier
from inspect_statblock.session import InspectionSession
from inspect_statblock.systems.dnd5e.handler import Dnd5eSystemHandler
from inspect_statblock.systems.registry import SystemHandlerRegistry
from inspect_statblock.visibility.store import PER_ACTOR, VisibilityStore


@pytest.fixture
def tmp_settings(tmp_path, monkeypatch):
    """Redirect the settings file to a temp directory."""
    settings_file = tmp_path / "settings.json"
    monkeypatch.setattr(
        "inspect_statblock.io.settings.get_config_path",
        lambda: settings_file,
    )
    monkeypatch.delenv("INSPECT_STATBLOCK_FLAG_STORAGE_MODE", raising=False)
    return settings_file


@pytest.fixture
def registry():
    reg = SystemHandlerRegistry()
    reg.register("dnd5e", Dnd5eSystemHandler())
    return reg


@pytest.fixture
def store():
    return VisibilityStore()


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def make_session(registry, store, notifier):
    """Factory: make_session(world, token, privileged=True, mode="per-actor")."""

    def _make(world, token, privileged=True, mode=PER_ACTOR, reg=None):
        return InspectionSession(
            token.actor if token is not None else None,
            token,
            world=world,
            registry=reg or registry,
            store=store,
            notifier=notifier,
            viewer_is_privileged=privileged,
            flag_storage_mode=mode,
        )

    return _make
