"""Tests for InspectionWindows: per-token open/close and target selection."""

import asyncio

import pytest

from inspect_statblock.host.entities import Token
from inspect_statblock.visibility.store import PER_ACTOR, PER_TOKEN
from inspect_statblock.windows import InspectionWindows
from tests.harness import make_actor, make_world, place_token


@pytest.fixture
def scene(make_session, notifier):
    base = make_actor("base", "Goblin")
    world = make_world(base)
    token = place_token(world, "t1", base)
    other = place_token(world, "t2", base, name="Goblin 2")
    windows = InspectionWindows(lambda tok: make_session(world, tok, mode=PER_ACTOR), notifier)
    return world, windows, token, other


class TestOpenClose:
    def test_second_open_closes(self, scene):
        _, windows, token, _ = scene

        async def scenario():
            opened = await windows.open_for_token(token)
            closed = await windows.open_for_token(token)
            return opened, closed

        opened, closed = asyncio.run(scenario())
        assert opened.rendered is False  # closed by the second call
        assert opened.closed is True
        assert closed is None
        assert windows.get("t1") is None

    def test_one_session_per_token(self, scene):
        _, windows, token, other = scene

        async def scenario():
            await windows.open_for_token(token)
            await windows.open_for_token(other)

        asyncio.run(scenario())
        assert [s.token_id for s in windows.sessions] == ["t1", "t2"]
        assert all(s.render_count == 1 for s in windows.sessions)

    def test_close_all(self, scene):
        _, windows, token, other = scene

        async def scenario():
            await windows.open_for_token(token)
            await windows.open_for_token(other)

        asyncio.run(scenario())
        sessions = windows.sessions
        assert windows.close_all() == 2
        assert windows.sessions == ()
        assert all(s.closed for s in sessions)

    def test_token_without_actor_warns(self, scene, notifier):
        _, windows, _, _ = scene
        assert asyncio.run(windows.open_for_token(Token(id="m", name="Marker"))) is None
        assert asyncio.run(windows.open_for_token(None)) is None
        assert [n.level for n in notifier.history] == ["warn", "warn"]


class TestTargetSelection:
    def test_hovered_wins_over_targets(self, scene):
        _, windows, token, other = scene
        session = asyncio.run(windows.open_for_hovered_or_targeted(token, [other]))
        assert session.token_id == "t1"

    def test_falls_back_to_first_target(self, scene):
        _, windows, _, other = scene
        session = asyncio.run(windows.open_for_hovered_or_targeted(None, [other]))
        assert session.token_id == "t2"

    def test_nothing_hovered_or_targeted_warns(self, scene, notifier):
        _, windows, _, _ = scene
        assert asyncio.run(windows.open_for_hovered_or_targeted(None, [])) is None
        assert "Hover over or target" in notifier.history[-1].message

    def test_targeted_without_actor_warns(self, scene, notifier):
        _, windows, _, _ = scene
        marker = Token(id="m", name="Marker")
        assert asyncio.run(windows.open_for_targeted([marker])) is None
        assert "targeted token" in notifier.history[-1].message

    def test_no_targets_uses_hovered(self, scene):
        _, windows, token, _ = scene
        session = asyncio.run(windows.open_for_targeted([], hovered=token))
        assert session.token_id == "t1"


def test_storage_mode_change_rebinds_owner(make_session, notifier, store):
    base = make_actor("base", "Goblin")
    copy = make_actor("copy", "Goblin")
    world = make_world(base)
    token = world.add_token(Token(id="t1", name="Goblin", actor_id="base", actor=copy))
    windows = InspectionWindows(lambda tok: make_session(world, tok), notifier)

    async def scenario():
        session = await windows.open_for_token(token)
        assert session.owner is base
        windows.on_flag_storage_mode_changed(PER_TOKEN)
        await windows.wait_idle()
        await session.toggle_visibility("ability-str")
        await windows.wait_idle()
        return session

    session = asyncio.run(scenario())
    assert session.owner is copy
    assert session.render_count == 3
    assert store.read(copy) == {"ability-str": True}
    assert store.read(base) == {}
