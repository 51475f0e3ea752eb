"""End-to-end tests for the inspect-statblock CLI."""

import json

import pytest

import inspect_statblock.cli
from inspect_statblock.host.world_file import save_world
from tests.harness import hidden_flags, make_parity_actor, make_world, place_token


@pytest.fixture
def world_path(tmp_path, tmp_settings, monkeypatch):
    # Logging setup would detach the package logger from caplog for later tests
    monkeypatch.setattr("inspect_statblock.io.logging_setup.configure", lambda *a, **k: None)
    actor = make_parity_actor()
    world = make_world(actor)
    place_token(world, "t1", actor, name="Subject")
    path = tmp_path / "world.json"
    save_world(world, path)
    return path


def _flags(path):
    data = json.loads(path.read_text())
    actor = data["actors"][0]
    return actor["flags"].get("inspect-statblock", {}).get("hiddenElements", {})


def test_render_prints_title_and_keys(world_path, capsys):
    assert inspect_statblock.cli.main([str(world_path), "--token", "t1"]) == 0
    out = capsys.readouterr().out
    assert "Subject" in out
    assert "[effect-e1]" in out


def test_toggle_is_saved(world_path, capsys):
    code = inspect_statblock.cli.main(
        [str(world_path), "--token", "t1", "--toggle", "effect-e1", "--toggle", "def-resistances"]
    )
    assert code == 0
    assert _flags(world_path) == {
        "effect-e1": True,
        "def-tag-resistances-cold": True,
        "def-tag-resistances-fire": True,
        "def-tag-resistances-radiantdamage": True,
    }


def test_hide_all_then_player_view_is_redacted(world_path, capsys):
    assert inspect_statblock.cli.main([str(world_path), "--token", "t1", "--hide-all"]) == 0
    flags = _flags(world_path)
    assert flags["header-name"] is True and all(flags.values())
    capsys.readouterr()

    assert inspect_statblock.cli.main([str(world_path), "--token", "t1", "--player", "--no-keys"]) == 0
    out = capsys.readouterr().out
    assert "Subject" not in out
    assert "Bless" not in out
    assert "??" in out


def test_player_cannot_change_flags(world_path, capsys):
    before = world_path.read_text()
    code = inspect_statblock.cli.main(
        [str(world_path), "--token", "t1", "--player", "--toggle", "effect-e1"]
    )
    assert code == 0
    assert "privileged viewer" in capsys.readouterr().out
    assert world_path.read_text() == before


def test_init_seeds_flags_once(world_path, capsys):
    assert inspect_statblock.cli.main([str(world_path), "--token", "t1", "--init"]) == 0
    seeded = _flags(world_path)
    assert seeded["header-name"] is False
    assert "effect-e1" not in seeded

    data = json.loads(world_path.read_text())
    data["actors"][0]["flags"] = hidden_flags({"ability-str": True})
    world_path.write_text(json.dumps(data))
    assert inspect_statblock.cli.main([str(world_path), "--token", "t1", "--init"]) == 0
    assert _flags(world_path) == {"ability-str": True}


def test_unknown_token(world_path, capsys):
    assert inspect_statblock.cli.main([str(world_path), "--token", "nope"]) == 2
    assert "Unknown token" in capsys.readouterr().out


def test_missing_world_file(tmp_path, tmp_settings, monkeypatch, capsys):
    monkeypatch.setattr("inspect_statblock.io.logging_setup.configure", lambda *a, **k: None)
    assert inspect_statblock.cli.main([str(tmp_path / "absent.json"), "--token", "t1"]) == 2
    assert "Could not load world file" in capsys.readouterr().out


def test_list_systems(world_path, capsys):
    assert inspect_statblock.cli.main([str(world_path), "--list-systems"]) == 0
    assert "dnd5e" in capsys.readouterr().out.split()


def test_token_required_without_list_systems(world_path):
    with pytest.raises(SystemExit):
        inspect_statblock.cli.main([str(world_path)])


def test_bulk_flags_are_exclusive(world_path):
    with pytest.raises(SystemExit):
        inspect_statblock.cli.main([str(world_path), "--token", "t1", "--hide-all", "--show-all"])


def test_per_token_storage_keeps_unlinked_tokens_apart(tmp_path, tmp_settings, monkeypatch, capsys):
    monkeypatch.setattr("inspect_statblock.io.logging_setup.configure", lambda *a, **k: None)
    base = make_parity_actor()
    world = make_world(base)
    place_token(world, "ta", base, name="Goblin A", actor_link=False)
    place_token(world, "tb", base, name="Goblin B", actor_link=False)
    path = tmp_path / "world.json"
    save_world(world, path)

    args = ["--storage-mode", "per-token", "--toggle", "ability-str"]
    assert inspect_statblock.cli.main([str(path), "--token", "ta", *args]) == 0

    data = json.loads(path.read_text())
    tokens = {t["id"]: t for t in data["tokens"]}
    assert tokens["ta"]["actor_flags"] == hidden_flags({"ability-str": True})
    assert tokens["tb"]["actor_flags"] == {}
    assert _flags(path) == {}
