"""World snapshot file I/O (actors, tokens, flags) as JSON.

Shape:
    {"system_id": "dnd5e",
     "actors": [{"id", "name", "system_id", "system", "items", "effects", "flags"}],
     "tokens": [{"id", "name", "actor_id", "actor_link", "actor_flags"?}]}

Unlinked tokens carry their synthetic actor's flags as "actor_flags"; the
rest of the synthetic actor is rebuilt from the base on load.

Sets found in actor data (trait values) are written as sorted lists.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from inspect_statblock.host.entities import ActiveEffect, Actor, Item, Token
from inspect_statblock.host.world import World

logger = logging.getLogger(__name__)


def _json_default(value):
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def actor_from_dict(data: dict) -> Actor:
    return Actor(
        id=str(data["id"]),
        name=str(data.get("name", "")),
        system_id=str(data.get("system_id", "")),
        system=dict(data.get("system") or {}),
        items=[
            Item(
                id=str(item["id"]),
                name=str(item.get("name", "")),
                type=str(item.get("type", "feat")),
                system=dict(item.get("system") or {}),
            )
            for item in data.get("items") or []
        ],
        effects=[
            ActiveEffect(
                id=str(effect["id"]),
                name=str(effect.get("name", "")),
                disabled=bool(effect.get("disabled", False)),
            )
            for effect in data.get("effects") or []
        ],
        flags=dict(data.get("flags") or {}),
    )


def actor_to_dict(actor: Actor) -> dict:
    return {
        "id": actor.id,
        "name": actor.name,
        "system_id": actor.system_id,
        "system": actor.system,
        "items": [
            {"id": i.id, "name": i.name, "type": i.type, "system": i.system} for i in actor.items
        ],
        "effects": [
            {"id": e.id, "name": e.name, "disabled": e.disabled} for e in actor.effects
        ],
        "flags": actor.flags,
    }


def token_to_dict(token: Token) -> dict:
    data = {
        "id": token.id,
        "name": token.name,
        "actor_id": token.actor_id,
        "actor_link": token.actor_link,
    }
    if not token.actor_link and token.actor is not None and token.actor.id != token.actor_id:
        data["actor_flags"] = token.actor.flags
    return data


def world_from_dict(data: dict, user_id: str = "gm") -> World:
    world = World(system_id=str(data.get("system_id") or "dnd5e"), user_id=user_id)
    for raw in data.get("actors") or []:
        world.add_actor(actor_from_dict(raw))
    for raw in data.get("tokens") or []:
        token = world.add_token(
            Token(
                id=str(raw["id"]),
                name=str(raw.get("name", "")),
                actor_id=raw.get("actor_id"),
                actor_link=bool(raw.get("actor_link", False)),
            )
        )
        if "actor_flags" in raw and token.actor is not None and not token.actor_link:
            token.actor.flags = dict(raw["actor_flags"] or {})
    return world


def world_to_dict(world: World) -> dict:
    return {
        "system_id": world.system_id,
        "actors": [actor_to_dict(actor) for actor in world.actors],
        "tokens": [token_to_dict(token) for token in world.tokens],
    }


def load_world(path: Path, user_id: str = "gm") -> World:
    """Load a world file. Missing or malformed files raise; there is no empty default."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"world file {path} must contain a JSON object")
    world = world_from_dict(data, user_id=user_id)
    logger.info("loaded world %s: %d actors, %d tokens", path, len(world.actors), len(world.tokens))
    return world


def save_world(world: World, path: Path) -> None:
    """Atomic write: temp file in the same directory, then rename."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(world_to_dict(world), f, indent=2, default=_json_default)
            f.write("\n")
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    logger.info("saved world %s", path)
