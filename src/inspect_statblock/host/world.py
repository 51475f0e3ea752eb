"""World: entity lookup, active ruleset, and the actor update stream.

// [LAW:one-source-of-truth] World owns the live Actor/Token instances.
// [LAW:single-enforcer] actor_updates is the single change-notification stream;
//   every Actor registered here publishes through _dispatch_update.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from snarfx import EventStream

from inspect_statblock.host.entities import Actor, Token

logger = logging.getLogger(__name__)

PreCreateTokenHook = Callable[[Token], Awaitable[None]]


def synthetic_actor_id(base_id: str, token_id: str) -> str:
    return f"{base_id}.{token_id}"


@dataclass(frozen=True)
class ActorUpdate:
    """One change notification: the actor and the diff of changed top-level keys."""

    actor: Actor
    diff: dict = field(default_factory=dict)
    user_id: str = ""


class World:
    """Live game world: actors, tokens, and the active ruleset id."""

    def __init__(self, system_id: str = "dnd5e", user_id: str = "gm"):
        self.system_id = system_id
        self.user_id = user_id
        self._actors: dict[str, Actor] = {}
        self._tokens: dict[str, Token] = {}
        self._pre_create_token_hooks: list[PreCreateTokenHook] = []
        self.actor_updates: EventStream = EventStream()

    # ─── Lookup ───────────────────────────────────────────────────────

    def get_actor(self, actor_id: str | None) -> Actor | None:
        if not actor_id:
            return None
        return self._actors.get(actor_id)

    def get_token(self, token_id: str | None) -> Token | None:
        if not token_id:
            return None
        return self._tokens.get(token_id)

    @property
    def actors(self) -> tuple[Actor, ...]:
        return tuple(self._actors.values())

    @property
    def tokens(self) -> tuple[Token, ...]:
        return tuple(self._tokens.values())

    def active_system_id(self, actor: Actor | None = None) -> str:
        """Ruleset id for an actor, falling back to the world's active ruleset."""
        if actor is not None and actor.system_id:
            return actor.system_id
        return self.system_id

    # ─── Registration ─────────────────────────────────────────────────

    def add_actor(self, actor: Actor) -> Actor:
        self._actors[actor.id] = actor
        actor.on_update = self._dispatch_update
        return actor

    def add_token(self, token: Token) -> Token:
        """Register a token without running pre-create hooks (e.g. when loading).

        A linked token displays its base actor. An unlinked one gets its own
        synthetic instance, copied from the base and keyed by token id.
        """
        if token.actor is None and token.actor_id:
            base = self._actors.get(token.actor_id)
            if base is not None and not token.actor_link:
                token.actor = base.instance_copy(synthetic_actor_id(base.id, token.id))
            else:
                token.actor = base
        if token.actor is not None and token.actor.on_update is None:
            token.actor.on_update = self._dispatch_update
        self._tokens[token.id] = token
        return token

    def register_pre_create_token(self, hook: PreCreateTokenHook) -> Callable[[], None]:
        """Register an async hook awaited before each new token is placed.

        Returns a disposer that unregisters the hook.
        """
        self._pre_create_token_hooks.append(hook)

        def _dispose() -> None:
            if hook in self._pre_create_token_hooks:
                self._pre_create_token_hooks.remove(hook)

        return _dispose

    async def create_token(self, token: Token) -> Token:
        """Place a new token: await every pre-create hook in order, then register.

        A failing hook is logged and does not prevent placement.
        """
        for hook in list(self._pre_create_token_hooks):
            try:
                await hook(token)
            except Exception:
                logger.exception("pre-create-token hook failed for token %s", token.id)
        return self.add_token(token)

    # ─── Notifications ────────────────────────────────────────────────

    def _dispatch_update(self, actor: Actor, diff: dict) -> None:
        self.actor_updates.emit(ActorUpdate(actor=actor, diff=diff, user_id=self.user_id))
