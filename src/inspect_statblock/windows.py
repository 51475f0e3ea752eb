"""Registry of open inspection sessions, keyed by token id.

// [LAW:one-source-of-truth] At most one session per token id exists at a time.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from inspect_statblock.host.entities import Token
from inspect_statblock.host.notifications import Notifier
from inspect_statblock.session import InspectionSession

logger = logging.getLogger(__name__)

SessionFactory = Callable[[Token], InspectionSession]


class InspectionWindows:
    def __init__(self, session_factory: SessionFactory, notifier: Notifier):
        self._session_factory = session_factory
        self._notifier = notifier
        self._sessions: dict[str, InspectionSession] = {}

    @property
    def sessions(self) -> tuple[InspectionSession, ...]:
        return tuple(self._sessions.values())

    def get(self, token_id: str) -> InspectionSession | None:
        return self._sessions.get(token_id)

    async def open_for_token(self, token: Token | None) -> InspectionSession | None:
        """Open the view for token, or close it when one is already open.

        Returns the newly rendered session, or None when it closed one or
        the token has no actor.
        """
        if token is None or token.actor is None:
            self._notifier.warn("Inspect Statblock: Token does not have an actor associated.")
            return None
        existing = self._sessions.pop(token.id, None)
        if existing is not None:
            logger.debug("closing existing session for token %s", token.id)
            existing.close()
            return None
        logger.debug("creating session for token %s", token.id)
        session = self._session_factory(token)
        self._sessions[token.id] = session
        await session.render()
        return session

    async def open_for_hovered_or_targeted(
        self, hovered: Token | None, targets: Sequence[Token] = ()
    ) -> InspectionSession | None:
        """Hovered token first, then the first target."""
        if hovered is not None and hovered.actor is not None:
            return await self.open_for_token(hovered)
        if targets and targets[0].actor is not None:
            return await self.open_for_token(targets[0])
        self._notifier.warn("Inspect Statblock: Hover over or target a token first.")
        return None

    async def open_for_targeted(
        self, targets: Sequence[Token], hovered: Token | None = None
    ) -> InspectionSession | None:
        if not targets:
            return await self.open_for_hovered_or_targeted(hovered, ())
        token = targets[0]
        if token.actor is None:
            self._notifier.warn(
                "Inspect Statblock: The targeted token does not have an actor associated."
            )
            return None
        return await self.open_for_token(token)

    def close_all(self) -> int:
        """Close every open session. Returns how many were closed."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            session.close()
        return len(sessions)

    def on_flag_storage_mode_changed(self, mode: str) -> None:
        logger.info("flag storage mode is now %s; rebinding %d sessions", mode, len(self._sessions))
        for session in self._sessions.values():
            session.rebind_owner(mode)

    async def wait_idle(self) -> None:
        for session in list(self._sessions.values()):
            await session.wait_idle()
