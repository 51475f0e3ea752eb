"""D&D 5e system handler plugin entrypoint."""

from __future__ import annotations

from inspect_statblock.systems.dnd5e.handler import Dnd5eSystemHandler


def create_plugin() -> Dnd5eSystemHandler:
    # // [LAW:locality-or-seam] Factory is the seam used by built-in handler discovery.
    return Dnd5eSystemHandler()
