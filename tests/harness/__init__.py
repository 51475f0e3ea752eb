"""Test harness for inspect-statblock.

Re-exports the builders for convenient imports:
    from tests.harness import make_actor, make_world, place_token, ...
"""

from tests.harness.builders import (
    hidden_flags,
    make_actor,
    make_item,
    make_parity_actor,
    make_world,
    place_token,
)

__all__ = [
    "hidden_flags",
    "make_actor",
    "make_item",
    "make_parity_actor",
    "make_world",
    "place_token",
]
