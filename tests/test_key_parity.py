"""The generator path (used before SIDS exists) and the handler's SIDS walk must agree."""

import asyncio

import inspect_statblock.visibility.derivation as derivation
from inspect_statblock.host.entities import ActiveEffect
from inspect_statblock.systems.dnd5e.handler import Dnd5eSystemHandler
from tests.harness import make_actor, make_item, make_parity_actor

_FAMILIES = ("feature-", "active-feature-", "effect-", "def-tag-resistances-")


def _family(keys, prefix):
    return {k for k in keys if k.startswith(prefix)}


def _handler_keys(actor):
    return asyncio.run(Dnd5eSystemHandler().get_all_toggleable_keys(actor, None))


def test_generators_and_handler_enumeration_agree():
    actor = make_parity_actor()
    generated = derivation.generate_instance_keys(actor)
    enumerated = _handler_keys(actor)
    for prefix in _FAMILIES:
        assert _family(generated, prefix) == _family(enumerated, prefix), prefix


def test_parity_fixture_key_sets():
    actor = make_parity_actor()
    generated = set(derivation.generate_instance_keys(actor))
    assert generated == {
        "active-feature-i1",
        "active-feature-i2",
        "feature-i3",
        "effect-e1",
        "effect-e2",
        "def-tag-resistances-cold",
        "def-tag-resistances-fire",
        "def-tag-resistances-radiantdamage",
    }


def test_parity_with_dict_traits_disabled_effects_and_common_actions():
    actor = make_actor(
        traits={
            "di": {"value": {"poison": True, "psychic": False}},
            "ci": {"value": ["charmed"], "custom": "Frightened; ; Prone"},
        },
        items=[
            make_item("dash", "Dash", activities={"x": {}}),
            make_item("sword", "Longsword", item_type="weapon"),
            make_item("f1", "Keen Senses"),
        ],
        effects=[ActiveEffect("e1", "Bless"), ActiveEffect("e2", "Off", disabled=True)],
    )
    generated = derivation.generate_instance_keys(actor)
    enumerated = _handler_keys(actor)
    instance_prefixes = ("feature-", "active-feature-", "effect-", "def-tag-")
    assert {k for k in enumerated if k.startswith(instance_prefixes)} == set(generated)
    assert set(generated) == {
        "def-tag-immunities-poison",
        "def-tag-conditionimmunities-charmed",
        "def-tag-conditionimmunities-frightened",
        "def-tag-conditionimmunities-prone",
        "feature-f1",
        "effect-e1",
    }
