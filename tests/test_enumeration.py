"""Tests for capability-aware key enumeration and its fallbacks."""

import asyncio
import logging

from inspect_statblock.core.sids import DefenseBlock, DefenseCategory, Header, StatblockData, Tag
from inspect_statblock.host.entities import ActiveEffect
from inspect_statblock.systems.plugin_api import SectionDefinition, probe_capabilities
import inspect_statblock.visibility.enumeration as enumeration
from tests.harness import make_actor, make_item


class MinimalHandler:
    """Only data and section definitions; no key enumeration of its own."""

    system_id = "mini"

    async def get_standardized_actor_data(self, actor, token, hidden_flags, viewer_is_privileged):
        return None

    def get_system_section_definitions(self):
        return {
            "header-name": SectionDefinition("header-name", "single", "header-name", "mini-name"),
            "abilities": SectionDefinition("abilities", "group", "ability-", "mini-abilities"),
            "skills": SectionDefinition("skills", "group", "skill-", "mini-skills"),
        }

    def get_default_ability_keys(self):
        return ["str", "dex"]


class SyncFeaturesHandler(MinimalHandler):
    def get_in_section_item_keys(self, section_id, actor):
        return ["feature-f1"] if section_id == "section-passive-features" else []


def _sids_with_tags():
    return StatblockData(
        system_id="mini",
        header=Header(name="X"),
        defenses=DefenseBlock(items=(
            DefenseCategory(
                id="def-resistances",
                label="Resistances",
                tags=(Tag(label="Fire", element_key="def-tag-resistances-fire"),),
            ),
        )),
    )


def test_fallback_unions_definitions_effects_and_sids_tags(caplog):
    handler = MinimalHandler()
    actor = make_actor(effects=[ActiveEffect("e1", "Bless")])
    with caplog.at_level(logging.WARNING, logger="inspect_statblock.visibility.reconciler"):
        keys = asyncio.run(
            enumeration.enumerate_toggleable_keys(
                handler, probe_capabilities(handler), actor, _sids_with_tags()
            )
        )
    assert keys == [
        "header-name",
        "ability-str",
        "ability-dex",
        "effect-e1",
        "def-tag-resistances-fire",
    ]
    assert "cannot expand group section skills" in caplog.text


def test_fallback_accepts_sync_item_key_method():
    handler = SyncFeaturesHandler()
    actor = make_actor(items=[make_item("f1", "Darkvision")])
    keys = asyncio.run(
        enumeration.enumerate_toggleable_keys(handler, probe_capabilities(handler), actor, None)
    )
    assert "feature-f1" in keys


def test_active_effects_section_falls_back_to_generator():
    handler = MinimalHandler()
    actor = make_actor(effects=[ActiveEffect("e1", "Bless"), ActiveEffect("e2", "Off", disabled=True)])
    keys = asyncio.run(
        enumeration.in_section_item_keys(
            handler, probe_capabilities(handler), "section-active-effects", actor
        )
    )
    assert keys == ["effect-e1"]


def test_other_sections_without_capability_are_empty(caplog):
    handler = MinimalHandler()
    keys = asyncio.run(
        enumeration.in_section_item_keys(
            handler, probe_capabilities(handler), "section-passive-features", make_actor()
        )
    )
    assert keys == []
    assert "get_in_section_item_keys" in caplog.text


def test_failing_definitions_degrade_to_empty(caplog):
    class Broken(MinimalHandler):
        def get_system_section_definitions(self):
            raise RuntimeError("boom")

    handler = Broken()
    assert enumeration.section_definitions(handler, probe_capabilities(handler)) == {}
    assert "get_system_section_definitions failed" in caplog.text


def test_no_handler_or_actor_enumerates_nothing():
    handler = MinimalHandler()
    caps = probe_capabilities(handler)
    assert asyncio.run(enumeration.enumerate_toggleable_keys(None, caps, make_actor(), None)) == []
    assert asyncio.run(enumeration.enumerate_toggleable_keys(handler, caps, None, None)) == []
