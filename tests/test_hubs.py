"""
Tests for hub state persistence and markdown export.
"""

import pytest

from hubspoke.errors import ConfigurationError
from hubspoke.hubs import HubState, HubStore, compile_markdown, is_pending_section, todo_marker
from hubspoke.models import Blueprint, Brief, Component

BRIEF = Brief(
    topic="Python AsyncIO",
    goal="Learn",
    audience="Devs",
    assembler_id="tutorial",
    persona_id="sage",
    allowed_writer_ids=["prose"],
)
BLUEPRINT = Blueprint(
    hub_id="python-asyncio",
    components=[
        Component(id="intro", header="Intro", intent="Explain intro", writer_id="prose"),
        Component(id="tasks", header="Tasks", intent="Explain tasks", writer_id="prose"),
    ],
)


def test_new_hub_marks_every_section_pending():
    state = HubState.new(BRIEF, BLUEPRINT, description="Welcome.")

    assert state.hub_id == "python-asyncio"
    assert state.pending_ids() == ["intro", "tasks"]
    assert state.sections["intro"] == todo_marker("Explain intro")


def test_pending_predicate():
    assert is_pending_section(todo_marker("anything"))
    assert is_pending_section("> *TODO* rewrite this")
    assert not is_pending_section("Coroutines are functions that can pause.")


def test_missing_section_is_pending():
    state = HubState(hub_id="h", brief=BRIEF, blueprint=BLUEPRINT, sections={"intro": "done"})
    assert state.pending_ids() == ["tasks"]


def test_compile_markdown_orders_sections():
    state = HubState.new(BRIEF, BLUEPRINT, description="Welcome.")
    state.sections["intro"] = "Coroutines pause."

    markdown = compile_markdown(state)

    assert markdown.startswith("# Python AsyncIO\n\nWelcome.\n\n## Intro\n\nCoroutines pause.")
    assert markdown.index("## Intro") < markdown.index("## Tasks")
    assert "> **TODO:** Explain tasks" in markdown


def test_compile_markdown_prefers_voiced_title():
    state = HubState.new(BRIEF, BLUEPRINT, title="Taming the Event Loop", description="A calm tour.")

    assert compile_markdown(state).startswith("# Taming the Event Loop\n\nA calm tour.\n\n## Intro")


class TestHubStore:
    @pytest.mark.asyncio
    async def test_save_and_load(self, workspace):
        store = HubStore(workspace)
        state = HubState.new(BRIEF, BLUEPRINT, description="Welcome.")

        path = await store.save(state)

        assert (path / "hub.json").exists()
        assert (path / "compiled.md").read_text().startswith("# Python AsyncIO")
        loaded = await store.load("python-asyncio")
        assert loaded == state

    @pytest.mark.asyncio
    async def test_list(self, workspace):
        store = HubStore(workspace)
        assert await store.list() == []

        await store.save(HubState.new(BRIEF, BLUEPRINT))

        assert await store.list() == ["python-asyncio"]

    @pytest.mark.asyncio
    async def test_missing_hub(self, workspace):
        with pytest.raises(ConfigurationError) as exc:
            await HubStore(workspace).load("nope")
        assert exc.value.phase == "fill"
