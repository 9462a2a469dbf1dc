"""
Tests for the hub creation pipeline.
"""

import pytest

from hubspoke.errors import ConfigurationError, RegistryIntegrityError
from hubspoke.models import ArtifactType, BriefBaseline, FeedbackOutcome, Interaction
from hubspoke.registry import initialize_agents
from hubspoke.workflows.create_hub import CreateHubAction, CreateHubHooks

from factories import architect_reply, blueprint_reply, make_artifacts

BLUEPRINT = blueprint_reply([("intro", "Intro", "prose"), ("tasks", "Tasks", "code")])
METADATA = ("draft title", "voiced title", "draft description", "voiced description")


def scripted(*decisions):
    queue = list(decisions)

    async def interact(response):
        return queue.pop(0)

    return interact


def always(decision):
    async def interact(response):
        return decision

    return interact


class TestCreateHubHeadless:
    """Test the pipeline with no review hooks."""

    @pytest.mark.asyncio
    async def test_runs_every_phase(self, seeded, pool, completion):
        completion.queue(architect_reply(), BLUEPRINT, *METADATA)

        result = await CreateHubAction(seeded, pool).execute(BriefBaseline(topic="asyncio"))

        assert result.brief.persona_id == "sage"
        assert [c.id for c in result.blueprint.components] == ["intro", "tasks"]
        assert result.title == "voiced title"
        assert result.description == "voiced description"
        assert len(completion.calls) == 6

    @pytest.mark.asyncio
    async def test_assembler_receives_brief_fields_exactly(self, seeded, pool, completion):
        completion.queue(
            architect_reply(topic="Rust Lifetimes", goal="Stop fighting the borrow checker", audience="C++ veterans"),
            BLUEPRINT,
            *METADATA,
        )

        await CreateHubAction(seeded, pool).execute(BriefBaseline(topic="rust"))

        assembler_prompt = completion.calls[1]["prompt"]
        assert "Topic: Rust Lifetimes\n" in assembler_prompt
        assert "Goal: Stop fighting the borrow checker\n" in assembler_prompt
        assert "Audience: C++ veterans\n" in assembler_prompt

    @pytest.mark.asyncio
    async def test_only_allowed_writers_reach_assembler(self, seeded, pool, completion):
        completion.queue(
            architect_reply(writers="prose"),
            blueprint_reply([("intro", "Intro", "prose")]),
            *METADATA,
        )

        await CreateHubAction(seeded, pool).execute(BriefBaseline(topic="t"))

        assembler_prompt = completion.calls[1]["prompt"]
        assert "- prose:" in assembler_prompt
        assert "- code:" not in assembler_prompt

    @pytest.mark.asyncio
    async def test_metadata_passes_are_drafted_then_voiced(self, seeded, pool, completion):
        completion.queue(architect_reply(), BLUEPRINT, *METADATA)

        await CreateHubAction(seeded, pool).execute(BriefBaseline(topic="t"))

        write_title, style_title, write_description, style_description = completion.calls[2:]
        assert "Intent: Generate a short technical title for a hub about Python AsyncIO." in write_title["prompt"]
        assert "Progress: Start" in write_title["prompt"]
        assert style_title["prompt"] == "Content: draft title"
        assert "Write a one-sentence technical summary" in write_description["prompt"]
        assert "Progress: Conclusion" in write_description["prompt"]
        assert style_description["prompt"] == "Content: draft description"

    @pytest.mark.asyncio
    async def test_metadata_writers_default_to_first_allowed(self, seeded, pool, completion):
        completion.queue(architect_reply(writers="code,prose"), BLUEPRINT, *METADATA)

        await CreateHubAction(seeded, pool).execute(BriefBaseline(topic="t"))

        assert "Write runnable code." in completion.calls[2]["system_instruction"]
        assert "Write runnable code." in completion.calls[4]["system_instruction"]

    @pytest.mark.asyncio
    async def test_brief_picks_metadata_writers(self, seeded, pool, completion):
        completion.queue(
            architect_reply(title_writer="code", description_writer="prose"),
            BLUEPRINT,
            *METADATA,
        )

        await CreateHubAction(seeded, pool).execute(BriefBaseline(topic="t"))

        assert "Write runnable code." in completion.calls[2]["system_instruction"]
        assert "Write flowing prose." in completion.calls[4]["system_instruction"]

    @pytest.mark.asyncio
    async def test_on_writing_names_the_metadata_pass(self, seeded, pool, completion):
        completion.queue(architect_reply(), BLUEPRINT, *METADATA)
        seen = []

        hooks = CreateHubHooks(on_writing=lambda section, agent: seen.append((section, agent)))
        await CreateHubAction(seeded, pool, hooks=hooks).execute(BriefBaseline(topic="t"))

        assert seen == [("hub-title", "prose"), ("hub-description", "prose")]

    @pytest.mark.asyncio
    async def test_manifest_defaults_to_pool(self, seeded, pool, completion):
        completion.queue(architect_reply(), BLUEPRINT, *METADATA)

        await CreateHubAction(seeded, pool).execute(BriefBaseline(topic="t"))

        assert '"supportedWriters"' in completion.calls[0]["system_instruction"]


class TestCreateHubConfiguration:
    """Test fatal configuration errors."""

    @pytest.mark.asyncio
    async def test_unknown_persona_is_never_retried(self, seeded, pool, completion):
        completion.queue(architect_reply(persona_id="pirate"))
        retries = []

        async def on_retry(error):
            retries.append(error)
            return True

        action = CreateHubAction(seeded, pool, hooks=CreateHubHooks(on_retry=on_retry))
        with pytest.raises(ConfigurationError) as exc:
            await action.execute(BriefBaseline(topic="t"))

        assert "pirate" in str(exc.value)
        assert retries == []
        assert len(completion.calls) == 1

    @pytest.mark.asyncio
    async def test_unknown_assembler(self, seeded, pool, completion):
        completion.queue(architect_reply(assembler_id="encyclopedia"))

        with pytest.raises(ConfigurationError):
            await CreateHubAction(seeded, pool).execute(BriefBaseline(topic="t"))

    @pytest.mark.asyncio
    async def test_no_allowed_writer_loaded(self, seeded, pool, completion):
        completion.queue(architect_reply(writers="video,audio"))

        with pytest.raises(ConfigurationError) as exc:
            await CreateHubAction(seeded, pool).execute(BriefBaseline(topic="t"))

        assert exc.value.phase == "assembler"
        assert len(completion.calls) == 1

    @pytest.mark.asyncio
    async def test_title_writer_outside_allowed_set(self, seeded, pool, completion):
        completion.queue(architect_reply(writers="prose", title_writer="code"))

        with pytest.raises(ConfigurationError) as exc:
            await CreateHubAction(seeded, pool).execute(BriefBaseline(topic="t"))

        assert exc.value.phase == "metadata"
        assert len(completion.calls) == 1

    def test_integrity_checked_before_any_phase(self, context, completion):
        pool = initialize_agents(make_artifacts(writer_ids=["prose", "video"]), completion)

        with pytest.raises(RegistryIntegrityError) as exc:
            CreateHubAction(context, pool)

        assert exc.value.missing == {"tutorial": ["video"]}
        assert completion.calls == []

    def test_registry_error_is_configuration_error(self):
        assert issubclass(RegistryIntegrityError, ConfigurationError)


class TestCreateHubFeedback:
    """Test review decisions are logged against the producing agent."""

    @pytest.mark.asyncio
    async def test_feedback_then_proceed_logs_both(self, seeded, pool, completion):
        completion.queue(architect_reply(), BLUEPRINT, BLUEPRINT, *METADATA)
        hooks = CreateHubHooks(
            on_assemble=scripted(Interaction.revise("Add a section on tasks"), Interaction.proceed()),
        )

        await CreateHubAction(seeded, pool, hooks=hooks).execute(BriefBaseline(topic="t"))

        entries = await seeded.feedback.entries(ArtifactType.assembler, "tutorial")
        assert [e.outcome for e in entries] == [FeedbackOutcome.feedback, FeedbackOutcome.accepted]
        assert entries[0].text == "Add a section on tasks"
        assert entries[1].text is None
        assert [e.turn for e in entries] == [0, 1]
        assert entries[0].thread_id == entries[1].thread_id

    @pytest.mark.asyncio
    async def test_metadata_passes_use_their_own_threads(self, seeded, pool, completion):
        completion.queue(architect_reply(), BLUEPRINT, *METADATA)
        hooks = CreateHubHooks(
            on_assemble=always(Interaction.proceed()),
            on_write=always(Interaction.proceed()),
            on_rephrase=always(Interaction.proceed()),
        )

        await CreateHubAction(seeded, pool, hooks=hooks).execute(BriefBaseline(topic="t"))

        assembler = await seeded.feedback.entries(ArtifactType.assembler, "tutorial")
        writer = await seeded.feedback.entries(ArtifactType.writer, "prose")
        persona = await seeded.feedback.entries(ArtifactType.persona, "sage")
        assert [e.thread_id.rsplit("-", 1)[0] for e in writer] == ["write-title", "write-description"]
        assert [e.thread_id.rsplit("-", 1)[0] for e in persona] == ["style-title", "style-description"]
        assert all(e.outcome == FeedbackOutcome.accepted and e.turn == 0 for e in writer + persona)
        threads = {e.thread_id for e in assembler + writer + persona}
        assert len(threads) == 5

    @pytest.mark.asyncio
    async def test_title_feedback_stays_on_title_thread(self, seeded, pool, completion):
        completion.queue(
            architect_reply(), BLUEPRINT, "draft title", "draft title 2", "voiced title", *METADATA[2:]
        )
        hooks = CreateHubHooks(
            on_write=scripted(Interaction.revise("Shorter"), Interaction.proceed(), Interaction.proceed()),
        )

        result = await CreateHubAction(seeded, pool, hooks=hooks).execute(BriefBaseline(topic="t"))

        assert completion.calls[3]["prompt"].endswith("USER FEEDBACK: Shorter")
        assert result.title == "voiced title"
        entries = await seeded.feedback.entries(ArtifactType.writer, "prose")
        assert [(e.outcome, e.turn) for e in entries] == [
            (FeedbackOutcome.feedback, 0),
            (FeedbackOutcome.accepted, 1),
            (FeedbackOutcome.accepted, 0),
        ]
        assert entries[0].thread_id == entries[1].thread_id != entries[2].thread_id

    @pytest.mark.asyncio
    async def test_skip_is_not_logged(self, seeded, pool, completion):
        completion.queue(architect_reply(), BLUEPRINT, *METADATA)
        hooks = CreateHubHooks(
            on_architect=always(Interaction.skip()),
            on_assemble=always(Interaction.skip()),
            on_write=always(Interaction.skip()),
            on_rephrase=always(Interaction.skip()),
        )

        await CreateHubAction(seeded, pool, hooks=hooks).execute(BriefBaseline(topic="t"))

        assert await seeded.feedback.entries(ArtifactType.assembler, "tutorial") == []
        assert await seeded.feedback.entries(ArtifactType.writer, "prose") == []
        assert await seeded.feedback.entries(ArtifactType.persona, "sage") == []

    @pytest.mark.asyncio
    async def test_architect_feedback_refines_brief(self, seeded, pool, completion):
        completion.queue(
            architect_reply(audience="Everyone"),
            architect_reply(audience="Data engineers"),
            BLUEPRINT,
            *METADATA,
        )
        hooks = CreateHubHooks(
            on_architect=scripted(Interaction.revise("Narrow the audience"), Interaction.proceed()),
        )

        result = await CreateHubAction(seeded, pool, hooks=hooks).execute(BriefBaseline(topic="t"))

        assert result.brief.audience == "Data engineers"
        assert completion.calls[1]["prompt"].endswith("USER FEEDBACK: Narrow the audience")
