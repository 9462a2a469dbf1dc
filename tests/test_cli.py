import asyncio
import json

import pytest

from hubspoke import cli
from hubspoke.memory.artifacts import WorkspaceArtifactStore

from conftest import FakeCompletionClient
from factories import analysis_reply, architect_reply, blueprint_reply, make_artifacts

METADATA = ("draft title", "voiced title", "draft description", "voiced description")


@pytest.fixture
def cli_workspace(tmp_path, monkeypatch):
    for name in ("GEMINI_API_KEY", "MODEL_PROVIDER", "HUB_WORKSPACE_DIR"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    async def seed():
        store = WorkspaceArtifactStore(tmp_path)
        for artifact in make_artifacts():
            await store.save(artifact)

    asyncio.run(seed())
    return tmp_path


@pytest.fixture
def fake_completion(monkeypatch):
    fake = FakeCompletionClient()
    monkeypatch.setattr("hubspoke.core.context.LiteLLMCompletionClient", lambda settings: fake)
    return fake


def run(workspace, *argv):
    return cli.main(["--workspace", str(workspace), *argv])


def new_hub(workspace, completion):
    completion.queue(
        architect_reply(),
        blueprint_reply([("intro", "Intro", "prose"), ("tasks", "Tasks", "code")]),
        *METADATA,
    )
    assert run(workspace, "new", "--topic", "asyncio", "--yes") == 0


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 2
    assert "usage" in capsys.readouterr().out


def test_check_reports_missing_key(cli_workspace, capsys):
    assert run(cli_workspace, "check") == 1

    out = capsys.readouterr().out
    assert "GEMINI_API_KEY" in out
    assert "1 personas, 2 writers, 1 assemblers" in out


def test_feedback_appends_manual_entry(cli_workspace):
    assert run(cli_workspace, "agent", "feedback", "writer", "prose", "Use more examples") == 0

    path = cli_workspace / "agents" / "writers" / "prose" / "feedback.jsonl"
    entry = json.loads(path.read_text().strip())
    assert entry["source"] == "manual"
    assert entry["text"] == "Use more examples"


def test_feedback_for_unknown_agent(cli_workspace):
    assert run(cli_workspace, "agent", "feedback", "writer", "ghost", "x") == 1


def test_evolve_with_empty_buffer_fails(cli_workspace, fake_completion, capsys):
    assert run(cli_workspace, "agent", "evolve", "writer", "prose") == 1
    assert "No feedback" in capsys.readouterr().err


def test_new_then_fill(cli_workspace, fake_completion):
    fake_completion.queue(
        architect_reply(),
        blueprint_reply([("intro", "Intro", "prose"), ("tasks", "Tasks", "code")]),
        *METADATA,
    )
    assert run(cli_workspace, "new", "--topic", "asyncio", "--yes") == 0

    hub_dir = cli_workspace / "posts" / "python-asyncio"
    created = (hub_dir / "compiled.md").read_text()
    assert created.startswith("# voiced title\n\nvoiced description\n")
    assert "Pending generation" in created

    fake_completion.queue("draft intro", "voiced intro", "draft tasks", "voiced tasks")
    assert run(cli_workspace, "fill", "python-asyncio", "--yes") == 0

    compiled = (hub_dir / "compiled.md").read_text()
    assert "voiced intro" in compiled
    assert "voiced tasks" in compiled
    assert "Pending generation" not in compiled


def test_hard_conflict_fork_without_prompt(cli_workspace, fake_completion):
    run(cli_workspace, "agent", "feedback", "persona", "sage", "You are from Madrid")
    fake_completion.queue(
        analysis_reply(
            [("is from Madrid", "add")],
            conflictType="hard",
            violatedTruth="lives in London",
            suggestedForkName="Madrid Sage",
        ),
        "Paused description.",
        "A mentor from Madrid.",
    )

    assert run(cli_workspace, "agent", "evolve", "persona", "sage", "--resolve", "f") == 0

    child = cli_workspace / "agents" / "personas" / "madrid-sage"
    assert (child / "birth.json").exists()
    assert json.loads((child / "knowledge.json").read_text())["truths"] == []


def test_check_reports_pending_sections(cli_workspace, fake_completion, capsys):
    new_hub(cli_workspace, fake_completion)
    capsys.readouterr()

    run(cli_workspace, "check")

    assert "Hub 'python-asyncio': 2 pending section(s): intro, tasks" in capsys.readouterr().out


def test_registry_lists_artifacts(cli_workspace, capsys):
    assert run(cli_workspace, "registry") == 0

    out = capsys.readouterr().out
    assert "  - The Sage [sage]: Calm mentor voice" in out
    assert "Tone: Calm | Language: English | Accent: British" in out
    assert "Writers: prose, code" in out
    assert "Total artifacts: 4" in out


def test_registry_on_empty_workspace(tmp_path, capsys):
    assert run(tmp_path, "registry") == 0
    assert "No artifacts found" in capsys.readouterr().out


def test_export_copies_compiled_hub(cli_workspace, fake_completion):
    new_hub(cli_workspace, fake_completion)

    assert run(cli_workspace, "export", "python-asyncio") == 0
    target = cli_workspace / "output" / "python-asyncio.md"
    assert target.read_text() == (cli_workspace / "posts" / "python-asyncio" / "compiled.md").read_text()

    target.write_text("stale")
    assert run(cli_workspace, "export", "python-asyncio", "--force") == 0
    assert target.read_text().startswith("# voiced title")


def test_export_declined_overwrite_keeps_file(cli_workspace, fake_completion, monkeypatch, capsys):
    new_hub(cli_workspace, fake_completion)
    target = cli_workspace / "output" / "python-asyncio.md"
    target.parent.mkdir()
    target.write_text("keep me")
    monkeypatch.setattr("builtins.input", lambda prompt: "n")

    assert run(cli_workspace, "export", "python-asyncio") == 0

    assert target.read_text() == "keep me"
    assert "Export cancelled" in capsys.readouterr().out


def test_export_unknown_hub(cli_workspace, capsys):
    assert run(cli_workspace, "export", "ghost") == 1
    assert "No compiled output found for 'ghost'" in capsys.readouterr().out


def test_agent_fork_clones_with_new_behavior(cli_workspace, fake_completion):
    behavior = cli_workspace / "pirate.md"
    behavior.write_text("You speak like a pirate.")
    fake_completion.queue(
        json.dumps({"thoughtProcess": "Location still holds.", "keptTruths": [{"text": "lives in London", "weight": 0.5}]}),
        "A pirate mentor.",
    )

    assert run(
        cli_workspace,
        "agent", "fork", "persona", "sage", "pirate-sage",
        "--name", "Pirate Sage",
        "--behavior-file", str(behavior),
        "--tone", "Boisterous",
    ) == 0

    child = cli_workspace / "agents" / "personas" / "pirate-sage"
    assert (child / "birth.json").exists()
    assert json.loads((child / "knowledge.json").read_text())["truths"] == [{"text": "lives in London", "weight": 0.5}]


def test_agent_fork_into_existing_id_fails(cli_workspace, fake_completion, capsys):
    assert run(cli_workspace, "agent", "fork", "persona", "sage", "sage") == 1
    assert "already exists" in capsys.readouterr().err
