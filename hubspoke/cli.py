"""
hubspoke command line.

Commands:
    check                         validate provider config, registry and pending sections
    registry                      list every agent artifact
    new --topic ...               plan a new hub (Architect, Assembler, Persona)
    fill HUB_ID                   write every pending section of a hub
    export HUB_ID                 copy a compiled hub to output/
    agent evolve [TYPE ID|--all]  learn from accumulated feedback
    agent feedback TYPE ID TEXT   record manual feedback for an agent
    agent fork TYPE ID NEW_ID     clone an agent with new behavior or identity
"""

import argparse
import asyncio
import logging
import re
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional

from .core.config import Settings
from .core.context import HubContext
from .core.logging import configure_logging
from .errors import HubSpokeError
from .evolution.engine import EvolutionEngine
from .hubs import COMPILED_FILE, HubState, HubStore
from .models import (
    ArtifactType,
    AssemblerArtifact,
    BriefBaseline,
    ConflictType,
    EvolutionResult,
    FeedbackEntry,
    FeedbackOutcome,
    FeedbackSource,
    Interaction,
    PersonaArtifact,
)
from .registry import load_pool
from .workflows.create_hub import CreateHubAction, CreateHubHooks
from .workflows.fill import FillAction, FillHooks, fill_request_for

logger = logging.getLogger(__name__)


async def ask(question: str) -> str:
    return (await asyncio.to_thread(input, question)).strip()


def review(label: str, render: Callable[[Any], str]) -> Callable[[Any], Awaitable[Interaction]]:
    """Interactive reviewer: Enter proceeds, 's' skips, anything else is feedback."""

    async def interact(response: Any) -> Interaction:
        print(f"\n--- {label} ---\n{render(response)}\n")
        answer = await ask("[Enter] accept, [s] skip logging, or type feedback: ")
        if not answer:
            return Interaction.proceed()
        if answer.lower() == "s":
            return Interaction.skip()
        return Interaction.revise(answer)

    return interact


async def confirm_retry(error: Exception) -> bool:
    print(f"\nError: {error}")
    answer = await ask("Retry? [Y/n]: ")
    return answer.lower() not in ("n", "no")


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def thinking(label: str) -> Callable[..., None]:
    return lambda *ids: print(f"{label} ({', '.join(ids)})...")


async def cmd_check(context: HubContext, args: argparse.Namespace) -> int:
    report = context.settings.validate_provider_config()
    print(f"Provider: {report['provider']}")
    if not report["valid"]:
        print(f"Missing configuration: {', '.join(report['missing'])}")

    pool = await load_pool(context)
    print(
        f"Registry OK: {len(pool.personas)} personas, {len(pool.writers)} writers, "
        f"{len(pool.assemblers)} assemblers"
    )

    store = HubStore(context.workspace)
    for hub_id in await store.list():
        pending = (await store.load(hub_id)).pending_ids()
        if pending:
            print(f"Hub '{hub_id}': {len(pending)} pending section(s): {', '.join(pending)}")
        else:
            print(f"Hub '{hub_id}': complete")
    return 0 if report["valid"] else 1


async def cmd_registry(context: HubContext, args: argparse.Namespace) -> int:
    artifacts = await context.artifacts.list()
    if not artifacts:
        print("No artifacts found under agents/")
        return 0

    for kind in (ArtifactType.persona, ArtifactType.assembler, ArtifactType.writer):
        print(f"\n{kind.value.upper()}S")
        group = [a for a in artifacts if a.type == kind.value]
        if not group:
            print("  (none)")
        for artifact in group:
            print(f"  - {artifact.name} [{artifact.id}]: {artifact.description or 'No description'}")
            if isinstance(artifact, PersonaArtifact):
                print(f"    Tone: {artifact.tone} | Language: {artifact.language} | Accent: {artifact.accent}")
            elif isinstance(artifact, AssemblerArtifact):
                print(f"    Writers: {', '.join(artifact.writer_ids)}")

    print(f"\nTotal artifacts: {len(artifacts)}")
    return 0


async def cmd_new(context: HubContext, args: argparse.Namespace) -> int:
    pool = await load_pool(context)
    hooks = CreateHubHooks(on_retry=confirm_retry)
    if not args.yes:
        hooks = CreateHubHooks(
            on_architecting=thinking("Architect is planning"),
            on_architect=review("Architect", lambda r: f"{r.message}\n\n{r.brief.model_dump_json(indent=2)}"),
            on_assembling=thinking("Assembler is outlining"),
            on_assemble=review(
                "Blueprint",
                lambda b: "\n".join(f"{i}. {c.header} [{c.writer_id}]" for i, c in enumerate(b.components, 1)),
            ),
            on_writing=thinking("Writer is drafting"),
            on_write=review("Draft", lambda r: r.content),
            on_rephrasing=thinking("Persona is rephrasing"),
            on_rephrase=review("Voiced", lambda r: r.content),
            on_retry=confirm_retry,
        )

    baseline = BriefBaseline(
        topic=args.topic,
        goal=args.goal,
        audience=args.audience,
        language=args.language,
    )
    result = await CreateHubAction(context, pool, hooks=hooks).execute(baseline)

    state = HubState.new(result.brief, result.blueprint, result.title, result.description)
    path = await HubStore(context.workspace).save(state)
    print(f"Hub '{state.hub_id}' ({state.title}) created with {len(state.blueprint.components)} sections at {path}")
    return 0


async def cmd_fill(context: HubContext, args: argparse.Namespace) -> int:
    store = HubStore(context.workspace)
    state = await store.load(args.hub_id)
    pool = await load_pool(context)

    hooks = FillHooks(on_retry=confirm_retry)
    if not args.yes:
        hooks = FillHooks(
            on_writing=thinking("Writing"),
            on_write=review("Draft", lambda r: r.content),
            on_rephrasing=thinking("Rephrasing"),
            on_rephrase=review("Voiced", lambda r: r.content),
            on_retry=confirm_retry,
        )

    async def persist(section_id: str, body: str) -> None:
        state.sections[section_id] = body
        await store.save(state)

    request = fill_request_for(state, on_section_filled=persist)
    result = await FillAction(context, pool, state.brief.persona_id, hooks).execute(request)
    print(f"Filled {len(result.filled)} section(s) of '{state.hub_id}'")
    return 0


async def cmd_export(context: HubContext, args: argparse.Namespace) -> int:
    store = HubStore(context.workspace)
    source = store.path_for(args.hub_id) / COMPILED_FILE
    if not source.exists():
        print(f"No compiled output found for '{args.hub_id}'. Run 'hubspoke fill' first.")
        return 1

    target = context.workspace / "output" / f"{args.hub_id}.md"
    if target.exists() and not args.force:
        answer = await ask(f"{target.name} already exists in output/. Overwrite? [y/N]: ")
        if answer.lower() not in ("y", "yes"):
            print("Export cancelled")
            return 0

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(source.read_text(encoding="utf-8"), encoding="utf-8")
    print(f"Exported '{args.hub_id}' to {target}")
    return 0


def print_evolution(result: EvolutionResult) -> None:
    print(f"\n{result.agent_type.value} '{result.agent_id}': {result.analysis.thought_process}")
    for label, texts in (
        ("+", result.added_truths),
        ("^", result.strengthened_truths),
        ("v", result.weakened_truths),
    ):
        for text in texts:
            print(f"  {label} {text}")
    if result.applied:
        print(f"  description: {result.new_description}")


async def resolve_hard_conflict(engine: EvolutionEngine, result: EvolutionResult, choice: Optional[str]) -> None:
    analysis = result.analysis
    print(f"\nHard conflict for '{result.agent_id}'")
    if analysis.violated_metadata_field:
        print(f"  feedback contradicts {analysis.violated_metadata_field} -> {analysis.new_metadata_value}")
    elif analysis.violated_truth:
        print(f"  feedback contradicts truth: {analysis.violated_truth}")

    interactive = choice is None
    if interactive:
        choice = (await ask("[f]ork, [o]verwrite, [d]iscard feedback or [s]kip: ")).lower()[:1]

    if choice == "f":
        new_id = slugify(analysis.suggested_fork_name or f"{result.agent_id} fork")
        if interactive:
            new_id = (await ask(f"New agent id [{new_id}]: ")) or new_id
        child = await engine.fork_from_conflict(result.agent_type, result.agent_id, new_id, analysis)
        print(f"  forked into '{child.id}'")
    elif choice == "o":
        await engine.force_update(result.agent_type, result.agent_id, analysis)
        print("  original agent updated")
    elif choice == "d":
        await engine.discard_feedback(result.agent_type, result.agent_id)
        print("  feedback discarded")
    else:
        print("  skipped, feedback kept for the next cycle")


async def cmd_agent_evolve(context: HubContext, args: argparse.Namespace) -> int:
    engine = EvolutionEngine(context)
    if args.all:
        targets = await engine.pending_targets()
        if not targets:
            print("No agents with pending feedback")
            return 0
    elif args.type and args.id:
        targets = [(ArtifactType(args.type), args.id)]
    else:
        print("Provide TYPE and ID, or --all")
        return 2

    results = await engine.evolve_many(targets, skip_errors=args.all)
    for result in results:
        print_evolution(result)
        if result.conflict_type == ConflictType.hard:
            await resolve_hard_conflict(engine, result, args.resolve)
    return 0


async def cmd_agent_feedback(context: HubContext, args: argparse.Namespace) -> int:
    agent_type = ArtifactType(args.type)
    if await context.artifacts.get(agent_type, args.id) is None:
        print(f"Agent {agent_type.value} '{args.id}' not found")
        return 1
    await context.feedback.append(
        agent_type,
        args.id,
        FeedbackEntry(source=FeedbackSource.manual, outcome=FeedbackOutcome.feedback, text=args.text),
    )
    print(f"Feedback recorded for '{args.id}'")
    return 0


async def cmd_agent_fork(context: HubContext, args: argparse.Namespace) -> int:
    behavior = Path(args.behavior_file).read_text(encoding="utf-8") if args.behavior_file else None
    metadata = {
        key: value
        for key, value in (("tone", args.tone), ("language", args.language), ("accent", args.accent))
        if value is not None
    }

    child = await EvolutionEngine(context).fork_from_manual_change(
        ArtifactType(args.type),
        args.id,
        args.new_id,
        new_display_name=args.name,
        new_behavior=behavior,
        new_metadata=metadata,
    )
    print(f"Cloned '{args.id}' into '{child.id}' with {len(child.truths)} truth(s): {child.description}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hubspoke", description="Hub and spoke content pipeline")
    parser.add_argument("--workspace", help="Workspace root (defaults to HUB_WORKSPACE_DIR)")
    subparsers = parser.add_subparsers(dest="command")

    check = subparsers.add_parser("check", help="Validate configuration and registry")
    check.set_defaults(handler=cmd_check)

    registry = subparsers.add_parser("registry", help="List every agent artifact")
    registry.set_defaults(handler=cmd_registry)

    new = subparsers.add_parser("new", help="Plan a new hub")
    new.add_argument("--topic", required=True)
    new.add_argument("--goal", default="Master the basics")
    new.add_argument("--audience", default="Intermediate Developers")
    new.add_argument("--language", default="English")
    new.add_argument("-y", "--yes", action="store_true", help="Accept every proposal without review")
    new.set_defaults(handler=cmd_new)

    fill = subparsers.add_parser("fill", help="Write pending sections of a hub")
    fill.add_argument("hub_id")
    fill.add_argument("-y", "--yes", action="store_true", help="Accept every draft without review")
    fill.set_defaults(handler=cmd_fill)

    export = subparsers.add_parser("export", help="Copy a compiled hub to output/")
    export.add_argument("hub_id")
    export.add_argument("-f", "--force", action="store_true", help="Overwrite an existing export")
    export.set_defaults(handler=cmd_export)

    agent = subparsers.add_parser("agent", help="Manage the agent workforce")
    agent_sub = agent.add_subparsers(dest="agent_command")

    evolve = agent_sub.add_parser("evolve", help="Learn from accumulated feedback")
    evolve.add_argument("type", nargs="?", choices=[t.value for t in ArtifactType])
    evolve.add_argument("id", nargs="?")
    evolve.add_argument("-a", "--all", action="store_true", help="Evolve every agent with pending feedback")
    evolve.add_argument(
        "--resolve",
        choices=["f", "o", "d", "s"],
        help="Hard conflict resolution without prompting: fork, overwrite, discard or skip",
    )
    evolve.set_defaults(handler=cmd_agent_evolve)

    feedback = agent_sub.add_parser("feedback", help="Record manual feedback")
    feedback.add_argument("type", choices=[t.value for t in ArtifactType])
    feedback.add_argument("id")
    feedback.add_argument("text")
    feedback.set_defaults(handler=cmd_agent_feedback)

    fork = agent_sub.add_parser("fork", help="Clone an agent with new behavior or identity")
    fork.add_argument("type", choices=[t.value for t in ArtifactType])
    fork.add_argument("id")
    fork.add_argument("new_id")
    fork.add_argument("--name", help="Display name of the clone")
    fork.add_argument("--behavior-file", help="Markdown file with the new behavior")
    fork.add_argument("--tone")
    fork.add_argument("--language")
    fork.add_argument("--accent")
    fork.set_defaults(handler=cmd_agent_fork)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "handler"):
        parser.print_help()
        return 2

    settings = Settings()
    if args.workspace:
        settings = settings.model_copy(update={"HUB_WORKSPACE_DIR": args.workspace})
    configure_logging(settings)
    context = HubContext.from_settings(settings)

    try:
        return asyncio.run(args.handler(context, args))
    except HubSpokeError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
