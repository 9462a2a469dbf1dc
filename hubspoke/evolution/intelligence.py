import json
import logging
from typing import Dict, Optional, Sequence

from pydantic import ValidationError

from ..agents.base import MAX_TRUTHS_FOR_CONTEXT, render_learned_context
from ..completion import CompletionClient
from ..errors import EvolutionAnalysisError
from ..models import AgentTruth, KnowledgeMigration
from .analysis import strip_fences

logger = logging.getLogger(__name__)


def build_description_prompt(
    display_name: str,
    behavior: str,
    truths: Sequence[AgentTruth] = (),
    metadata: Optional[Dict[str, str]] = None,
    limit: int = MAX_TRUTHS_FOR_CONTEXT,
) -> str:
    traits = "\n".join(f"{k.upper()}: {v}" for k, v in (metadata or {}).items())
    learned = render_learned_context(truths, limit)
    lines = [
        "Based on the following agent name and behavior, write a concise one-sentence functional description for a registry.",
        "",
        f"NAME: {display_name}",
    ]
    if traits:
        lines.append(f"TRAITS:\n{traits}")
    lines.append(f"BEHAVIOR: {behavior}")
    if learned:
        lines.append(f"LEARNED TRUTHS:\n{learned}")
    lines.extend(["", "Output only the description string."])
    return "\n".join(lines)


async def generate_description(
    completion: CompletionClient,
    agent_id: str,
    display_name: str,
    behavior: str,
    truths: Sequence[AgentTruth] = (),
    metadata: Optional[Dict[str, str]] = None,
    model: Optional[str] = None,
    limit: int = MAX_TRUTHS_FOR_CONTEXT,
) -> str:
    """One-sentence registry description inferred from behavior and truths."""
    prompt = build_description_prompt(display_name, behavior, truths, metadata, limit)
    try:
        text = await completion.execute(prompt, model=model)
    except Exception as e:
        raise EvolutionAnalysisError(f"Description generation failed for '{agent_id}': {e}", agent_id) from e
    return text.strip()


def build_migration_instruction(new_behavior: str, truths: Sequence[AgentTruth]) -> str:
    existing = "\n".join(f"- {t.text} (Weight: {t.weight})" for t in truths)
    return f"""
You are a Knowledge Migration Engine.
An AI agent's core instructions (Behavior) are being changed.
Review its existing "Rooted Truths" (Memory) and decide which ones are still valid under the new rules.

NEW BEHAVIOR:
{new_behavior}

EXISTING TRUTHS:
{existing or "No existing truths."}

RULES:
1. PRESERVE: technical facts, project details and historical data MUST be kept.
2. REVISE: if a truth is still valid but its phrasing contradicts the new behavior, rewrite it to be compatible.
3. DISCARD: only when the truth is impossible under the new behavior.

OUTPUT FORMAT (JSON):
{{
  "thoughtProcess": "Brief explanation of what was kept and why.",
  "keptTruths": [
    {{ "text": "The original or refined truth text", "weight": 0.5 }}
  ]
}}
""".strip()


def decode_migration(text: str, agent_id: str) -> KnowledgeMigration:
    cleaned = strip_fences(text)
    try:
        data = json.loads(cleaned)
        if not isinstance(data, dict):
            raise ValueError("migration is not a JSON object")
        return KnowledgeMigration.model_validate({k: v for k, v in data.items() if v is not None})
    except (ValueError, ValidationError) as e:
        raise EvolutionAnalysisError(f"Knowledge migration failed for '{agent_id}': {e}", agent_id) from e


async def migrate_knowledge(
    completion: CompletionClient,
    agent_id: str,
    new_behavior: str,
    truths: Sequence[AgentTruth],
    model: Optional[str] = None,
) -> KnowledgeMigration:
    """Filter ``truths`` down to the ones compatible with ``new_behavior``."""
    if not truths:
        return KnowledgeMigration(thought_process="No truths to migrate.")

    logger.info(f"Migrating {len(truths)} truths for '{agent_id}'")
    try:
        text = await completion.execute(
            "Compare the truths against the new behavior and filter them.",
            model=model,
            system_instruction=build_migration_instruction(new_behavior, truths),
        )
    except Exception as e:
        raise EvolutionAnalysisError(f"Knowledge migration call failed for '{agent_id}': {e}", agent_id) from e
    return decode_migration(text, agent_id)
