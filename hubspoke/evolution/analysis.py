"""
Feedback analysis and deterministic truth mutation.

The analysis call turns an agent's raw feedback buffer into proposals and a
conflict classification. ``apply_proposals`` is pure: the same truths and
proposals always yield the same result.
"""

import json
import logging
import re
from typing import Iterable, List, Optional, Protocol

from pydantic import ValidationError

from ..completion import CompletionClient
from ..errors import EvolutionAnalysisError
from ..models import (
    AgentTruth,
    Artifact,
    ConflictType,
    EvolutionAnalysis,
    EvolutionProposal,
    PersonaArtifact,
    ProposalAction,
)

logger = logging.getLogger(__name__)

INITIAL_WEIGHT = 0.3
WEIGHT_STEP = 0.2

ANALYSIS_PROMPT = "Analyze the buffer and propose memory updates."

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def strip_fences(text: str) -> str:
    """Drop a surrounding markdown code fence, if any."""
    return _FENCE.sub("", text.strip()).strip()


def _round(weight: float) -> float:
    return round(min(1.0, max(0.0, weight)), 4)


def apply_proposals(truths: Iterable[AgentTruth], proposals: Iterable[EvolutionProposal]) -> List[AgentTruth]:
    """
    Apply proposals to a copy of ``truths``.

    Matching is case-insensitive on the truth text. ``add`` inserts at
    INITIAL_WEIGHT unless the text already exists; ``strengthen`` and
    ``weaken`` move the weight by WEIGHT_STEP within [0, 1] and are ignored
    when nothing matches. Blank proposals are skipped and truths that
    reach 0 are dropped.
    """
    updated = [AgentTruth(text=t.text, weight=t.weight) for t in truths]

    for proposal in proposals:
        key = proposal.text.strip().lower()
        if not key:
            continue
        index = next((i for i, t in enumerate(updated) if t.text.strip().lower() == key), None)

        if index is None:
            if proposal.action == ProposalAction.add:
                updated.append(AgentTruth(text=proposal.text.strip(), weight=INITIAL_WEIGHT))
            continue

        truth = updated[index]
        if proposal.action == ProposalAction.strengthen:
            truth.weight = _round(truth.weight + WEIGHT_STEP)
        elif proposal.action == ProposalAction.weaken:
            truth.weight = _round(truth.weight - WEIGHT_STEP)

    return [t for t in updated if t.weight > 0]


def build_analysis_instruction(artifact: Artifact, feedback_buffer: str) -> str:
    existing = "\n".join(f"- {t.text} (Weight: {t.weight})" for t in artifact.truths)
    metadata = ""
    if isinstance(artifact, PersonaArtifact):
        traits = "\n".join(f"{k.upper()}: {v}" for k, v in artifact.identity_metadata().items())
        metadata = f"\nIDENTITY METADATA:\n{traits}\n"

    return f"""
You are an Evolution Engine for an Adaptive AI Workforce.
Your goal is to extract "Rooted Truths" from user feedback logs to improve agent performance.

AGENT IDENTITY:
Name: {artifact.name}
Core Behavior: {artifact.content}
{metadata}
CURRENT KNOWLEDGE (Memory):
{existing or "No truths rooted yet."}

FEEDBACK BUFFER (JSONL):
{feedback_buffer}

TASK:
1. Identify patterns in user feedback. If a user asks for something repeatedly, it's a new Truth.
2. If a user corrects a previous behavior, the associated Truth should be weakened.
3. Propose changes using three actions:
   - "add": Create a new Truth from a detected pattern.
   - "strengthen": Increase weight for a Truth the user explicitly liked or used.
   - "weaken": Decrease weight for a Truth the user explicitly corrected or disliked.
4. Classify conflicts with the agent's identity:
   - "none": feedback refines the agent.
   - "soft": feedback adjusts style without contradicting identity.
   - "hard": feedback contradicts a rooted truth or an identity metadata field.
     Name the violated truth or metadata field, the new value, and every truth
     that would contradict the new direction. Recommend a fork when the feedback
     describes a different agent.

OUTPUT FORMAT (JSON):
{{
  "thoughtProcess": "Summary of what you learned from the feedback.",
  "conflictType": "none|soft|hard",
  "forkRecommended": false,
  "violatedTruth": null,
  "violatedMetadataField": null,
  "newMetadataValue": null,
  "suggestedForkName": null,
  "contradictoryTruths": [],
  "proposals": [
    {{ "text": "The concise instruction", "action": "add|strengthen|weaken", "reasoning": "Why this change?" }}
  ]
}}
""".strip()


def decode_analysis(text: str, agent_id: str) -> EvolutionAnalysis:
    """Parse the analysis JSON, tolerating markdown fences and null lists."""
    cleaned = strip_fences(text)
    try:
        data = json.loads(cleaned)
        if not isinstance(data, dict):
            raise ValueError("analysis is not a JSON object")
        data = {k: v for k, v in data.items() if v is not None}
        return EvolutionAnalysis.model_validate(data)
    except (ValueError, ValidationError) as e:
        logger.error(f"Failed to parse evolution analysis for '{agent_id}': {e}")
        raise EvolutionAnalysisError(f"Evolution analysis failed for '{agent_id}': {e}", agent_id) from e


async def analyze_feedback(
    completion: CompletionClient,
    artifact: Artifact,
    feedback_buffer: str,
    model: Optional[str] = None,
) -> EvolutionAnalysis:
    logger.info(f"Analyzing feedback history for '{artifact.id}'")
    try:
        text = await completion.execute(
            ANALYSIS_PROMPT,
            model=model,
            system_instruction=build_analysis_instruction(artifact, feedback_buffer),
        )
    except Exception as e:
        raise EvolutionAnalysisError(f"Evolution analysis call failed for '{artifact.id}': {e}", artifact.id) from e
    return decode_analysis(text, artifact.id)


class ConflictPolicy(Protocol):
    def classify(self, analysis: EvolutionAnalysis, artifact: Artifact) -> ConflictType:
        ...


class AnalysisConflictPolicy:
    """Trust the classification returned by the analysis."""

    def classify(self, analysis: EvolutionAnalysis, artifact: Artifact) -> ConflictType:
        return analysis.conflict_type


class StrictConflictPolicy:
    """Escalate to hard whenever the analysis names a violated truth or field."""

    def classify(self, analysis: EvolutionAnalysis, artifact: Artifact) -> ConflictType:
        if analysis.violated_truth or analysis.violated_metadata_field or analysis.contradictory_truths:
            return ConflictType.hard
        return analysis.conflict_type
