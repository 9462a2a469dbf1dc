"""
Evolution Engine: mutates agent knowledge from accumulated feedback.

Cycle per agent:
1. Load the artifact and its raw feedback buffer
2. Analyze the buffer into proposals and a conflict classification
3. Apply proposals to a copy of the truths
4. Regenerate the registry description
5. Persist and clear the buffer unless the conflict is hard

A hard conflict leaves the workspace untouched and returns the analysis so a
human can fork, force the update or discard the feedback.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..core.context import HubContext
from ..errors import EvolutionPreconditionError, HubSpokeError
from ..memory.artifacts import ArtifactStore
from ..memory.feedback import FeedbackStore
from ..models import (
    AgentTruth,
    Artifact,
    ArtifactType,
    ConflictType,
    EvolutionAnalysis,
    EvolutionResult,
    PersonaArtifact,
)
from .analysis import AnalysisConflictPolicy, ConflictPolicy, analyze_feedback, apply_proposals
from .intelligence import generate_description, migrate_knowledge

logger = logging.getLogger(__name__)

PERSONA_METADATA_FIELDS = ("tone", "language", "accent")


def pivot_metadata(artifact: Artifact, analysis: EvolutionAnalysis) -> Artifact:
    """Apply the analysis' suggested identity change, personas only."""
    field_name = (analysis.violated_metadata_field or "").strip().lower()
    if (
        isinstance(artifact, PersonaArtifact)
        and field_name in PERSONA_METADATA_FIELDS
        and analysis.new_metadata_value
    ):
        return artifact.model_copy(update={field_name: analysis.new_metadata_value})
    return artifact


def purge_truths(truths: Iterable[AgentTruth], analysis: EvolutionAnalysis) -> List[AgentTruth]:
    """Drop the violated truth and every truth the analysis marked contradictory."""
    purge = {t.strip().lower() for t in analysis.contradictory_truths}
    if analysis.violated_truth:
        purge.add(analysis.violated_truth.strip().lower())
    return [t for t in truths if t.text.strip().lower() not in purge]


def _metadata(artifact: Artifact):
    return artifact.identity_metadata() if isinstance(artifact, PersonaArtifact) else None


class EvolutionEngine:
    def __init__(
        self,
        context: HubContext,
        store: Optional[ArtifactStore] = None,
        feedback: Optional[FeedbackStore] = None,
        conflict_policy: Optional[ConflictPolicy] = None,
    ):
        self.context = context
        self.store = store or context.artifacts
        self.feedback = feedback or context.feedback
        self.conflict_policy = conflict_policy or AnalysisConflictPolicy()

    async def _load(self, agent_type: ArtifactType, agent_id: str) -> Artifact:
        artifact = await self.store.get(agent_type, agent_id)
        if artifact is None:
            raise EvolutionPreconditionError(
                f"Agent {ArtifactType(agent_type).value} '{agent_id}' not found in registry", agent_id
            )
        return artifact

    async def _describe(self, artifact: Artifact) -> str:
        return await generate_description(
            self.context.completion,
            artifact.id,
            artifact.name,
            artifact.content,
            artifact.truths,
            metadata=_metadata(artifact),
            limit=self.context.max_truths,
        )

    async def evolve(self, agent_type: ArtifactType, agent_id: str) -> EvolutionResult:
        """
        Run one evolution cycle for a single agent.

        Raises:
            EvolutionPreconditionError: unknown agent or empty feedback buffer
            EvolutionAnalysisError: the analysis reply could not be decoded
        """
        logger.info(f"Starting evolution cycle for {ArtifactType(agent_type).value} '{agent_id}'")

        artifact = await self._load(agent_type, agent_id)
        buffer = await self.feedback.raw_buffer(agent_type, agent_id)
        if not buffer.strip():
            raise EvolutionPreconditionError(f"No feedback found in buffer for '{agent_id}'", agent_id)

        analysis = await analyze_feedback(self.context.completion, artifact, buffer)
        conflict = self.conflict_policy.classify(analysis, artifact)

        updated = artifact.model_copy(update={"truths": apply_proposals(artifact.truths, analysis.proposals)})
        description = await self._describe(updated)
        applied = conflict != ConflictType.hard

        if applied:
            await self.store.save(updated.model_copy(update={"description": description}))
            await self.feedback.clear(agent_type, agent_id)
            logger.info(
                f"Evolved '{agent_id}': {len(artifact.truths)} -> {len(updated.truths)} truths ({conflict.value} conflict)"
            )
        else:
            logger.warning(f"Hard conflict detected for '{agent_id}', pausing for a human decision")

        return EvolutionResult(
            agent_id=agent_id,
            agent_type=ArtifactType(agent_type),
            conflict_type=conflict,
            applied=applied,
            new_description=description,
            truths=updated.truths,
            analysis=analysis,
        )

    async def evolve_many(
        self,
        targets: Iterable[Tuple[ArtifactType, str]],
        skip_errors: bool = False,
    ) -> List[EvolutionResult]:
        """Evolve each target in order; with ``skip_errors`` failures are logged and skipped."""
        results: List[EvolutionResult] = []
        for agent_type, agent_id in targets:
            try:
                results.append(await self.evolve(agent_type, agent_id))
            except HubSpokeError as e:
                if not skip_errors:
                    raise
                logger.error(f"Skipping evolution for '{agent_id}': {e}")
        return results

    async def pending_targets(self) -> List[Tuple[ArtifactType, str]]:
        """Every agent with a non-empty feedback buffer."""
        targets: List[Tuple[ArtifactType, str]] = []
        for artifact in await self.store.list():
            kind = ArtifactType(artifact.type)
            if (await self.feedback.raw_buffer(kind, artifact.id)).strip():
                targets.append((kind, artifact.id))
        return targets

    async def fork_from_conflict(
        self,
        agent_type: ArtifactType,
        original_id: str,
        new_id: str,
        analysis: EvolutionAnalysis,
        new_display_name: Optional[str] = None,
    ) -> Artifact:
        """
        Resolve a hard conflict by forking the agent into a new identity.

        The child drops the violated and contradictory truths, takes the
        suggested metadata value and records its parent in ``birth.json``.
        The original keeps its knowledge but its feedback buffer is cleared.
        """
        parent = await self._load(agent_type, original_id)
        if await self.store.get(agent_type, new_id) is not None:
            raise EvolutionPreconditionError(f"Cannot fork into '{new_id}': agent already exists", original_id)

        child = pivot_metadata(parent, analysis).model_copy(
            update={
                "id": new_id,
                "display_name": new_display_name or analysis.suggested_fork_name or new_id,
                "truths": purge_truths(parent.truths, analysis),
            }
        )
        child = child.model_copy(update={"description": await self._describe(child)})

        await self.store.save(child)
        await self.store.write_birth(agent_type, new_id, original_id, analysis.thought_process)
        await self.feedback.clear(agent_type, original_id)

        logger.info(f"Forked '{original_id}' into '{new_id}' ({len(child.truths)} truths kept)")
        return child

    async def fork_from_manual_change(
        self,
        agent_type: ArtifactType,
        original_id: str,
        new_id: str,
        new_display_name: Optional[str] = None,
        new_behavior: Optional[str] = None,
        new_metadata: Optional[Dict[str, str]] = None,
    ) -> Artifact:
        """
        Smart clone: fork an agent with a user-edited behavior or identity.

        The parent's truths are filtered against the new behavior by a
        migration call; only the kept truths move to the child. The parent
        and its feedback buffer are left untouched.
        """
        parent = await self._load(agent_type, original_id)
        if await self.store.get(agent_type, new_id) is not None:
            raise EvolutionPreconditionError(f"Cannot fork into '{new_id}': agent already exists", original_id)

        behavior = new_behavior if new_behavior is not None else parent.content
        migration = await migrate_knowledge(self.context.completion, original_id, behavior, parent.truths)

        updates: Dict[str, Any] = {
            "id": new_id,
            "display_name": new_display_name or new_id,
            "content": behavior,
            "truths": migration.kept_truths,
        }
        for key, value in (new_metadata or {}).items():
            if isinstance(parent, PersonaArtifact) and key in PERSONA_METADATA_FIELDS:
                updates[key] = value
            else:
                logger.warning(f"Ignoring metadata field '{key}' for {ArtifactType(agent_type).value} '{new_id}'")

        child = parent.model_copy(update=updates)
        child = child.model_copy(update={"description": await self._describe(child)})

        await self.store.save(child)
        await self.store.write_birth(
            agent_type, new_id, original_id, f"Manual behavior evolution: {migration.thought_process}"
        )

        logger.info(f"Cloned '{original_id}' into '{new_id}' ({len(child.truths)} of {len(parent.truths)} truths kept)")
        return child

    async def force_update(
        self,
        agent_type: ArtifactType,
        agent_id: str,
        analysis: EvolutionAnalysis,
    ) -> EvolutionResult:
        """Resolve a hard conflict by applying the analysis to the original agent."""
        artifact = await self._load(agent_type, agent_id)
        updated = pivot_metadata(artifact, analysis)
        updated = updated.model_copy(update={"truths": apply_proposals(updated.truths, analysis.proposals)})
        description = await self._describe(updated)

        await self.store.save(updated.model_copy(update={"description": description}))
        await self.feedback.clear(agent_type, agent_id)
        logger.info(f"Forced evolution update for '{agent_id}'")

        return EvolutionResult(
            agent_id=agent_id,
            agent_type=ArtifactType(agent_type),
            conflict_type=analysis.conflict_type,
            applied=True,
            new_description=description,
            truths=updated.truths,
            analysis=analysis,
        )

    async def discard_feedback(self, agent_type: ArtifactType, agent_id: str) -> None:
        await self._load(agent_type, agent_id)
        await self.feedback.clear(agent_type, agent_id)
        logger.info(f"Discarded feedback for '{agent_id}'")
