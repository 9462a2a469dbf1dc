"""
Hub creation pipeline.

Flow:
1. Architect refines the baseline into a Brief
2. The chosen Assembler plans a Blueprint with the allowed Writers
3. Metadata passes: a Writer drafts the hub title and description, the
   chosen Persona voices each one
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..agents.architect import Architect, ArchitectResponse
from ..agents.assembler import AssemblerRequest
from ..agents.persona import PersonaRequest
from ..agents.writer import WriterRequest
from ..core.context import HubContext
from ..errors import ConfigurationError
from ..models import (
    ArtifactType,
    Blueprint,
    Brief,
    BriefBaseline,
    Interaction,
    InteractionAction,
    WriterArtifact,
)
from ..registry import AgentPool, PersonaEntry, WriterEntry
from .base import BaseAction, InteractionHook, RetryHook

logger = logging.getLogger(__name__)


@dataclass
class CreateHubHooks:
    on_architecting: Optional[Callable[[str], None]] = None
    on_architect: Optional[InteractionHook] = None
    on_assembling: Optional[Callable[[str], None]] = None
    on_assemble: Optional[InteractionHook] = None
    on_writing: Optional[Callable[[str, str], None]] = None
    on_write: Optional[InteractionHook] = None
    on_rephrasing: Optional[Callable[[str], None]] = None
    on_rephrase: Optional[InteractionHook] = None
    on_retry: Optional[RetryHook] = None


@dataclass
class CreateHubResult:
    architecture: ArchitectResponse
    blueprint: Blueprint
    title: str
    description: str

    @property
    def brief(self) -> Brief:
        return self.architecture.brief


class CreateHubAction(BaseAction):
    def __init__(
        self,
        context: HubContext,
        pool: AgentPool,
        manifest: Optional[str] = None,
        hooks: Optional[CreateHubHooks] = None,
    ):
        super().__init__(context, pool)
        if not pool.assemblers:
            raise ConfigurationError("No assemblers found in the registry", phase="create")
        if not pool.personas:
            raise ConfigurationError("No personas found in the registry", phase="create")
        if not pool.writers:
            raise ConfigurationError("No writers found in the registry", phase="create")
        pool.validate_integrity()

        self.manifest = manifest if manifest is not None else pool.to_manifest()
        self.hooks = hooks or CreateHubHooks()

    def allowed_writers(self, brief: Brief) -> List[WriterArtifact]:
        """Pool writers named by the Brief, in Brief order."""
        writers: List[WriterArtifact] = []
        for writer_id in brief.allowed_writer_ids:
            entry = self.pool.get(ArtifactType.writer, writer_id)
            if entry is None:
                logger.warning(f"Brief allows unknown writer '{writer_id}', ignoring it")
                continue
            writers.append(entry.artifact)
        return writers

    def metadata_writer(self, writer_id: Optional[str], writers: List[WriterArtifact], label: str) -> WriterEntry:
        """Writer for a metadata pass; defaults to the first allowed writer."""
        allowed = [w.id for w in writers]
        chosen = writer_id or allowed[0]
        if chosen not in allowed:
            raise ConfigurationError(
                f"{label.capitalize()} writer '{chosen}' is not one of the allowed writers [{', '.join(allowed)}]",
                phase="metadata",
            )
        return self.pool.require(ArtifactType.writer, chosen, phase="metadata")

    async def execute(self, baseline: BriefBaseline) -> CreateHubResult:
        hooks = self.hooks
        logger.info(f"CreateHubAction: starting for topic '{baseline.topic}'")

        # Architect: the architect is not an artifact, so its reviews are not logged
        architect = Architect(self.context.completion, self.manifest, self.context.settings.MODEL_NAME)

        async def review_brief(response: ArchitectResponse) -> Interaction:
            decision = await hooks.on_architect(response)
            if decision.action == InteractionAction.skip:
                return Interaction.proceed()
            return decision

        architecture = await architect.run(
            baseline,
            interact=review_brief if hooks.on_architect else None,
            on_retry=hooks.on_retry,
            on_thinking=hooks.on_architecting,
        )
        brief = architecture.brief

        assembler = self.pool.require(ArtifactType.assembler, brief.assembler_id, phase="architect")
        persona = self.pool.require(ArtifactType.persona, brief.persona_id, phase="architect")

        # Assembler
        writers = self.allowed_writers(brief)
        if not writers:
            raise ConfigurationError(
                f"None of the allowed writers [{', '.join(brief.allowed_writer_ids)}] are loaded",
                phase="assembler",
            )
        title_writer = self.metadata_writer(brief.title_writer_id, writers, "title")
        description_writer = self.metadata_writer(brief.description_writer_id, writers, "description")

        blueprint = await assembler.agent.run(
            AssemblerRequest(
                topic=brief.topic,
                goal=brief.goal,
                audience=brief.audience,
                language=brief.language,
                writers=writers,
            ),
            interact=self.reviewer(ArtifactType.assembler, assembler.id, hooks.on_assemble, "assemble"),
            on_retry=hooks.on_retry,
            on_thinking=hooks.on_assembling,
        )
        logger.info(f"CreateHubAction: blueprint '{blueprint.hub_id}' with {len(blueprint.components)} components")

        # Metadata passes
        title = await self._metadata_pass(
            "title",
            title_writer,
            persona,
            WriterRequest(
                intent=f"Generate a short technical title for a hub about {brief.topic}.",
                topic=brief.topic,
                goal=brief.goal,
                audience=brief.audience,
                is_first=True,
            ),
        )
        description = await self._metadata_pass(
            "description",
            description_writer,
            persona,
            WriterRequest(
                intent=f"Write a one-sentence technical summary explaining the goal: {brief.goal}.",
                topic=brief.topic,
                goal=brief.goal,
                audience=brief.audience,
                is_last=True,
            ),
        )

        logger.info("CreateHubAction: execution finished")
        return CreateHubResult(
            architecture=architecture,
            blueprint=blueprint,
            title=title,
            description=description,
        )

    async def _metadata_pass(
        self,
        label: str,
        writer: WriterEntry,
        persona: PersonaEntry,
        request: WriterRequest,
    ) -> str:
        """Writer drafts, Persona voices; each on its own feedback thread."""
        hooks = self.hooks
        on_writing = hooks.on_writing

        neutral = await writer.agent.run(
            request,
            interact=self.reviewer(ArtifactType.writer, writer.id, hooks.on_write, f"write-{label}"),
            on_retry=hooks.on_retry,
            on_thinking=(lambda agent_id: on_writing(f"hub-{label}", agent_id)) if on_writing else None,
        )
        voiced = await persona.agent.run(
            PersonaRequest(content=neutral.content),
            interact=self.reviewer(ArtifactType.persona, persona.id, hooks.on_rephrase, f"style-{label}"),
            on_retry=hooks.on_retry,
            on_thinking=hooks.on_rephrasing,
        )
        return voiced.content
