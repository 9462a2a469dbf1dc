"""
Section fill pipeline.

Only pending sections are written, strictly in blueprint order. Each one is
drafted by its assigned Writer, voiced by the hub Persona and handed to
``on_section_filled`` before the next section starts, so an interrupted run
leaves every completed section in place.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from ..agents.persona import PersonaRequest
from ..agents.writer import WriterRequest
from ..core.context import HubContext
from ..hubs import is_pending_section
from ..models import ArtifactType, Component
from ..registry import AgentPool
from .base import BaseAction, InteractionHook, RetryHook

logger = logging.getLogger(__name__)


@dataclass
class FillHooks:
    on_start: Optional[Callable[[str], None]] = None
    on_writing: Optional[Callable[[str, str], None]] = None
    on_write: Optional[InteractionHook] = None
    on_rephrasing: Optional[Callable[[str, str], None]] = None
    on_rephrase: Optional[InteractionHook] = None
    on_retry: Optional[RetryHook] = None


@dataclass
class FillRequest:
    topic: str
    goal: str
    audience: str
    components: Sequence[Component]
    sections: Dict[str, str] = field(default_factory=dict)
    is_pending: Callable[[str], bool] = is_pending_section
    on_section_filled: Optional[Callable[[str, str], Awaitable[None]]] = None

    def pending(self) -> List[Component]:
        """Components with no body yet or whose body is still pending."""
        return [
            c for c in self.components
            if c.id not in self.sections or self.is_pending(self.sections[c.id])
        ]


@dataclass
class FillResult:
    sections: Dict[str, str]
    filled: List[str]


class FillAction(BaseAction):
    def __init__(
        self,
        context: HubContext,
        pool: AgentPool,
        persona_id: str,
        hooks: Optional[FillHooks] = None,
    ):
        super().__init__(context, pool)
        self.persona = pool.require(ArtifactType.persona, persona_id, phase="fill")
        self.hooks = hooks or FillHooks()

    async def execute(self, request: FillRequest) -> FillResult:
        hooks = self.hooks
        sections = dict(request.sections)
        pending = request.pending()
        total = len(request.components)
        positions = {c.id: i for i, c in enumerate(request.components)}

        # Resolve every writer up front so a bad blueprint fails before any completion call
        writers = {
            c.id: self.pool.require(ArtifactType.writer, c.writer_id, phase="fill")
            for c in pending
        }

        logger.info(f"FillAction: {len(pending)} of {total} sections pending")
        filled: List[str] = []

        for component in pending:
            index = positions[component.id]
            writer = writers[component.id]

            if hooks.on_start:
                hooks.on_start(component.id)

            neutral = await writer.agent.run(
                WriterRequest(
                    intent=component.intent,
                    topic=request.topic,
                    goal=request.goal,
                    audience=request.audience,
                    bridge=component.bridge,
                    is_first=index == 0,
                    is_last=index == total - 1,
                ),
                interact=self.reviewer(
                    ArtifactType.writer, writer.id, hooks.on_write, f"fill-{component.id}-write"
                ),
                on_retry=hooks.on_retry,
                on_thinking=self._announce(hooks.on_writing, component.id),
            )

            voiced = await self.persona.agent.run(
                PersonaRequest(content=neutral.content),
                interact=self.reviewer(
                    ArtifactType.persona, self.persona.id, hooks.on_rephrase, f"fill-{component.id}-style"
                ),
                on_retry=hooks.on_retry,
                on_thinking=self._announce(hooks.on_rephrasing, component.id),
            )

            sections[component.id] = voiced.content
            filled.append(component.id)
            if request.on_section_filled is not None:
                await request.on_section_filled(component.id, voiced.content)
            logger.info(f"FillAction: section '{component.id}' filled")

        return FillResult(sections=sections, filled=filled)

    @staticmethod
    def _announce(callback: Optional[Callable[[str, str], None]], section_id: str) -> Optional[Callable[[str], None]]:
        if callback is None:
            return None
        return lambda agent_id: callback(section_id, agent_id)


def fill_request_for(state, **overrides) -> FillRequest:
    """Build a FillRequest from a persisted HubState."""
    return FillRequest(
        topic=state.brief.topic,
        goal=state.brief.goal,
        audience=state.brief.audience,
        components=state.blueprint.components,
        sections=dict(state.sections),
        **overrides,
    )
