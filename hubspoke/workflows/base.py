"""Shared plumbing for orchestration actions."""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional
from uuid import uuid4

from ..agents.base import DEFAULT_FEEDBACK
from ..core.context import HubContext
from ..models import (
    ArtifactType,
    FeedbackEntry,
    FeedbackOutcome,
    FeedbackSource,
    Interaction,
    InteractionAction,
)
from ..registry import AgentPool

logger = logging.getLogger(__name__)

InteractionHook = Callable[[Any], Awaitable[Interaction]]
RetryHook = Callable[[Exception], Awaitable[bool]]


@dataclass
class FeedbackThread:
    """One review conversation: a fresh thread id and a feedback-round counter."""
    label: str
    thread_id: str = ""
    turn: int = 0

    def __post_init__(self):
        if not self.thread_id:
            self.thread_id = f"{self.label}-{uuid4().hex[:12]}"


class BaseAction:
    def __init__(self, context: HubContext, pool: AgentPool):
        self.context = context
        self.pool = pool

    async def resolve_interaction(
        self,
        agent_type: ArtifactType,
        agent_id: str,
        response: Any,
        handler: Optional[InteractionHook],
        thread: Optional[FeedbackThread] = None,
    ) -> Interaction:
        """
        Ask the host to review ``response`` and record the decision.

        No handler and ``skip`` both proceed without touching the log.
        Otherwise the decision is appended to the producing agent's feedback
        log and a feedback decision advances the thread's turn counter.
        """
        if handler is None:
            return Interaction.proceed()

        result = await handler(response)

        if result.action == InteractionAction.skip:
            return Interaction.proceed()

        if thread is not None:
            is_feedback = result.action == InteractionAction.feedback
            await self.context.feedback.append(
                agent_type,
                agent_id,
                FeedbackEntry(
                    source=FeedbackSource.action,
                    outcome=FeedbackOutcome.feedback if is_feedback else FeedbackOutcome.accepted,
                    text=(result.feedback or DEFAULT_FEEDBACK) if is_feedback else None,
                    thread_id=thread.thread_id,
                    turn=thread.turn,
                ),
            )
            if is_feedback:
                thread.turn += 1

        return result

    def reviewer(
        self,
        agent_type: ArtifactType,
        agent_id: str,
        handler: Optional[InteractionHook],
        label: str,
    ) -> Callable[[Any], Awaitable[Interaction]]:
        """Bind a fresh feedback thread to ``handler`` for one agent run."""
        thread = FeedbackThread(label)

        async def interact(response: Any) -> Interaction:
            return await self.resolve_interaction(agent_type, agent_id, response, handler, thread)

        return interact
