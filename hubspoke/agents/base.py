"""
Base class for every generative agent.

Each agent:
- Owns one role-specific system instruction
- Builds a deterministic prompt per call (plus optional corrective feedback)
- Keeps a private, append-only conversation history
- Decodes completion text into a typed response
- Runs the shared generate -> review -> retry loop
"""

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from ..completion import CompletionClient
from ..errors import AgentError, CompletionError, ResponseParseError
from ..models import AgentTruth, ConversationTurn, Interaction, InteractionAction
from .tags import MissingTagsError


logger = logging.getLogger(__name__)

InputT = TypeVar("InputT")
ResponseT = TypeVar("ResponseT")

InteractionHandler = Callable[[ResponseT], Awaitable[Interaction]]
RetryHandler = Callable[[Exception], Awaitable[bool]]
ThinkingHandler = Callable[[str], None]

DEFAULT_FEEDBACK = "Continue refinement."
MAX_TRUTHS_FOR_CONTEXT = 10


def render_learned_context(truths: Sequence[AgentTruth], limit: int = MAX_TRUTHS_FOR_CONTEXT) -> str:
    """Bullet list of the highest-weight truths, heaviest first."""
    ranked = sorted(truths, key=lambda t: t.weight, reverse=True)[:limit]
    return "\n".join(f"- {t.text}" for t in ranked)


class GenerativeAgent(ABC, Generic[InputT, ResponseT]):
    """Shared interaction loop; subclasses supply prompt and decoder."""

    role: str = "agent"

    def __init__(self, completion: CompletionClient, agent_id: str, model: Optional[str] = None):
        self.completion = completion
        self.id = agent_id
        self.model = model
        self._history: List[ConversationTurn] = []

    @property
    def history(self) -> Tuple[ConversationTurn, ...]:
        return tuple(self._history)

    @property
    @abstractmethod
    def system_instruction(self) -> str:
        ...

    @abstractmethod
    def build_prompt(self, request: InputT) -> str:
        ...

    @abstractmethod
    def decode(self, text: str, request: InputT) -> ResponseT:
        """Decode completion text. Raises MissingTagsError on missing fields."""

    async def generate(self, request: InputT, feedback: Optional[str] = None) -> ResponseT:
        """One completion call: prompt, record the exchange, decode."""
        prompt = self.build_prompt(request).strip()
        if feedback:
            prompt = f"{prompt}\n\nUSER FEEDBACK: {feedback}"

        try:
            text = await self.completion.execute(
                prompt,
                model=self.model,
                system_instruction=self.system_instruction,
                history=self.history,
            )
        except Exception as e:
            raise CompletionError(self.id, self.role, e) from e

        self._history.append(ConversationTurn(role="user", text=prompt))
        self._history.append(ConversationTurn(role="model", text=text))

        try:
            return self.decode(text, request)
        except MissingTagsError as e:
            raise ResponseParseError(self.id, self.role, e.missing, e.detail) from e

    async def run(
        self,
        request: InputT,
        interact: Optional[InteractionHandler] = None,
        on_retry: Optional[RetryHandler] = None,
        on_thinking: Optional[ThinkingHandler] = None,
    ) -> ResponseT:
        """
        Generate until the reviewer proceeds.

        Without ``interact`` the first successful response is returned.
        Failures are handed to ``on_retry``; a falsy answer (or no handler)
        re-raises the typed error. Retries are unbounded; the host decides when to stop.
        """
        feedback: Optional[str] = None

        while True:
            if on_thinking is not None:
                on_thinking(self.id)

            try:
                generated = await self.generate(request, feedback)
            except AgentError as e:
                logger.error(f"{self.role} '{self.id}' failed: {e}", exc_info=True)
                if on_retry is not None and await on_retry(e):
                    logger.info(f"{self.role} '{self.id}' retrying based on handler decision")
                    continue
                raise

            if interact is None:
                return generated

            decision = await interact(generated)
            if decision.action == InteractionAction.feedback:
                feedback = decision.feedback or DEFAULT_FEEDBACK
                continue

            return generated
