"""Text-completion boundary used by every agent."""

import logging
from typing import Dict, List, Optional, Protocol, Sequence

import litellm

from .core.config import Settings
from .llm_providers import get_provider_config
from .models import ConversationTurn

logger = logging.getLogger(__name__)


class CompletionClient(Protocol):
    """Opaque, possibly failing text completion. No retry policy lives here."""

    async def execute(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        system_instruction: Optional[str] = None,
        history: Sequence[ConversationTurn] = (),
    ) -> str:
        ...


def build_messages(
    prompt: str,
    system_instruction: Optional[str],
    history: Sequence[ConversationTurn],
) -> List[Dict[str, str]]:
    """Render a chat message list: system, prior turns, then the new prompt."""
    messages: List[Dict[str, str]] = []
    if system_instruction:
        messages.append({"role": "system", "content": system_instruction})
    for turn in history:
        messages.append({
            "role": "assistant" if turn.role == "model" else "user",
            "content": turn.text,
        })
    messages.append({"role": "user", "content": prompt})
    return messages


class LiteLLMCompletionClient:
    """Completion client backed by litellm's provider abstraction."""

    def __init__(self, settings: Settings):
        self.settings = settings

    async def execute(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        system_instruction: Optional[str] = None,
        history: Sequence[ConversationTurn] = (),
    ) -> str:
        config = get_provider_config(self.settings, model)
        messages = build_messages(prompt, system_instruction, history)

        logger.debug(f"AI request initiated: model={config.model_name}, turns={len(messages)}")

        try:
            response = await litellm.acompletion(
                model=config.model_name,
                messages=messages,
                **config.completion_kwargs(),
            )
        except Exception as e:
            logger.error(f"AI execution error ({config.model_name}): {e}")
            raise

        return response.choices[0].message.content or ""
