"""
LLM provider support.

Maps the configured provider to a litellm model string and the
credentials litellm needs for it:
- Google Gemini (default)
- OpenRouter
- OpenAI
- Anthropic
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .core.config import Settings

logger = logging.getLogger(__name__)


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    GEMINI = "gemini"
    OPENROUTER = "openrouter"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


@dataclass
class ProviderConfig:
    """Configuration for an LLM provider."""
    provider: LLMProvider
    model_name: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None

    def completion_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments forwarded to litellm on every call."""
        kwargs: Dict[str, Any] = {}
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.base_url:
            kwargs["api_base"] = self.base_url
        return kwargs


# Default model for each provider
DEFAULT_MODELS = {
    LLMProvider.GEMINI: "gemini-2.0-flash",
    LLMProvider.OPENROUTER: "openai/gpt-4o-mini",
    LLMProvider.OPENAI: "gpt-4o-mini",
    LLMProvider.ANTHROPIC: "claude-3-5-haiku-latest",
}

# litellm routes on the model prefix
MODEL_PREFIXES = {
    LLMProvider.GEMINI: "gemini/",
    LLMProvider.OPENROUTER: "openrouter/",
    LLMProvider.OPENAI: "",
    LLMProvider.ANTHROPIC: "anthropic/",
}


def get_provider_config(settings: Settings, model_name: Optional[str] = None) -> ProviderConfig:
    """
    Get configuration for the configured provider.

    Args:
        settings: Application settings
        model_name: Model name override (e.g. an agent artifact's own model)

    Returns:
        ProviderConfig with a litellm-ready model string
    """
    provider_str = (settings.MODEL_PROVIDER or "gemini").lower()

    try:
        llm_provider = LLMProvider(provider_str)
    except ValueError:
        logger.warning(f"Unknown provider '{provider_str}', falling back to gemini")
        llm_provider = LLMProvider.GEMINI

    final_model = model_name or settings.MODEL_NAME or DEFAULT_MODELS[llm_provider]

    return ProviderConfig(
        provider=llm_provider,
        model_name=to_litellm_model(llm_provider, final_model),
        api_key=settings.api_key_for(llm_provider.value),
        base_url=settings.OPENROUTER_BASE_URL if llm_provider == LLMProvider.OPENROUTER else None,
    )


def to_litellm_model(provider: LLMProvider, model_name: str) -> str:
    """Prefix a bare model name with the provider route, once."""
    prefix = MODEL_PREFIXES[provider]
    if not prefix or model_name.startswith(prefix):
        return model_name
    return f"{prefix}{model_name}"
