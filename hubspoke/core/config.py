import logging
from typing import Any, Dict, List

from pydantic import Field
from pydantic_settings import BaseSettings


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }

    # LLM configuration
    MODEL_PROVIDER: str = Field(default="gemini")
    MODEL_NAME: str | None = Field(default=None, description="Overrides the provider default model")

    OPENROUTER_API_KEY: str | None = None
    OPENROUTER_BASE_URL: str = Field(default="https://openrouter.ai/api/v1")
    OPENAI_API_KEY: str | None = None
    GEMINI_API_KEY: str | None = Field(default=None, description="Google AI Studio key")
    ANTHROPIC_API_KEY: str | None = None

    # Workspace
    HUB_WORKSPACE_DIR: str = Field(default=".", description="Root holding agents/ and posts/")

    # Runtime
    LOG_LEVEL: str = Field(default="INFO")
    DEBUG: bool = Field(default=False)

    # Agents
    MAX_TRUTHS_FOR_CONTEXT: int = Field(
        default=10, ge=0, description="Highest-weight truths injected into agent prompts"
    )

    def api_key_for(self, provider: str) -> str | None:
        return {
            "openrouter": self.OPENROUTER_API_KEY,
            "openai": self.OPENAI_API_KEY,
            "gemini": self.GEMINI_API_KEY,
            "anthropic": self.ANTHROPIC_API_KEY,
        }.get(provider.lower())

    def validate_provider_config(self) -> Dict[str, Any]:
        """Report which settings are missing for the configured provider.

        Returns:
            Dict with 'valid' bool, 'missing' list and 'provider' name
        """
        provider = self.MODEL_PROVIDER.lower()
        missing: List[str] = []

        if provider in ("openrouter", "openai", "gemini", "anthropic"):
            if not self.api_key_for(provider):
                missing.append(f"{provider.upper()}_API_KEY")
        else:
            missing.append("MODEL_PROVIDER")

        if missing:
            logger.warning(f"Provider '{provider}' is missing configuration: {', '.join(missing)}")

        return {
            "valid": len(missing) == 0,
            "missing": missing,
            "provider": provider,
        }
