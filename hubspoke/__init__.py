"""Hub and spoke content pipeline with self-evolving agents."""

from .core.config import Settings
from .core.context import HubContext
from .errors import (
    AgentError,
    CompletionError,
    ConfigurationError,
    EvolutionAnalysisError,
    EvolutionPreconditionError,
    HubSpokeError,
    RegistryIntegrityError,
    ResponseParseError,
)
from .evolution import EvolutionEngine
from .registry import AgentPool, initialize_agents, load_pool
from .workflows import CreateHubAction, CreateHubHooks, FillAction, FillHooks, FillRequest

__version__ = "0.1.0"

__all__ = [
    "AgentError",
    "AgentPool",
    "CompletionError",
    "ConfigurationError",
    "CreateHubAction",
    "CreateHubHooks",
    "EvolutionAnalysisError",
    "EvolutionEngine",
    "EvolutionPreconditionError",
    "FillAction",
    "FillHooks",
    "FillRequest",
    "HubContext",
    "HubSpokeError",
    "RegistryIntegrityError",
    "ResponseParseError",
    "Settings",
    "initialize_agents",
    "load_pool",
]
