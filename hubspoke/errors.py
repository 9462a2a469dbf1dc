"""Exception hierarchy for agents, actions, registry and evolution."""

from typing import Dict, Iterable, List, Optional


class HubSpokeError(Exception):
    """Base class for every error raised by hubspoke."""


class AgentError(HubSpokeError):
    """An agent could not produce a response.

    Carries the agent id and role so hosts can render a useful message.
    """

    def __init__(self, message: str, agent_id: str, role: str):
        super().__init__(message)
        self.agent_id = agent_id
        self.role = role


class CompletionError(AgentError):
    """The completion boundary raised while an agent was generating."""

    def __init__(self, agent_id: str, role: str, cause: BaseException):
        super().__init__(f"{role} '{agent_id}' completion failed: {cause}", agent_id, role)
        self.cause = cause


class ResponseParseError(AgentError):
    """Completion text is missing required delimited fields."""

    def __init__(self, agent_id: str, role: str, missing_fields: Iterable[str], detail: Optional[str] = None):
        self.missing_fields: List[str] = list(missing_fields)
        message = f"{role} '{agent_id}' response is missing required fields: {', '.join(self.missing_fields)}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message, agent_id, role)


class ConfigurationError(HubSpokeError):
    """Unknown agent id, empty writer set or missing persona. Never retried."""

    def __init__(self, message: str, phase: Optional[str] = None):
        super().__init__(message)
        self.phase = phase


class RegistryIntegrityError(ConfigurationError):
    """One or more assemblers reference writers that are not loaded."""

    def __init__(self, missing: Dict[str, List[str]]):
        self.missing = missing
        details = "; ".join(
            f"Assembler \"{assembler_id}\" missing writers: [{', '.join(ids)}]"
            for assembler_id, ids in missing.items()
        )
        super().__init__(f"Registry integrity error: {details}", phase="registry")

    @property
    def missing_writer_ids(self) -> List[str]:
        seen: List[str] = []
        for ids in self.missing.values():
            seen.extend(i for i in ids if i not in seen)
        return seen


class EvolutionPreconditionError(HubSpokeError):
    """Evolution cannot start: agent not found or empty feedback buffer."""

    def __init__(self, message: str, agent_id: str):
        super().__init__(message)
        self.agent_id = agent_id


class EvolutionAnalysisError(HubSpokeError):
    """The analysis reply could not be decoded into an EvolutionAnalysis."""

    def __init__(self, message: str, agent_id: str):
        super().__init__(message)
        self.agent_id = agent_id
