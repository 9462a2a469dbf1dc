"""Pydantic models shared by agents, actions and the evolution engine."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# Enums
class ArtifactType(str, Enum):
    """Agent artifact kinds that live in the workspace."""
    persona = "persona"
    writer = "writer"
    assembler = "assembler"


class FeedbackSource(str, Enum):
    action = "action"
    manual = "manual"


class FeedbackOutcome(str, Enum):
    accepted = "accepted"
    feedback = "feedback"


class ConflictType(str, Enum):
    """Severity of a clash between feedback and existing knowledge."""
    none = "none"
    soft = "soft"
    hard = "hard"


class ProposalAction(str, Enum):
    add = "add"
    strengthen = "strengthen"
    weaken = "weaken"


class InteractionAction(str, Enum):
    proceed = "proceed"
    feedback = "feedback"
    skip = "skip"


# Pipeline models
class Brief(BaseModel):
    """Structured plan produced by the Architect."""
    model_config = ConfigDict(frozen=True)

    topic: str
    goal: str
    audience: str
    language: str = "English"
    assembler_id: str
    persona_id: str
    allowed_writer_ids: List[str] = Field(default_factory=list)
    title_writer_id: Optional[str] = None
    description_writer_id: Optional[str] = None


class BriefBaseline(BaseModel):
    """User supplied starting point for the Architect."""
    topic: str
    goal: str = "Master the basics"
    audience: str = "Intermediate Developers"
    language: str = "English"


class Component(BaseModel):
    """One section of a blueprint, assigned to a single writer."""
    model_config = ConfigDict(frozen=True)

    id: str
    header: str
    intent: str
    writer_id: str
    bridge: str = ""


class Blueprint(BaseModel):
    model_config = ConfigDict(frozen=True)

    hub_id: str
    components: List[Component]


class ConversationTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "model"]
    text: str


class Interaction(BaseModel):
    """Decision returned by a host's review callback."""
    action: InteractionAction
    feedback: Optional[str] = None

    @classmethod
    def proceed(cls) -> "Interaction":
        return cls(action=InteractionAction.proceed)

    @classmethod
    def revise(cls, feedback: str) -> "Interaction":
        return cls(action=InteractionAction.feedback, feedback=feedback)

    @classmethod
    def skip(cls) -> "Interaction":
        return cls(action=InteractionAction.skip)


# Knowledge models
class AgentTruth(BaseModel):
    """A unit of learned behavioral guidance."""
    text: str
    weight: float = Field(..., ge=0.0, le=1.0)


class AgentKnowledge(BaseModel):
    description: str = ""
    truths: List[AgentTruth] = Field(default_factory=list)


class _ArtifactBase(BaseModel):
    id: str
    display_name: str = ""
    description: str = ""
    content: str = ""
    model: Optional[str] = None
    truths: List[AgentTruth] = Field(default_factory=list)

    @property
    def name(self) -> str:
        return self.display_name or self.id


class PersonaArtifact(_ArtifactBase):
    type: Literal["persona"] = "persona"
    language: str = "English"
    tone: str = "Neutral"
    accent: str = "Standard"

    def identity_metadata(self) -> Dict[str, str]:
        return {"tone": self.tone, "language": self.language, "accent": self.accent}


class WriterArtifact(_ArtifactBase):
    type: Literal["writer"] = "writer"


class AssemblerArtifact(_ArtifactBase):
    type: Literal["assembler"] = "assembler"
    writer_ids: List[str] = Field(default_factory=list)


Artifact = Annotated[
    Union[PersonaArtifact, WriterArtifact, AssemblerArtifact],
    Field(discriminator="type"),
]


class FeedbackEntry(BaseModel):
    """One line of an agent's append-only feedback log."""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source: FeedbackSource
    outcome: FeedbackOutcome
    text: Optional[str] = None
    thread_id: Optional[str] = None
    turn: Optional[int] = None


# Evolution models
class EvolutionProposal(BaseModel):
    text: str
    action: ProposalAction
    reasoning: str = ""


class EvolutionAnalysis(BaseModel):
    """Result of one analysis call over an agent's feedback buffer."""
    model_config = ConfigDict(populate_by_name=True)

    thought_process: str = Field("", alias="thoughtProcess")
    conflict_type: ConflictType = Field(ConflictType.none, alias="conflictType")
    fork_recommended: bool = Field(False, alias="forkRecommended")
    violated_truth: Optional[str] = Field(None, alias="violatedTruth")
    violated_metadata_field: Optional[str] = Field(None, alias="violatedMetadataField")
    new_metadata_value: Optional[str] = Field(None, alias="newMetadataValue")
    suggested_fork_name: Optional[str] = Field(None, alias="suggestedForkName")
    contradictory_truths: List[str] = Field(default_factory=list, alias="contradictoryTruths")
    proposals: List[EvolutionProposal] = Field(default_factory=list)


class KnowledgeMigration(BaseModel):
    """Truths that survive a manual behavior change."""
    model_config = ConfigDict(populate_by_name=True)

    thought_process: str = Field("", alias="thoughtProcess")
    kept_truths: List[AgentTruth] = Field(default_factory=list, alias="keptTruths")


class EvolutionResult(BaseModel):
    """What one evolution cycle did (or would have done) to an agent."""
    agent_id: str
    agent_type: ArtifactType
    conflict_type: ConflictType
    applied: bool
    new_description: str
    truths: List[AgentTruth]
    analysis: EvolutionAnalysis

    @property
    def added_truths(self) -> List[str]:
        return [p.text for p in self.analysis.proposals if p.action == ProposalAction.add]

    @property
    def strengthened_truths(self) -> List[str]:
        return [p.text for p in self.analysis.proposals if p.action == ProposalAction.strengthen]

    @property
    def weakened_truths(self) -> List[str]:
        return [p.text for p in self.analysis.proposals if p.action == ProposalAction.weaken]
