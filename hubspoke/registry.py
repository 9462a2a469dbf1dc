"""
Registry: resolves workspace artifacts into runnable agents.

The pool is the only place agents are constructed. It also renders the
capability manifest shown to the Architect and checks that every
Assembler's declared writers are actually loaded.
"""

import json
import logging
from dataclasses import dataclass
from typing import Dict, Generic, Iterable, List, Optional, TypeVar, Union

from .agents.assembler import Assembler
from .agents.base import MAX_TRUTHS_FOR_CONTEXT
from .agents.persona import Persona
from .agents.writer import Writer
from .completion import CompletionClient
from .errors import ConfigurationError, RegistryIntegrityError
from .models import Artifact, ArtifactType, AssemblerArtifact, PersonaArtifact, WriterArtifact

logger = logging.getLogger(__name__)

A = TypeVar("A")
G = TypeVar("G")


@dataclass(frozen=True)
class AgentEntry(Generic[A, G]):
    """An artifact paired with the agent built from it."""
    artifact: A
    agent: G

    @property
    def id(self) -> str:
        return self.artifact.id


PersonaEntry = AgentEntry[PersonaArtifact, Persona]
WriterEntry = AgentEntry[WriterArtifact, Writer]
AssemblerEntry = AgentEntry[AssemblerArtifact, Assembler]
AnyEntry = Union[PersonaEntry, WriterEntry, AssemblerEntry]


def build_agent(artifact: Artifact, completion: CompletionClient, max_truths: int = MAX_TRUTHS_FOR_CONTEXT) -> AnyEntry:
    if isinstance(artifact, PersonaArtifact):
        return AgentEntry(artifact, Persona(completion, artifact, max_truths))
    if isinstance(artifact, WriterArtifact):
        return AgentEntry(artifact, Writer(completion, artifact, max_truths))
    if isinstance(artifact, AssemblerArtifact):
        return AgentEntry(artifact, Assembler(completion, artifact, max_truths))
    raise ConfigurationError(f"Unsupported artifact: {artifact!r}", phase="registry")


class AgentPool:
    """Runnable agents keyed by ``(type, id)``."""

    def __init__(self, entries: Iterable[AnyEntry]):
        self._entries: Dict[ArtifactType, Dict[str, AnyEntry]] = {t: {} for t in ArtifactType}
        for entry in entries:
            kind = ArtifactType(entry.artifact.type)
            if entry.id in self._entries[kind]:
                logger.warning(f"Duplicate {kind.value} id '{entry.id}', keeping the last one loaded")
            self._entries[kind][entry.id] = entry

    def __len__(self) -> int:
        return sum(len(group) for group in self._entries.values())

    def by_type(self, agent_type: ArtifactType) -> List[AnyEntry]:
        return list(self._entries[ArtifactType(agent_type)].values())

    def get(self, agent_type: ArtifactType, agent_id: str) -> Optional[AnyEntry]:
        return self._entries[ArtifactType(agent_type)].get(agent_id)

    def require(self, agent_type: ArtifactType, agent_id: str, phase: Optional[str] = None) -> AnyEntry:
        """Like ``get`` but an unknown id is a ConfigurationError."""
        entry = self.get(agent_type, agent_id)
        if entry is None:
            kind = ArtifactType(agent_type).value
            raise ConfigurationError(f"Unknown {kind} '{agent_id}'", phase=phase)
        return entry

    @property
    def personas(self) -> List[PersonaEntry]:
        return self.by_type(ArtifactType.persona)

    @property
    def writers(self) -> List[WriterEntry]:
        return self.by_type(ArtifactType.writer)

    @property
    def assemblers(self) -> List[AssemblerEntry]:
        return self.by_type(ArtifactType.assembler)

    def to_manifest(self) -> str:
        """Functional capability map handed to the Architect."""
        manifest = {
            "personas": [
                {
                    "id": p.artifact.id,
                    "name": p.artifact.name,
                    "description": p.artifact.description,
                    "capabilities": {"tone": p.artifact.tone, "language": p.artifact.language},
                }
                for p in self.personas
            ],
            "writers": [
                {"id": w.artifact.id, "description": w.artifact.description}
                for w in self.writers
            ],
            "assemblers": [
                {
                    "id": a.artifact.id,
                    "description": a.artifact.description,
                    "supportedWriters": a.artifact.writer_ids,
                }
                for a in self.assemblers
            ],
        }
        return json.dumps(manifest, indent=2)

    def validate_integrity(self) -> None:
        """
        Check every Assembler's writer_ids against loaded Writers.

        Raises:
            RegistryIntegrityError: listing every missing id per assembler
        """
        available = {w.id for w in self.writers}
        missing: Dict[str, List[str]] = {}
        for assembler in self.assemblers:
            absent = [wid for wid in assembler.artifact.writer_ids if wid not in available]
            if absent:
                missing[assembler.id] = absent

        if missing:
            error = RegistryIntegrityError(missing)
            logger.error(f"Registry integrity error: {error}")
            raise error


def initialize_agents(
    artifacts: Iterable[Artifact],
    completion: CompletionClient,
    max_truths: int = MAX_TRUTHS_FOR_CONTEXT,
) -> AgentPool:
    pool = AgentPool(build_agent(artifact, completion, max_truths) for artifact in artifacts)
    logger.debug(f"Initialized {len(pool)} agents from registry")
    return pool


async def load_pool(context, validate: bool = True) -> AgentPool:
    """Load every workspace artifact into a pool, checking integrity first."""
    artifacts = await context.artifacts.list()
    pool = initialize_agents(artifacts, context.completion, context.max_truths)
    if validate:
        pool.validate_integrity()
    return pool
