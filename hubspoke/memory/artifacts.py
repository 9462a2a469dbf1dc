"""
Workspace storage for agent artifacts.

Layout per agent::

    agents/<type>s/<id>/
        agent.yaml       identity and metadata
        behavior.md      behavior instructions
        knowledge.json   inferred description and weighted truths
        birth.json       lineage, only for forked agents
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

import yaml
from pydantic import TypeAdapter, ValidationError

from ..errors import ConfigurationError
from ..models import AgentKnowledge, Artifact, ArtifactType
from .feedback import agent_dir

logger = logging.getLogger(__name__)

IDENTITY_FILE = "agent.yaml"
BEHAVIOR_FILE = "behavior.md"
KNOWLEDGE_FILE = "knowledge.json"
BIRTH_FILE = "birth.json"

_artifact_adapter: TypeAdapter[Artifact] = TypeAdapter(Artifact)


class ArtifactStore(Protocol):
    async def list(self, agent_type: Optional[ArtifactType] = None) -> List[Artifact]:
        ...

    async def get(self, agent_type: ArtifactType, agent_id: str) -> Optional[Artifact]:
        ...

    async def save(self, artifact: Artifact) -> None:
        ...

    async def write_birth(self, agent_type: ArtifactType, agent_id: str, parent_id: str, reason: str) -> None:
        ...


def parse_artifact(identity: Dict[str, Any], behavior: str, knowledge: AgentKnowledge) -> Artifact:
    """Merge the three on-disk parts into one typed artifact."""
    data = dict(identity)
    data["content"] = behavior
    data["description"] = knowledge.description or data.get("description", "")
    data["truths"] = [t.model_dump() for t in knowledge.truths]
    return _artifact_adapter.validate_python(data)


class WorkspaceArtifactStore:
    """Reads and writes artifacts under ``<root>/agents``."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def path_for(self, agent_type: ArtifactType, agent_id: str) -> Path:
        return agent_dir(self.root, agent_type, agent_id)

    async def list(self, agent_type: Optional[ArtifactType] = None) -> List[Artifact]:
        types = [ArtifactType(agent_type)] if agent_type else list(ArtifactType)
        artifacts: List[Artifact] = []
        for kind in types:
            base = self.root / "agents" / f"{kind.value}s"
            if not base.is_dir():
                continue
            for entry in sorted(base.iterdir()):
                if entry.is_dir() and (entry / IDENTITY_FILE).exists():
                    artifacts.append(self._load(kind, entry))
        return artifacts

    async def get(self, agent_type: ArtifactType, agent_id: str) -> Optional[Artifact]:
        path = self.path_for(agent_type, agent_id)
        if not (path / IDENTITY_FILE).exists():
            return None
        return self._load(ArtifactType(agent_type), path)

    async def save(self, artifact: Artifact) -> None:
        path = self.path_for(ArtifactType(artifact.type), artifact.id)
        path.mkdir(parents=True, exist_ok=True)

        identity = artifact.model_dump(exclude={"content", "description", "truths"}, exclude_none=True)
        knowledge = AgentKnowledge(description=artifact.description, truths=artifact.truths)

        (path / IDENTITY_FILE).write_text(yaml.safe_dump(identity, sort_keys=False), encoding="utf-8")
        (path / BEHAVIOR_FILE).write_text(artifact.content, encoding="utf-8")
        (path / KNOWLEDGE_FILE).write_text(knowledge.model_dump_json(indent=2), encoding="utf-8")
        logger.debug(f"Saved {artifact.type} '{artifact.id}' ({len(artifact.truths)} truths)")

    async def write_birth(self, agent_type: ArtifactType, agent_id: str, parent_id: str, reason: str) -> None:
        birth = {
            "parent_id": parent_id,
            "birth_reason": reason,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        path = self.path_for(agent_type, agent_id) / BIRTH_FILE
        path.write_text(json.dumps(birth, indent=2), encoding="utf-8")

    def _load(self, agent_type: ArtifactType, path: Path) -> Artifact:
        try:
            identity = yaml.safe_load((path / IDENTITY_FILE).read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid {IDENTITY_FILE} in {path}: {e}", phase="registry") from e

        identity.setdefault("id", path.name)
        identity["type"] = agent_type.value

        behavior_path = path / BEHAVIOR_FILE
        behavior = behavior_path.read_text(encoding="utf-8") if behavior_path.exists() else ""

        knowledge_path = path / KNOWLEDGE_FILE
        try:
            knowledge = (
                AgentKnowledge.model_validate_json(knowledge_path.read_text(encoding="utf-8"))
                if knowledge_path.exists()
                else AgentKnowledge()
            )
            return parse_artifact(identity, behavior, knowledge)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid {agent_type.value} artifact in {path}: {e}", phase="registry") from e
