"""Append-only per-agent feedback log."""

import logging
from pathlib import Path
from typing import List, Protocol, Union

from ..models import ArtifactType, FeedbackEntry

logger = logging.getLogger(__name__)

FEEDBACK_FILE = "feedback.jsonl"


def agent_dir(root: Union[str, Path], agent_type: ArtifactType, agent_id: str) -> Path:
    """``<root>/agents/<type>s/<id>``"""
    return Path(root) / "agents" / f"{ArtifactType(agent_type).value}s" / agent_id


class FeedbackStore(Protocol):
    async def append(self, agent_type: ArtifactType, agent_id: str, entry: FeedbackEntry) -> None:
        ...

    async def entries(self, agent_type: ArtifactType, agent_id: str) -> List[FeedbackEntry]:
        ...

    async def raw_buffer(self, agent_type: ArtifactType, agent_id: str) -> str:
        ...

    async def clear(self, agent_type: ArtifactType, agent_id: str) -> None:
        ...


class JsonlFeedbackStore:
    """Newline-delimited JSON, one file per agent, inside the workspace."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def path_for(self, agent_type: ArtifactType, agent_id: str) -> Path:
        return agent_dir(self.root, agent_type, agent_id) / FEEDBACK_FILE

    async def append(self, agent_type: ArtifactType, agent_id: str, entry: FeedbackEntry) -> None:
        path = self.path_for(agent_type, agent_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as fh:
            fh.write(entry.model_dump_json(exclude_none=True) + "\n")
        logger.debug(f"Feedback recorded for {ArtifactType(agent_type).value}/{agent_id}: {entry.outcome.value}")

    async def entries(self, agent_type: ArtifactType, agent_id: str) -> List[FeedbackEntry]:
        """Entries in the order they were written."""
        raw = await self.raw_buffer(agent_type, agent_id)
        return [
            FeedbackEntry.model_validate_json(line)
            for line in raw.splitlines()
            if line.strip()
        ]

    async def raw_buffer(self, agent_type: ArtifactType, agent_id: str) -> str:
        path = self.path_for(agent_type, agent_id)
        if not path.exists():
            return ""
        return path.read_text(encoding="utf-8")

    async def clear(self, agent_type: ArtifactType, agent_id: str) -> None:
        path = self.path_for(agent_type, agent_id)
        if path.exists():
            path.write_text("", encoding="utf-8")
            logger.info(f"Feedback buffer cleared for {ArtifactType(agent_type).value}/{agent_id}")
