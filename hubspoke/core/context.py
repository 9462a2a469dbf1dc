"""Dependencies shared by actions and the evolution engine."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..completion import CompletionClient, LiteLLMCompletionClient
from ..memory.artifacts import ArtifactStore, WorkspaceArtifactStore
from ..memory.feedback import FeedbackStore, JsonlFeedbackStore
from .config import Settings


@dataclass
class HubContext:
    settings: Settings
    completion: CompletionClient
    feedback: FeedbackStore
    artifacts: ArtifactStore

    @property
    def workspace(self) -> Path:
        return Path(self.settings.HUB_WORKSPACE_DIR)

    @property
    def max_truths(self) -> int:
        return self.settings.MAX_TRUTHS_FOR_CONTEXT

    @classmethod
    def from_settings(cls, settings: Settings, completion: Optional[CompletionClient] = None) -> "HubContext":
        """Wire the default workspace-backed stores and litellm client."""
        root = Path(settings.HUB_WORKSPACE_DIR)
        return cls(
            settings=settings,
            completion=completion or LiteLLMCompletionClient(settings),
            feedback=JsonlFeedbackStore(root),
            artifacts=WorkspaceArtifactStore(root),
        )
