from .artifacts import ArtifactStore, WorkspaceArtifactStore
from .feedback import FeedbackStore, JsonlFeedbackStore, agent_dir

__all__ = [
    "ArtifactStore",
    "FeedbackStore",
    "JsonlFeedbackStore",
    "WorkspaceArtifactStore",
    "agent_dir",
]
