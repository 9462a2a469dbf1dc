from .base import BaseAction, FeedbackThread
from .create_hub import CreateHubAction, CreateHubHooks, CreateHubResult
from .fill import FillAction, FillHooks, FillRequest, FillResult, fill_request_for

__all__ = [
    "BaseAction",
    "CreateHubAction",
    "CreateHubHooks",
    "CreateHubResult",
    "FeedbackThread",
    "FillAction",
    "FillHooks",
    "FillRequest",
    "FillResult",
    "fill_request_for",
]
