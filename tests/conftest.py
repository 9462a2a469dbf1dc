from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import pytest
import pytest_asyncio

from hubspoke.core.config import Settings
from hubspoke.core.context import HubContext
from hubspoke.models import ConversationTurn
from hubspoke.registry import load_pool

from factories import make_artifacts

Reply = Union[str, Exception, Callable[[str, Optional[str]], str]]


class FakeCompletionClient:
    """Scripted completion boundary. Replies are consumed in order."""

    def __init__(self, replies: Sequence[Reply] = ()):
        self.replies: List[Reply] = list(replies)
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *replies: Reply) -> "FakeCompletionClient":
        self.replies.extend(replies)
        return self

    async def execute(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        system_instruction: Optional[str] = None,
        history: Sequence[ConversationTurn] = (),
    ) -> str:
        self.calls.append({
            "prompt": prompt,
            "model": model,
            "system_instruction": system_instruction,
            "history": tuple(history),
        })
        if not self.replies:
            raise AssertionError(f"Unexpected completion call: {prompt[:80]}")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(prompt, system_instruction)
        return reply


@pytest.fixture
def completion():
    return FakeCompletionClient()


@pytest.fixture
def workspace(tmp_path):
    return tmp_path


@pytest.fixture
def settings(workspace):
    return Settings(_env_file=None, HUB_WORKSPACE_DIR=str(workspace), MODEL_PROVIDER="gemini")


@pytest.fixture
def context(settings, completion):
    return HubContext.from_settings(settings, completion)


@pytest_asyncio.fixture
async def seeded(context):
    """Workspace holding persona 'sage', writers 'prose' and 'code', assembler 'tutorial'."""
    for artifact in make_artifacts():
        await context.artifacts.save(artifact)
    return context


@pytest_asyncio.fixture
async def pool(seeded):
    return await load_pool(seeded)
