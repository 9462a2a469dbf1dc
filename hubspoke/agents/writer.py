"""
Writer Agent: drafts one neutral markdown section from a component intent.
"""

import logging

from pydantic import BaseModel

from ..completion import CompletionClient
from ..models import WriterArtifact
from .base import MAX_TRUTHS_FOR_CONTEXT, GenerativeAgent, render_learned_context
from .tags import MissingTagsError


logger = logging.getLogger(__name__)


class WriterRequest(BaseModel):
    intent: str
    topic: str
    goal: str
    audience: str
    bridge: str = ""
    is_first: bool = False
    is_last: bool = False

    @property
    def progress(self) -> str:
        if self.is_first:
            return "Start"
        if self.is_last:
            return "Conclusion"
        return "In-Progress"


class TextResponse(BaseModel):
    """Plain markdown produced by a Writer or Persona."""
    agent_id: str
    content: str


def decode_text_response(text: str, agent_id: str) -> TextResponse:
    content = text.strip()
    if not content:
        raise MissingTagsError(["CONTENT"], detail="empty response")
    return TextResponse(agent_id=agent_id, content=content)


class Writer(GenerativeAgent[WriterRequest, TextResponse]):
    role = "writer"

    def __init__(
        self,
        completion: CompletionClient,
        artifact: WriterArtifact,
        max_truths: int = MAX_TRUTHS_FOR_CONTEXT,
    ):
        super().__init__(completion, artifact.id, artifact.model)
        self.artifact = artifact
        self.learned_context = render_learned_context(artifact.truths, max_truths)

    @property
    def system_instruction(self) -> str:
        learned = (
            f"LEARNED CONTEXT (MANDATORY GUIDELINES):\n{self.learned_context}\n"
            if self.learned_context
            else ""
        )
        return f"""
ROLE: You are a Neutral Content Writer.

WRITING STRATEGY:
{self.artifact.content}

{learned}
CORE EXECUTION RULES:
1. Follow the INTENT micro-brief exactly. It defines your scope boundaries.
2. Do not repeat information or "steal" topics reserved for other sections.
3. LANGUAGE POLICY: You must write EXCLUSIVELY in English.

PROTOCOL:
- You are generating a single section of content for a larger document.
- Output ONLY the raw markdown text. No greetings, no explanations, no conversational filler.
- DO NOT add a document title or section heading (like # or ##) at the top of your response.
- NEVER combine a blockquote (>) with a header.

INPUT FORMAT:
Intent: Intent of the content
Topic: Topic of the content
Goal: Goal of the content
Audience: Audience of the content
Bridge: Brief summary of what has been covered already
Progress: Start, In-Progress or Conclusion
""".strip()

    def build_prompt(self, request: WriterRequest) -> str:
        return f"""
Intent: {request.intent}
Topic: {request.topic}
Goal: {request.goal}
Audience: {request.audience}
Bridge: {request.bridge}
Progress: {request.progress}
"""

    def decode(self, text: str, request: WriterRequest) -> TextResponse:
        return decode_text_response(text, self.id)
