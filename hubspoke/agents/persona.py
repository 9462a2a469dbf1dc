"""
Persona Agent: rephrases neutral content into a fixed voice and tone.
"""

import logging

from pydantic import BaseModel

from ..completion import CompletionClient
from ..models import PersonaArtifact
from .base import MAX_TRUTHS_FOR_CONTEXT, GenerativeAgent, render_learned_context
from .writer import TextResponse, decode_text_response


logger = logging.getLogger(__name__)


class PersonaRequest(BaseModel):
    content: str


class Persona(GenerativeAgent[PersonaRequest, TextResponse]):
    role = "persona"

    def __init__(
        self,
        completion: CompletionClient,
        artifact: PersonaArtifact,
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
ROLE:
{self.artifact.content}

VOICE & STYLE:
- LANGUAGE: Must write exclusively in {self.artifact.language}.
- ACCENT: {self.artifact.accent}
- TONE: {self.artifact.tone}.

{learned}
TASK:
You are a Voice and Tone specialist. You will receive a content block to rephrase.
Rephrase it entirely into your voice and tone while preserving all technical facts and meaning.

RULES:
1. Rewrite the content to sound exactly like you.
2. Maintain all Markdown formatting and technical accuracy.
3. Do not change the technical intent, only the phrasing.
4. DO NOT add Markdown headings unless they were present in the source text.
5. Output ONLY the rephrased content, without filler or pleasantries.

INPUT FORMAT:
Content: The neutral markdown text you need to rephrase
""".strip()

    def build_prompt(self, request: PersonaRequest) -> str:
        return f"Content: {request.content}"

    def decode(self, text: str, request: PersonaRequest) -> TextResponse:
        return decode_text_response(text, self.id)
