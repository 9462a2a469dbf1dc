"""
Architect Agent: refines a user baseline into a structured Brief.

Planning layer agent that:
- Reviews the baseline and asks follow-up questions when it is vague
- Selects exactly one Assembler and one Persona from the manifest
- Selects the Writers permitted to work on the hub
"""

import logging
from typing import Optional

from pydantic import BaseModel

from ..completion import CompletionClient
from ..models import Brief, BriefBaseline
from .base import GenerativeAgent
from .tags import MissingTagsError, extract_tag, require_tags, split_ids


logger = logging.getLogger(__name__)

BRIEF_TAGS = ("TOPIC", "GOAL", "AUDIENCE", "ASSEMBLER_ID", "PERSONA_ID", "ALLOWED_WRITER_IDS")


class ArchitectResponse(BaseModel):
    message: str
    brief: Brief


def decode_architect_response(text: str) -> ArchitectResponse:
    """
    Decode an Architect reply.

    ``[MESSAGE]`` falls back to the whole reply and ``[LANGUAGE]`` to
    English. The title and description writers are optional; every other
    Brief field is required.
    """
    message = extract_tag(text, "MESSAGE") or text.strip()
    brief_block = extract_tag(text, "BRIEF")
    if brief_block is None:
        raise MissingTagsError(["BRIEF"])

    fields = require_tags(brief_block, BRIEF_TAGS, prefix="BRIEF.")
    writer_ids = split_ids(fields["ALLOWED_WRITER_IDS"])
    if not writer_ids:
        raise MissingTagsError(["BRIEF.ALLOWED_WRITER_IDS"], detail="no writer ids listed")

    return ArchitectResponse(
        message=message,
        brief=Brief(
            topic=fields["TOPIC"],
            goal=fields["GOAL"],
            audience=fields["AUDIENCE"],
            language=extract_tag(brief_block, "LANGUAGE") or "English",
            assembler_id=fields["ASSEMBLER_ID"],
            persona_id=fields["PERSONA_ID"],
            allowed_writer_ids=writer_ids,
            title_writer_id=extract_tag(brief_block, "TITLE_WRITER_ID") or None,
            description_writer_id=extract_tag(brief_block, "DESCRIPTION_WRITER_ID") or None,
        ),
    )


class Architect(GenerativeAgent[BriefBaseline, ArchitectResponse]):
    role = "architect"

    def __init__(self, completion: CompletionClient, manifest: str, model: Optional[str] = None):
        super().__init__(completion, "architect", model)
        self.manifest = manifest

    @property
    def system_instruction(self) -> str:
        return f"""
You are the Hub Spoke Architect. Your job is to refine a content plan.

AVAILABLE TOOLS:
{self.manifest}

PROTOCOL:
1. Review the baseline. Ask follow-up questions if it's too vague.
2. Select exactly ONE Assembler and ONE Persona from the manifest.
3. WORKFORCE SELECTION: Select one or more Writer IDs from the manifest that are permitted to work on this Hub.
   - If technical code is involved, ensure a code-capable writer is included.
   - If narrative flow is key, include a prose writer.
   - Pick one allowed Writer for the hub title and one for the hub description.
4. Provide a [MESSAGE] block with explanation/questions, in the user's language.
5. Provide a [BRIEF] block with the current structured Brief.
6. [TOPIC], [GOAL] and [AUDIENCE] are ALWAYS in English.

OUTPUT FORMAT:
[MESSAGE]Your message to the user.[/MESSAGE]
[BRIEF]
[TOPIC]Refined Topic[/TOPIC]
[GOAL]Refined Goal[/GOAL]
[AUDIENCE]Target Audience[/AUDIENCE]
[LANGUAGE]Target Language[/LANGUAGE]
[ASSEMBLER_ID]id[/ASSEMBLER_ID]
[PERSONA_ID]id[/PERSONA_ID]
[ALLOWED_WRITER_IDS]id1,id2[/ALLOWED_WRITER_IDS]
[TITLE_WRITER_ID]id1[/TITLE_WRITER_ID]
[DESCRIPTION_WRITER_ID]id2[/DESCRIPTION_WRITER_ID]
[/BRIEF]
""".strip()

    def build_prompt(self, request: BriefBaseline) -> str:
        return f"""
USER BASELINE:
Topic: {request.topic}
Goal: {request.goal}
Audience: {request.audience}
Language: {request.language}

Analyze the baseline and provide your best proposal/questions.
"""

    def decode(self, text: str, request: BriefBaseline) -> ArchitectResponse:
        return decode_architect_response(text)
