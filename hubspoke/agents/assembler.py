"""
Assembler Agent: turns a Brief into a Blueprint of ordered components.

Each component is a content section with a macro intent, a bridge from the
previous section and exactly one Writer drawn from the allowed workforce.
"""

import logging
from typing import Collection, List, Optional, Set

from pydantic import BaseModel, Field

from ..completion import CompletionClient
from ..models import AssemblerArtifact, Blueprint, Component, WriterArtifact
from .base import MAX_TRUTHS_FOR_CONTEXT, GenerativeAgent, render_learned_context
from .tags import MissingTagsError, extract_all, extract_tag, require_tags


logger = logging.getLogger(__name__)

COMPONENT_TAGS = ("ID", "HEADER", "INTENT", "WRITER_ID")


class AssemblerRequest(BaseModel):
    """Brief fields handed through unchanged plus the allowed writers."""
    topic: str
    goal: str
    audience: str
    language: str = "English"
    writers: List[WriterArtifact] = Field(default_factory=list)

    @property
    def writer_ids(self) -> List[str]:
        return [w.id for w in self.writers]


def decode_blueprint(text: str, allowed_writer_ids: Optional[Collection[str]] = None) -> Blueprint:
    """
    Decode an Assembler reply into a Blueprint.

    Args:
        text: Raw completion text
        allowed_writer_ids: When given, every component's writer must be in it

    Raises:
        MissingTagsError: on absent fields or an unknown writer assignment
    """
    hub_id = extract_tag(text, "HUB_ID")
    blocks = extract_all(text, "COMPONENT")

    missing: List[str] = []
    if not hub_id:
        missing.append("HUB_ID")
    if not blocks:
        missing.append("COMPONENT")
    if missing:
        raise MissingTagsError(missing)

    components: List[Component] = []
    seen: Set[str] = set()
    for index, block in enumerate(blocks, start=1):
        fields = require_tags(block, COMPONENT_TAGS, prefix=f"COMPONENT[{index}].")
        component_id = fields["ID"]
        if component_id in seen:
            raise MissingTagsError([f"COMPONENT[{index}].ID"], detail=f"duplicate id '{component_id}'")
        seen.add(component_id)
        writer_id = fields["WRITER_ID"]
        if allowed_writer_ids is not None and writer_id not in allowed_writer_ids:
            raise MissingTagsError(
                [f"COMPONENT[{index}].WRITER_ID"],
                detail=f"writer '{writer_id}' is not one of: {', '.join(allowed_writer_ids)}",
            )
        components.append(
            Component(
                id=component_id,
                header=fields["HEADER"],
                intent=fields["INTENT"],
                writer_id=writer_id,
                bridge=extract_tag(block, "BRIDGE") or "",
            )
        )

    return Blueprint(hub_id=hub_id, components=components)


class Assembler(GenerativeAgent[AssemblerRequest, Blueprint]):
    role = "assembler"

    def __init__(
        self,
        completion: CompletionClient,
        artifact: AssemblerArtifact,
        max_truths: int = MAX_TRUTHS_FOR_CONTEXT,
    ):
        super().__init__(completion, artifact.id, artifact.model)
        self.artifact = artifact
        self.learned_context = render_learned_context(artifact.truths, max_truths)

    @property
    def system_instruction(self) -> str:
        learned = f"LEARNED CONTEXT:\n{self.learned_context}\n" if self.learned_context else ""
        return f"""
You are a Lead Content Architect. Your mission is to define the MACRO structure of a document.
OUTLINE STRATEGY: {self.artifact.content}
{learned}
CRITICAL REQUIREMENT: "MACRO-LEVEL INTENTS"
Every component's intent must be a detailed macro-brief (50-100 words) that explicitly includes:
1. PRIMARY FOCUS: The overarching goal of this section.
2. NARRATIVE PURPOSE: How this section serves the overall document goal.
3. SCOPE BOUNDARY: What explicitly belongs in OTHER sections.

RULES:
1. Create a logical sequence of components.
2. The bridge explains how to transition into this section from previous ones.
3. Assign exactly ONE Writer ID from [ALLOWED_WRITERS] to each component.

OUTPUT FORMAT:
[HUB_ID]short-kebab-slug[/HUB_ID]
[COMPONENT]
[ID]unique-slug[/ID]
[HEADER]Section Title[/HEADER]
[INTENT]FOCUS: ... PURPOSE: ... BOUNDARY: ...[/INTENT]
[BRIDGE]Transition context[/BRIDGE]
[WRITER_ID]chosen-writer-id[/WRITER_ID]
[/COMPONENT]
(repeat [COMPONENT] for every section)
""".strip()

    def build_prompt(self, request: AssemblerRequest) -> str:
        writers = "\n".join(f"- {w.id}: {w.description}" for w in request.writers)
        return f"""
Topic: {request.topic}
Goal: {request.goal}
Audience: {request.audience}
Language: {request.language}

[ALLOWED_WRITERS]
{writers}
[/ALLOWED_WRITERS]
"""

    def decode(self, text: str, request: AssemblerRequest) -> Blueprint:
        return decode_blueprint(text, request.writer_ids)
