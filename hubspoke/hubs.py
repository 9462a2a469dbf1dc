"""
Hub state persistence and markdown export.

A hub lives in ``<workspace>/posts/<hub_id>/`` as ``hub.json`` (the state
machine) and ``compiled.md`` (a read-only preview). Unwritten sections hold
a TODO blockquote marker so the Fill action can find them again.
"""

import logging
import re
from datetime import date
from pathlib import Path
from typing import Callable, Dict, List, Union

from pydantic import BaseModel, Field

from .errors import ConfigurationError
from .models import Blueprint, Brief

logger = logging.getLogger(__name__)

HUB_FILE = "hub.json"
COMPILED_FILE = "compiled.md"

PENDING_PATTERN = re.compile(r">\s*\*\*?TODO:?\*?\s*(.*)", re.IGNORECASE)


def todo_marker(intent: str) -> str:
    return f"> **TODO:** {intent}\n\n*Pending generation...*"


def is_pending_section(body: str) -> bool:
    """Default pending predicate: the body still carries a TODO blockquote."""
    return bool(PENDING_PATTERN.search(body))


class HubState(BaseModel):
    hub_id: str
    created_on: str = Field(default_factory=lambda: date.today().isoformat())
    brief: Brief
    blueprint: Blueprint
    title: str = ""
    description: str = ""
    sections: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def new(cls, brief: Brief, blueprint: Blueprint, title: str = "", description: str = "") -> "HubState":
        """Fresh hub with every section pending."""
        return cls(
            hub_id=blueprint.hub_id,
            brief=brief,
            blueprint=blueprint,
            title=title,
            description=description,
            sections={c.id: todo_marker(c.intent) for c in blueprint.components},
        )

    def pending_ids(self, is_pending: Callable[[str], bool] = is_pending_section) -> List[str]:
        return [
            c.id
            for c in self.blueprint.components
            if c.id not in self.sections or is_pending(self.sections[c.id])
        ]


def compile_markdown(state: HubState) -> str:
    parts = [f"# {state.title.strip() or state.brief.topic}", state.description.strip()]
    for component in state.blueprint.components:
        body = state.sections.get(component.id) or todo_marker(component.intent)
        parts.append(f"## {component.header}\n\n{body.strip()}")
    return "\n\n".join(p for p in parts if p) + "\n"


class HubStore:
    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def path_for(self, hub_id: str) -> Path:
        return self.root / "posts" / hub_id

    async def list(self) -> List[str]:
        posts = self.root / "posts"
        if not posts.is_dir():
            return []
        return sorted(p.name for p in posts.iterdir() if (p / HUB_FILE).exists())

    async def load(self, hub_id: str) -> HubState:
        path = self.path_for(hub_id) / HUB_FILE
        if not path.exists():
            raise ConfigurationError(f"Hub '{hub_id}' not found at {path}", phase="fill")
        return HubState.model_validate_json(path.read_text(encoding="utf-8"))

    async def save(self, state: HubState) -> Path:
        path = self.path_for(state.hub_id)
        path.mkdir(parents=True, exist_ok=True)
        (path / HUB_FILE).write_text(state.model_dump_json(indent=2), encoding="utf-8")
        (path / COMPILED_FILE).write_text(compile_markdown(state), encoding="utf-8")
        logger.debug(f"Hub '{state.hub_id}' saved ({len(state.pending_ids())} sections pending)")
        return path
