"""
Bracket-tag wire format shared with the completion boundary.

Agents ask the model to wrap every field in ``[TAG]...[/TAG]`` delimiters.
Decoding is case-insensitive and tolerant of surrounding chatter.
"""

import re
from typing import Dict, Iterable, List, Optional


class MissingTagsError(ValueError):
    """Raised by decoders when required tags are absent or empty."""

    def __init__(self, missing: Iterable[str], detail: Optional[str] = None):
        self.missing = list(missing)
        self.detail = detail
        super().__init__(f"Missing required tags: {', '.join(self.missing)}")


def _pattern(tag: str) -> re.Pattern[str]:
    name = re.escape(tag)
    return re.compile(rf"\[{name}\]([\s\S]*?)\[/{name}\]", re.IGNORECASE)


def extract_tag(block: str, tag: str) -> Optional[str]:
    """Return the stripped body of the first ``tag`` in ``block``, or None."""
    match = _pattern(tag).search(block)
    return match.group(1).strip() if match else None


def extract_all(block: str, tag: str) -> List[str]:
    """Return the raw bodies of every ``tag`` occurrence, in order."""
    return [m.group(1) for m in _pattern(tag).finditer(block)]


def require_tags(block: str, required: Iterable[str], prefix: str = "") -> Dict[str, str]:
    """
    Extract all ``required`` tags from ``block``.

    Args:
        block: Text to search
        required: Tag names that must be present and non-empty
        prefix: Label prepended to missing names (e.g. "COMPONENT[2].")

    Returns:
        Mapping of tag name to stripped body

    Raises:
        MissingTagsError: naming every absent tag
    """
    found: Dict[str, str] = {}
    missing: List[str] = []
    for tag in required:
        value = extract_tag(block, tag)
        if value:
            found[tag] = value
        else:
            missing.append(f"{prefix}{tag}")
    if missing:
        raise MissingTagsError(missing)
    return found


def split_ids(raw: str) -> List[str]:
    """Parse a comma separated id list, dropping blanks."""
    return [part.strip() for part in raw.split(",") if part.strip()]
