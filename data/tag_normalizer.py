"""Tag handling for prompts.

- Tags are stored as typed: trimmed, case preserved, duplicates allowed
- Empty tag lists are stored as absent (None), never as []
- Matching and listing is case-insensitive
"""
from __future__ import annotations

from typing import Any, Iterable, List, Optional


def normalize_tags(tags: Optional[Iterable[str]]) -> Optional[List[str]]:
    """Trim each tag and drop empty ones; an empty result becomes None."""
    if tags is None:
        return None
    result = [t.strip() for t in tags if t.strip()]
    return result or None


def repair_tags(raw: Any) -> Optional[List[str]]:
    """Repair a persisted tags value: keep only string elements, None when nothing remains."""
    if not isinstance(raw, list):
        return None
    kept = [t for t in raw if isinstance(t, str)]
    return kept or None


def parse_tag_input(text: str) -> Optional[List[str]]:
    # comma or semicolon separated, as typed into a form or on the command line
    parts = (text or "").replace(";", ",").split(",")
    return normalize_tags(parts)


def canonicalize(tag: str) -> str:
    return (tag or "").strip().casefold()


def has_tag(tags: Optional[Iterable[str]], tag: str) -> bool:
    wanted = canonicalize(tag)
    return any(canonicalize(t) == wanted for t in tags or [])


def distinct_tags(tag_lists: Iterable[Optional[Iterable[str]]]) -> List[str]:
    """Case-insensitively distinct tags (first spelling wins), sorted."""
    seen = {}
    for tags in tag_lists:
        for t in tags or []:
            seen.setdefault(canonicalize(t), t)
    return sorted(seen.values(), key=canonicalize)
