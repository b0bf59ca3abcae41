from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from data.tag_normalizer import repair_tags
from utils.text_utils import parse_iso


class Prompt(BaseModel):
    """A stored prompt template. Persisted with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    body: str
    tags: Optional[List[str]] = None

    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")
    last_used_at: Optional[str] = Field(default=None, alias="lastUsedAt")

    def to_record(self) -> Dict[str, Any]:
        # absent optionals are omitted, never written as null
        return self.model_dump(by_alias=True, exclude_none=True)


class CreatePromptInput(BaseModel):
    title: str
    body: str
    tags: Optional[List[str]] = None


class UpdatePromptInput(BaseModel):
    title: Optional[str] = None
    body: Optional[str] = None
    tags: Optional[List[str]] = None


def is_valid_prompt(data: Any) -> bool:
    """True if a persisted record is already in canonical shape (no repair needed)."""
    if not isinstance(data, dict):
        return False
    if not all(isinstance(data.get(k), str) for k in ("id", "title", "body")):
        return False
    if parse_iso(data.get("createdAt")) is None or parse_iso(data.get("updatedAt")) is None:
        return False
    tags = data.get("tags")
    if tags is not None and not (isinstance(tags, list) and tags and all(isinstance(t, str) for t in tags)):
        return False
    last_used = data.get("lastUsedAt")
    return last_used is None or isinstance(last_used, str)


def sanitize_prompt(data: Any, now: str) -> Optional[Prompt]:
    """Turn one persisted record into a Prompt, repairing what can be repaired.

    Records without string ``id``/``title``/``body`` are rejected (None).
    Missing or unparsable timestamps are backfilled with ``now``, ``tags`` is
    filtered to string elements (absent when nothing remains) and a
    non-string ``lastUsedAt`` is dropped.
    """
    if not isinstance(data, dict):
        return None
    if not all(isinstance(data.get(k), str) for k in ("id", "title", "body")):
        return None

    created_at = data.get("createdAt")
    if parse_iso(created_at) is None:
        created_at = now
    updated_at = data.get("updatedAt")
    if parse_iso(updated_at) is None:
        updated_at = now

    last_used_at = data.get("lastUsedAt")
    if not isinstance(last_used_at, str):
        last_used_at = None

    return Prompt(
        id=data["id"],
        title=data["title"],
        body=data["body"],
        tags=repair_tags(data.get("tags")),
        created_at=created_at,
        updated_at=updated_at,
        last_used_at=last_used_at,
    )
