"""Prompt repository on top of a key-value blob store.

- The whole collection lives under one key as a JSON array of prompt records
- Every operation is a full read-modify-write of that array (no locking;
  concurrent writers can lose updates)
- Unparsable or wrong-shaped storage raises StorageReadError; single broken
  records are skipped or repaired so the rest stays usable
- list_prompts() and every search are sorted by updatedAt, newest first
"""
from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from config.config_loader import DEFAULT_STORAGE_KEY
from data.blob_store import BlobStore, JsonFileBlobStore
from data.tag_normalizer import distinct_tags, has_tag, normalize_tags
from models.errors import (
    PromptManagerError,
    PromptNotFoundError,
    PromptValidationError,
    StorageReadError,
    StorageWriteError,
)
from models.prompt import CreatePromptInput, Prompt, UpdatePromptInput, is_valid_prompt, sanitize_prompt
from services.placeholder import CURSOR_TOKEN, count_placeholders
from utils.text_utils import now_iso, parse_iso

log = logging.getLogger(__name__)

Listener = Callable[[List[Prompt]], None]


def _sort_newest_first(prompts: List[Prompt]) -> List[Prompt]:
    # sanitize guarantees a parsable updatedAt
    return sorted(prompts, key=lambda p: parse_iso(p.updated_at), reverse=True)


def _coerce(model: type, data: Union[BaseModel, Mapping[str, Any]]):
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(part) for part in err.get("loc", ())) or "input"
        raise PromptValidationError(f"Invalid {field}: {err['msg']}", cause=e) from e


def _validate_body(body: str, message: str) -> None:
    if not body:
        raise PromptValidationError(message)
    if count_placeholders(body).cursor > 1:
        raise PromptValidationError(f"Body may contain at most one {CURSOR_TOKEN} placeholder")


class PromptRepository:
    def __init__(
        self,
        store: Optional[BlobStore] = None,
        key: str = DEFAULT_STORAGE_KEY,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store if store is not None else JsonFileBlobStore()
        self.key = key
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._listeners: List[Listener] = []

    def _now(self) -> str:
        return now_iso(self._clock())

    # ----------------- internal IO -----------------
    def _load(self) -> List[Prompt]:
        try:
            stored = self.store.get_item(self.key)
        except PromptManagerError:
            raise
        except Exception as e:
            raise StorageReadError(f"Reading storage key '{self.key}' failed: {e}", cause=e) from e

        if not stored or not stored.strip():
            return []

        try:
            parsed = json.loads(stored)
        except json.JSONDecodeError as e:
            raise StorageReadError(f"Corrupted storage: key '{self.key}' is not valid JSON ({e})", cause=e) from e

        if not isinstance(parsed, list):
            raise StorageReadError(
                f"Invalid data format: key '{self.key}' holds {type(parsed).__name__}, expected a list"
            )

        now = self._now()
        prompts: List[Prompt] = []
        seen_ids = set()
        repaired = 0
        for item in parsed:
            prompt = sanitize_prompt(item, now)
            if prompt is None:
                log.warning("Skipped invalid prompt record: %r", item)
                continue
            if prompt.id in seen_ids:
                log.warning("Skipped prompt record with duplicate id %s", prompt.id)
                continue
            if not is_valid_prompt(item):
                repaired += 1
            seen_ids.add(prompt.id)
            prompts.append(prompt)
        if repaired:
            log.info("Repaired %d prompt records while loading (key=%s)", repaired, self.key)
        return prompts

    def _save(self, prompts: List[Prompt]) -> None:
        payload = json.dumps([p.to_record() for p in prompts], ensure_ascii=False, indent=2)
        try:
            self.store.set_item(self.key, payload)
        except PromptManagerError:
            raise
        except Exception as e:
            raise StorageWriteError(f"Saving prompts failed: {e}", cause=e) from e
        self._notify(prompts)

    def _index_of(self, prompts: List[Prompt], prompt_id: str) -> int:
        for idx, p in enumerate(prompts):
            if p.id == prompt_id:
                return idx
        raise PromptNotFoundError(prompt_id)

    # ----------------- observers -------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with the sorted collection after every successful write."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, prompts: List[Prompt]) -> None:
        if not self._listeners:
            return
        snapshot = _sort_newest_first(prompts)
        for listener in list(self._listeners):
            try:
                listener(list(snapshot))
            except Exception:
                log.exception("Prompt listener %r failed", listener)

    # ----------------- CRUD ------------------------
    def list_prompts(self) -> List[Prompt]:
        return _sort_newest_first(self._load())

    def get(self, prompt_id: str) -> Optional[Prompt]:
        for p in self._load():
            if p.id == prompt_id:
                return p
        return None

    def create(self, data: Union[CreatePromptInput, Mapping[str, Any]]) -> Prompt:
        data = _coerce(CreatePromptInput, data)
        title = data.title.strip()
        body = data.body.strip()
        if not title:
            raise PromptValidationError("Title is required")
        _validate_body(body, "Body is required")

        now = self._now()
        prompt = Prompt(
            id=str(uuid.uuid4()),
            title=title,
            body=body,
            tags=normalize_tags(data.tags),
            created_at=now,
            updated_at=now,
        )
        prompts = self._load()
        prompts.append(prompt)
        self._save(prompts)
        log.info("create() ok: id=%s -> %d prompts (key=%s)", prompt.id, len(prompts), self.key)
        return prompt

    def update(self, prompt_id: str, patch: Union[UpdatePromptInput, Mapping[str, Any]]) -> Prompt:
        patch = _coerce(UpdatePromptInput, patch)
        prompts = self._load()
        idx = self._index_of(prompts, prompt_id)
        existing = prompts[idx]

        fields: Dict[str, Any] = {}
        if patch.title is not None:
            fields["title"] = patch.title.strip()
        if patch.body is not None:
            fields["body"] = patch.body.strip()
        if patch.tags is not None:
            fields["tags"] = normalize_tags(patch.tags)

        if not fields.get("title", existing.title):
            raise PromptValidationError("Title cannot be empty")
        if patch.body is not None:
            _validate_body(fields["body"], "Body cannot be empty")
        elif not existing.body:
            raise PromptValidationError("Body cannot be empty")

        fields["updated_at"] = self._now()
        updated = existing.model_copy(update=fields)
        prompts[idx] = updated
        self._save(prompts)
        log.info("update() id=%s ok (key=%s)", prompt_id, self.key)
        return updated

    def delete(self, prompt_id: str) -> None:
        prompts = self._load()
        idx = self._index_of(prompts, prompt_id)
        prompts.pop(idx)
        self._save(prompts)
        log.info("delete() id=%s ok -> %d prompts (key=%s)", prompt_id, len(prompts), self.key)

    def mark_used(self, prompt_id: str) -> Prompt:
        """Stamp lastUsedAt; updatedAt and the content stay untouched."""
        prompts = self._load()
        idx = self._index_of(prompts, prompt_id)
        used = prompts[idx].model_copy(update={"last_used_at": self._now()})
        prompts[idx] = used
        self._save(prompts)
        log.debug("mark_used() id=%s (key=%s)", prompt_id, self.key)
        return used

    def clear(self) -> None:
        try:
            self.store.remove_item(self.key)
        except PromptManagerError:
            raise
        except Exception as e:
            raise StorageWriteError(f"Clearing prompts failed: {e}", cause=e) from e
        log.info("clear() removed all prompts (key=%s)", self.key)
        self._notify([])

    def count(self) -> int:
        c = len(self._load())
        log.debug("count() -> %s (key=%s)", c, self.key)
        return c

    # --------------- queries -----------------------
    def find_by_tag(self, tag: str) -> List[Prompt]:
        return [p for p in self.list_prompts() if has_tag(p.tags, tag)]

    def search(self, query: str = "") -> List[Prompt]:
        """Case-insensitive substring match on title, body and tags. An empty or blank query matches everything."""
        q = query.casefold()
        prompts = self.list_prompts()
        if not query.strip():
            return prompts
        results: List[Prompt] = []
        for p in prompts:
            if q in p.title.casefold() or q in p.body.casefold():
                results.append(p)
            elif any(q in t.casefold() for t in p.tags or []):
                results.append(p)
        return results

    def all_tags(self) -> List[str]:
        return distinct_tags(p.tags for p in self._load())
