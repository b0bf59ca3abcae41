from __future__ import annotations

import logging
from typing import Any, Callable, List, Mapping, Optional

from data.prompt_repository import PromptRepository
from models.prompt import Prompt
from utils.text_utils import parse_iso

log = logging.getLogger(__name__)


class PromptListView:
    """In-memory snapshot of the prompt list for a presentation layer.

    Mutations go through the repository first; the snapshot is then patched
    and re-sorted locally (updatedAt, newest first) so it matches what a fresh
    ``list_prompts()`` returns without reloading. With ``follow=True`` the view
    also takes the repository's snapshot after every write, including writes
    made elsewhere through the same repository.
    """

    def __init__(self, repository: PromptRepository, follow: bool = False,
                 on_change: Optional[Callable[[List[Prompt]], None]] = None) -> None:
        self.repository = repository
        self.prompts: List[Prompt] = []
        self.error: Optional[Exception] = None
        self.on_change = on_change
        self._unsubscribe = repository.subscribe(self._replace) if follow else None

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _replace(self, prompts: List[Prompt]) -> None:
        self.prompts = sorted(prompts, key=lambda p: parse_iso(p.updated_at), reverse=True)
        if self.on_change is not None:
            self.on_change(list(self.prompts))

    def reload(self) -> List[Prompt]:
        self.error = None
        try:
            self._replace(self.repository.list_prompts())
        except Exception as e:
            self.error = e
            log.error("Loading prompts failed: %s", e)
            raise
        return self.prompts

    def create(self, data: Mapping[str, Any]) -> Prompt:
        created = self.repository.create(data)
        self._replace([created] + [p for p in self.prompts if p.id != created.id])
        return created

    def update(self, prompt_id: str, patch: Mapping[str, Any]) -> Prompt:
        updated = self.repository.update(prompt_id, patch)
        self._replace([updated if p.id == prompt_id else p for p in self.prompts])
        return updated

    def remove(self, prompt_id: str) -> None:
        self.repository.delete(prompt_id)
        self._replace([p for p in self.prompts if p.id != prompt_id])

    def mark_as_used(self, prompt_id: str) -> Prompt:
        used = self.repository.mark_used(prompt_id)
        self._replace([used if p.id == prompt_id else p for p in self.prompts])
        return used
