"""Copy / paste / delete actions on a prompt, reported as a single outcome.

An action either succeeds, succeeds with a warning (text pasted but the caret
could not be moved) or fails with a user-facing message. Nothing here raises
for clipboard or storage problems; the caller only renders the outcome.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from data.prompt_repository import PromptRepository
from models.errors import ErrorCode, PromptManagerError, get_error_message, to_prompt_manager_error
from models.prompt import Prompt
from services.cursor_control import CursorController, default_cursor_controller
from services.placeholder import fill_for_copy, fill_for_paste

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionOutcome:
    success: bool
    title: str
    message: str = ""
    warning: bool = False
    error: Optional[PromptManagerError] = None


def _failure(title: str, error: BaseException, code: ErrorCode) -> ActionOutcome:
    err = to_prompt_manager_error(error, code)
    log.error("%s: %s", title, err)
    return ActionOutcome(success=False, title=title, message=get_error_message(err), error=err)


class PromptActions:
    def __init__(self, repository: PromptRepository, clipboard, cursor: Optional[CursorController] = None,
                 track_usage: bool = True) -> None:
        self.repository = repository
        self.clipboard = clipboard
        self.cursor = cursor or default_cursor_controller()
        self.track_usage = track_usage

    def _record_use(self, prompt: Prompt) -> None:
        if not self.track_usage:
            return
        try:
            self.repository.mark_used(prompt.id)
        except PromptManagerError as e:
            # the copy/paste itself already happened
            log.warning("Could not record usage of prompt %s: %s", prompt.id, e)

    def copy_raw(self, prompt: Prompt) -> ActionOutcome:
        try:
            self.clipboard.write_text(prompt.body)
        except Exception as e:
            return _failure("Failed to Copy", e, ErrorCode.CLIPBOARD_FAILED)
        self._record_use(prompt)
        return ActionOutcome(True, "Copied to Clipboard", f'"{prompt.title}" copied')

    def paste_raw(self, prompt: Prompt) -> ActionOutcome:
        try:
            self.clipboard.paste_into_active_application(prompt.body)
        except Exception as e:
            return _failure("Failed to Paste", e, ErrorCode.CLIPBOARD_FAILED)
        self._record_use(prompt)
        return ActionOutcome(True, "Pasted to Active App", f'"{prompt.title}" pasted')

    def copy_filled(self, prompt: Prompt, clipboard_text: Optional[str] = None) -> ActionOutcome:
        try:
            text = fill_for_copy(prompt.body, clipboard_text, clipboard=self.clipboard)
            self.clipboard.write_text(text)
        except Exception as e:
            return _failure("Failed to Copy Filled Prompt", e, ErrorCode.CLIPBOARD_FAILED)
        self._record_use(prompt)
        return ActionOutcome(True, "Copied Filled Prompt", f'"{prompt.title}" copied to clipboard')

    def paste_filled(self, prompt: Prompt, clipboard_text: Optional[str] = None) -> ActionOutcome:
        """Paste the filled prompt and put the caret where ``{cursor}`` was."""
        try:
            filled = fill_for_paste(prompt.body, clipboard_text, clipboard=self.clipboard)
            self.clipboard.paste_into_active_application(filled.text)
        except Exception as e:
            return _failure("Failed to Paste Filled Prompt", e, ErrorCode.CLIPBOARD_FAILED)
        self._record_use(prompt)

        if not filled.cursor_offset:
            return ActionOutcome(True, "Pasted Filled Prompt", f'"{prompt.title}" pasted successfully')

        result = self.cursor.move_caret_left(filled.cursor_offset)
        if result.success:
            return ActionOutcome(True, "Pasted with Cursor", "Cursor positioned at {cursor} location")
        log.warning("Pasted prompt %s but the cursor could not be moved: %s", prompt.id, result.error)
        return ActionOutcome(
            True,
            "Pasted Successfully",
            "Note: Cursor could not be moved automatically",
            warning=True,
            error=result.error,
        )

    def delete(self, prompt: Prompt, confirm: Optional[Callable[[Prompt], bool]] = None) -> ActionOutcome:
        if confirm is not None and not confirm(prompt):
            return ActionOutcome(False, "Delete Cancelled", f'"{prompt.title}" was kept')
        try:
            self.repository.delete(prompt.id)
        except PromptManagerError as e:
            return _failure("Failed to Delete Prompt", e, ErrorCode.STORAGE_WRITE_FAILED)
        return ActionOutcome(True, "Prompt Deleted", f'"{prompt.title}" has been deleted')
