"""Error taxonomy shared by the store, the template engine and the actions layer.

Every error raised on purpose is a ``PromptManagerError`` carrying an
``ErrorCode``. ``get_error_message`` turns any exception into the text shown
to the user.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    STORAGE_READ_FAILED = "STORAGE_READ_FAILED"
    STORAGE_WRITE_FAILED = "STORAGE_WRITE_FAILED"
    PROMPT_NOT_FOUND = "PROMPT_NOT_FOUND"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    CLIPBOARD_FAILED = "CLIPBOARD_FAILED"
    CURSOR_MOVE_FAILED = "CURSOR_MOVE_FAILED"
    UNKNOWN = "UNKNOWN"


class PromptManagerError(Exception):
    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(self, message: str, code: Optional[ErrorCode] = None, cause: Any = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.cause = cause

    def __str__(self) -> str:
        return self.message


class StorageReadError(PromptManagerError):
    code = ErrorCode.STORAGE_READ_FAILED


class StorageWriteError(PromptManagerError):
    code = ErrorCode.STORAGE_WRITE_FAILED


class PromptNotFoundError(PromptManagerError, KeyError):
    code = ErrorCode.PROMPT_NOT_FOUND

    def __init__(self, prompt_id: str) -> None:
        super().__init__(f'Prompt with id "{prompt_id}" not found')
        self.prompt_id = prompt_id


class PromptValidationError(PromptManagerError, ValueError):
    code = ErrorCode.VALIDATION_FAILED


class ClipboardError(PromptManagerError):
    code = ErrorCode.CLIPBOARD_FAILED


class CursorMoveError(PromptManagerError):
    code = ErrorCode.CURSOR_MOVE_FAILED


_CLASS_BY_CODE = {
    ErrorCode.STORAGE_READ_FAILED: StorageReadError,
    ErrorCode.STORAGE_WRITE_FAILED: StorageWriteError,
    ErrorCode.VALIDATION_FAILED: PromptValidationError,
    ErrorCode.CLIPBOARD_FAILED: ClipboardError,
    ErrorCode.CURSOR_MOVE_FAILED: CursorMoveError,
}

_MESSAGES = {
    ErrorCode.STORAGE_READ_FAILED: "Failed to load data. Please try again.",
    ErrorCode.STORAGE_WRITE_FAILED: "Failed to save data. Please check your storage.",
    ErrorCode.PROMPT_NOT_FOUND: "Prompt not found. It may have been deleted.",
    ErrorCode.CLIPBOARD_FAILED: "Failed to access clipboard. Please check permissions.",
    ErrorCode.CURSOR_MOVE_FAILED: "Failed to move cursor. Text was pasted successfully.",
    ErrorCode.UNKNOWN: "An unexpected error occurred.",
}


def to_prompt_manager_error(error: BaseException, default_code: ErrorCode) -> PromptManagerError:
    """Wrap a foreign exception; PromptManagerErrors pass through unchanged."""
    if isinstance(error, PromptManagerError):
        return error
    cls = _CLASS_BY_CODE.get(default_code, PromptManagerError)
    message = str(error) or error.__class__.__name__
    return cls(message, code=default_code, cause=error)


def get_error_message(error: BaseException) -> str:
    if isinstance(error, PromptManagerError):
        if error.code is ErrorCode.VALIDATION_FAILED:
            return error.message
        return _MESSAGES.get(error.code, _MESSAGES[ErrorCode.UNKNOWN])
    return str(error) or "An unknown error occurred."
