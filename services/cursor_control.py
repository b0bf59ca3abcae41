"""Caret movement after a paste.

Only macOS is supported (System Events via ``osascript``). Elsewhere the
controller reports failure without touching anything; callers treat that as
a warning because the text has already been pasted.
"""
from __future__ import annotations

import logging
import subprocess
import sys
from dataclasses import dataclass
from typing import Optional, Protocol

from models.errors import CursorMoveError, PromptManagerError

log = logging.getLogger(__name__)

LEFT_ARROW_KEY_CODE = 123


@dataclass(frozen=True)
class CursorMoveResult:
    success: bool
    error: Optional[PromptManagerError] = None


class CursorController(Protocol):
    def is_cursor_control_supported(self) -> bool:
        ...

    def move_caret_left(self, count: int) -> CursorMoveResult:
        ...


def run_osascript(script: str, timeout: Optional[float] = None) -> None:
    # raises CalledProcessError / TimeoutExpired / OSError
    subprocess.run(["osascript", "-e", script], check=True, capture_output=True, timeout=timeout)


class AppleScriptCursorController:
    def __init__(self, timeout: Optional[float] = 10.0) -> None:
        self.timeout = timeout

    def is_cursor_control_supported(self) -> bool:
        return True

    def move_caret_left(self, count: int) -> CursorMoveResult:
        if count <= 0:
            return CursorMoveResult(success=True)
        script = (
            'tell application "System Events"\n'
            f"  repeat {int(count)} times\n"
            f"    key code {LEFT_ARROW_KEY_CODE}\n"
            "  end repeat\n"
            "end tell"
        )
        try:
            run_osascript(script, timeout=self.timeout)
        except (OSError, subprocess.SubprocessError) as e:
            log.error("Failed to move cursor: %s", e)
            return CursorMoveResult(success=False, error=CursorMoveError(f"Failed to move cursor: {e}", cause=e))
        return CursorMoveResult(success=True)


class UnsupportedCursorController:
    def __init__(self, platform: str = sys.platform) -> None:
        self.platform = platform

    def is_cursor_control_supported(self) -> bool:
        return False

    def move_caret_left(self, count: int) -> CursorMoveResult:
        if count <= 0:
            return CursorMoveResult(success=True)
        return CursorMoveResult(
            success=False,
            error=CursorMoveError(f"Cursor movement is not supported on {self.platform}; only macOS is supported"),
        )


def default_cursor_controller(timeout: Optional[float] = 10.0, platform: str = sys.platform) -> CursorController:
    if platform == "darwin":
        return AppleScriptCursorController(timeout=timeout)
    return UnsupportedCursorController(platform)

