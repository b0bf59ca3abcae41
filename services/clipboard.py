from __future__ import annotations

import logging
import subprocess
import sys
from typing import Optional, Protocol

from PySide6.QtGui import QGuiApplication

from models.errors import ClipboardError
from services.cursor_control import run_osascript

log = logging.getLogger(__name__)

_PASTE_SCRIPT = 'tell application "System Events" to keystroke "v" using command down'


class Clipboard(Protocol):
    def read_text(self) -> Optional[str]:
        ...

    def write_text(self, value: str) -> None:
        ...

    def paste_into_active_application(self, value: str) -> None:
        ...


class QtClipboard:
    """System clipboard through the Qt application object.

    Reading returns None for empty or non-text content (e.g. an image).
    Pasting puts the text on the clipboard and sends the paste keystroke to the
    frontmost application, which is only possible on macOS.
    """

    def __init__(self, app: Optional[QGuiApplication] = None, platform: str = sys.platform,
                 paste_timeout: Optional[float] = 10.0) -> None:
        self._app = app
        self.platform = platform
        self.paste_timeout = paste_timeout

    def _clipboard(self):
        if self._app is None:
            self._app = QGuiApplication.instance() or QGuiApplication([])
        return self._app.clipboard()

    def read_text(self) -> Optional[str]:
        cb = self._clipboard()
        mime = cb.mimeData()
        if mime is None or not mime.hasText():
            return None
        return cb.text()

    def write_text(self, value: str) -> None:
        try:
            self._clipboard().setText(value)
        except RuntimeError as e:
            raise ClipboardError(f"Writing to the clipboard failed: {e}", cause=e) from e

    def paste_into_active_application(self, value: str) -> None:
        self.write_text(value)
        if self.platform != "darwin":
            raise ClipboardError(
                f"Pasting into the active application is not supported on {self.platform}; "
                "the text was copied to the clipboard instead"
            )
        try:
            run_osascript(_PASTE_SCRIPT, timeout=self.paste_timeout)
        except (OSError, subprocess.SubprocessError) as e:
            log.error("Paste keystroke failed: %s", e)
            raise ClipboardError(f"Pasting into the active application failed: {e}", cause=e) from e


def default_clipboard() -> Clipboard:
    return QtClipboard()
