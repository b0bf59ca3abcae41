"""Placeholder filling for prompt templates.

Supported placeholders (exact, case-sensitive, no escaping):

- ``{clipboard}``: replaced by the current clipboard text (every occurrence)
- ``{cursor}``: caret marker, removed from the text; on paste the caret is
  moved back to where the first marker was

Example::

    fill_for_paste("Review: {clipboard}\\n\\n{cursor}", clipboard_text="x = 1")
    # PasteFill(text="Review: x = 1\\n\\n", cursor_offset=0)

A clipboard that cannot be read (permission denied, image content, empty)
fills ``{clipboard}`` with an empty string instead of failing, so the user
still gets the template and can fix it up by hand.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

log = logging.getLogger(__name__)

CLIPBOARD_TOKEN = "{clipboard}"
CURSOR_TOKEN = "{cursor}"

SUPPORTED_PLACEHOLDERS = (
    {
        "name": "clipboard",
        "syntax": CLIPBOARD_TOKEN,
        "description": "Replaced with the current clipboard text",
    },
    {
        "name": "cursor",
        "syntax": CURSOR_TOKEN,
        "description": "Caret marker. After pasting, the caret is placed at this position",
    },
)


@dataclass(frozen=True)
class PasteFill:
    text: str
    cursor_offset: Optional[int]  # characters right of the caret marker; None without marker


@dataclass(frozen=True)
class PlaceholderCounts:
    clipboard: int
    cursor: int


def read_clipboard_text(clipboard=None) -> str:
    """Text currently on the clipboard, or "" when it cannot be read as text."""
    try:
        if clipboard is None:
            from services.clipboard import default_clipboard
            clipboard = default_clipboard()
        text = clipboard.read_text()
    except Exception as e:  # any clipboard failure degrades to ""
        log.warning("Failed to read clipboard: %s", e)
        return ""
    if not isinstance(text, str):
        return ""
    return text


def _fill_clipboard(template: str, clipboard_text: Optional[str], clipboard) -> str:
    if CLIPBOARD_TOKEN not in template:
        return template
    if clipboard_text is None:
        clipboard_text = read_clipboard_text(clipboard)
    return template.replace(CLIPBOARD_TOKEN, clipboard_text)


def fill_for_copy(template: str, clipboard_text: Optional[str] = None, clipboard=None) -> str:
    """Fill ``{clipboard}`` and drop every ``{cursor}`` marker."""
    result = _fill_clipboard(template, clipboard_text, clipboard)
    return result.replace(CURSOR_TOKEN, "")


def fill_for_paste(template: str, clipboard_text: Optional[str] = None, clipboard=None) -> PasteFill:
    """Fill ``{clipboard}`` and locate the caret marker.

    ``cursor_offset`` is the number of characters after the marker, i.e. how
    many single left-arrow moves put the caret back on it once the text has
    been pasted. Only the first marker counts; any further markers are
    removed as well.
    """
    result = _fill_clipboard(template, clipboard_text, clipboard)
    cursor_index = result.find(CURSOR_TOKEN)
    if cursor_index == -1:
        return PasteFill(text=result, cursor_offset=None)

    text = result.replace(CURSOR_TOKEN, "")
    return PasteFill(text=text, cursor_offset=len(text) - cursor_index)


def has_placeholders(template: str) -> bool:
    return CLIPBOARD_TOKEN in template or CURSOR_TOKEN in template


def count_placeholders(template: str) -> PlaceholderCounts:
    return PlaceholderCounts(
        clipboard=template.count(CLIPBOARD_TOKEN),
        cursor=template.count(CURSOR_TOKEN),
    )
