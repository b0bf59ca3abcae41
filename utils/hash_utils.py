import hashlib
import re

_WS = re.compile(r"\s+")


def _norm(text: str) -> str:
    return _WS.sub(" ", (text or "").strip()).lower()


def prompt_signature(title: str, body: str) -> str:
    """Duplicate key for a prompt: title + body, whitespace- and case-insensitive."""
    m = hashlib.sha256()
    m.update(_norm(title).encode("utf-8"))
    m.update(b"\x1e")  # separator
    m.update(_norm(body).encode("utf-8"))
    return m.hexdigest()
