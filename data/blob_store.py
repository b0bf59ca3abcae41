"""Key-value blob stores backing the prompt repository.

- One string value per key; each call is atomic on its own, no multi-key transactions
- JsonFileBlobStore keeps each key in <root>/<key>.json (UTF-8), replaced atomically on write
- InMemoryBlobStore is the dict-backed variant for embedding and tests
"""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Dict, Optional, Protocol

log = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def _default_repo_root() -> Path:
    return Path(__file__).resolve().parents[1]


def default_data_dir() -> Path:
    env_override = os.environ.get("PROMPT_DATA_DIR")
    repo_root = _default_repo_root()
    if env_override:
        path = Path(env_override)
        return path if path.is_absolute() else (repo_root / path).resolve()
    return (repo_root / "data").resolve()


class BlobStore(Protocol):
    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class JsonFileBlobStore:
    def __init__(self, root: Optional[Path | str] = None) -> None:
        self.root = Path(root) if root is not None else default_data_dir()
        log.debug("JsonFileBlobStore using %s", self.root)

    def path_for(self, key: str) -> Path:
        if not _KEY_RE.match(key or "") or key in (".", ".."):
            raise ValueError(f"invalid storage key: {key!r}")
        return self.root / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)

    def remove_item(self, key: str) -> None:
        path = self.path_for(key)
        path.unlink(missing_ok=True)


class InMemoryBlobStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)
