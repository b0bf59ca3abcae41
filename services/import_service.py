from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Dict, Any
import json
import logging

import yaml

from data.prompt_repository import PromptRepository
from data.tag_normalizer import parse_tag_input
from models.errors import PromptValidationError
from utils.hash_utils import prompt_signature
from utils.text_utils import is_empty

log = logging.getLogger(__name__)


def _rows_from(data: Any, kind: str) -> List[Dict[str, Any]]:
    if isinstance(data, dict):
        if "items" in data and isinstance(data["items"], list):
            return list(data["items"])
        return [data]
    if isinstance(data, list):
        return list(data)
    raise ValueError(f"{kind} structure not supported (expected a list or an object).")


def load_rows(path: Path) -> List[Dict[str, Any]]:
    ext = path.suffix.lower()
    text = path.read_text(encoding="utf-8-sig")
    if ext == ".json":
        return _rows_from(json.loads(text), "JSON")
    if ext in (".yml", ".yaml"):
        return _rows_from(yaml.safe_load(text), "YAML")
    raise ValueError(f"Unknown format: {ext}")


def map_row(src: Any) -> Dict[str, Any]:
    """Map an exported/foreign row onto create() input. ``content`` is accepted for ``body``."""
    if not isinstance(src, dict):
        return {"title": "", "body": ""}
    body = src.get("body", src.get("content"))
    tags = src.get("tags")
    if isinstance(tags, str):
        tags = parse_tag_input(tags)
    elif isinstance(tags, list):
        tags = [str(t) for t in tags]
    else:
        tags = None
    return {
        "title": "" if src.get("title") is None else str(src.get("title")),
        "body": "" if body is None else str(body),
        "tags": tags,
    }


@dataclass
class ImportReport:
    added: int = 0
    duplicates: int = 0
    errors: List[str] = field(default_factory=list)


def import_rows(repo: PromptRepository, rows: List[Dict[str, Any]], *, dry_run: bool = False,
                skip_duplicates: bool = True) -> ImportReport:
    report = ImportReport()
    existing = {prompt_signature(p.title, p.body) for p in repo.list_prompts()}

    for m in map(map_row, rows):
        label = m.get("title") or "(untitled)"
        sig = prompt_signature(m["title"], m["body"])
        if skip_duplicates and sig in existing:
            report.duplicates += 1
            continue
        if dry_run:
            if is_empty(m["title"]) or is_empty(m["body"]):
                report.errors.append(f"Invalid (missing title or body): {label}")
            else:
                report.added += 1
            continue
        try:
            repo.create(m)
        except PromptValidationError as e:
            report.errors.append(f"{label}: {e}")
            continue
        existing.add(sig)
        report.added += 1

    log.info("import: added=%d duplicates=%d errors=%d dry_run=%s",
             report.added, report.duplicates, len(report.errors), dry_run)
    return report


def import_file(repo: PromptRepository, path: Path, **kwargs: Any) -> ImportReport:
    return import_rows(repo, load_rows(path), **kwargs)
