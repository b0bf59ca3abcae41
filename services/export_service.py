from __future__ import annotations
from pathlib import Path
from typing import List, Dict, Any, Iterable
import json

import yaml

from models.prompt import Prompt


def _records(prompts: Iterable[Prompt]) -> List[Dict[str, Any]]:
    return [p.to_record() for p in prompts]


def export_json(prompts: Iterable[Prompt], path: Path) -> None:
    """Same shape as the persisted collection, so the file can be restored as-is."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(_records(prompts), f, ensure_ascii=False, indent=2)


def export_yaml(prompts: Iterable[Prompt], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(_records(prompts), sort_keys=False, allow_unicode=True), encoding="utf-8")


def export_markdown(prompts: Iterable[Prompt], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    lines: List[str] = ["# Prompts\n"]
    for p in prompts:
        lines.append(f"## {p.title}")
        lines.append(f"- **ID:** {p.id}")
        lines.append(f"- **Tags:** {', '.join(p.tags or [])}")
        lines.append(f"- **Updated:** {p.updated_at}")
        if p.last_used_at:
            lines.append(f"- **Last used:** {p.last_used_at}")
        lines.append("")
        lines.append("```")
        lines.append(p.body)
        lines.append("```")
        lines.append("")
    path.write_text("\n".join(lines), encoding="utf-8")


EXPORTERS = {
    ".json": export_json,
    ".yaml": export_yaml,
    ".yml": export_yaml,
    ".md": export_markdown,
}


def export_prompts(prompts: Iterable[Prompt], path: Path) -> None:
    exporter = EXPORTERS.get(path.suffix.lower())
    if exporter is None:
        raise ValueError(f"Unknown export format: {path.suffix} (use .json, .yaml or .md)")
    exporter(prompts, path)
