import argparse, json, logging, sys, os
from pathlib import Path
from typing import List, Optional

os.environ.setdefault("PYTHONUTF8", "1")
try:
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")
except AttributeError:  # streams replaced by a wrapper without reconfigure()
    pass

from config.config_loader import load_config, get_settings
from data.blob_store import JsonFileBlobStore
from data.prompt_repository import PromptRepository
from data.tag_normalizer import parse_tag_input
from models.errors import PromptManagerError, PromptNotFoundError, get_error_message
from models.prompt import Prompt
from services.cursor_control import default_cursor_controller
from services.export_service import export_prompts
from services.import_service import import_file
from services.prompt_actions import ActionOutcome, PromptActions
from utils.text_utils import truncate_text


def _row(p: Prompt) -> str:
    tags = f"  [{', '.join(p.tags)}]" if p.tags else ""
    return f"{p.id}  {truncate_text(p.title, 48)}{tags}"


def _print_list(prompts: List[Prompt], as_json: bool = False) -> int:
    if as_json:
        print(json.dumps([p.to_record() for p in prompts], ensure_ascii=False, indent=2))
        return 0
    if not prompts:
        print("No prompts.")
    for p in prompts:
        print(_row(p))
    return 0


def _require(repo: PromptRepository, prompt_id: str) -> Prompt:
    prompt = repo.get(prompt_id)
    if prompt is None:
        raise PromptNotFoundError(prompt_id)
    return prompt


def _read_body(args) -> Optional[str]:
    if getattr(args, "body_file", None):
        src = args.body_file
        return sys.stdin.read() if src == "-" else Path(src).read_text(encoding="utf-8")
    return args.body


def _report(outcome: ActionOutcome) -> int:
    line = f"{outcome.title}: {outcome.message}" if outcome.message else outcome.title
    print(line, file=sys.stdout if outcome.success else sys.stderr)
    return 0 if outcome.success else 1


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="prompt-pocket", description="Manage and fill prompt snippets.")
    ap.add_argument("--data-dir", help="Directory holding the prompt store (default: PROMPT_DATA_DIR or ./data)")
    ap.add_argument("--env", help="Path to a .env file")
    ap.add_argument("-v", "--verbose", action="store_true")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="List prompts, most recently updated first")
    p.add_argument("--limit", type=int, default=0)
    p.add_argument("--json", action="store_true")

    p = sub.add_parser("show", help="Show one prompt")
    p.add_argument("id")
    p.add_argument("--json", action="store_true")

    p = sub.add_parser("add", help="Create a prompt")
    p.add_argument("--title", required=True)
    p.add_argument("--body")
    p.add_argument("--body-file", help="Read the body from a file ('-' for stdin)")
    p.add_argument("--tags", default="", help="Comma separated")

    p = sub.add_parser("edit", help="Update fields of a prompt")
    p.add_argument("id")
    p.add_argument("--title")
    p.add_argument("--body")
    p.add_argument("--body-file")
    p.add_argument("--tags", help="Comma separated; empty string removes all tags")

    p = sub.add_parser("delete", help="Delete a prompt")
    p.add_argument("id")
    p.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    p = sub.add_parser("search", help="Search title, body and tags")
    p.add_argument("query", nargs="?", default="")

    p = sub.add_parser("tag", help="Prompts carrying a tag")
    p.add_argument("tag")

    sub.add_parser("tags", help="All tags in use")
    sub.add_parser("count", help="Number of prompts")

    for name, help_text in (("copy", "Copy a prompt to the clipboard"), ("paste", "Paste a prompt into the active app")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("id")
        p.add_argument("--filled", action="store_true", help="Fill {clipboard} and {cursor} first")
        p.add_argument("--clipboard-text", help="Use this text for {clipboard} instead of the clipboard")

    p = sub.add_parser("use", help="Mark a prompt as used")
    p.add_argument("id")

    p = sub.add_parser("clear", help="Remove all prompts")
    p.add_argument("--yes", action="store_true")

    p = sub.add_parser("export", help="Export to .json, .yaml or .md")
    p.add_argument("path")

    p = sub.add_parser("import", help="Import from .json or .yaml")
    p.add_argument("path")
    p.add_argument("--dry-run", action="store_true")
    p.add_argument("--keep-duplicates", action="store_true")
    return ap


def _confirm(question: str) -> bool:
    try:
        return input(f"{question} [y/N] ").strip().lower() in ("y", "yes")
    except EOFError:
        return False


def run(args, repo: PromptRepository, clipboard=None, cursor=None) -> int:
    cmd = args.command

    if cmd == "list":
        prompts = repo.list_prompts()
        if args.limit and args.limit > 0:
            prompts = prompts[: args.limit]
        return _print_list(prompts, args.json)

    if cmd == "show":
        p = _require(repo, args.id)
        if args.json:
            print(json.dumps(p.to_record(), ensure_ascii=False, indent=2))
            return 0
        print(f"# {p.title}")
        print(f"id: {p.id}")
        if p.tags:
            print(f"tags: {', '.join(p.tags)}")
        print(f"created: {p.created_at}  updated: {p.updated_at}" + (f"  last used: {p.last_used_at}" if p.last_used_at else ""))
        print()
        print(p.body)
        return 0

    if cmd == "add":
        created = repo.create({"title": args.title, "body": _read_body(args) or "", "tags": parse_tag_input(args.tags)})
        print(created.id)
        return 0

    if cmd == "edit":
        patch = {}
        if args.title is not None:
            patch["title"] = args.title
        body = _read_body(args)
        if body is not None:
            patch["body"] = body
        if args.tags is not None:
            patch["tags"] = parse_tag_input(args.tags) or []
        updated = repo.update(args.id, patch)
        print(_row(updated))
        return 0

    if cmd == "delete":
        p = _require(repo, args.id)
        confirm = None if args.yes else (lambda pr: _confirm(f'Delete "{pr.title}"?'))
        actions = PromptActions(repo, clipboard, cursor)
        return _report(actions.delete(p, confirm=confirm))

    if cmd == "search":
        return _print_list(repo.search(args.query))

    if cmd == "tag":
        return _print_list(repo.find_by_tag(args.tag))

    if cmd == "tags":
        for t in repo.all_tags():
            print(t)
        return 0

    if cmd == "count":
        print(repo.count())
        return 0

    if cmd in ("copy", "paste"):
        p = _require(repo, args.id)
        if clipboard is None:
            from services.clipboard import default_clipboard
            clipboard = default_clipboard()
        actions = PromptActions(repo, clipboard, cursor)
        if cmd == "copy":
            outcome = actions.copy_filled(p, args.clipboard_text) if args.filled else actions.copy_raw(p)
        else:
            outcome = actions.paste_filled(p, args.clipboard_text) if args.filled else actions.paste_raw(p)
        return _report(outcome)

    if cmd == "use":
        used = repo.mark_used(args.id)
        print(f"{used.id} last used {used.last_used_at}")
        return 0

    if cmd == "clear":
        if not args.yes and not _confirm("Remove ALL prompts?"):
            print("Cancelled.")
            return 1
        repo.clear()
        print("All prompts removed.")
        return 0

    if cmd == "export":
        prompts = repo.list_prompts()
        export_prompts(prompts, Path(args.path))
        print(f"Exported {len(prompts)} prompts to {args.path}")
        return 0

    if cmd == "import":
        report = import_file(repo, Path(args.path), dry_run=args.dry_run, skip_duplicates=not args.keep_duplicates)
        print(f"added={report.added} duplicates={report.duplicates} errors={len(report.errors)}")
        for err in report.errors:
            print(f"  {err}", file=sys.stderr)
        return 1 if report.errors else 0

    raise ValueError(f"unknown command: {cmd}")


def main(argv: Optional[List[str]] = None, repo: Optional[PromptRepository] = None, clipboard=None, cursor=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    load_config(args.env)
    settings = get_settings()
    logging.getLogger().setLevel(logging.DEBUG if args.verbose else getattr(logging, settings.log_level, logging.INFO))

    if repo is None:
        data_dir = Path(args.data_dir) if args.data_dir else settings.data_dir
        repo = PromptRepository(JsonFileBlobStore(data_dir), key=settings.storage_key)
    if cursor is None:
        cursor = default_cursor_controller(timeout=settings.cursor_timeout)
        if not cursor.is_cursor_control_supported():
            logging.debug("Cursor control not supported on this platform; {cursor} only affects the text.")

    try:
        return run(args, repo, clipboard, cursor)
    except PromptManagerError as e:
        logging.debug("command %s failed", args.command, exc_info=True)
        print(f"Error: {get_error_message(e)}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        logging.exception("Command %s failed", args.command)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
