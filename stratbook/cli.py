from __future__ import annotations

import argparse
import shlex
import sys
from pathlib import Path
from typing import Any, TextIO

from .catalog.config import CatalogConfig, load_config, open_session
from .catalog.errors import CatalogError
from .catalog.views import ListItem, catalog_markdown, raw_view, render_detail_text, structured_view
from .catalog.workbench import Outcome, StrategyWorkbench

SHELL_HELP = """commands:
  list | search TEXT          show strategies (optionally filtered)
  select ID|#N                make a strategy current (#N = position in last list)
  new | edit                  start a blank form / load the current strategy into the form
  set key=value ...           change form values (tags="a, b", entry_rules="r1\\nr2", dca_enabled=1)
  save                        create or update from the form
  delete [ID]                 delete the current (or given) strategy
  undo                        restore the last deleted strategy
  view | json                 show the current strategy
  quit"""


def _add_field_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--name")
    p.add_argument("--description")
    p.add_argument("--tags", help="comma separated")
    p.add_argument("--timeframes", help="comma separated")
    p.add_argument("--indicators", help="comma separated")
    p.add_argument("--entry-rule", action="append", dest="entry_rules", help="repeatable")
    p.add_argument("--exit-rule", action="append", dest="exit_rules", help="repeatable")
    p.add_argument("--stoploss", dest="stoploss_rule")
    p.add_argument("--takeprofit", dest="takeprofit_rule")
    p.add_argument("--position-size", dest="position_size_rule")
    p.add_argument("--trailing-stop", metavar="MULTIPLIER", help="enable trailing stop")
    p.add_argument("--scale-out", metavar="PERCENT", help="enable scale out")
    p.add_argument("--dca", action=argparse.BooleanOptionalAction, default=None)
    p.add_argument("--manual", action=argparse.BooleanOptionalAction, default=None)


def _apply_field_args(form: dict[str, Any], args: argparse.Namespace) -> dict[str, Any]:
    for key in (
        "name",
        "description",
        "tags",
        "timeframes",
        "indicators",
        "stoploss_rule",
        "takeprofit_rule",
        "position_size_rule",
    ):
        value = getattr(args, key)
        if value is not None:
            form[key] = value
    for key in ("entry_rules", "exit_rules"):
        value = getattr(args, key)
        if value is not None:
            form[key] = "\n".join(value)
    if args.trailing_stop is not None:
        form["trailing_stop_enabled"] = True
        form["trailing_stop_multiplier"] = args.trailing_stop
    if args.scale_out is not None:
        form["scale_out_enabled"] = True
        form["scale_out_percent"] = args.scale_out
    if args.dca is not None:
        form["dca_enabled"] = args.dca
    if args.manual is not None:
        form["manual_enabled"] = args.manual
    return form


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="stratbook", description="Personal trading strategy catalog")
    ap.add_argument("--store", choices=["json", "sqlite", "memory"], help="override STRATBOOK_STORE")
    ap.add_argument("--path", help="override STRATBOOK_STORE_PATH")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p_list = sub.add_parser("list", help="List strategies")
    p_list.add_argument("query", nargs="?", default="", help="optional search text")

    p_search = sub.add_parser("search", help="Search name, tags and updated date")
    p_search.add_argument("query")

    p_show = sub.add_parser("show", help="Show one strategy")
    p_show.add_argument("id")
    p_show.add_argument("--json", action="store_true", help="raw stored representation")

    p_create = sub.add_parser("create", help="Create a strategy")
    _add_field_args(p_create)

    p_update = sub.add_parser("update", help="Edit a strategy (unset options keep their value)")
    p_update.add_argument("id")
    _add_field_args(p_update)

    p_delete = sub.add_parser("delete", help="Delete a strategy")
    p_delete.add_argument("id")

    p_md = sub.add_parser("export-md", help="Write a Markdown overview of the catalog")
    p_md.add_argument("--out", default=str(Path("docs") / "STRATEGIES.md"))

    sub.add_parser("shell", help="Interactive session (supports undo)")
    return ap


def _config(args: argparse.Namespace) -> CatalogConfig:
    cfg = load_config()
    if args.store:
        cfg.store = args.store
    if args.path:
        cfg.store_path = Path(args.path)
    return cfg


def _print_items(items: list[ListItem], out: TextIO) -> None:
    if not items:
        print("(no strategies)", file=out)
        return
    for n, item in enumerate(items, start=1):
        marker = "*" if item.selected else " "
        print(f"{marker}#{n} {item.id}  {item.name}  [{item.meta_line}]", file=out)


def _report(outcome: Outcome, out: TextIO, err: TextIO) -> int:
    print(outcome.message, file=out if outcome.ok else err)
    if outcome.warning:
        print(f"warning: {outcome.warning}", file=err)
    return 0 if outcome.ok else 1


def run_shell(bench: StrategyWorkbench, stdin: TextIO, out: TextIO, err: TextIO) -> int:
    form: dict[str, Any] | None = None
    last: list[ListItem] = bench.items()
    print(SHELL_HELP, file=out)
    for raw in stdin:
        try:
            parts = shlex.split(raw)
        except ValueError as exc:
            print(f"error: {exc}", file=err)
            continue
        if not parts:
            continue
        cmd, rest = parts[0].lower(), parts[1:]

        if cmd in {"quit", "exit", "q"}:
            break
        elif cmd == "help":
            print(SHELL_HELP, file=out)
        elif cmd in {"list", "ls", "search"}:
            last = bench.items(" ".join(rest))
            _print_items(last, out)
        elif cmd == "select":
            target = rest[0] if rest else ""
            if target.startswith("#") and target[1:].isdigit():
                n = int(target[1:])
                target = last[n - 1].id if 0 < n <= len(last) else ""
            strategy = bench.select(target)
            print(f"selected {strategy.name}" if strategy else "no such strategy", file=out)
            form = None
        elif cmd == "new":
            form = bench.new()
            print("new form", file=out)
        elif cmd == "edit":
            form = bench.edit()
            if form is None:
                print("select a strategy first", file=err)
            else:
                for key, value in form.items():
                    print(f"{key}={value!r}", file=out)
        elif cmd == "set":
            if form is None:
                form = bench.edit() or bench.new()
            for pair in rest:
                key, sep, value = pair.partition("=")
                if not sep:
                    print(f"ignored {pair!r} (expected key=value)", file=err)
                    continue
                form[key] = value.replace("\\n", "\n")
        elif cmd == "save":
            outcome = bench.save(form if form is not None else (bench.edit() or {}))
            _report(outcome, out, err)
            if outcome.ok:
                form = None
        elif cmd == "delete":
            _report(bench.delete(rest[0] if rest else None), out, err)
            form = None
        elif cmd == "undo":
            _report(bench.undo(), out, err)
        elif cmd == "view":
            detail = bench.structured_view()
            print(render_detail_text(detail) if detail else "select a strategy first", file=out)
        elif cmd == "json":
            print(bench.raw_view() or "select a strategy first", file=out)
        else:
            print(f"unknown command: {cmd} (try 'help')", file=err)
    return 0


def main(
    argv: list[str] | None = None,
    *,
    stdin: TextIO | None = None,
    out: TextIO | None = None,
    err: TextIO | None = None,
) -> int:
    stdin = stdin or sys.stdin
    out = out or sys.stdout
    err = err or sys.stderr
    args = build_parser().parse_args(argv)
    bench = open_session(_config(args))
    repo = bench.repository

    try:
        if args.cmd in {"list", "search"}:
            _print_items(bench.items(args.query), out)
            return 0

        if args.cmd == "show":
            strategy = repo.find_by_id(args.id)
            if strategy is None:
                print(f"strategy not found: {args.id}", file=err)
                return 1
            text = raw_view(strategy) if args.json else render_detail_text(structured_view(strategy))
            print(text, file=out)
            return 0

        if args.cmd == "create":
            bench.new()
            outcome = bench.save(_apply_field_args({}, args))
            if outcome.ok and outcome.strategy is not None:
                print(outcome.strategy.id, file=out)
            return _report(outcome, out, err)

        if args.cmd == "update":
            if bench.select(args.id) is None:
                print(f"strategy not found: {args.id}", file=err)
                return 1
            form = _apply_field_args(bench.edit() or {}, args)
            return _report(bench.save(form), out, err)

        if args.cmd == "delete":
            return _report(bench.delete(args.id), out, err)

        if args.cmd == "export-md":
            target = Path(args.out)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(catalog_markdown(repo.list()), encoding="utf-8")
            print(f"Wrote {target}", file=out)
            return 0

        if args.cmd == "shell":
            return run_shell(bench, stdin, out, err)
    except CatalogError as exc:
        print(f"error: {exc}", file=err)
        return 1
    return 1


__all__ = ["build_parser", "main", "run_shell"]
