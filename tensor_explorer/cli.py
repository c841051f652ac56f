"""
cli.py

Rich console CLI:
- tree:    load .gguf / .safetensors files, print the namespace tree.
- show:    print the detail view of one tensor or metadata key.
- version: show the package version.
"""
from __future__ import annotations

import argparse
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from tensor_explorer import __version__
from tensor_explorer.explorer import ModelExplorer
from tensor_explorer.io.discovery import DiscoveryError, collect_model_files
from tensor_explorer.logging import configure_logging
from tensor_explorer.reporting.console import render_detail, render_session
from tensor_explorer.reporting.json_reporter import write_json

console = Console()


def _add_common(sp: argparse.ArgumentParser) -> None:
    sp.add_argument(
        "paths",
        nargs="+",
        metavar="PATH",
        help="Model files, directories or glob patterns (e.g. 'model-*.safetensors')",
    )
    sp.add_argument(
        "-r", "--recursive", action="store_true", help="Search directories recursively"
    )
    sp.add_argument("--debug", action="store_true", help="Enable debug logging")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="tensorx",
        description="Explore GGUF & SafeTensors model structure without loading tensor data.",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    sub = p.add_subparsers(dest="cmd", title="Available Commands", metavar="<command>")

    sp_tree = sub.add_parser("tree", help="Print the tensor namespace tree")
    _add_common(sp_tree)
    sp_tree.add_argument(
        "--expand",
        action="append",
        default=[],
        metavar="NAME",
        help=(
            "Toggle the first group with this name (repeatable, applied in order).\n"
            "Top-level groups start expanded, nested ones collapsed."
        ),
    )
    sp_tree.add_argument(
        "--toggle",
        action="append",
        type=int,
        default=[],
        metavar="ROW",
        help="Toggle the group shown at this row number (repeatable, applied after --expand)",
    )
    mode = sp_tree.add_mutually_exclusive_group()
    mode.add_argument("--expand-all", action="store_true", help="Expand every group")
    mode.add_argument("--collapse-all", action="store_true", help="Collapse every group")
    sp_tree.add_argument(
        "--json-out", type=str, default=None, help="Write the records and tree as JSON"
    )

    sp_show = sub.add_parser("show", help="Show one tensor or metadata key")
    _add_common(sp_show)
    sp_show.add_argument("--name", required=True, help="Full tensor name or metadata key")

    sub.add_parser("version", help="Show the version of tensor-explorer")

    return p


def _load(args: argparse.Namespace) -> Optional[ModelExplorer]:
    configure_logging(debug=args.debug)
    try:
        files: List[str] = collect_model_files(args.paths, recursive=args.recursive)
    except DiscoveryError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        return None
    if not files:
        console.print("[red]No SafeTensors or GGUF files found in the specified paths.[/red]")
        return None

    session = ModelExplorer(files).load()
    if not session.files:
        console.print("[red]None of the model files could be loaded.[/red]")
        return None
    return session


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "version":
        console.print(f"Tensor Explorer Version {__version__}")
        return 0

    if args.cmd == "tree":
        session = _load(args)
        if session is None:
            return 2
        if args.expand_all:
            session.expand_all()
        elif args.collapse_all:
            session.collapse_all()
        for name in args.expand:
            if not session.toggle_by_name(name):
                console.print(f"[yellow]No group named[/yellow] {escape(name)}")
        for row in args.toggle:
            node = session.node_at(row)
            if not session.toggle(row):
                what = "no such row" if node is None else f"{escape(node.name)} is not a group"
                console.print(f"[yellow]Row {row}: {what}[/yellow]")
        render_session(session, out=console)
        if args.json_out:
            write_json(session, args.json_out)
            console.print(f"[dim]Wrote JSON report → {args.json_out}[/dim]")
        return 0

    if args.cmd == "show":
        session = _load(args)
        if session is None:
            return 2
        record = session.find_record(args.name)
        if record is None:
            console.print(f"[red]No tensor or metadata key named[/red] {escape(args.name)}")
            return 1
        render_detail(record, out=console)
        return 0

    parser.print_help()
    return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
