"""cli entrypoint for canvas autorename."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .core.config import get_settings_path, load_settings, parse_settings
from .core.errors import AutoRenameError
from .core.service import RenameService, Trigger
from .core.store import VaultStore

console = Console()


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def build_service(args) -> RenameService:
    """service for the vault, with command-line overrides applied."""
    vault = Path(args.vault)
    settings = load_settings(get_settings_path(vault))
    overrides = {}
    if args.target is not None:
        overrides["target_document_path"] = args.target
    if args.prefix is not None:
        overrides["prefix"] = args.prefix
    if overrides:
        settings = parse_settings({**settings.model_dump(), **overrides})
    return RenameService(VaultStore(vault), settings)


async def _watch(service: RenameService) -> None:
    await service.start()
    try:
        # first pass right away instead of waiting a full interval
        service.request_tick()
        await asyncio.Event().wait()
    finally:
        await service.stop()


def cmd_watch(args) -> int:
    service = build_service(args)
    if not service.settings.enabled:
        console.print("[yellow]no target canvas configured[/yellow] - run 'settings' or pass --target")
        return 1
    try:
        asyncio.run(_watch(service))
    except KeyboardInterrupt:
        pass
    return 0


def cmd_plan(args) -> int:
    service = build_service(args)
    if not service.settings.enabled:
        console.print("[yellow]no target canvas configured[/yellow]")
        return 1
    plan = asyncio.run(service.preview())

    table = Table(title=f"{service.settings.target_document_path}: {plan.qualifying} image(s)")
    table.add_column("node")
    table.add_column("current")
    table.add_column("new")
    for entry in plan.entries:
        table.add_row(entry.node_id, entry.old_path, entry.new_path)
    console.print(table)

    for err in plan.skipped:
        console.print(f"[yellow]skipped[/yellow] {err}")
    if not plan.entries:
        console.print("nothing to rename")
    return 0


def cmd_run(args) -> int:
    service = build_service(args)
    result = asyncio.run(service.run_pass(Trigger.MANUAL))
    console.print(f"{result.status.value}: {len(result.applied.renamed)} renamed")
    for entry, reason in result.applied.abandoned:
        console.print(f"[red]failed[/red] {entry.old_path} -> {entry.new_path}: {reason}")
    if result.message:
        console.print(result.message)
    return 0 if not result.applied.abandoned else 1


def cmd_settings(args) -> int:
    from .app import run

    run(args.vault)
    return 0


def cmd_serve(args) -> int:
    from .api.server import serve

    serve(Path(args.vault), host=args.host, port=args.port, watch=not args.no_watch)
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="canvas autorename - name canvas images after their grid cell"
    )
    parser.add_argument("vault", help="vault root directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    parser.add_argument("--target", "-t", help="target canvas, overrides settings")
    parser.add_argument("--prefix", "-p", help="filename prefix, overrides settings")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("watch", help="rename on a timer until interrupted").set_defaults(func=cmd_watch)
    sub.add_parser("plan", help="show pending renames").set_defaults(func=cmd_plan)
    sub.add_parser("run", help="run one pass").set_defaults(func=cmd_run)
    sub.add_parser("settings", help="edit settings").set_defaults(func=cmd_settings)

    serve_parser = sub.add_parser("serve", help="run the http api")
    serve_parser.add_argument("--host", default="127.0.0.1", help="host to bind")
    serve_parser.add_argument("--port", type=int, default=8000, help="port to bind")
    serve_parser.add_argument("--no-watch", action="store_true", help="disable the timer")
    serve_parser.set_defaults(func=cmd_serve)

    args = parser.parse_args()
    setup_logging(args.verbose)

    try:
        sys.exit(args.func(args))
    except AutoRenameError as e:
        console.print(f"[red]error:[/red] {e}")
        sys.exit(2)


if __name__ == "__main__":
    main()
