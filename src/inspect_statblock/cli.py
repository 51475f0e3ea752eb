"""CLI entry point for inspect-statblock."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import inspect_statblock.app.runtime
import inspect_statblock.app.settings_store
import inspect_statblock.host.world_file
import inspect_statblock.io.logging_setup
import inspect_statblock.render
import inspect_statblock.visibility.initializer
from inspect_statblock.visibility.store import resolve_flag_owner
from rich.console import Console
from rich.text import Text

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inspect-statblock",
        description="Render a token's statblock and manage per-element visibility",
    )
    parser.add_argument("world", type=str, help="Path to a world JSON file")
    parser.add_argument("--token", type=str, default=None, help="Token id to inspect")
    parser.add_argument(
        "--player",
        action="store_true",
        default=False,
        help="View as an unprivileged player (hidden values are redacted)",
    )
    parser.add_argument(
        "--init",
        action="store_true",
        default=False,
        help="Seed default visibility flags when the token's actor has none",
    )
    bulk = parser.add_mutually_exclusive_group()
    bulk.add_argument("--hide-all", action="store_true", default=False, help="Hide every element")
    bulk.add_argument("--show-all", action="store_true", default=False, help="Show every element")
    parser.add_argument(
        "--toggle",
        action="append",
        default=[],
        metavar="KEY",
        help="Toggle an element key (repeatable; group headers toggle their children)",
    )
    parser.add_argument(
        "--storage-mode",
        choices=("per-actor", "per-token"),
        default=None,
        help="Flag storage mode for this run. Env: INSPECT_STATBLOCK_FLAG_STORAGE_MODE",
    )
    parser.add_argument(
        "--no-keys", action="store_true", default=False, help="Do not print element keys"
    )
    parser.add_argument(
        "--list-systems",
        action="store_true",
        default=False,
        help="List registered system handlers and exit",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Log level (default: WARNING). Env: INSPECT_STATBLOCK_LOG_LEVEL",
    )
    return parser


async def _run(args, runtime, world_path: Path, console: Console) -> int:
    world = runtime.world
    token = world.get_token(args.token)
    if token is None:
        console.print(Text(f"Unknown token: {args.token}", style="bold red"))
        return 2

    mutated = False
    if args.init:
        owner = resolve_flag_owner(
            world,
            token.actor,
            token,
            inspect_statblock.app.settings_store.flag_storage_mode(runtime.settings),
        )
        if owner is not None:
            written = await inspect_statblock.visibility.initializer.initialize_default_flags(
                owner,
                world.active_system_id(owner),
                runtime.registry,
                runtime.store,
                inspect_statblock.app.settings_store.default_visibility_settings(runtime.settings),
            )
            mutated = written is not None

    session = await runtime.windows.open_for_token(token)
    if session is None:
        for note in runtime.notifier.history:
            console.print(Text(note.message, style="yellow"))
        return 1

    wants_change = bool(args.toggle or args.hide_all or args.show_all)
    if wants_change and not runtime.viewer_is_privileged:
        console.print(Text("Visibility changes require a privileged viewer.", style="yellow"))

    for key in args.toggle:
        if await session.toggle_visibility(key) is not None:
            mutated = True
        await runtime.windows.wait_idle()
    if args.hide_all and await session.hide_all() is not None:
        mutated = True
    if args.show_all and await session.show_all() is not None:
        mutated = True
    await runtime.windows.wait_idle()

    for note in runtime.notifier.history:
        console.print(Text(note.message, style="yellow"))
    console.print(Text(session.title, style="bold reverse"))
    output = session.output
    if args.no_keys and session.sids is not None:
        output = inspect_statblock.render.render_from_sids(session.sids, show_keys=False)
    console.print(output)

    if mutated:
        inspect_statblock.host.world_file.save_world(world, world_path)
    return 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    inspect_statblock.io.logging_setup.configure("cli", level=args.log_level)
    console = Console()
    world_path = Path(args.world)
    try:
        world = inspect_statblock.host.world_file.load_world(world_path)
    except (OSError, ValueError) as e:
        console.print(Text(f"Could not load world file {world_path}: {e}", style="bold red"))
        return 2

    overrides = {}
    if args.storage_mode:
        overrides[inspect_statblock.app.settings_store.FLAG_STORAGE_MODE] = args.storage_mode
    runtime = inspect_statblock.app.runtime.create_runtime(
        world,
        viewer_is_privileged=not args.player,
        settings_overrides=overrides or None,
        persist_settings=False,
    )
    try:
        if args.list_systems:
            for system_id in runtime.registry.system_ids():
                console.print(system_id)
            return 0
        if not args.token:
            parser.error("--token is required unless --list-systems is given")
        return asyncio.run(_run(args, runtime, world_path, console))
    finally:
        runtime.shutdown()


if __name__ == "__main__":
    sys.exit(main())
