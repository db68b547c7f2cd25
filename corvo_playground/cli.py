"""
Terminal front end: bootstrap the runtime and run a Corvo program once.

Usage::

    corvo-playground program.corvo
    corvo-playground --url "https://…/playground?code=…"
    corvo-playground program.corvo --share-base https://corvo.example/playground
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console

from .core.config import PlaygroundConfig
from .core.exceptions import (
    ConfigurationError,
    ExecutionError,
    PlaygroundError,
    ShareLinkError,
    format_error_message,
)
from .core.logging import setup_logging
from .runtime.session import Session
from .share import source_from_url
from .ui.console import ConsoleView
from .ui.controller import PlaygroundController


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="corvo-playground",
        description="Load the Corvo interpreter and run a program.",
    )
    parser.add_argument(
        "program",
        nargs="?",
        type=Path,
        help="Corvo source file to run.",
    )
    parser.add_argument(
        "--url",
        help="Share link carrying the program to run instead of a file.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="YAML or JSON playground configuration.",
    )
    parser.add_argument(
        "--share-base",
        help="Print a share link for the program based on this URL.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging and step timings.",
    )
    return parser.parse_args(argv)


def _read_program(args: argparse.Namespace, config: PlaygroundConfig) -> str | None:
    if args.url:
        return source_from_url(args.url, param=config.share.query_param)
    return args.program.read_text(encoding="utf-8")


async def _run(
    source: str, args: argparse.Namespace, config: PlaygroundConfig, console: Console
) -> int:
    view = ConsoleView(console, source=source)
    async with Session(config) as session:
        controller = PlaygroundController(session, view)
        await controller.start()
        if session.bootstrap.error is not None:
            return 1

        result = await controller.handle_run()
        if args.share_base:
            console.print(controller.share_url(args.share_base))
        return 1 if isinstance(result, ExecutionError) else 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    console = Console()
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    if args.program is None and not args.url:
        console.print("[red]Give a program file or --url.[/red]")
        return 2
    if args.program is not None and not args.program.exists():
        console.print(f"Program file not found: {args.program}", style="red")
        return 2

    try:
        config = (
            PlaygroundConfig.load_from_file(args.config)
            if args.config
            else PlaygroundConfig.from_dict({})
        )
    except ConfigurationError as e:
        console.print(str(e), style="red")
        return 2
    if args.verbose:
        config.debug.enabled = True

    try:
        source = _read_program(args, config)
    except ShareLinkError as e:
        console.print(format_error_message(e), style="red")
        return 2
    if source is None:
        console.print("[red]The link does not carry a program.[/red]")
        return 2

    try:
        return asyncio.run(_run(source, args, config, console))
    except PlaygroundError as e:
        console.print(str(e), style="red")
        return 1


if __name__ == "__main__":
    sys.exit(main())
