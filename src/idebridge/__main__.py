"""Run the bridge server standalone.

Usage:
    python -m idebridge --workspace /path/to/project

The server runs headless (diff views are kept in memory) until interrupted,
then removes its discovery files.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import signal
import sys
from dataclasses import replace
from typing import TYPE_CHECKING

from idebridge.logging import get_logger, setup_logging

if TYPE_CHECKING:
    from idebridge.config import Config

log = get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="idebridge",
        description="Local editor bridge for a command-line assistant",
    )
    parser.add_argument(
        "--workspace",
        "-w",
        action="append",
        default=[],
        help="Workspace folder (repeatable). Defaults to the current directory.",
    )
    parser.add_argument(
        "--untrusted",
        action="store_true",
        help="Report the workspace as untrusted",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        type=int,
        choices=range(0, 5),
        default=None,
        help="Log verbosity: 0=error, 1=warning, 2=info, 3=verbose, 4=trace",
    )
    return parser


async def _run(folders: list[str], trusted: bool, config: Config) -> None:
    from idebridge.diff import DiffContentProvider, DiffManager, InMemoryDiffRenderer
    from idebridge.server import IDEServer
    from idebridge.workspace import Workspace

    workspace = Workspace(folders, is_trusted=trusted)
    content_provider = DiffContentProvider()
    diff_manager = DiffManager(InMemoryDiffRenderer(content_provider), content_provider)
    server = IDEServer(diff_manager, workspace, config=config)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop_event.set)

    await server.start()
    log.info("Ready on port %d (workspace: %s)", server.port, workspace.workspace_path or "-")
    try:
        await stop_event.wait()
    finally:
        log.info("Shutting down...")
        await server.stop()


def main(argv: list[str] | None = None) -> None:
    """Run the idebridge server."""
    from idebridge.config import load_config

    args = build_parser().parse_args(argv)
    folders = [os.path.abspath(path) for path in args.workspace] or [os.getcwd()]

    config = load_config(project_root=folders[0])
    logging_config = config.logging
    if args.verbose is not None:
        logging_config = replace(logging_config, verbose=args.verbose)
    setup_logging(logging_config)

    log.info("Starting idebridge...")
    try:
        asyncio.run(_run(folders, trusted=not args.untrusted, config=config))
    except KeyboardInterrupt:
        pass
    log.info("Exiting...")


if __name__ == "__main__":
    main()
