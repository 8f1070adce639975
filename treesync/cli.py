"""
Command line entry point: run one sync from the configured source to the
configured object store.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from loguru import logger

from . import __version__
from .config import TreeSyncConfig
from .exceptions import TreeSyncException
from .ingestion import run_ingestion
from .utils.logging_config import log_manager, install_loop_exception_handler


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="treesync",
        description="Convert tree photos to WEBP, read their GPS tags and publish a GeoJSON index.",
    )
    parser.add_argument("--root-folder", help="Folder id of the crawl root (overrides SOURCE_ROOT_FOLDER)")
    parser.add_argument("--concurrency", type=int, help="Images processed at once (overrides PIPELINE_CONCURRENCY)")
    parser.add_argument("--log-level", help="Log level (overrides LOG_LEVEL)")
    parser.add_argument("--json-logs", action="store_true", help="Emit structured JSON log records")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def build_config(args: argparse.Namespace) -> TreeSyncConfig:
    """Layer command line flags over environment configuration."""
    overrides = {"source": {}, "pipeline": {}, "logging": {}}
    if args.root_folder:
        overrides["source"]["root_folder"] = args.root_folder
    if args.concurrency is not None:
        overrides["pipeline"]["concurrency"] = args.concurrency
    if args.log_level:
        overrides["logging"]["level"] = args.log_level
    if args.json_logs:
        overrides["logging"]["enable_json"] = True
    return TreeSyncConfig(**overrides)


async def _run(config: TreeSyncConfig) -> None:
    install_loop_exception_handler()
    await run_ingestion(config)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = build_config(args)

    try:
        log_manager.configure(config.logging)
    except TreeSyncException as e:
        print(f"treesync: {e}", file=sys.stderr)
        return 1

    try:
        asyncio.run(_run(config))
    except TreeSyncException:
        # Already logged by run_ingestion
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
