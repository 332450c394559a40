"""CLI interface for chatbridge."""

import argparse
import asyncio
import json
import logging
import signal
import sys
from datetime import UTC, datetime
from pathlib import Path

import uvicorn

from chatbridge.api.app import attach_registry, create_app
from chatbridge.core.config import Config, load_config
from chatbridge.core.logging import setup_logging
from chatbridge.runtime.bridge import ChatBridge
from chatbridge.runtime.session.store import SessionStore

logger = logging.getLogger(__name__)


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    def signal_handler() -> None:
        stop_event.set()

    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, signal_handler)
    loop.add_signal_handler(signal.SIGTERM, signal_handler)


async def run_api_server(args: argparse.Namespace, config: Config, bridge: ChatBridge) -> None:
    """Start the bridge together with the FastAPI server."""
    app = create_app({"cors_origins": config.api.cors_origins})
    attach_registry(app, bridge.registry)

    uvicorn_config = uvicorn.Config(
        app,
        host=args.api_host or config.api.host,
        port=args.api_port or config.api.port,
        log_level="info" if not args.verbose else "debug",
    )
    server = uvicorn.Server(uvicorn_config)

    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    await bridge.start(sessions=args.sessions)
    server_task = asyncio.create_task(server.serve())

    try:
        await stop_event.wait()
        logger.info("Shutdown signal received, stopping...")
    finally:
        await bridge.stop()
        server.should_exit = True
        await server_task


async def run_bridge_only(args: argparse.Namespace, bridge: ChatBridge) -> None:
    """Run the bridge without the API server."""
    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    await bridge.start(sessions=args.sessions)
    await stop_event.wait()
    logger.info("Shutdown signal received, stopping...")
    await bridge.stop()


def run_export(args: argparse.Namespace, config: Config) -> None:
    """Write the persisted session records as a JSON export."""
    records = SessionStore(config.data_dir).load_records()
    export = {
        "export_date": datetime.now(UTC).isoformat(),
        "total_sessions": len(records),
        "sessions": [record.to_dict() for record in records],
    }
    payload = json.dumps(export, indent=2)
    if args.output:
        args.output.write_text(payload, encoding="utf-8")
        logger.info(f"Exported {len(records)} session(s) to {args.output}")
    else:
        sys.stdout.write(payload + "\n")


async def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="chatbridge - multi-session conversational bridge")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    export_parser = subparsers.add_parser("export", help="Export persisted session records as JSON")
    export_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Write the export to this file instead of stdout",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to configuration file",
    )
    parser.add_argument(
        "-s",
        "--sessions",
        type=int,
        default=0,
        help="Number of new sessions to create at startup (default: 0)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    # API server flags
    parser.add_argument(
        "--api",
        action="store_true",
        help="Start FastAPI management server",
    )
    parser.add_argument(
        "--api-host",
        type=str,
        default=None,
        help="API server host (default: api.host from config)",
    )
    parser.add_argument(
        "--api-port",
        type=int,
        default=None,
        help="API server port (default: api.port from config)",
    )

    args = parser.parse_args()

    config = load_config(args.config)
    setup_logging(
        level="DEBUG" if args.verbose else config.logging.level,
        directory=config.logging.directory,
        max_size_mb=config.logging.max_size_mb,
        backup_count=config.logging.backup_count,
    )

    if args.command == "export":
        run_export(args, config)
        return

    if not args.api and args.sessions <= 0:
        parser.error("Either --sessions N or --api is required")

    bridge = ChatBridge(config)

    if args.api:
        await run_api_server(args, config, bridge)
        return

    await run_bridge_only(args, bridge)


def run() -> None:
    """Entry point for the chatbridge console script."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
