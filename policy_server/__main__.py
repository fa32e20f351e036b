"""Command-line entry point: policy-server [--transport stdio|http]."""

import argparse
import asyncio
import logging
import signal
import sys

from . import __version__
from .config import load_config, settings
from .engine.core.errors import ConfigError
from .models import TransportType

logger = logging.getLogger("policy_server")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="policy-server",
        description="Serve § sections from Markdown policy files over MCP",
    )
    parser.add_argument(
        "--transport",
        choices=[t.value for t in TransportType],
        default=TransportType.STDIO.value,
        help="stdio (default) or http",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="policies.json path, inline JSON, or glob (overrides MCP_POLICY_CONFIG)",
    )
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--no-watch", action="store_true", help="Disable file watching")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def configure_logging(level: str) -> None:
    """Send all logs to stderr; stdout is reserved for the stdio transport."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def run_stdio(config, watch: bool) -> None:
    from .mcp.stdio import serve_stdio
    from .policy_engine import PolicyEngine

    engine = PolicyEngine.create(config, debounce_ms=settings.rebuild_debounce_ms, watch=watch)

    def shutdown(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, closing watchers")
        engine.close()
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        asyncio.run(serve_stdio(engine))
    finally:
        engine.close()


def run_http(config, host: str, port: int, watch: bool) -> None:
    import uvicorn

    from .server import create_app

    uvicorn.run(create_app(config, watch=watch), host=host, port=port)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.log_level)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error(f"Fatal error during startup: {e}")
        return 1

    logger.info(f"Base directory: {config.base_dir}")
    watch = settings.watch_files and not args.no_watch

    if args.transport == TransportType.HTTP:
        run_http(config, args.host, args.port, watch)
    else:
        run_stdio(config, watch)
    return 0


if __name__ == "__main__":
    sys.exit(main())
