"""
=============================================================================
ELEPHINA CLI ENTRY POINT
=============================================================================

    # Run with defaults (127.0.0.1:8080, settings from the environment)
    python -m elephina

    # Load a .env file first
    python -m elephina --env-file .env

    # Listen on all interfaces with 32 workers
    python -m elephina --host 0.0.0.0 --workers 32

Command-line flags override the environment, which overrides the .env
file.

=============================================================================
"""

import argparse
import logging
import sys

from . import __version__
from .app import create_app
from .config import AppConfig, setup_logging
from .server import Server


logger = logging.getLogger("elephina")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="elephina",
        description="JSON REST API server with routing, middleware and token auth",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m elephina                        # Run with defaults
  python -m elephina --env-file .env        # Read settings from .env
  python -m elephina --port 3000            # Custom port
  python -m elephina --host 0.0.0.0         # Listen on all interfaces
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", default=None, help="Host to bind to (env: HTTP_HOST)")
    parser.add_argument("--port", "-p", type=int, default=None, help="Port to listen on (env: HTTP_PORT)")
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Number of worker threads (env: HTTP_WORKERS)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # APPLICATION ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--env-file", "-e", default=".env", help="Path to a .env file (default: .env)")
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (env: LOG_LEVEL)",
    )
    parser.add_argument("--version", "-v", action="version", version=f"Elephina {__version__}")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config = AppConfig.from_env(args.env_file)
    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.max_workers = args.workers
    if args.log_level is not None:
        config.log_level = args.log_level

    try:
        config.validate()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    setup_logging(config)

    try:
        app = create_app(config)
        Server(app, config).serve_forever()
    except OSError as e:
        logger.error(f"Server failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
