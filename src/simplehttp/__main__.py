"""
=============================================================================
SIMPLEHTTP CLI ENTRY POINT
=============================================================================

    # Serve the current directory on 127.0.0.1:5500
    python -m simplehttp

    # Serve ./public on every interface, port 8000
    python -m simplehttp --root ./public --host 0.0.0.0 --port 8000

    # One connection at a time, no worker threads
    python -m simplehttp --dispatch sequential

    # Always answer "HTTP/2" on the status line
    python -m simplehttp --response-version HTTP/2

Settings not given on the command line come from SIMPLEHTTP_* environment
variables (see ServerConfig.from_env), then from the ServerConfig defaults.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ServerConfig, DISPATCH_MODES, LOG_FORMATS
from .http import ProtocolVersion
from .server import HTTPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="simplehttp",
        description="Minimal static file HTTP server over raw TCP sockets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m simplehttp                          # Serve cwd on 127.0.0.1:5500
  python -m simplehttp --root ./public          # Serve another directory
  python -m simplehttp --port 0                 # Let the OS pick a port
  python -m simplehttp --dispatch sequential    # No worker threads
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on (default: 5500)")
    parser.add_argument(
        "--buffer-size",
        type=int,
        help="Maximum request bytes read per connection (default: 1024)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILE SERVING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--root", "-r", help="Directory to serve (default: current directory)")
    parser.add_argument(
        "--no-confine",
        action="store_true",
        help="Allow targets that resolve outside the root directory"
    )
    parser.add_argument(
        "--response-version",
        choices=[v.value for v in ProtocolVersion],
        help="Pin the status-line version instead of echoing the request's"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--dispatch", "-d", choices=DISPATCH_MODES, help="Connection dispatch mode")
    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Initial worker threads; max will be 2x this (pool dispatch only)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )
    parser.add_argument("--log-format", choices=LOG_FORMATS, help="Access log format (default: text)")

    parser.add_argument("--version", "-v", action="version", version=f"simplehttp {__version__}")

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment-derived config with command-line values laid over it."""
    config = ServerConfig.from_env()

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.buffer_size is not None:
        config.buffer_size = args.buffer_size
    if args.root is not None:
        config.root_dir = args.root
    if args.no_confine:
        config.confine_to_root = False
    if args.response_version is not None:
        config.response_version = ProtocolVersion(args.response_version)
    if args.dispatch is not None:
        config.dispatch = args.dispatch
    if args.workers is not None:
        config.min_workers = args.workers
        config.max_workers = args.workers * 2
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format

    return config


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        server = HTTPServer(config_from_args(args))
        server.run()
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
