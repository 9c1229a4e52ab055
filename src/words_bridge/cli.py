"""
Command-line entry point for the Words bridge.

Runs one bridge operation and prints the response as JSON:

    words-bridge status --host 192.168.1.20
    words-bridge playlists
    words-bridge export 3F2A9C1E-... --format pptx
    words-bridge --config config.yaml --timeout 30 libraries

Exit code is 0 when the tool succeeded, 1 otherwise (2 for usage errors).
"""
import argparse
import json
import logging
import sys
from typing import List, Optional

from .bridge import CommandBridge
from .config import BridgeConfig
from .exceptions import BridgeError
from .logging_utils import add_logging_args, configure_logging, resolve_log_level

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="words-bridge",
        description="Invoke ProPresenter Words CLI operations and print a uniform JSON response.",
    )
    parser.add_argument("--config", metavar="PATH", help="YAML configuration file")
    parser.add_argument("--timeout", type=float, metavar="SECONDS", help="Override tool.timeout_seconds")
    add_logging_args(parser)

    connection = argparse.ArgumentParser(add_help=False)
    connection.add_argument("--host", help="ProPresenter host (default: config / PROPRESENTER_HOST)")
    connection.add_argument("--port", type=int, help="ProPresenter port (default: config / PROPRESENTER_PORT)")

    sub = parser.add_subparsers(dest="command", required=True)

    export = sub.add_parser("export", parents=[connection], help="Export a playlist")
    export.add_argument("playlist_id", help="Playlist UUID")
    export.add_argument(
        "--format",
        dest="export_format",
        default="default",
        help="pptx, json or default (other values use the default export unless strict_formats is set)",
    )

    sub.add_parser("playlists", parents=[connection], help="List playlists as JSON")
    sub.add_parser("status", parents=[connection], help="Check the ProPresenter connection")
    sub.add_parser("libraries", parents=[connection], help="List libraries as JSON")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(level=resolve_log_level(args), log_file=args.log_file, force=True)

    overrides = {}
    if args.timeout is not None:
        overrides = {"tool": {"timeout_seconds": args.timeout}}
    try:
        config = BridgeConfig(args.config, data=overrides)
    except (FileNotFoundError, BridgeError) as e:
        parser.error(str(e))

    host = args.host or config.default_host
    port = args.port if args.port is not None else config.default_port
    bridge = CommandBridge(config)

    try:
        if args.command == "export":
            response = bridge.export(args.playlist_id, args.export_format, host, port)
        elif args.command == "playlists":
            response = bridge.list_playlists(host, port)
        elif args.command == "status":
            response = bridge.status(host, port)
        else:
            response = bridge.libraries(host, port)
    except BridgeError as e:
        parser.error(str(e))
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130

    print(json.dumps(response.to_dict(), indent=2))
    return 0 if response.success else 1


if __name__ == "__main__":
    sys.exit(main())
