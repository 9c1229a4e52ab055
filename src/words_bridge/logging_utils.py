"""
Unified logging utilities for the Words bridge.

All entrypoints (CLI, API, desktop client) should call configure_logging()
once at startup.
"""
import logging
import os
import sys
from pathlib import Path
from typing import Optional

# Track whether logging has been configured
_logging_configured = False
_HANDLER_TAG = "_wb_handler"
_CONSOLE_FMT = '%(asctime)s | %(levelname)-5s | %(name)s | %(message)s'
_FILE_FMT = '%(asctime)s | %(levelname)-5s | %(name)s | %(threadName)s | %(funcName)s:%(lineno)d | %(message)s'


def configure_logging(
    level: str = 'INFO',
    log_file: Optional[str] = None,
    file_level: str = 'DEBUG',
    force: bool = False,
    console: bool = True,
) -> None:
    """
    Configure logging for the entire application.

    Should be called once at application startup (in main entrypoint).
    Subsequent calls are ignored unless force=True.

    Args:
        level: Console log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path to log file
        file_level: Log level for file output (default DEBUG)
        force: If True, reconfigure even if already configured
        console: Whether to add a console handler

    Environment variable overrides:
        LOG_LEVEL: Override the level parameter
        LOG_FILE: Override the log_file parameter
    """
    global _logging_configured

    if _logging_configured and not force:
        return

    # Environment overrides
    level = os.getenv('LOG_LEVEL', level).upper()
    if log_file is None:
        log_file = os.getenv('LOG_FILE')

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)  # Capture all, filter at handler level

    # Remove handlers we previously installed (tagged)
    for handler in root.handlers[:]:
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)
            handler.close()

    if console:
        # stderr: stdout carries the CLI's JSON response
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(getattr(logging, level, logging.INFO))
        console_handler.setFormatter(logging.Formatter(_CONSOLE_FMT, datefmt='%H:%M:%S'))
        setattr(console_handler, _HANDLER_TAG, True)
        root.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(getattr(logging, file_level.upper(), logging.DEBUG))
        file_handler.setFormatter(logging.Formatter(_FILE_FMT, datefmt='%Y-%m-%d %H:%M:%S'))
        setattr(file_handler, _HANDLER_TAG, True)
        root.addHandler(file_handler)

    # Quiet noisy third-party loggers
    for noisy in ['httpx', 'uvicorn.access', 'asyncio']:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _logging_configured = True

    logging.getLogger(__name__).debug(
        "Logging configured: level=%s, file=%s", level, log_file or 'none'
    )


def add_logging_args(parser) -> None:
    """
    Add standard logging CLI arguments to an argparse parser.

    Usage:
        parser = argparse.ArgumentParser()
        add_logging_args(parser)
        args = parser.parse_args()

        configure_logging(level=resolve_log_level(args), log_file=args.log_file)
    """
    group = parser.add_argument_group('logging')
    group.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='WARNING',
        help='Set logging level (default: WARNING)'
    )
    group.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging (shortcut for --log-level DEBUG)'
    )
    group.add_argument(
        '--quiet',
        action='store_true',
        help='Only log errors (shortcut for --log-level ERROR)'
    )
    group.add_argument(
        '--log-file',
        type=str,
        metavar='PATH',
        help='Write logs to file'
    )


def resolve_log_level(args) -> str:
    """
    Resolve log level from parsed arguments.

    Priority: --debug > --quiet > --log-level
    """
    if getattr(args, 'debug', False):
        return 'DEBUG'
    if getattr(args, 'quiet', False):
        return 'ERROR'
    return getattr(args, 'log_level', 'WARNING')
