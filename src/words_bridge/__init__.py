"""
ProPresenter Words Bridge

Lets the desktop and web front ends run ProPresenter Words CLI operations
(export, playlists, status, libraries) as child processes and get back one
uniform response shape.
Architecture: front end -> CommandBridge -> CommandExecutor -> `npm run dev -- <subcommand>`.
"""
__version__ = "1.0.0"

from .bridge import BridgeResponse, CommandBridge, to_response
from .commands import ExportFormat, ExportRequest, LibrariesRequest, ListRequest, Operation, StatusRequest
from .config import BridgeConfig
from .exceptions import BridgeError, ConfigError, InvalidRequestError, UnsupportedFormatError
from .executor import CancellationToken, CommandExecutor, CommandOutcome, CommandSpec, OutcomeKind, SubprocessExecutor

__all__ = [
    "BridgeConfig",
    "BridgeError",
    "BridgeResponse",
    "CancellationToken",
    "CommandBridge",
    "CommandExecutor",
    "CommandOutcome",
    "CommandSpec",
    "ConfigError",
    "ExportFormat",
    "ExportRequest",
    "InvalidRequestError",
    "LibrariesRequest",
    "ListRequest",
    "Operation",
    "OutcomeKind",
    "StatusRequest",
    "SubprocessExecutor",
    "UnsupportedFormatError",
    "to_response",
]
