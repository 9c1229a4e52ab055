"""
Request types and argument-vector builders for the Words CLI.

Each request knows how to render the arguments that follow the tool command
prefix (``npm run dev --`` by default). Rendering is pure: nothing here touches
a process, so the vectors can be checked directly in tests.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Union

from .exceptions import InvalidRequestError, UnsupportedFormatError

logger = logging.getLogger(__name__)

MAX_PORT = 65535


class Operation(str, Enum):
    """Tool operations the bridge can invoke."""

    EXPORT = "export"
    PLAYLISTS = "playlists"
    STATUS = "status"
    LIBRARIES = "libraries"

    def label(self) -> str:
        """Human-friendly label used in timeout/cancel messages."""
        labels = {
            Operation.EXPORT: "Export",
            Operation.PLAYLISTS: "Playlist listing",
            Operation.STATUS: "Status check",
            Operation.LIBRARIES: "Library listing",
        }
        return labels.get(self, self.value)

    def launch_failure_prefix(self) -> str:
        """Prefix for the diagnostic shown when the tool cannot be started."""
        prefixes = {
            Operation.EXPORT: "Failed to run export",
            Operation.PLAYLISTS: "Failed to get playlists",
            Operation.STATUS: "Connection failed",
            Operation.LIBRARIES: "Failed to get libraries",
        }
        return prefixes.get(self, f"Failed to run {self.value}")


class ExportFormat(str, Enum):
    """Output formats understood by the export operation."""

    DEFAULT = "default"
    PPTX = "pptx"
    JSON = "json"

    @classmethod
    def parse(cls, value: Union[str, "ExportFormat", None], strict: bool = False) -> "ExportFormat":
        """
        Resolve a caller-supplied format.

        Matching ignores case and surrounding whitespace. Anything that is not
        ``pptx`` or ``json`` falls back to DEFAULT, unless ``strict`` is set,
        in which case values other than empty/``default`` raise.

        Raises:
            UnsupportedFormatError: strict mode and the value is unknown
        """
        if isinstance(value, ExportFormat):
            return value
        if value is None:
            return cls.DEFAULT

        normalized = str(value).strip().lower()
        if not normalized:
            return cls.DEFAULT
        for member in cls:
            if member.value == normalized:
                return member

        if strict:
            raise UnsupportedFormatError(str(value))
        logger.warning("Unknown export format %r, using default export", value)
        return cls.DEFAULT

    @classmethod
    def is_known(cls, value: Union[str, "ExportFormat", None]) -> bool:
        """True when ``value`` resolves without falling back (empty counts as default)."""
        if value is None or isinstance(value, ExportFormat):
            return True
        normalized = str(value).strip().lower()
        return not normalized or normalized in {member.value for member in cls}


def validate_port(port: Any) -> int:
    """Return ``port`` as an int, or raise if it is not a 16-bit unsigned value."""
    if isinstance(port, bool) or not isinstance(port, int):
        raise InvalidRequestError(f"Port must be an integer, got {port!r}")
    if port < 0 or port > MAX_PORT:
        raise InvalidRequestError(f"Port out of range (0-{MAX_PORT}): {port}")
    return port


def _connection_args(host: str, port: int) -> List[str]:
    return ["--host", host, "--port", str(port)]


@dataclass(frozen=True)
class ConnectionRequest:
    """Base for requests that only need a ProPresenter host and port."""

    host: str
    port: int

    operation = None  # type: Optional[Operation]

    def __post_init__(self) -> None:
        validate_port(self.port)
        if not isinstance(self.host, str):
            raise InvalidRequestError(f"Host must be a string, got {self.host!r}")

    def to_args(self) -> List[str]:
        raise NotImplementedError


@dataclass(frozen=True)
class ListRequest(ConnectionRequest):
    """List all playlists as JSON."""

    operation = Operation.PLAYLISTS

    def to_args(self) -> List[str]:
        return ["playlists", "--json"] + _connection_args(self.host, self.port)


@dataclass(frozen=True)
class StatusRequest(ConnectionRequest):
    """Check the connection and print the current state."""

    operation = Operation.STATUS

    def to_args(self) -> List[str]:
        return ["status"] + _connection_args(self.host, self.port)


@dataclass(frozen=True)
class LibrariesRequest(ConnectionRequest):
    """List presentation libraries as JSON."""

    operation = Operation.LIBRARIES

    def to_args(self) -> List[str]:
        return ["libraries", "--json"] + _connection_args(self.host, self.port)


@dataclass(frozen=True)
class ExportRequest:
    """Export one playlist, as lyrics text/JSON or as a PowerPoint deck."""

    target_id: str
    export_format: ExportFormat
    host: str
    port: int
    # Raw value when export_format did not name a known format
    unrecognized_format: Optional[str] = field(default=None, init=False, compare=False, repr=False)

    operation = Operation.EXPORT

    def __post_init__(self) -> None:
        validate_port(self.port)
        if not isinstance(self.host, str):
            raise InvalidRequestError(f"Host must be a string, got {self.host!r}")
        if not isinstance(self.target_id, str):
            raise InvalidRequestError(f"Playlist id must be a string, got {self.target_id!r}")
        # Plain strings are accepted; unknown ones render as the default export
        # and are kept so a strict-mode bridge can refuse them.
        raw = self.export_format
        if ExportFormat.is_known(raw):
            object.__setattr__(self, "export_format", ExportFormat.parse(raw))
        else:
            object.__setattr__(self, "export_format", ExportFormat.DEFAULT)
            object.__setattr__(self, "unrecognized_format", str(raw))

    def to_args(self) -> List[str]:
        if self.export_format == ExportFormat.PPTX:
            args = ["pptx", self.target_id]
        else:
            args = ["export", self.target_id]
            if self.export_format == ExportFormat.JSON:
                args.append("--json")
        return args + _connection_args(self.host, self.port)


BridgeRequest = Union[ExportRequest, ListRequest, StatusRequest, LibrariesRequest]
