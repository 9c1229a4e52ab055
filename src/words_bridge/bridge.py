"""
Command Bridge - runs Words CLI operations and normalizes their results

The bridge turns a typed request into a tool invocation, runs it through a
CommandExecutor and returns either the tagged CommandOutcome (run) or the
flattened BridgeResponse the front end consumes (respond and the per-operation
helpers).

Usage:
    bridge = CommandBridge(BridgeConfig("config.yaml"))
    response = bridge.export("3F2A...", "pptx", "127.0.0.1", 1025)
    if response.success:
        print(response.message)

Every call is independent: the bridge keeps no per-request state, so one
instance can serve concurrent callers.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .commands import (
    BridgeRequest,
    ExportFormat,
    ExportRequest,
    LibrariesRequest,
    ListRequest,
    Operation,
    StatusRequest,
)
from .config import BridgeConfig
from .exceptions import UnsupportedFormatError
from .executor import (
    CancellationToken,
    CommandExecutor,
    CommandOutcome,
    CommandSpec,
    OutcomeKind,
    SubprocessExecutor,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BridgeResponse:
    """Uniform response handed back to the front end."""

    success: bool
    message: str
    file_path: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "success": self.success,
            "message": self.message,
            "file_path": self.file_path,
        }


def to_response(outcome: CommandOutcome, operation: Operation, timeout_s: Optional[float] = None) -> BridgeResponse:
    """Flatten a tagged outcome into the response shape callers expect."""
    kind = outcome.kind
    if kind == OutcomeKind.SUCCEEDED:
        return BridgeResponse(success=True, message=outcome.stdout)
    if kind == OutcomeKind.TOOL_FAILED:
        return BridgeResponse(success=False, message=outcome.stderr)
    if kind == OutcomeKind.LAUNCH_FAILED:
        return BridgeResponse(success=False, message=f"{operation.launch_failure_prefix()}: {outcome.error}")
    if kind == OutcomeKind.TIMED_OUT:
        limit = f" after {timeout_s:g}s" if timeout_s else ""
        return BridgeResponse(success=False, message=f"{operation.label()} timed out{limit}")
    if kind == OutcomeKind.CANCELLED:
        return BridgeResponse(success=False, message=f"{operation.label()} cancelled")
    return BridgeResponse(success=False, message=outcome.error or f"{operation.label()} was not run")


class CommandBridge:
    """Bridge between front-end requests and the external Words CLI."""

    def __init__(self, config: Optional[BridgeConfig] = None, executor: Optional[CommandExecutor] = None):
        self.config = config or BridgeConfig()
        self.executor = executor or SubprocessExecutor(kill_grace_s=self.config.kill_grace_seconds)

    # Tagged API ---------------------------------------------------------
    def build_spec(self, request: BridgeRequest) -> CommandSpec:
        """Translate a request into the full tool invocation."""
        command = self.config.tool_command
        return CommandSpec(
            program=command[0],
            args=command[1:] + request.to_args(),
            cwd=self.config.working_dir,
            env=self.config.tool_env,
            timeout_s=self.config.timeout_seconds,
        )

    def run(self, request: BridgeRequest, cancel_token: Optional[CancellationToken] = None) -> CommandOutcome:
        """
        Run a request and return the tagged outcome.

        An ExportRequest built from an unknown format is REJECTED without
        launching when strict_formats is set; otherwise it runs the default export.
        """
        spec = self.build_spec(request)
        operation = request.operation
        unknown = getattr(request, "unrecognized_format", None)
        if unknown is not None:
            if self.config.strict_formats:
                error = str(UnsupportedFormatError(unknown))
                logger.warning("Refusing %s of %s: %s", operation.value, request.target_id, error)
                return CommandOutcome.rejected(spec.argv, error)
            logger.warning("Unknown export format %r, using default export", unknown)

        logger.info("Running %s (host=%s, port=%s)", operation.value, request.host, request.port)
        logger.debug("argv: %s", spec.argv)

        outcome = self.executor.execute(spec, cancel_token)

        if outcome.ok:
            logger.info("%s succeeded in %.2fs", operation.value, outcome.duration_s)
        elif outcome.kind == OutcomeKind.TOOL_FAILED:
            logger.warning("%s failed with exit code %s", operation.value, outcome.exit_code)
            logger.debug("stderr: %s", outcome.stderr)
        else:
            logger.warning("%s ended as %s: %s", operation.value, outcome.kind.value, outcome.error or "-")
        return outcome

    def respond(self, request: BridgeRequest, cancel_token: Optional[CancellationToken] = None) -> BridgeResponse:
        """Run a request and flatten the outcome into a BridgeResponse."""
        outcome = self.run(request, cancel_token)
        return to_response(outcome, request.operation, self.config.timeout_seconds)

    # Front-end operations -----------------------------------------------
    def export_request(self, target_id: str, export_format, host: str, port: int) -> ExportRequest:
        """
        Build an ExportRequest, honoring the strict_formats setting.

        Raises:
            UnsupportedFormatError: strict mode and the format is unknown
            InvalidRequestError: bad port/host/target id
        """
        fmt = ExportFormat.parse(export_format, strict=self.config.strict_formats)
        return ExportRequest(target_id=target_id, export_format=fmt, host=host, port=port)

    def export(
        self,
        target_id: str,
        export_format,
        host: str,
        port: int,
        cancel_token: Optional[CancellationToken] = None,
    ) -> BridgeResponse:
        """Export a playlist. ``export_format`` is "pptx", "json" or anything else for the default export."""
        try:
            request = self.export_request(target_id, export_format, host, port)
        except UnsupportedFormatError as e:
            logger.warning("Refusing export of %s: %s", target_id, e)
            return to_response(CommandOutcome.rejected(self.config.tool_command, str(e)), Operation.EXPORT)
        return self.respond(request, cancel_token)

    def list_playlists(self, host: str, port: int, cancel_token: Optional[CancellationToken] = None) -> BridgeResponse:
        """List playlists (tool prints them as JSON on stdout)."""
        return self.respond(ListRequest(host=host, port=port), cancel_token)

    def status(self, host: str, port: int, cancel_token: Optional[CancellationToken] = None) -> BridgeResponse:
        """Check the ProPresenter connection."""
        return self.respond(StatusRequest(host=host, port=port), cancel_token)

    def libraries(self, host: str, port: int, cancel_token: Optional[CancellationToken] = None) -> BridgeResponse:
        """List presentation libraries (JSON on stdout)."""
        return self.respond(LibrariesRequest(host=host, port=port), cancel_token)

    list = list_playlists
