"""
Command execution for the bridge.

A CommandSpec describes one external invocation; an executor runs it and
returns a CommandOutcome tagged with what happened:

    SUCCEEDED      process exited 0
    TOOL_FAILED    process exited non-zero
    LAUNCH_FAILED  process could not be started (missing binary, permissions)
    TIMED_OUT      process exceeded its time budget and was stopped
    CANCELLED      caller cancelled via CancellationToken and it was stopped
    REJECTED       request refused before launch (nothing was run)

Stopping a child is a two-step escalation aimed at the child's
whole process group: terminate, wait a grace period, then kill.
"""
from __future__ import annotations

import logging
import os
import shutil
import signal
import subprocess
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class OutcomeKind(str, Enum):
    """How an invocation ended."""

    SUCCEEDED = "succeeded"
    TOOL_FAILED = "tool_failed"
    LAUNCH_FAILED = "launch_failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class CancellationToken:
    """Thread-safe flag a caller can set to stop a running invocation."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or ``timeout`` elapses. Returns the flag."""
        return self._event.wait(timeout)


@dataclass(frozen=True)
class CommandSpec:
    """A single external process invocation."""

    program: str
    args: List[str] = field(default_factory=list)
    cwd: Optional[str] = None
    env: Dict[str, str] = field(default_factory=dict)
    timeout_s: Optional[float] = None

    @property
    def argv(self) -> List[str]:
        return [self.program] + list(self.args)


@dataclass(frozen=True)
class CommandOutcome:
    """Structured result of running (or refusing to run) a CommandSpec."""

    kind: OutcomeKind
    argv: List[str] = field(default_factory=list)
    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None
    duration_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.kind == OutcomeKind.SUCCEEDED

    @classmethod
    def finished(cls, argv: List[str], exit_code: int, stdout: str, stderr: str, duration_s: float = 0.0) -> "CommandOutcome":
        kind = OutcomeKind.SUCCEEDED if exit_code == 0 else OutcomeKind.TOOL_FAILED
        return cls(kind=kind, argv=list(argv), exit_code=exit_code, stdout=stdout, stderr=stderr, duration_s=duration_s)

    @classmethod
    def launch_failed(cls, argv: List[str], error: BaseException, duration_s: float = 0.0) -> "CommandOutcome":
        return cls(kind=OutcomeKind.LAUNCH_FAILED, argv=list(argv), error=str(error), duration_s=duration_s)

    @classmethod
    def rejected(cls, argv: List[str], reason: str) -> "CommandOutcome":
        return cls(kind=OutcomeKind.REJECTED, argv=list(argv), error=reason)

    def to_dict(self) -> Dict:
        return {
            "kind": self.kind.value,
            "argv": list(self.argv),
            "exit_code": self.exit_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "error": self.error,
            "duration_s": round(self.duration_s, 3),
        }


class CommandExecutor(ABC):
    """Runs a CommandSpec to completion and reports the outcome."""

    @abstractmethod
    def execute(self, spec: CommandSpec, cancel_token: Optional[CancellationToken] = None) -> CommandOutcome:
        """
        Run ``spec`` and block until it ends.

        Implementations must not raise for process-level failures; those are
        reported through the returned outcome's kind.
        """


class SubprocessExecutor(CommandExecutor):
    """
    Executor backed by subprocess.Popen.

    The child gets /dev/null as stdin and both output streams are captured in
    full, decoded as UTF-8 with replacement characters for invalid bytes.
    While waiting, the executor wakes every ``poll_interval_s`` to check the
    cancellation token and the deadline. The child starts in its own process
    group (a new session on POSIX) so a stop also reaches what it spawned.
    """

    def __init__(self, poll_interval_s: float = 0.1, kill_grace_s: float = 5.0):
        self.poll_interval_s = poll_interval_s
        self.kill_grace_s = kill_grace_s

    def execute(self, spec: CommandSpec, cancel_token: Optional[CancellationToken] = None) -> CommandOutcome:
        argv = spec.argv
        start = time.perf_counter()

        if cancel_token and cancel_token.is_cancelled():
            return CommandOutcome(kind=OutcomeKind.CANCELLED, argv=argv)

        try:
            proc = subprocess.Popen(
                [self._resolve_program(spec.program)] + list(spec.args),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=spec.cwd,
                env=self._build_env(spec.env),
                text=True,
                encoding="utf-8",
                errors="replace",
                **self._group_options(),
            )
        except (OSError, ValueError) as e:
            logger.warning("Could not launch %s: %s", spec.program, e)
            return CommandOutcome.launch_failed(argv, e, time.perf_counter() - start)

        logger.debug("Launched pid=%s: %s", proc.pid, " ".join(argv))
        deadline = start + spec.timeout_s if spec.timeout_s else None

        while True:
            wait = self.poll_interval_s
            if deadline is not None:
                remaining = deadline - time.perf_counter()
                if remaining <= 0:
                    stdout, stderr = self._stop(proc)
                    logger.warning("Timed out after %.1fs, stopped pid=%s", spec.timeout_s, proc.pid)
                    return CommandOutcome(
                        kind=OutcomeKind.TIMED_OUT,
                        argv=argv,
                        exit_code=proc.returncode,
                        stdout=stdout,
                        stderr=stderr,
                        duration_s=time.perf_counter() - start,
                    )
                wait = min(wait, remaining)

            if cancel_token and cancel_token.is_cancelled():
                stdout, stderr = self._stop(proc)
                logger.info("Cancelled, stopped pid=%s", proc.pid)
                return CommandOutcome(
                    kind=OutcomeKind.CANCELLED,
                    argv=argv,
                    exit_code=proc.returncode,
                    stdout=stdout,
                    stderr=stderr,
                    duration_s=time.perf_counter() - start,
                )

            try:
                stdout, stderr = proc.communicate(timeout=wait)
            except subprocess.TimeoutExpired:
                continue
            except KeyboardInterrupt:
                # The child's own session does not see the terminal's Ctrl+C.
                self._stop(proc)
                raise

            duration = time.perf_counter() - start
            logger.debug("pid=%s exited with %s in %.2fs", proc.pid, proc.returncode, duration)
            return CommandOutcome.finished(argv, proc.returncode, stdout or "", stderr or "", duration)

    def _stop(self, proc: subprocess.Popen) -> Tuple[str, str]:
        """
        Terminate the child's process group, then kill it after the grace period.

        Returns the output read so far. If something outside the group still
        holds the pipes after the kill, they are closed and its output is lost.
        """
        self._signal_group(proc, force=False)
        try:
            stdout, stderr = proc.communicate(timeout=self.kill_grace_s)
        except subprocess.TimeoutExpired:
            logger.warning("pid=%s ignored terminate, killing", proc.pid)
            self._signal_group(proc, force=True)
            try:
                stdout, stderr = proc.communicate(timeout=self.kill_grace_s)
            except subprocess.TimeoutExpired:
                logger.warning("pid=%s output pipes still held open after kill, closing them", proc.pid)
                stdout, stderr = "", ""
                for stream in (proc.stdout, proc.stderr):
                    if stream:
                        stream.close()
                try:
                    proc.wait(timeout=self.kill_grace_s)
                except subprocess.TimeoutExpired:
                    logger.error("pid=%s still running after kill", proc.pid)
        return stdout or "", stderr or ""

    @staticmethod
    def _signal_group(proc: subprocess.Popen, force: bool) -> None:
        """Signal the child and everything it started (npm runs node as a grandchild)."""
        if os.name == "nt":
            if force:
                subprocess.run(
                    ["taskkill", "/T", "/F", "/PID", str(proc.pid)],
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                )
            else:
                try:
                    proc.send_signal(signal.CTRL_BREAK_EVENT)
                except OSError:
                    proc.terminate()
            return
        try:
            os.killpg(proc.pid, signal.SIGKILL if force else signal.SIGTERM)
        except OSError:
            # Group already gone; fall back to the direct child.
            if force:
                proc.kill()
            else:
                proc.terminate()

    @staticmethod
    def _group_options() -> Dict:
        # Own process group, so stopping reaches grandchildren too.
        if os.name == "nt":
            return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
        return {"start_new_session": True}

    @staticmethod
    def _resolve_program(program: str) -> str:
        # PATH lookup also picks up npm.cmd and friends on Windows.
        return shutil.which(program) or program

    @staticmethod
    def _build_env(extra: Dict[str, str]) -> Optional[Dict[str, str]]:
        if not extra:
            return None
        env = os.environ.copy()
        env.update({str(k): str(v) for k, v in extra.items()})
        return env
