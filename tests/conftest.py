"""Test configuration and fixtures."""

import sys
import threading
from pathlib import Path
from typing import List, Optional

import pytest

# Add repo root to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from src.words_bridge.config import BridgeConfig
from src.words_bridge.executor import (
    CancellationToken,
    CommandExecutor,
    CommandOutcome,
    CommandSpec,
    OutcomeKind,
)


class FakeExecutor(CommandExecutor):
    """Records every spec and answers with a canned outcome."""

    def __init__(self, exit_code: int = 0, stdout: str = "", stderr: str = "", kind: Optional[OutcomeKind] = None, error: Optional[str] = None):
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.kind = kind
        self.error = error
        self.specs: List[CommandSpec] = []
        self.tokens: List[Optional[CancellationToken]] = []
        self._lock = threading.Lock()

    def execute(self, spec, cancel_token=None):
        with self._lock:
            self.specs.append(spec)
            self.tokens.append(cancel_token)
        if self.kind is not None:
            return CommandOutcome(kind=self.kind, argv=spec.argv, error=self.error)
        return CommandOutcome.finished(spec.argv, self.exit_code, self.stdout, self.stderr)

    @property
    def last_args(self) -> List[str]:
        return self.specs[-1].args


@pytest.fixture()
def fake_executor():
    return FakeExecutor(stdout="OK\n")


@pytest.fixture()
def bridge_config(monkeypatch):
    """Default configuration with connection env vars cleared."""
    monkeypatch.delenv("PROPRESENTER_HOST", raising=False)
    monkeypatch.delenv("PROPRESENTER_PORT", raising=False)
    return BridgeConfig()


@pytest.fixture()
def qapp():
    """A QCoreApplication so queued Qt signals can be delivered."""
    from PySide6.QtCore import QCoreApplication

    app = QCoreApplication.instance() or QCoreApplication([])
    return app


@pytest.fixture()
def make_executor():
    """Factory for FakeExecutor instances with custom canned outcomes."""
    return FakeExecutor
