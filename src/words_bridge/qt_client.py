"""
Bridge Client - runs bridge operations off the GUI thread

Each call is wrapped in a QRunnable and submitted to a QThreadPool, so the
blocking subprocess wait never stalls the Qt event loop. Results come back
on the client's thread through signals.

  - Every call returns a request_id (UUID) used to correlate the result
  - Every call gets its own CancellationToken; cancel() sets it
  - Calls may overlap; each one is independent of the others

Usage:
    client = BridgeClient(CommandBridge(config))
    client.response_ready.connect(on_response)
    request_id = client.list_playlists("127.0.0.1", 1025)
"""
import logging
import uuid
from typing import Callable, Dict, List, Optional

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal, Slot

from .bridge import CommandBridge, to_response
from .commands import BridgeRequest, ExportRequest, LibrariesRequest, ListRequest, StatusRequest
from .executor import CancellationToken, CommandOutcome


class _TaskSignals(QObject):
    """Signals for a single task (QRunnable is not a QObject)."""

    finished = Signal(str, object)  # request_id, CommandOutcome


class _BridgeTask(QRunnable):
    """Runs one bridge request on a pool thread."""

    def __init__(self, request_id: str, work: Callable[[], CommandOutcome], signals: _TaskSignals):
        super().__init__()
        self.request_id = request_id
        self._work = work
        self.signals = signals

    def run(self) -> None:
        self.signals.finished.emit(self.request_id, self._work())


class BridgeClient(QObject):
    """
    Qt-facing wrapper around CommandBridge.

    Signals:
        outcome_ready: Emitted with the tagged outcome (request_id, CommandOutcome)
        response_ready: Emitted with the flattened response (request_id, BridgeResponse)
        busy_changed: Emitted when the client goes from idle to busy or back (is_busy)
    """

    outcome_ready = Signal(str, object)  # request_id, CommandOutcome
    response_ready = Signal(str, object)  # request_id, BridgeResponse
    busy_changed = Signal(bool)  # is_busy

    def __init__(self, bridge: CommandBridge, pool: Optional[QThreadPool] = None, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._bridge = bridge
        self._pool = pool or QThreadPool.globalInstance()
        self._active: Dict[str, CancellationToken] = {}
        self._requests: Dict[str, BridgeRequest] = {}
        self._signals: Dict[str, _TaskSignals] = {}
        self._busy = False
        self._logger = logging.getLogger("words_bridge.qt_client")

    # Public API ---------------------------------------------------------
    def is_busy(self) -> bool:
        """Check if any request is still running."""
        return self._busy

    def active_requests(self) -> List[str]:
        """Return the ids of requests that have not delivered a result yet."""
        return list(self._active)

    def export(self, target_id: str, export_format, host: str, port: int) -> str:
        """
        Submit an export. Returns the request_id.

        An unknown format in strict mode is delivered like any other result,
        as a REJECTED outcome, and nothing is launched.
        """
        return self.submit(
            ExportRequest(target_id=target_id, export_format=export_format, host=host, port=port)
        )

    def list_playlists(self, host: str, port: int) -> str:
        """Submit a playlist listing. Returns the request_id."""
        return self.submit(ListRequest(host=host, port=port))

    def status(self, host: str, port: int) -> str:
        """Submit a connection check. Returns the request_id."""
        return self.submit(StatusRequest(host=host, port=port))

    def libraries(self, host: str, port: int) -> str:
        """Submit a library listing. Returns the request_id."""
        return self.submit(LibrariesRequest(host=host, port=port))

    def submit(self, request: BridgeRequest) -> str:
        """Queue a prepared request on the thread pool. Returns the request_id."""
        request_id = self._generate_request_id()
        token = CancellationToken()
        signals = _TaskSignals()
        signals.finished.connect(self._on_task_finished)

        self._active[request_id] = token
        self._requests[request_id] = request
        self._signals[request_id] = signals
        self._set_busy(True)

        task = _BridgeTask(request_id, lambda: self._run_safely(request_id, request, token), signals)
        self._pool.start(task)
        self._logger.info("Submitted %s as %s", request.operation.value, request_id[:8])
        return request_id

    def cancel(self, request_id: Optional[str] = None) -> bool:
        """
        Request cancellation of one request, or of all active ones.

        Returns:
            True if at least one token was cancelled, False otherwise.
        """
        if request_id is None:
            targets = list(self._active.items())
        else:
            token = self._active.get(request_id)
            targets = [(request_id, token)] if token else []

        if not targets:
            self._logger.info("Cancel requested but nothing is running")
            return False

        for rid, token in targets:
            self._logger.info("Cancellation requested for %s", rid[:8])
            token.cancel()
        return True

    def wait_for_done(self, msecs: int = -1) -> bool:
        """Block until the pool is idle. Results are delivered on the next event loop pass."""
        return self._pool.waitForDone(msecs)

    # Internal helpers ---------------------------------------------------
    def _generate_request_id(self) -> str:
        return str(uuid.uuid4())

    def _set_busy(self, busy: bool) -> None:
        if self._busy != busy:
            self._busy = busy
            self.busy_changed.emit(busy)

    def _run_safely(self, request_id: str, request: BridgeRequest, token: CancellationToken) -> CommandOutcome:
        # Pool thread: any escape here would be lost, so report it as an outcome.
        try:
            return self._bridge.run(request, token)
        except Exception as e:
            self._logger.exception("Request %s crashed", request_id[:8])
            spec = self._bridge.build_spec(request)
            return CommandOutcome.launch_failed(spec.argv, e)

    @Slot(str, object)
    def _on_task_finished(self, request_id: str, outcome: CommandOutcome) -> None:
        request = self._requests.pop(request_id, None)
        self._active.pop(request_id, None)
        self._signals.pop(request_id, None)
        if request is None:
            return

        response = to_response(outcome, request.operation, self._bridge.config.timeout_seconds)
        self.outcome_ready.emit(request_id, outcome)
        self.response_ready.emit(request_id, response)
        if not self._active:
            self._set_busy(False)
