"""
================================================================================
Device Client - Asynchronous Remote Requests
================================================================================

Runs DeviceBackend operations on short-lived worker threads so the window
stays responsive while the EDM takes its readings.

Design Philosophy:
    "Never block the event loop." - every Qt developer, eventually

Rules:
    - One request per (device, action) at a time; a second one is refused
      and the caller keeps its control disabled until the first finishes
    - Results and failures come back on the GUI thread through signals
    - request_finished is emitted for every request, success or failure,
      so controls are always re-enabled
"""

from typing import Callable, Dict, Optional, Set, Tuple

from PyQt6.QtCore import QObject, QThread, pyqtSignal
from loguru import logger

from .backend import BackendError, DeviceBackend

RequestKey = Tuple[str, str]


class RequestGate:
    """
    Tracks which (device, action) pairs have a request in flight.

    Example:
        >>> gate = RequestGate()
        >>> gate.acquire("edm", "verify_edge")
        True
        >>> gate.acquire("edm", "verify_edge")
        False
        >>> gate.release("edm", "verify_edge")
    """

    def __init__(self):
        self._pending: Set[RequestKey] = set()

    def acquire(self, device_id: str, action: str) -> bool:
        key = (device_id, action)
        if key in self._pending:
            return False
        self._pending.add(key)
        return True

    def release(self, device_id: str, action: str) -> None:
        self._pending.discard((device_id, action))

    def is_busy(self, device_id: str, action: Optional[str] = None) -> bool:
        if action is not None:
            return (device_id, action) in self._pending
        return any(dev == device_id for dev, _ in self._pending)

    def pending(self) -> Set[RequestKey]:
        return set(self._pending)


class RequestWorker(QThread):
    """
    Background thread running a single backend call.

    Signals:
        succeeded: Emitted with the call's return value
        failed: Emitted with the exception the call raised
    """

    succeeded = pyqtSignal(object)
    failed = pyqtSignal(object)

    def __init__(self, device_id: str, action: str, fn: Callable, args: tuple,
                 on_success: Optional[Callable] = None, on_failure: Optional[Callable] = None,
                 parent=None):
        super().__init__(parent)
        self.device_id = device_id
        self.action = action
        self.fn = fn
        self.args = args
        self.on_success = on_success
        self.on_failure = on_failure

    def run(self) -> None:
        try:
            result = self.fn(*self.args)
        except BackendError as e:
            self.failed.emit(e)
        except Exception as e:
            logger.exception("Unexpected error in {} for {}", self.action, self.device_id)
            self.failed.emit(e)
        else:
            self.succeeded.emit(result)


class DeviceClient(QObject):
    """
    Dispatches backend operations onto worker threads.

    Signals:
        request_started: (device_id, action)
        request_finished: (device_id, action), always emitted
        request_failed: (device_id, action, message)

    Example:
        >>> client = DeviceClient(backend)
        >>> client.request("edm", "set_centre", backend.set_circle_centre, "edm",
        ...                on_success=self._on_centre_set)
        True
    """

    request_started = pyqtSignal(str, str)
    request_finished = pyqtSignal(str, str)
    request_failed = pyqtSignal(str, str, str)

    def __init__(self, backend: DeviceBackend, parent=None):
        super().__init__(parent)
        self.backend = backend
        self.gate = RequestGate()
        self._workers: Dict[int, RequestWorker] = {}

    def set_backend(self, backend: DeviceBackend) -> None:
        """Swap the backend (demo/live). Requests already running keep the old one."""
        self.backend = backend

    def is_busy(self, device_id: str, action: Optional[str] = None) -> bool:
        return self.gate.is_busy(device_id, action)

    def request(self, device_id: str, action: str, fn: Callable, *args,
                on_success: Optional[Callable] = None,
                on_failure: Optional[Callable] = None) -> bool:
        """
        Start a backend call on a worker thread.

        Args:
            device_id: Device the request addresses
            action: Short action name, e.g. 'verify_edge'
            fn: Callable to run off the GUI thread
            *args: Arguments for fn
            on_success: Called on the GUI thread with the result
            on_failure: Called on the GUI thread with the exception

        Returns:
            False if the same (device, action) is already pending
        """
        if not self.gate.acquire(device_id, action):
            logger.warning("Refusing {} for {}: request already pending", action, device_id)
            return False

        worker = RequestWorker(device_id, action, fn, args, on_success, on_failure, parent=self)
        worker.succeeded.connect(self._on_succeeded)
        worker.failed.connect(self._on_failed)
        worker.finished.connect(self._on_finished)
        self._workers[id(worker)] = worker

        logger.debug("Request {} for {} started", action, device_id)
        self.request_started.emit(device_id, action)
        worker.start()
        return True

    def call(self, device_id: str, action: str, operation: str, *args,
             on_success: Optional[Callable] = None,
             on_failure: Optional[Callable] = None) -> bool:
        """Shorthand for request() on a named backend operation."""
        return self.request(device_id, action, getattr(self.backend, operation), *args,
                            on_success=on_success, on_failure=on_failure)

    def wait_for_idle(self, timeout_ms: int = 5000) -> bool:
        """Block until every running worker has finished. Used on shutdown and in tests."""
        return all(worker.wait(timeout_ms) for worker in list(self._workers.values()))

    # =========================================================================
    # Worker Slots (GUI thread)
    # =========================================================================

    def _on_succeeded(self, result) -> None:
        worker = self.sender()
        if worker.on_success is not None:
            try:
                worker.on_success(result)
            except Exception:
                logger.exception("Result handler for {} failed", worker.action)

    def _on_failed(self, error) -> None:
        worker = self.sender()
        message = str(error) or error.__class__.__name__
        logger.warning("{} for {} failed: {}", worker.action, worker.device_id, message)
        self.request_failed.emit(worker.device_id, worker.action, message)
        if worker.on_failure is not None:
            try:
                worker.on_failure(error)
            except Exception:
                logger.exception("Failure handler for {} failed", worker.action)

    def _on_finished(self) -> None:
        worker = self.sender()
        self.gate.release(worker.device_id, worker.action)
        self._workers.pop(id(worker), None)
        self.request_finished.emit(worker.device_id, worker.action)
        worker.deleteLater()
