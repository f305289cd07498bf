"""
Object store capability interface and the upload handle shared by every backend.

A backend's ``put`` returns an ``UploadHandle`` right away and performs the
transfer on a worker thread. The worker reports progress through
``handle.advance``, which is also where pause blocks and cancel aborts.
Listeners subscribe with ``handle.on``; a listener that subscribes late is
immediately given the current snapshot and, if the transfer already finished,
its terminal event, so no outcome is ever missed.
"""
import mimetypes
import threading
from abc import ABC, abstractmethod
from typing import Callable, List, Optional
from ourbox.core.exceptions import TransferError, UploadCancelled
from ourbox.core.logger import get_logger
from ourbox.core.models import ObjectInfo, UploadSnapshot, UploadState

logger = get_logger(__name__)

ProgressListener = Callable[[UploadSnapshot], None]
ErrorListener = Callable[[TransferError], None]
CompleteListener = Callable[[str], None]

def guess_content_type(name: str) -> str:
    content_type, _ = mimetypes.guess_type(name)
    return content_type or "application/octet-stream"

class UploadHandle:
    def __init__(self, name: str, total_bytes: int):
        self.name = name
        self.total_bytes = total_bytes
        self._bytes_transferred = 0
        self._state = UploadState.RUNNING
        self._url: Optional[str] = None
        self._error: Optional[TransferError] = None
        self._lock = threading.Lock()
        self._resumed = threading.Event()
        self._resumed.set()
        self._finished = threading.Event()
        self._progress_listeners: List[ProgressListener] = []
        self._error_listeners: List[ErrorListener] = []
        self._complete_listeners: List[CompleteListener] = []

    @property
    def state(self) -> UploadState:
        with self._lock:
            return self._state

    def snapshot(self) -> UploadSnapshot:
        with self._lock:
            return self._snapshot()

    def on(
        self,
        progress: Optional[ProgressListener] = None,
        error: Optional[ErrorListener] = None,
        complete: Optional[CompleteListener] = None,
    ) -> None:
        with self._lock:
            if progress:
                self._progress_listeners.append(progress)
            if error:
                self._error_listeners.append(error)
            if complete:
                self._complete_listeners.append(complete)
            snapshot = self._snapshot()
            url, err = self._url, self._error

        # Replay what happened before the subscription
        if snapshot.state == UploadState.SUCCESS:
            if complete:
                self._notify(complete, url)
        elif snapshot.state.is_terminal:
            if error:
                self._notify(error, err)
        elif progress:
            self._notify(progress, self.snapshot())

    # Control side, called by the registry

    def pause(self) -> bool:
        with self._lock:
            if self._state != UploadState.RUNNING:
                return False
            self._state = UploadState.PAUSED
            self._resumed.clear()
            snapshot = self._snapshot()
            listeners = list(self._progress_listeners)
        logger.info(f"Upload of '{self.name}' paused at {snapshot.bytes_transferred}/{snapshot.total_bytes} bytes.")
        self._emit(listeners, snapshot)
        return True

    def resume(self) -> bool:
        with self._lock:
            if self._state != UploadState.PAUSED:
                return False
            self._state = UploadState.RUNNING
            self._resumed.set()
            snapshot = self._snapshot()
            listeners = list(self._progress_listeners)
        logger.info(f"Upload of '{self.name}' resumed.")
        self._emit(listeners, snapshot)
        return True

    def cancel(self) -> bool:
        error = UploadCancelled(f"Upload of '{self.name}' was cancelled.", {"name": self.name})
        with self._lock:
            if self._state.is_terminal:
                return False
            self._state = UploadState.CANCELLED
            self._error = error
            listeners = self._take_terminal_listeners(self._error_listeners)
        # Wake a paused worker so it can notice the cancellation and stop
        self._resumed.set()
        self._emit(listeners, error)
        self._finished.set()
        return True

    def wait(self, timeout: Optional[float] = None) -> str:
        """Blocks until the transfer ends. Returns the download URL or raises the transfer's error."""
        if not self._finished.wait(timeout):
            raise TransferError(f"Upload of '{self.name}' did not finish within {timeout} seconds.")
        with self._lock:
            if self._state == UploadState.SUCCESS:
                return self._url
            raise self._error

    # Transfer side, called by the backend's worker thread

    def advance(self, num_bytes: int) -> None:
        """Records ``num_bytes`` more bytes sent, then blocks while paused and raises if cancelled."""
        with self._lock:
            if self._state.is_terminal:
                snapshot, listeners = None, []
            else:
                self._bytes_transferred = min(max(self._bytes_transferred + num_bytes, 0), self.total_bytes)
                snapshot = self._snapshot()
                listeners = list(self._progress_listeners)
        if snapshot is not None:
            self._emit(listeners, snapshot)
        self.checkpoint()

    def checkpoint(self) -> None:
        self._resumed.wait()
        if self.state == UploadState.CANCELLED:
            raise UploadCancelled(f"Upload of '{self.name}' was cancelled.", {"name": self.name})

    def succeed(self, url: str) -> bool:
        with self._lock:
            if self._state.is_terminal:
                return False
            self._state = UploadState.SUCCESS
            self._bytes_transferred = self.total_bytes
            self._url = url
            listeners = self._take_terminal_listeners(self._complete_listeners)
        self._emit(listeners, url)
        self._finished.set()
        return True

    def fail(self, error: Exception) -> bool:
        if not isinstance(error, TransferError):
            error = TransferError(f"Upload of '{self.name}' failed: {error}", {"name": self.name})
        with self._lock:
            if self._state.is_terminal:
                return False
            self._state = UploadState.ERROR
            self._error = error
            listeners = self._take_terminal_listeners(self._error_listeners)
        self._emit(listeners, error)
        self._finished.set()
        return True

    def _snapshot(self) -> UploadSnapshot:
        return UploadSnapshot(self._bytes_transferred, self.total_bytes, self._state)

    def _take_terminal_listeners(self, listeners: list) -> list:
        # Terminal events fire once, after which no listener is needed any more
        taken = list(listeners)
        self._progress_listeners.clear()
        self._error_listeners.clear()
        self._complete_listeners.clear()
        return taken

    def _emit(self, listeners: list, payload) -> None:
        for listener in listeners:
            self._notify(listener, payload)

    def _notify(self, listener: Callable, payload) -> None:
        try:
            listener(payload)
        except Exception:
            logger.exception(f"Listener for upload '{self.name}' raised.")

def run_transfer(handle: UploadHandle, work: Callable[[UploadHandle], str]) -> threading.Thread:
    """
    Runs ``work(handle)`` on a daemon thread. Its return value is the download
    URL reported on success; anything it raises becomes the failure event.
    """
    def _target():
        try:
            url = work(handle)
        except Exception as e:
            # Client libraries may wrap the UploadCancelled raised from their progress callback
            if isinstance(e, UploadCancelled) or handle.state == UploadState.CANCELLED:
                logger.info(f"Transfer of '{handle.name}' stopped after cancellation.")
                return
            logger.exception(f"Transfer of '{handle.name}' failed.")
            handle.fail(e)
        else:
            handle.succeed(url)

    thread = threading.Thread(target=_target, name=f"upload-{handle.name}", daemon=True)
    thread.start()
    return thread

class ObjectStore(ABC):
    """Remote blob store holding a flat set of root-level objects."""

    @abstractmethod
    def put(self, name: str, content: bytes) -> UploadHandle:
        pass

    @abstractmethod
    def download_url(self, path: str) -> str:
        pass

    @abstractmethod
    def delete(self, path: str) -> None:
        pass

    @abstractmethod
    def list(self) -> List[ObjectInfo]:
        pass
