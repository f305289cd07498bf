import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple
from ourbox.core.exceptions import InvalidStateError, NotFoundError
from ourbox.core.logger import get_logger
from ourbox.core.models import UploadSnapshot, UploadState

logger = get_logger(__name__)

@dataclass
class UploadTask:
    file_name: str
    handle: Any
    snapshot: UploadSnapshot

class TaskListing:
    """
    Restartable view over the registry. Every iteration copies the current
    entries under the registry lock, so readers never see a half-applied update
    and never wait on the store.
    """

    def __init__(self, registry: "UploadTaskRegistry"):
        self._registry = registry

    def __iter__(self) -> Iterator[Tuple[str, UploadSnapshot]]:
        return iter(self._registry._entries())

    def __len__(self) -> int:
        return len(self._registry)

class UploadTaskRegistry:
    """
    Directory of uploads that are still running or paused, keyed by file name.

    Entries are written from request handlers and from the upload worker
    threads, so every read and write goes through one lock. Handle methods are
    never called while the lock is held: a handle may report back into the
    registry from the same thread.
    """

    def __init__(self):
        self._tasks: Dict[str, UploadTask] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def __contains__(self, file_name: str) -> bool:
        with self._lock:
            return file_name in self._tasks

    def add(self, file_name: str, handle: Any, snapshot: UploadSnapshot) -> bool:
        """Insert-if-absent. Returns False when the name already has a task; the existing one stays."""
        if snapshot.state.is_terminal:
            logger.warning(f"Refusing to register '{file_name}' in terminal state '{snapshot.state.value}'.")
            return False
        with self._lock:
            if file_name in self._tasks:
                return False
            self._tasks[file_name] = UploadTask(file_name, handle, snapshot)
            return True

    def get(self, file_name: str) -> UploadTask:
        with self._lock:
            task = self._tasks.get(file_name)
        if task is None:
            raise NotFoundError(f"Upload task '{file_name}' not found.", {"file": file_name})
        return task

    def update(self, file_name: str, handle: Any, snapshot: UploadSnapshot) -> bool:
        """
        Swaps in a new snapshot for the entry owned by ``handle``.

        Terminal snapshots are dropped (the terminal event removes the entry) and
        ``bytes_transferred`` never goes backwards.
        """
        if snapshot.state.is_terminal:
            return False
        with self._lock:
            task = self._tasks.get(file_name)
            if task is None or task.handle is not handle:
                return False
            if snapshot.bytes_transferred < task.snapshot.bytes_transferred:
                snapshot = UploadSnapshot(
                    task.snapshot.bytes_transferred, snapshot.total_bytes, snapshot.state
                )
            task.snapshot = snapshot
            return True

    def remove(self, file_name: str, handle: Optional[Any] = None) -> bool:
        """
        Removes the entry, optionally only when it belongs to ``handle``.
        Removing something that is already gone returns False instead of raising.
        """
        with self._lock:
            task = self._tasks.get(file_name)
            if task is None or (handle is not None and task.handle is not handle):
                return False
            del self._tasks[file_name]
            return True

    def list_all(self) -> TaskListing:
        return TaskListing(self)

    def cancel(self, file_name: str) -> UploadTask:
        with self._lock:
            task = self._tasks.pop(file_name, None)
        if task is None:
            raise NotFoundError(f"Upload task '{file_name}' not found.", {"file": file_name})

        task.handle.cancel()
        logger.info(f"Upload of '{file_name}' cancelled.")
        return task

    def pause_or_resume(self, file_name: str) -> UploadState:
        task = self.get(file_name)
        state = task.snapshot.state

        if state == UploadState.PAUSED:
            task.handle.resume()
        elif state == UploadState.RUNNING:
            task.handle.pause()
        else:
            raise InvalidStateError(
                f"Upload task '{file_name}' is in state '{state.value}' and cannot be paused or resumed.",
                {"file": file_name, "state": state.value},
            )

        # The handle may already have reported the change; refreshing again is harmless.
        snapshot = task.handle.snapshot()
        if snapshot.state.is_terminal:
            # Finished between the lookup and the call; its terminal event removes the entry.
            raise InvalidStateError(
                f"Upload task '{file_name}' finished with state '{snapshot.state.value}'.",
                {"file": file_name, "state": snapshot.state.value},
            )
        self.update(file_name, task.handle, snapshot)
        logger.info(f"Upload of '{file_name}' is now {snapshot.state.value}.")
        return snapshot.state

    def clear(self) -> None:
        with self._lock:
            self._tasks.clear()

    def log_contents(self, context: str = "") -> None:
        entries = self._entries()
        logger.debug(f"start - upload tasks - {context}")
        for file_name, snapshot in entries:
            logger.debug(f"{file_name}: {snapshot}")
        logger.debug(f"end - upload tasks - {context}")

    def _entries(self) -> List[Tuple[str, UploadSnapshot]]:
        with self._lock:
            return [(name, task.snapshot) for name, task in self._tasks.items()]

# Process-wide registry of in-flight uploads.
# Key: file name, value: UploadTask holding the transfer handle and its latest snapshot.
# Only running and paused uploads live here; finished, failed and cancelled ones are removed.
upload_tasks = UploadTaskRegistry()
