from typing import Optional
from ourbox.core.exceptions import TransferError, UploadCancelled, ValidationError
from ourbox.core.formatting import progress_percent
from ourbox.core.logger import get_logger
from ourbox.core.models import UploadSnapshot, UploadState
from ourbox.core.tasks_store import UploadTaskRegistry
from ourbox.services.object_store import ObjectStore, UploadHandle

logger = get_logger(__name__)

def validate_file_name(file_name: str) -> None:
    if not file_name or not file_name.strip():
        raise ValidationError("File name is required", {"name": file_name or ""})
    # Objects live directly in the root, there are no folders
    if "/" in file_name or "\\" in file_name or "\x00" in file_name or file_name in (".", ".."):
        raise ValidationError("File name must not contain a path", {"name": file_name})

class UploadOrchestrator:
    """
    Drives uploads from submission to their terminal outcome.

    ``start_upload`` is fire-and-forget: it registers the handle and returns,
    and the handle's events keep the registry entry current until success,
    failure or cancellation removes it. ``upload_and_wait`` is the blocking
    alternative; it never registers, so it cannot be paused or cancelled.
    """

    def __init__(self, store: ObjectStore, registry: UploadTaskRegistry):
        self.store = store
        self.registry = registry

    def start_upload(self, file_name: str, content: bytes) -> UploadHandle:
        validate_file_name(file_name)
        handle = self.store.put(file_name, content)

        snapshot = UploadSnapshot(0, len(content), UploadState.RUNNING)
        if self.registry.add(file_name, handle, snapshot):
            logger.info(f"Upload of '{file_name}' ({len(content)} bytes) added to upload tasks.")
        else:
            # First writer wins: the earlier upload keeps its entry and stays controllable
            logger.warning(f"Upload of '{file_name}' is already in progress, not registering the new transfer.")
        self.registry.log_contents("start_upload")

        handle.on(
            progress=lambda s: self._on_progress(file_name, handle, s),
            error=lambda e: self._on_error(file_name, handle, e),
            complete=lambda url: self._on_complete(file_name, handle, url),
        )
        return handle

    def upload_and_wait(self, file_name: str, content: bytes, timeout: Optional[float] = None) -> str:
        validate_file_name(file_name)
        handle = self.store.put(file_name, content)
        logger.info(f"Uploading '{file_name}' ({len(content)} bytes) and waiting for the result.")
        url = handle.wait(timeout)
        logger.info(f"Upload of '{file_name}' finished.")
        return url

    def _on_progress(self, file_name: str, handle: UploadHandle, snapshot: UploadSnapshot) -> None:
        self.registry.update(file_name, handle, snapshot)
        percent = progress_percent(snapshot.bytes_transferred, snapshot.total_bytes)
        logger.debug(f"Upload of '{file_name}' is {percent}% done ({snapshot.state.value}).")

    def _on_error(self, file_name: str, handle: UploadHandle, error: TransferError) -> None:
        removed = self.registry.remove(file_name, handle)
        if isinstance(error, UploadCancelled):
            logger.info(f"Upload of '{file_name}' cancelled (registry entry removed: {removed}).")
        else:
            logger.error(f"Upload of '{file_name}' failed: {error.message}")
        self.registry.log_contents("upload error")

    def _on_complete(self, file_name: str, handle: UploadHandle, url: str) -> None:
        self.registry.remove(file_name, handle)
        logger.info(f"Upload of '{file_name}' completed.")
        self.registry.log_contents("upload complete")
