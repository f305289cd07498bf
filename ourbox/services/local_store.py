import os
import tempfile
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import List
from ourbox.core.exceptions import NotFoundError, TransferError
from ourbox.core.logger import get_logger
from ourbox.core.models import ObjectInfo
from ourbox.services.object_store import ObjectStore, UploadHandle, guess_content_type, run_transfer

logger = get_logger(__name__)

class LocalObjectStore(ObjectStore):
    """
    Filesystem implementation of the object store:
    - Objects are plain files directly under ``root``
    - Uploads are written chunk by chunk so progress, pause and cancel behave like a remote transfer
    - Download URLs are file:// URIs
    """

    def __init__(self, root: str = "./storage", chunk_size: int = 256 * 1024, chunk_delay: float = 0.0):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self.chunk_size = max(chunk_size, 1)
        self.chunk_delay = chunk_delay

    def put(self, name: str, content: bytes) -> UploadHandle:
        target = self._path(name)
        handle = UploadHandle(name, len(content))
        run_transfer(handle, lambda h: self._write(h, target, content))
        return handle

    def _write(self, handle: UploadHandle, target: Path, content: bytes) -> str:
        # Each transfer writes its own hidden temp file and renames it at the end:
        # a cancelled upload leaves nothing behind and same-name uploads never share a file
        with tempfile.NamedTemporaryFile(dir=self.root, prefix=f".{target.name}.", suffix=".part", delete=False) as f:
            partial = Path(f.name)
        try:
            with open(partial, "wb") as f:
                for offset in range(0, len(content), self.chunk_size):
                    chunk = content[offset:offset + self.chunk_size]
                    f.write(chunk)
                    if self.chunk_delay:
                        time.sleep(self.chunk_delay)
                    handle.advance(len(chunk))
            handle.checkpoint()
            os.replace(partial, target)
        finally:
            if partial.exists():
                partial.unlink()
        logger.info(f"Stored '{handle.name}' at {target}")
        return target.as_uri()

    def download_url(self, path: str) -> str:
        target = self._existing(path)
        return target.as_uri()

    def delete(self, path: str) -> None:
        target = self._existing(path)
        try:
            target.unlink()
        except OSError as e:
            raise TransferError(f"Failed to delete '{path}': {e}", {"path": path})
        logger.info(f"Deleted '{path}'")

    def list(self) -> List[ObjectInfo]:
        items = []
        try:
            for entry in sorted(self.root.iterdir()):
                if not entry.is_file() or entry.name.startswith("."):
                    continue
                stat = entry.stat()
                items.append(ObjectInfo(
                    name=entry.name,
                    full_path=entry.name,
                    size=stat.st_size,
                    content_type=guess_content_type(entry.name),
                    updated=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                ))
        except OSError as e:
            raise TransferError(f"Failed to list '{self.root}': {e}", {"root": str(self.root)})
        return items

    def _path(self, path: str) -> Path:
        # Flat, root-only layout: anything that resolves elsewhere is not an object of this store
        try:
            target = (self.root / path).resolve()
        except (OSError, ValueError):
            # e.g. an embedded NUL byte or an unresolvable path
            raise NotFoundError(f"Object '{path}' does not exist.", {"path": path})
        if target.parent != self.root:
            raise NotFoundError(f"Object '{path}' does not exist.", {"path": path})
        return target

    def _existing(self, path: str) -> Path:
        target = self._path(path)
        try:
            exists = target.is_file()
        except (OSError, ValueError):
            exists = False
        if not exists:
            raise NotFoundError(f"Object '{path}' does not exist.", {"path": path})
        return target
