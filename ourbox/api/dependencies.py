from fastapi import Depends
from ourbox.core.tasks_store import UploadTaskRegistry, upload_tasks
from ourbox.services.object_store import ObjectStore
from ourbox.services.storage import get_object_store
from ourbox.services.uploader import UploadOrchestrator

def get_upload_registry() -> UploadTaskRegistry:
    """FastAPI dependency returning the process-wide registry of in-flight uploads."""
    return upload_tasks

def get_uploader(
    store: ObjectStore = Depends(get_object_store),
    registry: UploadTaskRegistry = Depends(get_upload_registry),
) -> UploadOrchestrator:
    """FastAPI dependency wiring the configured object store to the upload registry."""
    return UploadOrchestrator(store, registry)
