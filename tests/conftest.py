from datetime import datetime, timezone
import pytest
from fastapi.testclient import TestClient
from ourbox.api.dependencies import get_upload_registry
from ourbox.core.exceptions import NotFoundError, TransferError
from ourbox.core.models import ObjectInfo
from ourbox.core.tasks_store import UploadTaskRegistry
from ourbox.main import app
from ourbox.services.object_store import ObjectStore, UploadHandle, guess_content_type
from ourbox.services.storage import get_object_store
from ourbox.services.uploader import UploadOrchestrator

MB = 1024 * 1024

class ScriptedStore(ObjectStore):
    """
    In-memory store whose uploads only move when the test moves them: no worker
    threads, progress and outcomes are driven through the returned handles.
    """

    def __init__(self, auto_complete: bool = False):
        self.auto_complete = auto_complete
        self.handles = {}
        self.objects = {}
        self.failing_names = set()
        self.crashing_names = set()
        self.put_calls = []

    def put(self, name, content):
        self.put_calls.append(name)
        if name in self.failing_names:
            raise TransferError(f"Store refused '{name}'")
        if name in self.crashing_names:
            raise RuntimeError(f"connection reset while sending '{name}'")
        handle = UploadHandle(name, len(content))
        self.handles.setdefault(name, []).append(handle)
        if self.auto_complete:
            self.complete(handle)
        return handle

    def handle(self, name):
        return self.handles[name][-1]

    def complete(self, handle):
        self.objects[handle.name] = ObjectInfo(
            name=handle.name,
            full_path=handle.name,
            size=handle.total_bytes,
            content_type=guess_content_type(handle.name),
            updated=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        )
        return handle.succeed(f"https://store.test/{handle.name}")

    def download_url(self, path):
        if path not in self.objects:
            raise NotFoundError(f"Object '{path}' does not exist.")
        return f"https://store.test/{path}"

    def delete(self, path):
        if path not in self.objects:
            raise NotFoundError(f"Object '{path}' does not exist.")
        del self.objects[path]

    def list(self):
        return list(self.objects.values())

@pytest.fixture
def store():
    return ScriptedStore()

@pytest.fixture
def registry():
    return UploadTaskRegistry()

@pytest.fixture
def uploader(store, registry):
    return UploadOrchestrator(store, registry)

@pytest.fixture
def client(store, registry):
    app.dependency_overrides[get_object_store] = lambda: store
    app.dependency_overrides[get_upload_registry] = lambda: registry
    yield TestClient(app)
    app.dependency_overrides.clear()

@pytest.fixture
def instant_store():
    """Store whose uploads have already finished by the time ``put`` returns."""
    return ScriptedStore(auto_complete=True)
