import time
import pytest
from ourbox.core.exceptions import TransferError, ValidationError
from ourbox.core.models import UploadState
from ourbox.core.tasks_store import UploadTaskRegistry
from ourbox.services.local_store import LocalObjectStore
from ourbox.services.uploader import UploadOrchestrator

def test_start_upload_registers_running_task(uploader, registry):
    handle = uploader.start_upload("report.pdf", b"x" * 1000)

    task = registry.get("report.pdf")
    assert task.handle is handle
    assert task.snapshot.state == UploadState.RUNNING
    assert task.snapshot.total_bytes == 1000

def test_progress_events_update_snapshot(uploader, registry, store):
    uploader.start_upload("a.bin", b"x" * 100)
    handle = store.handle("a.bin")

    seen = []
    for _ in range(4):
        handle.advance(25)
        seen.append(registry.get("a.bin").snapshot.bytes_transferred)

    assert seen == [25, 50, 75, 100]

def test_success_removes_task(uploader, registry, store):
    uploader.start_upload("a.bin", b"x" * 10)
    store.complete(store.handle("a.bin"))

    assert "a.bin" not in registry

def test_failure_removes_task(uploader, registry, store):
    uploader.start_upload("a.bin", b"x" * 10)
    store.handle("a.bin").fail(RuntimeError("network down"))

    assert "a.bin" not in registry

def test_cancel_through_registry_then_late_completion(uploader, registry, store):
    uploader.start_upload("a.bin", b"x" * 10)
    handle = store.handle("a.bin")

    registry.cancel("a.bin")
    # The remote side finishing afterwards must not crash or resurrect the entry
    assert handle.succeed("https://store.test/a.bin") is False
    assert "a.bin" not in registry

def test_duplicate_upload_keeps_first_task(uploader, registry, store):
    first = uploader.start_upload("same.txt", b"first")
    second = uploader.start_upload("same.txt", b"second!")

    assert len(registry) == 1
    assert registry.get("same.txt").handle is first

    # The ignored transfer finishing must not remove the first upload's entry
    store.complete(second)
    assert registry.get("same.txt").handle is first

    store.complete(first)
    assert "same.txt" not in registry

@pytest.mark.parametrize("name", ["", "   ", "../etc/passwd", "dir/file.txt", "..", "nul\x00.txt"])
def test_invalid_names_are_rejected_before_the_store(uploader, store, name):
    with pytest.raises(ValidationError):
        uploader.start_upload(name, b"data")
    assert store.put_calls == []

def test_store_failure_on_put_propagates(uploader, registry, store):
    store.failing_names.add("bad.bin")

    with pytest.raises(TransferError):
        uploader.start_upload("bad.bin", b"data")
    assert "bad.bin" not in registry

def test_transfer_finished_before_subscription_is_not_left_behind(registry, instant_store):
    uploader = UploadOrchestrator(instant_store, registry)

    uploader.start_upload("fast.txt", b"tiny")

    assert "fast.txt" not in registry

def test_upload_and_wait_returns_url_without_registering(registry, instant_store):
    uploader = UploadOrchestrator(instant_store, registry)

    url = uploader.upload_and_wait("sync.txt", b"payload", timeout=1)

    assert url == "https://store.test/sync.txt"
    assert len(registry) == 0

def test_upload_and_wait_raises_on_failure(uploader, store, registry):
    store.failing_names.add("bad.bin")
    with pytest.raises(TransferError):
        uploader.upload_and_wait("bad.bin", b"data", timeout=1)

def test_pause_resume_and_finish_with_local_store(tmp_path):
    registry = UploadTaskRegistry()
    store = LocalObjectStore(str(tmp_path), chunk_size=1024, chunk_delay=0.005)
    uploader = UploadOrchestrator(store, registry)

    handle = uploader.start_upload("big.bin", b"x" * 200 * 1024)
    assert registry.pause_or_resume("big.bin") == UploadState.PAUSED
    # The chunk in flight when the pause landed is still reported
    time.sleep(0.05)
    paused_at = registry.get("big.bin").snapshot.bytes_transferred
    time.sleep(0.05)
    assert registry.get("big.bin").snapshot.bytes_transferred == paused_at
    assert registry.get("big.bin").snapshot.state == UploadState.PAUSED

    assert registry.pause_or_resume("big.bin") == UploadState.RUNNING
    url = handle.wait(timeout=10)

    assert url.startswith("file://")
    assert (tmp_path / "big.bin").stat().st_size == 200 * 1024
    assert "big.bin" not in registry

def test_same_name_uploads_with_local_store(tmp_path):
    registry = UploadTaskRegistry()
    store = LocalObjectStore(str(tmp_path), chunk_size=1024, chunk_delay=0.002)
    uploader = UploadOrchestrator(store, registry)
    first_payload = b"A" * 100 * 1024
    second_payload = b"B" * 60 * 1024

    first = uploader.start_upload("same.bin", first_payload)
    second = uploader.start_upload("same.bin", second_payload)
    assert registry.get("same.bin").handle is first

    first.wait(timeout=10)
    second.wait(timeout=10)

    assert first.state == UploadState.SUCCESS
    assert (tmp_path / "same.bin").read_bytes() in (first_payload, second_payload)
    assert "same.bin" not in registry
