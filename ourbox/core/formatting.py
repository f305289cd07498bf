from typing import Any, Dict
from ourbox.core.models import ObjectInfo, UploadSnapshot

BYTES_PER_MB = 1024 * 1024

def to_megabytes(num_bytes: int) -> str:
    """Formats a raw byte count as a two-decimal megabyte string, e.g. '4.77 MB'."""
    return f"{num_bytes / BYTES_PER_MB:.2f} MB"

def progress_percent(bytes_transferred: int, total_bytes: int) -> float:
    # An empty file has nothing left to send, report 0 rather than dividing by zero
    if total_bytes <= 0:
        return 0.0
    return round(bytes_transferred / total_bytes * 100, 2)

def format_task(file_name: str, snapshot: UploadSnapshot) -> Dict[str, Any]:
    return {
        "file": file_name,
        "bytesTransferred": to_megabytes(snapshot.bytes_transferred),
        "totalBytes": to_megabytes(snapshot.total_bytes),
        "progress": f"{progress_percent(snapshot.bytes_transferred, snapshot.total_bytes):.2f}",
        "state": snapshot.state.value,
    }

def format_object(info: ObjectInfo) -> Dict[str, Any]:
    return {
        "name": info.name,
        "fullPath": info.full_path,
        "size": to_megabytes(info.size),
        "contentType": info.content_type,
        "updated": info.updated.isoformat() if info.updated else None,
    }
