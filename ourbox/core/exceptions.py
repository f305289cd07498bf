from typing import Dict, Optional

class OurboxError(Exception):
    """Base exception for all Ourbox errors."""

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

class NotFoundError(OurboxError):
    """Raised for an unknown file, object path or upload task."""
    pass

class ValidationError(OurboxError):
    """Raised when a file or request is rejected before it reaches the store."""
    pass

class TransferError(OurboxError):
    """Raised when the object store fails to upload, sign or delete."""
    pass

class UploadCancelled(TransferError):
    pass

class InvalidStateError(OurboxError):
    pass
