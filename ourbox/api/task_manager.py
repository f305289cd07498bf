from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse
from ourbox.api.dependencies import get_upload_registry
from ourbox.core.exceptions import ValidationError
from ourbox.core.formatting import format_task
from ourbox.core.logger import get_logger
from ourbox.core.models import UploadOperationRequest, UploadState
from ourbox.core.tasks_store import UploadTaskRegistry

router = APIRouter(prefix="/api", tags=["Uploads"])
logger = get_logger(__name__)

VALID_OPERATIONS = ["cancel", "pause-or-resume"]

@router.post("/uploads", response_class=PlainTextResponse)
def control_upload(request: UploadOperationRequest, registry: UploadTaskRegistry = Depends(get_upload_registry)):
    """
    Cancels, pauses or resumes an in-flight upload.
    """
    if request.operation == "cancel":
        registry.cancel(request.file)
        return "Cancelled"

    if request.operation == "pause-or-resume":
        state = registry.pause_or_resume(request.file)
        return "Paused" if state == UploadState.PAUSED else "Resumed"

    raise ValidationError(
        f"Invalid operation. Must be one of: {', '.join(VALID_OPERATIONS)}",
        {"operation": request.operation},
    )

@router.get("/uploads")
def list_uploads(registry: UploadTaskRegistry = Depends(get_upload_registry)):
    """
    Lists in-flight uploads with their latest known progress. Never queries the store.
    """
    try:
        registry.log_contents("/api/uploads")
        return [format_task(file_name, snapshot) for file_name, snapshot in registry.list_all()]
    except Exception as e:
        logger.exception("Failed to list upload tasks.")
        return JSONResponse(status_code=404, content={"detail": f"Failed to list upload tasks: {e}"})
