from typing import List, Optional
from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool
from ourbox.api.dependencies import get_uploader
from ourbox.core.config import MAX_FILE_SIZE, MAX_FILE_SIZE_MB, MAX_FILES_PER_UPLOAD, UPLOAD_FORM_FIELD
from ourbox.core.exceptions import OurboxError
from ourbox.core.formatting import format_object
from ourbox.core.logger import get_logger
from ourbox.core.models import PathRequest
from ourbox.services.object_store import ObjectStore
from ourbox.services.storage import get_object_store
from ourbox.services.uploader import UploadOrchestrator

router = APIRouter(prefix="/api", tags=["Files"])
logger = get_logger(__name__)

@router.get("/")
def list_files(store: ObjectStore = Depends(get_object_store)):
    """
    Lists every object in the root of the store.
    """
    return [format_object(info) for info in store.list()]

@router.post("/")
async def upload_files(
    files: Optional[List[UploadFile]] = File(default=None, alias=UPLOAD_FORM_FIELD),
    wait: bool = False,
    uploader: UploadOrchestrator = Depends(get_uploader),
):
    """
    Starts an upload for each file in the form. Rejected files are reported in
    ``errors`` and never stop the rest of the batch.

    By default the response is sent once the uploads are admitted; progress is
    then visible on /api/uploads. With ``wait=true`` every file is uploaded to
    completion first and its download URL returned, such uploads cannot be
    paused or cancelled.
    """
    errors = []
    urls = []

    for index, file in enumerate(files or []):
        name = file.filename or ""

        if index >= MAX_FILES_PER_UPLOAD:
            errors.append({"name": name, "error": f"You can only upload {MAX_FILES_PER_UPLOAD} files at a time"})
            continue

        contents = await file.read()
        if len(contents) > MAX_FILE_SIZE:
            logger.info(f"Rejected '{name}': {len(contents)} bytes is over the {MAX_FILE_SIZE_MB} MB limit.")
            errors.append({"name": name, "error": f"File should be less than {MAX_FILE_SIZE_MB} MB"})
            continue

        try:
            if wait:
                url = await run_in_threadpool(uploader.upload_and_wait, name, contents)
                urls.append({"name": name, "url": url})
            else:
                uploader.start_upload(name, contents)
        except OurboxError as e:
            logger.warning(f"Upload of '{name}' rejected: {e.message}")
            errors.append({"name": name, "error": e.message})
        except Exception as e:
            logger.exception(f"Upload of '{name}' failed unexpectedly")
            errors.append({"name": name, "error": str(e)})

    response = {"errors": errors}
    if wait:
        response["urls"] = urls
    return response

@router.post("/download", response_class=PlainTextResponse)
def download_file(request: PathRequest, store: ObjectStore = Depends(get_object_store)):
    return store.download_url(request.path)

@router.delete("/", response_class=PlainTextResponse)
def delete_file(request: PathRequest, store: ObjectStore = Depends(get_object_store)):
    store.delete(request.path)
    return "Deleted"
