import json
import re
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import uvicorn
from ourbox.api import files, task_manager
from ourbox.api.dependencies import get_upload_registry
from ourbox.core.config import PORT
from ourbox.core.exceptions import (
    OurboxError,
    NotFoundError,
    ValidationError,
    TransferError,
    InvalidStateError,
)
from ourbox.core.logger import get_logger
from ourbox.core.tasks_store import UploadTaskRegistry, upload_tasks
from ourbox.services.storage import load_object_store
from fastapi.exceptions import RequestValidationError

logger = get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup event triggered.")
    load_object_store()
    logger.info("Application startup complete.")
    yield
    active = len(upload_tasks)
    if active:
        logger.warning(f"Application shutdown with {active} upload(s) still in progress.")
    logger.info("Application shutdown.")

app = FastAPI(title="Ourbox", lifespan=lifespan)

@app.exception_handler(OurboxError)
async def ourbox_exception_handler(request: Request, exc: OurboxError):
    """
    Maps Ourbox errors to plain-text responses carrying the error message.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    if isinstance(exc, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, InvalidStateError):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(exc, TransferError):
        # Store failures on list, download and delete are reported as 404 like unknown paths
        status_code = status.HTTP_404_NOT_FOUND

    logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return PlainTextResponse(exc.message, status_code=status_code)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handles Pydantic validation errors to return simple, user-friendly messages.
    """
    try:
        error = exc.errors()[0]
    except IndexError:
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error with unknown structure."},
        )

    error_type = error.get("type")

    if error_type == 'json_invalid':
        parser_message = error.get('msg', '')
        detailed_message = f"Invalid JSON syntax: {parser_message}. Please correct the formatting and try again."
        return JSONResponse(status_code=400, content={"detail": detailed_message})

    field = error.get("loc", ["body", "unknown"])[-1]

    if field == 'path':
        detailed_message = "The 'path' field is required and cannot be empty."
    elif field == 'file':
        detailed_message = "The 'file' field is required and cannot be empty."
    elif field == 'operation':
        detailed_message = "The 'operation' field cannot be empty. It must be 'cancel' or 'pause-or-resume'."
    else:
        # Fallback for any other validation error
        detailed_message = f"There was an error with the '{field}' field: {error.get('msg')}"

    return JSONResponse(
        status_code=422,  # Unprocessable Entity
        content={"detail": detailed_message},
    )

@app.middleware("http")
async def check_duplicate_json_keys_middleware(request: Request, call_next):
    if "application/json" in request.headers.get("content-type", ""):
        body = await request.body()

        async def receive():
            return {"type": "http.request", "body": body}
        request._receive = receive

        if body:
            try:
                pairs = json.JSONDecoder(object_pairs_hook=lambda x: x).decode(body.decode())
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                parser_message = str(e)

                # Handle empty value for a key
                if "Expecting value" in parser_message:
                    match = re.search(r'"(\w+)":\s*([,}\]])', body.decode(errors="replace"))
                    if match:
                        field_name = match.group(1)
                        return JSONResponse(
                            status_code=400,
                            content={"detail": f"The field '{field_name}' cannot be empty. Please provide a value."}
                        )

                return JSONResponse(
                    status_code=400,
                    content={"detail": f"Invalid JSON syntax: {parser_message}. Please correct the formatting and try again."}
                )

            # Objects decode to lists of (key, value) tuples, arrays to plain lists
            if isinstance(pairs, list) and all(isinstance(pair, tuple) for pair in pairs):
                seen_keys = {}
                for key, value in pairs:
                    if key in seen_keys:
                        if seen_keys[key] != value:
                            return JSONResponse(
                                status_code=400,
                                content={"detail": f"Duplicate key '{key}' found with conflicting values."}
                            )
                        return JSONResponse(
                            status_code=400,
                            content={"detail": f"Duplicate key found in JSON body: {key}"}
                        )
                    seen_keys[key] = value

    response = await call_next(request)
    return response

@app.get("/healthz", tags=["Health"])
async def health(registry: UploadTaskRegistry = Depends(get_upload_registry)):
    return {"status": "ok", "activeUploads": len(registry)}

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)

# Include API routers
app.include_router(files.router)
app.include_router(task_manager.router)

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=PORT)
