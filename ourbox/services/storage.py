from typing import Optional
from ourbox.core.config import (
    STORAGE_BACKEND,
    LOCAL_STORAGE_DIR,
    LOCAL_CHUNK_SIZE,
    LOCAL_CHUNK_DELAY,
    S3_BUCKET,
    S3_PREFIX,
    S3_REGION,
    S3_ENDPOINT_URL,
    DOWNLOAD_URL_EXPIRES,
)
from ourbox.core.logger import get_logger
from ourbox.services.object_store import ObjectStore

logger = get_logger(__name__)
object_store: Optional[ObjectStore] = None

def load_object_store() -> ObjectStore:
    global object_store
    if STORAGE_BACKEND == "s3":
        if not S3_BUCKET:
            raise RuntimeError("STORAGE_BACKEND is 's3' but S3_BUCKET is not set.")
        from ourbox.services.s3_store import S3ObjectStore
        object_store = S3ObjectStore(
            S3_BUCKET,
            prefix=S3_PREFIX,
            region=S3_REGION,
            endpoint_url=S3_ENDPOINT_URL,
            url_expires=DOWNLOAD_URL_EXPIRES,
        )
        logger.info(f"Using S3 object store: bucket '{S3_BUCKET}', prefix '{S3_PREFIX}'")
    elif STORAGE_BACKEND == "local":
        from ourbox.services.local_store import LocalObjectStore
        object_store = LocalObjectStore(LOCAL_STORAGE_DIR, chunk_size=LOCAL_CHUNK_SIZE, chunk_delay=LOCAL_CHUNK_DELAY)
        logger.info(f"Using local object store at: {object_store.root}")
    else:
        raise RuntimeError(f"Unknown STORAGE_BACKEND '{STORAGE_BACKEND}'. Use 'local' or 's3'.")
    return object_store

def get_object_store() -> ObjectStore:
    if object_store is None:
        load_object_store()  # Ensure the store exists even without the startup hook
    return object_store
