import os
from dotenv import load_dotenv

load_dotenv()

# Application Constants
PORT = int(os.getenv("PORT", 5000))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Object store selection: "local" writes into LOCAL_STORAGE_DIR, "s3" talks to S3_BUCKET
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local").lower()

# Local backend
LOCAL_STORAGE_DIR = os.getenv("LOCAL_STORAGE_DIR", "storage")
LOCAL_CHUNK_SIZE = int(os.getenv("LOCAL_CHUNK_SIZE", 256 * 1024))  # bytes written per progress tick
LOCAL_CHUNK_DELAY = float(os.getenv("LOCAL_CHUNK_DELAY", 0.0))  # seconds to sleep between chunks

# S3 backend
S3_BUCKET = os.getenv("S3_BUCKET")
S3_PREFIX = os.getenv("S3_PREFIX", "")
S3_REGION = os.getenv("S3_REGION")
S3_ENDPOINT_URL = os.getenv("S3_ENDPOINT_URL")  # e.g. a MinIO endpoint
DOWNLOAD_URL_EXPIRES = int(os.getenv("DOWNLOAD_URL_EXPIRES", 3600))  # seconds

# Upload limits, enforced before a file reaches the store
MAX_FILE_SIZE_MB = int(os.getenv("MAX_FILE_SIZE_MB", 8))
MAX_FILE_SIZE = MAX_FILE_SIZE_MB * 1024 * 1024
MAX_FILES_PER_UPLOAD = int(os.getenv("MAX_FILES_PER_UPLOAD", 4))
UPLOAD_FORM_FIELD = "files-to-upload"
