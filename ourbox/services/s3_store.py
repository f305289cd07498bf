import io
from typing import List, Optional
import boto3
from boto3.s3.transfer import TransferConfig
from botocore.exceptions import BotoCoreError, ClientError
from ourbox.core.exceptions import NotFoundError, TransferError, UploadCancelled
from ourbox.core.logger import get_logger
from ourbox.core.models import ObjectInfo
from ourbox.services.object_store import ObjectStore, UploadHandle, guess_content_type, run_transfer

logger = get_logger(__name__)

# The progress callback must run on the upload's own thread: that is where pause blocks and cancel raises
_TRANSFER_CONFIG = TransferConfig(use_threads=False)

def _is_not_found(error: ClientError) -> bool:
    code = error.response.get("Error", {}).get("Code", "")
    return code in ("404", "NoSuchKey", "NotFound")

class S3ObjectStore(ObjectStore):
    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        url_expires: int = 3600,
    ) -> None:
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.url_expires = url_expires
        session = boto3.session.Session(region_name=region) if region else boto3.session.Session()
        self.client = session.client("s3", endpoint_url=endpoint_url)

    def _key(self, path: str) -> str:
        return f"{self.prefix}/{path}" if self.prefix else path

    def _path(self, key: str) -> str:
        return key[len(self.prefix) + 1:] if self.prefix else key

    def put(self, name: str, content: bytes) -> UploadHandle:
        handle = UploadHandle(name, len(content))
        run_transfer(handle, lambda h: self._upload(h, content))
        return handle

    def _upload(self, handle: UploadHandle, content: bytes) -> str:
        key = self._key(handle.name)
        self.client.upload_fileobj(
            io.BytesIO(content),
            self.bucket,
            key,
            ExtraArgs={"ContentType": guess_content_type(handle.name)},
            Callback=handle.advance,
            Config=_TRANSFER_CONFIG,
        )
        try:
            handle.checkpoint()
        except UploadCancelled:
            # The bytes already landed, remove them so a cancelled upload leaves no object
            self._discard(key)
            raise
        logger.info(f"Uploaded '{handle.name}' to s3://{self.bucket}/{key}")
        return self._presign(key)

    def _discard(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"Could not remove cancelled upload s3://{self.bucket}/{key}: {e}")
        else:
            logger.info(f"Removed cancelled upload s3://{self.bucket}/{key}")

    def _presign(self, key: str) -> str:
        return self.client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=self.url_expires,
        )

    def _head(self, path: str) -> dict:
        try:
            return self.client.head_object(Bucket=self.bucket, Key=self._key(path))
        except ClientError as e:
            if _is_not_found(e):
                raise NotFoundError(f"Object '{path}' does not exist.", {"path": path})
            raise TransferError(f"Failed to read metadata of '{path}': {e}", {"path": path})
        except BotoCoreError as e:
            raise TransferError(f"Failed to read metadata of '{path}': {e}", {"path": path})

    def download_url(self, path: str) -> str:
        self._head(path)
        try:
            return self._presign(self._key(path))
        except (BotoCoreError, ClientError) as e:
            raise TransferError(f"Failed to issue a download URL for '{path}': {e}", {"path": path})

    def delete(self, path: str) -> None:
        # S3 deletes succeed for missing keys, so check first to report unknown paths
        self._head(path)
        try:
            self.client.delete_object(Bucket=self.bucket, Key=self._key(path))
        except (BotoCoreError, ClientError) as e:
            raise TransferError(f"Failed to delete '{path}': {e}", {"path": path})
        logger.info(f"Deleted s3://{self.bucket}/{self._key(path)}")

    def list(self) -> List[ObjectInfo]:
        prefix = f"{self.prefix}/" if self.prefix else ""
        items = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            # The delimiter keeps the listing to direct children of the root
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix, Delimiter="/"):
                for obj in page.get("Contents", []):
                    path = self._path(obj["Key"])
                    if not path:
                        continue
                    head = self.client.head_object(Bucket=self.bucket, Key=obj["Key"])
                    items.append(ObjectInfo(
                        name=path,
                        full_path=path,
                        size=obj["Size"],
                        content_type=head.get("ContentType"),
                        updated=obj.get("LastModified"),
                    ))
        except (BotoCoreError, ClientError) as e:
            raise TransferError(f"Failed to list bucket '{self.bucket}': {e}", {"bucket": self.bucket})
        return items
