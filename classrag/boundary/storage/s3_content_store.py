"""
S3 content store for raw uploaded documents.

Stores upload bytes under a collection-scoped key and hands back an opaque
s3://bucket/key location that is persisted on the Document row. boto3 is
blocking, so every call runs in the threadpool.

Dependencies: boto3, fastapi (run_in_threadpool)
System role: External blob storage used by upload, processing, and delete
"""

import logging
import re
import uuid
from urllib.parse import urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from classrag.core.exceptions import ContentStoreError

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def parse_location(location: str) -> tuple[str, str]:
    """
    Split an s3://bucket/key location.

    Args:
        location: Location handle produced by S3ContentStore.put

    Returns:
        tuple[str, str]: (bucket, key)

    Raises:
        ContentStoreError: If the handle is not an s3:// URL with a key
    """
    parsed = urlparse(location)
    key = parsed.path.lstrip("/")
    if parsed.scheme != "s3" or not parsed.netloc or not key:
        raise ContentStoreError(f"Invalid content location: {location}", location)
    return parsed.netloc, key


class S3ContentStore:
    """Put/get/delete raw document bytes in the documents bucket."""

    def __init__(
        self,
        bucket: str,
        region: str = "ap-southeast-2",
        key_prefix: str = "class-files",
        s3_client=None,
    ) -> None:
        """
        Initialize S3 content store.

        Args:
            bucket: S3 bucket name for document storage
            region: AWS region for S3 bucket
            key_prefix: Key prefix for all uploaded documents
            s3_client: Preconfigured boto3 S3 client (created when omitted)
        """
        self._bucket = bucket
        self._region = region
        self._key_prefix = key_prefix.strip("/")
        self._s3_client = s3_client or boto3.client("s3", region_name=region)

    def build_key(self, collection_id: uuid.UUID, filename: str) -> str:
        safe_name = _UNSAFE_KEY_CHARS.sub("_", filename).strip("_") or "document"
        return f"{self._key_prefix}/{collection_id}/{uuid.uuid4().hex}_{safe_name}"

    async def put(
        self,
        collection_id: uuid.UUID,
        filename: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> str:
        """
        Upload document bytes.

        Args:
            collection_id: Owning collection, used in the key
            filename: Original filename, sanitized into the key
            data: Raw file bytes
            content_type: MIME type stored on the object

        Returns:
            str: Location handle (s3://bucket/key)

        Raises:
            ContentStoreError: When the upload fails
        """
        key = self.build_key(collection_id, filename)
        location = f"s3://{self._bucket}/{key}"
        try:
            await run_in_threadpool(
                self._s3_client.put_object,
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            raise ContentStoreError(f"Failed to upload to S3: {e}", location) from e

        logger.info(
            f"{__name__}:put - Stored document",
            extra={"location": location, "size_bytes": len(data)},
        )
        return location

    async def get(self, location: str) -> bytes:
        """
        Download document bytes.

        Args:
            location: Location handle returned by put

        Returns:
            bytes: Raw file bytes

        Raises:
            ContentStoreError: When the object is missing or the download fails
        """
        bucket, key = parse_location(location)

        def _read() -> bytes:
            response = self._s3_client.get_object(Bucket=bucket, Key=key)
            return response["Body"].read()

        try:
            return await run_in_threadpool(_read)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in ("404", "NoSuchKey"):
                raise ContentStoreError(f"File not found in S3: {key}", location) from e
            raise ContentStoreError(f"Failed to download from S3: {e}", location) from e
        except BotoCoreError as e:
            raise ContentStoreError(f"Failed to download from S3: {e}", location) from e

    async def delete(self, location: str) -> bool:
        """
        Delete a stored document. Best-effort: failures are logged, not raised.

        Returns:
            bool: True when the delete call succeeded
        """
        try:
            bucket, key = parse_location(location)
            await run_in_threadpool(self._s3_client.delete_object, Bucket=bucket, Key=key)
            return True
        except (ContentStoreError, ClientError, BotoCoreError) as e:
            logger.warning(
                f"{__name__}:delete - Failed to delete content: {type(e).__name__}: {e}",
                extra={"location": location},
            )
            return False
