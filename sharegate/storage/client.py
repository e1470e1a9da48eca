"""
Object Storage Client
File storage for document versions (MinIO / S3 compatible)
"""

import asyncio
import io
from datetime import timedelta
from typing import Optional, Protocol

from minio import Minio
from minio.error import MinioException

from sharegate.core.config import settings
from sharegate.core.exceptions import StorageException
from sharegate.core.logging import get_logger

logger = get_logger(__name__)


class ObjectStorage(Protocol):
    """What the document service needs from object storage"""

    async def put_object(self, path: str, data: bytes, content_type: str) -> str:
        ...

    async def get_signed_url(self, path: str, ttl_seconds: int) -> str:
        ...

    async def remove_object(self, path: str) -> None:
        ...


class MinioStorage:
    """ObjectStorage backed by a MinIO bucket"""

    def __init__(
        self,
        client: Minio,
        bucket: Optional[str] = None,
    ):
        self._client = client
        self.bucket = bucket or settings.MINIO_BUCKET

    @classmethod
    def from_settings(cls) -> "MinioStorage":
        """Build a client from application settings"""
        endpoint = settings.MINIO_ENDPOINT
        if "://" in endpoint:
            endpoint = endpoint.split("://")[1]

        client = Minio(
            endpoint,
            access_key=settings.MINIO_ACCESS_KEY,
            secret_key=settings.MINIO_SECRET_KEY,
            secure=settings.MINIO_USE_SSL,
        )
        return cls(client)

    async def ensure_bucket(self) -> None:
        """Create the bucket if it doesn't exist"""
        try:
            exists = await asyncio.to_thread(self._client.bucket_exists, self.bucket)
            if not exists:
                await asyncio.to_thread(self._client.make_bucket, self.bucket)
                logger.info(f"Created bucket: {self.bucket}")
            else:
                logger.debug(f"Bucket exists: {self.bucket}")
        except MinioException as e:
            logger.error(f"Failed to initialize bucket {self.bucket}: {e}")
            raise StorageException(
                message="Failed to initialize object storage",
                details={"bucket": self.bucket},
            )

    async def put_object(self, path: str, data: bytes, content_type: str) -> str:
        """Upload bytes to path"""
        try:
            await asyncio.to_thread(
                self._client.put_object,
                self.bucket,
                path,
                io.BytesIO(data),
                length=len(data),
                content_type=content_type,
            )
            logger.debug(f"Uploaded file: {self.bucket}/{path}")
            return path
        except MinioException as e:
            logger.error(f"Failed to upload file {self.bucket}/{path}: {e}")
            raise StorageException(
                message="Failed to upload file",
                details={"bucket": self.bucket, "object_name": path},
            )

    async def get_signed_url(self, path: str, ttl_seconds: int) -> str:
        """Generate a presigned download URL"""
        try:
            return await asyncio.to_thread(
                self._client.presigned_get_object,
                self.bucket,
                path,
                expires=timedelta(seconds=ttl_seconds),
            )
        except MinioException as e:
            logger.error(f"Failed to generate presigned URL for {self.bucket}/{path}: {e}")
            raise StorageException(
                message="Failed to generate presigned URL",
                details={"bucket": self.bucket, "object_name": path},
            )

    async def remove_object(self, path: str) -> None:
        """Delete the object at path; missing objects are not an error"""
        try:
            await asyncio.to_thread(self._client.remove_object, self.bucket, path)
            logger.debug(f"Removed file: {self.bucket}/{path}")
        except MinioException as e:
            logger.error(f"Failed to remove file {self.bucket}/{path}: {e}")
            raise StorageException(
                message="Failed to remove file",
                details={"bucket": self.bucket, "object_name": path},
            )
