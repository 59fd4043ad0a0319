from minio import Minio
from minio.error import S3Error
from typing import Optional, BinaryIO
import json
import logging

from app.core.config import settings
from app.utils.exceptions import StorageError

logger = logging.getLogger(__name__)


class MinioClient:
    def __init__(self):
        self.client = Minio(
            settings.MINIO_ENDPOINT,
            access_key=settings.MINIO_ROOT_USER,
            secret_key=settings.MINIO_ROOT_PASSWORD,
            secure=settings.MINIO_SECURE
        )
        self.bucket_name = settings.MINIO_BUCKET_NAME

    def _public_read_policy(self) -> str:
        # Listing photos are shown on the public map, so objects are world-readable
        return json.dumps({
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"AWS": ["*"]},
                    "Action": ["s3:GetObject"],
                    "Resource": [f"arn:aws:s3:::{self.bucket_name}/*"],
                }
            ],
        })

    async def ensure_bucket_exists(self):
        """Ensure the bucket exists with a public-read policy, create if not"""
        try:
            if not self.client.bucket_exists(bucket_name=self.bucket_name):
                self.client.make_bucket(bucket_name=self.bucket_name)
                self.client.set_bucket_policy(
                    bucket_name=self.bucket_name,
                    policy=self._public_read_policy()
                )
                logger.info("Created photo bucket %s", self.bucket_name)
        except S3Error as e:
            raise StorageError(f"Error ensuring bucket exists: {e}")

    def object_url(self, object_name: str) -> str:
        """Durable URL of a stored object"""
        if settings.MINIO_PUBLIC_URL:
            base_url = settings.MINIO_PUBLIC_URL.rstrip("/")
        else:
            scheme = "https" if settings.MINIO_SECURE else "http"
            base_url = f"{scheme}://{settings.MINIO_ENDPOINT}"
        return f"{base_url}/{self.bucket_name}/{object_name}"

    async def upload_file(
        self,
        file_data: BinaryIO,
        object_name: str,
        content_type: str = "application/octet-stream",
        metadata: Optional[dict] = None
    ) -> str:
        """Upload a file to MinIO and return its durable URL"""
        try:
            await self.ensure_bucket_exists()

            # Get file size
            file_data.seek(0, 2)  # Seek to end
            file_size = file_data.tell()
            file_data.seek(0)  # Reset to beginning

            self.client.put_object(
                bucket_name=self.bucket_name,
                object_name=object_name,
                data=file_data,
                length=file_size,
                content_type=content_type,
                metadata=metadata or {}
            )

            return self.object_url(object_name)
        except S3Error as e:
            raise StorageError(f"Error uploading file: {e}")


# Global MinIO client instance
minio_client = MinioClient()


async def get_minio() -> MinioClient:
    """Dependency to get MinIO client"""
    return minio_client
