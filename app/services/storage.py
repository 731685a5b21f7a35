"""
PhotoStorageService for MinIO object storage.

This module provides a singleton service that stores plant photos in a
MinIO bucket and returns their public URLs.
"""

import io
import json
import logging
import uuid
from typing import Optional

import urllib3
from minio import Minio
from minio.error import S3Error

from app.core.config import get_settings
from app.core.images import decode_data_uri, extension_for

logger = logging.getLogger(__name__)

PHOTO_PREFIX = "plants"


class StorageConnectionError(Exception):
    """
    Raised when MinIO cannot be used.

    This exception is raised when:
    - MinIO server is unreachable
    - Authentication fails (invalid access key or secret key)
    - Bucket creation, policy or upload operations fail
    """

    pass


class PhotoStorageService:
    """
    Singleton service for plant photo storage.

    Photos are written under ``plants/<uuid>_<filename>`` in a bucket
    with a public-read policy, so the returned URL can be stored on the
    plant record directly.

    Example:
        >>> service = get_storage_service()
        >>> url = service.upload_photo(b"...", "monstera.jpg", "image/jpeg")
        >>> url
        'http://localhost:9000/plant-photos/plants/1f0c..._monstera.jpg'
    """

    _instance: Optional["PhotoStorageService"] = None

    def __new__(cls) -> "PhotoStorageService":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._initialized = True

        settings = get_settings()
        self._endpoint = settings.minio_endpoint
        self._bucket_name = settings.minio_bucket_name
        self._secure = settings.minio_secure

        # Disable SSL warnings for development
        if not self._secure:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        try:
            self._client = Minio(
                self._endpoint,
                access_key=settings.minio_access_key,
                secret_key=settings.minio_secret_key,
                secure=self._secure,
            )
            self._ensure_bucket_exists()
        except S3Error as e:
            raise StorageConnectionError(
                f"Failed to connect to MinIO at {self._endpoint}: {e}"
            ) from e

    def _ensure_bucket_exists(self):
        """
        Create the bucket with a public-read policy if it is missing.

        Raises:
            StorageConnectionError: If bucket creation fails
        """
        try:
            if self._client.bucket_exists(self._bucket_name):
                return

            self._client.make_bucket(self._bucket_name)
            policy = {
                "Version": "2012-10-17",
                "Statement": [
                    {
                        "Effect": "Allow",
                        "Principal": {"AWS": "*"},
                        "Action": ["s3:GetObject"],
                        "Resource": [f"arn:aws:s3:::{self._bucket_name}/*"],
                    }
                ],
            }
            self._client.set_bucket_policy(self._bucket_name, json.dumps(policy))
            logger.info(f"Created photo bucket '{self._bucket_name}'")

        except S3Error as e:
            raise StorageConnectionError(
                f"Failed to create or configure bucket '{self._bucket_name}': {e}"
            ) from e

    @staticmethod
    def object_name_for(filename: Optional[str], content_type: str) -> str:
        """Build a unique object name, keeping the original file name when given."""
        name = filename or f"photo.{extension_for(content_type)}"
        return f"{PHOTO_PREFIX}/{uuid.uuid4()}_{name}"

    def upload_photo(self, content: bytes, object_name: str, content_type: str) -> str:
        """
        Upload photo bytes and return the public URL.

        Raises:
            StorageConnectionError: If upload fails
        """
        try:
            self._client.put_object(
                bucket_name=self._bucket_name,
                object_name=object_name,
                data=io.BytesIO(content),
                length=len(content),
                content_type=content_type,
            )
        except S3Error as e:
            raise StorageConnectionError(
                f"Failed to upload photo '{object_name}' to MinIO: {e}"
            ) from e

        logger.info(f"Stored photo {object_name} ({len(content)} bytes)")
        return self._get_public_url(object_name)

    def upload_data_uri(self, data_uri: str, filename: Optional[str] = None) -> str:
        """
        Decode a data-URI photo and upload it.

        Raises:
            ImageValidationError: If the data URI is malformed
            StorageConnectionError: If upload fails
        """
        content_type, content = decode_data_uri(data_uri)
        return self.upload_photo(content, self.object_name_for(filename, content_type), content_type)

    def _get_public_url(self, object_name: str) -> str:
        protocol = "https" if self._secure else "http"
        return f"{protocol}://{self._endpoint}/{self._bucket_name}/{object_name}"

    @property
    def bucket_name(self) -> str:
        """Get the configured bucket name."""
        return self._bucket_name


# Module-level singleton instance
_storage_service: Optional[PhotoStorageService] = None


def get_storage_service() -> PhotoStorageService:
    """
    Get the singleton PhotoStorageService instance.

    Returns:
        PhotoStorageService instance

    Raises:
        StorageConnectionError: If connection to MinIO fails
    """
    global _storage_service
    if _storage_service is None:
        _storage_service = PhotoStorageService()
    return _storage_service
