"""
Unit tests for PhotoStorageService.

Tests cover singleton pattern, bucket management, photo upload and error
handling with a mocked MinIO client.
"""

import json
from unittest.mock import Mock, patch

import pytest

from app.core.images import ImageValidationError, encode_data_uri
from app.services.storage import (
    PHOTO_PREFIX,
    PhotoStorageService,
    StorageConnectionError,
    get_storage_service,
)


class FakeS3Error(Exception):
    """Stands in for minio.error.S3Error, whose constructor differs across releases."""


def s3_error():
    return FakeS3Error("InternalError: boom")


@pytest.fixture
def mock_client():
    with patch("app.services.storage.Minio") as mock_minio, patch(
        "app.services.storage.S3Error", FakeS3Error
    ):
        client = Mock()
        client.bucket_exists.return_value = True
        mock_minio.return_value = client
        yield client


def test_storage_service_singleton(mock_client):
    assert PhotoStorageService() is PhotoStorageService()
    assert get_storage_service() is PhotoStorageService()


def test_existing_bucket_is_reused(mock_client):
    PhotoStorageService()

    mock_client.make_bucket.assert_not_called()


def test_missing_bucket_is_created_public_read(mock_client):
    mock_client.bucket_exists.return_value = False

    service = PhotoStorageService()

    mock_client.make_bucket.assert_called_once_with(service.bucket_name)
    bucket, policy = mock_client.set_bucket_policy.call_args.args
    statement = json.loads(policy)["Statement"][0]
    assert bucket == "plant-photos"
    assert statement["Action"] == ["s3:GetObject"]
    assert statement["Resource"] == ["arn:aws:s3:::plant-photos/*"]


def test_bucket_creation_failure(mock_client):
    mock_client.bucket_exists.side_effect = s3_error()

    with pytest.raises(StorageConnectionError, match="Failed to create or configure bucket"):
        PhotoStorageService()


def test_object_name_keeps_filename():
    name = PhotoStorageService.object_name_for("monstera.jpg", "image/jpeg")

    assert name.startswith(f"{PHOTO_PREFIX}/")
    assert name.endswith("_monstera.jpg")


def test_object_name_without_filename_uses_extension():
    assert PhotoStorageService.object_name_for(None, "image/png").endswith("_photo.png")


def test_upload_photo_returns_public_url(mock_client):
    service = PhotoStorageService()

    url = service.upload_photo(b"fake image data", "plants/abc_leaf.jpg", "image/jpeg")

    kwargs = mock_client.put_object.call_args.kwargs
    assert kwargs["bucket_name"] == "plant-photos"
    assert kwargs["object_name"] == "plants/abc_leaf.jpg"
    assert kwargs["length"] == len(b"fake image data")
    assert kwargs["content_type"] == "image/jpeg"
    assert url == "http://localhost:9000/plant-photos/plants/abc_leaf.jpg"


def test_upload_photo_failure(mock_client):
    mock_client.put_object.side_effect = s3_error()
    service = PhotoStorageService()

    with pytest.raises(StorageConnectionError, match="Failed to upload photo"):
        service.upload_photo(b"data", "plants/x.jpg", "image/jpeg")


def test_upload_data_uri_decodes_payload(mock_client):
    service = PhotoStorageService()

    url = service.upload_data_uri(encode_data_uri(b"\x89PNG", "image/png"))

    kwargs = mock_client.put_object.call_args.kwargs
    assert kwargs["data"].read() == b"\x89PNG"
    assert kwargs["content_type"] == "image/png"
    assert url.endswith("_photo.png")


def test_upload_data_uri_rejects_malformed(mock_client):
    service = PhotoStorageService()

    with pytest.raises(ImageValidationError):
        service.upload_data_uri("not a data uri")
    mock_client.put_object.assert_not_called()
