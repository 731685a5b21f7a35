"""
Image input validation and data-URI helpers.

Uploaded files and camera captures are carried through the system as
``data:<media-type>;base64,<payload>`` strings, which is the form the
Plant.id API accepts directly. Validation happens here, before any
network call is attempted.
"""

import base64
import binascii
import re
from typing import Optional, Tuple

DEFAULT_MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5MB

_DATA_URI_PATTERN = re.compile(
    r"^data:(?P<media_type>[\w.+-]+/[\w.+-]+)(?:;[\w.+-]+=[\w.+-]+)*;base64,(?P<payload>.*)$",
    re.DOTALL,
)


class ImageValidationError(Exception):
    """
    Raised when an image is rejected at the input boundary.

    The message is user facing, e.g. "Image must be less than 5MB".
    """

    pass


def _size_label(max_size: int) -> str:
    if max_size % (1024 * 1024) == 0:
        return f"{max_size // (1024 * 1024)}MB"
    return f"{max_size} bytes"


def validate_image_upload(
    content_type: Optional[str],
    size: int,
    max_size: int = DEFAULT_MAX_IMAGE_SIZE,
) -> None:
    """
    Check the declared media type and size of an uploaded image.

    Args:
        content_type: Declared MIME type of the file
        size: File size in bytes
        max_size: Largest accepted size in bytes

    Raises:
        ImageValidationError: If the file is not an image, empty, or too large
    """
    if not content_type or not content_type.lower().startswith("image/"):
        raise ImageValidationError("Please select a valid image file")
    if size <= 0:
        raise ImageValidationError("Empty file")
    if size > max_size:
        raise ImageValidationError(f"Image must be less than {_size_label(max_size)}")


def encode_data_uri(content: bytes, content_type: str) -> str:
    """Encode raw image bytes as a base64 data URI."""
    payload = base64.b64encode(content).decode("ascii")
    return f"data:{content_type};base64,{payload}"


def decode_data_uri(data_uri: str) -> Tuple[str, bytes]:
    """
    Split a base64 data URI into its media type and decoded bytes.

    Raises:
        ImageValidationError: If the string is not a base64 data URI
    """
    match = _DATA_URI_PATTERN.match(data_uri.strip())
    if match is None:
        raise ImageValidationError("Image data must be a base64 data URI")

    try:
        content = base64.b64decode(match.group("payload"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageValidationError("Image data is not valid base64") from e

    return match.group("media_type").lower(), content


def is_data_uri(value: Optional[str]) -> bool:
    return bool(value) and value.startswith("data:")


def validate_data_uri(data_uri: str, max_size: int = DEFAULT_MAX_IMAGE_SIZE) -> str:
    """
    Validate a captured/uploaded image given as a data URI.

    Returns:
        The media type declared by the data URI

    Raises:
        ImageValidationError: If the URI is malformed, not an image, or too large
    """
    media_type, content = decode_data_uri(data_uri)
    validate_image_upload(media_type, len(content), max_size=max_size)
    return media_type


def extension_for(content_type: str) -> str:
    """Pick a file extension for an image media type ("image/jpeg" -> "jpg")."""
    subtype = content_type.split("/")[-1].split(";")[0].strip().lower()
    if subtype in ("jpeg", "pjpeg"):
        return "jpg"
    if subtype == "svg+xml":
        return "svg"
    return subtype or "jpg"
