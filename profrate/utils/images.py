"""Profile image handling for data URLs and external links."""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from profrate.utils.runtime import env_int
from profrate.utils.validation import MAX_INPUT_LENGTHS

ALLOWED_IMAGE_TYPES = frozenset({"image/png", "image/jpeg", "image/gif", "image/webp"})
DEFAULT_MAX_IMAGE_BYTES = 2 * 1024 * 1024

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,(?P<payload>[A-Za-z0-9+/=\s]+)$")


@dataclass(frozen=True)
class DecodedImage:
    content_type: str
    data: bytes


def max_image_bytes() -> int:
    return env_int("MAX_PROFILE_IMAGE_BYTES", DEFAULT_MAX_IMAGE_BYTES)


def is_data_url(value: Optional[str]) -> bool:
    return bool(value) and value.startswith("data:")


def decode_data_url(value: str) -> DecodedImage:
    """Decode a base64 image data URL; raises ValueError for anything unusable."""
    match = _DATA_URL_RE.match(value.strip())
    if not match:
        raise ValueError("Image must be a base64 data URL")
    mime = match.group("mime").lower()
    if mime not in ALLOWED_IMAGE_TYPES:
        raise ValueError(f"Unsupported image type: {mime}")
    try:
        data = base64.b64decode(match.group("payload"), validate=False)
    except (binascii.Error, ValueError):
        raise ValueError("Image data is not valid base64")
    if not data:
        raise ValueError("Image data is empty")
    if len(data) > max_image_bytes():
        raise ValueError(f"Image exceeds {max_image_bytes()} bytes")
    return DecodedImage(content_type=mime, data=data)


def validate_image_reference(value: str) -> str:
    """Accept a data URL image or an https URL and return the value to store."""
    value = (value or "").strip()
    if is_data_url(value):
        decode_data_url(value)
        return value
    if len(value) > MAX_INPUT_LENGTHS["url"]:
        raise ValueError("Image URL is too long")
    parsed = urlparse(value)
    if parsed.scheme != "https" or not parsed.netloc:
        raise ValueError("Image URL must use https")
    return value
