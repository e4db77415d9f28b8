"""Helpers for the data-URI images stored on entries."""

import base64
import binascii
import io
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from .logger import logger

DATA_URI_PREFIX = "data:"


def decode_data_uri(uri: str) -> Optional[bytes]:
    """Bytes of a base64 data URI, or None if `uri` is empty or not one."""
    if not uri or not uri.startswith(DATA_URI_PREFIX) or "," not in uri:
        return None
    header, _, payload = uri.partition(",")
    if not header.endswith(";base64"):
        return None
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return None


def load_image(uri: str, max_size: Optional[Tuple[int, int]] = None) -> Optional[Image.Image]:
    """
    Open an entry's image, optionally shrunk to fit `max_size`.

    Entries without an image (or with a corrupt one) return None; the
    caller renders without it.
    """
    data = decode_data_uri(uri)
    if data is None:
        return None
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        logger.img_error(f"Could not open entry image: {e}")
        return None

    if max_size:
        image = image.copy()
        image.thumbnail(max_size, Image.Resampling.LANCZOS)
    return image
