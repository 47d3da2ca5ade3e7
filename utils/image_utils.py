"""
Image utilities for the form engine.

Handles image decoding, RGBA conversion, and PNG/base64 encoding.
"""
import base64
import binascii
import logging
import os
from io import BytesIO
from typing import Tuple, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from core.constants import TRANSPARENT
from core.exceptions import DecodeFailure

logger = logging.getLogger(__name__)

ImageSource = Union[bytes, bytearray, str, os.PathLike, Image.Image]


def _source_to_bytes(source: Union[str, bytes, bytearray]) -> bytes:
    """Resolve a data URL, base64 string or file path to raw bytes."""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)

    if source.startswith('data:'):
        # data:image/png;base64,....
        _, _, payload = source.partition(',')
        try:
            return base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as e:
            raise DecodeFailure("Invalid base64 payload in data URL", cause=e)

    if os.path.exists(source):
        with open(source, 'rb') as fh:
            return fh.read()

    try:
        return base64.b64decode(source, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeFailure("Image source is neither a file nor base64 data", cause=e)


def decode_image(source: ImageSource, max_size: int = 0) -> Image.Image:
    """
    Decode any supported image source into an RGBA Pillow image.

    Args:
        source: Raw bytes, base64 string, data URL, file path or PIL Image
        max_size: Maximum dimension before thumbnailing (0 disables)

    Returns:
        Fully loaded RGBA image

    Raises:
        DecodeFailure: The source cannot be read as an image
    """
    if isinstance(source, Image.Image):
        img = source
    else:
        if isinstance(source, os.PathLike):
            source = os.fspath(source)
        data = _source_to_bytes(source)
        if not data:
            raise DecodeFailure("Image source is empty")
        try:
            img = Image.open(BytesIO(data))
            img.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            logger.warning("Image decode failed: %s", e)
            raise DecodeFailure(f"Could not decode image: {e}", cause=e)

    # Fix EXIF orientation
    img = ImageOps.exif_transpose(img)

    if img.mode != 'RGBA':
        img = img.convert('RGBA')

    if max_size and max(img.size) > max_size:
        img.thumbnail((max_size, max_size), Image.Resampling.LANCZOS)

    return img


def encode_png(image: Image.Image) -> bytes:
    """Encode an image as lossless PNG bytes."""
    buf = BytesIO()
    image.save(buf, format='PNG')
    return buf.getvalue()


def image_to_base64(image: Image.Image) -> str:
    """
    Convert an image to a base64-encoded PNG.

    Args:
        image: PIL Image

    Returns:
        Base64-encoded PNG string
    """
    return base64.b64encode(encode_png(image)).decode()


def create_empty_layer(size: Tuple[int, int]) -> Image.Image:
    """Create a fully transparent RGBA layer of the given (width, height)."""
    return Image.new('RGBA', size, TRANSPARENT)


def format_size(num_bytes: int) -> str:
    """Human readable byte count ("512 B", "1.50 KB", "2.00 MB")."""
    if num_bytes < 1024:
        return f"{num_bytes} B"
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.2f} KB"
    return f"{num_bytes / (1024 * 1024):.2f} MB"
