"""Image format conversion with Pillow."""

import io
import math

from PIL import Image, UnidentifiedImageError


class ImageProcessingError(Exception):
    """Image could not be decoded or re-encoded."""
    pass


PIL_FORMATS = {
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
}


def png_compress_level(quality: int) -> int:
    """Map a 1-100 quality value to a zlib compression level (0-9)."""
    return math.floor((100 - quality) / 100 * 9)


def transform_image(data: bytes, target_format: str, quality: int) -> bytes:
    """
    Re-encode an image in another format.

    Args:
        data: Source image bytes
        target_format: One of ``jpeg``, ``png``, ``webp``, or ``original``
        quality: 1-100; used by jpeg and webp, mapped to a compression level for png

    Returns:
        Encoded image bytes (the input unchanged for ``original``)

    Raises:
        ImageProcessingError: If the source is not a readable image or cannot be encoded
    """
    if target_format == "original":
        return data
    if target_format not in PIL_FORMATS:
        raise ImageProcessingError(f"Unsupported target format: {target_format}")

    try:
        with Image.open(io.BytesIO(data)) as source:
            image = source
            if target_format == "jpeg" and image.mode not in ("RGB", "L"):
                image = image.convert("RGB")

            output = io.BytesIO()
            if target_format == "png":
                image.save(output, format="PNG", compress_level=png_compress_level(quality))
            else:
                image.save(output, format=PIL_FORMATS[target_format], quality=quality)
            return output.getvalue()
    except UnidentifiedImageError as e:
        raise ImageProcessingError(f"Source is not a recognized image: {e}") from e
    except (OSError, ValueError) as e:
        raise ImageProcessingError(f"Failed to convert image to {target_format}: {e}") from e
