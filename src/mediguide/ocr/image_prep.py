# ============================================================================
# src/mediguide/ocr/image_prep.py
# ============================================================================
"""
Image preparation for OCR.

Provides:
- Decoding uploaded bytes
- EXIF orientation correction (phone camera photos)
- Downscaling oversized images, upscaling tiny ones
- Color mode conversion to RGB
"""

import logging
from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

from ..config.ocr_config import ocr_settings
from ..utils.exceptions import InputValidationError

logger = logging.getLogger(__name__)


def prepare_image(
    image_bytes: bytes,
    max_dimension: int = ocr_settings.OCR_MAX_DIMENSION,
    min_dimension: int = ocr_settings.OCR_MIN_DIMENSION,
) -> Image.Image:
    """
    Decode image bytes and apply the corrections OCR needs.

    Args:
        image_bytes: raw encoded image
        max_dimension: longest side above this is downscaled
        min_dimension: longest side below this is upscaled

    Returns:
        RGB PIL Image

    Raises:
        InputValidationError: bytes are empty or not an image
    """
    if not image_bytes:
        raise InputValidationError("Image payload is empty")

    try:
        image = Image.open(BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise InputValidationError(
            f"Could not decode image: {e}",
            user_message="The uploaded file is not a readable image.",
        )

    # Phones store portrait photos sideways with an EXIF rotate tag
    try:
        image = ImageOps.exif_transpose(image)
    except Exception as e:
        logger.warning(f"EXIF transpose failed (non-fatal): {e}")

    w, h = image.size
    longest = max(w, h)
    if longest > max_dimension:
        scale = max_dimension / longest
        image = image.resize((int(w * scale), int(h * scale)), Image.LANCZOS)
        logger.info(f"Resized {w}x{h} -> {image.size[0]}x{image.size[1]} for OCR")
    elif 0 < longest < min_dimension:
        scale = min_dimension / longest
        image = image.resize((round(w * scale), round(h * scale)), Image.LANCZOS)
        logger.info(f"Upscaled {w}x{h} -> {image.size[0]}x{image.size[1]} for OCR")

    if image.mode != 'RGB':
        image = image.convert('RGB')

    logger.debug(f"Image prepared for OCR: {image.size}, mode={image.mode}")
    return image
