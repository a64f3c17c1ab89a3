# ============================================================================
# src/mediguide/ocr/__init__.py
# ============================================================================
"""
OCR module - image-to-text oracle and image preparation

PaddleOCR itself is imported lazily on first recognition.
"""

from .base import ImageToTextOracle
from .image_prep import prepare_image
from .paddle_ocr import PaddleOCRRecognizer, get_paddle_ocr_recognizer

__all__ = [
    "ImageToTextOracle",
    "prepare_image",
    "PaddleOCRRecognizer",
    "get_paddle_ocr_recognizer",
]
