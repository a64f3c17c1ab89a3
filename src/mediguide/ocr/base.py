# ============================================================================
# src/mediguide/ocr/base.py
# ============================================================================
"""
Image-to-Text Oracle Interface

The pipeline only needs `recognize(image_bytes, language_hints) -> OCRResult`.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..core.schemas import OCRResult


class ImageToTextOracle(ABC):
    """Abstract base class for OCR engines."""

    @abstractmethod
    async def recognize(
        self,
        image_bytes: bytes,
        language_hints: Optional[List[str]] = None,
    ) -> OCRResult:
        """
        Recognize text in an image.

        Args:
            image_bytes: raw encoded image (PNG, JPEG, ...)
            language_hints: recognition languages, first one wins

        Returns:
            OCRResult with text, overall confidence, tokens and lines

        Raises:
            InputValidationError: bytes are not a decodable image
            OracleTimeoutError, OracleUnavailableError, OracleError
        """
        pass

    def get_statistics(self) -> Dict[str, Any]:
        return {}
