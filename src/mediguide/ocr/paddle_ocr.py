# ============================================================================
# src/mediguide/ocr/paddle_ocr.py
# ============================================================================
"""
PaddleOCR Recognizer

Wraps the PaddleOCR library behind ImageToTextOracle.

Installation:
    pip install paddlepaddle paddleocr

- Lazy model initialization on first use
- Runs the synchronous engine in a thread pool
- Bounded by asyncio.wait_for (OCR timeout)
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from statistics import mean
from typing import Any, Dict, List, Optional

import numpy as np

from ..config.ocr_config import OCRSettings, ocr_settings
from ..core.schemas import ZERO_POLYGON, OCRLine, OCRResult, OCRToken, Polygon
from ..utils.exceptions import OracleError, OracleTimeoutError, OracleUnavailableError
from .base import ImageToTextOracle
from .image_prep import prepare_image

logger = logging.getLogger(__name__)

# Thread pool for running sync PaddleOCR in async context
_executor = ThreadPoolExecutor(max_workers=2)

# Module-level singleton shared across all callers
_singleton_instance: Optional['PaddleOCRRecognizer'] = None


def get_paddle_ocr_recognizer(settings: OCRSettings = ocr_settings) -> 'PaddleOCRRecognizer':
    """Get the singleton PaddleOCRRecognizer instance (creates on first call)."""
    global _singleton_instance
    if _singleton_instance is None:
        _singleton_instance = PaddleOCRRecognizer(settings)
    return _singleton_instance


class PaddleOCRRecognizer(ImageToTextOracle):
    """
    PaddleOCR-based recognizer for prescription photos.

    One engine per language, created lazily. PaddleOCR returns line-level
    text; each line is split into word tokens that share the line's polygon
    and score.
    """

    def __init__(self, settings: OCRSettings = ocr_settings):
        self.settings = settings
        self.lang = settings.OCR_LANG
        self.timeout = settings.OCR_TIMEOUT
        self.use_gpu = settings.OCR_USE_GPU

        self._engines: Dict[str, Any] = {}
        self._inference_count = 0

        logger.info(f"PaddleOCR recognizer created (lang={self.lang}, gpu_config={self.use_gpu}, lazy init)")

    def _ensure_initialized(self, lang: str):
        """Lazily initialize PaddleOCR for a language on first use."""
        if lang in self._engines:
            return self._engines[lang]

        try:
            from paddleocr import PaddleOCR
        except ImportError:
            raise OracleUnavailableError(
                "PaddleOCR not installed. Run: pip install paddlepaddle paddleocr",
                oracle="paddleocr",
            )

        try:
            # orientation classify handles rotated camera photos
            engine = PaddleOCR(
                use_doc_orientation_classify=True,
                use_doc_unwarping=False,
                use_textline_orientation=True,
                lang=lang,
            )
        except Exception as e:
            logger.error(f"Failed to initialize PaddleOCR: {e}")
            raise OracleUnavailableError(f"Failed to initialize PaddleOCR: {e}", oracle="paddleocr")

        self._engines[lang] = engine
        logger.info(f"PaddleOCR initialized successfully (lang={lang})")
        return engine

    def warm_up(self) -> None:
        """Load the default language model ahead of the first request."""
        self._ensure_initialized(self.lang)

    def recognize_sync(self, image_bytes: bytes, language_hints: Optional[List[str]] = None) -> OCRResult:
        lang = (language_hints or [self.lang])[0]
        engine = self._ensure_initialized(lang)

        image = prepare_image(
            image_bytes,
            max_dimension=self.settings.OCR_MAX_DIMENSION,
            min_dimension=self.settings.OCR_MIN_DIMENSION,
        )
        # PaddleOCR expects BGR channel order for ndarray input
        array = np.asarray(image)[:, :, ::-1]

        try:
            result = engine.predict(input=array)
        except Exception as e:
            logger.error(f"PaddleOCR extraction failed: {e}")
            raise OracleError(f"PaddleOCR extraction failed: {e}", oracle="paddleocr")

        self._inference_count += 1
        return build_ocr_result(result, lang)

    async def recognize(
        self,
        image_bytes: bytes,
        language_hints: Optional[List[str]] = None,
    ) -> OCRResult:
        """Run recognition in the thread pool, bounded by the OCR timeout."""
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(_executor, self.recognize_sync, image_bytes, language_hints),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"PaddleOCR timed out after {self.timeout}s")
            raise OracleTimeoutError(
                f"OCR timed out after {self.timeout}s",
                oracle="paddleocr",
                timeout_seconds=self.timeout,
                user_message="OCR request timed out. Please try with a smaller image.",
            )

    def get_statistics(self) -> Dict[str, Any]:
        return {
            'initialized_languages': sorted(self._engines),
            'inference_count': self._inference_count,
            'use_gpu': self.use_gpu,
            'language': self.lang,
        }


def build_ocr_result(result: Any, language: str = "en") -> OCRResult:
    """
    Convert PaddleOCR predict() output into an OCRResult.

    PaddleOCR 3.x returns dict-like results exposing rec_texts, rec_scores
    and dt_polys through .get().
    """
    lines: List[OCRLine] = []
    tokens: List[OCRToken] = []

    for res in result or []:
        rec_texts = res.get('rec_texts', []) if hasattr(res, 'get') else getattr(res, 'rec_texts', [])
        rec_scores = res.get('rec_scores', []) if hasattr(res, 'get') else getattr(res, 'rec_scores', [])
        dt_polys = res.get('dt_polys', []) if hasattr(res, 'get') else getattr(res, 'dt_polys', [])

        for i, text in enumerate(rec_texts or []):
            if not text or not text.strip():
                continue
            score = float(rec_scores[i]) if i < len(rec_scores) else 1.0
            polygon = _to_polygon(dt_polys[i]) if dt_polys is not None and i < len(dt_polys) else ZERO_POLYGON

            line_tokens = [OCRToken(text=word, confidence=score, bbox=polygon) for word in text.split()]
            lines.append(OCRLine(text=text.strip(), confidence=score, tokens=line_tokens))
            tokens.extend(line_tokens)

    confidence = mean(line.confidence for line in lines) if lines else 0.0
    return OCRResult(
        text="\n".join(line.text for line in lines),
        confidence=confidence,
        tokens=tokens,
        lines=lines,
        language=language,
    )


def _to_polygon(poly: Any) -> Polygon:
    """Four (x, y) corners; boxes with other point counts collapse to their extent."""
    try:
        points = [(float(p[0]), float(p[1])) for p in poly]
    except (TypeError, ValueError, IndexError):
        return ZERO_POLYGON

    if len(points) == 4:
        return tuple(points)
    if not points:
        return ZERO_POLYGON

    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return ((min(xs), min(ys)), (max(xs), min(ys)), (max(xs), max(ys)), (min(xs), max(ys)))
