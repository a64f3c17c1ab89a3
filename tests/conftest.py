# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.

Oracles are replaced with in-memory fakes so no test needs Ollama,
PaddleOCR or network access.
"""

import io
from typing import Any, Callable, Dict, List, Optional, Union

import pytest
from PIL import Image

from mediguide.core.schemas import MedicationRecord, OCRResult, TimingBuckets
from mediguide.extraction.rule_extractor import RuleBasedExtractor
from mediguide.gate.confidence_gate import ConfidenceGate
from mediguide.llm.base import BackendType, TextCompletionOracle
from mediguide.ocr.base import ImageToTextOracle


class FakeTextOracle(TextCompletionOracle):
    """
    Text oracle returning canned responses.

    `responses` may be a string (returned every time), a list (returned in
    order, last one repeated), an exception instance (raised) or a callable
    taking (system_prompt, user_prompt).
    """

    def __init__(self, responses: Union[str, List[str], Exception, Callable] = "{}"):
        super().__init__()
        self.responses = responses
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    @property
    def backend_type(self) -> BackendType:
        return BackendType.OLLAMA

    @property
    def model_name(self) -> str:
        return "fake"

    async def complete(self, system_prompt, user_prompt, temperature=None, json_mode=False, timeout=None):
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "temperature": temperature,
            "json_mode": json_mode,
        })
        if isinstance(self.responses, Exception):
            raise self.responses
        if callable(self.responses):
            return self.responses(system_prompt, user_prompt)
        if isinstance(self.responses, list):
            index = min(len(self.calls) - 1, len(self.responses) - 1)
            return self.responses[index]
        return self.responses

    async def health_check(self):
        return {"healthy": True, "backend": "ollama", "model": "fake", "details": "fake oracle"}

    async def close(self):
        self.closed = True


class FakeOCR(ImageToTextOracle):
    """Image oracle returning a preset OCRResult, or raising a preset error."""

    def __init__(self, result: Optional[OCRResult] = None, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def recognize(self, image_bytes, language_hints=None):
        self.calls.append({"size": len(image_bytes), "language_hints": language_hints})
        if self.error is not None:
            raise self.error
        return self.result


def make_png(width: int = 200, height: int = 100, mode: str = "RGB") -> bytes:
    """Encode a blank image as PNG bytes."""
    color = (255, 255, 255, 255) if mode == "RGBA" else "white"
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


AMLODIPINE_LINE = "Tab Amlodipine 5mg 1-0-0 x 30 days Before breakfast"

SAMPLE_PRESCRIPTION = """Dr. Mehta Clinic
Patient: Ravi Kumar
Date: 12/03/2024
Tab Amlodipine 5mg 1-0-0 x 30 days Before breakfast
Metformin 500mg BD after food
Advice: review after 1 month
"""

LLM_PLAN_JSON = """{
  "medications": [
    {
      "name": "Amlodipine",
      "name_confidence": 0.92,
      "strength": "5mg",
      "strength_confidence": 0.9,
      "form": "Tablet",
      "frequency": "OD",
      "frequency_normalized": "Once daily",
      "frequency_confidence": 0.88,
      "timing_buckets": {"morning": 1, "afternoon": 0, "evening": 0, "night": 0},
      "duration": "30 days",
      "duration_confidence": 0.8,
      "food_instruction": "before breakfast",
      "uncertain_fields": []
    }
  ],
  "extracted_language": "en",
  "clarification_questions": []
}"""


@pytest.fixture
def extractor():
    return RuleBasedExtractor()


@pytest.fixture
def gate():
    return ConfidenceGate()


@pytest.fixture
def amlodipine_line():
    return AMLODIPINE_LINE


@pytest.fixture
def sample_prescription():
    """Typed prescription with header lines around two medications"""
    return SAMPLE_PRESCRIPTION


@pytest.fixture
def llm_plan_json():
    return LLM_PLAN_JSON


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def good_ocr_result():
    """Image OCR output that passes every quality check"""
    result = OCRResult.from_text(AMLODIPINE_LINE)
    result.confidence = 0.92
    return result


@pytest.fixture
def make_record():
    """Factory for medication records with confident defaults"""

    def _make(name: str = "Amlodipine", **overrides) -> MedicationRecord:
        values = dict(
            name=name,
            strength="5mg",
            frequency="OD",
            frequency_normalized="Once daily",
            timing_buckets=TimingBuckets(morning=1),
            duration="30 days",
            name_confidence=0.9,
            strength_confidence=0.9,
            frequency_confidence=0.9,
            duration_confidence=0.85,
            confidence=0.9,
        )
        values.update(overrides)
        return MedicationRecord(**values)

    return _make
