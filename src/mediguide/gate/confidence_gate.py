# ============================================================================
# src/mediguide/gate/confidence_gate.py
# ============================================================================
"""
Confidence Gate

Decides whether OCR output and extracted fields can be trusted, and produces
clarification questions deterministically.

- Global OCR gate (reject / warn / pass)
- Per-field threshold policy (uncertain vs missing)
- Canned suggestions per field
- OCR quality pre-check for image input
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from ..config.thresholds_config import ThresholdSettings, threshold_settings
from ..core.schemas import (
    ClarificationQuestion,
    FieldReading,
    MedicationRecord,
    OCRResult,
    clamp_confidence,
)

logger = logging.getLogger(__name__)

IMAGE_QUALITY_QUESTION = (
    "The image quality is too low for accurate text extraction. "
    "Please upload a clearer image."
)

FREQUENCY_SUGGESTIONS = ["Once daily", "Twice daily", "Three times daily", "As needed"]
DURATION_SUGGESTIONS = ["7 days", "14 days", "30 days", "As directed"]
MAX_SUGGESTIONS = 4

FIELD_LABELS = {
    "drug_name": "medication name",
    "strength": "strength",
    "frequency": "frequency",
    "duration": "duration",
    "food_instruction": "food instruction",
}


@dataclass
class GateResult:
    passed: bool
    overall_confidence: float
    needs_confirmation: bool
    clarification_questions: List[ClarificationQuestion] = field(default_factory=list)
    low_confidence_fields: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class QualityCheck:
    acceptable: bool
    reason: Optional[str] = None
    recommendation: Optional[str] = None


class ConfidenceGate:
    """
    Threshold policy over OCR-level and field-level confidence.

    Thresholds are read-only settings passed in once.
    """

    def __init__(self, thresholds: ThresholdSettings = threshold_settings):
        self.thresholds = thresholds

    def evaluate(
        self,
        ocr_confidence: float,
        fields: Optional[Mapping[str, FieldReading]] = None,
        medication_index: Optional[int] = None,
    ) -> GateResult:
        """
        Evaluate OCR confidence and, if it passes, each extracted field.

        Args:
            ocr_confidence: overall confidence of the text source
            fields: gate field name -> reading; None skips field checks
            medication_index: tagged onto produced questions

        Returns:
            GateResult; needs_confirmation is true iff questions were produced
        """
        overall = clamp_confidence(ocr_confidence)
        t = self.thresholds

        if overall < t.OCR_MINIMUM:
            logger.warning(f"OCR confidence {overall:.2f} below minimum {t.OCR_MINIMUM:.2f}")
            return GateResult(
                passed=False,
                overall_confidence=overall,
                needs_confirmation=True,
                clarification_questions=[
                    ClarificationQuestion(
                        field="image_quality",
                        question=IMAGE_QUALITY_QUESTION,
                        confidence=overall,
                    )
                ],
                low_confidence_fields=["image_quality"],
                warnings=["Image quality below minimum threshold"],
            )

        warnings = []
        if overall < t.OCR_WARNING:
            warnings.append(
                f"OCR confidence is {overall * 100:.1f}%. "
                "Please review the extracted information carefully."
            )

        questions = []
        if fields is not None:
            questions = self.field_questions(fields, medication_index)

        return GateResult(
            passed=True,
            overall_confidence=overall,
            needs_confirmation=bool(questions),
            clarification_questions=questions,
            low_confidence_fields=[q.field for q in questions],
            warnings=warnings,
        )

    def field_questions(
        self,
        fields: Mapping[str, FieldReading],
        medication_index: Optional[int] = None,
    ) -> List[ClarificationQuestion]:
        """Apply the per-field policy; each field is judged on its own."""
        t = self.thresholds
        readings: Dict[str, FieldReading] = dict(fields)

        # Required fields count as missing when absent
        for required in ("drug_name", "strength", "frequency"):
            readings.setdefault(required, FieldReading(None, 0.0))

        questions = []
        for name, reading in readings.items():
            confidence = clamp_confidence(reading.confidence)
            missing = self.is_missing(reading)
            uncertain = confidence < t.field_threshold(name)

            if name == "drug_name":
                ask = t.ASK_DRUG_NAME_UNCERTAIN and (uncertain or missing)
            elif name == "strength":
                ask = t.ASK_STRENGTH_UNCERTAIN and (uncertain or missing)
            elif name == "frequency":
                ask = t.ASK_FREQUENCY_MISSING and missing
            elif name == "duration":
                ask = t.ASK_DURATION_MISSING and missing
            else:
                ask = confidence < t.NEEDS_CONFIRMATION_THRESHOLD

            if ask:
                questions.append(self._question(name, reading, confidence, missing, medication_index))

        return questions

    def evaluate_medication(
        self,
        record: MedicationRecord,
        medication_index: Optional[int] = None,
    ) -> List[ClarificationQuestion]:
        """Run the field policy on one record and mark it uncertain where asked."""
        questions = self.field_questions(record.field_readings(), medication_index)
        for question in questions:
            if question.field not in record.uncertain_fields:
                record.uncertain_fields.append(question.field)
        record.needs_confirmation = bool(record.uncertain_fields)
        return questions

    def is_missing(self, reading: FieldReading) -> bool:
        value = (reading.value or "").strip() if isinstance(reading.value, str) else reading.value
        return not value or clamp_confidence(reading.confidence) < self.thresholds.MISSING_FIELD_THRESHOLD

    def check_ocr_quality(self, ocr_result: OCRResult) -> QualityCheck:
        """Pre-check image OCR output before any parsing."""
        t = self.thresholds
        confidence = clamp_confidence(ocr_result.confidence)
        if confidence < t.OCR_MINIMUM:
            return QualityCheck(
                acceptable=False,
                reason=f"OCR confidence ({confidence * 100:.1f}%) is below minimum threshold",
                recommendation="Please upload a clearer image with better lighting and focus",
            )

        if not ocr_result.text or not ocr_result.text.strip():
            return QualityCheck(
                acceptable=False,
                reason="No text could be extracted from the image",
                recommendation="Please ensure the prescription is clearly visible and not obscured",
            )

        word_count = sum(len(token.text.split()) for token in ocr_result.tokens)
        if word_count < t.OCR_MIN_TOKENS:
            return QualityCheck(
                acceptable=False,
                reason="Very few words detected in the image",
                recommendation="Please upload a complete prescription image",
            )

        return QualityCheck(acceptable=True)

    def confidence_level(self, confidence: float) -> str:
        t = self.thresholds
        if confidence >= t.LEVEL_HIGH:
            return "high"
        if confidence >= t.LEVEL_MEDIUM:
            return "medium"
        if confidence >= t.LEVEL_LOW:
            return "low"
        return "very_low"

    def _question(
        self,
        name: str,
        reading: FieldReading,
        confidence: float,
        missing: bool,
        medication_index: Optional[int],
    ) -> ClarificationQuestion:
        value = None if missing else reading.value
        label = FIELD_LABELS.get(name, name.replace("_", " "))

        if name == "frequency":
            suggestions = _with_detected(value, FREQUENCY_SUGGESTIONS)
            text = (
                f'The frequency appears to be "{value}". Is this correct?'
                if value else "How often should this medication be taken?"
            )
        elif name == "duration":
            suggestions = _with_detected(value, DURATION_SUGGESTIONS)
            text = (
                f'The duration appears to be "{value}". Is this correct?'
                if value else "How long should this medication be taken? (e.g., 7 days, 2 weeks)"
            )
        elif name == "strength":
            suggestions = [value] if value else []
            text = (
                f'The strength appears to be "{value}". Is this correct?'
                if value else "The medication strength could not be detected. Please enter the strength (e.g., 500mg)."
            )
        elif name == "drug_name":
            suggestions = [value] if value else []
            text = (
                f'The medication name appears to be "{value}". Is this correct?'
                if value else "The medication name could not be detected. Please enter the medication name."
            )
        else:
            suggestions = [value] if value else []
            text = (
                f'The {label} appears to be "{value}". Is this correct?'
                if value else f"Please confirm the {label}."
            )

        return ClarificationQuestion(
            field=name,
            question=text,
            detected_value=value,
            confidence=confidence,
            suggestions=suggestions,
            medication_index=medication_index,
        )


def _with_detected(value: Optional[str], canned: List[str]) -> List[str]:
    if not value:
        return list(canned[:MAX_SUGGESTIONS])
    rest = [s for s in canned if s.lower() != value.lower()]
    return [value] + rest[:MAX_SUGGESTIONS - 1]
