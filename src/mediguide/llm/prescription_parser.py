# ============================================================================
# src/mediguide/llm/prescription_parser.py
# ============================================================================
"""
LLM Prescription Parser

Sends OCR text to a text-completion oracle and decodes the answer into a
MedicationPlan.

Decoding is permissive: keys are lower-cased, every field is optional and
unknown keys are ignored. Missing values are filled with safe defaults
('Unknown Medication', 'uncertain', 'As directed'). Output that is not a JSON
object, or has no medications array, raises OracleOutputError.
"""

import logging
from statistics import mean
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from ..config.llm_config import LLMSettings, llm_settings
from ..core.schemas import (
    ClarificationQuestion,
    FieldEvidence,
    MedicationPlan,
    MedicationRecord,
    OCRResult,
    OCRToken,
    ParserMode,
    TimingBuckets,
    TIMING_BUCKETS,
    clamp_confidence,
)
from ..utils.exceptions import OracleOutputError
from .base import TextCompletionOracle
from .prompts import PRESCRIPTION_PARSER_SYSTEM_PROMPT, build_prescription_prompt

logger = logging.getLogger(__name__)

LLM_RULE = "llm_extraction"

# LLM field names -> gate field names
FIELD_ALIASES = {
    "name": "drug_name",
    "medication": "drug_name",
    "medication_name": "drug_name",
}


def _lowercase_keys(data: Any) -> Any:
    if isinstance(data, dict):
        return {str(key).strip().lower(): value for key, value in data.items()}
    return data


def _loose_confidence(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return clamp_confidence(float(value))
    except (TypeError, ValueError):
        return None


def _loose_count(value: Any) -> int:
    try:
        return max(0, int(float(value)))
    except (TypeError, ValueError):
        return 0


class _PermissiveModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def lowercase_keys(cls, data: Any) -> Any:
        return _lowercase_keys(data)


class LLMMedication(_PermissiveModel):
    name: Optional[str] = None
    name_confidence: Optional[float] = None
    strength: Optional[str] = None
    strength_confidence: Optional[float] = None
    form: Optional[str] = None
    frequency: Optional[str] = None
    frequency_normalized: Optional[str] = None
    frequency_confidence: Optional[float] = None
    timing_buckets: Optional[Dict[str, Any]] = None
    duration: Optional[str] = None
    duration_confidence: Optional[float] = None
    food_instruction: Optional[str] = None
    food_instruction_confidence: Optional[float] = None
    special_instructions: Optional[str] = None
    uncertain_fields: Optional[List[str]] = None

    @field_validator(
        "name_confidence", "strength_confidence", "frequency_confidence",
        "duration_confidence", "food_instruction_confidence",
        mode="before",
    )
    @classmethod
    def clamp(cls, value: Any) -> Optional[float]:
        return _loose_confidence(value)

    @field_validator(
        "name", "strength", "form", "frequency", "frequency_normalized",
        "duration", "food_instruction", "special_instructions",
        mode="before",
    )
    @classmethod
    def stringify(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class LLMQuestion(_PermissiveModel):
    field: Optional[str] = None
    question: Optional[str] = None
    detected_value: Optional[str] = None
    confidence: Optional[float] = None
    suggestions: Optional[List[str]] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp(cls, value: Any) -> Optional[float]:
        return _loose_confidence(value)

    @field_validator("detected_value", mode="before")
    @classmethod
    def stringify(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)


class LLMParseOutput(_PermissiveModel):
    medications: Optional[List[LLMMedication]] = None
    extracted_language: Optional[str] = None
    clarification_questions: Optional[List[LLMQuestion]] = None


class PrescriptionLLMParser:
    """
    Prescription parser backed by a text-completion oracle.

    Timeouts are the oracle's (parse timeout, longer warm-up on first call).
    """

    def __init__(self, oracle: TextCompletionOracle, settings: LLMSettings = llm_settings):
        self.oracle = oracle
        self.temperature = settings.LLM_TEMPERATURE

    async def parse(self, ocr_result: OCRResult) -> MedicationPlan:
        """
        Parse OCR output into a MedicationPlan.

        Raises:
            OracleOutputError: response is not a usable JSON object
            OracleTimeoutError / OracleUnavailableError: from the oracle
        """
        raw = await self.oracle.complete(
            PRESCRIPTION_PARSER_SYSTEM_PROMPT,
            build_prescription_prompt(ocr_result),
            temperature=self.temperature,
            json_mode=True,
        )
        return self.decode(raw, ocr_result)

    def decode(self, raw: str, ocr_result: Optional[OCRResult] = None) -> MedicationPlan:
        """Decode raw oracle text; separated from parse() so it can run without an oracle."""
        data = self.oracle.extract_json(raw)
        if data is None:
            raise OracleOutputError("LLM response contained no JSON object", raw_output=raw)

        try:
            output = LLMParseOutput.model_validate(data)
        except ValidationError as e:
            raise OracleOutputError(f"LLM response did not match the plan schema: {e}", raw_output=raw)

        if output.medications is None:
            raise OracleOutputError("Invalid LLM response: missing medications array", raw_output=raw)

        tokens = ocr_result.tokens if ocr_result is not None else []
        records = [self._to_record(med, tokens) for med in output.medications]
        questions = [self._to_question(q) for q in (output.clarification_questions or []) if q.question]

        confidences = [
            value
            for record in records
            for value in (
                record.name_confidence,
                record.strength_confidence,
                record.frequency_confidence,
                record.duration_confidence,
            )
        ]

        logger.info(f"LLM parser decoded {len(records)} medication(s), {len(questions)} question(s)")

        return MedicationPlan(
            medications=records,
            extracted_language=output.extracted_language or "en",
            confidence=mean(confidences) if confidences else 0.0,
            needs_confirmation=bool(questions) or any(r.uncertain_fields for r in records),
            clarification_questions=questions,
            parser=ParserMode.LLM,
        )

    @staticmethod
    def _to_record(med: LLMMedication, tokens: List[OCRToken]) -> MedicationRecord:
        name = med.name or "Unknown Medication"
        strength = med.strength or "uncertain"
        frequency = med.frequency or "As directed"
        duration = med.duration or "As directed"

        buckets = TimingBuckets.from_mapping({
            bucket: _loose_count((med.timing_buckets or {}).get(bucket))
            for bucket in TIMING_BUCKETS
        })

        name_conf = med.name_confidence or 0.0
        strength_conf = med.strength_confidence or 0.0
        frequency_conf = med.frequency_confidence or 0.0
        duration_conf = med.duration_confidence or 0.0

        evidence = {
            "name": _evidence(name, name_conf, tokens),
            "strength": _evidence(strength, strength_conf, tokens),
            "frequency": _evidence(frequency, frequency_conf, tokens),
        }
        if med.duration:
            evidence["duration"] = _evidence(duration, duration_conf, tokens)

        uncertain = []
        for field_name in med.uncertain_fields or []:
            mapped = FIELD_ALIASES.get(field_name.strip().lower(), field_name.strip().lower())
            if mapped and mapped not in uncertain:
                uncertain.append(mapped)

        return MedicationRecord(
            name=name,
            strength=strength,
            form=med.form,
            frequency=frequency,
            frequency_normalized=med.frequency_normalized or "As directed",
            timing_buckets=buckets,
            duration=duration,
            food_instruction=med.food_instruction,
            special_instructions=med.special_instructions,
            name_confidence=name_conf,
            strength_confidence=strength_conf,
            frequency_confidence=frequency_conf,
            duration_confidence=duration_conf,
            food_instruction_confidence=(
                med.food_instruction_confidence
                if med.food_instruction_confidence is not None
                else (frequency_conf if med.food_instruction else 0.0)
            ),
            confidence=mean([name_conf, strength_conf, frequency_conf, duration_conf]),
            evidence=evidence,
            needs_confirmation=bool(uncertain),
            uncertain_fields=uncertain,
        )

    @staticmethod
    def _to_question(question: LLMQuestion) -> ClarificationQuestion:
        field_name = (question.field or "unknown").strip().lower()
        return ClarificationQuestion(
            field=FIELD_ALIASES.get(field_name, field_name),
            question=question.question,
            detected_value=question.detected_value,
            confidence=question.confidence or 0.0,
            suggestions=[str(s) for s in (question.suggestions or [])][:4],
        )


def _evidence(value: str, confidence: float, tokens: List[OCRToken]) -> FieldEvidence:
    lowered = value.lower()
    matched = [t for t in tokens if len(t.text) > 1 and t.text.lower() in lowered]
    return FieldEvidence(
        value=value,
        confidence=confidence,
        matched_rule=LLM_RULE,
        matched_text=value,
        tokens=matched,
    )
