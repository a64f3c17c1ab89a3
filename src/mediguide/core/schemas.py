# ============================================================================
# src/mediguide/core/schemas.py
# ============================================================================
"""
Request-scoped value objects
- OCR output (tokens, lines, result)
- Medication records with per-field confidence and evidence
- Clarification questions, interaction results
- Explainability cards and nudges
- Pipeline request / response
"""

import math
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

Point = Tuple[float, float]
Polygon = Tuple[Point, Point, Point, Point]

ZERO_POLYGON: Polygon = ((0.0, 0.0), (0.0, 0.0), (0.0, 0.0), (0.0, 0.0))

TIMING_BUCKETS = ("morning", "afternoon", "evening", "night")


# ----------------------------------------------------------------------------
# Enums
# ----------------------------------------------------------------------------

class InteractionSeverity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"
    UNKNOWN = "unknown"


class ConditionSeverity(str, Enum):
    AVOID = "avoid"
    MONITOR = "monitor"
    CAUTION = "caution"


class NudgeCategory(str, Enum):
    IMPLEMENTATION_INTENTION = "implementation_intention"
    FRICTION_REDUCTION = "friction_reduction"
    POSITIVE_REINFORCEMENT = "positive_reinforcement"
    WHY_IT_MATTERS = "why_it_matters"


class ParserMode(str, Enum):
    RULES = "rules"
    LLM = "llm"


# ----------------------------------------------------------------------------
# OCR
# ----------------------------------------------------------------------------

@dataclass
class OCRToken:
    text: str
    confidence: float
    bbox: Polygon = ZERO_POLYGON


@dataclass
class OCRLine:
    text: str
    confidence: float
    tokens: List[OCRToken] = field(default_factory=list)


@dataclass
class OCRResult:
    text: str
    confidence: float
    tokens: List[OCRToken] = field(default_factory=list)
    lines: List[OCRLine] = field(default_factory=list)
    language: str = "en"

    @classmethod
    def from_text(cls, text: str, language: str = "en") -> "OCRResult":
        """Typed text: every whitespace token at full confidence."""
        lines = []
        tokens = []
        for raw_line in text.splitlines():
            line_tokens = [OCRToken(text=word, confidence=1.0) for word in raw_line.split()]
            if line_tokens:
                lines.append(OCRLine(text=raw_line.strip(), confidence=1.0, tokens=line_tokens))
                tokens.extend(line_tokens)
        return cls(text=text, confidence=1.0, tokens=tokens, lines=lines, language=language)


# ----------------------------------------------------------------------------
# Medication records
# ----------------------------------------------------------------------------

@dataclass
class TimingBuckets:
    morning: int = 0
    afternoon: int = 0
    evening: int = 0
    night: int = 0

    def __post_init__(self):
        for name in TIMING_BUCKETS:
            value = getattr(self, name)
            if value is None or value < 0:
                raise ValueError(f"Timing bucket '{name}' must be a non-negative integer, got {value!r}")

    @classmethod
    def from_mapping(cls, mapping: Optional[Dict[str, Any]]) -> "TimingBuckets":
        mapping = mapping or {}
        return cls(**{name: int(mapping.get(name, 0) or 0) for name in TIMING_BUCKETS})

    def populated(self) -> List[str]:
        """Non-zero buckets in day order."""
        return [name for name in TIMING_BUCKETS if getattr(self, name) > 0]

    def as_dict(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in TIMING_BUCKETS}


@dataclass
class FieldEvidence:
    """Provenance of one extracted field, cited by explainability cards."""
    value: str
    confidence: float
    matched_rule: str
    matched_text: str = ""
    tokens: List[OCRToken] = field(default_factory=list)


@dataclass
class MedicationRecord:
    name: str
    strength: str = "Unknown"
    form: Optional[str] = None
    route: Optional[str] = None
    frequency: str = ""
    frequency_normalized: str = "As directed"
    timing_buckets: TimingBuckets = field(default_factory=TimingBuckets)
    duration: str = "As directed"
    food_instruction: Optional[str] = None
    notes: Optional[str] = None
    special_instructions: Optional[str] = None

    # Per-field confidences
    name_confidence: float = 0.0
    strength_confidence: float = 0.0
    frequency_confidence: float = 0.0
    duration_confidence: float = 0.0
    food_instruction_confidence: float = 0.0

    # Overall
    confidence: float = 0.0

    # field name -> evidence
    evidence: Dict[str, FieldEvidence] = field(default_factory=dict)

    needs_confirmation: bool = False
    uncertain_fields: List[str] = field(default_factory=list)
    source_line: Optional[str] = None

    def __post_init__(self):
        for attr in (
            "name_confidence", "strength_confidence", "frequency_confidence",
            "duration_confidence", "food_instruction_confidence", "confidence",
        ):
            setattr(self, attr, clamp_confidence(getattr(self, attr)))

    def field_readings(self) -> Dict[str, "FieldReading"]:
        """Gate input for this record, keyed by gate field name."""
        readings = {
            "drug_name": FieldReading(self.name, self.name_confidence),
            "strength": FieldReading(self.strength if self.strength_confidence > 0 else None,
                                     self.strength_confidence),
            "frequency": FieldReading(self.frequency_normalized if self.frequency_confidence > 0 else None,
                                      self.frequency_confidence),
            "duration": FieldReading(self.duration if self.duration_confidence > 0 else None,
                                     self.duration_confidence),
        }
        if self.food_instruction:
            readings["food_instruction"] = FieldReading(self.food_instruction, self.food_instruction_confidence)
        return readings


@dataclass
class FieldReading:
    """A value and its confidence as seen by the confidence gate."""
    value: Optional[str]
    confidence: float


@dataclass
class ClarificationQuestion:
    field: str
    question: str
    detected_value: Optional[str] = None
    confidence: float = 0.0
    suggestions: List[str] = field(default_factory=list)
    medication_index: Optional[int] = None


@dataclass
class MedicationPlan:
    medications: List[MedicationRecord] = field(default_factory=list)
    extracted_language: str = "en"
    confidence: float = 0.0
    needs_confirmation: bool = False
    clarification_questions: List[ClarificationQuestion] = field(default_factory=list)
    parser: ParserMode = ParserMode.RULES


# ----------------------------------------------------------------------------
# Interactions
# ----------------------------------------------------------------------------

@dataclass
class InteractionResult:
    drug1: str
    drug2: str
    severity: InteractionSeverity
    description: str
    recommendation: str
    source: str


@dataclass
class ConditionInteraction:
    drug: str
    condition: str
    severity: ConditionSeverity
    description: str
    recommendation: str


@dataclass
class AllergyWarning:
    drug: str
    allergy: str
    warning: str


@dataclass
class InteractionReport:
    drug_interactions: List[InteractionResult] = field(default_factory=list)
    condition_interactions: List[ConditionInteraction] = field(default_factory=list)
    allergy_warnings: List[AllergyWarning] = field(default_factory=list)
    has_interactions: bool = False


# ----------------------------------------------------------------------------
# Drug information
# ----------------------------------------------------------------------------

@dataclass
class DrugInfo:
    name: str
    generic_name: Optional[str] = None
    brand_names: List[str] = field(default_factory=list)
    indications: List[str] = field(default_factory=list)
    mechanism: Optional[str] = None
    side_effects: List[str] = field(default_factory=list)
    precautions: List[str] = field(default_factory=list)
    dosage_forms: List[str] = field(default_factory=list)
    typical_dose: Optional[str] = None
    max_daily_dose: Optional[str] = None
    source: str = "local"
    source_url: Optional[str] = None


# ----------------------------------------------------------------------------
# Explainability
# ----------------------------------------------------------------------------

@dataclass
class DetectedField:
    value: Optional[str]
    confidence: float


@dataclass
class EvidenceToken:
    field: str
    text: str
    bbox: Polygon
    confidence: float


@dataclass
class PrescriptionEvidence:
    ocr_tokens: List[EvidenceToken]
    matched_rules: List[str]
    original_text_snippet: str


@dataclass
class PlanRationale:
    schedule_explanation: str
    timing_rationale: str
    duration_reasoning: str
    food_instruction_reasoning: Optional[str] = None


@dataclass
class DrugDetails:
    what_it_treats: str
    how_it_works: Optional[str] = None
    common_side_effects: List[str] = field(default_factory=list)
    precautions: List[str] = field(default_factory=list)
    source: str = "Not found"
    source_url: Optional[str] = None


@dataclass
class UncertaintyBlock:
    has_uncertainty: bool
    unclear_fields: List[str] = field(default_factory=list)
    confirmation_questions: List[ClarificationQuestion] = field(default_factory=list)


@dataclass
class ExplainabilityCard:
    medication_name: str
    what_was_detected: Dict[str, DetectedField]
    prescription_evidence: PrescriptionEvidence
    why_this_plan: PlanRationale
    drug_details: DrugDetails
    uncertainty: UncertaintyBlock


# ----------------------------------------------------------------------------
# Nudges and adherence
# ----------------------------------------------------------------------------

@dataclass
class UserPreferences:
    wake_time: str = "07:00"
    sleep_time: str = "22:00"
    breakfast_time: str = "08:00"
    lunch_time: str = "13:00"
    dinner_time: str = "19:00"
    preferred_nudge_style: str = "gentle"
    timezone: str = "Asia/Kolkata"


@dataclass
class NudgeEvidence:
    medication: str
    plan_field: str
    plan_value: Any


@dataclass
class Nudge:
    id: str
    category: NudgeCategory
    message: str
    behavioral_principle: str
    evidence: NudgeEvidence
    priority: int
    timing: str
    created_at: str
    scheduled_time: Optional[str] = None


@dataclass
class AdherenceScore:
    score: int
    factors: List[str] = field(default_factory=list)
    explanation: str = ""


# ----------------------------------------------------------------------------
# Pipeline boundary
# ----------------------------------------------------------------------------

@dataclass
class ParseRequest:
    raw_text: Optional[str] = None
    image_bytes: Optional[bytes] = None
    language_hint: Optional[str] = None
    user_preferences: Optional[UserPreferences] = None
    conditions: List[str] = field(default_factory=list)
    allergies: List[str] = field(default_factory=list)
    adherence_patterns: Optional[List[Dict[str, Any]]] = None
    parser_mode: Optional[ParserMode] = None


@dataclass
class ErrorInfo:
    code: str
    message: str
    cause: str


@dataclass
class ParseResponse:
    success: bool
    medication_plan: MedicationPlan = field(default_factory=MedicationPlan)
    explainability_cards: List[ExplainabilityCard] = field(default_factory=list)
    interaction_results: List[InteractionResult] = field(default_factory=list)
    interaction_report: Optional[InteractionReport] = None
    nudges: List[Nudge] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    adherence: Optional[AdherenceScore] = None
    ocr: Optional[OCRResult] = None
    error: Optional[ErrorInfo] = None
    processing_time_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready dict; enums collapse to their values."""
        return _jsonable(asdict(self))


def clamp_confidence(value: Optional[float]) -> float:
    """Clamp any confidence into [0, 1]; None, NaN and infinities count as 0."""
    if value is None:
        return 0.0
    value = float(value)
    if not math.isfinite(value):
        return 0.0
    return max(0.0, min(1.0, value))


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value
