# ============================================================================
# src/mediguide/core/__init__.py
# ============================================================================
"""
Core data model shared by every pipeline stage.
"""

from .schemas import (
    OCRToken,
    OCRLine,
    OCRResult,
    TimingBuckets,
    FieldEvidence,
    FieldReading,
    MedicationRecord,
    MedicationPlan,
    ClarificationQuestion,
    InteractionSeverity,
    ConditionSeverity,
    InteractionResult,
    ConditionInteraction,
    AllergyWarning,
    InteractionReport,
    DrugInfo,
    ExplainabilityCard,
    NudgeCategory,
    Nudge,
    UserPreferences,
    AdherenceScore,
    ParserMode,
    ParseRequest,
    ParseResponse,
    ErrorInfo,
)
