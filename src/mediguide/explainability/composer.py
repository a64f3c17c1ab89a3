# ============================================================================
# src/mediguide/explainability/composer.py
# ============================================================================
"""
Explainability Composer

Builds one ExplainabilityCard per medication from extractor evidence,
confidence, drug information and uncertainty. Template text only: no model
calls, no randomness, never invents clinical content.
"""

import re
from typing import List, Optional, Sequence

from ..core.schemas import (
    ZERO_POLYGON,
    ClarificationQuestion,
    DetectedField,
    DrugDetails,
    DrugInfo,
    EvidenceToken,
    ExplainabilityCard,
    MedicationRecord,
    PlanRationale,
    PrescriptionEvidence,
    UncertaintyBlock,
)

NOT_AVAILABLE = "Information not available"
NOT_FOUND_SOURCE = "Not found"

SOURCE_LABELS = {
    "local": "Local Knowledge Base",
    "openfda": "OpenFDA",
}

DEFAULT_RULES = {
    "name": "drug_name_extraction",
    "strength": "strength_extraction",
    "frequency": "frequency_extraction",
}

_AC = re.compile(r"\bac\b")
_PC = re.compile(r"\bpc\b")


class ExplainabilityComposer:
    """Deterministic card builder."""

    def compose(self, record: MedicationRecord, drug_info: Optional[DrugInfo] = None) -> ExplainabilityCard:
        return ExplainabilityCard(
            medication_name=record.name,
            what_was_detected=self._detected(record),
            prescription_evidence=self._evidence(record),
            why_this_plan=PlanRationale(
                schedule_explanation=schedule_explanation(record),
                timing_rationale=timing_rationale(record),
                duration_reasoning=duration_reasoning(record),
                food_instruction_reasoning=(
                    food_instruction_reasoning(record.food_instruction)
                    if record.food_instruction else None
                ),
            ),
            drug_details=self._drug_details(drug_info),
            uncertainty=UncertaintyBlock(
                has_uncertainty=record.needs_confirmation,
                unclear_fields=list(record.uncertain_fields),
            ),
        )

    def compose_all(
        self,
        records: Sequence[MedicationRecord],
        drug_infos: Sequence[Optional[DrugInfo]] = (),
    ) -> List[ExplainabilityCard]:
        """Cards aligned with records; missing drug info yields placeholders."""
        cards = []
        for index, record in enumerate(records):
            info = drug_infos[index] if index < len(drug_infos) else None
            cards.append(self.compose(record, info))
        return cards

    @staticmethod
    def attach_questions(
        cards: Sequence[ExplainabilityCard],
        records: Sequence[MedicationRecord],
        questions: Sequence[ClarificationQuestion],
    ) -> None:
        """Give each card the plan questions about its own uncertain fields."""
        for index, (card, record) in enumerate(zip(cards, records)):
            card.uncertainty.confirmation_questions = [
                q for q in questions
                if q.field in record.uncertain_fields
                and (q.medication_index is None or q.medication_index == index)
            ]

    @staticmethod
    def _detected(record: MedicationRecord):
        return {
            "name": DetectedField(record.name, record.name_confidence),
            "strength": DetectedField(record.strength, record.strength_confidence),
            "frequency": DetectedField(record.frequency_normalized, record.frequency_confidence),
            "duration": DetectedField(record.duration, record.duration_confidence),
            "food_instruction": DetectedField(
                record.food_instruction or None,
                record.food_instruction_confidence or 0.0,
            ),
        }

    @staticmethod
    def _evidence(record: MedicationRecord) -> PrescriptionEvidence:
        fallback_values = {
            "name": record.name,
            "strength": record.strength,
            "frequency": record.frequency,
        }
        fallback_confidence = {
            "name": record.name_confidence,
            "strength": record.strength_confidence,
            "frequency": record.frequency_confidence,
        }

        tokens = []
        rules = []
        for field_name in ("name", "strength", "frequency"):
            evidence = record.evidence.get(field_name)
            if evidence is not None:
                first = evidence.tokens[0] if evidence.tokens else None
                tokens.append(EvidenceToken(
                    field=field_name,
                    text=evidence.value,
                    bbox=first.bbox if first is not None else ZERO_POLYGON,
                    confidence=evidence.confidence,
                ))
                rules.append(evidence.matched_rule or DEFAULT_RULES[field_name])
            else:
                tokens.append(EvidenceToken(
                    field=field_name,
                    text=fallback_values[field_name],
                    bbox=ZERO_POLYGON,
                    confidence=fallback_confidence[field_name],
                ))
                rules.append(DEFAULT_RULES[field_name])

        return PrescriptionEvidence(
            ocr_tokens=tokens,
            matched_rules=rules,
            original_text_snippet=f"{record.name} {record.strength} {record.frequency}",
        )

    @staticmethod
    def _drug_details(drug_info: Optional[DrugInfo]) -> DrugDetails:
        if drug_info is None:
            return DrugDetails(what_it_treats=NOT_AVAILABLE, source=NOT_FOUND_SOURCE)

        return DrugDetails(
            what_it_treats=", ".join(drug_info.indications) if drug_info.indications else NOT_AVAILABLE,
            how_it_works=drug_info.mechanism,
            common_side_effects=list(drug_info.side_effects),
            precautions=list(drug_info.precautions),
            source=SOURCE_LABELS.get(drug_info.source, drug_info.source),
            source_url=drug_info.source_url,
        )


def schedule_explanation(record: MedicationRecord) -> str:
    buckets = record.timing_buckets
    parts = []
    if buckets.morning:
        parts.append(f"{buckets.morning} in the morning")
    if buckets.afternoon:
        parts.append(f"{buckets.afternoon} in the afternoon")
    if buckets.evening:
        parts.append(f"{buckets.evening} in the evening")
    if buckets.night:
        parts.append(f"{buckets.night} at night")

    if not parts:
        return "Take as directed by your doctor."

    return (
        f'Based on "{record.frequency}" in the prescription, take {", ".join(parts)}. '
        f"This means {record.frequency_normalized.lower()}."
    )


def timing_rationale(record: MedicationRecord) -> str:
    if record.food_instruction:
        instruction = record.food_instruction.lower()

        if "empty" in instruction:
            return (
                "The prescription indicates to take this medication on an empty stomach. "
                "This helps the body absorb it properly."
            )
        if "before" in instruction or _AC.search(instruction):
            return (
                "The prescription indicates to take this medication before meals. "
                "This helps with better absorption or reduces stomach upset."
            )
        if "after" in instruction or _PC.search(instruction):
            return (
                "The prescription indicates to take this medication after meals. "
                "This helps reduce stomach irritation."
            )
        if "with" in instruction:
            return (
                "The prescription indicates to take this medication with food. "
                "This helps with absorption and reduces stomach upset."
            )

    buckets = record.timing_buckets
    if buckets.morning and not buckets.evening:
        return "Taking this medication in the morning helps maintain consistent levels throughout the day."
    if buckets.night and not buckets.morning:
        return "Taking this medication at night may help with better absorption or reduce daytime side effects."

    return "The timing is based on the prescription instructions to maintain consistent medication levels."


def duration_reasoning(record: MedicationRecord) -> str:
    if not record.duration or record.duration.strip().lower() == "as directed":
        return "The prescription does not specify a duration. Continue taking as directed by your doctor."

    evidence = record.evidence.get("duration")
    if evidence is not None:
        return (
            f'The prescription specifies "{evidence.value}" as the duration. '
            "Complete the full course even if you feel better."
        )

    return f"Take for {record.duration}. Complete the full course as prescribed."


def food_instruction_reasoning(instruction: str) -> str:
    lower = instruction.lower()

    if "empty" in lower:
        return "Taking on an empty stomach (1 hour before or 2 hours after food) ensures proper absorption."
    if "before" in lower or _AC.search(lower):
        return "Taking before meals (usually 30-60 minutes) helps with absorption or prevents stomach upset."
    if "after" in lower or _PC.search(lower):
        return "Taking after meals helps reduce stomach irritation from the medication."
    if "with" in lower:
        return "Taking with food helps with absorption and reduces the chance of stomach upset."

    return f"Follow the instruction: {instruction}"
