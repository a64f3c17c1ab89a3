# ============================================================================
# src/mediguide/interactions/interaction_checker.py
# ============================================================================
"""
Interaction Checker

Pure lookups against the static contraindication table:
- drug-drug (every unordered pair of distinct medications)
- drug-condition (avoid > monitor > caution)
- drug-allergy (avoid lists)

Name matching is loose: case-insensitive substring containment in either
direction, so OCR and LLM name variants still hit the table.
"""

import logging
from itertools import combinations
from typing import Iterable, List, Optional, Sequence

from ..constants.contraindications import (
    DEFAULT_CONTRAINDICATIONS,
    ContraindicationTable,
    DrugInteractionEntry,
)
from ..core.schemas import (
    AllergyWarning,
    ConditionInteraction,
    ConditionSeverity,
    InteractionReport,
    InteractionResult,
    InteractionSeverity,
    MedicationRecord,
)

logger = logging.getLogger(__name__)

DRUG_RECOMMENDATION = "Please consult your doctor or pharmacist about this potential interaction."
CONDITION_RECOMMENDATION = "Please inform your doctor about this condition."
TABLE_SOURCE = "Local contraindications database"


def names_match(a: str, b: str) -> bool:
    """Loose match: either name contains the other, ignoring case."""
    a = (a or "").strip().lower()
    b = (b or "").strip().lower()
    if not a or not b:
        return False
    return a in b or b in a


def check_drug_interactions(
    medications: Sequence[MedicationRecord],
    table: ContraindicationTable = DEFAULT_CONTRAINDICATIONS,
) -> List[InteractionResult]:
    """
    One result per interacting pair; pairs of the same drug are skipped.

    Fewer than two medications never yields a result.
    """
    results = []
    for first, second in combinations(medications, 2):
        if first.name.strip().lower() == second.name.strip().lower():
            continue

        result = _find_interaction(first.name, second.name, table.drug_interactions)
        if result is None:
            result = _find_interaction(second.name, first.name, table.drug_interactions)
        if result is not None:
            results.append(result)

    if results:
        logger.info(f"Found {len(results)} drug-drug interaction(s)")
    return results


def _find_interaction(
    drug: str,
    other: str,
    entries: Iterable[DrugInteractionEntry],
) -> Optional[InteractionResult]:
    for entry in entries:
        if not names_match(entry.drug, drug):
            continue
        for interacting in entry.interactions:
            if names_match(interacting, other):
                return InteractionResult(
                    drug1=entry.drug,
                    drug2=interacting,
                    severity=InteractionSeverity.MODERATE,
                    description=entry.warning,
                    recommendation=DRUG_RECOMMENDATION,
                    source=TABLE_SOURCE,
                )
    return None


def check_condition_interactions(
    medications: Sequence[MedicationRecord],
    conditions: Sequence[str],
    table: ContraindicationTable = DEFAULT_CONTRAINDICATIONS,
) -> List[ConditionInteraction]:
    """One result per (medication, condition) pair, from the first table entry that lists both."""
    results = []
    for medication in medications:
        for condition in conditions:
            for entry in table.condition_interactions:
                if not names_match(entry.condition, condition):
                    continue

                severity = _condition_severity(medication.name, entry)
                if severity is None:
                    continue

                results.append(
                    ConditionInteraction(
                        drug=medication.name,
                        condition=entry.condition,
                        severity=severity,
                        description=entry.warning,
                        recommendation=CONDITION_RECOMMENDATION,
                    )
                )
                break
    return results


def _condition_severity(drug: str, entry) -> Optional[ConditionSeverity]:
    def listed(names):
        return any(names_match(name, drug) for name in names)

    if listed(entry.avoid):
        return ConditionSeverity.AVOID
    if listed(entry.monitor):
        return ConditionSeverity.MONITOR
    if listed(entry.caution) or listed(entry.high_risk):
        return ConditionSeverity.CAUTION
    return None


def check_allergy_warnings(
    medications: Sequence[MedicationRecord],
    allergies: Sequence[str],
    table: ContraindicationTable = DEFAULT_CONTRAINDICATIONS,
) -> List[AllergyWarning]:
    """One warning per (medication, allergy) pair, from the first table entry that lists both."""
    warnings = []
    for medication in medications:
        for allergy in allergies:
            for entry in table.allergy_warnings:
                if not names_match(entry.allergy, allergy):
                    continue
                if any(names_match(avoid, medication.name) for avoid in entry.avoid_drugs):
                    warnings.append(
                        AllergyWarning(
                            drug=medication.name,
                            allergy=entry.allergy,
                            warning=entry.warning,
                        )
                    )
                    break
    return warnings


def build_interaction_report(
    medications: Sequence[MedicationRecord],
    conditions: Sequence[str] = (),
    allergies: Sequence[str] = (),
    table: ContraindicationTable = DEFAULT_CONTRAINDICATIONS,
) -> InteractionReport:
    drug_interactions = check_drug_interactions(medications, table)
    condition_interactions = check_condition_interactions(medications, conditions, table)
    allergy_warnings = check_allergy_warnings(medications, allergies, table)

    return InteractionReport(
        drug_interactions=drug_interactions,
        condition_interactions=condition_interactions,
        allergy_warnings=allergy_warnings,
        has_interactions=bool(drug_interactions or condition_interactions or allergy_warnings),
    )
