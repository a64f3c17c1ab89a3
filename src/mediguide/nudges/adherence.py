# ============================================================================
# src/mediguide/nudges/adherence.py
# ============================================================================
"""
Regimen complexity score.

Starts at 100 and subtracts for medication count, doses per day, food timing
requirements, as-needed medicines and the spread of dose times.
"""

from typing import Sequence

from ..core.schemas import AdherenceScore, MedicationRecord

MULTI_DOSE_CODES = {"TDS", "QDS", "QID"}


def calculate_adherence_score(medications: Sequence[MedicationRecord]) -> AdherenceScore:
    score = 100
    factors = []

    count = len(medications)
    if count > 5:
        score -= 15
        factors.append("High number of medications (>5) increases complexity")
    elif count > 3:
        score -= 8
        factors.append("Moderate number of medications (4-5)")

    multi_dose = [
        m for m in medications
        if m.frequency.upper() in MULTI_DOSE_CODES or len(m.timing_buckets.populated()) >= 3
    ]
    if multi_dose:
        score -= len(multi_dose) * 5
        factors.append(f"{len(multi_dose)} medication(s) require 3+ doses per day")

    with_food_rules = [m for m in medications if m.food_instruction]
    if len(with_food_rules) > 2:
        score -= 5
        factors.append("Multiple medications with specific food timing requirements")

    as_needed = [m for m in medications if m.frequency.upper() in ("PRN", "SOS")]
    if as_needed:
        score -= len(as_needed) * 3
        factors.append(f"{len(as_needed)} PRN medication(s) may be inconsistently used")

    times_of_day = set()
    for medication in medications:
        times_of_day.update(medication.timing_buckets.populated())
    if len(times_of_day) > 3:
        score -= 8
        factors.append("Medications spread across 4+ different times of day")
    elif len(times_of_day) > 2:
        score -= 4
        factors.append("Medications spread across 3 different times of day")

    score = max(0, min(100, score))

    explanation = (
        f"Adherence factors: {'; '.join(factors)}."
        if factors else "Simple medication regimen with high expected adherence."
    )
    return AdherenceScore(score=score, factors=factors, explanation=explanation)
