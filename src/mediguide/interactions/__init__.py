# ============================================================================
# src/mediguide/interactions/__init__.py
# ============================================================================
"""
Drug-drug, drug-condition and drug-allergy checks.
"""

from .interaction_checker import (
    check_drug_interactions,
    check_condition_interactions,
    check_allergy_warnings,
    build_interaction_report,
)

__all__ = [
    "check_drug_interactions",
    "check_condition_interactions",
    "check_allergy_warnings",
    "build_interaction_report",
]
