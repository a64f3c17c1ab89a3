# ============================================================================
# src/mediguide/nudges/__init__.py
# ============================================================================
"""
Behavioural nudges and regimen complexity score.
"""

from .nudge_generator import NudgeGenerator
from .adherence import calculate_adherence_score

__all__ = ["NudgeGenerator", "calculate_adherence_score"]
