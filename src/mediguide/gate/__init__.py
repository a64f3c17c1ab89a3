# ============================================================================
# src/mediguide/gate/__init__.py
# ============================================================================
"""
Confidence gate: OCR and field-level trust decisions.
"""

from .confidence_gate import ConfidenceGate, GateResult, QualityCheck

__all__ = ["ConfidenceGate", "GateResult", "QualityCheck"]
