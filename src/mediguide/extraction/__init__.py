# ============================================================================
# src/mediguide/extraction/__init__.py
# ============================================================================
"""
Deterministic rule-based medication extraction.
"""

from .rule_extractor import RuleBasedExtractor

__all__ = ["RuleBasedExtractor"]
