# ============================================================================
# src/mediguide/explainability/__init__.py
# ============================================================================
"""
Explainability cards.
"""

from .composer import ExplainabilityComposer

__all__ = ["ExplainabilityComposer"]
