# ============================================================================
# src/mediguide/__init__.py
# ============================================================================
"""
MediGuide prescription core.

Turns typed or photographed prescriptions into a structured medication plan
with explainability cards, interaction warnings and adherence nudges.
"""

__version__ = "0.1.0"
