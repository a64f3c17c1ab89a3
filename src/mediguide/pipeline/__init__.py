# ============================================================================
# src/mediguide/pipeline/__init__.py
# ============================================================================
"""
Request orchestration.
"""

from .orchestrator import PrescriptionPipeline, create_pipeline

__all__ = ["PrescriptionPipeline", "create_pipeline"]
