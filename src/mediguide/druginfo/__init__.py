# ============================================================================
# src/mediguide/druginfo/__init__.py
# ============================================================================
"""
Drug information: local knowledge base, then OpenFDA.
"""

from .service import DrugInfoService
from .openfda import OpenFDAClient

__all__ = ["DrugInfoService", "OpenFDAClient"]
