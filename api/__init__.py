# ============================================================================
# api/__init__.py
# ============================================================================
"""
HTTP surface for the MediGuide core.
"""
