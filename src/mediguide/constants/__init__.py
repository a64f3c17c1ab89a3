# ============================================================================
# src/mediguide/constants/__init__.py
# ============================================================================
"""
Static rule tables. Read-only, loaded once at import.
"""

from .abbreviations import (
    FREQUENCY_CODES,
    DOSES_PER_DAY_TEXT,
    FORM_ABBREVIATIONS,
    FORM_ROUTES,
    FOOD_ABBREVIATIONS,
    NON_MEDICATION_KEYWORDS,
    abbreviation_dictionary,
)
from .contraindications import (
    ContraindicationTable,
    DEFAULT_CONTRAINDICATIONS,
)
from .drug_knowledge import LOCAL_DRUGS
