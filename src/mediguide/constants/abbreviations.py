# ============================================================================
# src/mediguide/constants/abbreviations.py
# ============================================================================
"""
Prescription Abbreviations
- Frequency codes and their timing buckets
- Dosage form keywords
- Food timing shorthand
- Header words that never start a medication line
"""

from types import MappingProxyType

# code -> normalized text + doses per timing bucket
FREQUENCY_CODES = MappingProxyType({
    "OD": {"full": "Once daily", "buckets": {"morning": 1}},
    "BD": {"full": "Twice daily", "buckets": {"morning": 1, "evening": 1}},
    "TDS": {"full": "Three times daily", "buckets": {"morning": 1, "afternoon": 1, "evening": 1}},
    "QDS": {"full": "Four times daily", "buckets": {"morning": 1, "afternoon": 1, "evening": 1, "night": 1}},
    "QID": {"full": "Four times daily", "buckets": {"morning": 1, "afternoon": 1, "evening": 1, "night": 1}},
    "HS": {"full": "At bedtime", "buckets": {"night": 1}},
    "SOS": {"full": "As needed", "buckets": {"night": 1}},
    "PRN": {"full": "As needed", "buckets": {}},
    "STAT": {"full": "Immediately, once", "buckets": {"morning": 1}},
    "Q4H": {"full": "Every 4 hours", "buckets": {"morning": 1, "afternoon": 1, "evening": 1, "night": 1}},
    "Q6H": {"full": "Every 6 hours", "buckets": {"morning": 1, "afternoon": 1, "evening": 1, "night": 1}},
    "Q8H": {"full": "Every 8 hours", "buckets": {"morning": 1, "afternoon": 1, "evening": 1}},
    "Q12H": {"full": "Every 12 hours", "buckets": {"morning": 1, "evening": 1}},
})

# Doses per day -> normalized text, used for dose patterns and "N times daily"
DOSES_PER_DAY_TEXT = MappingProxyType({
    1: "Once daily",
    2: "Twice daily",
    3: "Three times daily",
    4: "Four times daily",
})

FORM_ABBREVIATIONS = MappingProxyType({
    "tab": "Tablet",
    "tabs": "Tablet",
    "cap": "Capsule",
    "caps": "Capsule",
    "syr": "Syrup",
    "syp": "Syrup",
    "inj": "Injection",
    "inh": "Inhaler",
    "oint": "Ointment",
    "cr": "Cream",
    "gel": "Gel",
    "drops": "Drops",
    "susp": "Suspension",
    "powder": "Powder",
})

# Route implied by the dosage form
FORM_ROUTES = MappingProxyType({
    "Tablet": "Oral",
    "Capsule": "Oral",
    "Syrup": "Oral",
    "Suspension": "Oral",
    "Powder": "Oral",
    "Injection": "Injection",
    "Inhaler": "Inhalation",
    "Ointment": "Topical",
    "Cream": "Topical",
    "Gel": "Topical",
})

FOOD_ABBREVIATIONS = MappingProxyType({
    "ac": "Before meals",
    "pc": "After meals",
})

NON_MEDICATION_KEYWORDS = frozenset({
    "name", "age", "date", "weight", "address", "phone", "doctor",
    "clinic", "hospital", "patient", "gender", "diagnosis", "advice",
    "follow", "review", "signature", "registration", "reg", "mbbs",
    "md", "clinical", "description", "urti", "fever",
})


def abbreviation_dictionary() -> dict:
    """Plain dict view of the tables, for prompts."""
    return {
        "frequency": {code: entry["full"] for code, entry in FREQUENCY_CODES.items()},
        "forms": dict(FORM_ABBREVIATIONS),
        "food": dict(FOOD_ABBREVIATIONS),
    }
