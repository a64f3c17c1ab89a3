# ============================================================================
# src/mediguide/chat/safety.py
# ============================================================================
"""
Chat safety screen.

Refuses diagnosis requests, dose changes, medication substitutions and
emergencies before any model is consulted.
"""

from dataclasses import dataclass
from typing import Optional

DIAGNOSIS_KEYWORDS = (
    "diagnose", "what do i have", "do i have", "is it", "could it be",
    "what disease", "what condition", "am i sick",
)

DOSAGE_CHANGE_KEYWORDS = (
    "change dose", "increase dose", "decrease dose", "stop taking",
    "can i take more", "can i take less", "should i stop",
    "double the dose", "skip dose",
)

SUBSTITUTION_KEYWORDS = (
    "instead of", "replace with", "substitute", "alternative to",
    "can i take", "switch to",
)

EMERGENCY_KEYWORDS = (
    "emergency", "overdose", "poisoning", "severe pain", "chest pain",
    "can't breathe", "difficulty breathing", "allergic reaction",
)

DIAGNOSIS_REFUSAL = (
    "I cannot diagnose medical conditions. If you have health concerns, "
    "please consult your doctor or healthcare provider for a proper evaluation."
)
DOSAGE_REFUSAL = (
    "I cannot recommend changing your medication dosage. Any changes to your "
    "medication should be discussed with your doctor or pharmacist. Never change "
    "your dosage without medical supervision."
)
SUBSTITUTION_REFUSAL = (
    "I cannot recommend medication substitutions. Please consult your doctor "
    "or pharmacist if you need to discuss alternative medications."
)
EMERGENCY_REFUSAL = (
    "This sounds like a medical emergency. Please call emergency services "
    "immediately or go to the nearest emergency room. Do not rely on this app "
    "for emergency medical advice."
)


@dataclass
class ChatValidation:
    is_safe: bool
    reason: Optional[str] = None
    refusal_message: Optional[str] = None


def validate_chat_request(message: str) -> ChatValidation:
    """Screen one user message. Emergencies are checked first."""
    lower = message.lower()

    if any(keyword in lower for keyword in EMERGENCY_KEYWORDS):
        return ChatValidation(False, "Emergency situation", EMERGENCY_REFUSAL)

    if any(keyword in lower for keyword in DIAGNOSIS_KEYWORDS):
        return ChatValidation(False, "Diagnosis request", DIAGNOSIS_REFUSAL)

    if any(keyword in lower for keyword in DOSAGE_CHANGE_KEYWORDS):
        return ChatValidation(False, "Dosage change request", DOSAGE_REFUSAL)

    # Substitution phrasing only counts alongside "instead"
    if "instead" in lower and any(keyword in lower for keyword in SUBSTITUTION_KEYWORDS):
        return ChatValidation(False, "Medication substitution request", SUBSTITUTION_REFUSAL)

    return ChatValidation(True)
