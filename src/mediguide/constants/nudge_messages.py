# ============================================================================
# src/mediguide/constants/nudge_messages.py
# ============================================================================
"""
Nudge Message Templates
- Behavioural principle labels (EAST / COM-B)
- Per-drug "why it matters" messages
- Meal cue per timing bucket
"""

from types import MappingProxyType

PRINCIPLE_IMPLEMENTATION_INTENTION = "EAST: Easy - Implementation Intention"
PRINCIPLE_REDUCE_FRICTION = "EAST: Easy - Reduce Friction"
PRINCIPLE_MOTIVATION = "COM-B: Motivation - Reflective"
PRINCIPLE_POSITIVE_REINFORCEMENT = "EAST: Attractive - Positive Reinforcement"

WHY_IT_MATTERS = MappingProxyType({
    # Blood pressure
    "amlodipine": "Taking Amlodipine as prescribed helps maintain healthy blood pressure",
    "losartan": "Consistent Losartan helps protect your heart and kidneys",
    "metoprolol": "Regular Metoprolol helps keep your heart rate steady",
    # Diabetes
    "metformin": "Taking Metformin as prescribed helps manage blood sugar levels",
    "glimepiride": "Consistent Glimepiride helps control blood sugar throughout the day",
    # Cholesterol
    "atorvastatin": "Regular Atorvastatin helps maintain healthy cholesterol levels",
    "rosuvastatin": "Taking Rosuvastatin as prescribed supports heart health",
    # Antibiotics
    "azithromycin": "Completing the full course of Azithromycin ensures the infection is fully treated",
    "amoxicillin": "Finishing all Amoxicillin doses prevents antibiotic resistance",
    # Pain / fever
    "paracetamol": "Taking Paracetamol as directed provides effective pain and fever relief",
})

WHY_IT_MATTERS_DEFAULT = "Taking {name} as prescribed helps it work effectively"

POSITIVE_REINFORCEMENT_MESSAGE = "You're building a great medication routine! Keep it up"

# bucket -> (meal, preference attribute for the scheduled time)
BUCKET_CUES = MappingProxyType({
    "morning": ("breakfast", "breakfast_time"),
    "afternoon": ("lunch", "lunch_time"),
    "evening": ("dinner", "dinner_time"),
    "night": ("bedtime", "sleep_time"),
})

BEDTIME_HABIT = "When you brush your teeth at night"
