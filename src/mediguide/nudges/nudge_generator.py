# ============================================================================
# src/mediguide/nudges/nudge_generator.py
# ============================================================================
"""
Nudge Generator

Maps medication timing and food fields onto behavioural-science message
templates (EAST / COM-B labels), ranks them and keeps the top few.

Ranking is a stable sort on priority, so equal priorities keep the order
they were generated in: per medication implementation intentions, friction
reduction, why-it-matters, duration; then positive reinforcement.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from ..constants.nudge_messages import (
    BEDTIME_HABIT,
    BUCKET_CUES,
    POSITIVE_REINFORCEMENT_MESSAGE,
    PRINCIPLE_IMPLEMENTATION_INTENTION,
    PRINCIPLE_MOTIVATION,
    PRINCIPLE_POSITIVE_REINFORCEMENT,
    PRINCIPLE_REDUCE_FRICTION,
    WHY_IT_MATTERS,
    WHY_IT_MATTERS_DEFAULT,
)
from ..core.schemas import (
    MedicationRecord,
    Nudge,
    NudgeCategory,
    NudgeEvidence,
    UserPreferences,
)

logger = logging.getLogger(__name__)

IMPLEMENTATION_INTENTION_PRIORITY = 9
POSITIVE_REINFORCEMENT_PRIORITY = 8
FRICTION_REDUCTION_PRIORITY = 7
DURATION_PRIORITY = 7
WHY_IT_MATTERS_PRIORITY = 6


class NudgeGenerator:
    """Template-based nudge builder capped at `limit` nudges."""

    def __init__(self, limit: int = 5):
        self.limit = limit

    def generate(
        self,
        medications: Sequence[MedicationRecord],
        preferences: Optional[UserPreferences] = None,
        adherence_patterns: Optional[List[Dict[str, Any]]] = None,
    ) -> List[Nudge]:
        prefs = preferences or UserPreferences()
        created_at = datetime.now(timezone.utc).isoformat()

        nudges = []
        for medication in medications:
            nudges.extend(self._implementation_intentions(medication, prefs, created_at))
            nudges.append(self._friction_reduction(medication, created_at))
            nudges.extend(self._why_it_matters(medication, created_at))

        if adherence_patterns is not None:
            nudges.append(self._positive_reinforcement(created_at))

        ranked = sorted(nudges, key=lambda n: n.priority, reverse=True)[:self.limit]
        logger.debug(f"Generated {len(nudges)} nudge(s), returning {len(ranked)}")
        return ranked

    def _implementation_intentions(
        self,
        medication: MedicationRecord,
        prefs: UserPreferences,
        created_at: str,
    ) -> List[Nudge]:
        nudges = []
        food = (medication.food_instruction or "").lower()

        for bucket in medication.timing_buckets.populated():
            meal, pref_attr = BUCKET_CUES[bucket]
            habit = _habit_cue(meal, food)
            nudges.append(Nudge(
                id=f"impl_intent_{bucket}_{medication.name}",
                category=NudgeCategory.IMPLEMENTATION_INTENTION,
                message=f"{habit}, take your {medication.name} {medication.strength}",
                behavioral_principle=PRINCIPLE_IMPLEMENTATION_INTENTION,
                evidence=NudgeEvidence(
                    medication=medication.name,
                    plan_field=f"timing_buckets.{bucket}",
                    plan_value=getattr(medication.timing_buckets, bucket),
                ),
                priority=IMPLEMENTATION_INTENTION_PRIORITY,
                timing="before_dose",
                created_at=created_at,
                scheduled_time=getattr(prefs, pref_attr),
            ))
        return nudges

    @staticmethod
    def _friction_reduction(medication: MedicationRecord, created_at: str) -> Nudge:
        return Nudge(
            id=f"friction_reduction_{medication.name}",
            category=NudgeCategory.FRICTION_REDUCTION,
            message=f'One-tap to mark "{medication.name}" as taken',
            behavioral_principle=PRINCIPLE_REDUCE_FRICTION,
            evidence=NudgeEvidence(medication=medication.name, plan_field="name", plan_value=medication.name),
            priority=FRICTION_REDUCTION_PRIORITY,
            timing="immediate",
            created_at=created_at,
        )

    @staticmethod
    def _why_it_matters(medication: MedicationRecord, created_at: str) -> List[Nudge]:
        message = WHY_IT_MATTERS.get(
            medication.name.strip().lower(),
            WHY_IT_MATTERS_DEFAULT.format(name=medication.name),
        )
        nudges = [Nudge(
            id=f"why_matters_{medication.name}",
            category=NudgeCategory.WHY_IT_MATTERS,
            message=message,
            behavioral_principle=PRINCIPLE_MOTIVATION,
            evidence=NudgeEvidence(medication=medication.name, plan_field="name", plan_value=medication.name),
            priority=WHY_IT_MATTERS_PRIORITY,
            timing="before_dose",
            created_at=created_at,
        )]

        duration = (medication.duration or "").strip()
        if duration and "directed" not in duration.lower():
            nudges.append(Nudge(
                id=f"duration_reminder_{medication.name}",
                category=NudgeCategory.WHY_IT_MATTERS,
                message=f"Complete the full {duration} course for best results",
                behavioral_principle=PRINCIPLE_MOTIVATION,
                evidence=NudgeEvidence(medication=medication.name, plan_field="duration", plan_value=duration),
                priority=DURATION_PRIORITY,
                timing="daily_summary",
                created_at=created_at,
            ))
        return nudges

    @staticmethod
    def _positive_reinforcement(created_at: str) -> Nudge:
        return Nudge(
            id="positive_reinforcement_streak",
            category=NudgeCategory.POSITIVE_REINFORCEMENT,
            message=POSITIVE_REINFORCEMENT_MESSAGE,
            behavioral_principle=PRINCIPLE_POSITIVE_REINFORCEMENT,
            evidence=NudgeEvidence(medication="all", plan_field="adherence", plan_value="streak"),
            priority=POSITIVE_REINFORCEMENT_PRIORITY,
            timing="daily_summary",
            created_at=created_at,
        )


def _habit_cue(meal: str, food_instruction: str) -> str:
    if "before" in food_instruction:
        return f"Before {meal}"
    if "after" in food_instruction:
        return f"After {meal}"
    if meal == "bedtime":
        return BEDTIME_HABIT
    return f"With {meal}"
