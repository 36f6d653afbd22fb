"""
Recommendation Engine
Derives reminder-time suggestions from learned slot patterns
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import models
from config import adherence_config
from exceptions import NotFoundError, TransientStoreError
from tools.time_slots import round_half_up, shift_slot


logger = logging.getLogger(__name__)


class PatternLike(Protocol):
    miss_rate: float
    snooze_rate: float
    avg_delay_minutes: float


@dataclass
class ScheduleRecommendation:
    """A suggested move of one medication slot; derived on demand, never stored"""
    medication: models.Medication
    current_time: str
    recommended_time: str
    reason: str
    pattern: models.ReminderPattern

    def to_dict(self) -> Dict[str, Any]:
        return {
            "medication_id": self.medication.id,
            "medication_name": self.medication.name,
            "current_time": self.current_time,
            "recommended_time": self.recommended_time,
            "reason": self.reason,
            "miss_rate": self.pattern.miss_rate,
            "snooze_rate": self.pattern.snooze_rate,
            "avg_delay_minutes": self.pattern.avg_delay_minutes,
            "sample_size": self.pattern.sample_size,
        }


def _clamped_shift(avg_delay_minutes: float) -> int:
    return min(
        max(round_half_up(abs(avg_delay_minutes)), adherence_config.MIN_SHIFT_MINUTES),
        adherence_config.MAX_SHIFT_MINUTES
    )


def get_recommended_time(current_time: str, pattern: PatternLike) -> Optional[str]:
    """
    Decide a new time for a slot, or None when no change is warranted

    A slot that is already followed well is left alone. Otherwise the
    reminder moves toward when the user actually takes the dose, by the
    average delay clamped to 10-60 minutes. With no clear direction
    (|delay| <= 10 minutes) no recommendation is made even for poorly
    followed slots.
    """
    if pattern.miss_rate < adherence_config.GOOD_MISS_RATE and pattern.snooze_rate < adherence_config.GOOD_SNOOZE_RATE:
        return None

    threshold = adherence_config.DELAY_THRESHOLD_MINUTES
    if pattern.avg_delay_minutes > threshold:
        return shift_slot(current_time, _clamped_shift(pattern.avg_delay_minutes))
    if pattern.avg_delay_minutes < -threshold:
        return shift_slot(current_time, -_clamped_shift(pattern.avg_delay_minutes))
    return None


def build_reason(pattern: PatternLike) -> str:
    """User-facing explanation, most pressing signal first"""
    miss_percent = round_half_up(pattern.miss_rate * 100)
    snooze_percent = round_half_up(pattern.snooze_rate * 100)
    delay = round_half_up(pattern.avg_delay_minutes)

    if miss_percent >= 30:
        return f"You miss this dose about {miss_percent}% of the time at this hour."
    if snooze_percent >= 40 and delay > 0:
        return f"You often snooze and end up taking this about {delay} minutes later."
    if delay > 15:
        return f"You usually take this around {delay} minutes after the reminder."
    return "We noticed a pattern that might work better for you."


class RecommendationEngine:
    """
    Joins stored patterns to live medications to produce suggestions
    """

    async def get_schedule_recommendations(
        self,
        db: Session,
        medications: Optional[List[models.Medication]] = None
    ) -> List[ScheduleRecommendation]:
        """
        Recommendations that still apply to the current schedules

        Args:
            db: Database session
            medications: Already-loaded medications; read from the store when omitted

        Returns:
            Recommendations sorted by miss rate, then snooze rate, highest first
        """
        try:
            patterns = db.query(models.ReminderPattern).filter(
                models.ReminderPattern.recommended_time.isnot(None)
            ).order_by(
                models.ReminderPattern.miss_rate.desc(),
                models.ReminderPattern.snooze_rate.desc(),
                models.ReminderPattern.id
            ).all()
            if medications is None:
                medications = db.query(models.Medication).all()
        except SQLAlchemyError as e:
            raise TransientStoreError(
                "Failed to read reminder patterns", operation="get_schedule_recommendations", cause=e
            )

        by_id = {m.id: m for m in medications if m.id is not None}
        recommendations = []

        for pattern in patterns:
            medication = by_id.get(pattern.medication_id)
            if medication is None or pattern.time_slot not in (medication.times or []):
                continue
            recommendations.append(ScheduleRecommendation(
                medication=medication,
                current_time=pattern.time_slot,
                recommended_time=pattern.recommended_time,
                reason=build_reason(pattern),
                pattern=pattern,
            ))

        logger.debug(f"{len(recommendations)} schedule recommendations available")
        return recommendations

    async def find_recommendation(
        self,
        db: Session,
        medication_id: int,
        current_time: str
    ) -> ScheduleRecommendation:
        """The live recommendation for one slot; NotFoundError if there is none"""
        for rec in await self.get_schedule_recommendations(db):
            if rec.medication.id == medication_id and rec.current_time == current_time:
                return rec
        raise NotFoundError(
            "Recommendation",
            f"{medication_id}@{current_time}",
            message=f"No current recommendation for medication {medication_id} at {current_time}"
        )


# Singleton instance
recommendation_engine = RecommendationEngine()
