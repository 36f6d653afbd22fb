"""
Schedule Applier
Accepts a schedule recommendation: moves the slot, re-arms reminders
and records the change
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import models
from actions.recommendation_engine import ScheduleRecommendation
from actions.reminder_engine import ReminderEngine, reminder_engine
from exceptions import (
    DoseRhythmError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)
from tools.clock import Clock
from tools.time_slots import parse_slot, validate_slots


logger = logging.getLogger(__name__)


@dataclass
class ScheduleApplyResult:
    """What happened after the slot change was committed"""
    medication_id: int
    old_time: str
    new_time: str
    times: List[str]
    notification_ids: List[str] = field(default_factory=list)
    adjustment_id: Optional[int] = None
    errors: List[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["complete"] = self.complete
        return data


class ScheduleApplier:
    """
    Applies recommendations one at a time

    Only the slot update is transactional. Cancelling, rescheduling and
    the audit row are best effort; their failures are logged and
    reported without undoing the slot change.
    """

    def __init__(self, reminders: Optional[ReminderEngine] = None, clock: Optional[Clock] = None):
        self.reminders = reminders or reminder_engine
        self.clock = clock or self.reminders.clock

    async def apply_schedule_recommendation(
        self,
        db: Session,
        rec: ScheduleRecommendation
    ) -> ScheduleApplyResult:
        """
        Replace rec.current_time by rec.recommended_time

        Raises:
            NotFoundError: the medication or its slot is gone
            ValidationError: the new time is malformed, already a slot or too close to one
            TransientStoreError: the slot update could not be committed
        """
        medication = self._reload(db, rec.medication.id)
        times = list(medication.times or [])

        if rec.current_time not in times:
            raise NotFoundError(
                "Time slot",
                rec.current_time,
                message=f"Medication {medication.id} no longer has a {rec.current_time} slot"
            )
        parse_slot(rec.recommended_time)
        if rec.recommended_time != rec.current_time and rec.recommended_time in times:
            raise ValidationError(
                f"Medication {medication.id} already has a {rec.recommended_time} slot",
                field="recommended_time",
                value=rec.recommended_time
            )

        new_times = [rec.recommended_time if t == rec.current_time else t for t in times]
        validate_slots(new_times)

        medication.times = new_times
        try:
            if rec.recommended_time != rec.current_time:
                # Patterns are keyed by slot; the old key no longer names a slot
                db.query(models.ReminderPattern).filter(
                    models.ReminderPattern.medication_id == medication.id,
                    models.ReminderPattern.time_slot == rec.current_time
                ).delete()
            db.commit()
            db.refresh(medication)
        except SQLAlchemyError as e:
            db.rollback()
            raise TransientStoreError(
                "Failed to update medication times",
                operation="apply_schedule_recommendation",
                context={"medication_id": medication.id},
                cause=e
            )
        logger.info(
            f"Moved medication {medication.id} slot {rec.current_time} -> {rec.recommended_time}"
        )

        result = ScheduleApplyResult(
            medication_id=medication.id,
            old_time=rec.current_time,
            new_time=rec.recommended_time,
            times=new_times
        )

        try:
            await self.reminders.cancel_medication_reminders(db, medication)
        except DoseRhythmError as e:
            logger.error(f"Cancelling reminders after schedule change failed: {e.message}")
            result.errors.append(f"cancel: {e.message}")

        try:
            result.notification_ids = await self.reminders.schedule_medication_reminders(db, medication)
        except DoseRhythmError as e:
            logger.error(f"Rescheduling reminders after schedule change failed: {e.message}")
            result.errors.append(f"schedule: {e.message}")

        try:
            adjustment = models.ScheduleAdjustment(
                medication_id=medication.id,
                old_time=rec.current_time,
                new_time=rec.recommended_time,
                reason=rec.reason,
                changed_at=self.clock.timestamp()
            )
            db.add(adjustment)
            db.commit()
            result.adjustment_id = adjustment.id
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to record schedule adjustment: {e}")
            result.errors.append("audit: failed to record schedule adjustment")

        return result

    def _reload(self, db: Session, medication_id: int) -> models.Medication:
        try:
            medication = db.query(models.Medication).filter(
                models.Medication.id == medication_id
            ).first()
        except SQLAlchemyError as e:
            raise TransientStoreError("Failed to read medication", operation="apply_schedule_recommendation", cause=e)
        if medication is None:
            raise NotFoundError("Medication", medication_id)
        return medication


# Singleton instance
schedule_applier = ScheduleApplier()
