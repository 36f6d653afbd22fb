"""
Reminder Engine
Keeps each medication's notification triggers in sync with its time slots
and turns reminder actions into dose log entries
"""

import logging
from typing import List, Dict, Any, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import models
from config import SettingKeys, adherence_config
from exceptions import NotificationSchedulingError, TransientStoreError, ValidationError
from models import DoseStatus
from services.dose_ledger import DoseLedger
from services.settings_service import SettingsService, settings_service
from tools.clock import Clock, system_clock
from tools.notification_service import (
    DailyTrigger,
    NotificationPriority,
    NotificationRequest,
    NotificationScheduler,
    NotificationType,
    OneShotTrigger,
    REMINDER_CATEGORY,
    ReminderAction,
    notification_scheduler,
    render_template,
)
from tools.time_slots import parse_slot, shift_slot, slot_timestamp


logger = logging.getLogger(__name__)


ACTION_STATUS = {
    ReminderAction.TAKE: DoseStatus.TAKEN,
    ReminderAction.SNOOZE: DoseStatus.SNOOZED,
    ReminderAction.SKIP: DoseStatus.SKIPPED,
}


def needs_prealert(pattern: Optional[models.ReminderPattern]) -> bool:
    """Slots that are often missed or snoozed get an extra early warning"""
    if pattern is None:
        return False
    return (
        pattern.miss_rate >= adherence_config.PREALERT_MISS_RATE
        or pattern.snooze_rate >= adherence_config.PREALERT_SNOOZE_RATE
    )


def reminder_payload(medication: models.Medication, time_slot: str) -> Dict[str, Any]:
    return {
        "medication_id": medication.id,
        "medication_name": medication.name,
        "dosage": medication.dosage,
        "time_slot": time_slot,
    }


class ReminderEngine:
    """
    Schedules, cancels and answers medication reminders

    The notification ids stored on a medication always describe the
    triggers currently requested for it.
    """

    def __init__(
        self,
        scheduler: Optional[NotificationScheduler] = None,
        ledger: Optional[DoseLedger] = None,
        settings: Optional[SettingsService] = None,
        clock: Optional[Clock] = None
    ):
        self.clock = clock or (ledger.clock if ledger else system_clock)
        self.scheduler = scheduler or notification_scheduler
        self.ledger = ledger or DoseLedger(self.clock)
        self.settings = settings or settings_service

    def build_requests(
        self,
        medication: models.Medication,
        patterns: Dict[str, models.ReminderPattern],
        prealerts_enabled: bool = True
    ) -> List[NotificationRequest]:
        """Trigger requests for every slot of a medication, pre-alerts included"""
        requests = []
        for time_slot in medication.times or []:
            hour, minute = parse_slot(time_slot)
            payload = reminder_payload(medication, time_slot)
            content = render_template(
                NotificationType.MEDICATION_REMINDER,
                medication_name=medication.name,
                dosage=medication.dosage,
                notes=medication.notes
            )
            requests.append(NotificationRequest(
                title=content["title"],
                body=content["body"],
                trigger=DailyTrigger(hour=hour, minute=minute),
                payload=payload,
                priority=NotificationPriority.HIGH,
                notification_type=NotificationType.MEDICATION_REMINDER,
                category=REMINDER_CATEGORY,
                sound=medication.notification_sound
            ))

            if prealerts_enabled and needs_prealert(patterns.get(time_slot)):
                early_hour, early_minute = parse_slot(
                    shift_slot(time_slot, -adherence_config.PREALERT_LEAD_MINUTES)
                )
                content = render_template(
                    NotificationType.PRE_ALERT,
                    medication_name=medication.name,
                    dosage=medication.dosage,
                    time_slot=time_slot
                )
                requests.append(NotificationRequest(
                    title=content["title"],
                    body=content["body"],
                    trigger=DailyTrigger(hour=early_hour, minute=early_minute),
                    payload={**payload, "pre_alert": True},
                    priority=NotificationPriority.DEFAULT,
                    notification_type=NotificationType.PRE_ALERT
                ))
        return requests

    async def schedule_medication_reminders(
        self,
        db: Session,
        medication: models.Medication
    ) -> List[str]:
        """
        Request triggers for all slots and store the returned ids

        The new id set replaces whatever the medication held before. If
        the scheduler rejects any request, triggers already requested in
        this batch are cancelled, the medication keeps no ids and the
        error is re-raised.

        Returns:
            Notification ids now stored on the medication
        """
        prealerts_enabled = await self.settings.get_bool(db, SettingKeys.PREALERTS_ENABLED)
        patterns = self._patterns_for(db, medication.id) if prealerts_enabled else {}
        requests = self.build_requests(medication, patterns, prealerts_enabled)

        scheduled_ids: List[str] = []
        try:
            for request in requests:
                scheduled_ids.append(await self.scheduler.schedule(request))
        except NotificationSchedulingError:
            for notification_id in scheduled_ids:
                await self._cancel_quietly(notification_id)
            self._store_ids(db, medication, [])
            raise

        self._store_ids(db, medication, scheduled_ids)
        logger.info(
            f"Scheduled {len(scheduled_ids)} reminders for medication {medication.id} ({medication.name})"
        )
        return scheduled_ids

    async def cancel_medication_reminders(self, db: Session, medication: models.Medication) -> int:
        """Cancel every stored trigger and clear the stored ids; returns how many were cancelled"""
        cancelled = 0
        for notification_id in list(medication.notification_ids or []):
            if await self._cancel_quietly(notification_id):
                cancelled += 1
        self._store_ids(db, medication, [])
        logger.info(f"Cancelled {cancelled} reminders for medication {medication.id}")
        return cancelled

    async def handle_trigger_action(
        self,
        db: Session,
        action: Union[ReminderAction, str],
        payload: Dict[str, Any],
        trigger_id: Optional[str] = None,
        snooze_minutes: int = adherence_config.DEFAULT_SNOOZE_MINUTES
    ) -> models.Dose:
        """
        Record the user's response to a reminder

        Args:
            db: Database session
            action: take, snooze or skip
            payload: Payload of the trigger that fired
            trigger_id: Delivered notification to dismiss
            snooze_minutes: Delay of the follow-up reminder when snoozing

        Returns:
            The logged Dose
        """
        try:
            reminder_action = ReminderAction(action)
        except ValueError:
            raise ValidationError(f"Unknown reminder action {action!r}", field="action", value=action)

        medication_id = payload.get("medication_id")
        time_slot = payload.get("time_slot")
        if medication_id is None or not time_slot:
            raise ValidationError(
                "Reminder payload needs medication_id and time_slot", field="payload", value=payload
            )

        now = self.clock.timestamp()
        dose = await self.ledger.append(
            db,
            medication_id=int(medication_id),
            scheduled_time=slot_timestamp(time_slot, self.clock.today(), self.clock.tz),
            status=ACTION_STATUS[reminder_action],
            actual_time=now
        )

        if reminder_action == ReminderAction.SNOOZE:
            try:
                await self._schedule_snooze(payload, snooze_minutes)
            except NotificationSchedulingError as e:
                logger.warning(
                    f"Snooze logged for medication {medication_id} without a follow-up reminder: {e.message}"
                )

        if trigger_id:
            try:
                await self.scheduler.dismiss(trigger_id)
            except NotificationSchedulingError as e:
                logger.warning(f"Could not dismiss notification {trigger_id}: {e.message}")

        return dose

    async def _schedule_snooze(self, payload: Dict[str, Any], snooze_minutes: int) -> str:
        content = render_template(
            NotificationType.SNOOZED_REMINDER,
            medication_name=payload.get("medication_name", ""),
            dosage=payload.get("dosage", "")
        )
        return await self.scheduler.schedule(NotificationRequest(
            title=content["title"],
            body=content["body"],
            trigger=OneShotTrigger(seconds=snooze_minutes * 60),
            payload={**payload, "snoozed": True},
            priority=NotificationPriority.HIGH,
            notification_type=NotificationType.SNOOZED_REMINDER,
            category=REMINDER_CATEGORY
        ))

    async def _cancel_quietly(self, notification_id: str) -> bool:
        try:
            await self.scheduler.cancel(notification_id)
            return True
        except NotificationSchedulingError as e:
            logger.warning(f"Failed to cancel notification {notification_id}: {e.message}")
            return False

    def _patterns_for(self, db: Session, medication_id: int) -> Dict[str, models.ReminderPattern]:
        try:
            rows = db.query(models.ReminderPattern).filter(
                models.ReminderPattern.medication_id == medication_id
            ).all()
        except SQLAlchemyError as e:
            logger.error(f"Could not read patterns for medication {medication_id}: {e}")
            return {}
        return {row.time_slot: row for row in rows}

    def _store_ids(self, db: Session, medication: models.Medication, ids: List[str]) -> None:
        medication.notification_ids = list(ids)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise TransientStoreError(
                "Failed to store notification ids",
                operation="store_notification_ids",
                context={"medication_id": medication.id},
                cause=e
            )


# Singleton instance
reminder_engine = ReminderEngine()
