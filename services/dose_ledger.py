"""
Dose Ledger
Stores and queries dose outcomes; owns the slot-matching and
pending/missed classification rules
"""

import logging
from datetime import timedelta
from typing import Iterable, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import models
from config import adherence_config
from exceptions import NotFoundError, TransientStoreError, ValidationError
from models import DoseStatus, PERSISTED_STATUSES
from tools.clock import Clock, system_clock
from tools.time_slots import local_date, slot_timestamp


logger = logging.getLogger(__name__)


def coerce_status(status: Union[DoseStatus, str]) -> DoseStatus:
    """Accept enum members or their string values; pending is never stored"""
    try:
        value = DoseStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown dose status {status!r}", field="status", value=status)
    if value not in PERSISTED_STATUSES:
        raise ValidationError("Pending doses are derived and cannot be logged", field="status", value=status)
    return value


def matches_slot(scheduled_time: int, slot_ts: int) -> bool:
    """A logged row belongs to a slot occurrence if within the matching tolerance"""
    return abs(scheduled_time - slot_ts) <= adherence_config.SLOT_MATCH_TOLERANCE_SECONDS


def derive_status(scheduled_time: int, now: int) -> DoseStatus:
    """Status of an unlogged slot: pending until 30 minutes overdue, then missed"""
    if scheduled_time - now > -adherence_config.MISSED_GRACE_SECONDS:
        return DoseStatus.PENDING
    return DoseStatus.MISSED


def find_slot_match(
    rows: Iterable[models.Dose],
    medication_id: int,
    slot_ts: int
) -> Optional[models.Dose]:
    """Most recently logged row for the slot occurrence, if any"""
    match = None
    for row in rows:
        if row.medication_id != medication_id or not matches_slot(row.scheduled_time, slot_ts):
            continue
        if match is None or row.id > match.id:
            match = row
    return match


class DoseLedger:
    """
    Service for the dose ledger

    Every call takes the session explicitly; the clock is injected once.
    """

    def __init__(self, clock: Clock = system_clock):
        self.clock = clock

    async def append(
        self,
        db: Session,
        medication_id: int,
        scheduled_time: int,
        status: Union[DoseStatus, str],
        actual_time: Optional[int] = None,
        notes: Optional[str] = None
    ) -> models.Dose:
        """
        Log a dose outcome

        Args:
            db: Database session
            medication_id: Medication ID
            scheduled_time: Epoch seconds of the slot occurrence
            status: taken, missed, snoozed or skipped
            actual_time: Epoch seconds the user acted
            notes: Free text

        Returns:
            Created Dose row

        Raises:
            NotFoundError: unknown medication
            ValidationError: scheduled_time matches none of the medication's slots
            TransientStoreError: the write failed
        """
        dose_status = coerce_status(status)
        medication = self._get_medication(db, medication_id)
        self._check_slot(db, medication, scheduled_time)

        dose = models.Dose(
            medication_id=medication_id,
            scheduled_time=int(scheduled_time),
            actual_time=int(actual_time) if actual_time is not None else None,
            status=dose_status.value,
            notes=notes
        )
        try:
            db.add(dose)
            db.commit()
            db.refresh(dose)
        except SQLAlchemyError as e:
            db.rollback()
            raise TransientStoreError(
                "Failed to append dose",
                operation="append_dose",
                context={"medication_id": medication_id},
                cause=e
            )

        logger.info(f"Logged dose {dose.id} for medication {medication_id}: {dose_status.value}")
        return dose

    async def update(
        self,
        db: Session,
        dose_id: int,
        status: Union[DoseStatus, str],
        actual_time: Optional[int] = None,
        notes: Optional[str] = None
    ) -> models.Dose:
        """Correct an existing row, e.g. backdating a dose taken earlier"""
        dose = await self.get(db, dose_id)
        dose.status = coerce_status(status).value
        if actual_time is not None:
            dose.actual_time = int(actual_time)
        if notes is not None:
            dose.notes = notes
        try:
            db.commit()
            db.refresh(dose)
        except SQLAlchemyError as e:
            db.rollback()
            raise TransientStoreError(
                "Failed to update dose", operation="update_dose", context={"dose_id": dose_id}, cause=e
            )

        logger.info(f"Updated dose {dose_id}: {dose.status}")
        return dose

    async def get(self, db: Session, dose_id: int) -> models.Dose:
        try:
            dose = db.query(models.Dose).filter(models.Dose.id == dose_id).first()
        except SQLAlchemyError as e:
            raise TransientStoreError("Failed to read dose", operation="get_dose", cause=e)
        if dose is None:
            raise NotFoundError("Dose", dose_id)
        return dose

    async def query(
        self,
        db: Session,
        start: int,
        end: int,
        medication_id: Optional[int] = None
    ) -> List[models.Dose]:
        """Rows with scheduled_time in [start, end], ascending"""
        try:
            query = db.query(models.Dose).filter(
                models.Dose.scheduled_time >= start,
                models.Dose.scheduled_time <= end
            )
            if medication_id is not None:
                query = query.filter(models.Dose.medication_id == medication_id)
            return query.order_by(models.Dose.scheduled_time, models.Dose.id).all()
        except SQLAlchemyError as e:
            raise TransientStoreError(
                "Failed to query doses",
                operation="query_doses",
                context={"start": start, "end": end, "medication_id": medication_id},
                cause=e
            )

    async def latest(self, db: Session, limit: int) -> List[models.Dose]:
        """Most recent rows by scheduled time, newest first"""
        try:
            return db.query(models.Dose).order_by(
                models.Dose.scheduled_time.desc(), models.Dose.id.desc()
            ).limit(limit).all()
        except SQLAlchemyError as e:
            raise TransientStoreError("Failed to read recent doses", operation="latest_doses", cause=e)

    def resolve_slot_status(
        self,
        rows: Iterable[models.Dose],
        medication_id: int,
        slot_ts: int
    ) -> DoseStatus:
        """Logged status of a slot occurrence, or its derived pending/missed status"""
        match = find_slot_match(rows, medication_id, slot_ts)
        if match is not None:
            return DoseStatus(match.status)
        return derive_status(slot_ts, self.clock.timestamp())

    def _get_medication(self, db: Session, medication_id: int) -> models.Medication:
        try:
            medication = db.query(models.Medication).filter(
                models.Medication.id == medication_id
            ).first()
        except SQLAlchemyError as e:
            raise TransientStoreError("Failed to read medication", operation="get_medication", cause=e)
        if medication is None:
            raise NotFoundError("Medication", medication_id)
        return medication

    def _check_slot(self, db: Session, medication: models.Medication, scheduled_time: int) -> None:
        """
        Require scheduled_time to fall on one of the medication's slots

        A slot since moved by a schedule adjustment still counts for
        occurrences before the move, so earlier doses can be backfilled.
        """
        day = local_date(scheduled_time, self.clock.tz)
        # Neighbouring days cover tolerance windows that straddle midnight
        candidates = (day - timedelta(days=1), day, day + timedelta(days=1))
        for candidate in candidates:
            for slot in medication.times or []:
                if matches_slot(scheduled_time, slot_timestamp(slot, candidate, self.clock.tz)):
                    return

        for adjustment in self._adjustments(db, medication.id):
            for candidate in candidates:
                old_ts = slot_timestamp(adjustment.old_time, candidate, self.clock.tz)
                if old_ts < adjustment.changed_at and matches_slot(scheduled_time, old_ts):
                    return

        raise ValidationError(
            f"Scheduled time {scheduled_time} does not match any slot of medication {medication.id}",
            field="scheduled_time",
            value=scheduled_time
        )

    def _adjustments(self, db: Session, medication_id: int) -> List[models.ScheduleAdjustment]:
        try:
            return db.query(models.ScheduleAdjustment).filter(
                models.ScheduleAdjustment.medication_id == medication_id
            ).all()
        except SQLAlchemyError as e:
            raise TransientStoreError("Failed to read schedule adjustments", operation="append", cause=e)


# Singleton instance
dose_ledger = DoseLedger()
