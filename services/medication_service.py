"""
Medication Service
Business logic for medication management
"""

import logging
from typing import Dict, List, Optional, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import get_db_context
import models
from actions.reminder_engine import ReminderEngine, reminder_engine
from exceptions import NotFoundError, NotificationSchedulingError, TransientStoreError, ValidationError
from tools.prescription_schema import PrescriptionData
from tools.time_slots import validate_slots


logger = logging.getLogger(__name__)


EDITABLE_FIELDS = ("name", "dosage", "frequency", "times", "notes", "color", "notification_sound")

# Changing any of these rebuilds the reminder triggers
REMINDER_FIELDS = ("name", "dosage", "times", "notes", "notification_sound")


class MedicationService:
    """
    Service for medication-related operations

    Every write that changes time slots keeps the reminder triggers in
    step with them.
    """

    def __init__(self, reminders: Optional[ReminderEngine] = None):
        self.reminders = reminders or reminder_engine

    async def create_medication(
        self,
        data: Dict[str, Any],
        db: Optional[Session] = None
    ) -> models.Medication:
        """
        Add a medication and schedule its reminders

        Args:
            data: name, dosage, frequency, times and optional notes, color, notification_sound
            db: Database session

        Returns:
            Created Medication. If reminders could not be scheduled it is
            still returned, with no notification ids.
        """
        async def _create(session: Session) -> models.Medication:
            fields = self._clean(data, required=True)
            medication = models.Medication(**fields, notification_ids=[])
            self._commit(session, medication, "create_medication")
            logger.info(f"Added medication {medication.name} ({medication.id})")

            await self._schedule_or_warn(session, medication)
            return medication

        if db:
            return await _create(db)

        with get_db_context() as session:
            return await _create(session)

    async def get_medication(
        self,
        medication_id: int,
        db: Optional[Session] = None
    ) -> models.Medication:
        """Get medication by ID"""
        def _get(session: Session) -> models.Medication:
            try:
                medication = session.query(models.Medication).filter(
                    models.Medication.id == medication_id
                ).first()
            except SQLAlchemyError as e:
                raise TransientStoreError("Failed to read medication", operation="get_medication", cause=e)
            if medication is None:
                raise NotFoundError("Medication", medication_id)
            return medication

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def list_medications(self, db: Optional[Session] = None) -> List[models.Medication]:
        """All medications ordered by name"""
        def _list(session: Session) -> List[models.Medication]:
            try:
                return session.query(models.Medication).order_by(
                    models.Medication.name, models.Medication.id
                ).all()
            except SQLAlchemyError as e:
                raise TransientStoreError("Failed to list medications", operation="list_medications", cause=e)

        if db:
            return _list(db)

        with get_db_context() as session:
            return _list(session)

    async def update_medication(
        self,
        medication_id: int,
        changes: Dict[str, Any],
        db: Optional[Session] = None
    ) -> models.Medication:
        """
        Apply a partial update; reminders are rebuilt when a field they render changes
        """
        async def _update(session: Session) -> models.Medication:
            medication = await self.get_medication(medication_id, db=session)
            fields = self._clean(changes, required=False)
            reminders_changed = any(
                key in fields and fields[key] != self._current(medication, key)
                for key in REMINDER_FIELDS
            )

            for key, value in fields.items():
                setattr(medication, key, value)
            self._commit(session, medication, "update_medication")
            logger.info(f"Updated medication {medication_id}: {sorted(fields)}")

            if reminders_changed:
                await self.reminders.cancel_medication_reminders(session, medication)
                await self._schedule_or_warn(session, medication)
            return medication

        if db:
            return await _update(db)

        with get_db_context() as session:
            return await _update(session)

    async def delete_medication(self, medication_id: int, db: Optional[Session] = None) -> bool:
        """Cancel reminders, then remove the medication with its doses, patterns and adjustments"""
        async def _delete(session: Session) -> bool:
            medication = await self.get_medication(medication_id, db=session)
            await self.reminders.cancel_medication_reminders(session, medication)
            try:
                session.delete(medication)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise TransientStoreError(
                    "Failed to delete medication",
                    operation="delete_medication",
                    context={"medication_id": medication_id},
                    cause=e
                )
            logger.info(f"Deleted medication {medication_id}")
            return True

        if db:
            return await _delete(db)

        with get_db_context() as session:
            return await _delete(session)

    async def retry_unreminded(self, db: Optional[Session] = None) -> List[int]:
        """
        Reschedule medications that have slots but no triggers

        Covers medications whose reminders failed at creation time.

        Returns:
            IDs of medications that now have reminders
        """
        async def _retry(session: Session) -> List[int]:
            repaired = []
            for medication in await self.list_medications(db=session):
                if not medication.times or medication.notification_ids:
                    continue
                try:
                    await self.reminders.schedule_medication_reminders(session, medication)
                    repaired.append(medication.id)
                except (NotificationSchedulingError, TransientStoreError) as e:
                    logger.warning(f"Medication {medication.id} still unreminded: {e.message}")
            if repaired:
                logger.info(f"Rescheduled reminders for medications {repaired}")
            return repaired

        if db:
            return await _retry(db)

        with get_db_context() as session:
            return await _retry(session)

    async def import_prescription(
        self,
        data: PrescriptionData,
        image_ref: Optional[str] = None,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """
        Create medications from an extracted prescription

        Entries missing required fields or carrying malformed times are
        skipped with a warning. The raw extraction is kept as an import
        record either way.

        Returns:
            Dict with the import id, created medications and skipped names
        """
        async def _import(session: Session) -> Dict[str, Any]:
            record = models.PrescriptionImport(
                image_ref=image_ref,
                medications_json=data.model_dump(by_alias=True)
            )
            self._commit(session, record, "import_prescription")

            created = []
            skipped = []
            for extracted in data.medications:
                try:
                    fields = extracted.to_medication_fields()
                except ValidationError as e:
                    logger.warning(f"Skipping extracted medication {extracted.name!r}: {e.message}")
                    skipped.append(extracted.name)
                    continue
                created.append(await self.create_medication(fields, db=session))

            logger.info(
                f"Prescription import {record.id}: {len(created)} created, {len(skipped)} skipped"
            )
            return {"import_id": record.id, "medications": created, "skipped": skipped}

        if db:
            return await _import(db)

        with get_db_context() as session:
            return await _import(session)

    async def _schedule_or_warn(self, session: Session, medication: models.Medication) -> None:
        try:
            await self.reminders.schedule_medication_reminders(session, medication)
        except (NotificationSchedulingError, TransientStoreError) as e:
            logger.warning(
                f"Medication {medication.id} saved without reminders: {e.message}"
            )

    @staticmethod
    def _current(medication: models.Medication, key: str) -> Any:
        value = getattr(medication, key)
        return list(value or []) if key == "times" else value

    def _clean(self, data: Dict[str, Any], required: bool) -> Dict[str, Any]:
        fields = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
        for key in ("name", "dosage", "frequency"):
            if (required or key in fields) and not str(fields.get(key) or "").strip():
                raise ValidationError(f"Medication {key} is required", field=key)
        if required:
            fields.setdefault("times", [])
        if "times" in fields:
            fields["times"] = validate_slots(fields["times"] or [])
        return fields

    def _commit(self, session: Session, row: Any, operation: str) -> None:
        try:
            session.add(row)
            session.commit()
            session.refresh(row)
        except SQLAlchemyError as e:
            session.rollback()
            raise TransientStoreError(f"Failed to {operation.replace('_', ' ')}", operation=operation, cause=e)


# Singleton instance
medication_service = MedicationService()
