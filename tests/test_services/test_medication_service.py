"""
Tests for Medication Service
Tests medication lifecycle and keeping reminders in step with time slots
"""

import pytest

from actions.reminder_engine import ReminderEngine
from exceptions import NotFoundError, TransientStoreError, ValidationError
from models import Dose, DoseStatus, Medication, PrescriptionImport, ReminderPattern
from services.medication_service import MedicationService
from services.settings_service import SettingsService
from tests.factories import TODAY, FailingScheduler, add_dose, add_pattern
from tools.prescription_schema import PrescriptionData


class UnreadableSettings(SettingsService):
    async def get_bool(self, db, key, default=None):
        raise TransientStoreError("Settings store unavailable", operation="get_setting")


# =============================================================================
# Create
# =============================================================================

class TestCreateMedication:
    """Test adding medications"""

    @pytest.mark.asyncio
    async def test_create_schedules_reminders(self, medications, scheduler, db_session, sample_medication_data):
        medication = await medications.create_medication(sample_medication_data, db=db_session)

        assert medication.id is not None
        assert len(medication.notification_ids) == 2
        payloads = [scheduler.get(i).request.payload for i in medication.notification_ids]
        assert payloads == [
            {"medication_id": medication.id, "medication_name": "Metformin", "dosage": "500mg", "time_slot": "08:00"},
            {"medication_id": medication.id, "medication_name": "Metformin", "dosage": "500mg", "time_slot": "20:00"},
        ]

    @pytest.mark.asyncio
    async def test_scheduler_failure_keeps_medication(self, ledger, settings_svc, db_session, sample_medication_data):
        failing = FailingScheduler(fail_after=1)
        service = MedicationService(ReminderEngine(failing, ledger, settings_svc))

        medication = await service.create_medication(sample_medication_data, db=db_session)

        assert db_session.query(Medication).count() == 1
        assert medication.notification_ids == []
        assert len(failing.cancelled_ids) == 1

    @pytest.mark.asyncio
    async def test_settings_store_failure_keeps_medication(self, scheduler, ledger, db_session, sample_medication_data):
        service = MedicationService(ReminderEngine(scheduler, ledger, UnreadableSettings()))

        medication = await service.create_medication(sample_medication_data, db=db_session)

        assert db_session.query(Medication).count() == 1
        assert medication.notification_ids == []
        assert scheduler.scheduled == []

    @pytest.mark.asyncio
    async def test_invalid_slot_rejected(self, medications, db_session, sample_medication_data):
        sample_medication_data["times"] = ["8am"]

        with pytest.raises(ValidationError):
            await medications.create_medication(sample_medication_data, db=db_session)
        assert db_session.query(Medication).count() == 0

    @pytest.mark.asyncio
    async def test_duplicate_slot_rejected(self, medications, db_session, sample_medication_data):
        sample_medication_data["times"] = ["08:00", "08:00"]

        with pytest.raises(ValidationError):
            await medications.create_medication(sample_medication_data, db=db_session)

    @pytest.mark.asyncio
    async def test_missing_name_rejected(self, medications, db_session, sample_medication_data):
        sample_medication_data["name"] = "  "

        with pytest.raises(ValidationError):
            await medications.create_medication(sample_medication_data, db=db_session)


# =============================================================================
# Update / delete
# =============================================================================

class TestUpdateMedication:
    """Test changing and removing medications"""

    @pytest.mark.asyncio
    async def test_changing_times_reschedules(self, medications, scheduler, db_session, sample_medication_data):
        medication = await medications.create_medication(sample_medication_data, db=db_session)
        old_ids = list(medication.notification_ids)

        updated = await medications.update_medication(medication.id, {"times": ["09:00"]}, db=db_session)

        assert updated.times == ["09:00"]
        assert sorted(scheduler.cancelled_ids) == sorted(old_ids)
        assert len(updated.notification_ids) == 1
        assert scheduler.get(updated.notification_ids[0]).request.payload["time_slot"] == "09:00"

    @pytest.mark.asyncio
    async def test_other_changes_keep_reminders(self, medications, scheduler, db_session, sample_medication_data):
        medication = await medications.create_medication(sample_medication_data, db=db_session)
        ids = list(medication.notification_ids)

        updated = await medications.update_medication(
            medication.id, {"color": "#FF8800", "frequency": "twice daily with food"}, db=db_session
        )

        assert updated.color == "#FF8800"
        assert updated.notification_ids == ids
        assert scheduler.cancelled_ids == []

    @pytest.mark.asyncio
    async def test_reminder_text_changes_reschedule(self, medications, scheduler, db_session, sample_medication_data):
        medication = await medications.create_medication(sample_medication_data, db=db_session)
        old_ids = list(medication.notification_ids)

        updated = await medications.update_medication(
            medication.id, {"name": "Glucophage", "dosage": "850mg"}, db=db_session
        )

        assert sorted(scheduler.cancelled_ids) == sorted(old_ids)
        assert len(updated.notification_ids) == 2
        for notification_id in updated.notification_ids:
            payload = scheduler.get(notification_id).request.payload
            assert (payload["medication_name"], payload["dosage"]) == ("Glucophage", "850mg")

    @pytest.mark.asyncio
    async def test_same_values_keep_reminders(self, medications, scheduler, db_session, sample_medication_data):
        medication = await medications.create_medication(sample_medication_data, db=db_session)
        ids = list(medication.notification_ids)

        updated = await medications.update_medication(
            medication.id, {"dosage": "500mg", "times": ["08:00", "20:00"]}, db=db_session
        )

        assert updated.notification_ids == ids
        assert scheduler.cancelled_ids == []

    @pytest.mark.asyncio
    async def test_update_missing_medication(self, medications, db_session):
        with pytest.raises(NotFoundError):
            await medications.update_medication(404, {"dosage": "1g"}, db=db_session)

    @pytest.mark.asyncio
    async def test_delete_removes_history(self, medications, scheduler, db_session, sample_medication_data):
        medication = await medications.create_medication(sample_medication_data, db=db_session)
        add_dose(db_session, medication, "08:00", TODAY, DoseStatus.TAKEN)
        add_pattern(db_session, medication, "08:00")
        ids = list(medication.notification_ids)

        assert await medications.delete_medication(medication.id, db=db_session) is True

        assert db_session.query(Medication).count() == 0
        assert db_session.query(Dose).count() == 0
        assert db_session.query(ReminderPattern).count() == 0
        assert sorted(scheduler.cancelled_ids) == sorted(ids)

    @pytest.mark.asyncio
    async def test_list_sorted_by_name(self, medications, db_session, sample_medication_data):
        await medications.create_medication(sample_medication_data, db=db_session)
        await medications.create_medication(
            {"name": "Atorvastatin", "dosage": "20mg", "frequency": "once daily", "times": ["21:00"]},
            db=db_session
        )

        names = [m.name for m in await medications.list_medications(db=db_session)]
        assert names == ["Atorvastatin", "Metformin"]


# =============================================================================
# Retry and import
# =============================================================================

class TestRetryAndImport:
    """Test recovering unreminded medications and prescription import"""

    @pytest.mark.asyncio
    async def test_retry_unreminded(self, medications, scheduler, db_session, test_medication):
        assert test_medication.notification_ids == []

        repaired = await medications.retry_unreminded(db=db_session)

        assert repaired == [test_medication.id]
        assert len(test_medication.notification_ids) == 2

    @pytest.mark.asyncio
    async def test_retry_skips_reminded(self, medications, db_session, sample_medication_data):
        await medications.create_medication(sample_medication_data, db=db_session)
        assert await medications.retry_unreminded(db=db_session) == []

    @pytest.mark.asyncio
    async def test_import_prescription(self, medications, db_session):
        data = PrescriptionData.model_validate({
            "medications": [
                {"name": "Amoxicillin", "dosage": "500", "dosageUnit": "mg", "frequency": "3x daily",
                 "times": ["8:00", "14:00", "20:00"], "instructions": "With water", "confidence": "high"},
                {"name": "Ibuprofen", "dosage": "200", "dosageUnit": "mg", "frequency": "as needed",
                 "times": [], "confidence": "low"},
            ],
            "doctorName": "Dr. Rivera",
        })

        result = await medications.import_prescription(data, image_ref="scan-001.jpg", db=db_session)

        assert result["skipped"] == ["Ibuprofen"]
        created = result["medications"]
        assert [m.name for m in created] == ["Amoxicillin"]
        assert created[0].dosage == "500mg"
        assert created[0].times == ["08:00", "14:00", "20:00"]
        assert created[0].notes == "With water"
        assert len(created[0].notification_ids) == 3

        record = db_session.query(PrescriptionImport).one()
        assert record.id == result["import_id"]
        assert record.image_ref == "scan-001.jpg"
        assert record.medications_json["doctorName"] == "Dr. Rivera"
