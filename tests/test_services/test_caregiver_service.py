"""
Tests for Caregiver Service
Tests escalation after consecutive missed doses
"""

import pytest

from config import SettingKeys
from models import DoseStatus
from tools.notification_service import NotificationPriority, NotificationType
from tests.factories import add_history


MISSED = (DoseStatus.MISSED, None)
TAKEN = (DoseStatus.TAKEN, 0)


class TestCaregiverEscalation:
    """Test check_and_notify"""

    @pytest.mark.asyncio
    async def test_disabled_by_default(self, caregiver, scheduler, db_session, test_medication):
        add_history(db_session, test_medication, "08:00", [MISSED] * 5)

        assert await caregiver.check_and_notify(db_session) is False
        assert scheduler.scheduled == []

    @pytest.mark.asyncio
    async def test_requires_phone(self, caregiver, settings_svc, db_session, test_medication):
        await settings_svc.set_bool(db_session, SettingKeys.CAREGIVER_ENABLED, True)
        add_history(db_session, test_medication, "08:00", [MISSED] * 5)

        assert await caregiver.check_and_notify(db_session) is False

    @pytest.mark.asyncio
    async def test_notifies_at_threshold(self, caregiver, scheduler, db_session, test_medication):
        await caregiver_setup(caregiver, db_session)
        add_history(db_session, test_medication, "08:00", [TAKEN] + [MISSED] * 3)

        assert await caregiver.check_and_notify(db_session) is True

        [alert] = scheduler.scheduled
        assert alert.request.notification_type == NotificationType.CAREGIVER_ALERT
        assert alert.request.priority == NotificationPriority.MAX
        assert alert.request.trigger is None
        assert "Sam" in alert.request.body
        assert alert.request.payload["missed_count"] == 3

    @pytest.mark.asyncio
    async def test_below_threshold(self, caregiver, scheduler, db_session, test_medication):
        await caregiver_setup(caregiver, db_session)
        add_history(db_session, test_medication, "08:00", [MISSED, MISSED, TAKEN, MISSED, MISSED])

        assert await caregiver.check_and_notify(db_session) is False
        assert scheduler.scheduled == []

    @pytest.mark.asyncio
    async def test_custom_threshold(self, caregiver, settings_svc, db_session, test_medication):
        await caregiver_setup(caregiver, db_session)
        await settings_svc.set(db_session, SettingKeys.CAREGIVER_MISS_THRESHOLD, "2")
        add_history(db_session, test_medication, "08:00", [TAKEN, MISSED, MISSED])

        assert await caregiver.check_and_notify(db_session) is True


async def caregiver_setup(caregiver, db_session):
    await caregiver.settings.set_bool(db_session, SettingKeys.CAREGIVER_ENABLED, True)
    await caregiver.settings.set(db_session, SettingKeys.CAREGIVER_PHONE, "+15550100")
    await caregiver.settings.set(db_session, SettingKeys.CAREGIVER_NAME, "Sam")
