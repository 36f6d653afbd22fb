"""
Caregiver Service
Offers to alert a caregiver after a run of missed doses
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from config import SettingKeys, adherence_config
from exceptions import NotificationSchedulingError
from services.adherence_service import AdherenceService, adherence_service
from services.settings_service import SettingsService, settings_service
from tools.notification_service import (
    NotificationPriority,
    NotificationRequest,
    NotificationScheduler,
    NotificationType,
    notification_scheduler,
    render_template,
)


logger = logging.getLogger(__name__)


class CaregiverService:
    """
    Service for caregiver escalation
    """

    def __init__(
        self,
        scheduler: Optional[NotificationScheduler] = None,
        adherence: Optional[AdherenceService] = None,
        settings: Optional[SettingsService] = None
    ):
        self.scheduler = scheduler or notification_scheduler
        self.adherence = adherence or adherence_service
        self.settings = settings or settings_service

    async def check_and_notify(self, db: Session) -> bool:
        """
        Ask the user whether to alert their caregiver

        Only runs when caregiver alerts are enabled and a phone number is
        set. Fires an immediate notification once the number of most
        recent consecutive missed doses reaches the configured threshold.

        Returns:
            True if the notification was requested
        """
        if not await self.settings.get_bool(db, SettingKeys.CAREGIVER_ENABLED):
            return False
        phone = (await self.settings.get(db, SettingKeys.CAREGIVER_PHONE)).strip()
        if not phone:
            return False

        threshold = await self.settings.get_int(
            db, SettingKeys.CAREGIVER_MISS_THRESHOLD, adherence_config.DEFAULT_CAREGIVER_MISS_THRESHOLD
        )
        missed = await self.adherence.consecutive_missed(db)
        if missed < threshold:
            return False

        name = (await self.settings.get(db, SettingKeys.CAREGIVER_NAME)).strip() or "your caregiver"
        content = render_template(
            NotificationType.CAREGIVER_ALERT,
            missed_count=missed,
            caregiver_name=name
        )
        try:
            await self.scheduler.schedule(NotificationRequest(
                title=content["title"],
                body=content["body"],
                trigger=None,
                payload={"caregiver_alert": True, "missed_count": missed, "caregiver_phone": phone},
                priority=NotificationPriority.MAX,
                notification_type=NotificationType.CAREGIVER_ALERT
            ))
        except NotificationSchedulingError as e:
            logger.error(f"Caregiver alert could not be scheduled: {e.message}")
            return False

        logger.info(f"Caregiver alert raised after {missed} consecutive missed doses")
        return True


# Singleton instance
caregiver_service = CaregiverService()
