"""
Notification Scheduler Tool
Port to the device notification scheduler plus an in-process implementation
"""

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Union
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from exceptions import NotificationSchedulingError


logger = logging.getLogger(__name__)


class NotificationPriority(str, Enum):
    """Notification priority levels"""
    MAX = "max"
    HIGH = "high"
    DEFAULT = "default"
    LOW = "low"


class NotificationType(str, Enum):
    """Types of notifications"""
    MEDICATION_REMINDER = "medication_reminder"
    PRE_ALERT = "pre_alert"
    SNOOZED_REMINDER = "snoozed_reminder"
    CAREGIVER_ALERT = "caregiver_alert"


class ReminderAction(str, Enum):
    """Action buttons offered on a medication reminder"""
    TAKE = "take"
    SNOOZE = "snooze"
    SKIP = "skip"


REMINDER_CATEGORY = "medication-reminder"


@dataclass(frozen=True)
class DailyTrigger:
    """Repeats every day at hour:minute device-local time"""
    hour: int
    minute: int

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "daily", "hour": self.hour, "minute": self.minute}


@dataclass(frozen=True)
class OneShotTrigger:
    """Fires once after the given number of seconds"""
    seconds: int

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "one_shot", "seconds": self.seconds}


Trigger = Union[DailyTrigger, OneShotTrigger]


@dataclass
class NotificationRequest:
    """Notification request details"""
    title: str
    body: str
    trigger: Optional[Trigger]
    payload: Dict[str, Any] = field(default_factory=dict)
    priority: NotificationPriority = NotificationPriority.DEFAULT
    notification_type: NotificationType = NotificationType.MEDICATION_REMINDER
    category: Optional[str] = None
    sound: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "body": self.body,
            "trigger": self.trigger.to_dict() if self.trigger else None,
            "payload": self.payload,
            "priority": self.priority.value,
            "notification_type": self.notification_type.value,
            "category": self.category,
            "sound": self.sound
        }


@dataclass
class ScheduledNotification:
    """A request accepted by the scheduler"""
    id: str
    request: NotificationRequest
    scheduled_at: datetime = field(default_factory=datetime.utcnow)
    dismissed: bool = False


# Notification templates
NOTIFICATION_TEMPLATES: Dict[NotificationType, Dict[str, str]] = {
    NotificationType.MEDICATION_REMINDER: {
        "title": "Time for {medication_name}",
        "body": "{dosage} - {notes}",
    },
    NotificationType.PRE_ALERT: {
        "title": "Coming up: {medication_name}",
        "body": "{medication_name} ({dosage}) is due at {time_slot}. Get ready!",
    },
    NotificationType.SNOOZED_REMINDER: {
        "title": "Snoozed: {medication_name}",
        "body": "Time to take your {medication_name} ({dosage}).",
    },
    NotificationType.CAREGIVER_ALERT: {
        "title": "Caregiver Alert Triggered",
        "body": "You've missed {missed_count} doses. Should we notify {caregiver_name}?",
    },
}


def render_template(notification_type: NotificationType, **data: Any) -> Dict[str, str]:
    """Fill the title/body template for a notification type"""
    template = NOTIFICATION_TEMPLATES[notification_type]
    format_data = {"notes": "Take your medication", **data}
    if not format_data.get("notes"):
        format_data["notes"] = "Take your medication"
    try:
        return {
            "title": template["title"].format(**format_data),
            "body": template["body"].format(**format_data),
        }
    except KeyError as e:
        logger.warning(f"Missing template variable: {e}")
        return {"title": template["title"], "body": template["body"]}


class NotificationScheduler(ABC):
    """
    Interface to the platform notification scheduler

    Implementations raise NotificationSchedulingError on any failure.
    """

    @abstractmethod
    async def schedule(self, request: NotificationRequest) -> str:
        """Schedule a notification and return its opaque identifier"""

    @abstractmethod
    async def cancel(self, notification_id: str) -> None:
        """Cancel a scheduled notification"""

    @abstractmethod
    async def dismiss(self, notification_id: str) -> None:
        """Remove a delivered notification from the tray"""


class LocalNotificationScheduler(NotificationScheduler):
    """
    In-process scheduler keeping requests in memory

    Used as the default backend and by the test-suite; a device bridge
    replaces it in production builds.
    """

    def __init__(self):
        self._scheduled: Dict[str, ScheduledNotification] = {}
        self._cancelled: List[str] = []
        self._dismissed: List[str] = []

    async def schedule(self, request: NotificationRequest) -> str:
        if request.trigger is not None:
            self._validate_trigger(request.trigger)

        notification_id = str(uuid.uuid4())
        self._scheduled[notification_id] = ScheduledNotification(
            id=notification_id,
            request=request
        )
        logger.info(
            f"Scheduled notification {notification_id} "
            f"({request.notification_type.value}) {request.trigger.to_dict() if request.trigger else 'immediate'}"
        )
        return notification_id

    async def cancel(self, notification_id: str) -> None:
        removed = self._scheduled.pop(notification_id, None)
        self._cancelled.append(notification_id)
        if removed is None:
            logger.debug(f"Cancel requested for unknown notification {notification_id}")
        else:
            logger.info(f"Cancelled notification {notification_id}")

    async def dismiss(self, notification_id: str) -> None:
        self._dismissed.append(notification_id)
        entry = self._scheduled.get(notification_id)
        if entry is not None:
            entry.dismissed = True
        logger.debug(f"Dismissed notification {notification_id}")

    def _validate_trigger(self, trigger: Trigger) -> None:
        if isinstance(trigger, DailyTrigger):
            if not (0 <= trigger.hour < 24 and 0 <= trigger.minute < 60):
                raise NotificationSchedulingError(
                    f"Invalid daily trigger {trigger.hour}:{trigger.minute}",
                    operation="schedule"
                )
        elif isinstance(trigger, OneShotTrigger):
            if trigger.seconds <= 0:
                raise NotificationSchedulingError(
                    f"One-shot trigger needs a positive delay, got {trigger.seconds}",
                    operation="schedule"
                )

    # Inspection helpers

    def get(self, notification_id: str) -> Optional[ScheduledNotification]:
        return self._scheduled.get(notification_id)

    @property
    def scheduled(self) -> List[ScheduledNotification]:
        return list(self._scheduled.values())

    @property
    def cancelled_ids(self) -> List[str]:
        return list(self._cancelled)

    @property
    def dismissed_ids(self) -> List[str]:
        return list(self._dismissed)

    def clear(self) -> None:
        self._scheduled.clear()
        self._cancelled.clear()
        self._dismissed.clear()


# Singleton instance
notification_scheduler = LocalNotificationScheduler()
