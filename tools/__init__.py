"""
Tools Package
Utility tools for the DoseRhythm system
"""

from .clock import (
    Clock,
    SystemClock,
    FixedClock,
    system_clock,
    get_timezone
)

from .time_slots import (
    parse_slot,
    format_slot,
    shift_slot,
    validate_slots,
    slot_timestamp,
    slot_of,
    percent
)

from .notification_service import (
    NotificationScheduler,
    LocalNotificationScheduler,
    NotificationPriority,
    NotificationType,
    NotificationRequest,
    DailyTrigger,
    OneShotTrigger,
    ReminderAction,
    notification_scheduler
)

from .prescription_schema import (
    ExtractedMedication,
    PrescriptionData
)

__all__ = [
    # Clock
    "Clock",
    "SystemClock",
    "FixedClock",
    "system_clock",
    "get_timezone",

    # Time slots
    "parse_slot",
    "format_slot",
    "shift_slot",
    "validate_slots",
    "slot_timestamp",
    "slot_of",
    "percent",

    # Notification Scheduler
    "NotificationScheduler",
    "LocalNotificationScheduler",
    "NotificationPriority",
    "NotificationType",
    "NotificationRequest",
    "DailyTrigger",
    "OneShotTrigger",
    "ReminderAction",
    "notification_scheduler",

    # Prescription extraction
    "ExtractedMedication",
    "PrescriptionData"
]
