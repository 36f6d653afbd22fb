"""
API Dependencies
Common dependencies for FastAPI endpoints
"""

from typing import Generator, Optional
from sqlalchemy.orm import Session

from database import SessionLocal
from tools.clock import Clock, system_clock
from tools.notification_service import NotificationScheduler, notification_scheduler


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency
    Yields a SQLAlchemy session and ensures cleanup
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def pagination_params(
    page: int = 1,
    page_size: int = 20
) -> dict:
    """
    Common pagination parameters
    """
    if page < 1:
        page = 1
    if page_size < 1:
        page_size = 20
    if page_size > 100:
        page_size = 100

    return {
        "page": page,
        "page_size": page_size,
        "offset": (page - 1) * page_size
    }


class ServiceDependency:
    """
    Dependency injection for services

    Defaults to the module singletons. configure() wires a fresh set of
    services around another clock or notification scheduler.
    """

    def __init__(self):
        self._wired: Optional[dict] = None

    def configure(
        self,
        clock: Optional[Clock] = None,
        scheduler: Optional[NotificationScheduler] = None
    ) -> None:
        from services.settings_service import SettingsService
        from services.dose_ledger import DoseLedger
        from services.adherence_service import AdherenceService
        from services.medication_service import MedicationService
        from services.caregiver_service import CaregiverService
        from actions.pattern_analyzer import PatternAnalyzer
        from actions.recommendation_engine import RecommendationEngine
        from actions.reminder_engine import ReminderEngine
        from actions.schedule_applier import ScheduleApplier

        clock = clock or system_clock
        scheduler = scheduler or notification_scheduler
        settings = SettingsService()
        ledger = DoseLedger(clock)
        adherence = AdherenceService(ledger)
        reminders = ReminderEngine(scheduler, ledger, settings)

        self._wired = {
            "clock": clock,
            "scheduler": scheduler,
            "settings": settings,
            "ledger": ledger,
            "adherence": adherence,
            "medications": MedicationService(reminders),
            "caregiver": CaregiverService(scheduler, adherence, settings),
            "patterns": PatternAnalyzer(ledger, settings),
            "recommendations": RecommendationEngine(),
            "reminders": reminders,
            "applier": ScheduleApplier(reminders),
        }

    def reset(self) -> None:
        """Go back to the module singletons"""
        self._wired = None

    def get_clock(self) -> Clock:
        return self._wired["clock"] if self._wired else system_clock

    def get_settings_service(self):
        if self._wired:
            return self._wired["settings"]
        from services.settings_service import settings_service
        return settings_service

    def get_dose_ledger(self):
        if self._wired:
            return self._wired["ledger"]
        from services.dose_ledger import dose_ledger
        return dose_ledger

    def get_adherence_service(self):
        if self._wired:
            return self._wired["adherence"]
        from services.adherence_service import adherence_service
        return adherence_service

    def get_medication_service(self):
        if self._wired:
            return self._wired["medications"]
        from services.medication_service import medication_service
        return medication_service

    def get_caregiver_service(self):
        if self._wired:
            return self._wired["caregiver"]
        from services.caregiver_service import caregiver_service
        return caregiver_service

    def get_pattern_analyzer(self):
        if self._wired:
            return self._wired["patterns"]
        from actions.pattern_analyzer import pattern_analyzer
        return pattern_analyzer

    def get_recommendation_engine(self):
        if self._wired:
            return self._wired["recommendations"]
        from actions.recommendation_engine import recommendation_engine
        return recommendation_engine

    def get_reminder_engine(self):
        if self._wired:
            return self._wired["reminders"]
        from actions.reminder_engine import reminder_engine
        return reminder_engine

    def get_schedule_applier(self):
        if self._wired:
            return self._wired["applier"]
        from actions.schedule_applier import schedule_applier
        return schedule_applier


# Service dependency instances
services = ServiceDependency()
