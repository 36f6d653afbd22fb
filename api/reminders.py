"""
Reminders API Router
Endpoints for reminder actions and caregiver escalation
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from api.deps import get_db, services
from api.schemas.dose import DoseResponse
from api.schemas.reminder import ReminderActionRequest, CaregiverCheckResponse


router = APIRouter(prefix="/reminders", tags=["reminders"])


@router.post("/actions", response_model=DoseResponse, status_code=status.HTTP_201_CREATED)
async def handle_reminder_action(
    request: ReminderActionRequest,
    db: Session = Depends(get_db)
):
    """
    Record a take, snooze or skip tapped on a reminder

    Snoozing schedules a follow-up reminder after **snooze_minutes**.
    """
    reminders = services.get_reminder_engine()
    return await reminders.handle_trigger_action(
        db,
        request.action,
        request.payload,
        trigger_id=request.trigger_id,
        snooze_minutes=request.snooze_minutes
    )


@router.post("/caregiver-check", response_model=CaregiverCheckResponse)
async def caregiver_check(db: Session = Depends(get_db)):
    caregiver_service = services.get_caregiver_service()
    return CaregiverCheckResponse(notified=await caregiver_service.check_and_notify(db))
