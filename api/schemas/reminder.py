"""
Reminder Schemas
Pydantic models for reminder actions, caregiver checks and settings
"""

from typing import Optional, Dict, Any
from pydantic import BaseModel, Field

from config import adherence_config
from tools.notification_service import ReminderAction


class ReminderActionRequest(BaseModel):
    """User response to a delivered reminder"""
    action: ReminderAction
    payload: Dict[str, Any]
    trigger_id: Optional[str] = None
    snooze_minutes: int = Field(default=adherence_config.DEFAULT_SNOOZE_MINUTES, ge=1, le=240)


class CaregiverCheckResponse(BaseModel):
    notified: bool


class SettingValue(BaseModel):
    value: str


class SettingResponse(BaseModel):
    key: str
    value: str
