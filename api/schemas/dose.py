"""
Dose Schemas
Pydantic models for the dose log
"""

from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict

from models import DoseStatus


class DoseCreate(BaseModel):
    """Schema for logging a dose"""
    medication_id: int
    scheduled_time: int = Field(..., description="Epoch seconds of the slot occurrence")
    status: DoseStatus
    actual_time: Optional[int] = None
    notes: Optional[str] = None


class DoseUpdate(BaseModel):
    """Schema for correcting a logged dose"""
    status: DoseStatus
    actual_time: Optional[int] = None
    notes: Optional[str] = None


class DoseResponse(BaseModel):
    """Schema for dose response"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    medication_id: int
    scheduled_time: int
    actual_time: Optional[int] = None
    status: str
    notes: Optional[str] = None


class DoseList(BaseModel):
    doses: List[DoseResponse]
    total: int
