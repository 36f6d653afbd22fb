"""
Pattern Schemas
Pydantic models for learned reminder patterns and schedule recommendations
"""

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, ConfigDict


class ReminderPatternResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    medication_id: int
    time_slot: str
    on_time_rate: float
    miss_rate: float
    snooze_rate: float
    avg_delay_minutes: float
    recommended_time: Optional[str] = None
    sample_size: int
    last_computed_at: Optional[int] = None


class PatternRecomputeResponse(BaseModel):
    """Outcome of an analysis pass"""
    updated: List[Dict[str, Any]]
    removed: int
    skipped: bool
    reason: Optional[str] = None


class RecommendationResponse(BaseModel):
    medication_id: int
    medication_name: str
    current_time: str
    recommended_time: str
    reason: str
    miss_rate: float
    snooze_rate: float
    avg_delay_minutes: float
    sample_size: int


class RecommendationApply(BaseModel):
    """Accept the live recommendation for one slot"""
    medication_id: int
    current_time: str = Field(..., description="Slot to move, HH:MM")


class RecommendationApplyResponse(BaseModel):
    medication_id: int
    old_time: str
    new_time: str
    times: List[str]
    notification_ids: List[str]
    adjustment_id: Optional[int] = None
    errors: List[str]
    complete: bool
