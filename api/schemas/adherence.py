"""
Adherence Schemas
Pydantic models for adherence reporting responses
"""

from typing import Optional, List, Dict
from pydantic import BaseModel


class DailySummary(BaseModel):
    """Slot outcomes for one day"""
    date: str
    total: int
    taken: int
    missed: int
    pending: int


class DailyAdherence(BaseModel):
    date: str
    percentage: int
    taken: int
    total: int
    missed: int


class AdherenceStreak(BaseModel):
    current: int
    longest: int


class AdherenceStats(BaseModel):
    """Overall adherence statistics"""
    overall: int
    weekly_average: int
    monthly_average: int
    trend: str
    streak_days: int
    longest_streak: int
    missed_doses: int
    best_day: Optional[DailyAdherence] = None
    worst_day: Optional[DailyAdherence] = None


class MedicationAdherence(BaseModel):
    medication_id: int
    name: str
    adherence: int
    total_doses: int
    taken_doses: int
    missed_doses: int
    skipped_doses: int


class TimeBlockAdherence(BaseModel):
    """Adherence percentage per part of the day"""
    morning: int
    noon: int
    evening: int
    night: int
    totals: Dict[str, int]


class DoseHistoryEntry(BaseModel):
    dose_id: int
    medication_id: int
    medication_name: str
    status: str
    scheduled_time: int
    actual_time: Optional[int] = None
    notes: Optional[str] = None


class DoseHistory(BaseModel):
    entries: List[DoseHistoryEntry]
    total: int
