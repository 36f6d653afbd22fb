"""
Adherence API Router
Endpoints for medication adherence reporting
"""

from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.deps import get_db, services
from api.schemas.adherence import (
    DailySummary,
    DailyAdherence,
    AdherenceStreak,
    AdherenceStats,
    MedicationAdherence,
    TimeBlockAdherence,
    DoseHistory,
    DoseHistoryEntry,
)
from config import adherence_config


router = APIRouter(prefix="/adherence", tags=["adherence"])

WindowDays = Query(adherence_config.DEFAULT_WINDOW_DAYS, ge=1, le=365, description="Trailing window in days")


@router.get("/summary", response_model=DailySummary)
async def get_daily_summary(
    day: Optional[date] = Query(None, description="Defaults to today"),
    db: Session = Depends(get_db)
):
    """
    Taken, missed and pending slots for one day
    """
    adherence_service = services.get_adherence_service()
    summary = await adherence_service.daily_summary(db, day)
    return summary.to_dict()


@router.get("/daily", response_model=List[DailyAdherence])
async def get_daily_adherence(
    days: int = WindowDays,
    db: Session = Depends(get_db)
):
    adherence_service = services.get_adherence_service()
    return [d.to_dict() for d in await adherence_service.daily_adherence(db, days)]


@router.get("/stats", response_model=AdherenceStats)
async def get_adherence_stats(
    days: int = WindowDays,
    db: Session = Depends(get_db)
):
    """
    Overall adherence, weekly trend, streaks and best/worst days
    """
    adherence_service = services.get_adherence_service()
    stats = await adherence_service.adherence_stats(db, days)
    return stats.to_dict()


@router.get("/streak", response_model=AdherenceStreak)
async def get_streak(db: Session = Depends(get_db)):
    adherence_service = services.get_adherence_service()
    streak = await adherence_service.calculate_streak(db)
    return streak.to_dict()


@router.get("/medications", response_model=List[MedicationAdherence])
async def get_medication_adherence(
    days: int = WindowDays,
    db: Session = Depends(get_db)
):
    adherence_service = services.get_adherence_service()
    return [s.to_dict() for s in await adherence_service.medication_stats(db, days)]


@router.get("/time-blocks", response_model=TimeBlockAdherence)
async def get_time_block_adherence(
    days: int = WindowDays,
    db: Session = Depends(get_db)
):
    """
    Adherence for morning, noon, evening and night slots
    """
    adherence_service = services.get_adherence_service()
    stats = await adherence_service.time_block_stats(db, days)
    return stats.to_dict()


@router.get("/history", response_model=DoseHistory)
async def get_dose_history(
    start: Optional[int] = Query(None, description="Epoch seconds, inclusive"),
    end: Optional[int] = Query(None, description="Epoch seconds, inclusive"),
    medication_id: Optional[int] = Query(None),
    db: Session = Depends(get_db)
):
    """
    Logged doses with medication names, newest first

    Defaults to the trailing 30 days.
    """
    adherence_service = services.get_adherence_service()
    end = end if end is not None else services.get_clock().timestamp()
    start = start if start is not None else end - adherence_config.DEFAULT_WINDOW_DAYS * 24 * 60 * 60

    entries = await adherence_service.dose_history(db, start, end, medication_id)
    return DoseHistory(
        entries=[DoseHistoryEntry(**e) for e in entries],
        total=len(entries)
    )
