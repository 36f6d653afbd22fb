"""
Patterns API Router
Endpoints for learned reminder patterns and schedule recommendations
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.deps import get_db, services
from api.schemas.pattern import (
    ReminderPatternResponse,
    PatternRecomputeResponse,
    RecommendationResponse,
    RecommendationApply,
    RecommendationApplyResponse,
)


router = APIRouter(prefix="/patterns", tags=["patterns"])
recommendations_router = APIRouter(prefix="/recommendations", tags=["recommendations"])


@router.get("/", response_model=List[ReminderPatternResponse])
async def list_patterns(
    medication_id: Optional[int] = Query(None),
    db: Session = Depends(get_db)
):
    analyzer = services.get_pattern_analyzer()
    return await analyzer.list_patterns(db, medication_id)


@router.post("/recompute", response_model=PatternRecomputeResponse)
async def recompute_patterns(db: Session = Depends(get_db)):
    """
    Run the pattern analysis now instead of waiting for the periodic pass
    """
    analyzer = services.get_pattern_analyzer()
    result = await analyzer.recompute_reminder_patterns(db)
    return result.to_dict()


@recommendations_router.get("/", response_model=List[RecommendationResponse])
async def list_recommendations(db: Session = Depends(get_db)):
    """
    Suggested slot changes, most missed first
    """
    engine = services.get_recommendation_engine()
    return [rec.to_dict() for rec in await engine.get_schedule_recommendations(db)]


@recommendations_router.post("/apply", response_model=RecommendationApplyResponse)
async def apply_recommendation(
    request: RecommendationApply,
    db: Session = Depends(get_db)
):
    """
    Move a slot to its recommended time and reschedule reminders

    Reminder or audit failures after the move are reported in **errors**;
    the move itself is kept.
    """
    engine = services.get_recommendation_engine()
    applier = services.get_schedule_applier()
    rec = await engine.find_recommendation(db, request.medication_id, request.current_time)
    result = await applier.apply_schedule_recommendation(db, rec)
    return result.to_dict()
