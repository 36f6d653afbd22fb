"""
Actions Module
Engines for pattern analysis, schedule recommendations and reminders
"""

from .recommendation_engine import (
    ScheduleRecommendation,
    RecommendationEngine,
    recommendation_engine,
    get_recommended_time,
    build_reason
)

from .pattern_analyzer import (
    SlotPattern,
    PatternRecomputeResult,
    PatternAnalyzer,
    pattern_analyzer,
    compute_pattern_for_slot
)

from .reminder_engine import (
    ReminderEngine,
    reminder_engine,
    needs_prealert
)

from .schedule_applier import (
    ScheduleApplyResult,
    ScheduleApplier,
    schedule_applier
)


__all__ = [
    # Recommendation Engine
    "ScheduleRecommendation",
    "RecommendationEngine",
    "recommendation_engine",
    "get_recommended_time",
    "build_reason",

    # Pattern Analyzer
    "SlotPattern",
    "PatternRecomputeResult",
    "PatternAnalyzer",
    "pattern_analyzer",
    "compute_pattern_for_slot",

    # Reminder Engine
    "ReminderEngine",
    "reminder_engine",
    "needs_prealert",

    # Schedule Applier
    "ScheduleApplyResult",
    "ScheduleApplier",
    "schedule_applier"
]
