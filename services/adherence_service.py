"""
Adherence Service
Daily summaries, adherence statistics, streaks and breakdowns
computed from the dose ledger
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field, asdict
from datetime import date, timedelta
from typing import Dict, List, Optional, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import models
from config import adherence_config
from exceptions import TransientStoreError
from models import DoseStatus, TimeBlock
from services.dose_ledger import DoseLedger, matches_slot
from tools.clock import Clock, system_clock
from tools.time_slots import (
    local_date,
    parse_slot,
    percent,
    slot_timestamp,
    time_block_for_hour,
    to_local,
)


logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


# ==================== RESULT TYPES ====================

@dataclass
class DailySummary:
    """Slot outcomes for one calendar day"""
    date: str
    total: int = 0
    taken: int = 0
    missed: int = 0
    pending: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DailyAdherence:
    """Logged doses for one calendar day"""
    date: str
    percentage: int
    taken: int
    total: int
    missed: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StreakInfo:
    current: int = 0
    longest: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AdherenceStats:
    """Overall adherence picture for a window"""
    overall: int = 0
    weekly_average: int = 0
    monthly_average: int = 0
    trend: str = "stable"
    streak_days: int = 0
    longest_streak: int = 0
    missed_doses: int = 0
    best_day: Optional[DailyAdherence] = None
    worst_day: Optional[DailyAdherence] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall,
            "weekly_average": self.weekly_average,
            "monthly_average": self.monthly_average,
            "trend": self.trend,
            "streak_days": self.streak_days,
            "longest_streak": self.longest_streak,
            "missed_doses": self.missed_doses,
            "best_day": self.best_day.to_dict() if self.best_day else None,
            "worst_day": self.worst_day.to_dict() if self.worst_day else None,
        }


@dataclass
class MedicationStats:
    medication_id: int
    name: str
    adherence: int
    total_doses: int
    taken_doses: int
    missed_doses: int
    skipped_doses: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TimeBlockStats:
    """Adherence percentage per part of the day"""
    morning: int = 0
    noon: int = 0
    evening: int = 0
    night: int = 0
    totals: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ==================== SERVICE ====================

class AdherenceService:
    """
    Service for adherence reporting

    Read paths degrade gracefully: a store failure is logged and a
    zeroed result is returned instead of propagating.
    """

    def __init__(self, ledger: Optional[DoseLedger] = None, clock: Optional[Clock] = None):
        self.clock = clock or (ledger.clock if ledger else system_clock)
        self.ledger = ledger or DoseLedger(self.clock)

    async def daily_summary(self, db: Session, day: Optional[date] = None) -> DailySummary:
        """
        Classify every medication slot scheduled on a day

        Logged rows are matched to slots within the matching tolerance;
        unlogged slots are pending or missed depending on how overdue they are.
        Snoozed and skipped slots count toward total only.
        """
        target = day or self.clock.today()
        summary = DailySummary(date=target.isoformat())

        try:
            medications = self._load_medications(db)
            occurrences = [
                (med.id, slot_timestamp(slot, target, self.clock.tz))
                for med in medications
                for slot in (med.times or [])
            ]
            if not occurrences:
                return summary

            tolerance = adherence_config.SLOT_MATCH_TOLERANCE_SECONDS
            stamps = [ts for _, ts in occurrences]
            rows = await self.ledger.query(db, min(stamps) - tolerance, max(stamps) + tolerance)
        except TransientStoreError:
            logger.warning(f"Daily summary for {target} unavailable; returning zeroed summary")
            return summary

        for medication_id, slot_ts in occurrences:
            status = self.ledger.resolve_slot_status(rows, medication_id, slot_ts)
            summary.total += 1
            if status == DoseStatus.TAKEN:
                summary.taken += 1
            elif status == DoseStatus.MISSED:
                summary.missed += 1
            elif status == DoseStatus.PENDING:
                summary.pending += 1

        return summary

    async def daily_adherence(self, db: Session, days: int = adherence_config.DEFAULT_WINDOW_DAYS) -> List[DailyAdherence]:
        """Per-day taken/total over the window, oldest day first"""
        now = self.clock.timestamp()
        try:
            rows = await self.ledger.query(db, now - days * SECONDS_PER_DAY, now)
        except TransientStoreError:
            logger.warning("Daily adherence unavailable; returning empty list")
            return []
        return self._group_by_day(rows)

    async def adherence_stats(self, db: Session, days: int = adherence_config.DEFAULT_WINDOW_DAYS) -> AdherenceStats:
        """
        Overall adherence, weekly trend, streaks and best/worst day

        Trend compares the last 7 days against the 7 days before them.
        """
        now = self.clock.timestamp()
        window_start = now - days * SECONDS_PER_DAY
        week_start = now - 7 * SECONDS_PER_DAY
        prev_week_start = week_start - 7 * SECONDS_PER_DAY

        try:
            rows = await self.ledger.query(db, min(window_start, prev_week_start), now)
            streak = await self._calculate_streak(db)
        except TransientStoreError:
            logger.warning("Adherence stats unavailable; returning zeroed stats")
            return AdherenceStats()

        window_rows = [r for r in rows if r.scheduled_time >= window_start]
        week_rows = [r for r in rows if r.scheduled_time >= week_start]
        prev_rows = [r for r in rows if prev_week_start <= r.scheduled_time < week_start]

        overall = self._rate(window_rows)
        weekly = self._rate(week_rows)
        previous = self._rate(prev_rows)

        threshold = adherence_config.TREND_THRESHOLD_PERCENT
        if weekly - previous > threshold:
            trend = "up"
        elif weekly - previous < -threshold:
            trend = "down"
        else:
            trend = "stable"

        daily = self._group_by_day(window_rows)
        best_day = worst_day = None
        for entry in daily:
            if best_day is None or entry.percentage > best_day.percentage:
                best_day = entry
            if worst_day is None or entry.percentage < worst_day.percentage:
                worst_day = entry

        return AdherenceStats(
            overall=overall,
            weekly_average=weekly,
            monthly_average=overall,
            trend=trend,
            streak_days=streak.current,
            longest_streak=streak.longest,
            missed_doses=sum(1 for r in window_rows if r.status == DoseStatus.MISSED.value),
            best_day=best_day,
            worst_day=worst_day,
        )

    async def calculate_streak(self, db: Session) -> StreakInfo:
        """
        Current and longest run of successful days

        A day succeeds when at least 80% of its logged doses were taken.
        The current streak counts back from the most recent day and stops
        at the first unsuccessful one.
        """
        try:
            return await self._calculate_streak(db)
        except TransientStoreError:
            logger.warning("Streak unavailable; returning zero streak")
            return StreakInfo()

    async def _calculate_streak(self, db: Session) -> StreakInfo:
        now = self.clock.timestamp()
        rows = await self.ledger.query(
            db, now - adherence_config.STREAK_LOOKBACK_DAYS * SECONDS_PER_DAY, now
        )

        current = 0
        longest = 0
        run = 0
        current_open = True

        for day in reversed(self._group_by_day(rows)):
            successful = day.total > 0 and day.taken / day.total >= adherence_config.STREAK_SUCCESS_RATIO
            if successful:
                run += 1
                longest = max(longest, run)
                if current_open:
                    current = run
            else:
                run = 0
                current_open = False

        return StreakInfo(current=current, longest=longest)

    async def medication_stats(self, db: Session, days: int = adherence_config.DEFAULT_WINDOW_DAYS) -> List[MedicationStats]:
        """Per-medication counts; medications without doses in the window are omitted"""
        now = self.clock.timestamp()
        try:
            rows = await self.ledger.query(db, now - days * SECONDS_PER_DAY, now)
            medications = {m.id: m for m in self._load_medications(db)}
        except TransientStoreError:
            logger.warning("Medication stats unavailable; returning empty list")
            return []

        counts: Dict[int, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        for row in rows:
            counts[row.medication_id][row.status] += 1
            counts[row.medication_id]["total"] += 1

        results = []
        for medication_id, c in counts.items():
            medication = medications.get(medication_id)
            if medication is None:
                continue
            results.append(MedicationStats(
                medication_id=medication_id,
                name=medication.name,
                adherence=percent(c[DoseStatus.TAKEN.value], c["total"]),
                total_doses=c["total"],
                taken_doses=c[DoseStatus.TAKEN.value],
                missed_doses=c[DoseStatus.MISSED.value],
                skipped_doses=c[DoseStatus.SKIPPED.value],
            ))

        results.sort(key=lambda s: (s.name.lower(), s.medication_id))
        return results

    async def time_block_stats(self, db: Session, days: int = adherence_config.DEFAULT_WINDOW_DAYS) -> TimeBlockStats:
        """
        Adherence per part of the day

        Doses are bucketed by the hour of the medication slot they were
        scheduled for, not by when they were actually taken.
        """
        now = self.clock.timestamp()
        try:
            rows = await self.ledger.query(db, now - days * SECONDS_PER_DAY, now)
            medications = {m.id: m for m in self._load_medications(db)}
        except TransientStoreError:
            logger.warning("Time block stats unavailable; returning zeroed stats")
            return TimeBlockStats()

        taken: Dict[TimeBlock, int] = defaultdict(int)
        total: Dict[TimeBlock, int] = defaultdict(int)

        for row in rows:
            block = time_block_for_hour(self._slot_hour(row, medications.get(row.medication_id)))
            total[block] += 1
            if row.status == DoseStatus.TAKEN.value:
                taken[block] += 1

        return TimeBlockStats(
            morning=percent(taken[TimeBlock.MORNING], total[TimeBlock.MORNING]),
            noon=percent(taken[TimeBlock.NOON], total[TimeBlock.NOON]),
            evening=percent(taken[TimeBlock.EVENING], total[TimeBlock.EVENING]),
            night=percent(taken[TimeBlock.NIGHT], total[TimeBlock.NIGHT]),
            totals={block.value: total[block] for block in TimeBlock},
        )

    async def dose_history(
        self,
        db: Session,
        start: int,
        end: int,
        medication_id: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Logged doses with medication names, newest first"""
        try:
            rows = await self.ledger.query(db, start, end, medication_id)
            names = {m.id: m.name for m in self._load_medications(db)}
        except TransientStoreError:
            logger.warning("Dose history unavailable; returning empty list")
            return []

        return [
            {
                "dose_id": row.id,
                "medication_id": row.medication_id,
                "medication_name": names.get(row.medication_id, "Unknown"),
                "status": row.status,
                "scheduled_time": row.scheduled_time,
                "actual_time": row.actual_time,
                "notes": row.notes,
            }
            for row in reversed(rows)
        ]

    async def consecutive_missed(self, db: Session, limit: int = 50) -> int:
        """Number of most recent logged doses that were missed, up to the first non-missed one"""
        try:
            rows = await self.ledger.latest(db, limit)
        except TransientStoreError:
            logger.warning("Recent doses unavailable; assuming no consecutive misses")
            return 0

        count = 0
        for row in rows:
            if row.status != DoseStatus.MISSED.value:
                break
            count += 1
        return count

    # ==================== HELPERS ====================

    def _load_medications(self, db: Session) -> List[models.Medication]:
        try:
            return db.query(models.Medication).order_by(models.Medication.id).all()
        except SQLAlchemyError as e:
            raise TransientStoreError("Failed to load medications", operation="load_medications", cause=e)

    def _group_by_day(self, rows: List[models.Dose]) -> List[DailyAdherence]:
        buckets: Dict[date, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        for row in rows:
            day = local_date(row.scheduled_time, self.clock.tz)
            buckets[day]["total"] += 1
            buckets[day][row.status] += 1

        return [
            DailyAdherence(
                date=day.isoformat(),
                percentage=percent(c[DoseStatus.TAKEN.value], c["total"]),
                taken=c[DoseStatus.TAKEN.value],
                total=c["total"],
                missed=c[DoseStatus.MISSED.value],
            )
            for day, c in sorted(buckets.items())
        ]

    @staticmethod
    def _rate(rows: List[models.Dose]) -> int:
        return percent(sum(1 for r in rows if r.status == DoseStatus.TAKEN.value), len(rows))

    def _slot_hour(self, row: models.Dose, medication: Optional[models.Medication]) -> int:
        """Hour of the configured slot a dose belongs to; falls back to its scheduled hour"""
        if medication is not None:
            day = local_date(row.scheduled_time, self.clock.tz)
            for candidate in (day - timedelta(days=1), day, day + timedelta(days=1)):
                for slot in medication.times or []:
                    if matches_slot(row.scheduled_time, slot_timestamp(slot, candidate, self.clock.tz)):
                        return parse_slot(slot)[0]
        return to_local(row.scheduled_time, self.clock.tz).hour


# Singleton instance
adherence_service = AdherenceService()
