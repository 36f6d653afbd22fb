"""
Pattern Analyzer
Learns per-slot behavior from the dose ledger and caches it as reminder patterns
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import models
from actions.recommendation_engine import get_recommended_time
from config import SettingKeys, adherence_config
from exceptions import AnalysisSkipped, TransientStoreError
from models import DoseStatus
from services.dose_ledger import DoseLedger
from services.settings_service import SettingsService, settings_service
from tools.clock import Clock, system_clock
from tools.time_slots import slot_of


logger = logging.getLogger(__name__)


@dataclass
class SlotPattern:
    """Statistics for one (medication, slot) before they are stored"""
    medication_id: int
    time_slot: str
    on_time_rate: float
    miss_rate: float
    snooze_rate: float
    avg_delay_minutes: float
    sample_size: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PatternRecomputeResult:
    """Outcome of one analysis pass"""
    updated: List[Dict[str, Any]] = field(default_factory=list)
    removed: int = 0
    skipped: bool = False
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def compute_pattern_for_slot(
    medication_id: int,
    time_slot: str,
    doses: Iterable[models.Dose],
    clock: Clock = system_clock
) -> SlotPattern:
    """
    Compute behavior statistics for one slot

    Only doses whose scheduled wall-clock time is exactly the slot are
    considered. A taken dose is on time when acted on within 10 minutes
    either side; delay is averaged over taken doses only.

    Raises:
        AnalysisSkipped: fewer than the minimum number of samples
    """
    relevant = [
        d for d in doses
        if d.medication_id == medication_id and slot_of(d.scheduled_time, clock.tz) == time_slot
    ]

    sample_size = len(relevant)
    if sample_size < adherence_config.MIN_PATTERN_SAMPLES:
        raise AnalysisSkipped(
            f"Slot {time_slot} of medication {medication_id} has {sample_size} samples",
            operation="compute_pattern_for_slot",
            context={"medication_id": medication_id, "time_slot": time_slot, "sample_size": sample_size}
        )

    on_time = missed = snoozed = taken = 0
    total_delay_minutes = 0.0

    for dose in relevant:
        if dose.status == DoseStatus.MISSED.value:
            missed += 1
        elif dose.status == DoseStatus.SNOOZED.value:
            snoozed += 1
        elif dose.status == DoseStatus.TAKEN.value and dose.actual_time is not None:
            taken += 1
            delay_seconds = dose.actual_time - dose.scheduled_time
            total_delay_minutes += delay_seconds / 60
            if abs(delay_seconds) <= adherence_config.ON_TIME_TOLERANCE_SECONDS:
                on_time += 1

    return SlotPattern(
        medication_id=medication_id,
        time_slot=time_slot,
        on_time_rate=on_time / sample_size,
        miss_rate=missed / sample_size,
        snooze_rate=snoozed / sample_size,
        avg_delay_minutes=total_delay_minutes / taken if taken else 0.0,
        sample_size=sample_size,
    )


class PatternAnalyzer:
    """
    Periodic analysis pass over the dose ledger

    Runs independently of the reminder scheduler; the two only share
    the stored patterns.
    """

    def __init__(
        self,
        ledger: Optional[DoseLedger] = None,
        settings: Optional[SettingsService] = None,
        clock: Optional[Clock] = None
    ):
        self.clock = clock or (ledger.clock if ledger else system_clock)
        self.ledger = ledger or DoseLedger(self.clock)
        self.settings = settings or settings_service

    async def recompute_reminder_patterns(self, db: Session) -> PatternRecomputeResult:
        """
        Recompute every (medication, slot) pattern over the trailing window

        Slots with too few samples lose their pattern. Nothing is touched
        when adaptive reminders are disabled. Store failures end the pass
        with a skipped result rather than an exception.
        """
        result = PatternRecomputeResult()

        try:
            await self._ensure_enabled(db)
            medications = db.query(models.Medication).all()
            now = self.clock.timestamp()
            doses = await self.ledger.query(
                db, now - adherence_config.ANALYSIS_WINDOW_DAYS * 24 * 60 * 60, now
            )
        except AnalysisSkipped as skip:
            result.skipped = True
            result.reason = skip.reason
            return result
        except (TransientStoreError, SQLAlchemyError) as e:
            logger.error(f"Pattern recompute aborted: {e}")
            result.skipped = True
            result.reason = "store unavailable"
            return result

        try:
            for medication in medications:
                for time_slot in medication.times or []:
                    try:
                        pattern = compute_pattern_for_slot(medication.id, time_slot, doses, self.clock)
                    except AnalysisSkipped:
                        result.removed += self._delete_pattern(db, medication.id, time_slot)
                        continue

                    recommended = get_recommended_time(time_slot, pattern)
                    self._upsert_pattern(db, pattern, recommended, now)
                    result.updated.append({**pattern.to_dict(), "recommended_time": recommended})
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to store reminder patterns: {e}")
            return PatternRecomputeResult(skipped=True, reason="store unavailable")

        logger.info(
            f"Recomputed reminder patterns: {len(result.updated)} stored, {result.removed} removed"
        )
        return result

    async def list_patterns(
        self,
        db: Session,
        medication_id: Optional[int] = None
    ) -> List[models.ReminderPattern]:
        try:
            query = db.query(models.ReminderPattern)
            if medication_id is not None:
                query = query.filter(models.ReminderPattern.medication_id == medication_id)
            return query.order_by(
                models.ReminderPattern.medication_id, models.ReminderPattern.time_slot
            ).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read reminder patterns: {e}")
            return []

    async def _ensure_enabled(self, db: Session) -> None:
        if not await self.settings.get_bool(db, SettingKeys.ADAPTIVE_ENABLED):
            raise AnalysisSkipped(
                "Adaptive reminders disabled via settings",
                operation="recompute_reminder_patterns"
            )

    def _delete_pattern(self, db: Session, medication_id: int, time_slot: str) -> int:
        return db.query(models.ReminderPattern).filter(
            models.ReminderPattern.medication_id == medication_id,
            models.ReminderPattern.time_slot == time_slot
        ).delete(synchronize_session=False)

    def _upsert_pattern(
        self,
        db: Session,
        pattern: SlotPattern,
        recommended_time: Optional[str],
        computed_at: int
    ) -> models.ReminderPattern:
        row = db.query(models.ReminderPattern).filter(
            models.ReminderPattern.medication_id == pattern.medication_id,
            models.ReminderPattern.time_slot == pattern.time_slot
        ).first()
        if row is None:
            row = models.ReminderPattern(
                medication_id=pattern.medication_id,
                time_slot=pattern.time_slot
            )
            db.add(row)

        row.on_time_rate = pattern.on_time_rate
        row.miss_rate = pattern.miss_rate
        row.snooze_rate = pattern.snooze_rate
        row.avg_delay_minutes = pattern.avg_delay_minutes
        row.sample_size = pattern.sample_size
        row.recommended_time = recommended_time
        row.last_computed_at = computed_at
        return row


# Singleton instance
pattern_analyzer = PatternAnalyzer()
