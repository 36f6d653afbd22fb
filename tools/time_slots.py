"""
Time Slot Tool
Parsing, arithmetic and calendar conversion for "HH:MM" dose slots
"""

import math
import re
from datetime import date, datetime, time
from typing import Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from config import adherence_config
from exceptions import ValidationError
from models import TimeBlock
from tools.clock import get_timezone


MINUTES_PER_DAY = 24 * 60

_SLOT_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_slot(slot: str) -> Tuple[int, int]:
    """Split a zero-padded "HH:MM" slot into (hour, minute)"""
    match = _SLOT_RE.match(slot) if isinstance(slot, str) else None
    if not match:
        raise ValidationError(
            f"Time slot must be zero-padded HH:MM, got {slot!r}",
            field="time_slot",
            value=slot
        )
    return int(match.group(1)), int(match.group(2))


def format_slot(hour: int, minute: int) -> str:
    return f"{hour:02d}:{minute:02d}"


def shift_slot(slot: str, minutes: int) -> str:
    """Move a slot by a signed number of minutes, wrapping at midnight"""
    hour, minute = parse_slot(slot)
    total = (hour * 60 + minute + minutes) % MINUTES_PER_DAY
    return format_slot(total // 60, total % 60)


def slot_gap_minutes(first: str, second: str) -> int:
    """Shortest distance between two slots around the clock"""
    first_hour, first_minute = parse_slot(first)
    second_hour, second_minute = parse_slot(second)
    diff = abs((first_hour * 60 + first_minute) - (second_hour * 60 + second_minute))
    return min(diff, MINUTES_PER_DAY - diff)


def min_slot_gap_minutes() -> int:
    """Closest two slots may sit without one logged dose matching both"""
    return 2 * adherence_config.SLOT_MATCH_TOLERANCE_SECONDS // 60 + 1


def validate_slots(slots: Iterable[str]) -> List[str]:
    """
    Check every slot is well formed, unique and far enough from the others

    Returns the slots as a list in their given order.
    """
    result = []
    min_gap = min_slot_gap_minutes()
    for slot in slots:
        parse_slot(slot)
        for other in result:
            if other == slot:
                raise ValidationError(
                    f"Duplicate time slot {slot}",
                    field="times",
                    value=slot
                )
            if slot_gap_minutes(slot, other) < min_gap:
                raise ValidationError(
                    f"Time slots {other} and {slot} must be at least {min_gap} minutes apart",
                    field="times",
                    value=slot
                )
        result.append(slot)
    return result


def slot_timestamp(slot: str, day: date, tz: Optional[ZoneInfo] = None) -> int:
    """Epoch seconds of the slot's wall-clock time on the given day"""
    hour, minute = parse_slot(slot)
    local = datetime.combine(day, time(hour, minute), tzinfo=tz or get_timezone())
    return int(local.timestamp())


def to_local(epoch_seconds: int, tz: Optional[ZoneInfo] = None) -> datetime:
    return datetime.fromtimestamp(epoch_seconds, tz or get_timezone())


def local_date(epoch_seconds: int, tz: Optional[ZoneInfo] = None) -> date:
    return to_local(epoch_seconds, tz).date()


def slot_of(epoch_seconds: int, tz: Optional[ZoneInfo] = None) -> str:
    """Wall-clock "HH:MM" of an epoch timestamp"""
    local = to_local(epoch_seconds, tz)
    return format_slot(local.hour, local.minute)


def time_block_for_hour(hour: int) -> TimeBlock:
    """morning 06-12, noon 12-17, evening 17-21, night 21-06"""
    if 6 <= hour < 12:
        return TimeBlock.MORNING
    if 12 <= hour < 17:
        return TimeBlock.NOON
    if 17 <= hour < 21:
        return TimeBlock.EVENING
    return TimeBlock.NIGHT


def percent(numerator: int, denominator: int) -> int:
    """Whole-number percentage rounded half up; 0 for an empty denominator"""
    if not denominator:
        return 0
    return int(math.floor(numerator / denominator * 100 + 0.5))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward positive infinity"""
    return int(math.floor(value + 0.5))
