"""
Database Models
SQLAlchemy ORM models for DoseRhythm
"""

import time as _time
from sqlalchemy import Column, Integer, String, Float, ForeignKey, Text, Index, UniqueConstraint, JSON
from sqlalchemy.orm import relationship
from enum import Enum as PyEnum

from database import Base


def _epoch_now() -> int:
    return int(_time.time())


# ==================== ENUMS ====================

class DoseStatus(str, PyEnum):
    """Outcome of a scheduled dose. PENDING is derived, never stored."""
    TAKEN = "taken"
    MISSED = "missed"
    SNOOZED = "snoozed"
    SKIPPED = "skipped"
    PENDING = "pending"


PERSISTED_STATUSES = (
    DoseStatus.TAKEN,
    DoseStatus.MISSED,
    DoseStatus.SNOOZED,
    DoseStatus.SKIPPED,
)


class TimeBlock(str, PyEnum):
    """Parts of the day used for time-block reporting"""
    MORNING = "morning"
    NOON = "noon"
    EVENING = "evening"
    NIGHT = "night"


# ==================== MODELS ====================

class Medication(Base):
    """Medication with its recurring daily time slots"""
    __tablename__ = "medications"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(255), nullable=False)
    dosage = Column(String(100), nullable=False)  # e.g., "500mg"
    frequency = Column(String(100), nullable=False)  # "2x daily", "once daily"

    # Ordered list of unique "HH:MM" slots
    times = Column(JSON, nullable=False, default=list)

    notes = Column(Text)
    color = Column(String(20))
    notification_sound = Column(String(100))

    # Opaque ids returned by the notification scheduler
    notification_ids = Column(JSON, nullable=False, default=list)

    created_at = Column(Integer, default=_epoch_now)

    # Relationships
    doses = relationship("Dose", back_populates="medication", cascade="all, delete-orphan")
    patterns = relationship("ReminderPattern", back_populates="medication", cascade="all, delete-orphan")
    adjustments = relationship("ScheduleAdjustment", back_populates="medication", cascade="all, delete-orphan")


class Dose(Base):
    """One logged outcome of a time slot occurrence"""
    __tablename__ = "doses"

    id = Column(Integer, primary_key=True, index=True)
    medication_id = Column(Integer, ForeignKey("medications.id", ondelete="CASCADE"), nullable=False)

    # Epoch seconds
    scheduled_time = Column(Integer, nullable=False)
    actual_time = Column(Integer)

    status = Column(String(20), nullable=False)
    notes = Column(Text)

    # Relationships
    medication = relationship("Medication", back_populates="doses")

    __table_args__ = (
        Index("ix_doses_scheduled_time", "scheduled_time"),
        Index("ix_doses_medication_scheduled", "medication_id", "scheduled_time"),
    )


class ReminderPattern(Base):
    """Behavioral statistics for one (medication, time slot) over the analysis window"""
    __tablename__ = "reminder_patterns"

    id = Column(Integer, primary_key=True, index=True)
    medication_id = Column(Integer, ForeignKey("medications.id", ondelete="CASCADE"), nullable=False)
    time_slot = Column(String(5), nullable=False)

    on_time_rate = Column(Float, nullable=False, default=0.0)
    miss_rate = Column(Float, nullable=False, default=0.0)
    snooze_rate = Column(Float, nullable=False, default=0.0)
    avg_delay_minutes = Column(Float, nullable=False, default=0.0)
    recommended_time = Column(String(5))
    sample_size = Column(Integer, nullable=False, default=0)
    last_computed_at = Column(Integer, default=_epoch_now)

    # Relationships
    medication = relationship("Medication", back_populates="patterns")

    __table_args__ = (
        UniqueConstraint("medication_id", "time_slot", name="uq_pattern_medication_slot"),
    )


class ScheduleAdjustment(Base):
    """Audit record of an applied schedule recommendation"""
    __tablename__ = "schedule_adjustments"

    id = Column(Integer, primary_key=True, index=True)
    medication_id = Column(Integer, ForeignKey("medications.id", ondelete="CASCADE"), nullable=False)
    old_time = Column(String(5), nullable=False)
    new_time = Column(String(5), nullable=False)
    reason = Column(Text)
    changed_at = Column(Integer, default=_epoch_now)

    # Relationships
    medication = relationship("Medication", back_populates="adjustments")


class UserSetting(Base):
    """Key/value user preference"""
    __tablename__ = "user_settings"

    id = Column(Integer, primary_key=True, index=True)
    setting_key = Column(String(100), unique=True, nullable=False)
    setting_value = Column(Text, nullable=False)


class PrescriptionImport(Base):
    """Raw extractor output kept for every imported prescription"""
    __tablename__ = "prescription_imports"

    id = Column(Integer, primary_key=True, index=True)
    image_ref = Column(String(500))
    medications_json = Column(JSON)
    processed_at = Column(Integer, default=_epoch_now)
