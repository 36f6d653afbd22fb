"""
Prescription Extraction Schema
Validates the output of the prescription extractor before it becomes a Medication
"""

import logging
import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from exceptions import ValidationError
from tools.time_slots import validate_slots


logger = logging.getLogger(__name__)

_LOOSE_SLOT_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def normalize_slot(value: str) -> str:
    """Zero-pad extractor times such as "8:00" to "08:00"; other strings pass through"""
    match = _LOOSE_SLOT_RE.match(value or "")
    if not match:
        return value
    return f"{int(match.group(1)):02d}:{match.group(2)}"


class ExtractedMedication(BaseModel):
    """One medication as read off a prescription"""
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    dosage: str = ""
    dosage_unit: str = Field(default="", alias="dosageUnit")
    frequency: str = ""
    times: List[str] = Field(default_factory=list)
    instructions: Optional[str] = None
    confidence: Literal["high", "medium", "low"] = "low"

    @field_validator("times", mode="before")
    @classmethod
    def _normalize_times(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [normalize_slot(v) if isinstance(v, str) else v for v in value]
        return value

    def is_complete(self) -> bool:
        """Name, dosage, frequency and at least one time are present"""
        return bool(
            self.name.strip()
            and self.dosage.strip()
            and self.frequency.strip()
            and self.times
        )

    def full_dosage(self) -> str:
        dosage = self.dosage.strip()
        unit = self.dosage_unit.strip()
        if unit and not dosage.lower().endswith(unit.lower()):
            return f"{dosage}{unit}"
        return dosage

    def to_medication_fields(self) -> Dict[str, Any]:
        """
        Fold into Medication column values.

        Raises:
            ValidationError: when required fields are missing or a time is malformed
        """
        if not self.is_complete():
            raise ValidationError(
                f"Extracted medication {self.name!r} is missing name, dosage, frequency or times",
                field="medication",
                value=self.name
            )
        return {
            "name": self.name.strip(),
            "dosage": self.full_dosage(),
            "frequency": self.frequency.strip(),
            "times": validate_slots(self.times),
            "notes": self.instructions,
        }


class PrescriptionData(BaseModel):
    """Full extractor response"""
    model_config = ConfigDict(populate_by_name=True)

    medications: List[ExtractedMedication] = Field(default_factory=list)
    doctor_name: Optional[str] = Field(default=None, alias="doctorName")
    date: Optional[str] = None
    pharmacy_name: Optional[str] = Field(default=None, alias="pharmacyName")
