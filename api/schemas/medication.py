"""
Medication Schemas
Pydantic models for medication-related API requests and responses
"""

from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict

from tools.prescription_schema import ExtractedMedication


# ==================== BASE SCHEMAS ====================

class MedicationBase(BaseModel):
    """Base medication schema"""
    name: str = Field(..., min_length=1, max_length=255)
    dosage: str = Field(..., min_length=1, max_length=100)
    frequency: str = Field(..., min_length=1, max_length=100)


# ==================== REQUEST SCHEMAS ====================

class MedicationCreate(MedicationBase):
    """Schema for creating a new medication"""
    times: List[str] = Field(default_factory=list, description="Zero-padded HH:MM slots")
    notes: Optional[str] = None
    color: Optional[str] = Field(None, max_length=20)
    notification_sound: Optional[str] = Field(None, max_length=100)


class MedicationUpdate(BaseModel):
    """Schema for updating medication"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    dosage: Optional[str] = Field(None, min_length=1, max_length=100)
    frequency: Optional[str] = Field(None, min_length=1, max_length=100)
    times: Optional[List[str]] = None
    notes: Optional[str] = None
    color: Optional[str] = Field(None, max_length=20)
    notification_sound: Optional[str] = Field(None, max_length=100)


class PrescriptionImportRequest(BaseModel):
    """Extractor output plus a reference to the scanned image"""
    model_config = ConfigDict(populate_by_name=True)

    medications: List[ExtractedMedication] = Field(default_factory=list)
    doctor_name: Optional[str] = Field(None, alias="doctorName")
    date: Optional[str] = None
    pharmacy_name: Optional[str] = Field(None, alias="pharmacyName")
    image_ref: Optional[str] = Field(None, alias="imageRef")


# ==================== RESPONSE SCHEMAS ====================

class MedicationResponse(MedicationBase):
    """Schema for medication response"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    times: List[str]
    notes: Optional[str] = None
    color: Optional[str] = None
    notification_sound: Optional[str] = None
    notification_ids: List[str] = Field(default_factory=list)
    created_at: Optional[int] = None


class MedicationList(BaseModel):
    """Schema for list of medications"""
    medications: List[MedicationResponse]
    total: int


class PrescriptionImportResponse(BaseModel):
    """Result of importing a prescription"""
    import_id: int
    medications: List[MedicationResponse]
    skipped: List[str]
