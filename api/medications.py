"""
Medications API Router
Endpoints for medication management
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from api.deps import get_db, services
from api.schemas.medication import (
    MedicationCreate,
    MedicationUpdate,
    MedicationResponse,
    MedicationList,
    PrescriptionImportRequest,
    PrescriptionImportResponse,
)
from tools.prescription_schema import PrescriptionData


router = APIRouter(prefix="/medications", tags=["medications"])


@router.post("/", response_model=MedicationResponse, status_code=status.HTTP_201_CREATED)
async def create_medication(
    medication_data: MedicationCreate,
    db: Session = Depends(get_db)
):
    """
    Add a new medication and schedule its reminders

    - **name**: Medication name
    - **dosage**: Dosage (e.g., "500mg")
    - **frequency**: Frequency description
    - **times**: Daily slots as zero-padded HH:MM
    """
    medication_service = services.get_medication_service()
    return await medication_service.create_medication(medication_data.model_dump(), db=db)


@router.get("/", response_model=MedicationList)
async def list_medications(db: Session = Depends(get_db)):
    """
    Get all medications
    """
    medication_service = services.get_medication_service()
    medications = await medication_service.list_medications(db=db)
    return MedicationList(
        medications=[MedicationResponse.model_validate(m) for m in medications],
        total=len(medications)
    )


@router.post("/import", response_model=PrescriptionImportResponse, status_code=status.HTTP_201_CREATED)
async def import_prescription(
    request: PrescriptionImportRequest,
    db: Session = Depends(get_db)
):
    """
    Create medications from a scanned prescription

    Entries with missing fields or malformed times are skipped.
    """
    medication_service = services.get_medication_service()
    data = PrescriptionData(
        medications=request.medications,
        doctor_name=request.doctor_name,
        date=request.date,
        pharmacy_name=request.pharmacy_name
    )
    result = await medication_service.import_prescription(data, image_ref=request.image_ref, db=db)
    return PrescriptionImportResponse(
        import_id=result["import_id"],
        medications=[MedicationResponse.model_validate(m) for m in result["medications"]],
        skipped=result["skipped"]
    )


@router.get("/{medication_id}", response_model=MedicationResponse)
async def get_medication(
    medication_id: int,
    db: Session = Depends(get_db)
):
    medication_service = services.get_medication_service()
    return await medication_service.get_medication(medication_id, db=db)


@router.patch("/{medication_id}", response_model=MedicationResponse)
async def update_medication(
    medication_id: int,
    update_data: MedicationUpdate,
    db: Session = Depends(get_db)
):
    """
    Update medication details

    Changing **times**, **name**, **dosage**, **notes** or **notification_sound**
    cancels and reschedules the reminders.
    """
    medication_service = services.get_medication_service()
    return await medication_service.update_medication(
        medication_id,
        update_data.model_dump(exclude_unset=True),
        db=db
    )


@router.delete("/{medication_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_medication(
    medication_id: int,
    db: Session = Depends(get_db)
):
    """
    Delete a medication along with its dose history and learned patterns
    """
    medication_service = services.get_medication_service()
    await medication_service.delete_medication(medication_id, db=db)
