"""
Doses API Router
Endpoints for logging and correcting dose outcomes
"""

from typing import Optional
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session

from api.deps import get_db, pagination_params, services
from api.schemas.dose import DoseCreate, DoseUpdate, DoseResponse, DoseList


router = APIRouter(prefix="/doses", tags=["doses"])


@router.post("/", response_model=DoseResponse, status_code=status.HTTP_201_CREATED)
async def log_dose(
    dose_data: DoseCreate,
    db: Session = Depends(get_db)
):
    """
    Log a dose outcome

    - **scheduled_time** must fall within 5 minutes of one of the medication's slots
    - **status**: taken, missed, snoozed or skipped
    """
    ledger = services.get_dose_ledger()
    return await ledger.append(
        db,
        medication_id=dose_data.medication_id,
        scheduled_time=dose_data.scheduled_time,
        status=dose_data.status,
        actual_time=dose_data.actual_time,
        notes=dose_data.notes
    )


@router.patch("/{dose_id}", response_model=DoseResponse)
async def update_dose(
    dose_id: int,
    update_data: DoseUpdate,
    db: Session = Depends(get_db)
):
    ledger = services.get_dose_ledger()
    return await ledger.update(
        db,
        dose_id,
        status=update_data.status,
        actual_time=update_data.actual_time,
        notes=update_data.notes
    )


@router.get("/", response_model=DoseList)
async def list_doses(
    start: Optional[int] = Query(None, description="Epoch seconds, inclusive"),
    end: Optional[int] = Query(None, description="Epoch seconds, inclusive"),
    medication_id: Optional[int] = Query(None),
    pagination: dict = Depends(pagination_params),
    db: Session = Depends(get_db)
):
    """
    Logged doses in a time range, oldest first

    Defaults to the last 7 days.
    """
    ledger = services.get_dose_ledger()
    now = services.get_clock().timestamp()
    end = end if end is not None else now
    start = start if start is not None else end - 7 * 24 * 60 * 60

    doses = await ledger.query(db, start, end, medication_id)
    offset = pagination["offset"]
    page = doses[offset:offset + pagination["page_size"]]
    return DoseList(
        doses=[DoseResponse.model_validate(d) for d in page],
        total=len(doses)
    )
