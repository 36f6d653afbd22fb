"""
Settings API Router
Endpoints for user preferences
"""

from typing import Dict
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.deps import get_db, services
from api.schemas.reminder import SettingValue, SettingResponse


router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/", response_model=Dict[str, str])
async def get_settings(db: Session = Depends(get_db)):
    """
    All settings, built-in defaults included
    """
    settings_service = services.get_settings_service()
    return await settings_service.get_all(db)


@router.get("/{key}", response_model=SettingResponse)
async def get_setting(key: str, db: Session = Depends(get_db)):
    settings_service = services.get_settings_service()
    return SettingResponse(key=key, value=await settings_service.get(db, key))


@router.put("/{key}", response_model=SettingResponse)
async def put_setting(
    key: str,
    body: SettingValue,
    db: Session = Depends(get_db)
):
    settings_service = services.get_settings_service()
    row = await settings_service.set(db, key, body.value)
    return SettingResponse(key=row.setting_key, value=row.setting_value)
