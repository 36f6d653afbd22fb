"""
Settings Service
Key/value user preferences stored as strings
"""

import logging
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import models
from config import SETTING_DEFAULTS
from exceptions import TransientStoreError


logger = logging.getLogger(__name__)


class SettingsService:
    """
    Service for the user settings store
    """

    async def get(self, db: Session, key: str, default: Optional[str] = None) -> str:
        """Return the stored value, the given default, or the built-in default"""
        try:
            row = db.query(models.UserSetting).filter(
                models.UserSetting.setting_key == key
            ).first()
        except SQLAlchemyError as e:
            raise TransientStoreError(
                f"Failed to read setting {key}", operation="get_setting", cause=e
            )
        if row is not None:
            return row.setting_value
        if default is not None:
            return default
        return SETTING_DEFAULTS.get(key, "")

    async def get_bool(self, db: Session, key: str, default: Optional[bool] = None) -> bool:
        fallback = None if default is None else ("true" if default else "false")
        return (await self.get(db, key, fallback)) == "true"

    async def get_int(self, db: Session, key: str, default: int) -> int:
        value = await self.get(db, key, str(default))
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Setting {key}={value!r} is not an integer; using {default}")
            return default

    async def set(self, db: Session, key: str, value: str) -> models.UserSetting:
        """Insert or replace a setting"""
        try:
            row = db.query(models.UserSetting).filter(
                models.UserSetting.setting_key == key
            ).first()
            if row is None:
                row = models.UserSetting(setting_key=key, setting_value=value)
                db.add(row)
            else:
                row.setting_value = value
            db.commit()
            db.refresh(row)
        except SQLAlchemyError as e:
            db.rollback()
            raise TransientStoreError(
                f"Failed to store setting {key}", operation="set_setting", cause=e
            )

        logger.info(f"Setting {key} updated")
        return row

    async def set_bool(self, db: Session, key: str, value: bool) -> models.UserSetting:
        return await self.set(db, key, "true" if value else "false")

    async def get_all(self, db: Session) -> Dict[str, str]:
        """Built-in defaults overlaid with stored values"""
        values = dict(SETTING_DEFAULTS)
        try:
            rows = db.query(models.UserSetting).all()
        except SQLAlchemyError as e:
            raise TransientStoreError(
                "Failed to read settings", operation="get_all_settings", cause=e
            )
        for row in rows:
            values[row.setting_key] = row.setting_value
        return values


# Singleton instance
settings_service = SettingsService()
