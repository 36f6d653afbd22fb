"""
Configuration management for DoseRhythm
"""

from typing import Optional
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "DoseRhythm"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENV: str = "development"

    # API
    API_PREFIX: str = "/api/v1"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite:///./doserhythm.db"
    DATABASE_ECHO: bool = False

    # Calendar days and slot wall-clock times are resolved in this zone
    TIMEZONE: str = "UTC"

    # Background pattern analysis
    PATTERN_RECOMPUTE_ON_STARTUP: bool = True
    PATTERN_RECOMPUTE_INTERVAL_HOURS: float = 24.0

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:8081"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


class AdherenceConfig:
    """Tuning constants for the adherence and adaptive reminder engines"""

    # Dose ledger
    SLOT_MATCH_TOLERANCE_SECONDS: int = 300
    MISSED_GRACE_SECONDS: int = 1800

    # Summary engine
    STREAK_LOOKBACK_DAYS: int = 90
    STREAK_SUCCESS_RATIO: float = 0.8
    TREND_THRESHOLD_PERCENT: int = 5
    DEFAULT_WINDOW_DAYS: int = 30

    # Pattern analyzer
    ANALYSIS_WINDOW_DAYS: int = 21
    MIN_PATTERN_SAMPLES: int = 5
    ON_TIME_TOLERANCE_SECONDS: int = 600

    # Recommendation engine
    GOOD_MISS_RATE: float = 0.15
    GOOD_SNOOZE_RATE: float = 0.3
    DELAY_THRESHOLD_MINUTES: int = 10
    MIN_SHIFT_MINUTES: int = 10
    MAX_SHIFT_MINUTES: int = 60

    # Reminder scheduler
    PREALERT_MISS_RATE: float = 0.3
    PREALERT_SNOOZE_RATE: float = 0.5
    PREALERT_LEAD_MINUTES: int = 15
    DEFAULT_SNOOZE_MINUTES: int = 10

    # Caregiver escalation
    DEFAULT_CAREGIVER_MISS_THRESHOLD: int = 3


class SettingKeys:
    """Keys of the user settings store"""
    ADAPTIVE_ENABLED = "adaptive_enabled"
    PREALERTS_ENABLED = "prealerts_enabled"
    CAREGIVER_ENABLED = "caregiver_enabled"
    CAREGIVER_MISS_THRESHOLD = "caregiver_miss_threshold"
    CAREGIVER_NAME = "caregiver_name"
    CAREGIVER_PHONE = "caregiver_phone"


SETTING_DEFAULTS: dict[str, str] = {
    SettingKeys.ADAPTIVE_ENABLED: "true",
    SettingKeys.PREALERTS_ENABLED: "true",
    SettingKeys.CAREGIVER_ENABLED: "false",
    SettingKeys.CAREGIVER_MISS_THRESHOLD: str(AdherenceConfig.DEFAULT_CAREGIVER_MISS_THRESHOLD),
    SettingKeys.CAREGIVER_NAME: "",
    SettingKeys.CAREGIVER_PHONE: "",
}


# Database table names
class TableNames:
    MEDICATIONS = "medications"
    DOSES = "doses"
    REMINDER_PATTERNS = "reminder_patterns"
    SCHEDULE_ADJUSTMENTS = "schedule_adjustments"
    USER_SETTINGS = "user_settings"
    PRESCRIPTION_IMPORTS = "prescription_imports"


settings = get_settings()
adherence_config = AdherenceConfig()
