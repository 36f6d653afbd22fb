"""
Services Module
Business logic layer for the DoseRhythm application
"""

from services.settings_service import SettingsService, settings_service
from services.dose_ledger import DoseLedger, dose_ledger
from services.adherence_service import AdherenceService, adherence_service
from services.medication_service import MedicationService, medication_service
from services.caregiver_service import CaregiverService, caregiver_service


__all__ = [
    # Service classes
    "SettingsService",
    "DoseLedger",
    "AdherenceService",
    "MedicationService",
    "CaregiverService",
    # Singleton instances
    "settings_service",
    "dose_ledger",
    "adherence_service",
    "medication_service",
    "caregiver_service",
]
