"""
Test Tools Package
Tests for the tools module (time slots, notification scheduler, prescription schema)
"""

__all__ = [
    "test_time_slots",
    "test_notification_service",
    "test_prescription_schema",
]
