"""
DoseRhythm Test Suite
=====================

This package contains all tests for the DoseRhythm adaptive reminder backend.

Test Structure:
- test_services/: Dose ledger, adherence, settings, medication and caregiver services
- test_actions/: Pattern analysis, recommendations, reminders and schedule changes
- test_tools/: Time slot helpers, notification scheduler and prescription schema
- test_api/: API endpoint tests for FastAPI routes
- conftest.py: Shared pytest fixtures
- factories.py: Pinned time constants and data builders

Running Tests:
    # Run all tests
    pytest

    # Run specific test module
    pytest tests/test_actions/

    # Run only marked tests
    pytest -m "unit"
    pytest -m "integration"
"""

# Test configuration
TEST_DATABASE_URL = "sqlite:///:memory:"

# Common test data
SAMPLE_MEDICATIONS = [
    {"name": "Metformin", "dosage": "500mg", "frequency": "2x daily", "times": ["08:00", "20:00"]},
    {"name": "Lisinopril", "dosage": "10mg", "frequency": "once daily", "times": ["09:00"]},
    {"name": "Atorvastatin", "dosage": "20mg", "frequency": "once daily", "times": ["21:30"]},
]

__all__ = [
    "TEST_DATABASE_URL",
    "SAMPLE_MEDICATIONS",
]
