"""
API Schemas
Request and response models for the DoseRhythm API
"""
