"""
API Module
FastAPI routers for the DoseRhythm application
"""

from api.medications import router as medications_router
from api.doses import router as doses_router
from api.adherence import router as adherence_router
from api.patterns import router as patterns_router
from api.patterns import recommendations_router
from api.reminders import router as reminders_router
from api.settings import router as settings_router

from api.deps import (
    get_db,
    pagination_params,
    services,
)


__all__ = [
    # Routers
    "medications_router",
    "doses_router",
    "adherence_router",
    "patterns_router",
    "recommendations_router",
    "reminders_router",
    "settings_router",
    # Dependencies
    "get_db",
    "pagination_params",
    "services",
]


def include_routers(app, prefix: str = "/api/v1"):
    """
    Include all API routers in the FastAPI app

    Usage:
        from api import include_routers
        include_routers(app)
    """
    app.include_router(medications_router, prefix=prefix)
    app.include_router(doses_router, prefix=prefix)
    app.include_router(adherence_router, prefix=prefix)
    app.include_router(patterns_router, prefix=prefix)
    app.include_router(recommendations_router, prefix=prefix)
    app.include_router(reminders_router, prefix=prefix)
    app.include_router(settings_router, prefix=prefix)
