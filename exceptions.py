"""
Exception hierarchy for DoseRhythm
Errors carry structured context and log themselves when raised
"""

from datetime import datetime
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)


class DoseRhythmError(Exception):
    """
    Base exception for all DoseRhythm errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - Structured context
    - Automatic logging

    Example:
        raise DoseRhythmError(
            message="Failed to store dose",
            operation="append_dose",
            context={"medication_id": 3}
        )
    """

    log_level = logging.ERROR

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        request_id: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.request_id = request_id or str(uuid4())
        self.timestamp = datetime.utcnow()

        self._log()

    def _log(self) -> None:
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,
            "request_id": self.request_id,
            "operation": self.operation,
            "error_context": self.context,
        }
        if self.cause:
            log_data["cause"] = str(self.cause)
        logger.log(
            self.log_level,
            f"{self.__class__.__name__}: {self.message}",
            extra=log_data,
            exc_info=self.cause if self.log_level >= logging.ERROR else None
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for API responses"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


class ValidationError(DoseRhythmError):
    """
    Raised when input fails validation

    Examples:
    - Malformed "HH:MM" slot
    - Duplicate slot in a medication schedule
    - Dose whose scheduled time matches no slot
    """

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=message,
            context={"field": field, "value": value},
            **kwargs
        )


class NotFoundError(DoseRhythmError):
    """A referenced medication, dose, or slot is no longer current"""

    log_level = logging.WARNING

    def __init__(self, resource: str, identifier: Any, message: Optional[str] = None, **kwargs):
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            message=message or f"{resource} {identifier} not found",
            context={"resource": resource, "identifier": identifier},
            **kwargs
        )


class TransientStoreError(DoseRhythmError):
    """Persistence query or write failed"""

    def __init__(self, message: str = "Persistent store operation failed", **kwargs):
        super().__init__(message=message, **kwargs)


class NotificationSchedulingError(DoseRhythmError):
    """The notification scheduler rejected a request"""

    def __init__(self, message: str = "Notification scheduling failed", **kwargs):
        super().__init__(message=message, **kwargs)


class AnalysisSkipped(DoseRhythmError):
    """
    Pattern analysis did not run

    Raised when adaptive reminders are disabled or a slot has too few
    samples. Callers treat it as a normal outcome.
    """

    log_level = logging.INFO

    def __init__(self, reason: str, **kwargs):
        self.reason = reason
        super().__init__(message=reason, **kwargs)
