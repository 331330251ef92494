"""
Failure taxonomy for the allocation engine

Every expected failure is an EngineError subclass carrying a stable ``code``
that transport layers map to their own status codes. Only StorageError
signals that the store itself failed.
"""

from typing import Any, Dict, Optional

from models.entities import AvailabilityReason


class EngineError(Exception):
    """Base class for all engine failures"""

    code = "ENGINE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def details(self) -> Dict[str, Any]:
        """Extra fields a caller needs to render an accurate message"""
        return {}


class NotFound(EngineError):
    """Referenced checkout, timer or allocation does not exist"""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity.capitalize()} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class NotAvailable(EngineError):
    """The timer's window (or a force override) disallows the action"""

    code = "NOT_AVAILABLE"

    def __init__(self, reason: Optional[AvailabilityReason], code: Optional[str] = None):
        if reason == AvailabilityReason.BEFORE_START:
            message = "Timer is not yet available for today"
        else:
            message = "Timer has expired for today"
        super().__init__(message)
        self.reason = reason
        if code is not None:
            self.code = code

    @classmethod
    def for_start(cls, reason: Optional[AvailabilityReason]) -> "NotAvailable":
        """Start reports which boundary was missed in the code itself"""
        if reason == AvailabilityReason.BEFORE_START:
            return cls(reason, code="NOT_YET_AVAILABLE")
        return cls(reason, code="EXPIRED")

    def details(self) -> Dict[str, Any]:
        return {"reason": self.reason.value if self.reason else None}


class InsufficientBudget(EngineError):
    """Requested reservation exceeds the allocation's free budget"""

    code = "INSUFFICIENT_BUDGET"

    def __init__(self, remaining_seconds: int):
        super().__init__(f"Not enough time remaining: {remaining_seconds}")
        self.remaining_seconds = remaining_seconds

    def details(self) -> Dict[str, Any]:
        return {"remaining_seconds": self.remaining_seconds}


class InvalidTransition(EngineError):
    """State machine guard rejected the call"""

    ALREADY_RUNNING = "ALREADY_RUNNING"
    NOT_RUNNING = "NOT_RUNNING"
    ALREADY_FINISHED = "ALREADY_FINISHED"

    _MESSAGES = {
        ALREADY_RUNNING: "Timer is already running",
        NOT_RUNNING: "Timer is not running",
        ALREADY_FINISHED: "Checkout is already finished",
    }

    def __init__(self, kind: str):
        super().__init__(self._MESSAGES.get(kind, kind))
        self.kind = kind
        self.code = kind


class ValidationError(EngineError):
    """Malformed input, rejected before any transaction starts"""

    code = "VALIDATION_ERROR"


class StorageError(EngineError):
    """The underlying transaction failed; nothing was committed"""

    code = "STORAGE_ERROR"
