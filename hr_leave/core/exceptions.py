from datetime import date
from typing import Any, Dict, Optional


class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class AuthenticationError(AppException):
    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED"
        )


class AccessDeniedError(AppException):
    """Custom permission error. Named AccessDeniedError to avoid shadowing Python's built-in PermissionError."""
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(
            message=message,
            status_code=403,
            error_code="PERMISSION_DENIED"
        )


# ---------------------------------------------------------------------------
# Leave lifecycle
# ---------------------------------------------------------------------------

class NotFoundError(AppException):
    def __init__(self, resource: str, field: str = "id", value: Any = None, message: Optional[str] = None):
        super().__init__(
            message=message or f"{resource} not found with {field}: {value}",
            status_code=404,
            error_code="NOT_FOUND",
            details={"resource": resource, "field": field, "value": str(value)}
        )


class InvalidDateRangeError(AppException):
    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=400,
            error_code="INVALID_DATE_RANGE"
        )


class OverlappingLeaveError(AppException):
    def __init__(self, message: str = "Leave request overlaps with another approved leave"):
        super().__init__(
            message=message,
            status_code=409,
            error_code="OVERLAPPING_LEAVE"
        )


class InsufficientBalanceError(AppException):
    def __init__(self, leave_type: str, requested: int, available: int):
        self.leave_type = leave_type
        self.requested = requested
        self.available = available
        super().__init__(
            message=f"Insufficient {leave_type} balance. Requested: {requested}, Available: {available}",
            status_code=400,
            error_code="INSUFFICIENT_BALANCE",
            details={"leave_type": leave_type, "requested": requested, "available": available}
        )


class InvalidStateError(AppException):
    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=409,
            error_code="INVALID_STATE"
        )


class UnauthorizedError(AppException):
    """Ownership violation, e.g. cancelling someone else's leave."""
    def __init__(self, message: str = "You can only modify your own leave requests"):
        super().__init__(
            message=message,
            status_code=403,
            error_code="UNAUTHORIZED"
        )


class AlreadyStartedError(AppException):
    def __init__(self, message: str = "Cannot cancel leave that has already started or starts today"):
        super().__init__(
            message=message,
            status_code=400,
            error_code="ALREADY_STARTED"
        )


# ---------------------------------------------------------------------------
# Attendance batch job
# ---------------------------------------------------------------------------

class PerEmployeeProcessingError(AppException):
    """Non-fatal: one employee could not be processed during a generator run."""
    def __init__(self, employee_id: int, day: date, cause: Exception):
        self.employee_id = employee_id
        self.day = day
        self.cause = cause
        super().__init__(
            message=f"Attendance generation failed for employee {employee_id} on {day}: {cause}",
            status_code=500,
            error_code="ATTENDANCE_EMPLOYEE_FAILED",
            details={"employee_id": employee_id, "day": day.isoformat()}
        )


class DirectoryUnavailableError(AppException):
    """Fatal: the list of active employees could not be read."""
    def __init__(self, message: str = "Employee directory is unavailable"):
        super().__init__(
            message=message,
            status_code=503,
            error_code="DIRECTORY_UNAVAILABLE"
        )
