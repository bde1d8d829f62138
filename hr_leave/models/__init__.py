# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import user, employee, leave_request, leave_balance, attendance

# Explicit class exports for cleaner imports
from .user import User, UserRole
from .employee import Employee, EmployeeStatus
from .leave_request import LeaveRequest, LeaveStatus, LeaveType
from .leave_balance import LeaveBalance
from .attendance import Attendance, AttendanceStatus

__all__ = [
    "User",
    "UserRole",
    "Employee",
    "EmployeeStatus",
    "LeaveRequest",
    "LeaveStatus",
    "LeaveType",
    "LeaveBalance",
    "Attendance",
    "AttendanceStatus",
]
