from sqlalchemy import Column, Integer, String, Date, ForeignKey, DateTime, Text, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from hr_leave.database import Base
import enum


class LeaveStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (LeaveStatus.REJECTED, LeaveStatus.CANCELLED)


class LeaveType(str, enum.Enum):
    CL = "CL"    # Casual leave
    SL = "SL"    # Sick leave
    LOP = "LOP"  # Loss of pay

    @property
    def is_bounded(self) -> bool:
        """LOP usage is tracked for reporting but never limited."""
        return self is not LeaveType.LOP


def count_leave_days(start_date, end_date) -> int:
    """Inclusive number of calendar days in [start_date, end_date]."""
    return (end_date - start_date).days + 1


class LeaveRequest(Base):
    __tablename__ = "leave_requests"
    __table_args__ = (
        Index("idx_leave_employee_status", "employee_id", "status"),
        Index("idx_leave_dates", "start_date", "end_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_type = Column(String(10), nullable=False)  # LeaveType value
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    total_days = Column(Integer, nullable=False)
    reason = Column(Text, nullable=True)
    status = Column(String(15), default=LeaveStatus.PENDING.value, nullable=False, index=True)
    applied_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Review
    reviewed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(String, nullable=True)

    employee = relationship("Employee", back_populates="leave_requests")
    reviewer = relationship("User", foreign_keys=[reviewed_by])

    @property
    def employee_name(self):
        return self.employee.name if self.employee else None

    @property
    def employee_code(self):
        return self.employee.employee_code if self.employee else None

    @property
    def reviewed_by_name(self):
        if self.reviewer is None:
            return None
        return self.reviewer.full_name or self.reviewer.email

    def __repr__(self):
        return f"<LeaveRequest {self.id} {self.leave_type} {self.start_date}..{self.end_date} {self.status}>"
