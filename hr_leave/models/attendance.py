from sqlalchemy import Column, Integer, String, Date, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from hr_leave.database import Base
import enum


class AttendanceStatus(str, enum.Enum):
    PRESENT = "PRESENT"
    LEAVE = "LEAVE"


class Attendance(Base):
    """One record per employee per calendar day."""
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("employee_id", "attendance_date", name="uq_attendance_employee_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    attendance_date = Column(Date, nullable=False, index=True)
    status = Column(String(10), nullable=False)  # AttendanceStatus value
    leave_request_id = Column(Integer, ForeignKey("leave_requests.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    employee = relationship("Employee", back_populates="attendance_records")
    leave_request = relationship("LeaveRequest")

    @property
    def employee_name(self):
        return self.employee.name if self.employee else None

    @property
    def employee_code(self):
        return self.employee.employee_code if self.employee else None
