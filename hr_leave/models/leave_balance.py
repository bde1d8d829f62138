from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from hr_leave.database import Base


class LeaveBalance(Base):
    __tablename__ = "leave_balances"
    __table_args__ = (
        UniqueConstraint("employee_id", "leave_type", "year", name="uq_leave_balance_employee_type_year"),
        CheckConstraint("total >= 0", name="ck_leave_balance_total_non_negative"),
        CheckConstraint("used >= 0", name="ck_leave_balance_used_non_negative"),
        CheckConstraint("remaining >= 0", name="ck_leave_balance_remaining_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_type = Column(String(10), nullable=False)  # LeaveType value
    year = Column(Integer, nullable=False)
    total = Column(Integer, nullable=False, default=0)
    used = Column(Integer, nullable=False, default=0)
    remaining = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    employee = relationship("Employee", back_populates="leave_balances")

    @property
    def employee_name(self):
        return self.employee.name if self.employee else None

    @property
    def employee_code(self):
        return self.employee.employee_code if self.employee else None

    def __repr__(self):
        return f"<LeaveBalance emp={self.employee_id} {self.leave_type}/{self.year} {self.used}/{self.total}>"
