"""
User Model.
A single identity type for employees and approvers; capabilities come from the role tag.
"""
from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from hr_leave.database import Base


class UserRole(str, enum.Enum):
    """
    User roles.

    - HR_ADMIN: Full access, approves leave, triggers attendance generation
    - MANAGER: Approves leave
    - EMPLOYEE: Self-service access
    """
    HR_ADMIN = "HR_ADMIN"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)

    role = Column(Enum(UserRole), default=UserRole.EMPLOYEE, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    employee_profile = relationship("Employee", back_populates="user", uselist=False)

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"
