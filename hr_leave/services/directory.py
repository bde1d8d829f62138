"""
Narrow adapters over employee master data and user identities.

Employee CRUD and authentication live elsewhere; the leave and attendance
services only need to list active employees, check existence and resolve
approvers.
"""
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from hr_leave.core.exceptions import DirectoryUnavailableError, NotFoundError
from hr_leave.models.employee import Employee, EmployeeStatus
from hr_leave.models.user import User
from hr_leave.services.base import BaseService


class EmployeeDirectory(BaseService):

    def list_active(self) -> List[int]:
        """Ids of all ACTIVE employees, ascending."""
        try:
            rows = (
                self.db.query(Employee.id)
                .filter(Employee.status == EmployeeStatus.ACTIVE.value)
                .order_by(Employee.id)
                .all()
            )
        except SQLAlchemyError as e:
            self._logger.error(f"Could not read active employees: {e}", exc_info=True)
            raise DirectoryUnavailableError(f"Employee directory is unavailable: {e}") from e
        return [row.id for row in rows]

    def get(self, employee_id: int) -> Employee:
        employee = self.db.get(Employee, employee_id)
        if not employee:
            raise NotFoundError("Employee", "id", employee_id)
        return employee

    def exists(self, employee_id: int) -> bool:
        return self.db.get(Employee, employee_id) is not None

    def name(self, employee_id: int) -> Optional[str]:
        employee = self.db.get(Employee, employee_id)
        return employee.name if employee else None

    def for_user(self, user_id: int) -> Optional[Employee]:
        return self.db.query(Employee).filter(Employee.user_id == user_id).first()


class IdentityResolver(BaseService):

    def resolve_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User", "id", user_id)
        return user
