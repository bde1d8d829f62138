from datetime import date
from typing import Optional

from hr_leave.models.leave_request import LeaveRequest, LeaveStatus
from hr_leave.services.base import BaseService


class OverlapDetector(BaseService):
    """
    Answers whether a date range collides with an employee's approved leave.
    Two inclusive ranges intersect when neither lies entirely before the other.
    """

    def has_overlap(
        self,
        employee_id: int,
        start_date: date,
        end_date: date,
        exclude_request_id: Optional[int] = None,
    ) -> bool:
        query = self.db.query(LeaveRequest.id).filter(
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.status == LeaveStatus.APPROVED.value,
            LeaveRequest.start_date <= end_date,
            LeaveRequest.end_date >= start_date,
        )
        if exclude_request_id is not None:
            query = query.filter(LeaveRequest.id != exclude_request_id)
        return self.db.query(query.exists()).scalar()
