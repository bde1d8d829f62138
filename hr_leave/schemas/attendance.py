from pydantic import BaseModel, ConfigDict
from datetime import date, datetime
from typing import List, Optional

from hr_leave.models.attendance import AttendanceStatus


class AttendanceResponse(BaseModel):
    id: int
    employee_id: int
    employee_name: Optional[str] = None
    employee_code: Optional[str] = None
    attendance_date: date
    status: AttendanceStatus
    leave_request_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AttendanceSummaryResponse(BaseModel):
    employee_id: int
    start_date: date
    end_date: date
    present_days: int
    leave_days: int
    total_days: int


class GenerationReportResponse(BaseModel):
    target_date: date
    present: int
    on_leave: int
    skipped: int
    failed: int
    failed_employee_ids: List[int] = []

    @classmethod
    def from_report(cls, report) -> "GenerationReportResponse":
        return cls(
            target_date=report.target_date,
            present=report.present,
            on_leave=report.on_leave,
            skipped=report.skipped,
            failed=report.failed,
            failed_employee_ids=list(report.failed_employee_ids),
        )


class BackfillRequest(BaseModel):
    start_date: date
    end_date: Optional[date] = None
