from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hr_leave.core.clock import Clock, get_clock
from hr_leave.database import get_db
from hr_leave.models.employee import Employee
from hr_leave.routers.auth_deps import get_current_employee
from hr_leave.schemas.attendance import AttendanceResponse, AttendanceSummaryResponse
from hr_leave.services.attendance_service import AttendanceGenerator

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.get("/my", response_model=List[AttendanceResponse])
def my_attendance(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    employee: Employee = Depends(get_current_employee),
):
    return AttendanceGenerator(db, clock).list_for_employee(employee.id, start_date, end_date)


@router.get("/my/summary", response_model=AttendanceSummaryResponse)
def my_attendance_summary(
    start_date: date,
    end_date: date,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    employee: Employee = Depends(get_current_employee),
):
    summary = AttendanceGenerator(db, clock).summary(employee.id, start_date, end_date)
    return AttendanceSummaryResponse(
        employee_id=employee.id,
        start_date=start_date,
        end_date=end_date,
        present_days=summary.present_days,
        leave_days=summary.leave_days,
        total_days=summary.total_days,
    )
