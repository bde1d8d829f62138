from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from hr_leave.core.clock import Clock, get_clock
from hr_leave.core.exceptions import NotFoundError
from hr_leave.core.schemas import ApiResponse
from hr_leave.database import get_db
from hr_leave.models.leave_request import LeaveStatus
from hr_leave.models.user import User
from hr_leave.routers.auth_deps import require_admin, require_approver
from hr_leave.schemas.attendance import (
    AttendanceResponse,
    AttendanceSummaryResponse,
    BackfillRequest,
    GenerationReportResponse,
)
from hr_leave.schemas.leave import LeaveBalanceResponse, LeaveRejectRequest, LeaveRequestResponse
from hr_leave.services.attendance_service import AttendanceGenerator
from hr_leave.services.balance_ledger import BalanceLedger
from hr_leave.services.directory import EmployeeDirectory
from hr_leave.services.leave_service import LeaveService

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_approver())]
)


def _ensure_employee(db: Session, clock: Clock, employee_id: int) -> None:
    if not EmployeeDirectory(db, clock).exists(employee_id):
        raise NotFoundError("Employee", "id", employee_id)


# ==================== LEAVE MANAGEMENT ====================

@router.get("/leaves", response_model=List[LeaveRequestResponse])
def all_leaves(status: Optional[LeaveStatus] = None, db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    return LeaveService(db, clock).list_all(status)


@router.get("/leaves/pending", response_model=List[LeaveRequestResponse])
def pending_leaves(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    return LeaveService(db, clock).list_pending()


@router.get("/leaves/employee/{employee_id}", response_model=List[LeaveRequestResponse])
def employee_leaves(employee_id: int, db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    _ensure_employee(db, clock, employee_id)
    return LeaveService(db, clock).list_for_employee(employee_id)


@router.get("/leaves/{request_id}", response_model=LeaveRequestResponse)
def get_leave(request_id: int, db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    return LeaveService(db, clock).get_request(request_id)


@router.post("/leaves/{request_id}/approve", response_model=LeaveRequestResponse)
def approve_leave(
    request_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(require_approver()),
):
    return LeaveService(db, clock).approve(request_id, current_user.id)


@router.post("/leaves/{request_id}/reject", response_model=LeaveRequestResponse)
def reject_leave(
    request_id: int,
    payload: Optional[LeaveRejectRequest] = Body(default=None),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(require_approver()),
):
    reason = payload.rejection_reason if payload else None
    return LeaveService(db, clock).reject(request_id, current_user.id, reason)


# ==================== ATTENDANCE MANAGEMENT ====================

@router.get("/attendance", response_model=List[AttendanceResponse])
def attendance_by_date(day: Optional[date] = None, db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    return AttendanceGenerator(db, clock).list_for_date(day or clock.today())


@router.get("/attendance/employee/{employee_id}", response_model=List[AttendanceResponse])
def employee_attendance(
    employee_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    _ensure_employee(db, clock, employee_id)
    return AttendanceGenerator(db, clock).list_for_employee(employee_id, start_date, end_date)


@router.get("/attendance/employee/{employee_id}/summary", response_model=AttendanceSummaryResponse)
def employee_attendance_summary(
    employee_id: int,
    start_date: date,
    end_date: date,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    summary = AttendanceGenerator(db, clock).summary(employee_id, start_date, end_date)
    return AttendanceSummaryResponse(
        employee_id=employee_id,
        start_date=start_date,
        end_date=end_date,
        present_days=summary.present_days,
        leave_days=summary.leave_days,
        total_days=summary.total_days,
    )


@router.post(
    "/attendance/generate",
    response_model=ApiResponse[GenerationReportResponse],
    dependencies=[Depends(require_admin())],
)
def generate_attendance(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    """Manual trigger; identical to the scheduled run for today."""
    report = AttendanceGenerator(db, clock).run_for_today()
    return ApiResponse.ok(
        GenerationReportResponse.from_report(report),
        message=f"Attendance generated for {report.target_date}",
    )


@router.post(
    "/attendance/backfill",
    response_model=ApiResponse[List[GenerationReportResponse]],
    dependencies=[Depends(require_admin())],
)
def backfill_attendance(payload: BackfillRequest, db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    end_date = payload.end_date or clock.today()
    reports = AttendanceGenerator(db, clock).generate_for_range(payload.start_date, end_date)
    return ApiResponse.ok(
        [GenerationReportResponse.from_report(r) for r in reports],
        message=f"Attendance generated from {payload.start_date} to {end_date}",
    )


# ==================== LEAVE BALANCE MANAGEMENT ====================

@router.get("/leave-balance/employee/{employee_id}", response_model=List[LeaveBalanceResponse])
def employee_balances(
    employee_id: int,
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return LeaveService(db, clock).get_balances(employee_id, year)


@router.post(
    "/leave-balance/employee/{employee_id}/initialize",
    response_model=List[LeaveBalanceResponse],
    dependencies=[Depends(require_admin())],
)
def initialize_balances(
    employee_id: int,
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    _ensure_employee(db, clock, employee_id)
    ledger = BalanceLedger(db, clock)
    balances = ledger.initialize(employee_id, year or clock.today().year)
    ledger.commit()
    return balances
