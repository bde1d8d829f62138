from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hr_leave.core.clock import Clock, get_clock
from hr_leave.core.exceptions import UnauthorizedError
from hr_leave.database import get_db
from hr_leave.models.employee import Employee
from hr_leave.models.leave_request import LeaveType
from hr_leave.routers.auth_deps import get_current_employee
from hr_leave.schemas.leave import LeaveApplyRequest, LeaveBalanceResponse, LeaveRequestResponse
from hr_leave.services.leave_service import LeaveService

router = APIRouter(prefix="/leave", tags=["leave"])


@router.post("/apply", response_model=LeaveRequestResponse, status_code=201)
def apply_leave(
    request: LeaveApplyRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    employee: Employee = Depends(get_current_employee),
):
    return LeaveService(db, clock).apply(
        employee.id, request.leave_type, request.start_date, request.end_date, request.reason
    )


@router.get("/my", response_model=List[LeaveRequestResponse])
def my_leaves(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    employee: Employee = Depends(get_current_employee),
):
    return LeaveService(db, clock).list_for_employee(employee.id)


@router.get("/balance", response_model=List[LeaveBalanceResponse])
def my_balances(
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    employee: Employee = Depends(get_current_employee),
):
    return LeaveService(db, clock).get_balances(employee.id, year)


@router.get("/balance/{leave_type}", response_model=LeaveBalanceResponse)
def my_balance(
    leave_type: LeaveType,
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    employee: Employee = Depends(get_current_employee),
):
    return LeaveService(db, clock).get_balance(employee.id, leave_type, year)


@router.get("/{request_id}", response_model=LeaveRequestResponse)
def get_my_leave(
    request_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    employee: Employee = Depends(get_current_employee),
):
    leave = LeaveService(db, clock).get_request(request_id)
    if leave.employee_id != employee.id:
        raise UnauthorizedError("You can only view your own leave requests")
    return leave


@router.post("/{request_id}/cancel", response_model=LeaveRequestResponse)
def cancel_leave(
    request_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    employee: Employee = Depends(get_current_employee),
):
    return LeaveService(db, clock).cancel(request_id, employee.id)
