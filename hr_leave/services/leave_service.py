"""
Leave request lifecycle.

    PENDING --approve--> APPROVED --cancel (before start)--> CANCELLED
    PENDING --reject---> REJECTED
    PENDING --cancel---> CANCELLED

REJECTED and CANCELLED are terminal. Balance is only *checked* when applying;
days are deducted one at a time by the attendance generator as they occur,
so cancelling an approved leave before it starts costs nothing.
"""
from contextlib import ExitStack, contextmanager
from datetime import date
from typing import Iterator, List, Optional, Union

from hr_leave.core.exceptions import (
    AlreadyStartedError,
    AppException,
    InsufficientBalanceError,
    InvalidDateRangeError,
    InvalidStateError,
    NotFoundError,
    OverlappingLeaveError,
    UnauthorizedError,
)
from hr_leave.core.locks import employee_leave_locks, leave_request_locks
from hr_leave.models.leave_balance import LeaveBalance
from hr_leave.models.leave_request import LeaveRequest, LeaveStatus, LeaveType, count_leave_days
from hr_leave.services.balance_ledger import BalanceLedger
from hr_leave.services.base import BaseService
from hr_leave.services.directory import EmployeeDirectory, IdentityResolver
from hr_leave.services.overlap import OverlapDetector


def parse_leave_type(value: Union[LeaveType, str]) -> LeaveType:
    try:
        return LeaveType(value)
    except ValueError:
        raise AppException(
            message=f"Unknown leave type: {value}",
            status_code=400,
            error_code="INVALID_LEAVE_TYPE",
        )


class LeaveService(BaseService):

    def __init__(self, db, clock=None):
        super().__init__(db, clock)
        self.ledger = BalanceLedger(db, self.clock)
        self.overlap = OverlapDetector(db, self.clock)
        self.directory = EmployeeDirectory(db, self.clock)
        self.identity = IdentityResolver(db, self.clock)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def apply(
        self,
        employee_id: int,
        leave_type: Union[LeaveType, str],
        start_date: Optional[date],
        end_date: Optional[date],
        reason: Optional[str] = None,
        year: Optional[int] = None,
    ) -> LeaveRequest:
        """Submit a new request. Nothing is persisted when any check fails."""
        self._logger.info(f"Employee {employee_id} applying for {leave_type} leave from {start_date} to {end_date}")

        self.directory.get(employee_id)
        self._validate_dates(start_date, end_date)
        leave_type = parse_leave_type(leave_type)

        if self.overlap.has_overlap(employee_id, start_date, end_date):
            raise OverlappingLeaveError()

        total_days = count_leave_days(start_date, end_date)
        year = year or self.clock.today().year

        if leave_type.is_bounded:
            balance = self.ledger.get_balance(employee_id, leave_type, year)
            if not self.ledger.has_sufficient(balance, total_days):
                raise InsufficientBalanceError(leave_type.value, total_days, balance.remaining)

        leave = LeaveRequest(
            employee_id=employee_id,
            leave_type=leave_type.value,
            start_date=start_date,
            end_date=end_date,
            total_days=total_days,
            reason=reason,
            status=LeaveStatus.PENDING.value,
            applied_at=self.clock.now(),
        )
        self.db.add(leave)
        self.commit()
        self.db.refresh(leave)
        self._logger.info(f"Leave request created with ID: {leave.id}")
        return leave

    def approve(self, request_id: int, approver_id: int) -> LeaveRequest:
        self._logger.info(f"User {approver_id} approving leave request {request_id}")

        # Overlap check and transition form one unit per employee
        with self._locked_request(request_id, lock_employee=True) as leave:
            if leave.status != LeaveStatus.PENDING.value:
                raise InvalidStateError("Only pending leave requests can be approved")

            approver = self.identity.resolve_user(approver_id)

            if self.overlap.has_overlap(leave.employee_id, leave.start_date, leave.end_date,
                                        exclude_request_id=leave.id):
                raise OverlappingLeaveError("This leave overlaps with another approved leave")

            leave.status = LeaveStatus.APPROVED.value
            leave.reviewed_by = approver.id
            leave.reviewed_at = self.clock.now()

        self.db.refresh(leave)
        self._logger.info(f"Leave request {request_id} approved by user {approver_id}")
        return leave

    def reject(self, request_id: int, approver_id: int, reason: Optional[str] = None) -> LeaveRequest:
        self._logger.info(f"User {approver_id} rejecting leave request {request_id}")

        with self._locked_request(request_id) as leave:
            if leave.status != LeaveStatus.PENDING.value:
                raise InvalidStateError("Only pending leave requests can be rejected")

            approver = self.identity.resolve_user(approver_id)

            leave.status = LeaveStatus.REJECTED.value
            leave.reviewed_by = approver.id
            leave.reviewed_at = self.clock.now()
            leave.rejection_reason = reason

        self.db.refresh(leave)
        self._logger.info(f"Leave request {request_id} rejected by user {approver_id}")
        return leave

    def cancel(self, request_id: int, employee_id: int) -> LeaveRequest:
        """Employee withdraws a pending or approved request that has not started yet."""
        self._logger.info(f"Employee {employee_id} cancelling leave request {request_id}")

        with self._locked_request(request_id) as leave:
            if leave.employee_id != employee_id:
                raise UnauthorizedError("You can only cancel your own leave requests")

            if LeaveStatus(leave.status).is_terminal:
                raise InvalidStateError(f"Leave request is already {leave.status.lower()}")

            if self.clock.today() >= leave.start_date:
                raise AlreadyStartedError()

            leave.status = LeaveStatus.CANCELLED.value

        self.db.refresh(leave)
        self._logger.info(f"Leave request {request_id} cancelled by employee {employee_id}")
        return leave

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_request(self, request_id: int) -> LeaveRequest:
        leave = self.db.get(LeaveRequest, request_id)
        if not leave:
            raise NotFoundError("LeaveRequest", "id", request_id)
        return leave

    def list_for_employee(self, employee_id: int) -> List[LeaveRequest]:
        return (
            self.db.query(LeaveRequest)
            .filter(LeaveRequest.employee_id == employee_id)
            .order_by(LeaveRequest.applied_at.desc(), LeaveRequest.id.desc())
            .all()
        )

    def list_pending(self) -> List[LeaveRequest]:
        return (
            self.db.query(LeaveRequest)
            .filter(LeaveRequest.status == LeaveStatus.PENDING.value)
            .order_by(LeaveRequest.applied_at.asc(), LeaveRequest.id.asc())
            .all()
        )

    def list_all(self, status: Optional[LeaveStatus] = None) -> List[LeaveRequest]:
        query = self.db.query(LeaveRequest)
        if status:
            query = query.filter(LeaveRequest.status == LeaveStatus(status).value)
        return query.order_by(LeaveRequest.id).all()

    def approved_covering(self, employee_id: int, day: date) -> List[LeaveRequest]:
        """Approved requests whose range contains `day`, lowest id first."""
        return (
            self.db.query(LeaveRequest)
            .filter(
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.status == LeaveStatus.APPROVED.value,
                LeaveRequest.start_date <= day,
                LeaveRequest.end_date >= day,
            )
            .order_by(LeaveRequest.id)
            .all()
        )

    def get_balances(self, employee_id: int, year: Optional[int] = None) -> List[LeaveBalance]:
        return self.ledger.get_balances(employee_id, year or self.clock.today().year)

    def get_balance(self, employee_id: int, leave_type: Union[LeaveType, str], year: Optional[int] = None) -> LeaveBalance:
        return self.ledger.get_balance(employee_id, parse_leave_type(leave_type), year or self.clock.today().year)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _validate_dates(self, start_date: Optional[date], end_date: Optional[date]) -> None:
        if start_date is None or end_date is None:
            raise InvalidDateRangeError("Start date and end date are required")
        if start_date < self.clock.today():
            raise InvalidDateRangeError("Start date cannot be in the past")
        if end_date < start_date:
            raise InvalidDateRangeError("End date cannot be before start date")

    @contextmanager
    def _locked_request(self, request_id: int, lock_employee: bool = False) -> Iterator[LeaveRequest]:
        """
        Hold the request lock (and optionally the employee lock), hand out a
        freshly read row, then commit. Any exception rolls the transaction back.
        """
        employee_id = self.get_request(request_id).employee_id
        with ExitStack() as stack:
            if lock_employee:
                stack.enter_context(employee_leave_locks.hold(employee_id))
            stack.enter_context(leave_request_locks.hold(request_id))
            try:
                leave = (
                    self.db.query(LeaveRequest)
                    .filter(LeaveRequest.id == request_id)
                    .with_for_update()
                    .populate_existing()
                    .one()
                )
                yield leave
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
