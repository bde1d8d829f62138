"""
Balance ledger: per-employee, per-leave-type, per-year day counters.

Rules:
- `remaining == max(0, total - used)` for bounded types after every mutation.
- LOP is unbounded: `used` grows for reporting, `remaining` is never touched.
- Mutations are single UPDATE statements so concurrent deductions cannot
  lose an increment, and they are serialized in-process per balance key.
- The ledger never commits; the caller owns the transaction.
"""
from typing import Dict, List, Optional, Union

from sqlalchemy import case

from hr_leave.core.config import settings
from hr_leave.core.exceptions import NotFoundError
from hr_leave.core.locks import balance_locks
from hr_leave.models.leave_balance import LeaveBalance
from hr_leave.models.leave_request import LeaveType
from hr_leave.services.base import BaseService


def default_allocations() -> Dict[LeaveType, int]:
    return {
        LeaveType.CL: settings.leave.default_cl_days,
        LeaveType.SL: settings.leave.default_sl_days,
        LeaveType.LOP: settings.leave.lop_sentinel_days,
    }


def _floor_zero(expr):
    return case((expr < 0, 0), else_=expr)


class BalanceLedger(BaseService):

    def _key_query(self, employee_id: int, leave_type: LeaveType, year: int):
        return self.db.query(LeaveBalance).filter(
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.leave_type == leave_type.value,
            LeaveBalance.year == year,
        )

    def find_balance(self, employee_id: int, leave_type: Union[LeaveType, str], year: int) -> Optional[LeaveBalance]:
        leave_type = LeaveType(leave_type)
        return self._key_query(employee_id, leave_type, year).populate_existing().first()

    def get_balance(self, employee_id: int, leave_type: Union[LeaveType, str], year: int) -> LeaveBalance:
        leave_type = LeaveType(leave_type)
        balance = self.find_balance(employee_id, leave_type, year)
        if not balance:
            raise NotFoundError(
                "LeaveBalance", "leave_type", f"{leave_type.value}/{year}",
                message=f"Leave balance not found for {leave_type.value} in {year}",
            )
        return balance

    def get_balances(self, employee_id: int, year: int) -> List[LeaveBalance]:
        return (
            self.db.query(LeaveBalance)
            .filter(LeaveBalance.employee_id == employee_id, LeaveBalance.year == year)
            .order_by(LeaveBalance.leave_type)
            .all()
        )

    @staticmethod
    def has_sufficient(balance: LeaveBalance, requested_days: int) -> bool:
        return balance.remaining >= requested_days

    def initialize(self, employee_id: int, year: int) -> List[LeaveBalance]:
        """
        Create the default balance rows for one employee and year.
        Existing rows are left untouched, so this is safe to re-run on year rollover.
        """
        for leave_type, allocation in default_allocations().items():
            if self._key_query(employee_id, leave_type, year).first():
                continue
            self.db.add(LeaveBalance(
                employee_id=employee_id,
                leave_type=leave_type.value,
                year=year,
                total=allocation,
                used=0,
                remaining=allocation,
            ))
            self._logger.info(f"Initialized {leave_type.value} balance of {allocation} day(s) for employee {employee_id} in {year}")
        self.db.flush()
        return self.get_balances(employee_id, year)

    def deduct(self, employee_id: int, leave_type: Union[LeaveType, str], days: int, year: int) -> Optional[LeaveBalance]:
        """
        Record `days` of leave as used. Returns the refreshed balance, or None
        when the employee has no balance row for that type and year.
        """
        leave_type = LeaveType(leave_type)
        new_used = LeaveBalance.used + days
        values = {LeaveBalance.used: new_used}
        if leave_type.is_bounded:
            values[LeaveBalance.remaining] = _floor_zero(LeaveBalance.total - new_used)
        return self._apply(employee_id, leave_type, year, values, f"Deducted {days}", days)

    def restore(self, employee_id: int, leave_type: Union[LeaveType, str], days: int, year: int) -> Optional[LeaveBalance]:
        """Inverse of deduct; `used` never drops below zero."""
        leave_type = LeaveType(leave_type)
        new_used = _floor_zero(LeaveBalance.used - days)
        values = {LeaveBalance.used: new_used}
        if leave_type.is_bounded:
            values[LeaveBalance.remaining] = _floor_zero(LeaveBalance.total - new_used)
        return self._apply(employee_id, leave_type, year, values, f"Restored {days}", days)

    def _apply(self, employee_id, leave_type, year, values, action, days) -> Optional[LeaveBalance]:
        if days < 0:
            raise ValueError("days must be non-negative")
        with balance_locks.hold((employee_id, leave_type.value, year)):
            updated = self._key_query(employee_id, leave_type, year).update(values, synchronize_session=False)
            if not updated:
                self.log_warning(
                    f"No {leave_type.value} balance for employee {employee_id} in {year}; nothing to update"
                )
                return None
            self.db.flush()
            balance = self.find_balance(employee_id, leave_type, year)
        self._logger.info(f"{action} {leave_type.value} day(s) for employee {employee_id} ({year})")
        self._check_invariant(balance)
        return balance

    def _check_invariant(self, balance: LeaveBalance) -> bool:
        if not LeaveType(balance.leave_type).is_bounded:
            return True
        expected = max(0, balance.total - balance.used)
        if balance.remaining != expected:
            self._logger.error(
                f"Balance invariant violated for employee {balance.employee_id} {balance.leave_type}/{balance.year}: "
                f"total={balance.total} used={balance.used} remaining={balance.remaining}"
            )
            return False
        return True
