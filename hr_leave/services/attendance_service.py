"""
Daily attendance generation.

Each run materializes exactly one Attendance row per active employee for the
target day: LEAVE when an approved request covers the day (and one day is
deducted from the ledger), PRESENT otherwise. Every employee is committed as
an independent unit, so a failure for one employee is logged and skipped and
re-running the job for the same day only fills the gaps.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hr_leave.core.config import settings
from hr_leave.core.exceptions import InvalidDateRangeError, PerEmployeeProcessingError
from hr_leave.core.locks import attendance_locks
from hr_leave.models.attendance import Attendance, AttendanceStatus
from hr_leave.models.leave_request import LeaveRequest
from hr_leave.services.base import BaseService
from hr_leave.services.directory import EmployeeDirectory
from hr_leave.services.leave_service import LeaveService

logger = logging.getLogger(__name__)

_SKIPPED = "SKIPPED"


@dataclass
class GenerationReport:
    target_date: date
    present: int = 0
    on_leave: int = 0
    skipped: int = 0
    failed_employee_ids: List[int] = field(default_factory=list)

    @property
    def created(self) -> int:
        return self.present + self.on_leave

    @property
    def failed(self) -> int:
        return len(self.failed_employee_ids)

    def record(self, outcome: str) -> None:
        if outcome == AttendanceStatus.PRESENT.value:
            self.present += 1
        elif outcome == AttendanceStatus.LEAVE.value:
            self.on_leave += 1
        else:
            self.skipped += 1


@dataclass(frozen=True)
class AttendanceSummary:
    present_days: int
    leave_days: int

    @property
    def total_days(self) -> int:
        return self.present_days + self.leave_days


class AttendanceGenerator(BaseService):

    def __init__(self, db: Session, clock=None):
        super().__init__(db, clock)
        self.leaves = LeaveService(db, self.clock)
        self.ledger = self.leaves.ledger
        self.directory = EmployeeDirectory(db, self.clock)

    # ------------------------------------------------------------------
    # Batch job
    # ------------------------------------------------------------------

    def run_for_today(self) -> GenerationReport:
        """Single entry point for both the scheduler and the manual trigger."""
        return self.generate_for_date(self.clock.today())

    def generate_for_date(self, day: date) -> GenerationReport:
        self._logger.info(f"Generating daily attendance for date: {day}")

        # DirectoryUnavailableError propagates: no partial run against a broken employee list
        employee_ids = self.directory.list_active()

        report = GenerationReport(target_date=day)
        for employee_id in employee_ids:
            try:
                outcome = self._process_employee(employee_id, day)
            except Exception as e:
                self.db.rollback()
                error = PerEmployeeProcessingError(employee_id, day, e)
                self._logger.error(error.message, exc_info=True, extra={"code": error.error_code})
                report.failed_employee_ids.append(employee_id)
                continue
            report.record(outcome)

        self._logger.info(
            f"Daily attendance generated for {day}. Present: {report.present}, On Leave: {report.on_leave}, "
            f"Skipped: {report.skipped}, Failed: {report.failed}"
        )
        return report

    def generate_for_range(self, start_date: date, end_date: date) -> List[GenerationReport]:
        """
        Catch-up sweep for days the scheduler missed. Days already generated
        are skipped per employee, so overlapping sweeps are harmless.
        """
        if start_date > end_date:
            raise InvalidDateRangeError("End date cannot be before start date")
        if end_date > self.clock.today():
            raise InvalidDateRangeError("Attendance cannot be generated for future dates")
        span = (end_date - start_date).days + 1
        if span > settings.attendance_backfill_max_days:
            raise InvalidDateRangeError(
                f"Backfill covers {span} days; at most {settings.attendance_backfill_max_days} allowed per run"
            )

        reports = []
        day = start_date
        while day <= end_date:
            reports.append(self.generate_for_date(day))
            day += timedelta(days=1)
        return reports

    def _process_employee(self, employee_id: int, day: date) -> str:
        with attendance_locks.hold((employee_id, day)):
            if self.find_record(employee_id, day):
                self._logger.debug(f"Attendance already exists for employee {employee_id} on {day}")
                return _SKIPPED

            covering = self.leaves.approved_covering(employee_id, day)
            leave = covering[0] if covering else None
            if len(covering) > 1:
                self.log_warning(
                    f"Employee {employee_id} has {len(covering)} approved leaves covering {day}; using request {leave.id}"
                )

            record = Attendance(
                employee_id=employee_id,
                attendance_date=day,
                status=AttendanceStatus.LEAVE.value if leave else AttendanceStatus.PRESENT.value,
                leave_request_id=leave.id if leave else None,
            )
            try:
                self.db.add(record)
                self.db.flush()
            except IntegrityError:
                self.db.rollback()
                # Unique (employee, day) constraint: another worker got there first
                if self.find_record(employee_id, day):
                    self._logger.info(f"Attendance for employee {employee_id} on {day} was created concurrently")
                    return _SKIPPED
                raise

            # Ledger errors propagate to the per-employee failure handler
            if leave:
                self.ledger.deduct(employee_id, leave.leave_type, 1, day.year)
            self.db.commit()
            return record.status

    # ------------------------------------------------------------------
    # Corrections
    # ------------------------------------------------------------------

    def mark_as_leave(self, employee_id: int, day: date, leave_request: LeaveRequest) -> Optional[Attendance]:
        """
        Flip an existing record to LEAVE and attach the request. No-op when
        the day has not been generated yet. The ledger is not touched.
        """
        with attendance_locks.hold((employee_id, day)):
            record = self.find_record(employee_id, day)
            if not record:
                return None
            if record.status == AttendanceStatus.LEAVE.value and record.leave_request_id == leave_request.id:
                return record
            record.status = AttendanceStatus.LEAVE.value
            record.leave_request_id = leave_request.id
            self.commit()
        self.db.refresh(record)
        self._logger.info(f"Updated attendance to LEAVE for {self.directory.name(employee_id)} ({employee_id}) on {day}")
        return record

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_record(self, employee_id: int, day: date) -> Optional[Attendance]:
        return (
            self.db.query(Attendance)
            .filter(Attendance.employee_id == employee_id, Attendance.attendance_date == day)
            .first()
        )

    def list_for_employee(self, employee_id: int, start_date: Optional[date] = None,
                          end_date: Optional[date] = None) -> List[Attendance]:
        query = self.db.query(Attendance).filter(Attendance.employee_id == employee_id)
        if start_date:
            query = query.filter(Attendance.attendance_date >= start_date)
        if end_date:
            query = query.filter(Attendance.attendance_date <= end_date)
        return query.order_by(Attendance.attendance_date.desc()).all()

    def list_for_date(self, day: date) -> List[Attendance]:
        return (
            self.db.query(Attendance)
            .filter(Attendance.attendance_date == day)
            .order_by(Attendance.employee_id)
            .all()
        )

    def summary(self, employee_id: int, start_date: date, end_date: date) -> AttendanceSummary:
        if start_date > end_date:
            raise InvalidDateRangeError("End date cannot be before start date")
        rows = (
            self.db.query(Attendance.status, func.count(Attendance.id))
            .filter(
                Attendance.employee_id == employee_id,
                Attendance.attendance_date >= start_date,
                Attendance.attendance_date <= end_date,
            )
            .group_by(Attendance.status)
            .all()
        )
        counts = dict(rows)
        return AttendanceSummary(
            present_days=counts.get(AttendanceStatus.PRESENT.value, 0),
            leave_days=counts.get(AttendanceStatus.LEAVE.value, 0),
        )


def run_scheduled_generation(session_factory: Callable[[], Session]) -> GenerationReport:
    """Open a dedicated session and run today's generation; used by the scheduler and CLI."""
    logger.info("Starting scheduled attendance generation...")
    db = session_factory()
    try:
        return AttendanceGenerator(db).run_for_today()
    finally:
        db.close()
