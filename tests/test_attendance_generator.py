from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from hr_leave.core.exceptions import DirectoryUnavailableError, InvalidDateRangeError
from hr_leave.models.attendance import Attendance, AttendanceStatus
from hr_leave.models.employee import EmployeeStatus
from hr_leave.models.leave_request import LeaveRequest, LeaveStatus, LeaveType, count_leave_days
from hr_leave.services.attendance_service import AttendanceGenerator, run_scheduled_generation

DAY = date(2024, 6, 10)


@pytest.fixture
def generator(db_session, clock):
    return AttendanceGenerator(db_session, clock)


def _approved_leave(db_session, employee, start, end, leave_type=LeaveType.CL):
    leave = LeaveRequest(
        employee_id=employee.id,
        leave_type=leave_type.value,
        start_date=start,
        end_date=end,
        total_days=count_leave_days(start, end),
        status=LeaveStatus.APPROVED.value,
    )
    db_session.add(leave)
    db_session.commit()
    return leave


def test_present_and_leave_records(generator, db_session, make_employee):
    on_leave = make_employee("On Leave")
    present = make_employee("Present")
    leave = _approved_leave(db_session, on_leave, date(2024, 6, 9), date(2024, 6, 11))

    report = generator.generate_for_date(DAY)

    assert (report.present, report.on_leave, report.skipped, report.failed) == (1, 1, 0, 0)
    assert generator.find_record(present.id, DAY).status == AttendanceStatus.PRESENT.value
    leave_record = generator.find_record(on_leave.id, DAY)
    assert leave_record.status == AttendanceStatus.LEAVE.value
    assert leave_record.leave_request_id == leave.id
    assert generator.ledger.get_balance(on_leave.id, LeaveType.CL, 2024).used == 1
    assert generator.ledger.get_balance(present.id, LeaveType.CL, 2024).used == 0


def test_inactive_employees_are_ignored(generator, make_employee):
    inactive = make_employee("Gone", status=EmployeeStatus.INACTIVE)

    report = generator.generate_for_date(DAY)

    assert report.created == 0
    assert generator.find_record(inactive.id, DAY) is None


@pytest.mark.parametrize("status", [LeaveStatus.PENDING, LeaveStatus.REJECTED, LeaveStatus.CANCELLED])
def test_non_approved_leave_means_present(generator, db_session, employee, status):
    leave = _approved_leave(db_session, employee, DAY, DAY)
    leave.status = status.value
    db_session.commit()

    generator.generate_for_date(DAY)

    assert generator.find_record(employee.id, DAY).status == AttendanceStatus.PRESENT.value


def test_rerun_for_same_day_is_idempotent(generator, db_session, employee):
    _approved_leave(db_session, employee, DAY, DAY)

    generator.generate_for_date(DAY)
    report = generator.generate_for_date(DAY)

    assert report.created == 0
    assert report.skipped == 1
    assert db_session.query(Attendance).count() == 1
    assert generator.ledger.get_balance(employee.id, LeaveType.CL, 2024).used == 1


def test_rerun_fills_only_gaps(generator, db_session, make_employee):
    first = make_employee()
    generator.generate_for_date(DAY)
    second = make_employee()

    report = generator.generate_for_date(DAY)

    assert (report.present, report.skipped) == (1, 1)
    assert generator.find_record(second.id, DAY) is not None
    assert db_session.query(Attendance).filter_by(employee_id=first.id).count() == 1


def test_lowest_request_id_wins_when_leaves_collide(generator, db_session, employee):
    first = _approved_leave(db_session, employee, DAY, DAY, LeaveType.SL)
    _approved_leave(db_session, employee, DAY, date(2024, 6, 12), LeaveType.CL)

    generator.generate_for_date(DAY)

    assert generator.find_record(employee.id, DAY).leave_request_id == first.id
    assert generator.ledger.get_balance(employee.id, LeaveType.SL, 2024).used == 1
    assert generator.ledger.get_balance(employee.id, LeaveType.CL, 2024).used == 0


def test_lop_leave_tracks_usage_only(generator, db_session, employee):
    _approved_leave(db_session, employee, DAY, DAY, LeaveType.LOP)

    generator.generate_for_date(DAY)

    balance = generator.ledger.get_balance(employee.id, LeaveType.LOP, 2024)
    assert (balance.used, balance.remaining) == (1, 999)


def test_leave_without_balance_row_still_marks_leave(generator, db_session, make_employee):
    employee = make_employee(with_balances=False)
    _approved_leave(db_session, employee, DAY, DAY)

    report = generator.generate_for_date(DAY)

    assert report.on_leave == 1
    assert generator.find_record(employee.id, DAY).status == AttendanceStatus.LEAVE.value


def test_deduction_uses_the_year_of_the_day(generator, db_session, employee):
    generator.ledger.initialize(employee.id, 2025)
    db_session.commit()
    _approved_leave(db_session, employee, date(2024, 12, 31), date(2025, 1, 1))

    generator.generate_for_date(date(2024, 12, 31))
    generator.generate_for_date(date(2025, 1, 1))

    assert generator.ledger.get_balance(employee.id, LeaveType.CL, 2024).used == 1
    assert generator.ledger.get_balance(employee.id, LeaveType.CL, 2025).used == 1


def test_one_failing_employee_does_not_stop_the_run(generator, db_session, make_employee, monkeypatch):
    healthy = make_employee("Healthy")
    broken = make_employee("Broken")
    also_healthy = make_employee("Also Healthy")

    original = generator.leaves.approved_covering

    def flaky(employee_id, day):
        if employee_id == broken.id:
            raise RuntimeError("boom")
        return original(employee_id, day)

    monkeypatch.setattr(generator.leaves, "approved_covering", flaky)

    report = generator.generate_for_date(DAY)

    assert report.present == 2
    assert report.failed_employee_ids == [broken.id]
    assert generator.find_record(healthy.id, DAY) is not None
    assert generator.find_record(also_healthy.id, DAY) is not None
    assert generator.find_record(broken.id, DAY) is None


def test_failed_deduction_rolls_back_the_record(generator, db_session, employee, monkeypatch):
    _approved_leave(db_session, employee, DAY, DAY)

    def fail(*args, **kwargs):
        raise RuntimeError("ledger down")

    monkeypatch.setattr(generator.ledger, "deduct", fail)
    report = generator.generate_for_date(DAY)

    assert report.failed_employee_ids == [employee.id]
    assert generator.find_record(employee.id, DAY) is None

    monkeypatch.undo()
    report = generator.generate_for_date(DAY)
    assert report.on_leave == 1
    assert generator.ledger.get_balance(employee.id, LeaveType.CL, 2024).used == 1


def test_ledger_integrity_error_is_reported_as_failure(generator, db_session, employee, monkeypatch):
    _approved_leave(db_session, employee, DAY, DAY)

    def fail(*args, **kwargs):
        raise IntegrityError("UPDATE leave_balances", {}, Exception("CHECK constraint failed"))

    monkeypatch.setattr(generator.ledger, "deduct", fail)
    report = generator.generate_for_date(DAY)

    assert report.failed == 1
    assert report.failed_employee_ids == [employee.id]
    assert (report.on_leave, report.skipped) == (0, 0)
    assert generator.find_record(employee.id, DAY) is None


def test_duplicate_insert_is_counted_as_skipped(generator, db_session, employee, monkeypatch):
    db_session.add(Attendance(employee_id=employee.id, attendance_date=DAY, status=AttendanceStatus.PRESENT.value))
    db_session.commit()
    # Hide the existing row from the first lookup only, as if another worker inserted it meanwhile
    original = generator.find_record
    calls = {"n": 0}

    def racing_find(employee_id, day):
        calls["n"] += 1
        return None if calls["n"] == 1 else original(employee_id, day)

    monkeypatch.setattr(generator, "find_record", racing_find)
    report = generator.generate_for_date(DAY)

    assert (report.skipped, report.failed) == (1, 0)
    assert db_session.query(Attendance).count() == 1


def test_directory_failure_aborts_the_run(generator, db_session, employee, monkeypatch):
    def broken_query(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(db_session, "query", broken_query)

    with pytest.raises(DirectoryUnavailableError):
        generator.generate_for_date(DAY)


def test_run_for_today_uses_the_clock(generator, employee, clock):
    report = generator.run_for_today()
    assert report.target_date == clock.today()
    assert generator.find_record(employee.id, clock.today()) is not None


def test_generate_for_range_backfills_missed_days(generator, db_session, employee, clock):
    _approved_leave(db_session, employee, date(2024, 5, 29), date(2024, 5, 30))
    generator.generate_for_date(date(2024, 5, 29))

    reports = generator.generate_for_range(date(2024, 5, 28), clock.today())

    assert [r.target_date for r in reports] == [
        date(2024, 5, 28), date(2024, 5, 29), date(2024, 5, 30), date(2024, 5, 31), date(2024, 6, 1)
    ]
    assert reports[1].skipped == 1
    assert reports[2].on_leave == 1
    assert generator.ledger.get_balance(employee.id, LeaveType.CL, 2024).used == 2
    assert db_session.query(Attendance).count() == 5


@pytest.mark.parametrize("start,end", [
    (date(2024, 6, 1), date(2024, 5, 31)),
    (date(2024, 5, 30), date(2024, 6, 2)),
])
def test_generate_for_range_rejects_bad_ranges(generator, start, end):
    with pytest.raises(InvalidDateRangeError):
        generator.generate_for_range(start, end)


def test_generate_for_range_caps_the_span(generator, db_session, clock, monkeypatch):
    from hr_leave.core.config import settings
    monkeypatch.setattr(settings, "attendance_backfill_max_days", 3)

    with pytest.raises(InvalidDateRangeError) as exc:
        generator.generate_for_range(date(2024, 5, 29), clock.today())
    assert "at most 3" in exc.value.message
    assert db_session.query(Attendance).count() == 0

    assert len(generator.generate_for_range(date(2024, 5, 30), clock.today())) == 3


def test_mark_as_leave_flips_existing_record(generator, db_session, employee):
    generator.generate_for_date(DAY)
    leave = _approved_leave(db_session, employee, DAY, DAY)

    record = generator.mark_as_leave(employee.id, DAY, leave)

    assert record.status == AttendanceStatus.LEAVE.value
    assert record.leave_request_id == leave.id
    assert generator.ledger.get_balance(employee.id, LeaveType.CL, 2024).used == 0
    assert generator.mark_as_leave(employee.id, DAY, leave).id == record.id


def test_mark_as_leave_without_record_is_noop(generator, db_session, employee):
    leave = _approved_leave(db_session, employee, DAY, DAY)
    assert generator.mark_as_leave(employee.id, DAY, leave) is None
    assert db_session.query(Attendance).count() == 0


def test_summary_counts_by_status(generator, db_session, employee):
    _approved_leave(db_session, employee, date(2024, 5, 30), date(2024, 5, 30))
    generator.generate_for_range(date(2024, 5, 28), date(2024, 6, 1))

    summary = generator.summary(employee.id, date(2024, 5, 1), date(2024, 5, 31))

    assert (summary.present_days, summary.leave_days, summary.total_days) == (3, 1, 4)
    with pytest.raises(InvalidDateRangeError):
        generator.summary(employee.id, date(2024, 6, 1), date(2024, 5, 1))


def test_list_queries(generator, make_employee):
    a = make_employee()
    b = make_employee()
    generator.generate_for_range(date(2024, 5, 30), date(2024, 6, 1))

    assert [r.employee_id for r in generator.list_for_date(date(2024, 5, 31))] == [a.id, b.id]
    history = generator.list_for_employee(a.id, start_date=date(2024, 5, 31))
    assert [r.attendance_date for r in history] == [date(2024, 6, 1), date(2024, 5, 31)]


def test_run_scheduled_generation_uses_its_own_session(session_factory, employee, monkeypatch):
    from hr_leave.core import clock as clock_module
    from hr_leave.core.clock import FixedClock

    monkeypatch.setattr(clock_module, "_system_clock", FixedClock(DAY))

    report = run_scheduled_generation(session_factory)

    assert report.target_date == DAY
    assert report.present == 1
