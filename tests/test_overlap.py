from datetime import date

import pytest

from hr_leave.models.leave_request import LeaveRequest, LeaveStatus, LeaveType, count_leave_days
from hr_leave.services.overlap import OverlapDetector


def _leave(db_session, employee, start, end, status=LeaveStatus.APPROVED):
    leave = LeaveRequest(
        employee_id=employee.id,
        leave_type=LeaveType.CL.value,
        start_date=start,
        end_date=end,
        total_days=count_leave_days(start, end),
        status=status.value,
    )
    db_session.add(leave)
    db_session.commit()
    return leave


@pytest.fixture
def detector(db_session, clock):
    return OverlapDetector(db_session, clock)


@pytest.mark.parametrize("start,end,expected", [
    (date(2024, 6, 8), date(2024, 6, 9), False),    # entirely before
    (date(2024, 6, 9), date(2024, 6, 10), True),    # touches first day
    (date(2024, 6, 11), date(2024, 6, 11), True),   # inside
    (date(2024, 6, 12), date(2024, 6, 14), True),   # touches last day
    (date(2024, 6, 8), date(2024, 6, 20), True),    # encloses
    (date(2024, 6, 13), date(2024, 6, 15), False),  # entirely after
])
def test_inclusive_range_intersection(detector, db_session, employee, start, end, expected):
    _leave(db_session, employee, date(2024, 6, 10), date(2024, 6, 12))
    assert detector.has_overlap(employee.id, start, end) is expected


@pytest.mark.parametrize("status", [LeaveStatus.PENDING, LeaveStatus.REJECTED, LeaveStatus.CANCELLED])
def test_only_approved_requests_conflict(detector, db_session, employee, status):
    _leave(db_session, employee, date(2024, 6, 10), date(2024, 6, 12), status=status)
    assert detector.has_overlap(employee.id, date(2024, 6, 10), date(2024, 6, 12)) is False


def test_other_employees_do_not_conflict(detector, db_session, make_employee):
    alice = make_employee("Alice")
    bob = make_employee("Bob")
    _leave(db_session, alice, date(2024, 6, 10), date(2024, 6, 12))

    assert detector.has_overlap(bob.id, date(2024, 6, 10), date(2024, 6, 12)) is False


def test_excluded_request_is_ignored(detector, db_session, employee):
    leave = _leave(db_session, employee, date(2024, 6, 10), date(2024, 6, 12))

    assert detector.has_overlap(employee.id, leave.start_date, leave.end_date,
                                exclude_request_id=leave.id) is False
