import pytest

from hr_leave.core.exceptions import NotFoundError
from hr_leave.models.leave_balance import LeaveBalance
from hr_leave.models.leave_request import LeaveType
from hr_leave.services.balance_ledger import BalanceLedger

YEAR = 2024


@pytest.fixture
def ledger(db_session, clock):
    return BalanceLedger(db_session, clock)


def _set_balance(db_session, employee_id, leave_type, total, used, remaining, year=YEAR):
    balance = db_session.query(LeaveBalance).filter_by(
        employee_id=employee_id, leave_type=leave_type.value, year=year
    ).one()
    balance.total, balance.used, balance.remaining = total, used, remaining
    db_session.commit()


def test_initialize_creates_default_allocations(ledger, make_employee):
    employee = make_employee(with_balances=False)
    balances = ledger.initialize(employee.id, YEAR)

    by_type = {b.leave_type: b for b in balances}
    assert by_type["CL"].total == 12 and by_type["CL"].remaining == 12
    assert by_type["SL"].total == 6 and by_type["SL"].remaining == 6
    assert by_type["LOP"].total == 999
    assert all(b.used == 0 for b in balances)


def test_initialize_is_idempotent(ledger, db_session, employee):
    ledger.deduct(employee.id, LeaveType.CL, 2, YEAR)
    db_session.commit()

    balances = ledger.initialize(employee.id, YEAR)

    assert len(balances) == 3
    cl = ledger.get_balance(employee.id, LeaveType.CL, YEAR)
    assert cl.used == 2
    assert cl.remaining == 10


def test_deduct_bounded_type(ledger, employee):
    balance = ledger.deduct(employee.id, LeaveType.CL, 1, YEAR)

    assert balance.used == 1
    assert balance.remaining == 11
    assert balance.total == 12


def test_deduct_floors_remaining_at_zero(ledger, db_session, employee):
    _set_balance(db_session, employee.id, LeaveType.SL, total=6, used=6, remaining=0)

    balance = ledger.deduct(employee.id, LeaveType.SL, 1, YEAR)

    assert balance.used == 7
    assert balance.remaining == 0


def test_deduct_unbounded_type_only_tracks_usage(ledger, employee):
    balance = ledger.deduct(employee.id, LeaveType.LOP, 3, YEAR)

    assert balance.used == 3
    assert balance.remaining == 999


def test_deduct_without_balance_row_is_a_noop(ledger, db_session, make_employee):
    employee = make_employee(with_balances=False)

    assert ledger.deduct(employee.id, LeaveType.CL, 1, YEAR) is None
    assert db_session.query(LeaveBalance).filter_by(employee_id=employee.id).count() == 0


def test_deduct_only_touches_the_given_year(ledger, employee):
    ledger.initialize(employee.id, YEAR + 1)

    ledger.deduct(employee.id, LeaveType.CL, 1, YEAR + 1)

    assert ledger.get_balance(employee.id, LeaveType.CL, YEAR).used == 0
    assert ledger.get_balance(employee.id, LeaveType.CL, YEAR + 1).used == 1


def test_restore_is_inverse_of_deduct(ledger, employee):
    ledger.deduct(employee.id, LeaveType.CL, 3, YEAR)

    balance = ledger.restore(employee.id, LeaveType.CL, 2, YEAR)

    assert balance.used == 1
    assert balance.remaining == 11


def test_restore_never_drops_used_below_zero(ledger, employee):
    ledger.deduct(employee.id, LeaveType.CL, 1, YEAR)

    balance = ledger.restore(employee.id, LeaveType.CL, 5, YEAR)

    assert balance.used == 0
    assert balance.remaining == 12


def test_negative_days_are_rejected(ledger, employee):
    with pytest.raises(ValueError):
        ledger.deduct(employee.id, LeaveType.CL, -1, YEAR)


def test_get_balance_missing_raises_not_found(ledger, employee):
    with pytest.raises(NotFoundError) as exc:
        ledger.get_balance(employee.id, LeaveType.CL, 1999)
    assert exc.value.message == "Leave balance not found for CL in 1999"
    assert exc.value.status_code == 404


def test_remaining_matches_total_minus_used_after_mutations(ledger, employee):
    for days in (1, 4, 2):
        ledger.deduct(employee.id, LeaveType.CL, days, YEAR)
    ledger.restore(employee.id, LeaveType.CL, 3, YEAR)

    balance = ledger.get_balance(employee.id, LeaveType.CL, YEAR)
    assert balance.used == 4
    assert balance.remaining == max(0, balance.total - balance.used)
    assert ledger._check_invariant(balance)


def test_has_sufficient(ledger, employee):
    balance = ledger.get_balance(employee.id, LeaveType.SL, YEAR)
    assert ledger.has_sufficient(balance, 6)
    assert not ledger.has_sufficient(balance, 7)
