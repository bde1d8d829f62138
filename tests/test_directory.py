import pytest

from hr_leave.core.exceptions import NotFoundError
from hr_leave.models.employee import EmployeeStatus
from hr_leave.services.directory import EmployeeDirectory, IdentityResolver


@pytest.fixture
def directory(db_session, clock):
    return EmployeeDirectory(db_session, clock)


def test_list_active_is_sorted_and_skips_inactive(directory, make_employee):
    a = make_employee()
    make_employee(status=EmployeeStatus.INACTIVE)
    c = make_employee()

    assert directory.list_active() == [a.id, c.id]


def test_lookups(directory, db_session, make_employee):
    employee = make_employee("Jane Employee")

    assert directory.exists(employee.id)
    assert not directory.exists(999)
    assert directory.name(employee.id) == "Jane Employee"
    assert directory.name(999) is None
    assert directory.for_user(employee.user_id).id == employee.id
    with pytest.raises(NotFoundError):
        directory.get(999)


def test_resolve_user(db_session, clock, admin_user):
    identity = IdentityResolver(db_session, clock)
    assert identity.resolve_user(admin_user.id).email == "admin@alphacorp.com"
    with pytest.raises(NotFoundError):
        identity.resolve_user(999)
