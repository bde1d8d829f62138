import pytest
import os
from datetime import date
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["ATTENDANCE_SCHEDULER_ENABLED"] = "false"

from hr_leave.core.clock import FixedClock, get_clock
from hr_leave.database import Base, get_db
from hr_leave.main import app
from fastapi.testclient import TestClient

# Pinned "today" for every date-dependent rule
TODAY = date(2024, 6, 1)


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory database per test; sessions share one connection."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope="function")
def clock():
    return FixedClock(TODAY)


@pytest.fixture(scope="function")
def make_user(db_session):
    """Factory for identities."""
    from hr_leave.models.user import User, UserRole

    def _make_user(email, role=UserRole.EMPLOYEE, full_name=None):
        user = User(email=email, full_name=full_name or email.split("@")[0], role=role, is_active=True)
        db_session.add(user)
        db_session.commit()
        return user
    return _make_user


@pytest.fixture(scope="function")
def make_employee(db_session, make_user, clock):
    """Factory for employees; default balances are created for the current year."""
    from hr_leave.models.employee import Employee, EmployeeStatus
    from hr_leave.models.user import UserRole
    from hr_leave.services.balance_ledger import BalanceLedger

    counter = {"n": 0}

    def _make_employee(name=None, status=EmployeeStatus.ACTIVE, with_user=True, with_balances=True):
        counter["n"] += 1
        code = f"EMP{counter['n']:03d}"
        name = name or f"Employee {counter['n']}"
        user = make_user(f"{code.lower()}@alphacorp.com", UserRole.EMPLOYEE, name) if with_user else None
        employee = Employee(
            user_id=user.id if user else None,
            employee_code=code,
            name=name,
            email=user.email if user else None,
            status=status.value,
        )
        db_session.add(employee)
        db_session.flush()
        if with_balances:
            BalanceLedger(db_session, clock).initialize(employee.id, clock.today().year)
        db_session.commit()
        return employee
    return _make_employee


@pytest.fixture(scope="function")
def admin_user(make_user):
    """Create a default HR Admin user for tests."""
    from hr_leave.models.user import UserRole
    return make_user("admin@alphacorp.com", UserRole.HR_ADMIN, "System Admin")


@pytest.fixture(scope="function")
def manager_user(make_user):
    from hr_leave.models.user import UserRole
    return make_user("manager@alphacorp.com", UserRole.MANAGER, "Team Manager")


@pytest.fixture(scope="function")
def employee(make_employee):
    return make_employee("Jane Employee")


@pytest.fixture(scope="function")
def get_token():
    """Helper fixture to create access tokens."""
    from hr_leave.services.auth import create_access_token

    def _get_token(user):
        return create_access_token(data={
            "sub": user.email,
            "role": user.role.value,
            "type": "access"
        })
    return _get_token


@pytest.fixture(scope="function")
def auth_headers(get_token):
    def _auth_headers(user):
        return {"Authorization": f"Bearer {get_token(user)}"}
    return _auth_headers


@pytest.fixture(scope="function")
def client(db_session, clock):
    """Get a TestClient that uses the test database session and clock via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
