from hr_leave.core.clock import get_clock
from hr_leave.database import SessionLocal, init_db
from hr_leave.models.employee import Employee
from hr_leave.models.user import User, UserRole
from hr_leave.services.auth import create_access_token
from hr_leave.services.balance_ledger import BalanceLedger

init_db()
db = SessionLocal()
ledger = BalanceLedger(db)
year = get_clock().today().year


def create_user(email, full_name, role, employee_code=None):
    # Check if user already exists to avoid unique constraint errors
    user = db.query(User).filter(User.email == email).first()
    if user:
        print(f"User {email} already exists. Skipping.")
    else:
        user = User(email=email, full_name=full_name, role=role, is_active=True)
        db.add(user)
        db.flush()
        print(f"Created {role.value} -> {email}")

    if employee_code and not db.query(Employee).filter(Employee.employee_code == employee_code).first():
        employee = Employee(user_id=user.id, employee_code=employee_code, name=full_name, email=email)
        db.add(employee)
        db.flush()
        ledger.initialize(employee.id, year)
        print(f"Created employee {employee_code} with {year} balances")

    db.commit()
    db.refresh(user)
    print(f"  token: {create_access_token({'sub': user.email})}")


# HR admin
create_user("admin@example.com", "HR Admin", UserRole.HR_ADMIN)

# Manager
create_user("manager@example.com", "Team Manager", UserRole.MANAGER, "EMP001")

# Employee
create_user("employee@example.com", "Jane Employee", UserRole.EMPLOYEE, "EMP002")

db.close()
