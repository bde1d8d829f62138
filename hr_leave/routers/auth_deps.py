"""
RBAC Dependencies.
Resolve the caller from the bearer token and enforce role checks at the endpoint.
"""
import logging
from typing import Callable, List

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from hr_leave.core.exceptions import AccessDeniedError, AuthenticationError
from hr_leave.database import get_db
from hr_leave.models.employee import Employee
from hr_leave.models.user import User, UserRole
from hr_leave.services import auth as auth_service
from hr_leave.services.directory import EmployeeDirectory

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    """
    Extracts and validates the current user from the JWT token.
    """
    payload = auth_service.decode_access_token(token)

    if payload is None:
        logger.warning("Authentication failed: Invalid token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("error") == "TOKEN_EXPIRED":
        logger.info("Authentication failed: Token expired")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="TOKEN_EXPIRED",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("type") != "access":
        logger.warning("Authentication failed: Invalid token type")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    email = payload.get("sub")
    if email is None:
        logger.warning("Authentication failed: Missing subject (email) in token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing subject in token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.query(User).filter(User.email == email).first()
    if user is None:
        logger.warning(f"Authentication failed: User {email} not found in database")
        raise AuthenticationError("User not found")
    if not user.is_active:
        logger.warning(f"Authentication failed: User {email} is inactive")
        raise AccessDeniedError("User is inactive")
    return user


def require_role(allowed_roles: List[UserRole]) -> Callable:
    """
    Dependency factory that checks if the user has one of the allowed roles.

    Usage:
        @router.get("/admin-only")
        def admin_endpoint(user: User = Depends(require_role([UserRole.HR_ADMIN]))):
            ...
    """
    def role_checker(current_user: User = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            raise AccessDeniedError(f"Access denied. Required roles: {[r.value for r in allowed_roles]}")
        return current_user
    return role_checker


def require_approver():
    """Shorthand for roles allowed to review leave."""
    return require_role([UserRole.HR_ADMIN, UserRole.MANAGER])


def require_admin():
    """Shorthand for admin roles only."""
    return require_role([UserRole.HR_ADMIN])


def get_current_employee(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Employee:
    """The employee profile linked to the caller; self-service endpoints need one."""
    employee = EmployeeDirectory(db).for_user(current_user.id)
    if employee is None:
        raise AccessDeniedError("No employee profile linked to this account")
    return employee
