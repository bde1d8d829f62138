import logging
from typing import Optional

from sqlalchemy.orm import Session

from hr_leave.core.clock import Clock, get_clock


class BaseService:
    """
    Common plumbing for services: the session, a clock and a class-scoped logger.
    """

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or get_clock()
        self._logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    def commit(self):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def log_warning(self, message: str, **extra):
        self._logger.warning(message, extra=extra or None)
