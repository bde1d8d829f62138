"""
Time-triggered driver for the daily attendance job.

A single daemon thread sleeps until the configured local HH:MM, runs the job
and schedules the next day. Errors are logged and never stop the loop.
"""
import logging
import threading
from datetime import datetime, timedelta, time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


def parse_run_time(value: str) -> time:
    try:
        return datetime.strptime(value.strip(), "%H:%M").time()
    except ValueError:
        raise ValueError(f"Invalid run time '{value}', expected HH:MM")


def next_run_after(now: datetime, run_at: time) -> datetime:
    candidate = datetime.combine(now.date(), run_at)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


class DailyScheduler:

    def __init__(self, job: Callable[[], Any], run_at: str, name: str = "daily-attendance",
                 now: Callable[[], datetime] = datetime.now):
        self.job = job
        self.run_at = parse_run_time(run_at)
        self.name = name
        self._now = now
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()
        logger.info(f"Scheduler '{self.name}' started; runs daily at {self.run_at.strftime('%H:%M')}")

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        self._thread = None
        logger.info(f"Scheduler '{self.name}' stopped")

    def run_once(self) -> Any:
        try:
            result = self.job()
            logger.info(f"Scheduled job '{self.name}' completed successfully")
            return result
        except Exception:
            logger.exception(f"Error during scheduled job '{self.name}'")
            return None

    def _loop(self) -> None:
        while not self._stop.is_set():
            now = self._now()
            wait_seconds = (next_run_after(now, self.run_at) - now).total_seconds()
            if self._stop.wait(wait_seconds):
                break
            self.run_once()
