"""
Run daily attendance generation outside the scheduler.

    python scripts/generate_attendance.py                          # today
    python scripts/generate_attendance.py --from 2024-03-01        # catch-up until today
    python scripts/generate_attendance.py --from 2024-03-01 --to 2024-03-05
"""
import argparse
import logging
import sys
from datetime import date

from hr_leave.core.exceptions import AppException
from hr_leave.core.logging import setup_logging
from hr_leave.database import SessionLocal, init_db
from hr_leave.services.attendance_service import AttendanceGenerator

logger = logging.getLogger("generate_attendance")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Generate daily attendance records")
    parser.add_argument("--from", dest="start", type=date.fromisoformat, help="first day (YYYY-MM-DD)")
    parser.add_argument("--to", dest="end", type=date.fromisoformat, help="last day (YYYY-MM-DD), defaults to today")
    args = parser.parse_args(argv)

    setup_logging()
    init_db()

    db = SessionLocal()
    try:
        generator = AttendanceGenerator(db)
        if args.start is None:
            if args.end is not None:
                parser.error("--to requires --from")
            reports = [generator.run_for_today()]
        else:
            reports = generator.generate_for_range(args.start, args.end or generator.clock.today())
    except AppException as e:
        logger.error(e.message, extra={"code": e.error_code})
        return 1
    finally:
        db.close()

    for report in reports:
        print(f"{report.target_date}: present={report.present} on_leave={report.on_leave} "
              f"skipped={report.skipped} failed={report.failed}")
    return 1 if any(r.failed for r in reports) else 0


if __name__ == "__main__":
    sys.exit(main())
