"""Daily job: mark students without a record as Absent for every active batch.

Usage: python scripts/auto_mark_absentees.py [yyyy-MM-dd]
"""

from __future__ import annotations

import importlib
import json
import logging
import sys

from campus_attendance.common.datetime_utils import parse_iso_date
from campus_attendance.config import get_settings_module
from campus_attendance.container import build_container


def main(argv: list[str]) -> None:
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(level=getattr(settings, "LOG_LEVEL", "INFO"))

    container = build_container(
        db_config=settings.DB_CONFIG,
        collections=getattr(settings, "COLLECTIONS", None),
        bulk_mark_workers=int(getattr(settings, "BULK_MARK_WORKERS", 8)),
    )
    day = parse_iso_date(argv[0]) if argv else None
    result = container.attendance_service.auto_mark_all_absentees(day)
    print(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    main(sys.argv[1:])
