from __future__ import annotations

import importlib
import json
from datetime import date

from campus_attendance.config import get_settings_module
from campus_attendance.container import build_container
from campus_attendance.core.exceptions import NotFoundError

DEMO_BATCH_ID = "demo-batch"


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, collections=getattr(settings, "COLLECTIONS", None))
    batches = getattr(settings, "COLLECTIONS", {}).get("batches", "batches")

    fields = {
        "BatchName": "Demo Batch",
        "location": json.dumps({"lat": 28.6139, "lon": 77.2090}),
        "circleRadius": 200,
        "attendanceTime": json.dumps({"start": "09:00", "end": "11:00"}),
        "canMarkPrevious": True,
        "start_date": date.today().replace(month=1, day=1).isoformat(),
        "studentIds": ["student-1", "student-2", json.dumps({"userId": "student-3"})],
        "isActive": True,
    }
    try:
        container.store.get(batches, DEMO_BATCH_ID)
        container.store.update(batches, DEMO_BATCH_ID, fields)
    except NotFoundError:
        container.store.create(batches, fields, document_id=DEMO_BATCH_ID)

    print(f"OK: Seeded batch {DEMO_BATCH_ID} -> {settings.DB_CONFIG.get('database')}")


if __name__ == "__main__":
    main()
