from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.repository import DocumentAttendanceRepository
from .attendance.service import AttendanceService
from .batches.document_batch_repository import DocumentBatchRepository
from .core.constants import DEFAULT_BULK_MARK_WORKERS
from .database.connection import DBConfig, DatabaseConnection
from .database.document_store import DocumentStore
from .database.mysql_document_store import MySQLDocumentStore
from .holidays.document_holiday_repository import DocumentHolidayRepository
from .holidays.service import HolidayService

DEFAULT_COLLECTIONS = {
    "attendance": "studentAttendance",
    "batches": "batches",
    "holidays": "holidays",
}


@dataclass(frozen=True)
class Container:
    store: DocumentStore

    attendance_repo: DocumentAttendanceRepository
    batches_repo: DocumentBatchRepository
    holidays_repo: DocumentHolidayRepository

    attendance_service: AttendanceService
    holiday_service: HolidayService


def build_container(
    *,
    db_config: Optional[dict] = None,
    store: Optional[DocumentStore] = None,
    collections: Optional[dict] = None,
    bulk_mark_workers: int = DEFAULT_BULK_MARK_WORKERS,
) -> Container:
    if store is None:
        if db_config is None:
            raise ValueError("Either db_config or store is required")
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
        store = MySQLDocumentStore(conn)

    names = {**DEFAULT_COLLECTIONS, **(collections or {})}

    attendance_repo = DocumentAttendanceRepository(store, collection=names["attendance"])
    batches_repo = DocumentBatchRepository(store, collection=names["batches"])
    holidays_repo = DocumentHolidayRepository(store, collection=names["holidays"])

    holiday_service = HolidayService(holidays_repo)
    attendance_service = AttendanceService(
        attendance_repo,
        batches_repo,
        holiday_service,
        max_workers=bulk_mark_workers,
    )

    return Container(
        store=store,
        attendance_repo=attendance_repo,
        batches_repo=batches_repo,
        holidays_repo=holidays_repo,
        attendance_service=attendance_service,
        holiday_service=holiday_service,
    )
