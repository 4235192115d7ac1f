"""Wire format of attendance aggregate documents.

Each record lives in the ``attendanceRecords`` array as its own JSON string,
so every element is parsed/serialized individually at this boundary.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Union

from ..common.datetime_utils import format_iso_date, parse_iso_date
from ..core.enums import AttendanceStatus
from ..database.document_store import Document
from .model import AttendanceRecord, UserAttendanceAggregate


def record_to_dict(record: AttendanceRecord) -> dict:
    out: dict[str, Any] = {
        "date": format_iso_date(record.date),
        "attendanceStatus": record.attendance_status.value,
    }
    if record.in_time:
        out["inTime"] = record.in_time
    if record.out_time:
        out["outTime"] = record.out_time
    if record.reason:
        out["reason"] = record.reason
    if record.is_holiday:
        out["isHoliday"] = True
        if record.holiday_text:
            out["holidayText"] = record.holiday_text
    return out


def encode_record(record: AttendanceRecord) -> str:
    return json.dumps(record_to_dict(record))


def decode_record(raw: Union[str, dict]) -> AttendanceRecord:
    data = json.loads(raw) if isinstance(raw, str) else raw
    if not isinstance(data, dict) or not data.get("date"):
        raise ValueError(f"Malformed attendance record: {raw!r}")

    is_holiday = bool(data.get("isHoliday"))
    status = data.get("attendanceStatus", data.get("status"))
    if status:
        attendance_status = AttendanceStatus.parse(status)
    elif is_holiday:
        attendance_status = AttendanceStatus.HOLIDAY
    else:
        raise ValueError(f"Attendance record without status: {raw!r}")

    return AttendanceRecord(
        date=parse_iso_date(data["date"]),
        attendance_status=attendance_status,
        in_time=data.get("inTime") or None,
        out_time=data.get("outTime") or None,
        reason=data.get("reason") or None,
        is_holiday=is_holiday,
        holiday_text=data.get("holidayText") or None,
    )


def encode_records(records: Iterable[AttendanceRecord]) -> list[str]:
    return [encode_record(r) for r in records]


def decode_records(raw: Iterable[Union[str, dict]]) -> list[AttendanceRecord]:
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise ValueError(f"attendanceRecords must be a list, got {raw!r}")
    return [decode_record(r) for r in raw]


def aggregate_to_fields(aggregate: UserAttendanceAggregate) -> dict:
    fields: dict[str, Any] = {
        "userId": aggregate.user_id,
        "batchId": aggregate.batch_id,
        "attendanceRecords": encode_records(aggregate.attendance_records),
    }
    if aggregate.user_name is not None:
        fields["userName"] = aggregate.user_name
    return fields


def aggregate_from_document(doc: Document) -> UserAttendanceAggregate:
    d = doc.data
    return UserAttendanceAggregate(
        user_id=str(d.get("userId")),
        batch_id=d.get("batchId"),
        user_name=d.get("userName"),
        attendance_records=decode_records(d.get("attendanceRecords") or []),
        document_id=doc.document_id,
        revision=doc.revision,
    )


def aggregate_to_dict(aggregate: UserAttendanceAggregate) -> dict:
    """JSON-friendly view for API responses (records as objects, sorted by date)."""
    return {
        "$id": aggregate.document_id,
        "userId": aggregate.user_id,
        "userName": aggregate.user_name,
        "batchId": aggregate.batch_id,
        "attendanceRecords": [
            record_to_dict(r) for r in sorted(aggregate.attendance_records, key=lambda r: r.date)
        ],
    }
