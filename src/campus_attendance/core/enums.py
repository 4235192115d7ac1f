from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Attendance status as stored in the attendanceRecords wire format."""

    PRESENT = "Present"
    ABSENT = "Absent"
    LEAVE = "Leave"
    HOLIDAY = "Holiday"

    @classmethod
    def parse(cls, value: str) -> "AttendanceStatus":
        """Case-insensitive lookup; legacy documents stored lowercase values."""
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        raise ValueError(f"Unknown attendance status: {value!r}")
