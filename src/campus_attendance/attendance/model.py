from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one user's attendance on one calendar date."""

    date: date
    attendance_status: AttendanceStatus
    in_time: Optional[str] = None
    out_time: Optional[str] = None
    reason: Optional[str] = None
    is_holiday: bool = False
    holiday_text: Optional[str] = None
    is_marked: bool = True

    @classmethod
    def unmarked(cls, day: date) -> "AttendanceRecord":
        """Placeholder shown for dates nobody has marked yet."""
        return cls(date=day, attendance_status=AttendanceStatus.ABSENT, is_marked=False)


@dataclass
class UserAttendanceAggregate:
    """One document per (user, batch) holding every dated record.

    No two records share the same date.
    """

    user_id: str
    batch_id: Optional[str]
    user_name: Optional[str] = None
    attendance_records: list[AttendanceRecord] = field(default_factory=list)
    document_id: Optional[str] = None
    revision: Optional[int] = None

    def record_for(self, day: date) -> AttendanceRecord:
        for r in self.attendance_records:
            if r.date == day:
                return r
        return AttendanceRecord.unmarked(day)

    def dates(self) -> set[date]:
        return {r.date for r in self.attendance_records}


@dataclass
class MonthlyAttendanceStat:
    present_days: int = 0
    absent_days: int = 0
    holiday_days: int = 0
    leave_days: int = 0

    def to_dict(self) -> dict:
        return {
            "presentDays": self.present_days,
            "absentDays": self.absent_days,
            "holidayDays": self.holiday_days,
            "leaveDays": self.leave_days,
        }


@dataclass
class AttendanceStatsSummary:
    total_days: int = 0
    present_days: int = 0
    absent_days: int = 0
    holiday_days: int = 0
    leave_days: int = 0
    attendance_percentage: float = 0.0
    monthly_attendance: dict[str, MonthlyAttendanceStat] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "totalDays": self.total_days,
            "presentDays": self.present_days,
            "absentDays": self.absent_days,
            "holidayDays": self.holiday_days,
            "leaveDays": self.leave_days,
            "attendancePercentage": self.attendance_percentage,
            "monthlyAttendance": {k: v.to_dict() for k, v in self.monthly_attendance.items()},
        }
