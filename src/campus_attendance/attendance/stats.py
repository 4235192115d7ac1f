from __future__ import annotations

from typing import Iterable, Union

from ..common.datetime_utils import month_label
from ..core.enums import AttendanceStatus
from .model import AttendanceRecord, AttendanceStatsSummary, MonthlyAttendanceStat, UserAttendanceAggregate


def compute_stats(source: Union[UserAttendanceAggregate, Iterable[AttendanceRecord]]) -> AttendanceStatsSummary:
    """Roll dated records up into overall and per-month counts.

    Working days (the percentage denominator) are all non-holiday records, so
    Leave days count against the percentage even though they are tallied in
    their own bucket.
    """

    records = source.attendance_records if isinstance(source, UserAttendanceAggregate) else list(source)
    summary = AttendanceStatsSummary()
    if not records:
        return summary

    for r in records:
        month = summary.monthly_attendance.setdefault(month_label(r.date), MonthlyAttendanceStat())

        if r.is_holiday or r.attendance_status == AttendanceStatus.HOLIDAY:
            summary.holiday_days += 1
            month.holiday_days += 1
            continue

        summary.total_days += 1
        if r.attendance_status == AttendanceStatus.PRESENT:
            summary.present_days += 1
            month.present_days += 1
        elif r.attendance_status == AttendanceStatus.ABSENT:
            summary.absent_days += 1
            month.absent_days += 1
        elif r.attendance_status == AttendanceStatus.LEAVE:
            summary.leave_days += 1
            month.leave_days += 1

    if summary.total_days > 0:
        summary.attendance_percentage = round(summary.present_days / summary.total_days * 100, 2)
    return summary
