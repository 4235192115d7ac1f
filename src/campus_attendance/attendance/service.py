from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Callable, Iterable, Optional, Sequence

from ..batches.model import Batch, GeoPoint
from ..batches.repository import BatchRepository
from ..batches.rules import validate_markable_date
from ..common.datetime_utils import format_time_of_day, now_local
from ..core.constants import AUTO_ABSENT_REASON, DEFAULT_BULK_MARK_WORKERS, DEFAULT_IN_TIME, DEFAULT_OUT_TIME
from ..core.enums import AttendanceStatus
from ..core.exceptions import DomainError, NotFoundError, StoreError, ValidationError
from ..holidays.model import Holiday
from ..holidays.service import HolidayService
from .geo import GeoEligibility, evaluate_check_in
from .model import AttendanceRecord, AttendanceStatsSummary, UserAttendanceAggregate
from .repository import AttendanceRepository
from .stats import compute_stats

logger = logging.getLogger(__name__)


@dataclass
class BulkMarkResult:
    succeeded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"succeeded": self.succeeded, "failed": self.failed}


@dataclass(frozen=True)
class CheckInResult:
    aggregate: UserAttendanceAggregate
    eligibility: GeoEligibility


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        batches: BatchRepository,
        holidays: HolidayService | None = None,
        *,
        max_workers: int = DEFAULT_BULK_MARK_WORKERS,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._batches = batches
        self._holidays = holidays
        self._max_workers = max(1, int(max_workers))
        self._clock = clock

    def _get_batch(self, batch_id: Optional[str]) -> Batch:
        if not batch_id:
            raise ValidationError("batchId is required")
        batch = self._batches.get_by_id(batch_id)
        if batch is None:
            raise NotFoundError(f"Batch {batch_id} not found")
        return batch

    def _guard_holidays(self, record: UserAttendanceAggregate) -> None:
        if self._holidays is None or not record.batch_id:
            return

        dates = [
            r.date
            for r in record.attendance_records
            if not r.is_holiday and r.attendance_status != AttendanceStatus.HOLIDAY
        ]
        if not dates:
            return

        holidays = self._holidays.list_batch_holidays(record.batch_id, start=min(dates), end=max(dates))
        blocked = {h.date: h for h in holidays}
        for day in dates:
            if day in blocked:
                text = blocked[day].holiday_text or "holiday"
                raise ValidationError(f"Cannot mark attendance on {day.isoformat()}: {text}")

    @staticmethod
    def _require_entry(record: UserAttendanceAggregate) -> None:
        if not record.user_id:
            raise ValidationError("userId is required")
        if not record.attendance_records:
            raise ValidationError("attendanceRecords must not be empty")

    def _guard_calendar(self, record: UserAttendanceAggregate, batch: Batch, today: date) -> None:
        for r in record.attendance_records:
            validate_markable_date(batch, r.date, today=today)

    def _mark(
        self,
        record: UserAttendanceAggregate,
        *,
        keep_previous: bool,
        calendar_batch: Optional[Batch] = None,
    ) -> UserAttendanceAggregate:
        self._require_entry(record)

        if calendar_batch is not None:
            self._guard_calendar(record, calendar_batch, self._clock().date())
        self._guard_holidays(record)
        return self._attendance.mark_user_attendance(record, keep_previous=keep_previous)

    def get_user_attendance(self, user_id: str, batch_id: Optional[str] = None) -> Optional[UserAttendanceAggregate]:
        return self._attendance.get_user_attendance(user_id, batch_id)

    def mark_user_attendance(
        self,
        record: UserAttendanceAggregate,
        *,
        keep_previous: bool = True,
        enforce_calendar: bool = False,
    ) -> UserAttendanceAggregate:
        self._require_entry(record)

        calendar_batch = self._get_batch(record.batch_id) if enforce_calendar else None
        return self._mark(record, keep_previous=keep_previous, calendar_batch=calendar_batch)

    def get_batch_attendance(self, batch_id: str) -> Sequence[UserAttendanceAggregate]:
        return self._attendance.get_batch_attendance(batch_id)

    def get_students_attendance(
        self,
        user_ids: Iterable[str],
        *,
        batch_id: Optional[str] = None,
    ) -> Sequence[UserAttendanceAggregate]:
        return self._attendance.get_students_attendance(user_ids, batch_id=batch_id)

    def self_check_in(
        self,
        *,
        user_id: str,
        batch_id: str,
        device_location: Optional[GeoPoint],
        user_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> CheckInResult:
        now = now or self._clock()
        batch = self._get_batch(batch_id)

        eligibility = evaluate_check_in(now, device_location, batch)
        if not eligibility.within_radius:
            raise ValidationError("You are outside the allowed attendance area")
        if not eligibility.within_window:
            raise ValidationError(
                f"Attendance can only be marked between {eligibility.window.start} and {eligibility.window.end}"
            )

        record = UserAttendanceAggregate(
            user_id=user_id,
            batch_id=batch_id,
            user_name=user_name,
            attendance_records=[
                AttendanceRecord(
                    date=now.date(),
                    attendance_status=AttendanceStatus.PRESENT,
                    in_time=format_time_of_day(now),
                )
            ],
        )
        aggregate = self.mark_user_attendance(record)
        logger.info("User %s checked in to batch %s at %.1fm", user_id, batch_id, eligibility.distance)
        return CheckInResult(aggregate=aggregate, eligibility=eligibility)

    def _with_default_times(self, record: AttendanceRecord) -> AttendanceRecord:
        if record.attendance_status != AttendanceStatus.PRESENT:
            return record
        return replace(
            record,
            in_time=record.in_time or DEFAULT_IN_TIME,
            out_time=record.out_time or DEFAULT_OUT_TIME,
        )

    def mark_batch_attendance(
        self,
        batch_id: str,
        entries: Sequence[UserAttendanceAggregate],
        *,
        keep_previous: bool = True,
        enforce_calendar: bool = True,
    ) -> BulkMarkResult:
        """Mark many students at once; each write succeeds or fails on its own."""
        batch = self._get_batch(batch_id)
        return self._mark_entries(batch, entries, keep_previous=keep_previous, enforce_calendar=enforce_calendar)

    def _mark_entries(
        self,
        batch: Batch,
        entries: Sequence[UserAttendanceAggregate],
        *,
        keep_previous: bool,
        enforce_calendar: bool,
    ) -> BulkMarkResult:
        result = BulkMarkResult()
        if not entries:
            return result

        calendar_batch = batch if enforce_calendar else None
        prepared = [
            replace(
                e,
                batch_id=batch.batch_id,
                attendance_records=[self._with_default_times(r) for r in e.attendance_records],
            )
            for e in entries
        ]

        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(prepared))) as pool:
            futures = {
                pool.submit(
                    self._mark,
                    entry,
                    keep_previous=keep_previous,
                    calendar_batch=calendar_batch,
                ): entry.user_id
                for entry in prepared
            }
            for future in as_completed(futures):
                user_id = futures[future]
                try:
                    future.result()
                    result.succeeded.append(user_id)
                except DomainError as e:
                    logger.warning("Marking attendance for %s in batch %s failed: %s", user_id, batch.batch_id, e)
                    result.failed[user_id] = str(e)

        return result

    def auto_mark_absentees(self, batch_id: str, day: Optional[date] = None) -> dict:
        """Mark every student without a record for ``day`` as Absent."""
        day = day or self._clock().date()
        batch = self._get_batch(batch_id)
        holiday = self._holidays.holiday_for(batch.batch_id, day) if self._holidays is not None else None
        return self._auto_mark_batch(batch, day, holiday)

    def _auto_mark_batch(self, batch: Batch, day: date, holiday: Optional[Holiday]) -> dict:
        summary = {"batchId": batch.batch_id, "batchName": batch.batch_name, "date": day.isoformat()}

        if holiday is not None:
            logger.info("Skipping batch %s on %s due to a holiday", batch.batch_id, day)
            return {**summary, "status": "skipped_holiday", "holiday": holiday.holiday_text}

        if not batch.student_ids:
            return {**summary, "status": "no_students", "students": 0, "toMark": 0, "created": 0}

        existing = self.get_students_attendance(batch.student_ids, batch_id=batch.batch_id)
        already_marked = {a.user_id for a in existing if day in a.dates()}
        to_mark = [
            UserAttendanceAggregate(
                user_id=user_id,
                batch_id=batch.batch_id,
                attendance_records=[
                    AttendanceRecord(date=day, attendance_status=AttendanceStatus.ABSENT, reason=AUTO_ABSENT_REASON)
                ],
            )
            for user_id in batch.student_ids
            if user_id not in already_marked
        ]

        result = self._mark_entries(batch, to_mark, keep_previous=True, enforce_calendar=False)
        return {
            **summary,
            "status": "processed",
            "students": len(batch.student_ids),
            "toMark": len(to_mark),
            "created": len(result.succeeded),
            "failed": result.failed,
        }

    def auto_mark_all_absentees(self, day: Optional[date] = None) -> dict:
        day = day or self._clock().date()
        # One holiday lookup for the day covers every batch.
        holidays = self._holidays.holidays_by_batch(day) if self._holidays is not None else {}
        per_batch = [
            self._auto_mark_batch(b, day, holidays.get(b.batch_id)) for b in self._batches.list_active()
        ]
        return {
            "totalBatches": len(per_batch),
            "totalStudentsChecked": sum(p.get("students", 0) for p in per_batch),
            "totalMarkedAbsent": sum(p.get("created", 0) for p in per_batch),
            "perBatch": per_batch,
        }

    def get_user_stats(self, user_id: str, batch_id: Optional[str] = None) -> AttendanceStatsSummary:
        aggregate = self._attendance.get_user_attendance(user_id, batch_id)
        if aggregate is None:
            return AttendanceStatsSummary()
        return compute_stats(aggregate)

    def get_user_stats_for_display(self, user_id: str, batch_id: Optional[str] = None) -> Optional[AttendanceStatsSummary]:
        """Best-effort read for dashboards: store failures yield None."""
        try:
            return self.get_user_stats(user_id, batch_id)
        except StoreError as e:
            logger.warning("Could not load attendance stats for %s: %s", user_id, e)
            return None
