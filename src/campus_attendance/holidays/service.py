from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

from ..core.exceptions import NotFoundError, ValidationError
from .model import Holiday
from .repository import HolidayRepository

logger = logging.getLogger(__name__)


class HolidayService:
    def __init__(self, holidays: HolidayRepository):
        self._holidays = holidays

    def list_batch_holidays(
        self,
        batch_id: str,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[Holiday]:
        if start and end and start > end:
            raise ValidationError("start must not be after end")
        return self._holidays.list_for_batch(batch_id, start=start, end=end)

    def holiday_for(self, batch_id: str, day: date) -> Optional[Holiday]:
        found = self._holidays.list_for_batch(batch_id, start=day, end=day)
        # Several entries for one date: the last one wins.
        return found[-1] if found else None

    def is_holiday(self, batch_id: str, day: date) -> bool:
        return self.holiday_for(batch_id, day) is not None

    def holidays_by_batch(self, day: date) -> dict[str, Holiday]:
        return {h.batch_id: h for h in self._holidays.list_for_date(day)}

    def add_holiday(self, *, batch_id: str, day: date, holiday_text: Optional[str] = None) -> Holiday:
        if not batch_id:
            raise ValidationError("batchId is required")
        if self.is_holiday(batch_id, day):
            raise ValidationError(f"{day.isoformat()} is already a holiday for this batch")

        holiday = self._holidays.create(
            batch_id=batch_id,
            day=day,
            holiday_text=holiday_text.strip() if holiday_text else None,
        )
        logger.info("Holiday %s added for batch %s on %s", holiday.holiday_id, batch_id, day)
        return holiday

    def update_holiday(
        self,
        holiday_id: str,
        *,
        day: Optional[date] = None,
        holiday_text: Optional[str] = None,
    ) -> Holiday:
        current = self._holidays.get_by_id(holiday_id)
        if current is None:
            raise NotFoundError(f"Holiday {holiday_id} not found")
        if day is not None and day != current.date and self.is_holiday(current.batch_id, day):
            raise ValidationError(f"{day.isoformat()} is already a holiday for this batch")
        return self._holidays.update(holiday_id, day=day, holiday_text=holiday_text)

    def remove_holiday(self, holiday_id: str) -> None:
        self._holidays.delete(holiday_id)
        logger.info("Holiday %s removed", holiday_id)
