from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import Holiday


class HolidayRepository(Protocol):
    def list_for_batch(
        self,
        batch_id: str,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[Holiday]:
        raise NotImplementedError

    def list_for_date(self, day: date) -> Sequence[Holiday]:
        raise NotImplementedError

    def get_by_id(self, holiday_id: str) -> Optional[Holiday]:
        raise NotImplementedError

    def create(self, *, batch_id: str, day: date, holiday_text: Optional[str]) -> Holiday:
        raise NotImplementedError

    def update(self, holiday_id: str, *, day: Optional[date] = None, holiday_text: Optional[str] = None) -> Holiday:
        raise NotImplementedError

    def delete(self, holiday_id: str) -> None:
        raise NotImplementedError
