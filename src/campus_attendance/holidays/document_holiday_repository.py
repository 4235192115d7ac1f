from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..common.datetime_utils import format_iso_date, parse_iso_date
from ..core.exceptions import NotFoundError
from ..database.document_store import Document, DocumentStore, Query, fetch_all_documents
from .model import Holiday
from .repository import HolidayRepository


class DocumentHolidayRepository(HolidayRepository):
    def __init__(self, store: DocumentStore, *, collection: str = "holidays"):
        self._store = store
        self._collection = collection

    def _to_holiday(self, doc: Document) -> Holiday:
        return Holiday(
            holiday_id=doc.document_id,
            batch_id=str(doc.data.get("batchId")),
            date=parse_iso_date(doc.data["date"]),
            holiday_text=doc.data.get("holidayText") or None,
        )

    def list_for_batch(
        self,
        batch_id: str,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[Holiday]:
        queries = [Query.equal("batchId", batch_id)]
        if start is not None:
            queries.append(Query.greater_than_equal("date", format_iso_date(start)))
        if end is not None:
            queries.append(Query.less_than_equal("date", format_iso_date(end)))
        queries.append(Query.order_asc("date"))
        return [self._to_holiday(d) for d in fetch_all_documents(self._store, self._collection, queries)]

    def list_for_date(self, day: date) -> Sequence[Holiday]:
        docs = fetch_all_documents(self._store, self._collection, [Query.equal("date", format_iso_date(day))])
        return [self._to_holiday(d) for d in docs]

    def get_by_id(self, holiday_id: str) -> Optional[Holiday]:
        try:
            return self._to_holiday(self._store.get(self._collection, holiday_id))
        except NotFoundError:
            return None

    def create(self, *, batch_id: str, day: date, holiday_text: Optional[str]) -> Holiday:
        doc = self._store.create(
            self._collection,
            {"batchId": batch_id, "date": format_iso_date(day), "holidayText": holiday_text},
        )
        return self._to_holiday(doc)

    def update(self, holiday_id: str, *, day: Optional[date] = None, holiday_text: Optional[str] = None) -> Holiday:
        fields: dict = {}
        if day is not None:
            fields["date"] = format_iso_date(day)
        if holiday_text is not None:
            fields["holidayText"] = holiday_text
        return self._to_holiday(self._store.update(self._collection, holiday_id, fields))

    def delete(self, holiday_id: str) -> None:
        self._store.delete(self._collection, holiday_id)
