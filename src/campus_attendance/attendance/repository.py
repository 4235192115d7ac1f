from __future__ import annotations

import logging
from typing import Iterable, Optional, Protocol, Sequence

from ..core.exceptions import NotFoundError, StoreError
from ..database.document_store import Document, DocumentStore, Query, fetch_all_documents
from .codec import aggregate_from_document, aggregate_to_fields, encode_records
from .model import AttendanceRecord, UserAttendanceAggregate

logger = logging.getLogger(__name__)

_IN_QUERY_CHUNK = 100


class AttendanceRepository(Protocol):
    def get_user_attendance(self, user_id: str, batch_id: Optional[str] = None) -> Optional[UserAttendanceAggregate]:
        """None when the user has no aggregate yet. May delete duplicate documents."""

        raise NotImplementedError

    def mark_user_attendance(
        self,
        record: UserAttendanceAggregate,
        *,
        keep_previous: bool = True,
    ) -> UserAttendanceAggregate:
        raise NotImplementedError

    def delete_user_attendance(self, document_id: str) -> None:
        raise NotImplementedError

    def get_batch_attendance(self, batch_id: str) -> Sequence[UserAttendanceAggregate]:
        raise NotImplementedError

    def get_students_attendance(
        self,
        user_ids: Iterable[str],
        *,
        batch_id: Optional[str] = None,
    ) -> Sequence[UserAttendanceAggregate]:
        raise NotImplementedError


def dedupe_by_date(records: Iterable[AttendanceRecord]) -> list[AttendanceRecord]:
    """Collapse records sharing a date; the later one wins."""
    by_date: dict = {}
    for r in records:
        by_date.pop(r.date, None)
        by_date[r.date] = r
    return list(by_date.values())


def merge_records(
    existing: Iterable[AttendanceRecord],
    incoming: Iterable[AttendanceRecord],
    *,
    keep_previous: bool = True,
) -> list[AttendanceRecord]:
    """Upsert-by-date merge, or a full replace when keep_previous is False."""
    incoming = dedupe_by_date(incoming)
    if not keep_previous:
        return incoming

    new_dates = {r.date for r in incoming}
    kept = [r for r in dedupe_by_date(existing) if r.date not in new_dates]
    return kept + incoming


def _record_count(doc: Document) -> int:
    return len(doc.data.get("attendanceRecords") or [])


class DocumentAttendanceRepository(AttendanceRepository):
    def __init__(self, store: DocumentStore, *, collection: str = "studentAttendance"):
        self._store = store
        self._collection = collection

    def _decode(self, doc: Document) -> UserAttendanceAggregate:
        try:
            return aggregate_from_document(doc)
        except (ValueError, TypeError) as e:
            raise StoreError(f"Malformed attendance document {doc.document_id}: {e}") from e

    def _reconcile(self, docs: Sequence[Document]) -> Document:
        """Keep the document with the most records and delete the rest.

        Ties keep the first one in store order.
        """
        keep = max(docs, key=_record_count)
        for doc in docs:
            if doc.document_id == keep.document_id:
                continue
            logger.warning(
                "Deleting duplicate attendance document %s for user %s (kept %s with %d records)",
                doc.document_id,
                doc.data.get("userId"),
                keep.document_id,
                _record_count(keep),
            )
            try:
                self.delete_user_attendance(doc.document_id)
            except NotFoundError:
                # Another reader already repaired it.
                logger.debug("Duplicate %s already deleted", doc.document_id)
        return keep

    def get_user_attendance(self, user_id: str, batch_id: Optional[str] = None) -> Optional[UserAttendanceAggregate]:
        queries = [Query.equal("userId", user_id)]
        if batch_id is not None:
            queries.append(Query.equal("batchId", batch_id))
        docs = fetch_all_documents(self._store, self._collection, queries)

        if not docs:
            return None
        if len(docs) == 1:
            return self._decode(docs[0])

        # Duplicates are only meaningful within one (userId, batchId) pair.
        by_batch: dict = {}
        for doc in docs:
            by_batch.setdefault(doc.data.get("batchId"), []).append(doc)

        winners = [group[0] if len(group) == 1 else self._reconcile(group) for group in by_batch.values()]
        return self._decode(max(winners, key=_record_count))

    def mark_user_attendance(
        self,
        record: UserAttendanceAggregate,
        *,
        keep_previous: bool = True,
    ) -> UserAttendanceAggregate:
        incoming = dedupe_by_date(record.attendance_records)
        existing = self.get_user_attendance(record.user_id, record.batch_id)

        if existing is None:
            fresh = UserAttendanceAggregate(
                user_id=record.user_id,
                batch_id=record.batch_id,
                user_name=record.user_name,
                attendance_records=incoming,
            )
            doc = self._store.create(self._collection, aggregate_to_fields(fresh))
            logger.info("Created attendance aggregate %s for user %s", doc.document_id, record.user_id)
            return self._decode(doc)

        merged = merge_records(existing.attendance_records, incoming, keep_previous=keep_previous)
        fields = {"attendanceRecords": encode_records(merged)}
        if record.user_name and record.user_name != existing.user_name:
            fields["userName"] = record.user_name

        doc = self._store.update(
            self._collection,
            existing.document_id,
            fields,
            expected_revision=existing.revision,
        )
        logger.debug(
            "Merged %d record(s) into %s (keep_previous=%s, total=%d)",
            len(incoming),
            existing.document_id,
            keep_previous,
            len(merged),
        )
        return self._decode(doc)

    def delete_user_attendance(self, document_id: str) -> None:
        self._store.delete(self._collection, document_id)

    def get_batch_attendance(self, batch_id: str) -> Sequence[UserAttendanceAggregate]:
        docs = fetch_all_documents(self._store, self._collection, [Query.equal("batchId", batch_id)])
        return [self._decode(d) for d in docs]

    def get_students_attendance(
        self,
        user_ids: Iterable[str],
        *,
        batch_id: Optional[str] = None,
    ) -> Sequence[UserAttendanceAggregate]:
        ids = list(dict.fromkeys(user_ids))
        out: list[UserAttendanceAggregate] = []
        for i in range(0, len(ids), _IN_QUERY_CHUNK):
            queries = [Query.is_in("userId", ids[i : i + _IN_QUERY_CHUNK])]
            if batch_id is not None:
                queries.append(Query.equal("batchId", batch_id))
            out.extend(self._decode(d) for d in fetch_all_documents(self._store, self._collection, queries))
        return out
