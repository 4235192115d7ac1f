from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

from ..common.datetime_utils import parse_iso_date
from ..core.exceptions import NotFoundError
from ..database.document_store import Document, DocumentStore, Query, fetch_all_documents
from .model import AttendanceWindow, Batch, GeoPoint
from .repository import BatchRepository

logger = logging.getLogger(__name__)


def _maybe_json(value: Any) -> Any:
    # Batch forms saved nested objects as JSON strings.
    if isinstance(value, str) and value.strip().startswith(("{", "[")):
        return json.loads(value)
    return value


def _to_location(value: Any) -> Optional[GeoPoint]:
    try:
        value = _maybe_json(value)
    except ValueError:
        logger.warning("Unreadable batch location %r", value)
        return None
    if not isinstance(value, dict):
        return None
    lat, lon = value.get("lat"), value.get("lon", value.get("lng"))
    if lat is None or lon is None:
        return None
    try:
        return GeoPoint(lat=float(lat), lon=float(lon))
    except (TypeError, ValueError):
        logger.warning("Invalid batch coordinates lat=%r lon=%r", lat, lon)
        return None


def _to_window(value: Any) -> Optional[AttendanceWindow]:
    value = _maybe_json(value)
    if not isinstance(value, dict) or not value.get("start") or not value.get("end"):
        return None
    return AttendanceWindow(start=str(value["start"]), end=str(value["end"]))


def extract_student_ids(raw: Any) -> tuple[str, ...]:
    """Normalize studentIds entries: plain ids, JSON strings or objects with userId."""
    if not isinstance(raw, list):
        return ()

    seen: dict[str, None] = {}
    for entry in raw:
        if not entry:
            continue
        if isinstance(entry, str):
            try:
                parsed = _maybe_json(entry)
            except ValueError:
                parsed = entry
            if isinstance(parsed, dict):
                if parsed.get("userId"):
                    seen[str(parsed["userId"])] = None
            elif isinstance(parsed, str):
                seen[parsed] = None
        elif isinstance(entry, dict) and entry.get("userId"):
            seen[str(entry["userId"])] = None
    return tuple(seen)


class DocumentBatchRepository(BatchRepository):
    def __init__(self, store: DocumentStore, *, collection: str = "batches"):
        self._store = store
        self._collection = collection

    def _to_batch(self, doc: Document) -> Batch:
        d = doc.data
        start_date = d.get("start_date")
        return Batch(
            batch_id=doc.document_id,
            batch_name=str(d.get("BatchName") or d.get("batchName") or ""),
            location=_to_location(d.get("location")),
            circle_radius=float(d.get("circleRadius") or 0),
            attendance_time=_to_window(d.get("attendanceTime")),
            can_mark_previous=bool(d.get("canMarkPrevious", False)),
            start_date=parse_iso_date(start_date) if start_date else None,
            student_ids=extract_student_ids(d.get("studentIds")),
            is_active=bool(d.get("isActive", True)),
        )

    def get_by_id(self, batch_id: str) -> Optional[Batch]:
        try:
            doc = self._store.get(self._collection, batch_id)
        except NotFoundError:
            return None
        return self._to_batch(doc)

    def list_active(self) -> Sequence[Batch]:
        docs = fetch_all_documents(self._store, self._collection, [Query.equal("isActive", True)])
        return [self._to_batch(d) for d in docs]
