from __future__ import annotations

import copy
import json
import threading
from datetime import datetime
from typing import Optional

import pytest

from campus_attendance.core.exceptions import ConcurrentUpdateError, NotFoundError, StoreError
from campus_attendance.database.document_store import Document, QueryPlan, normalize_value


class InMemoryDocumentStore:
    """Thread-safe fake of the document store; insertion order is store order."""

    def __init__(self):
        self._docs: dict[str, dict[str, Document]] = {}
        self._lock = threading.Lock()
        self._seq = 0
        self.deleted: list[str] = []
        self.fail_on: set[str] = set()
        self.list_calls = 0

    def _check(self, method: str) -> None:
        if method in self.fail_on:
            raise StoreError(f"{method} failed. Network is unreachable. Try again later")

    def seed(self, collection: str, fields: dict, *, document_id: Optional[str] = None) -> Document:
        with self._lock:
            self._seq += 1
            doc_id = document_id or f"doc-{self._seq}"
            doc = Document(doc_id, collection, copy.deepcopy(fields), 1)
            self._docs.setdefault(collection, {})[doc_id] = doc
            return doc

    def documents(self, collection: str) -> list[Document]:
        return list(self._docs.get(collection, {}).values())

    def list(self, collection, queries=()):
        self._check("list")
        self.list_calls += 1
        plan = QueryPlan.from_queries(queries)
        with self._lock:
            docs = [d for d in self._docs.get(collection, {}).values() if plan.matches(d.data)]
        for attribute, descending in reversed(plan.orders):
            docs.sort(key=lambda d: normalize_value(d.data.get(attribute)) or "", reverse=descending)
        end = None if plan.limit is None else plan.offset + plan.limit
        return [
            Document(d.document_id, d.collection, plan.project(copy.deepcopy(d.data)), d.revision)
            for d in docs[plan.offset : end]
        ]

    def get(self, collection, document_id):
        self._check("get")
        with self._lock:
            doc = self._docs.get(collection, {}).get(document_id)
        if doc is None:
            raise NotFoundError(f"{collection}/{document_id} not found")
        return Document(doc.document_id, doc.collection, copy.deepcopy(doc.data), doc.revision)

    def create(self, collection, fields, *, document_id=None):
        self._check("create")
        return self.seed(collection, fields, document_id=document_id)

    def update(self, collection, document_id, fields, *, expected_revision=None):
        self._check("update")
        with self._lock:
            current = self._docs.get(collection, {}).get(document_id)
            if current is None:
                raise NotFoundError(f"{collection}/{document_id} not found")
            if expected_revision is not None and current.revision != expected_revision:
                raise ConcurrentUpdateError(f"{collection}/{document_id} changed")
            doc = Document(document_id, collection, {**current.data, **copy.deepcopy(fields)}, current.revision + 1)
            self._docs[collection][document_id] = doc
            return Document(doc.document_id, doc.collection, copy.deepcopy(doc.data), doc.revision)

    def delete(self, collection, document_id):
        self._check("delete")
        with self._lock:
            if self._docs.get(collection, {}).pop(document_id, None) is None:
                raise NotFoundError(f"{collection}/{document_id} not found")
            self.deleted.append(document_id)


def seed_batch(store: InMemoryDocumentStore, batch_id: str = "b1", **overrides) -> None:
    fields = {
        "BatchName": "Electrician 2025",
        "location": json.dumps({"lat": 10.7769, "lon": 106.7009}),
        "circleRadius": 200,
        "attendanceTime": json.dumps({"start": "09:00", "end": "17:00"}),
        "canMarkPrevious": False,
        "start_date": "2025-01-01",
        "studentIds": ["s1", "s2", "s3"],
        "isActive": True,
    }
    fields.update(overrides)
    store.seed("batches", fields, document_id=batch_id)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 3, 10, 9, 30, 0)


@pytest.fixture
def add_batch(store):
    def _add(batch_id: str = "b1", **overrides) -> None:
        seed_batch(store, batch_id, **overrides)

    return _add
