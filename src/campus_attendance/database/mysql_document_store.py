from __future__ import annotations

import json
import logging
import uuid
from contextlib import contextmanager
from typing import Optional, Sequence

import mysql.connector

from ..core.exceptions import ConcurrentUpdateError, NotFoundError, StoreError
from .connection import DatabaseConnection
from .document_store import Document, Query, QueryPlan, normalize_value
from .mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_json

logger = logging.getLogger(__name__)

_EXTRACT = "JSON_UNQUOTE(JSON_EXTRACT(data, %s))"
_NO_LIMIT = 18446744073709551615


def _json_path(attribute: str) -> str:
    return '$."' + attribute.replace('"', '\\"') + '"'


@contextmanager
def _store_errors(action: str, collection: str):
    try:
        yield
    except mysql.connector.Error as e:
        logger.error("Document store %s failed on %s: %s", action, collection, e)
        raise StoreError(f"{action} {collection} failed: {e}") from e


class MySQLDocumentStore:
    """Document store persisted as JSON bodies in a single MySQL table."""

    def __init__(self, conn_factory: DatabaseConnection, *, table: str = "documents"):
        self._conn_factory = conn_factory
        self._table = table

    def _to_document(self, row: dict) -> Document:
        return Document(
            document_id=str(row["doc_id"]),
            collection=str(row["collection"]),
            data=normalize_mysql_json(row["data"]),
            revision=int(row["revision"]),
        )

    def list(self, collection: str, queries: Sequence[Query] = ()) -> Sequence[Document]:
        plan = QueryPlan.from_queries(queries)
        clauses = ["collection=%s"]
        params: list[object] = [collection]

        for f in plan.filters:
            values = [normalize_value(v) for v in f.values]
            if f.method == "equal":
                if not values:
                    return []
                placeholders = ",".join(["%s"] * len(values))
                clauses.append(f"{_EXTRACT} IN ({placeholders})")
                params.extend([_json_path(f.attribute), *values])
            elif f.method == "notEqual":
                clauses.append(f"({_EXTRACT} IS NULL OR {_EXTRACT} <> %s)")
                params.extend([_json_path(f.attribute), _json_path(f.attribute), values[0]])
            elif f.method == "greaterThanEqual":
                clauses.append(f"{_EXTRACT} >= %s")
                params.extend([_json_path(f.attribute), values[0]])
            elif f.method == "lessThanEqual":
                clauses.append(f"{_EXTRACT} <= %s")
                params.extend([_json_path(f.attribute), values[0]])

        order_parts = []
        for attribute, descending in plan.orders:
            order_parts.append(f"{_EXTRACT} {'DESC' if descending else 'ASC'}")
            params.append(_json_path(attribute))
        order_parts.append("seq ASC")

        sql = f"""
            SELECT doc_id, collection, data, revision
            FROM {self._table}
            WHERE {" AND ".join(clauses)}
            ORDER BY {", ".join(order_parts)}
        """
        if plan.limit is not None or plan.offset:
            sql += " LIMIT %s OFFSET %s"
            params.extend([plan.limit if plan.limit is not None else _NO_LIMIT, plan.offset])

        with _store_errors("list", collection):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(sql, tuple(params))
                rows = fetchall(cur)

        documents = [self._to_document(r) for r in rows]
        if plan.select:
            documents = [
                Document(d.document_id, d.collection, plan.project(d.data), d.revision) for d in documents
            ]
        return documents

    def get(self, collection: str, document_id: str) -> Document:
        with _store_errors("get", collection):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"""
                    SELECT doc_id, collection, data, revision
                    FROM {self._table}
                    WHERE collection=%s AND doc_id=%s
                    """,
                    (collection, document_id),
                )
                row = fetchone(cur)
        if not row:
            raise NotFoundError(f"{collection}/{document_id} not found")
        return self._to_document(row)

    def create(self, collection: str, fields: dict, *, document_id: Optional[str] = None) -> Document:
        document_id = document_id or uuid.uuid4().hex
        with _store_errors("create", collection):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"""
                    INSERT INTO {self._table}(collection, doc_id, data, revision)
                    VALUES(%s,%s,%s,1)
                    """,
                    (collection, document_id, json.dumps(fields)),
                )
        return Document(document_id=document_id, collection=collection, data=dict(fields), revision=1)

    def update(
        self,
        collection: str,
        document_id: str,
        fields: dict,
        *,
        expected_revision: Optional[int] = None,
    ) -> Document:
        with _store_errors("update", collection):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"""
                    SELECT doc_id, collection, data, revision
                    FROM {self._table}
                    WHERE collection=%s AND doc_id=%s
                    FOR UPDATE
                    """,
                    (collection, document_id),
                )
                row = fetchone(cur)
                if not row:
                    raise NotFoundError(f"{collection}/{document_id} not found")

                current = self._to_document(row)
                if expected_revision is not None and current.revision != int(expected_revision):
                    raise ConcurrentUpdateError(
                        f"{collection}/{document_id} changed (revision {current.revision}, expected {expected_revision})"
                    )

                merged = {**current.data, **fields}
                cur.execute(
                    f"""
                    UPDATE {self._table}
                    SET data=%s, revision=revision+1
                    WHERE collection=%s AND doc_id=%s
                    """,
                    (json.dumps(merged), collection, document_id),
                )
        return Document(document_id=document_id, collection=collection, data=merged, revision=current.revision + 1)

    def delete(self, collection: str, document_id: str) -> None:
        with _store_errors("delete", collection):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"DELETE FROM {self._table} WHERE collection=%s AND doc_id=%s",
                    (collection, document_id),
                )
                deleted = cur.rowcount > 0
        if not deleted:
            raise NotFoundError(f"{collection}/{document_id} not found")
