from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def normalize_mysql_json(value: Any) -> Dict[str, Any]:
    """Normalize MySQL JSON column values across connector implementations.

    mysql-connector can return JSON as:
    - str
    - bytes / bytearray
    - an already decoded dict (C extension with some server versions)
    """

    if value is None:
        return {}

    if isinstance(value, dict):
        return dict(value)

    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")

    if isinstance(value, str):
        decoded = json.loads(value)
        if not isinstance(decoded, dict):
            raise ValueError(f"Document body is not an object: {value[:80]!r}")
        return decoded

    raise TypeError(f"Unsupported MySQL JSON value type: {type(value)!r}")
