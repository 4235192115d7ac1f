"""Generic document-store contract.

Collections hold schemaless JSON documents addressed by string ids. Lookups
are expressed with :class:`Query` values, mirroring the hosted document
database the application was designed against (equality, membership,
not-equal, range, projection, ordering and limit/offset pagination).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Protocol, Sequence

from ..core.constants import DOCUMENT_PAGE_LIMIT


@dataclass(frozen=True)
class Document:
    document_id: str
    collection: str
    data: dict
    revision: int = 1


@dataclass(frozen=True)
class Query:
    method: str
    attribute: Optional[str] = None
    values: tuple = ()

    @classmethod
    def equal(cls, attribute: str, value: Any) -> "Query":
        """Equality; a list/tuple/set value means membership ("in")."""
        if isinstance(value, (list, tuple, set, frozenset)):
            return cls("equal", attribute, tuple(value))
        return cls("equal", attribute, (value,))

    @classmethod
    def is_in(cls, attribute: str, values: Iterable[Any]) -> "Query":
        return cls("equal", attribute, tuple(values))

    @classmethod
    def not_equal(cls, attribute: str, value: Any) -> "Query":
        return cls("notEqual", attribute, (value,))

    @classmethod
    def greater_than_equal(cls, attribute: str, value: Any) -> "Query":
        return cls("greaterThanEqual", attribute, (value,))

    @classmethod
    def less_than_equal(cls, attribute: str, value: Any) -> "Query":
        return cls("lessThanEqual", attribute, (value,))

    @classmethod
    def select(cls, attributes: Iterable[str]) -> "Query":
        return cls("select", None, tuple(attributes))

    @classmethod
    def order_asc(cls, attribute: str) -> "Query":
        return cls("orderAsc", attribute)

    @classmethod
    def order_desc(cls, attribute: str) -> "Query":
        return cls("orderDesc", attribute)

    @classmethod
    def limit(cls, n: int) -> "Query":
        return cls("limit", None, (int(n),))

    @classmethod
    def offset(cls, n: int) -> "Query":
        return cls("offset", None, (int(n),))


FILTER_METHODS = {"equal", "notEqual", "greaterThanEqual", "lessThanEqual"}


def normalize_value(value: Any) -> Optional[str]:
    """Scalar comparison form shared by every store implementation.

    Matches how MySQL renders ``JSON_UNQUOTE(JSON_EXTRACT(...))``.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass
class QueryPlan:
    """Queries split by concern so stores can translate them."""

    filters: list[Query] = field(default_factory=list)
    select: Optional[tuple] = None
    orders: list[tuple[str, bool]] = field(default_factory=list)
    limit: Optional[int] = None
    offset: int = 0

    @classmethod
    def from_queries(cls, queries: Sequence[Query]) -> "QueryPlan":
        plan = cls()
        for q in queries or ():
            if q.method in FILTER_METHODS:
                plan.filters.append(q)
            elif q.method == "select":
                plan.select = q.values
            elif q.method in {"orderAsc", "orderDesc"}:
                plan.orders.append((q.attribute, q.method == "orderDesc"))
            elif q.method == "limit":
                plan.limit = int(q.values[0])
            elif q.method == "offset":
                plan.offset = int(q.values[0])
            else:
                raise ValueError(f"Unsupported query method: {q.method}")
        return plan

    def matches(self, data: dict) -> bool:
        for f in self.filters:
            actual = normalize_value(data.get(f.attribute))
            expected = [normalize_value(v) for v in f.values]
            if f.method == "equal" and actual not in expected:
                return False
            if f.method == "notEqual" and actual == expected[0]:
                return False
            if f.method == "greaterThanEqual" and (actual is None or actual < expected[0]):
                return False
            if f.method == "lessThanEqual" and (actual is None or actual > expected[0]):
                return False
        return True

    def project(self, data: dict) -> dict:
        if not self.select:
            return dict(data)
        return {k: data[k] for k in self.select if k in data}


class DocumentStore(Protocol):
    def list(self, collection: str, queries: Sequence[Query] = ()) -> Sequence[Document]:
        raise NotImplementedError

    def get(self, collection: str, document_id: str) -> Document:
        """Raise NotFoundError when the document does not exist."""

        raise NotImplementedError

    def create(self, collection: str, fields: dict, *, document_id: Optional[str] = None) -> Document:
        raise NotImplementedError

    def update(
        self,
        collection: str,
        document_id: str,
        fields: dict,
        *,
        expected_revision: Optional[int] = None,
    ) -> Document:
        """Partial update. A stale ``expected_revision`` raises ConcurrentUpdateError."""

        raise NotImplementedError

    def delete(self, collection: str, document_id: str) -> None:
        raise NotImplementedError


def fetch_all_documents(
    store: DocumentStore,
    collection: str,
    queries: Sequence[Query] = (),
    *,
    page_size: int = DOCUMENT_PAGE_LIMIT,
) -> list[Document]:
    """Read every matching document, page by page."""
    documents: list[Document] = []
    offset = 0
    while True:
        page = list(store.list(collection, [*queries, Query.limit(page_size), Query.offset(offset)]))
        documents.extend(page)
        if len(page) < page_size:
            return documents
        offset += len(page)
