import pytest

from campus_attendance.database.document_store import Query, QueryPlan, fetch_all_documents


def test_plan_splits_queries_by_concern():
    plan = QueryPlan.from_queries(
        [
            Query.equal("batchId", "b1"),
            Query.select(["userId"]),
            Query.order_desc("date"),
            Query.limit(10),
            Query.offset(20),
        ]
    )
    assert [f.attribute for f in plan.filters] == ["batchId"]
    assert plan.select == ("userId",)
    assert plan.orders == [("date", True)]
    assert (plan.limit, plan.offset) == (10, 20)


def test_unsupported_method_is_rejected():
    with pytest.raises(ValueError):
        QueryPlan.from_queries([Query("search", "name", ("x",))])


@pytest.mark.parametrize(
    "query, data, expected",
    [
        (Query.equal("isActive", True), {"isActive": True}, True),
        (Query.equal("isActive", True), {"isActive": False}, False),
        (Query.equal("userId", ["a", "b"]), {"userId": "b"}, True),
        (Query.is_in("userId", ["a", "b"]), {"userId": "c"}, False),
        (Query.not_equal("status", "x"), {"status": "y"}, True),
        (Query.greater_than_equal("date", "2025-03-01"), {"date": "2025-03-01"}, True),
        (Query.less_than_equal("date", "2025-03-01"), {"date": "2025-03-02"}, False),
        (Query.greater_than_equal("date", "2025-03-01"), {}, False),
    ],
)
def test_filter_matching(query, data, expected):
    assert QueryPlan.from_queries([query]).matches(data) is expected


def test_projection():
    plan = QueryPlan.from_queries([Query.select(["a", "missing"])])
    assert plan.project({"a": 1, "b": 2}) == {"a": 1}


def test_fetch_all_stops_on_short_page(store):
    for i in range(25):
        store.seed("things", {"n": i})

    docs = fetch_all_documents(store, "things", page_size=10)

    assert len(docs) == 25
    assert store.list_calls == 3


def test_fetch_all_full_last_page_needs_one_more_call(store):
    for i in range(20):
        store.seed("things", {"n": i})

    assert len(fetch_all_documents(store, "things", page_size=10)) == 20
    assert store.list_calls == 3
