import json
from dataclasses import replace
from datetime import date, timedelta

import pytest

from campus_attendance.attendance.model import AttendanceRecord, UserAttendanceAggregate
from campus_attendance.attendance.repository import DocumentAttendanceRepository, merge_records
from campus_attendance.core.enums import AttendanceStatus
from campus_attendance.core.exceptions import ConcurrentUpdateError, StoreError

COLLECTION = "studentAttendance"


def _record(day: date, status=AttendanceStatus.PRESENT, **kwargs) -> AttendanceRecord:
    return AttendanceRecord(date=day, attendance_status=status, **kwargs)


def _aggregate(*records, user_id="s1", batch_id="b1", user_name=None) -> UserAttendanceAggregate:
    return UserAttendanceAggregate(
        user_id=user_id,
        batch_id=batch_id,
        user_name=user_name,
        attendance_records=list(records),
    )


def _raw_records(n: int, start=date(2025, 3, 1)) -> list[str]:
    return [
        json.dumps({"date": (start + timedelta(days=i)).isoformat(), "attendanceStatus": "Present"})
        for i in range(n)
    ]


@pytest.fixture
def repo(store):
    return DocumentAttendanceRepository(store, collection=COLLECTION)


def test_first_mark_creates_document_with_json_string_records(repo, store):
    saved = repo.mark_user_attendance(
        _aggregate(_record(date(2025, 3, 10), in_time="09:30"), user_name="An")
    )

    docs = store.documents(COLLECTION)
    assert len(docs) == 1
    raw = docs[0].data["attendanceRecords"]
    assert all(isinstance(r, str) for r in raw)
    assert json.loads(raw[0]) == {"date": "2025-03-10", "attendanceStatus": "Present", "inTime": "09:30"}
    assert docs[0].data["userName"] == "An"
    assert saved.document_id == docs[0].document_id
    assert saved.record_for(date(2025, 3, 10)).in_time == "09:30"


def test_mark_upserts_by_date(repo, store):
    repo.mark_user_attendance(_aggregate(_record(date(2025, 3, 10)), _record(date(2025, 3, 11))))
    updated = repo.mark_user_attendance(
        _aggregate(_record(date(2025, 3, 11), AttendanceStatus.ABSENT, reason="sick"), _record(date(2025, 3, 12)))
    )

    assert len(store.documents(COLLECTION)) == 1
    assert updated.dates() == {date(2025, 3, 10), date(2025, 3, 11), date(2025, 3, 12)}
    assert updated.record_for(date(2025, 3, 11)).attendance_status == AttendanceStatus.ABSENT
    assert updated.record_for(date(2025, 3, 11)).reason == "sick"
    assert updated.record_for(date(2025, 3, 10)).attendance_status == AttendanceStatus.PRESENT


def test_remarking_same_records_is_idempotent(repo):
    first = repo.mark_user_attendance(_aggregate(_record(date(2025, 3, 10)), _record(date(2025, 3, 11))))
    again = repo.mark_user_attendance(_aggregate(*first.attendance_records))
    assert sorted(again.attendance_records, key=lambda r: r.date) == sorted(
        first.attendance_records, key=lambda r: r.date
    )


def test_keep_previous_false_replaces_all_records(repo):
    repo.mark_user_attendance(_aggregate(_record(date(2025, 3, 10)), _record(date(2025, 3, 11))))
    replaced = repo.mark_user_attendance(_aggregate(_record(date(2025, 3, 12))), keep_previous=False)
    assert replaced.dates() == {date(2025, 3, 12)}


def test_duplicate_incoming_dates_collapse_to_last():
    day = date(2025, 3, 10)
    merged = merge_records([], [_record(day), _record(day, AttendanceStatus.LEAVE)])
    assert merged == [_record(day, AttendanceStatus.LEAVE)]


def test_duplicate_documents_reconcile_to_largest(repo, store):
    for n in (2, 5, 3):
        store.seed(COLLECTION, {"userId": "s1", "batchId": "b1", "attendanceRecords": _raw_records(n)})
    largest = store.documents(COLLECTION)[1].document_id

    aggregate = repo.get_user_attendance("s1", "b1")

    assert aggregate.document_id == largest
    assert len(aggregate.attendance_records) == 5
    assert len(store.deleted) == 2
    assert [d.document_id for d in store.documents(COLLECTION)] == [largest]
    assert repo.get_user_attendance("s1", "b1").document_id == largest


def test_reconcile_tie_keeps_first_in_store_order(repo, store):
    first = store.seed(COLLECTION, {"userId": "s1", "batchId": "b1", "attendanceRecords": _raw_records(3)})
    store.seed(COLLECTION, {"userId": "s1", "batchId": "b1", "attendanceRecords": _raw_records(3)})

    assert repo.get_user_attendance("s1", "b1").document_id == first.document_id
    assert len(store.deleted) == 1


def test_documents_from_other_batches_are_not_deleted(repo, store):
    store.seed(COLLECTION, {"userId": "s1", "batchId": "b1", "attendanceRecords": _raw_records(2)})
    other = store.seed(COLLECTION, {"userId": "s1", "batchId": "b2", "attendanceRecords": _raw_records(4)})

    aggregate = repo.get_user_attendance("s1")

    assert aggregate.document_id == other.document_id
    assert store.deleted == []
    assert repo.get_user_attendance("s1", "b1").batch_id == "b1"


def test_failed_update_leaves_document_untouched(repo, store):
    repo.mark_user_attendance(_aggregate(_record(date(2025, 3, 10))))
    before = store.documents(COLLECTION)[0]
    store.fail_on = {"update"}

    with pytest.raises(StoreError) as exc:
        repo.mark_user_attendance(_aggregate(_record(date(2025, 3, 11))))

    assert "Network is unreachable" in str(exc.value)
    after = store.documents(COLLECTION)[0]
    assert after.data == before.data
    assert after.revision == before.revision


def test_stale_revision_is_rejected(repo, store, monkeypatch):
    repo.mark_user_attendance(_aggregate(_record(date(2025, 3, 10))))
    stale = repo.get_user_attendance("s1", "b1")
    repo.mark_user_attendance(_aggregate(_record(date(2025, 3, 11))))

    monkeypatch.setattr(repo, "get_user_attendance", lambda user_id, batch_id=None: stale)
    with pytest.raises(ConcurrentUpdateError):
        repo.mark_user_attendance(_aggregate(_record(date(2025, 3, 12))))

    assert len(store.documents(COLLECTION)[0].data["attendanceRecords"]) == 2


def test_legacy_lowercase_status_key_decodes(repo, store):
    store.seed(
        COLLECTION,
        {
            "userId": "s1",
            "batchId": "b1",
            "attendanceRecords": [
                json.dumps({"date": "2025-03-10", "status": "present"}),
                json.dumps({"date": "2025-03-11", "isHoliday": True, "holidayText": "Tet"}),
            ],
        },
    )

    aggregate = repo.get_user_attendance("s1", "b1")

    assert aggregate.record_for(date(2025, 3, 10)).attendance_status == AttendanceStatus.PRESENT
    holiday = aggregate.record_for(date(2025, 3, 11))
    assert holiday.attendance_status == AttendanceStatus.HOLIDAY
    assert holiday.holiday_text == "Tet"


@pytest.mark.parametrize("raw", ["{\"reason\": \"x\"}", 7, ["2025-03-10"], "not json"])
def test_malformed_document_raises_store_error(repo, store, raw):
    store.seed(COLLECTION, {"userId": "s1", "batchId": "b1", "attendanceRecords": [raw]})
    with pytest.raises(StoreError):
        repo.get_user_attendance("s1", "b1")


def test_batch_attendance_reads_every_page(repo, store):
    for i in range(150):
        store.seed(COLLECTION, {"userId": f"s{i}", "batchId": "b1", "attendanceRecords": _raw_records(1)})
    store.seed(COLLECTION, {"userId": "x", "batchId": "b2", "attendanceRecords": _raw_records(1)})

    aggregates = repo.get_batch_attendance("b1")

    assert len(aggregates) == 150
    assert store.list_calls == 2


def test_students_attendance_filters_by_ids_and_batch(repo, store):
    store.seed(COLLECTION, {"userId": "s1", "batchId": "b1", "attendanceRecords": _raw_records(1)})
    store.seed(COLLECTION, {"userId": "s2", "batchId": "b1", "attendanceRecords": _raw_records(2)})
    store.seed(COLLECTION, {"userId": "s2", "batchId": "b2", "attendanceRecords": _raw_records(3)})
    store.seed(COLLECTION, {"userId": "s3", "batchId": "b1", "attendanceRecords": _raw_records(1)})

    found = repo.get_students_attendance(["s1", "s2", "s2"], batch_id="b1")

    assert sorted(a.user_id for a in found) == ["s1", "s2"]
    assert {a.batch_id for a in found} == {"b1"}


def test_user_name_change_is_stored(repo, store):
    repo.mark_user_attendance(_aggregate(_record(date(2025, 3, 10)), user_name="An"))
    updated = repo.mark_user_attendance(replace(_aggregate(_record(date(2025, 3, 11))), user_name="An Nguyen"))
    assert updated.user_name == "An Nguyen"
    assert store.documents(COLLECTION)[0].data["userName"] == "An Nguyen"
