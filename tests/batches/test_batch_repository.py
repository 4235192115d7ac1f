import json
from datetime import date

import pytest

from campus_attendance.batches.document_batch_repository import DocumentBatchRepository, extract_student_ids
from campus_attendance.batches.model import AttendanceWindow, Batch, GeoPoint
from campus_attendance.batches.rules import validate_markable_date
from campus_attendance.core.exceptions import ValidationError


@pytest.fixture
def repo(store):
    return DocumentBatchRepository(store)


def test_decodes_json_encoded_fields(repo, add_batch):
    add_batch()

    batch = repo.get_by_id("b1")

    assert batch.batch_name == "Electrician 2025"
    assert batch.location == GeoPoint(lat=10.7769, lon=106.7009)
    assert batch.circle_radius == 200.0
    assert batch.attendance_time == AttendanceWindow("09:00", "17:00")
    assert batch.start_date == date(2025, 1, 1)
    assert batch.student_ids == ("s1", "s2", "s3")
    assert batch.can_mark_previous is False


def test_accepts_plain_objects_and_missing_window(repo, add_batch):
    add_batch("b2", location={"lat": 21.0285, "lng": 105.8542}, attendanceTime=None, batchName="Welding")
    batch = repo.get_by_id("b2")
    assert batch.location == GeoPoint(lat=21.0285, lon=105.8542)
    assert batch.attendance_time is None


def test_unknown_batch_is_none(repo):
    assert repo.get_by_id("missing") is None


def test_student_id_forms():
    raw = [
        "s1",
        json.dumps({"userId": "s2", "name": "Binh"}),
        {"userId": "s3"},
        "s1",
        "",
        None,
        {"name": "no id"},
    ]
    assert extract_student_ids(raw) == ("s1", "s2", "s3")
    assert extract_student_ids(None) == ()


def test_list_active_only(repo, add_batch):
    add_batch("b1")
    add_batch("b2", isActive=False)
    add_batch("b3")
    assert [b.batch_id for b in repo.list_active()] == ["b1", "b3"]


TODAY = date(2025, 3, 10)


def test_only_today_when_previous_not_allowed():
    batch = Batch(batch_id="b1", start_date=date(2025, 1, 1))
    validate_markable_date(batch, TODAY, today=TODAY)
    with pytest.raises(ValidationError):
        validate_markable_date(batch, date(2025, 3, 9), today=TODAY)


def test_previous_days_from_start_date():
    batch = Batch(batch_id="b1", can_mark_previous=True, start_date=date(2025, 3, 1))
    validate_markable_date(batch, date(2025, 3, 1), today=TODAY)
    with pytest.raises(ValidationError):
        validate_markable_date(batch, date(2025, 2, 28), today=TODAY)


def test_future_dates_never_allowed():
    batch = Batch(batch_id="b1", can_mark_previous=True)
    with pytest.raises(ValidationError):
        validate_markable_date(batch, date(2025, 3, 11), today=TODAY)


@pytest.mark.parametrize(
    "location",
    [{"lat": "north", "lon": 106.7}, json.dumps({"lat": [1], "lon": 2}), "{not json", {"lat": 10.7}],
)
def test_unreadable_location_is_treated_as_missing(repo, add_batch, location):
    add_batch(location=location)
    batch = repo.get_by_id("b1")
    assert batch.location is None
    assert batch.student_ids == ("s1", "s2", "s3")
