from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from ..batches.model import GeoPoint
from ..common.datetime_utils import parse_iso_date
from ..common.validators import require_non_empty, require_time_of_day
from ..core.exceptions import ConcurrentUpdateError, NotFoundError, StoreError, ValidationError
from ..container import Container
from .codec import aggregate_to_dict, decode_records
from .model import UserAttendanceAggregate

logger = logging.getLogger(__name__)


def error_response(e: Exception):
    if isinstance(e, ValidationError):
        return jsonify({"success": False, "message": str(e)}), 400
    if isinstance(e, NotFoundError):
        return jsonify({"success": False, "message": str(e)}), 404
    if isinstance(e, ConcurrentUpdateError):
        return jsonify({"success": False, "message": "Attendance changed meanwhile, please retry"}), 409
    if isinstance(e, StoreError):
        return jsonify({"success": False, "message": str(e)}), 502
    logger.exception("Unhandled error")
    return jsonify({"success": False, "message": "Internal error"}), 500


def _parse_aggregate(data: dict, *, batch_id: str | None = None) -> UserAttendanceAggregate:
    if not isinstance(data, dict):
        raise ValidationError("Each attendance entry must be an object")
    try:
        records = decode_records(data.get("attendanceRecords") or [])
    except ValueError as e:
        raise ValidationError(str(e)) from e
    for r in records:
        require_time_of_day(r.in_time, "inTime")
        require_time_of_day(r.out_time, "outTime")
    return UserAttendanceAggregate(
        user_id=str(data.get("userId") or ""),
        batch_id=batch_id or data.get("batchId"),
        user_name=data.get("userName"),
        attendance_records=records,
    )


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _keep_previous(data: dict) -> bool:
    value = data.get("keepPrevious", True)
    if not isinstance(value, bool):
        raise ValidationError("keepPrevious must be true or false")
    return value


def _parse_location(value) -> GeoPoint | None:
    if not isinstance(value, dict):
        return None
    try:
        return GeoPoint(lat=float(value["lat"]), lon=float(value["lon"]))
    except (KeyError, TypeError, ValueError):
        return None


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="api_attendance_check_in")
    def api_attendance_check_in():
        """Geofenced self check-in for today."""
        try:
            data = json_body()
            result = service.self_check_in(
                user_id=require_non_empty(data.get("userId"), "userId"),
                batch_id=require_non_empty(data.get("batchId"), "batchId"),
                user_name=data.get("userName"),
                device_location=_parse_location(data.get("location")),
            )
            return jsonify(
                {
                    "success": True,
                    "eligibility": result.eligibility.to_dict(),
                    "attendance": aggregate_to_dict(result.aggregate),
                }
            ), 200
        except Exception as e:
            return error_response(e)

    @app.route("/api/attendance/mark", methods=["POST"], endpoint="api_attendance_mark")
    def api_attendance_mark():
        try:
            data = json_body()
            aggregate = service.mark_user_attendance(
                _parse_aggregate(data),
                keep_previous=_keep_previous(data),
                enforce_calendar=True,
            )
            return jsonify({"success": True, "attendance": aggregate_to_dict(aggregate)}), 200
        except Exception as e:
            return error_response(e)

    @app.route("/api/attendance/<user_id>", methods=["GET"], endpoint="api_attendance_user")
    def api_attendance_user(user_id: str):
        try:
            aggregate = service.get_user_attendance(user_id, request.args.get("batchId") or None)
            if aggregate is None:
                return jsonify({"success": False, "message": "No attendance yet"}), 404
            return jsonify({"success": True, "attendance": aggregate_to_dict(aggregate)}), 200
        except Exception as e:
            return error_response(e)

    @app.route("/api/attendance/<user_id>/stats", methods=["GET"], endpoint="api_attendance_stats")
    def api_attendance_stats(user_id: str):
        stats = service.get_user_stats_for_display(user_id, request.args.get("batchId") or None)
        if stats is None:
            return jsonify({"success": False, "stats": None}), 200
        return jsonify({"success": True, "stats": stats.to_dict()}), 200

    @app.route("/api/batches/<batch_id>/attendance", methods=["GET"], endpoint="api_batch_attendance")
    def api_batch_attendance(batch_id: str):
        try:
            user_ids = [u for u in request.args.getlist("userId") if u]
            if user_ids:
                aggregates = service.get_students_attendance(user_ids, batch_id=batch_id)
            else:
                aggregates = service.get_batch_attendance(batch_id)
            return jsonify({"success": True, "attendance": [aggregate_to_dict(a) for a in aggregates]}), 200
        except Exception as e:
            return error_response(e)

    @app.route("/api/batches/<batch_id>/attendance", methods=["POST"], endpoint="api_batch_attendance_mark")
    def api_batch_attendance_mark(batch_id: str):
        try:
            data = json_body()
            entries = [_parse_aggregate(e, batch_id=batch_id) for e in data.get("entries") or []]
            result = service.mark_batch_attendance(
                batch_id,
                entries,
                keep_previous=_keep_previous(data),
            )
            status = 200 if not result.failed else 207
            return jsonify({"success": not result.failed, **result.to_dict()}), status
        except Exception as e:
            return error_response(e)

    @app.route("/api/batches/<batch_id>/attendance/auto-absent", methods=["POST"], endpoint="api_batch_auto_absent")
    def api_batch_auto_absent(batch_id: str):
        try:
            data = json_body()
            day = parse_iso_date(data["date"]) if data.get("date") else None
            return jsonify({"success": True, "result": service.auto_mark_absentees(batch_id, day)}), 200
        except ValueError:
            return jsonify({"success": False, "message": "date must be yyyy-MM-dd"}), 400
        except Exception as e:
            return error_response(e)
