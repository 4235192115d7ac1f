from __future__ import annotations

from datetime import date
from typing import Optional

from flask import Flask, jsonify, request

from ..attendance.controller import error_response, json_body
from ..common.datetime_utils import format_iso_date, parse_iso_date
from ..container import Container
from ..core.exceptions import ValidationError
from .model import Holiday


def _to_dict(h: Holiday) -> dict:
    return {"$id": h.holiday_id, "batchId": h.batch_id, "date": format_iso_date(h.date), "holidayText": h.holiday_text}


def _date_arg(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return parse_iso_date(value)
    except ValueError as e:
        raise ValidationError("date must be yyyy-MM-dd") from e


def register(app: Flask, container: Container) -> None:
    service = container.holiday_service

    @app.route("/api/batches/<batch_id>/holidays", methods=["GET"], endpoint="api_batch_holidays")
    def api_batch_holidays(batch_id: str):
        try:
            holidays = service.list_batch_holidays(
                batch_id,
                start=_date_arg(request.args.get("start")),
                end=_date_arg(request.args.get("end")),
            )
            return jsonify({"success": True, "holidays": [_to_dict(h) for h in holidays]}), 200
        except Exception as e:
            return error_response(e)

    @app.route("/api/batches/<batch_id>/holidays", methods=["POST"], endpoint="api_batch_holidays_add")
    def api_batch_holidays_add(batch_id: str):
        try:
            data = json_body()
            day = _date_arg(data.get("date"))
            if day is None:
                raise ValidationError("date is required")
            holiday = service.add_holiday(batch_id=batch_id, day=day, holiday_text=data.get("holidayText"))
            return jsonify({"success": True, "holiday": _to_dict(holiday)}), 201
        except Exception as e:
            return error_response(e)

    @app.route("/api/holidays/<holiday_id>", methods=["PUT"], endpoint="api_holiday_update")
    def api_holiday_update(holiday_id: str):
        try:
            data = json_body()
            holiday = service.update_holiday(
                holiday_id,
                day=_date_arg(data.get("date")),
                holiday_text=data.get("holidayText"),
            )
            return jsonify({"success": True, "holiday": _to_dict(holiday)}), 200
        except Exception as e:
            return error_response(e)

    @app.route("/api/holidays/<holiday_id>", methods=["DELETE"], endpoint="api_holiday_delete")
    def api_holiday_delete(holiday_id: str):
        try:
            service.remove_holiday(holiday_id)
            return jsonify({"success": True}), 200
        except Exception as e:
            return error_response(e)
