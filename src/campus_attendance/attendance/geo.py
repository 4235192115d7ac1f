"""Geofence checks for self check-in.

Distances use the haversine great-circle formula on a spherical Earth.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..batches.model import AttendanceWindow, Batch, GeoPoint
from ..common.datetime_utils import format_time_of_day
from ..core.constants import DEFAULT_ATTENDANCE_END, DEFAULT_ATTENDANCE_START, EARTH_RADIUS_M

DEFAULT_ATTENDANCE_WINDOW = AttendanceWindow(start=DEFAULT_ATTENDANCE_START, end=DEFAULT_ATTENDANCE_END)


def _coerce_point(point: Any) -> Optional[tuple[float, float]]:
    if point is None:
        return None
    if isinstance(point, dict):
        lat, lon = point.get("lat"), point.get("lon")
    else:
        lat, lon = getattr(point, "lat", None), getattr(point, "lon", None)
    try:
        lat, lon = float(lat), float(lon)
    except (TypeError, ValueError):
        return None
    if math.isnan(lat) or math.isnan(lon) or not -90 <= lat <= 90 or not -180 <= lon <= 180:
        return None
    return lat, lon


def is_valid_point(point: Any) -> bool:
    return _coerce_point(point) is not None


def haversine_distance(p1: Any, p2: Any) -> float:
    """Great-circle distance in meters between two {lat, lon} points.

    Returns 0.0 when either point is missing or invalid. Callers must check
    validity themselves before reading 0 as "at the location".
    """
    a_point, b_point = _coerce_point(p1), _coerce_point(p2)
    if a_point is None or b_point is None:
        return 0.0

    lat1, lon1 = map(math.radians, a_point)
    lat2, lon2 = map(math.radians, b_point)
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def resolve_attendance_window(batch: Optional[Batch]) -> AttendanceWindow:
    if batch is not None and batch.attendance_time is not None:
        return batch.attendance_time
    return DEFAULT_ATTENDANCE_WINDOW


def is_within_time_window(now: datetime, window: AttendanceWindow) -> bool:
    current = format_time_of_day(now)
    return window.start <= current <= window.end


def is_eligible_to_mark(now: datetime, distance: float, batch: Batch) -> bool:
    """Inside the geofence radius and inside the marking window (both inclusive)."""
    return distance <= batch.circle_radius and is_within_time_window(now, resolve_attendance_window(batch))


@dataclass(frozen=True)
class GeoEligibility:
    distance: float
    within_radius: bool
    within_window: bool
    window: AttendanceWindow

    @property
    def eligible(self) -> bool:
        return self.within_radius and self.within_window

    def to_dict(self) -> dict:
        return {
            "distance": round(self.distance, 2),
            "withinRadius": self.within_radius,
            "withinWindow": self.within_window,
            "eligible": self.eligible,
            "window": {"start": self.window.start, "end": self.window.end},
        }


def evaluate_check_in(now: datetime, device_location: Optional[GeoPoint], batch: Batch) -> GeoEligibility:
    """Full check-in evaluation; a missing location is never inside the geofence."""
    window = resolve_attendance_window(batch)
    located = is_valid_point(device_location) and is_valid_point(batch.location)
    distance = haversine_distance(device_location, batch.location) if located else math.inf
    return GeoEligibility(
        distance=distance,
        within_radius=located and distance <= batch.circle_radius,
        within_window=is_within_time_window(now, window),
        window=window,
    )
