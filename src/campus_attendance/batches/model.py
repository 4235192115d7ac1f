from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class GeoPoint:
    """WGS84 coordinate in degrees."""

    lat: float
    lon: float


@dataclass(frozen=True)
class AttendanceWindow:
    """Daily marking window as zero-padded HH:mm strings."""

    start: str
    end: str


@dataclass(frozen=True)
class Batch:
    """Domain entity: a class section with its geofence and marking rules."""

    batch_id: str
    batch_name: str = ""
    location: Optional[GeoPoint] = None
    circle_radius: float = 0.0
    attendance_time: Optional[AttendanceWindow] = None
    can_mark_previous: bool = False
    start_date: Optional[date] = None
    student_ids: tuple[str, ...] = ()
    is_active: bool = True
