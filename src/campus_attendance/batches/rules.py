from __future__ import annotations

from datetime import date

from ..core.exceptions import ValidationError
from .model import Batch


def validate_markable_date(batch: Batch, day: date, *, today: date) -> None:
    """Reject dates the batch calendar does not allow marking on.

    - no future dates
    - nothing before the batch start_date
    - only today unless the batch allows marking previous days
    """

    if day > today:
        raise ValidationError(f"Cannot mark attendance for a future date ({day.isoformat()})")
    if batch.start_date and day < batch.start_date:
        raise ValidationError(
            f"Cannot mark attendance before batch start date {batch.start_date.isoformat()}"
        )
    if not batch.can_mark_previous and day != today:
        raise ValidationError("This batch only allows marking today's attendance")
