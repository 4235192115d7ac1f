from __future__ import annotations

import re
from typing import Optional

from ..core.exceptions import ValidationError

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_time_of_day(value: Optional[str], field_name: str) -> Optional[str]:
    """Accept None or a zero-padded HH:mm string."""
    if value is None or value == "":
        return None
    if not _HHMM.match(str(value)):
        raise ValidationError(f"{field_name} must be HH:mm")
    return str(value)
