from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class Holiday:
    """Batch-level calendar entry that blocks marking on its date."""

    holiday_id: str
    batch_id: str
    date: date
    holiday_text: Optional[str] = None
