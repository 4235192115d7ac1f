from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Batch


class BatchRepository(Protocol):
    def get_by_id(self, batch_id: str) -> Optional[Batch]:
        raise NotImplementedError

    def list_active(self) -> Sequence[Batch]:
        raise NotImplementedError
