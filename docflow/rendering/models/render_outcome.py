"""Result of running the render pipeline on a filled DOCX."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class RenderStatus(str, Enum):
    COMPLETED = "completed"
    PENDING = "pending"


@dataclass(frozen=True)
class RenderOutcome:
    status: RenderStatus
    pdf_bytes: Optional[bytes] = None
    strategy: Optional[str] = None
    # names of strategies tried, in order
    attempted: List[str] = field(default_factory=list)
    timed_out: bool = False

    @property
    def is_pending(self) -> bool:
        return self.status is RenderStatus.PENDING

    @classmethod
    def pending(cls, attempted: List[str], *, timed_out: bool = False) -> "RenderOutcome":
        return cls(RenderStatus.PENDING, attempted=list(attempted), timed_out=timed_out)
