"""Diagnostics produced while splicing placeholders into a document."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ReplacementStatus(str, Enum):
    REPLACED = "replaced"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ReplacementEntry:
    variable: str
    status: ReplacementStatus
    pattern: str
    value: Optional[str] = None
    part: str = "document"
    reason: str = ""


@dataclass
class ReplacementLog:
    entries: List[ReplacementEntry] = field(default_factory=list)

    def add(self, entry: ReplacementEntry) -> None:
        self.entries.append(entry)

    def extend(self, other: "ReplacementLog") -> None:
        self.entries.extend(other.entries)

    @property
    def replaced(self) -> List[ReplacementEntry]:
        return [e for e in self.entries if e.status is ReplacementStatus.REPLACED]

    @property
    def not_found(self) -> List[ReplacementEntry]:
        return [e for e in self.entries if e.status is ReplacementStatus.NOT_FOUND]

    def __len__(self) -> int:
        return len(self.entries)
