"""Pre-flight validation result: which placeholders cannot be filled, and why."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

UNMAPPED_SOURCE = "unmapped"

_SOURCE_MESSAGES = (
    ("employee", "Missing employee data"),
    ("organization", "Missing organization data"),
    ("third_party", "Missing third party data"),
    ("contract", "Missing contract data"),
    ("request", "Missing request data"),
)


class MissingReason(str, Enum):
    UNMAPPED = "unmapped"
    UNVALUED = "unvalued"


@dataclass(frozen=True)
class MissingVariable:
    variable: str
    reason: MissingReason
    path: Optional[str] = None
    source: Optional[str] = None
    field: Optional[str] = None
    field_label: Optional[str] = None

    @property
    def group(self) -> str:
        return self.source or UNMAPPED_SOURCE


@dataclass(frozen=True)
class ValidationReport:
    missing: List[MissingVariable] = field(default_factory=list)
    values: Dict[str, object] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.missing

    @property
    def by_source(self) -> Dict[str, List[MissingVariable]]:
        grouped: Dict[str, List[MissingVariable]] = {}
        for item in self.missing:
            grouped.setdefault(item.group, []).append(item)
        return grouped

    @property
    def message(self) -> str:
        """Human readable summary, one sentence per data source."""
        grouped = self.by_source
        messages: List[str] = []
        for source, prefix in _SOURCE_MESSAGES:
            items = grouped.get(source)
            if items:
                labels = ", ".join(i.field_label or i.field or i.variable for i in items)
                messages.append(f"{prefix}: {labels}")
        if grouped.get(UNMAPPED_SOURCE):
            names = ", ".join(i.variable for i in grouped[UNMAPPED_SOURCE])
            messages.append(f"Variables without mapping: {names}")
        if grouped.get("custom"):
            names = ", ".join(i.variable for i in grouped["custom"])
            messages.append(f"Custom variables without value: {names}")
        known = {s for s, _ in _SOURCE_MESSAGES} | {UNMAPPED_SOURCE, "custom"}
        for source, items in grouped.items():
            if source not in known:
                names = ", ".join(i.variable for i in items)
                messages.append(f"Missing {source} data: {names}")
        return ". ".join(messages)
