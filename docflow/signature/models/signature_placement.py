from __future__ import annotations
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Mapping, Optional

from .signature_enums import DatePosition, parse_date_position

LAST_PAGE = 0


@dataclass(frozen=True)
class SlotPlacement:
    """
    Signature box in PDF points (1 pt = 1/72 inch) of the rendered artifact.

    ``y`` is measured from the top of the page to the top of the box. Values
    beyond the page height continue on the following pages, which is how
    boxes placed in a scrolled multi-page preview arrive.
    ``page`` is 1-based; 0 means the last page.
    """
    page: int = 1
    x: float = 100.0
    y: float = 100.0
    width: float = 200.0
    height: float = 60.0
    date_position: DatePosition = DatePosition.RIGHT
    show_label: bool = True
    show_signer_name: bool = False

    def with_geometry(
        self,
        *,
        x: Optional[float] = None,
        y: Optional[float] = None,
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> "SlotPlacement":
        """Return a copy with the given box values overridden (None keeps the current value)."""
        changes: Dict[str, float] = {}
        for key, value in (("x", x), ("y", y), ("width", width), ("height", height)):
            if value is not None:
                changes[key] = float(value)
        return replace(self, **changes) if changes else self

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["date_position"] = self.date_position.value
        return data

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "SlotPlacement":
        if not data:
            return cls()
        show_label = data.get("show_label")
        return cls(
            page=int(data.get("page", 1)),
            x=float(data.get("x", 100.0)),
            y=float(data.get("y", 100.0)),
            width=float(data.get("width", 200.0)),
            height=float(data.get("height", 60.0)),
            date_position=parse_date_position(data.get("date_position")),
            show_label=True if show_label is None else bool(show_label),
            show_signer_name=bool(data.get("show_signer_name", False)),
        )
