# docflow/signature/models/signature_enums.py
from __future__ import annotations
from enum import Enum


class DatePosition(str, Enum):
    """Placement of the signing date relative to the signature image."""
    RIGHT = "right"
    BELOW = "below"
    ABOVE = "above"
    NONE  = "none"      # no date label


def parse_date_position(value: object) -> DatePosition:
    try:
        return DatePosition(str(value or DatePosition.RIGHT.value).lower())
    except ValueError:
        return DatePosition.RIGHT
