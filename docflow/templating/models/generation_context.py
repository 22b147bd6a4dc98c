"""
Typed context bundle handed to the variable resolver.

The request kind is only a tag used at the boundary (e.g. to pick a default
file name); resolution and splicing never branch on it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ContextKind(str, Enum):
    VACATION_LIKE = "vacation_like"
    CERTIFICATION_LIKE = "certification_like"
    CONTRACT_LIKE = "contract_like"
    GENERIC = "generic"


@dataclass
class GenerationContext:
    """
    Business records a template is filled from.

    Records may be mappings or plain objects; attribute and key access are
    both supported by the resolver.
    """
    subject: Any = None
    organization: Any = None
    request: Any = None
    third_party: Any = None
    contract: Any = None
    custom_values: Dict[str, Any] = field(default_factory=dict)
    requested_by: Optional[str] = None
    kind: ContextKind = ContextKind.GENERIC

    @property
    def employee(self) -> Any:
        """Alias used by templates authored against employee records."""
        return self.subject

    def record_for(self, source: str) -> Any:
        """Return the record a ``source.field`` path points into (or None)."""
        return {
            "employee": self.subject,
            "subject": self.subject,
            "organization": self.organization,
            "request": self.request,
            "third_party": self.third_party,
            "contract": self.contract,
        }.get(source)
