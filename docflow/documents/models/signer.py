"""Acting identity for signing; passed explicitly, never read from global state."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Optional


@dataclass(frozen=True)
class Signer:
    user_id: str
    full_name: str = ""
    roles: FrozenSet[str] = field(default_factory=frozenset)
    # default registered signature image (blob ref); None if the user has none
    signature_ref: Optional[str] = None

    def has_role(self, role: Optional[str]) -> bool:
        return bool(role) and role in self.roles
