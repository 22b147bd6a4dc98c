"""Typed results returned to callers instead of raising for policy refusals."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from docflow.documents.enum.document_status import DocumentStatus
from docflow.documents.models.document_record import DocumentRecord
from docflow.documents.models.signature_slot import SignatureSlot


class SignErrorCode(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    NOT_ELIGIBLE = "not_eligible"
    ALREADY_SIGNED = "already_signed"
    NO_SIGNATURE_CONFIGURED = "no_signature_configured"
    WAITING_FOR = "waiting_for"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class TransitionResult:
    success: bool
    message: str = ""
    new_status: Optional[DocumentStatus] = None
    document: Optional[DocumentRecord] = None


@dataclass(frozen=True)
class SignResult:
    ok: bool
    document: Optional[DocumentRecord] = None
    slot: Optional[SignatureSlot] = None
    code: Optional[SignErrorCode] = None
    message: str = ""
    waiting_for: List[str] = field(default_factory=list)
    # lost every compare-and-set attempt; calling again may succeed
    retryable: bool = False
    completed: bool = False
    stamped: bool = False

    @classmethod
    def error(cls, code: SignErrorCode, message: str, **kwargs) -> "SignResult":
        return cls(ok=False, code=code, message=message, **kwargs)
