"""
Generated document record.

The record owns its slot roster. Roster order is signing order: slots are
created sorted by position, equal positions keeping the template's order.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

from docflow.documents.enum.document_status import DocumentStatus, PdfGenerationStatus
from docflow.documents.models.signature_slot import SignatureSlot
from docflow.documents.models.template import new_id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SlotOrderStatus:
    can_sign_now: bool
    waiting_for: List[str]

    @property
    def waiting_count(self) -> int:
        return len(self.waiting_for)


@dataclass(frozen=True)
class DocumentRecord:
    template_id: str
    name: str
    document_id: str = field(default_factory=new_id)
    file_name: str = "document.pdf"
    status: DocumentStatus = DocumentStatus.DRAFT
    pdf_generation_status: PdfGenerationStatus = PdfGenerationStatus.COMPLETED
    draft_blob_ref: Optional[str] = None
    final_blob_ref: Optional[str] = None
    docx_blob_ref: Optional[str] = None
    variable_values: Dict[str, Optional[str]] = field(default_factory=dict)
    slots: List[SignatureSlot] = field(default_factory=list)
    sequential_signing: bool = True
    requested_by: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    version: int = 1

    # ---- status ---- #
    @property
    def is_pending_pdf(self) -> bool:
        return self.pdf_generation_status is PdfGenerationStatus.PENDING

    @property
    def current_blob_ref(self) -> Optional[str]:
        """Final artifact once completed and stamped, the draft otherwise."""
        if self.status is DocumentStatus.COMPLETED and self.final_blob_ref:
            return self.final_blob_ref
        return self.draft_blob_ref

    @property
    def file_name_base(self) -> str:
        base = self.file_name or "document"
        return base[:-4] if base.lower().endswith(".pdf") else base

    # ---- roster queries ---- #
    def slot(self, slot_id: str) -> Optional[SignatureSlot]:
        return next((s for s in self.slots if s.slot_id == slot_id), None)

    def required_slots(self) -> List[SignatureSlot]:
        return [s for s in self.slots if s.required]

    def pending_slots(self) -> List[SignatureSlot]:
        return [s for s in self.slots if s.is_pending]

    def signed_slots(self) -> List[SignatureSlot]:
        return [s for s in self.slots if s.is_signed]

    def all_required_signed(self) -> bool:
        return all(s.is_signed for s in self.required_slots())

    @property
    def pending_signatures_count(self) -> int:
        return sum(1 for s in self.slots if s.required and s.is_pending)

    @property
    def completed_signatures_count(self) -> int:
        return len(self.signed_slots())

    @property
    def total_required_signatures(self) -> int:
        return len(self.required_slots())

    def blocking_slots_for(self, slot: SignatureSlot) -> List[SignatureSlot]:
        """Required, unsigned slots ahead of *slot* in the roster (sequential signing only)."""
        if not self.sequential_signing:
            return []
        blocking: List[SignatureSlot] = []
        for other in self.slots:
            if other.slot_id == slot.slot_id:
                return blocking
            if other.required and not other.is_signed:
                blocking.append(other)
        return []

    def order_status(self, slot: SignatureSlot) -> SlotOrderStatus:
        blocking = self.blocking_slots_for(slot)
        return SlotOrderStatus(can_sign_now=not blocking, waiting_for=[b.label for b in blocking])

    def next_slot_to_sign(self) -> Optional[SignatureSlot]:
        if self.status is not DocumentStatus.PENDING_SIGNATURES:
            return None
        return next((s for s in self.pending_slots() if not self.blocking_slots_for(s)), None)

    # ---- copies ---- #
    def with_slot(self, updated: SignatureSlot) -> "DocumentRecord":
        slots = [updated if s.slot_id == updated.slot_id else s for s in self.slots]
        return replace(self, slots=slots)

    def evolve(self, **changes) -> "DocumentRecord":
        changes.setdefault("updated_at", _utcnow())
        return replace(self, **changes)
