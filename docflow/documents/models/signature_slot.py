"""One signing obligation on a generated document."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from docflow.documents.enum.document_status import SlotStatus
from docflow.documents.models.signer import Signer
from docflow.documents.models.template import TemplateSignatory, new_id
from docflow.signature.models.signature_placement import SlotPlacement


@dataclass(frozen=True)
class SignatureSlot:
    signatory_id: str
    type_code: str
    label: str
    required: bool = True
    position: int = 0
    placement: SlotPlacement = field(default_factory=SlotPlacement)
    claim_role: Optional[str] = None
    assignee_id: Optional[str] = None
    assignee_name: Optional[str] = None
    status: SlotStatus = SlotStatus.PENDING
    signed_by_id: Optional[str] = None
    signed_by_name: Optional[str] = None
    signature_ref: Optional[str] = None
    signed_at: Optional[datetime] = None
    claimed: bool = False
    custom_placement: Optional[SlotPlacement] = None
    slot_id: str = field(default_factory=new_id)

    @classmethod
    def from_signatory(cls, signatory: TemplateSignatory, assignee: Optional[Signer] = None) -> "SignatureSlot":
        return cls(
            signatory_id=signatory.signatory_id,
            type_code=signatory.type_code,
            label=signatory.label,
            required=signatory.required,
            position=signatory.position,
            placement=signatory.placement,
            claim_role=signatory.claim_role,
            assignee_id=assignee.user_id if assignee else None,
            assignee_name=assignee.full_name if assignee else None,
        )

    @property
    def is_signed(self) -> bool:
        return self.status is SlotStatus.SIGNED

    @property
    def is_pending(self) -> bool:
        return self.status is SlotStatus.PENDING

    @property
    def effective_placement(self) -> SlotPlacement:
        return self.custom_placement or self.placement

    def signed(
        self,
        signer: Signer,
        signature_ref: str,
        signed_at: datetime,
        *,
        claim: bool = False,
        placement: Optional[SlotPlacement] = None,
    ) -> "SignatureSlot":
        """Return the signed copy of this slot (slots are immutable values)."""
        changes: Dict[str, Any] = dict(
            status=SlotStatus.SIGNED,
            signed_by_id=signer.user_id,
            signed_by_name=signer.full_name,
            signature_ref=signature_ref,
            signed_at=signed_at,
        )
        if claim:
            changes.update(assignee_id=signer.user_id, assignee_name=signer.full_name, claimed=True)
        if placement is not None:
            changes["custom_placement"] = placement
        return replace(self, **changes)

    # ---- persistence ---- #
    def to_dict(self) -> Dict[str, Any]:
        return {
            "slot_id": self.slot_id,
            "signatory_id": self.signatory_id,
            "type_code": self.type_code,
            "label": self.label,
            "required": self.required,
            "position": self.position,
            "placement": self.placement.to_dict(),
            "claim_role": self.claim_role,
            "assignee_id": self.assignee_id,
            "assignee_name": self.assignee_name,
            "status": self.status.value,
            "signed_by_id": self.signed_by_id,
            "signed_by_name": self.signed_by_name,
            "signature_ref": self.signature_ref,
            "signed_at": self.signed_at.isoformat() if self.signed_at else None,
            "claimed": self.claimed,
            "custom_placement": self.custom_placement.to_dict() if self.custom_placement else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SignatureSlot":
        signed_at = data.get("signed_at")
        custom = data.get("custom_placement")
        return cls(
            slot_id=data["slot_id"],
            signatory_id=data["signatory_id"],
            type_code=data["type_code"],
            label=data["label"],
            required=bool(data.get("required", True)),
            position=int(data.get("position", 0)),
            placement=SlotPlacement.from_dict(data.get("placement")),
            claim_role=data.get("claim_role"),
            assignee_id=data.get("assignee_id"),
            assignee_name=data.get("assignee_name"),
            status=SlotStatus(data.get("status", SlotStatus.PENDING.value)),
            signed_by_id=data.get("signed_by_id"),
            signed_by_name=data.get("signed_by_name"),
            signature_ref=data.get("signature_ref"),
            signed_at=datetime.fromisoformat(signed_at) if signed_at else None,
            claimed=bool(data.get("claimed", False)),
            custom_placement=SlotPlacement.from_dict(custom) if custom else None,
        )
