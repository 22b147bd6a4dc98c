"""
Template domain models.

A template owns its signatory configuration; generated documents copy it
into their own slot roster and never reference it afterwards.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from docflow.documents.enum.document_status import TemplateStatus
from docflow.documents.enum.signatory_type import default_claim_role, default_label
from docflow.exceptions.errors import TemplateConfigurationError
from docflow.signature.models.signature_placement import SlotPlacement


def new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TemplateSignatory:
    type_code: str
    label: str = ""
    position: int = 0
    required: bool = True
    placement: SlotPlacement = field(default_factory=SlotPlacement)
    claim_role: Optional[str] = None
    custom_user_id: Optional[str] = None
    signatory_id: str = field(default_factory=new_id)

    def __post_init__(self) -> None:
        if not self.label:
            self.label = default_label(self.type_code)
        if self.claim_role is None:
            self.claim_role = default_claim_role(self.type_code)
        if self.position < 0:
            raise ValueError("Signatory position must be >= 0")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signatory_id": self.signatory_id,
            "type_code": self.type_code,
            "label": self.label,
            "position": self.position,
            "required": self.required,
            "placement": self.placement.to_dict(),
            "claim_role": self.claim_role,
            "custom_user_id": self.custom_user_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TemplateSignatory":
        return cls(
            signatory_id=data.get("signatory_id") or new_id(),
            type_code=data["type_code"],
            label=data.get("label") or "",
            position=int(data.get("position", 0)),
            required=bool(data.get("required", True)),
            placement=SlotPlacement.from_dict(data.get("placement")),
            claim_role=data.get("claim_role"),
            custom_user_id=data.get("custom_user_id"),
        )


@dataclass
class Template:
    name: str
    template_id: str = field(default_factory=new_id)
    category: str = "general"
    status: TemplateStatus = TemplateStatus.DRAFT
    variables: List[str] = field(default_factory=list)
    variable_mappings: Dict[str, str] = field(default_factory=dict)
    source_blob_ref: Optional[str] = None
    preview_blob_ref: Optional[str] = None
    sequential_signing: bool = True
    signatories: List[TemplateSignatory] = field(default_factory=list)
    version: int = 1
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def is_active(self) -> bool:
        return self.status is TemplateStatus.ACTIVE

    def signatories_by_position(self) -> List[TemplateSignatory]:
        """Signatories in signing order; equal positions keep insertion order."""
        return sorted(self.signatories, key=lambda s: s.position)

    def required_signatories(self) -> List[TemplateSignatory]:
        return [s for s in self.signatories_by_position() if s.required]

    def optional_signatories(self) -> List[TemplateSignatory]:
        return [s for s in self.signatories_by_position() if not s.required]

    # ---- lifecycle ---- #
    def activate(self) -> None:
        if not self.source_blob_ref:
            raise TemplateConfigurationError(
                "Template needs an attached source document before activation",
                template_id=self.template_id,
            )
        self.status = TemplateStatus.ACTIVE
        self.updated_at = _utcnow()

    def archive(self) -> None:
        self.status = TemplateStatus.ARCHIVED
        self.updated_at = _utcnow()

    def reactivate(self) -> None:
        self.activate()

    def duplicate(self) -> "Template":
        """Copy as a new draft with fresh ids for the template and its signatories."""
        now = _utcnow()
        return replace(
            self,
            template_id=new_id(),
            name=f"{self.name} (copia)",
            status=TemplateStatus.DRAFT,
            version=1,
            variables=list(self.variables),
            variable_mappings=dict(self.variable_mappings),
            signatories=[replace(s, signatory_id=new_id()) for s in self.signatories],
            created_at=now,
            updated_at=now,
        )

    def ensure_usable(self) -> None:
        """Raise TemplateConfigurationError unless the template can generate documents."""
        if not self.is_active:
            raise TemplateConfigurationError(
                f"Template {self.name!r} is not active ({self.status.value})",
                template_id=self.template_id,
            )
        if not self.source_blob_ref:
            raise TemplateConfigurationError(
                f"Template {self.name!r} has no source document",
                template_id=self.template_id,
            )
