"""Who is expected to sign: maps template signatories onto concrete users."""
from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Protocol

from docflow.documents.enum.signatory_type import SignatoryType
from docflow.documents.models.signature_slot import SignatureSlot
from docflow.documents.models.signer import Signer
from docflow.documents.models.template import Template, TemplateSignatory
from docflow.templating.models.generation_context import GenerationContext

logger = logging.getLogger(__name__)


class SignatoryDirectory(Protocol):
    def find_signatory(self, signatory: TemplateSignatory, context: GenerationContext) -> Optional[Signer]:
        """Return the assignee of *signatory*, or None to leave the slot claimable."""
        ...


def _get(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _as_signer(user: Any) -> Optional[Signer]:
    if user is None:
        return None
    if isinstance(user, Signer):
        return user
    user_id = _get(user, "user_id") or _get(user, "id")
    if not user_id:
        return None
    return Signer(
        user_id=str(user_id),
        full_name=_get(user, "full_name") or "",
        roles=frozenset(_get(user, "roles") or ()),
        signature_ref=_get(user, "signature_ref"),
    )


class ContextSignatoryDirectory:
    """
    Resolves assignees from the generation context.

    - employee:   the subject's linked user (``subject.user``)
    - supervisor: the supervisor's linked user (``subject.supervisor.user``)
    - custom:     ``users[custom_user_id]``
    - role types: unassigned, claimed by whoever holds the role
    """

    def __init__(self, users: Optional[Mapping[str, Any]] = None) -> None:
        self._users = dict(users or {})

    def find_signatory(self, signatory: TemplateSignatory, context: GenerationContext) -> Optional[Signer]:
        subject = context.subject
        if signatory.type_code == SignatoryType.EMPLOYEE.value:
            return _as_signer(_get(subject, "user"))
        if signatory.type_code == SignatoryType.SUPERVISOR.value:
            return _as_signer(_get(_get(subject, "supervisor"), "user"))
        if signatory.type_code == SignatoryType.CUSTOM.value and signatory.custom_user_id:
            return _as_signer(self._users.get(signatory.custom_user_id))
        return None


def build_roster(
    template: Template,
    context: GenerationContext,
    directory: Optional[SignatoryDirectory],
) -> List[SignatureSlot]:
    """Create one pending slot per template signatory, in signing order."""
    slots: List[SignatureSlot] = []
    for signatory in template.signatories_by_position():
        assignee = directory.find_signatory(signatory, context) if directory else None
        if assignee is None and not signatory.claim_role:
            logger.warning("Signatory %s of template %s has no assignee and no claim role",
                           signatory.label, template.template_id)
        slots.append(SignatureSlot.from_signatory(signatory, assignee))
    return slots
