# docflow/documents/enum/signatory_type.py
from __future__ import annotations
from enum import Enum
from typing import Optional


class SignatoryType(str, Enum):
    EMPLOYEE = "employee"
    SUPERVISOR = "supervisor"
    HR = "hr"
    HR_MANAGER = "hr_manager"
    LEGAL = "legal"
    ADMIN = "admin"
    CUSTOM = "custom"


DEFAULT_LABELS = {
    SignatoryType.EMPLOYEE: "Requesting employee",
    SignatoryType.SUPERVISOR: "Direct supervisor",
    SignatoryType.HR: "Human resources",
    SignatoryType.HR_MANAGER: "HR manager",
    SignatoryType.LEGAL: "Legal department",
    SignatoryType.ADMIN: "Administrator",
    SignatoryType.CUSTOM: "Custom",
}

# Slots of these types are not pre-assigned; anyone holding the role may claim them.
CLAIM_ROLES = {
    SignatoryType.HR: "hr",
    SignatoryType.HR_MANAGER: "hr",
    SignatoryType.LEGAL: "legal",
    SignatoryType.ADMIN: "admin",
}


def default_label(type_code: str) -> str:
    try:
        return DEFAULT_LABELS[SignatoryType(type_code)]
    except ValueError:
        return "Signature"


def default_claim_role(type_code: str) -> Optional[str]:
    try:
        return CLAIM_ROLES.get(SignatoryType(type_code))
    except ValueError:
        return None
