# docflow/documents/enum/document_status.py
from __future__ import annotations
from enum import Enum


class DocumentStatus(str, Enum):
    DRAFT = "draft"
    PENDING_SIGNATURES = "pending_signatures"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TemplateStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class SlotStatus(str, Enum):
    PENDING = "pending"
    SIGNED = "signed"


class PdfGenerationStatus(str, Enum):
    COMPLETED = "completed"
    PENDING = "pending"
