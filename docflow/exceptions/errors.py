"""Docflow exceptions.

Policy refusals during signing are returned as result values
(see ``SignResult``); the types below are raised for configuration
problems and hard failures.
"""
from __future__ import annotations

from typing import Any, Optional


class DocflowError(Exception):
    """Base exception for docflow."""


class TemplateConfigurationError(DocflowError):
    """Raised when a template cannot be used for generation (inactive, no source)."""

    def __init__(self, message: str, *, template_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.template_id = template_id


class MissingVariablesError(DocflowError):
    """Raised on request when placeholders have no mapping or no value."""

    def __init__(self, report: Any) -> None:
        super().__init__(getattr(report, "message", "") or "Missing variables")
        self.report = report


class DocumentStructureError(DocflowError):
    """Raised when a DOCX/PDF container cannot be read."""


class BlobNotFoundError(DocflowError):
    """Raised when a blob reference does not resolve."""

    def __init__(self, ref: str) -> None:
        super().__init__(f"Blob not found: {ref}")
        self.ref = ref


class StampingError(DocflowError):
    """Raised when the final artifact cannot be produced."""
