"""
===============================================================================
DocumentService - template + context -> filled, rendered document record
-------------------------------------------------------------------------------
Flow
    template (active, with source) -> resolve variables -> validate
    -> fill DOCX -> render PDF (or pending) -> store blobs -> build slot
    roster -> persist record

Fatal problems (unknown/inactive template, unreadable source) raise.
Missing variable values are reported in the result, not raised, unless the
caller asks for ``raise_on_missing``.
===============================================================================
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from docflow.core.storage.blob_store import BlobStore
from docflow.documents.enum.document_status import DocumentStatus, PdfGenerationStatus
from docflow.documents.models.document_record import DocumentRecord
from docflow.documents.models.template import Template
from docflow.documents.repository.document_repository import DocumentRepository
from docflow.documents.repository.template_repository import TemplateRepository
from docflow.documents.services.signatory_directory import SignatoryDirectory, build_roster
from docflow.exceptions.errors import BlobNotFoundError, MissingVariablesError, TemplateConfigurationError
from docflow.rendering.logic.render_pipeline import RenderPipeline
from docflow.rendering.models.render_outcome import RenderOutcome
from docflow.templating.logic.docx_filler import DocxFiller
from docflow.templating.logic.variable_resolver import ContextFieldResolver, FieldResolver, format_value
from docflow.templating.logic.variable_validation import validate as validate_variables
from docflow.templating.models.generation_context import GenerationContext
from docflow.templating.models.replacement_log import ReplacementLog
from docflow.templating.models.validation_report import ValidationReport

logger = logging.getLogger(__name__)

_UNSAFE_FILE_CHARS = re.compile(r"[^\w\-. ]+", re.UNICODE)


@dataclass(frozen=True)
class GenerationResult:
    """
    Outcome of one ``generate`` call.

    ``document`` is None when validation failed; ``report`` then lists what
    is missing.
    """
    report: ValidationReport
    document: Optional[DocumentRecord] = None
    replacement_log: Optional[ReplacementLog] = None
    render: Optional[RenderOutcome] = None

    @property
    def ok(self) -> bool:
        return self.document is not None


def safe_file_name(name: str, extension: str = ".pdf") -> str:
    base = _UNSAFE_FILE_CHARS.sub("_", name or "").strip(" ._") or "document"
    return f"{base}{extension}"


class DocumentService:
    def __init__(
        self,
        *,
        templates: TemplateRepository,
        documents: DocumentRepository,
        blobs: BlobStore,
        pipeline: RenderPipeline,
        directory: Optional[SignatoryDirectory] = None,
        resolver_factory: Callable[[GenerationContext], FieldResolver] = ContextFieldResolver,
        filler: Optional[DocxFiller] = None,
    ) -> None:
        self._templates = templates
        self._documents = documents
        self._blobs = blobs
        self._pipeline = pipeline
        self._directory = directory
        self._resolver_factory = resolver_factory
        self._filler = filler or DocxFiller()

    def _load_template(self, template_id: str) -> Template:
        template = self._templates.get(template_id)
        if template is None:
            raise TemplateConfigurationError(f"Template {template_id} not found", template_id=template_id)
        template.ensure_usable()
        return template

    def validate(self, template_id: str, context: GenerationContext) -> ValidationReport:
        """Pre-flight check; reads only."""
        template = self._load_template(template_id)
        return validate_variables(template, self._resolver_factory(context))

    def generate(
        self,
        template_id: str,
        context: GenerationContext,
        *,
        name: Optional[str] = None,
        raise_on_missing: bool = False,
    ) -> GenerationResult:
        """
        Generate a document from a template.

        Args:
            template_id: Active template to fill
            context: Records the variables are resolved from
            name: Document name (default: the template name)
            raise_on_missing: raise MissingVariablesError instead of returning the report

        Raises:
            TemplateConfigurationError: unknown, inactive or sourceless template
            DocumentStructureError: the template source is not a readable DOCX
        """
        template = self._load_template(template_id)
        report = validate_variables(template, self._resolver_factory(context))
        if not report.valid:
            logger.info("Template %s: %d variable(s) missing", template_id, len(report.missing))
            if raise_on_missing:
                raise MissingVariablesError(report)
            return GenerationResult(report=report)

        try:
            source = self._blobs.get(template.source_blob_ref)
        except BlobNotFoundError as ex:
            raise TemplateConfigurationError(
                f"Source document of template {template.name!r} is missing",
                template_id=template_id,
            ) from ex

        values = {k: (None if v is None else format_value(v)) for k, v in report.values.items()}
        filled = self._filler.fill(source, values)
        outcome = self._pipeline.render(filled.docx_bytes)

        doc_name = name or template.name
        if outcome.is_pending:
            draft_ref = None
            docx_ref = self._blobs.put(filled.docx_bytes)
            pdf_status = PdfGenerationStatus.PENDING
        else:
            draft_ref = self._blobs.put(outcome.pdf_bytes)
            docx_ref = None
            pdf_status = PdfGenerationStatus.COMPLETED

        slots = build_roster(template, context, self._directory)
        requested_by = context.requested_by
        record = DocumentRecord(
            template_id=template.template_id,
            name=doc_name,
            file_name=safe_file_name(doc_name),
            status=DocumentStatus.PENDING_SIGNATURES if slots else DocumentStatus.DRAFT,
            pdf_generation_status=pdf_status,
            draft_blob_ref=draft_ref,
            docx_blob_ref=docx_ref,
            variable_values=values,
            slots=slots,
            sequential_signing=template.sequential_signing,
            requested_by=getattr(requested_by, "user_id", requested_by),
        )
        stored = self._documents.add(record)
        logger.info("Generated document %s from template %s (%d slot(s), pdf %s)",
                    stored.document_id, template_id, len(slots), pdf_status.value)
        return GenerationResult(report=report, document=stored, replacement_log=filled.log, render=outcome)
