"""Wire repositories, blob store, render pipeline and services from configuration."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from docflow.core.adapters.sqlite_adapter import SQLiteAdapter
from docflow.core.config.config_service import ConfigService, get_config_service
from docflow.core.storage.filesystem_blob_store import FilesystemBlobStore
from docflow.documents.repository.document_repository import SQLiteDocumentRepository
from docflow.documents.repository.template_repository import SQLiteTemplateRepository
from docflow.documents.services.generation_service import DocumentService
from docflow.documents.services.signatory_directory import ContextSignatoryDirectory, SignatoryDirectory
from docflow.documents.services.signature_workflow import SignatureWorkflow
from docflow.rendering.logic.render_pipeline import RenderPipeline
from docflow.signature.logic.artifact_stamper import ArtifactStamper
from docflow.signature.logic.signature_image_provider import BlobSignatureImageProvider


@dataclass
class Services:
    db: SQLiteAdapter
    blobs: FilesystemBlobStore
    templates: SQLiteTemplateRepository
    documents: SQLiteDocumentRepository
    pipeline: RenderPipeline
    stamper: ArtifactStamper
    generation: DocumentService
    workflow: SignatureWorkflow

    def close(self) -> None:
        self.db.close()


def build_services(
    config: Optional[ConfigService] = None,
    *,
    directory: Optional[SignatoryDirectory] = None,
) -> Services:
    cfg = config or get_config_service()
    db = SQLiteAdapter(cfg.storage.database)
    blobs = FilesystemBlobStore(cfg.storage.blob_dir)
    templates = SQLiteTemplateRepository(db)
    documents = SQLiteDocumentRepository(db)
    pipeline = RenderPipeline.from_config(cfg.render)
    stamper = ArtifactStamper(blobs, BlobSignatureImageProvider(blobs), cfg.signature)
    return Services(
        db=db,
        blobs=blobs,
        templates=templates,
        documents=documents,
        pipeline=pipeline,
        stamper=stamper,
        generation=DocumentService(
            templates=templates,
            documents=documents,
            blobs=blobs,
            pipeline=pipeline,
            directory=directory or ContextSignatoryDirectory(),
        ),
        workflow=SignatureWorkflow(documents=documents, stamper=stamper, blobs=blobs),
    )
