"""Document record persistence with optimistic locking.

Every write goes through ``compare_and_set``: the row is only updated when
its ``version`` still equals the version the caller read, and the version
is bumped in the same statement.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from docflow.core.adapters.database_adapter import DatabaseAdapter
from docflow.documents.enum.document_status import DocumentStatus, PdfGenerationStatus
from docflow.documents.models.document_record import DocumentRecord
from docflow.documents.models.signature_slot import SignatureSlot

logger = logging.getLogger(__name__)


class DocumentRepository(ABC):
    @abstractmethod
    def get(self, document_id: str) -> Optional[DocumentRecord]:
        raise NotImplementedError

    @abstractmethod
    def add(self, record: DocumentRecord) -> DocumentRecord:
        raise NotImplementedError

    @abstractmethod
    def compare_and_set(self, record: DocumentRecord, expected_version: int) -> Optional[DocumentRecord]:
        """
        Persist *record* if the stored version is still *expected_version*.

        Returns:
            The stored record (version bumped), or None when another writer
            got there first.
        """
        raise NotImplementedError

    @abstractmethod
    def list_by_status(self, status: DocumentStatus) -> List[DocumentRecord]:
        raise NotImplementedError

    @abstractmethod
    def list_pending_pdf(self) -> List[DocumentRecord]:
        raise NotImplementedError


def _dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class SQLiteDocumentRepository(DocumentRepository):
    """SQLite backend for generated documents."""

    def __init__(self, db: DatabaseAdapter) -> None:
        self._db = db
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        self._db.executescript(
            """
            CREATE TABLE IF NOT EXISTS generated_documents (
                document_id TEXT PRIMARY KEY,
                template_id TEXT NOT NULL,
                name TEXT NOT NULL,
                file_name TEXT,
                status TEXT NOT NULL,
                pdf_generation_status TEXT NOT NULL,
                draft_blob_ref TEXT,
                final_blob_ref TEXT,
                docx_blob_ref TEXT,
                variable_values TEXT NOT NULL DEFAULT '{}',
                slots TEXT NOT NULL DEFAULT '[]',
                sequential_signing INTEGER NOT NULL DEFAULT 1,
                requested_by TEXT,
                created_at TEXT,
                updated_at TEXT,
                completed_at TEXT,
                cancelled_at TEXT,
                cancellation_reason TEXT,
                version INTEGER NOT NULL DEFAULT 1
            );

            CREATE INDEX IF NOT EXISTS idx_generated_documents_status
                ON generated_documents (status);
            CREATE INDEX IF NOT EXISTS idx_generated_documents_pdf
                ON generated_documents (pdf_generation_status);
            """
        )

    # ---- mapping ---- #
    @staticmethod
    def _to_row(r: DocumentRecord) -> Dict[str, Any]:
        return {
            "template_id": r.template_id,
            "name": r.name,
            "file_name": r.file_name,
            "status": r.status.value,
            "pdf_generation_status": r.pdf_generation_status.value,
            "draft_blob_ref": r.draft_blob_ref,
            "final_blob_ref": r.final_blob_ref,
            "docx_blob_ref": r.docx_blob_ref,
            "variable_values": json.dumps(r.variable_values, ensure_ascii=False),
            "slots": json.dumps([s.to_dict() for s in r.slots], ensure_ascii=False),
            "sequential_signing": 1 if r.sequential_signing else 0,
            "requested_by": r.requested_by,
            "created_at": _dt(r.created_at),
            "updated_at": _dt(r.updated_at),
            "completed_at": _dt(r.completed_at),
            "cancelled_at": _dt(r.cancelled_at),
            "cancellation_reason": r.cancellation_reason,
        }

    @staticmethod
    def _from_row(row: Dict[str, Any]) -> DocumentRecord:
        return DocumentRecord(
            document_id=row["document_id"],
            template_id=row["template_id"],
            name=row["name"],
            file_name=row.get("file_name") or "document.pdf",
            status=DocumentStatus(row["status"]),
            pdf_generation_status=PdfGenerationStatus(row["pdf_generation_status"]),
            draft_blob_ref=row.get("draft_blob_ref"),
            final_blob_ref=row.get("final_blob_ref"),
            docx_blob_ref=row.get("docx_blob_ref"),
            variable_values=json.loads(row["variable_values"] or "{}"),
            slots=[SignatureSlot.from_dict(d) for d in json.loads(row["slots"] or "[]")],
            sequential_signing=bool(row["sequential_signing"]),
            requested_by=row.get("requested_by"),
            created_at=_parse_dt(row.get("created_at")),
            updated_at=_parse_dt(row.get("updated_at")),
            completed_at=_parse_dt(row.get("completed_at")),
            cancelled_at=_parse_dt(row.get("cancelled_at")),
            cancellation_reason=row.get("cancellation_reason"),
            version=int(row["version"]),
        )

    # ---- API ---- #
    def get(self, document_id: str) -> Optional[DocumentRecord]:
        row = self._db.fetchone("SELECT * FROM generated_documents WHERE document_id = ?", (document_id,))
        return self._from_row(row) if row else None

    def add(self, record: DocumentRecord) -> DocumentRecord:
        data = self._to_row(record)
        data["document_id"] = record.document_id
        data["version"] = record.version
        self._db.insert("generated_documents", data)
        logger.info("Created document %s (%s, pdf %s)", record.document_id,
                    record.status.value, record.pdf_generation_status.value)
        return record

    def compare_and_set(self, record: DocumentRecord, expected_version: int) -> Optional[DocumentRecord]:
        data = self._to_row(record)
        data["version"] = expected_version + 1
        count = self._db.update(
            "generated_documents",
            data,
            "document_id = ? AND version = ?",
            (record.document_id, expected_version),
        )
        if count != 1:
            logger.debug("Version conflict on document %s (expected %s)", record.document_id, expected_version)
            return None
        return replace(record, version=expected_version + 1)

    def list_by_status(self, status: DocumentStatus) -> List[DocumentRecord]:
        rows = self._db.fetchall(
            "SELECT * FROM generated_documents WHERE status = ? ORDER BY created_at", (status.value,)
        )
        return [self._from_row(r) for r in rows]

    def list_pending_pdf(self) -> List[DocumentRecord]:
        rows = self._db.fetchall(
            "SELECT * FROM generated_documents WHERE pdf_generation_status = ? ORDER BY created_at",
            (PdfGenerationStatus.PENDING.value,),
        )
        return [self._from_row(r) for r in rows]
