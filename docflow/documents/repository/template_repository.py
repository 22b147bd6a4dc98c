"""Template persistence (ABC + SQLite implementation)."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from docflow.core.adapters.database_adapter import DatabaseAdapter
from docflow.documents.enum.document_status import TemplateStatus
from docflow.documents.models.template import Template, TemplateSignatory

logger = logging.getLogger(__name__)


class TemplateRepository(ABC):
    @abstractmethod
    def get(self, template_id: str) -> Optional[Template]:
        raise NotImplementedError

    @abstractmethod
    def save(self, template: Template) -> Template:
        """Insert or replace a template."""
        raise NotImplementedError

    @abstractmethod
    def list(self, status: Optional[TemplateStatus] = None) -> List[Template]:
        raise NotImplementedError


class SQLiteTemplateRepository(TemplateRepository):
    """SQLite backend for templates; list-valued fields are stored as JSON."""

    def __init__(self, db: DatabaseAdapter) -> None:
        self._db = db
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        self._db.executescript(
            """
            CREATE TABLE IF NOT EXISTS templates (
                template_id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                category TEXT,
                status TEXT NOT NULL,
                variables TEXT NOT NULL DEFAULT '[]',
                variable_mappings TEXT NOT NULL DEFAULT '{}',
                source_blob_ref TEXT,
                preview_blob_ref TEXT,
                sequential_signing INTEGER NOT NULL DEFAULT 1,
                signatories TEXT NOT NULL DEFAULT '[]',
                version INTEGER NOT NULL DEFAULT 1,
                created_at TEXT,
                updated_at TEXT
            );
            """
        )

    # ---- mapping ---- #
    @staticmethod
    def _to_row(t: Template) -> Dict[str, Any]:
        return {
            "template_id": t.template_id,
            "name": t.name,
            "category": t.category,
            "status": t.status.value,
            "variables": json.dumps(t.variables, ensure_ascii=False),
            "variable_mappings": json.dumps(t.variable_mappings, ensure_ascii=False),
            "source_blob_ref": t.source_blob_ref,
            "preview_blob_ref": t.preview_blob_ref,
            "sequential_signing": 1 if t.sequential_signing else 0,
            "signatories": json.dumps([s.to_dict() for s in t.signatories], ensure_ascii=False),
            "version": t.version,
            "created_at": t.created_at.isoformat(),
            "updated_at": t.updated_at.isoformat(),
        }

    @staticmethod
    def _from_row(row: Dict[str, Any]) -> Template:
        return Template(
            template_id=row["template_id"],
            name=row["name"],
            category=row.get("category") or "general",
            status=TemplateStatus(row["status"]),
            variables=json.loads(row["variables"] or "[]"),
            variable_mappings=json.loads(row["variable_mappings"] or "{}"),
            source_blob_ref=row.get("source_blob_ref"),
            preview_blob_ref=row.get("preview_blob_ref"),
            sequential_signing=bool(row["sequential_signing"]),
            signatories=[TemplateSignatory.from_dict(d) for d in json.loads(row["signatories"] or "[]")],
            version=int(row["version"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    # ---- API ---- #
    def get(self, template_id: str) -> Optional[Template]:
        row = self._db.fetchone("SELECT * FROM templates WHERE template_id = ?", (template_id,))
        return self._from_row(row) if row else None

    def save(self, template: Template) -> Template:
        row = self._to_row(template)
        columns = ", ".join(row.keys())
        placeholders = ", ".join(["?"] * len(row))
        self._db.execute(
            f"INSERT OR REPLACE INTO templates ({columns}) VALUES ({placeholders})",
            tuple(row.values()),
        )
        logger.debug("Saved template %s (%s)", template.template_id, template.status.value)
        return template

    def list(self, status: Optional[TemplateStatus] = None) -> List[Template]:
        if status is None:
            rows = self._db.fetchall("SELECT * FROM templates ORDER BY name")
        else:
            rows = self._db.fetchall("SELECT * FROM templates WHERE status = ? ORDER BY name", (status.value,))
        return [self._from_row(r) for r in rows]
