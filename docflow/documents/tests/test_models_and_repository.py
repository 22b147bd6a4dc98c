"""
docflow/documents/tests/test_models_and_repository.py

Template lifecycle, record queries and SQLite persistence with compare-and-set.
"""

from __future__ import annotations

import unittest
from dataclasses import replace
from datetime import datetime, timezone

from docflow.core.adapters.sqlite_adapter import SQLiteAdapter
from docflow.documents.enum.document_status import DocumentStatus, SlotStatus, TemplateStatus
from docflow.documents.models.document_record import DocumentRecord
from docflow.documents.models.signature_slot import SignatureSlot
from docflow.documents.models.signer import Signer
from docflow.documents.models.template import Template, TemplateSignatory
from docflow.documents.repository.document_repository import SQLiteDocumentRepository
from docflow.documents.repository.template_repository import SQLiteTemplateRepository
from docflow.exceptions.errors import TemplateConfigurationError
from docflow.signature.models.signature_enums import DatePosition
from docflow.signature.models.signature_placement import SlotPlacement

ANA = Signer("ana", "Ana Pérez", signature_ref="a" * 64)


class TestTemplate(unittest.TestCase):
    def _template(self) -> Template:
        return Template(
            name="Certificado laboral",
            variables=["Nombre"],
            variable_mappings={"Nombre": "employee.full_name"},
            signatories=[
                TemplateSignatory("hr", position=1),
                TemplateSignatory("employee", position=0),
                TemplateSignatory("legal", position=1, required=False),
            ],
        )

    def test_signatory_defaults(self) -> None:
        hr, employee, legal = self._template().signatories
        self.assertEqual(hr.label, "Human resources")
        self.assertEqual(hr.claim_role, "hr")
        self.assertIsNone(employee.claim_role)
        self.assertEqual(legal.claim_role, "legal")
        with self.assertRaises(ValueError):
            TemplateSignatory("employee", position=-1)

    def test_signing_order_is_stable(self) -> None:
        template = self._template()
        self.assertEqual([s.type_code for s in template.signatories_by_position()], ["employee", "hr", "legal"])
        self.assertEqual([s.type_code for s in template.required_signatories()], ["employee", "hr"])
        self.assertEqual([s.type_code for s in template.optional_signatories()], ["legal"])

    def test_lifecycle(self) -> None:
        template = self._template()
        with self.assertRaises(TemplateConfigurationError):
            template.activate()
        with self.assertRaises(TemplateConfigurationError):
            template.ensure_usable()

        template.source_blob_ref = "b" * 64
        template.activate()
        self.assertTrue(template.is_active)
        template.ensure_usable()

        template.archive()
        self.assertIs(template.status, TemplateStatus.ARCHIVED)
        with self.assertRaises(TemplateConfigurationError):
            template.ensure_usable()
        template.reactivate()
        self.assertTrue(template.is_active)

    def test_duplicate(self) -> None:
        template = self._template()
        template.version = 4
        copy = template.duplicate()
        self.assertEqual(copy.name, "Certificado laboral (copia)")
        self.assertIs(copy.status, TemplateStatus.DRAFT)
        self.assertEqual(copy.version, 1)
        self.assertNotEqual(copy.template_id, template.template_id)
        self.assertTrue(
            {s.signatory_id for s in copy.signatories}.isdisjoint(s.signatory_id for s in template.signatories)
        )
        copy.variable_mappings["Nombre"] = "employee.name"
        self.assertEqual(template.variable_mappings["Nombre"], "employee.full_name")


class TestDocumentRecord(unittest.TestCase):
    def _record(self, sequential: bool = True) -> DocumentRecord:
        slots = [
            SignatureSlot.from_signatory(TemplateSignatory("employee", 0), ANA),
            SignatureSlot.from_signatory(TemplateSignatory("legal", 1, required=False)),
            SignatureSlot.from_signatory(TemplateSignatory("hr", 2)),
        ]
        return DocumentRecord(template_id="t", name="Doc", slots=slots,
                              status=DocumentStatus.PENDING_SIGNATURES, sequential_signing=sequential)

    def test_counts_and_blocking(self) -> None:
        record = self._record()
        employee, legal, hr = record.slots
        self.assertEqual(record.total_required_signatures, 2)
        self.assertEqual(record.pending_signatures_count, 2)
        self.assertEqual(record.completed_signatures_count, 0)
        self.assertEqual([s.label for s in record.blocking_slots_for(hr)], ["Requesting employee"])
        self.assertEqual(record.blocking_slots_for(legal), [employee])
        self.assertEqual(record.next_slot_to_sign(), employee)

        signed = record.with_slot(employee.signed(ANA, ANA.signature_ref, datetime.now(timezone.utc)))
        self.assertEqual(signed.pending_signatures_count, 1)
        self.assertEqual(signed.completed_signatures_count, 1)
        self.assertEqual(signed.order_status(hr).waiting_for, [])
        self.assertFalse(signed.all_required_signed())
        self.assertEqual(record.slots[0].status, SlotStatus.PENDING)

    def test_parallel_records_never_block(self) -> None:
        record = self._record(sequential=False)
        self.assertEqual(record.blocking_slots_for(record.slots[2]), [])

    def test_file_name_base(self) -> None:
        self.assertEqual(replace(self._record(), file_name="Contrato.PDF").file_name_base, "Contrato")


class TestRepositories(unittest.TestCase):
    def setUp(self) -> None:
        self.db = SQLiteAdapter(":memory:")
        self.templates = SQLiteTemplateRepository(self.db)
        self.documents = SQLiteDocumentRepository(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def test_template_round_trip(self) -> None:
        placement = SlotPlacement(page=0, x=40, y=700, date_position=DatePosition.BELOW, show_signer_name=True)
        template = Template(
            name="Vacaciones",
            variables=["Nombre", "Fecha"],
            variable_mappings={"Nombre": "employee.full_name"},
            source_blob_ref="c" * 64,
            sequential_signing=False,
            signatories=[TemplateSignatory("hr", position=2, placement=placement)],
        )
        template.activate()
        self.templates.save(template)

        loaded = self.templates.get(template.template_id)
        self.assertEqual(loaded.variables, ["Nombre", "Fecha"])
        self.assertEqual(loaded.variable_mappings, {"Nombre": "employee.full_name"})
        self.assertFalse(loaded.sequential_signing)
        self.assertIs(loaded.status, TemplateStatus.ACTIVE)
        self.assertEqual(loaded.signatories[0].placement, placement)
        self.assertEqual(loaded.signatories[0].claim_role, "hr")
        self.assertEqual([t.template_id for t in self.templates.list(TemplateStatus.ACTIVE)], [template.template_id])
        self.assertEqual(self.templates.list(TemplateStatus.DRAFT), [])

    def test_compare_and_set(self) -> None:
        record = DocumentRecord(
            template_id="t",
            name="Doc",
            status=DocumentStatus.PENDING_SIGNATURES,
            slots=[SignatureSlot.from_signatory(TemplateSignatory("employee", 0), ANA)],
            variable_values={"Nombre": "Ana Pérez", "Vacío": None},
        )
        self.documents.add(record)

        loaded = self.documents.get(record.document_id)
        self.assertEqual(loaded.version, 1)
        self.assertEqual(loaded.variable_values, {"Nombre": "Ana Pérez", "Vacío": None})
        self.assertEqual(loaded.slots[0].assignee_id, "ana")

        now = datetime.now(timezone.utc)
        signed = loaded.with_slot(loaded.slots[0].signed(ANA, ANA.signature_ref, now)).evolve(
            status=DocumentStatus.COMPLETED, completed_at=now)
        stored = self.documents.compare_and_set(signed, expected_version=1)
        self.assertEqual(stored.version, 2)

        # a writer still holding version 1 loses
        stale = loaded.evolve(status=DocumentStatus.CANCELLED)
        self.assertIsNone(self.documents.compare_and_set(stale, expected_version=1))

        current = self.documents.get(record.document_id)
        self.assertIs(current.status, DocumentStatus.COMPLETED)
        self.assertEqual(current.slots[0].signed_at, now)
        self.assertEqual(current.slots[0].signature_ref, ANA.signature_ref)
        self.assertEqual([d.document_id for d in self.documents.list_by_status(DocumentStatus.COMPLETED)],
                         [record.document_id])
        self.assertEqual(self.documents.list_pending_pdf(), [])


if __name__ == "__main__":
    unittest.main()
