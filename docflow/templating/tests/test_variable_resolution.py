"""Resolver, normalizer, auto-mapping and pre-flight validation."""
from __future__ import annotations

import copy
import unittest
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List

from docflow.templating.logic import variable_normalizer as vn
from docflow.templating.logic.template_parser import auto_assign_mappings, reassign_all_mappings
from docflow.templating.logic.variable_resolver import ContextFieldResolver, format_value, resolve_for_template
from docflow.templating.logic.variable_validation import validate
from docflow.templating.models.generation_context import GenerationContext
from docflow.templating.models.validation_report import MissingReason


@dataclass
class FakeTemplate:
    variables: List[str]
    variable_mappings: Dict[str, str] = field(default_factory=dict)


@dataclass
class Employee:
    full_name: str
    hire_date: date = None
    supervisor: object = None


class TestNormalizer(unittest.TestCase):
    def test_normalize_title_case(self) -> None:
        self.assertEqual(vn.normalize("AUXILIO DE ALIMENTACIÓN"), "Auxilio de Alimentacion")
        self.assertEqual(vn.normalize("de la fecha"), "De la Fecha")
        self.assertEqual(vn.normalize("DIA/MES/AÑO"), "Dia/Mes/Ano")
        self.assertEqual(vn.normalize("   "), "")

    def test_keys(self) -> None:
        self.assertEqual(vn.to_key(" Fecha de Ingreso! "), "fecha_de_ingreso")
        self.assertEqual(vn.comparison_key("  NOMBRE   Del  Trabajador "), "nombre del trabajador")
        self.assertTrue(vn.equivalent("Número", "numero"))
        self.assertFalse(vn.equivalent("Numero", "Nombre"))


class TestResolver(unittest.TestCase):
    def setUp(self) -> None:
        boss = Employee(full_name="Luis Gómez")
        self.ctx = GenerationContext(
            subject=Employee(full_name="Ana Pérez", hire_date=date(2020, 2, 1), supervisor=boss),
            organization={"name": "ACME", "address": {"city": "Bogotá"}, "branches": ["Norte", "Sur"]},
            custom_values={"bonus": 100, "employee.full_name": "Override"},
        )
        self.resolver = ContextFieldResolver(self.ctx, today=lambda: date(2024, 3, 9))

    def test_paths(self) -> None:
        self.assertEqual(self.resolver.resolve("employee.supervisor.full_name"), "Luis Gómez")
        self.assertEqual(self.resolver.resolve("organization.address.city"), "Bogotá")
        self.assertEqual(self.resolver.resolve("organization.branches[1]"), "Sur")
        self.assertEqual(self.resolver.resolve("custom.bonus"), 100)
        self.assertEqual(self.resolver.resolve("system.current_date"), "09/03/2024")
        self.assertEqual(self.resolver.resolve("system.current_year"), "2024")

    def test_custom_values_take_precedence(self) -> None:
        self.assertEqual(self.resolver.resolve("employee.full_name"), "Override")

    def test_missing_data_is_none(self) -> None:
        for path in ("contract.number", "organization.nope", "organization.branches[9]",
                     "employee.hire_date.nope", "unknown.x", ""):
            self.assertIsNone(self.resolver.resolve(path), path)

    def test_format_value(self) -> None:
        self.assertEqual(format_value(date(2020, 2, 1)), "01/02/2020")
        self.assertEqual(format_value(True), "Yes")
        self.assertEqual(format_value(1500.0), "1500")
        self.assertEqual(format_value("x"), "x")

    def test_resolve_for_template(self) -> None:
        tpl = FakeTemplate(["Nombre", "Otro"], {"Nombre": "employee.supervisor.full_name"})
        self.assertEqual(resolve_for_template(tpl, self.resolver), {"Nombre": "Luis Gómez", "Otro": None})


class TestValidation(unittest.TestCase):
    def test_reports_only_missing_fecha(self) -> None:
        tpl = FakeTemplate(["Nombre", "Fecha"], {"Nombre": "employee.full_name", "Fecha": "request.start_date"})
        ctx = GenerationContext(subject={"full_name": "Ana Pérez"}, request={"start_date": None})
        report = validate(tpl, ContextFieldResolver(ctx))

        self.assertEqual(len(report.missing), 1)
        item = report.missing[0]
        self.assertEqual(item.variable, "Fecha")
        self.assertEqual(item.reason, MissingReason.UNVALUED)
        self.assertEqual(item.source, "request")
        self.assertEqual(item.field, "start_date")
        self.assertEqual(list(report.by_source), ["request"])
        self.assertFalse(report.valid)

    def test_unmapped_and_grouping(self) -> None:
        tpl = FakeTemplate(
            ["Nombre", "Cargo", "Empresa", "Libre"],
            {"Nombre": "employee.full_name", "Cargo": "employee.job_title", "Empresa": "organization.name"},
        )
        ctx = GenerationContext(subject={"full_name": "  "}, organization={"name": ""})
        report = validate(tpl, ContextFieldResolver(ctx))

        self.assertEqual([m.variable for m in report.by_source["employee"]], ["Nombre", "Cargo"])
        self.assertEqual(report.by_source["unmapped"][0].reason, MissingReason.UNMAPPED)
        self.assertEqual(report.by_source["employee"][1].field_label, "Job title")
        self.assertEqual(
            report.message,
            "Missing employee data: Full name, Job title. "
            "Missing organization data: Name. Variables without mapping: Libre",
        )

    def test_validate_is_side_effect_free(self) -> None:
        tpl = FakeTemplate(["Nombre", "Fecha"], {"Nombre": "employee.full_name"})
        ctx = GenerationContext(subject={"full_name": "Ana"}, custom_values={"x": 1})
        before = (copy.deepcopy(tpl), copy.deepcopy(ctx))
        first = validate(tpl, ContextFieldResolver(ctx))
        second = validate(tpl, ContextFieldResolver(ctx))
        self.assertEqual(first, second)
        self.assertEqual((tpl, ctx), before)


class TestAutoMapping(unittest.TestCase):
    AVAILABLE = {"Nombre del Trabajador": "employee.full_name", "Fecha de Ingreso": "employee.hire_date"}

    def test_auto_assign_keeps_existing(self) -> None:
        result = auto_assign_mappings(
            ["NOMBRE DEL TRABAJADOR", "Fecha de ingréso", "Otra"],
            {"Fecha de ingréso": "custom.fecha"},
            self.AVAILABLE,
        )
        self.assertEqual(result, {
            "NOMBRE DEL TRABAJADOR": "employee.full_name",
            "Fecha de ingréso": "custom.fecha",
        })

    def test_reassign_all(self) -> None:
        result = reassign_all_mappings(["Fecha de ingréso", "Otra"], self.AVAILABLE)
        self.assertEqual(result, {"Fecha de ingréso": "employee.hire_date"})


if __name__ == "__main__":
    unittest.main()
