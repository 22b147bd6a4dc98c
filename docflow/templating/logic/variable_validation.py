"""Pre-flight check: which declared placeholders cannot be filled."""
from __future__ import annotations

from typing import Any, Dict, List

from docflow.templating.logic.variable_resolver import FieldResolver, resolve_for_template
from docflow.templating.models.validation_report import MissingReason, MissingVariable, ValidationReport

FIELD_LABELS: Dict[str, str] = {
    "full_name": "Full name",
    "identification_number": "Identification number",
    "identification_type": "Identification type",
    "job_title": "Job title",
    "department": "Department",
    "hire_date": "Hire date",
    "salary": "Salary",
    "food_allowance": "Food allowance",
    "transport_allowance": "Transport allowance",
    "contract_type": "Contract type",
    "contract_start_date": "Contract start date",
    "contract_end_date": "Contract end date",
    "address": "Address",
    "phone": "Phone",
    "email": "Email",
    "date_of_birth": "Date of birth",
    "name": "Name",
    "tax_id": "Tax ID",
    "city": "City",
}


def humanize_field(field: str) -> str:
    if field in FIELD_LABELS:
        return FIELD_LABELS[field]
    text = field.replace(".", " ").replace("_", " ").strip()
    return text[:1].upper() + text[1:]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate(template: Any, resolver: FieldResolver) -> ValidationReport:
    """
    Classify every declared variable of *template* as filled, unmapped or unvalued.

    Reads only; neither the template nor the resolver context is modified.
    """
    values = resolve_for_template(template, resolver)
    mappings = template.variable_mappings or {}
    missing: List[MissingVariable] = []

    for name in template.variables:
        path = mappings.get(name)
        if not path:
            missing.append(MissingVariable(variable=name, reason=MissingReason.UNMAPPED))
            continue
        if _is_blank(values.get(name)):
            source, _, field = path.partition(".")
            missing.append(MissingVariable(
                variable=name,
                reason=MissingReason.UNVALUED,
                path=path,
                source=source,
                field=field,
                field_label=humanize_field(field) if field else None,
            ))

    return ValidationReport(missing=missing, values=values)
