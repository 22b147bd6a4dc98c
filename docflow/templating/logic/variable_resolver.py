"""
Variable resolver

Maps ``source.field`` paths onto the records of a GenerationContext and
produces the flat name -> value table used for one generation request.

Path syntax:
    employee.full_name        -> context.subject.full_name
    organization.address.city -> context.organization["address"]["city"]
    request.items[0].label    -> context.request.items[0].label
    system.current_date       -> today, formatted
    custom.bonus              -> context.custom_values["bonus"]

Missing records or attributes resolve to None; the resolver never raises
for absent data.
"""
from __future__ import annotations

import logging
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Protocol

from docflow.templating.models.generation_context import GenerationContext

logger = logging.getLogger(__name__)

DATE_FORMAT = "%d/%m/%Y"

_BRACKET_PATTERN = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\[(\d+)\]$")


def format_value(value: Any) -> str:
    """Render a resolved value the way it is written into documents."""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, datetime):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class FieldResolver(Protocol):
    """Collaborator contract: resolve one dotted field path (None when missing)."""

    def resolve(self, path: str) -> Any:
        ...


def _step(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    m = _BRACKET_PATTERN.match(name)
    if m:
        seq = _step(obj, m.group(1))
        index = int(m.group(2))
        try:
            return seq[index] if seq is not None else None
        except (IndexError, KeyError, TypeError):
            return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


class ContextFieldResolver:
    """Default FieldResolver over a GenerationContext."""

    def __init__(self, context: GenerationContext, *, today: Optional[Callable[[], date]] = None) -> None:
        self._ctx = context
        self._today = today or date.today

    def resolve(self, path: str) -> Any:
        if not path:
            return None
        custom = self._ctx.custom_values or {}
        if path in custom:
            return custom[path]

        source, _, field = path.partition(".")
        if source == "system":
            return self._resolve_system(field)
        if source == "custom":
            return custom.get(field)

        record = self._ctx.record_for(source)
        if record is None:
            logger.debug("No %s record in context for path %s", source, path)
            return None
        value = record
        for name in field.split(".") if field else []:
            value = _step(value, name)
            if value is None:
                return None
        if callable(value):
            value = value()
        return value

    def _resolve_system(self, field: str) -> Any:
        today = self._today()
        if field == "current_date":
            return today.strftime(DATE_FORMAT)
        if field == "current_year":
            return str(today.year)
        if field == "current_month":
            return f"{today.month:02d}"
        return None


def resolve_for_template(template: Any, resolver: FieldResolver) -> Dict[str, Any]:
    """
    Build the variable table for a template.

    Args:
        template: Object exposing ``variables`` and ``variable_mappings``
        resolver: Field resolver bound to the request context

    Returns:
        ``{variable name: value or None}`` for every declared variable.
    """
    result: Dict[str, Any] = {}
    mappings = template.variable_mappings or {}
    for name in template.variables:
        path = mappings.get(name)
        result[name] = resolver.resolve(path) if path else None
    return result
