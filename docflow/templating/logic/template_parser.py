"""Template parsing: declared variables and automatic field-path mappings."""
from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional

from docflow.templating.logic.docx_filler import extract_placeholders
from docflow.templating.logic.variable_normalizer import equivalent, normalize

logger = logging.getLogger(__name__)


def extract_variables(docx_bytes: bytes) -> List[str]:
    """
    Return the sorted, normalized placeholder names of a template.

    Names differing only in case or accents collapse into one entry
    (``NOMBRE`` and ``Nombré`` both become ``Nombre``).
    """
    names = {normalize(raw) for raw in extract_placeholders(docx_bytes)}
    names.discard("")
    return sorted(names)


def _find_mapping(variable: str, available: Mapping[str, str]) -> Optional[str]:
    for mapping_name, path in available.items():
        if equivalent(variable, mapping_name):
            return path
    return None


def auto_assign_mappings(
    variables: List[str],
    current: Mapping[str, str],
    available: Mapping[str, str],
) -> Dict[str, str]:
    """
    Fill in mappings for variables that have none yet.

    Args:
        variables: Declared variable names of the template
        current: Existing ``name -> path`` mappings (kept as is)
        available: Known system mappings, ``display name -> path``

    Returns:
        New mapping dict; the input is not modified.
    """
    result = dict(current)
    for variable in variables:
        if result.get(variable):
            continue
        path = _find_mapping(variable, available)
        if path:
            logger.debug("Auto-mapped %s -> %s", variable, path)
            result[variable] = path
    return result


def reassign_all_mappings(variables: List[str], available: Mapping[str, str]) -> Dict[str, str]:
    """Recompute every mapping from scratch; unmatched variables are dropped."""
    result: Dict[str, str] = {}
    for variable in variables:
        path = _find_mapping(variable, available)
        if path:
            result[variable] = path
    return result
