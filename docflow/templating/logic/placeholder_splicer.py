"""
===============================================================================
Placeholder splicer - replace ``{{Name}}`` tokens across fragmented runs
-------------------------------------------------------------------------------
Word splits text into runs whenever formatting, spell-check state or edit
history changes, so ``{{Nombre}}`` regularly ends up as ``{{``, ``Nom``,
``bre}}`` in three different ``w:t`` nodes.

Per paragraph:
    1. concatenate the text nodes into one logical string and remember each
       node's [start, end) offset (the run map)
    2. find every token in a single scan, resolve all names up front
    3. apply replacements right to left:
         - token inside one node: plain in-node replace
         - token across nodes: first node keeps its prefix + value, every
           following node loses only the token characters
    4. unresolved tokens are logged and left untouched

Nodes only need a read/write ``text`` attribute, which keeps the algorithm
independent of the XML layer (see ``docx_filler``).
===============================================================================
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from docflow.templating.logic.variable_normalizer import comparison_key
from docflow.templating.logic.variable_resolver import format_value
from docflow.templating.models.replacement_log import ReplacementEntry, ReplacementStatus

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{([^}]+)\}\}")


class TextNode(Protocol):
    text: Optional[str]


@dataclass(frozen=True)
class PlaceholderMatch:
    pattern: str
    name: str
    start: int
    end: int
    # (node index, node start, node end) for every node overlapping the token
    nodes: Tuple[Tuple[int, int, int], ...]


class VariableLookup:
    """Resolve placeholder names: exact key first, then accent/case-insensitive."""

    def __init__(self, values: Mapping[str, Any]) -> None:
        self._values = dict(values)
        self._normalized: Dict[str, str] = {}
        for key in self._values:
            self._normalized.setdefault(comparison_key(key), key)

    def resolve(self, name: str) -> Optional[str]:
        if name in self._values:
            key = name
        else:
            key = self._normalized.get(comparison_key(name))
            if key is None:
                return None
        value = self._values.get(key)
        if value is None:
            return None
        return format_value(value)


def extract_names(text: str) -> List[str]:
    """Return token names in order of appearance (duplicates kept)."""
    return [m.group(1) for m in PLACEHOLDER_PATTERN.finditer(text or "")]


def build_run_map(nodes: Sequence[TextNode]) -> Tuple[str, List[Tuple[int, int]]]:
    """Concatenate node texts and return (logical string, [(start, end), ...])."""
    spans: List[Tuple[int, int]] = []
    parts: List[str] = []
    pos = 0
    for node in nodes:
        text = node.text or ""
        spans.append((pos, pos + len(text)))
        parts.append(text)
        pos += len(text)
    return "".join(parts), spans


def locate(nodes: Sequence[TextNode]) -> List[PlaceholderMatch]:
    """Find every token of the paragraph together with the nodes it covers."""
    logical, spans = build_run_map(nodes)
    matches: List[PlaceholderMatch] = []
    for m in PLACEHOLDER_PATTERN.finditer(logical):
        start, end = m.span()
        covered = tuple(
            (i, s, e) for i, (s, e) in enumerate(spans) if s < end and e > start
        )
        matches.append(PlaceholderMatch(m.group(0), m.group(1), start, end, covered))
    return matches


def splice_paragraph(
    nodes: Sequence[TextNode],
    lookup: VariableLookup,
    *,
    part: str = "document",
) -> List[ReplacementEntry]:
    """
    Replace all resolvable tokens of one paragraph in place.

    Args:
        nodes: Text nodes of the paragraph in document order
        lookup: Name resolver for the variable table
        part: Name of the container part (for the log)

    Returns:
        One log entry per token occurrence.
    """
    matches = locate(nodes)
    if not matches:
        return []

    entries: List[ReplacementEntry] = []
    plan: List[Tuple[PlaceholderMatch, str]] = []
    for match in matches:
        value = lookup.resolve(match.name)
        if value is None:
            logger.info("Placeholder %s not found in variable table (%s)", match.pattern, part)
            entries.append(ReplacementEntry(
                variable=match.name,
                status=ReplacementStatus.NOT_FOUND,
                pattern=match.pattern,
                part=part,
                reason="No mapping found",
            ))
            continue
        plan.append((match, value))
        entries.append(ReplacementEntry(
            variable=match.name,
            status=ReplacementStatus.REPLACED,
            pattern=match.pattern,
            value=value,
            part=part,
        ))

    texts = [node.text or "" for node in nodes]
    # Right to left: offsets left of the current token stay valid.
    for match, value in reversed(plan):
        first_idx, first_start, _ = match.nodes[0]
        head = texts[first_idx][: match.start - first_start]
        if len(match.nodes) == 1:
            tail = texts[first_idx][match.end - first_start:]
            texts[first_idx] = head + value + tail
            continue
        texts[first_idx] = head + value
        for idx, node_start, node_end in match.nodes[1:]:
            cut_to = min(match.end, node_end) - node_start
            texts[idx] = texts[idx][cut_to:]

    for node, text in zip(nodes, texts):
        if (node.text or "") != text:
            node.text = text
    return entries
