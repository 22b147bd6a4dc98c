"""
DOCX container processing.

Opens the DOCX with python-docx and runs the placeholder splicer over every
paragraph of the main body (table cells included), all headers and all
footers. XML is edited through python-docx's lxml elements so namespace
prefixes and run properties survive unchanged.
"""
from __future__ import annotations

import logging
import re
import zipfile
from dataclasses import dataclass
from io import BytesIO
from typing import Iterator, List, Mapping, Optional, Tuple, Any

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from docx.oxml.ns import qn
from lxml import etree

from docflow.exceptions.errors import DocumentStructureError
from docflow.templating.logic.placeholder_splicer import VariableLookup, extract_names, splice_paragraph
from docflow.templating.models.replacement_log import ReplacementLog

logger = logging.getLogger(__name__)

_HEADER_FOOTER_RE = re.compile(r"^/word/(header|footer)\d*\.xml$")
_XML_SPACE = "{http://www.w3.org/XML/1998/namespace}space"
# Characters XML 1.0 cannot carry. Tab-like controls become a space, the rest are dropped.
_XML_BLANK_RE = re.compile(r"[\x0b\x0c]")
_XML_ILLEGAL_RE = re.compile(r"[\x00-\x08\x0e-\x1f\ufffe\uffff\ud800-\udfff]")


def xml_safe(value: str) -> str:
    """Make *value* storable in a ``w:t`` element."""
    return _XML_ILLEGAL_RE.sub("", _XML_BLANK_RE.sub(" ", value))


class _XmlTextNode:
    """``w:t`` element exposed through the splicer's ``text`` protocol."""

    __slots__ = ("_el",)

    def __init__(self, element: Any) -> None:
        self._el = element

    @property
    def text(self) -> Optional[str]:
        return self._el.text

    @text.setter
    def text(self, value: Optional[str]) -> None:
        if value:
            value = xml_safe(value)
        self._el.text = value
        if value and (value[0].isspace() or value[-1].isspace()):
            self._el.set(_XML_SPACE, "preserve")


@dataclass
class FillResult:
    docx_bytes: bytes
    log: ReplacementLog


def load_document(docx_bytes: bytes) -> Any:
    """Open DOCX bytes with python-docx; unreadable containers raise DocumentStructureError."""
    if not docx_bytes:
        raise DocumentStructureError("Empty DOCX content")
    try:
        return Document(BytesIO(docx_bytes))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError, etree.XMLSyntaxError) as ex:
        raise DocumentStructureError(f"Unreadable DOCX container: {ex}") from ex


def iter_xml_parts(document: Any) -> Iterator[Tuple[str, Any]]:
    """Yield ``(part name, root element)`` for body, headers and footers."""
    main = document.part
    yield str(main.partname), main.element
    for part in main.package.iter_parts():
        name = str(part.partname)
        if _HEADER_FOOTER_RE.match(name):
            element = getattr(part, "element", None)
            if element is not None:
                yield name, element


def iter_paragraph_nodes(root: Any) -> Iterator[List[_XmlTextNode]]:
    """
    Yield the text nodes of each ``w:p`` below *root*.

    A text node belongs to its nearest enclosing paragraph, so paragraphs
    nested in text boxes are handled on their own.
    """
    p_tag = qn("w:p")
    for paragraph in root.iter(p_tag):
        nodes: List[_XmlTextNode] = []
        for t in paragraph.iter(qn("w:t")):
            owner = t.getparent()
            while owner is not None and owner.tag != p_tag:
                owner = owner.getparent()
            if owner is paragraph:
                nodes.append(_XmlTextNode(t))
        if nodes:
            yield nodes


class DocxFiller:
    """Fill ``{{Name}}`` placeholders of a DOCX from a variable table."""

    def fill(self, docx_bytes: bytes, values: Mapping[str, Any]) -> FillResult:
        """
        Args:
            docx_bytes: Source template (.docx)
            values: Variable table (name -> value); None values count as unresolved

        Returns:
            FillResult with the new DOCX bytes and the replacement log.

        Raises:
            DocumentStructureError: the container cannot be read
        """
        document = load_document(docx_bytes)
        lookup = VariableLookup(values)
        log = ReplacementLog()

        for part_name, root in iter_xml_parts(document):
            for nodes in iter_paragraph_nodes(root):
                for entry in splice_paragraph(nodes, lookup, part=part_name):
                    log.add(entry)

        out = BytesIO()
        document.save(out)
        logger.info(
            "Filled template: %d replaced, %d not found",
            len(log.replaced), len(log.not_found),
        )
        return FillResult(docx_bytes=out.getvalue(), log=log)


def extract_placeholders(docx_bytes: bytes) -> List[str]:
    """Return distinct placeholder names (first appearance order) of a DOCX."""
    document = load_document(docx_bytes)
    seen: List[str] = []
    for _, root in iter_xml_parts(document):
        for nodes in iter_paragraph_nodes(root):
            text = "".join(n.text or "" for n in nodes)
            for name in extract_names(text):
                name = name.strip()
                if name and name not in seen:
                    seen.append(name)
    return seen
