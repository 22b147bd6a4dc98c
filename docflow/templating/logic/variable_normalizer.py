"""
Variable name normalization.

Placeholder names are typed by hand in Word, so the same variable shows up
as ``FECHA DE INGRESO``, ``Fecha de ingreso`` or ``fecha de ingréso``. All
helpers here strip diacritics and compare case-insensitively.
"""
from __future__ import annotations

import re
import unicodedata

# Words kept lowercase in title case (Spanish connectors)
LOWERCASE_WORDS = frozenset({"de", "del", "la", "el", "los", "las", "a", "en", "con", "por", "para", "y", "o", "u"})

_SEPARATOR_SPLIT = re.compile(r"(\s+|[/\-])")
_SEPARATOR_ONLY = re.compile(r"^[\s/\-]+$")


def strip_accents(text: str) -> str:
    """Remove combining marks (U+0300..U+036F) after NFD decomposition."""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not ("\u0300" <= ch <= "\u036f"))
    return unicodedata.normalize("NFC", stripped)


def normalize(name: str | None) -> str:
    """Title case without accents, e.g. ``AUXILIO DE ALIMENTACIÓN`` -> ``Auxilio de Alimentacion``."""
    if not name or not str(name).strip():
        return ""
    parts = _SEPARATOR_SPLIT.split(strip_accents(str(name).strip()))
    first_word = next((i for i, p in enumerate(parts) if p and not _SEPARATOR_ONLY.match(p)), None)

    out = []
    for index, part in enumerate(parts):
        if not part or _SEPARATOR_ONLY.match(part):
            out.append(part)
            continue
        word = part.lower()
        if index == first_word or word not in LOWERCASE_WORDS:
            word = word.capitalize()
        out.append(word)
    return "".join(out)


def to_key(name: str | None) -> str:
    """Key-safe form: lowercase ascii words joined by underscores."""
    if not name or not str(name).strip():
        return ""
    result = strip_accents(str(name).strip().lower())
    return re.sub(r"[^a-z0-9]+", "_", result).strip("_")


def comparison_key(name: str | None) -> str:
    """Lowercase, accent-free, whitespace-collapsed key used for matching."""
    if not name or not str(name).strip():
        return ""
    result = strip_accents(str(name)).casefold()
    return re.sub(r"\s+", " ", result).strip()


def equivalent(name1: str | None, name2: str | None) -> bool:
    return comparison_key(name1) == comparison_key(name2)
