"""Run-map splicing over plain text nodes."""
from __future__ import annotations

import unittest
from dataclasses import dataclass
from typing import List, Optional

from docflow.templating.logic.placeholder_splicer import (
    VariableLookup,
    build_run_map,
    locate,
    splice_paragraph,
)
from docflow.templating.models.replacement_log import ReplacementStatus


@dataclass
class Node:
    text: Optional[str]


def nodes(*texts: str) -> List[Node]:
    return [Node(t) for t in texts]


def joined(ns: List[Node]) -> str:
    return "".join(n.text or "" for n in ns)


class TestRunMap(unittest.TestCase):
    def test_offsets(self) -> None:
        logical, spans = build_run_map(nodes("ab", "", "cde", None))
        self.assertEqual(logical, "abcde")
        self.assertEqual(spans, [(0, 2), (2, 2), (2, 5), (5, 5)])

    def test_locate_reports_covered_nodes(self) -> None:
        found = locate(nodes("x {{No", "mb", "re}} y"))
        self.assertEqual(len(found), 1)
        self.assertEqual(found[0].name, "Nombre")
        self.assertEqual([n[0] for n in found[0].nodes], [0, 1, 2])


class TestSplice(unittest.TestCase):
    def setUp(self) -> None:
        self.lookup = VariableLookup({"Nombre": "Ana Pérez", "Cargo": "Analyst", "Vacio": None})

    def test_same_node_replacement(self) -> None:
        ns = nodes("Hola {{Nombre}}, bienvenida", " (fin)")
        log = splice_paragraph(ns, self.lookup)
        self.assertEqual([n.text for n in ns], ["Hola Ana Pérez, bienvenida", " (fin)"])
        self.assertEqual(log[0].status, ReplacementStatus.REPLACED)
        self.assertEqual(log[0].pattern, "{{Nombre}}")
        self.assertEqual(log[0].value, "Ana Pérez")

    def test_token_across_three_nodes_keeps_outside_text(self) -> None:
        ns = nodes("Hola {{Nom", "bre", "}} y adios")
        splice_paragraph(ns, self.lookup)
        self.assertEqual([n.text for n in ns], ["Hola Ana Pérez", "", " y adios"])

    def test_fragmentation_is_invisible_in_output_text(self) -> None:
        text = "Sr(a). {{Nombre}} - {{Cargo}} ok"
        expected = "Sr(a). Ana Pérez - Analyst ok"
        for cut_points in ([], [9], [7, 8, 15], [1, 8, 9, 10, 11, 19, 22, 30], list(range(1, len(text)))):
            pieces, prev = [], 0
            for cut in cut_points + [len(text)]:
                pieces.append(text[prev:cut])
                prev = cut
            ns = nodes(*pieces)
            splice_paragraph(ns, self.lookup)
            self.assertEqual(joined(ns), expected, msg=f"cuts={cut_points}")

    def test_later_node_suffix_and_next_token_survive(self) -> None:
        ns = nodes("{{Nom", "bre}}: {{Car", "go}}!")
        splice_paragraph(ns, self.lookup)
        self.assertEqual([n.text for n in ns], ["Ana Pérez", ": Analyst", "!"])

    def test_unresolved_tokens_are_left_verbatim(self) -> None:
        ns = nodes("{{Desconocido}} and {{Vac", "io}}")
        log = splice_paragraph(ns, self.lookup)
        self.assertEqual(joined(ns), "{{Desconocido}} and {{Vacio}}")
        self.assertEqual([e.status for e in log], [ReplacementStatus.NOT_FOUND] * 2)

    def test_normalized_lookup(self) -> None:
        ns = nodes("{{NOMBRÉ}}")
        splice_paragraph(ns, self.lookup)
        self.assertEqual(ns[0].text, "Ana Pérez")

    def test_exact_key_wins_over_normalized(self) -> None:
        lookup = VariableLookup({"nombre": "lower", "Nombre": "exact"})
        ns = nodes("{{Nombre}}")
        splice_paragraph(ns, lookup)
        self.assertEqual(ns[0].text, "exact")

    def test_malformed_braces_untouched(self) -> None:
        ns = nodes("{{Nombre", " and {Cargo} and {{}} and {{Cargo")
        log = splice_paragraph(ns, self.lookup)
        self.assertEqual(log, [])
        self.assertEqual(joined(ns), "{{Nombre and {Cargo} and {{}} and {{Cargo")

    def test_paragraph_without_tokens_is_not_touched(self) -> None:
        ns = nodes("plain", " text")
        self.assertEqual(splice_paragraph(ns, self.lookup), [])
        self.assertEqual([n.text for n in ns], ["plain", " text"])

    def test_value_containing_token_syntax_is_not_rescanned(self) -> None:
        lookup = VariableLookup({"A": "{{B}}", "B": "x"})
        ns = nodes("{{A}}{{B}}")
        splice_paragraph(ns, lookup)
        self.assertEqual(ns[0].text, "{{B}}x")


if __name__ == "__main__":
    unittest.main()
