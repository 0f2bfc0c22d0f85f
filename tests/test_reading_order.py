from __future__ import annotations

import json
import unittest

from contracts.diagnostics import DEGENERATE_CLUSTERING, OVERLAPPING_WORD_DROPPED, PARSE_MISSING_GEOMETRY
from contracts.geometry import BBox
from contracts.layout import Document, Page, RawFragment
from contracts.lines import LineRole
from reading_order import ResolverConfig, resolve_document, resolve_page


def _frag(text: str, x: float, y: float, w: float, h: float = 10.0, *, hint: int) -> RawFragment:
    bbox = BBox(x=x, y=y, width=w, height=h)
    return RawFragment(bbox=bbox, text=text, hint_index=hint, baseline=bbox.y1)


def _page(fragments: list[RawFragment], *, width: float = 250.0, height: float = 120.0) -> Page:
    return Page(index=0, width=width, height=height, fragments=tuple(fragments))


def _texts(page: Page) -> list[str]:
    return [ln.text for ln in page.lines]


class TestResolvePage(unittest.TestCase):
    def test_two_columns_read_left_column_first(self) -> None:
        # Description order interleaves the columns row by row.
        page = _page(
            [
                _frag("left-top", 10, 10, 80, hint=0),
                _frag("rightTop", 150, 10, 80, hint=1),
                _frag("left-bot", 10, 30, 80, hint=2),
                _frag("rightBot", 150, 30, 80, hint=3),
            ]
        )
        result = resolve_page(page)

        self.assertTrue(result.ok)
        self.assertEqual(_texts(result.page), ["left-top", "left-bot", "rightTop", "rightBot"])
        self.assertEqual([ln.column for ln in result.page.lines], [0, 0, 1, 1])
        self.assertEqual(len(result.meta["column_boundaries"]), 1)
        boundary = result.meta["column_boundaries"][0]
        self.assertEqual((boundary["x_left"], boundary["x_right"]), (90.0, 150.0))

    def test_full_width_heading_is_read_first(self) -> None:
        page = _page(
            [
                _frag("left-top", 10, 30, 80, hint=0),
                _frag("rightTop", 150, 30, 80, hint=1),
                _frag("heading spanning width", 10, 10, 220, hint=2),
                _frag("left-bot", 10, 50, 80, hint=3),
                _frag("rightBot", 150, 50, 80, hint=4),
            ]
        )
        lines = resolve_page(page).page.lines

        self.assertEqual([ln.text for ln in lines], ["heading spanning width", "left-top", "left-bot", "rightTop", "rightBot"])
        self.assertEqual(lines[0].role, LineRole.FULL_WIDTH)
        self.assertIsNone(lines[0].column)

    def test_full_width_band_interrupts_columns(self) -> None:
        page = _page(
            [
                _frag("a-left-1", 10, 10, 80, hint=0),
                _frag("a-rite-1", 150, 10, 80, hint=1),
                _frag("a-left-2", 10, 30, 80, hint=2),
                _frag("a-rite-2", 150, 30, 80, hint=3),
                _frag("a figure caption across", 10, 50, 230, hint=4),
                _frag("b-left-1", 10, 70, 80, hint=5),
                _frag("b-rite-1", 150, 70, 80, hint=6),
                _frag("b-left-2", 10, 90, 80, hint=7),
                _frag("b-rite-2", 150, 90, 80, hint=8),
            ]
        )
        self.assertEqual(
            _texts(resolve_page(page).page),
            [
                "a-left-1",
                "a-left-2",
                "a-rite-1",
                "a-rite-2",
                "a figure caption across",
                "b-left-1",
                "b-left-2",
                "b-rite-1",
                "b-rite-2",
            ],
        )

    def test_three_columns_read_column_by_column(self) -> None:
        # Description order runs straight across all three columns.
        page = _page(
            [
                _frag(f"C{col}L{row}", 10 + 70 * col, 10 + 15 * row, 40, hint=3 * row + col)
                for row in range(3)
                for col in range(3)
            ],
            width=200.0,
            height=60.0,
        )
        result = resolve_page(page)

        self.assertEqual(_texts(result.page), [f"C{col}L{row}" for col in range(3) for row in range(3)])
        self.assertEqual([ln.column for ln in result.page.lines], [0, 0, 0, 1, 1, 1, 2, 2, 2])
        self.assertTrue(all(ln.role == LineRole.COLUMN for ln in result.page.lines))
        self.assertEqual(
            [(b["x_left"], b["x_right"]) for b in result.meta["column_boundaries"]],
            [(50.0, 80.0), (120.0, 150.0)],
        )

    def test_columns_with_caption_and_footer(self) -> None:
        page = _page(
            [
                _frag("a-left-1", 10, 10, 80, hint=0),
                _frag("a-rite-1", 150, 10, 80, hint=1),
                _frag("a-left-2", 10, 25, 80, hint=2),
                _frag("a-rite-2", 150, 25, 80, hint=3),
                _frag("caption across both columns", 10, 45, 230, hint=4),
                _frag("b-left-1", 10, 65, 80, hint=5),
                _frag("b-rite-1", 150, 65, 80, hint=6),
                _frag("b-left-2", 10, 80, 80, hint=7),
                _frag("b-rite-2", 150, 80, 80, hint=8),
                _frag("footer line spanning the page width", 10, 100, 230, hint=9),
            ]
        )
        lines = resolve_page(page).page.lines

        self.assertEqual(
            [ln.text for ln in lines],
            [
                "a-left-1",
                "a-left-2",
                "a-rite-1",
                "a-rite-2",
                "caption across both columns",
                "b-left-1",
                "b-left-2",
                "b-rite-1",
                "b-rite-2",
                "footer line spanning the page width",
            ],
        )
        self.assertEqual(lines[4].role, LineRole.FULL_WIDTH)
        self.assertEqual(lines[-1].role, LineRole.FULL_WIDTH)

    def test_single_column_reads_top_to_bottom_left_to_right(self) -> None:
        page = _page(
            [
                _frag("world", 62, 10, 50, hint=0),
                _frag("second", 10, 30, 60, hint=1),
                _frag("hello", 10, 11, 50, hint=2),
            ]
        )
        self.assertEqual(_texts(resolve_page(page).page), ["hello world", "second"])

    def test_ranks_are_dense_and_lines_sorted_by_rank(self) -> None:
        page = _page([_frag(f"w{i:02d}", 10 + (i % 3) * 70, 10 + (i // 3) * 15, 30, hint=i) for i in range(9)])
        lines = resolve_page(page).page.lines
        self.assertEqual([ln.reading_rank for ln in lines], list(range(len(lines))))

    def test_columns_can_be_disabled(self) -> None:
        page = _page(
            [
                _frag("left-top", 10, 10, 80, hint=0),
                _frag("rightTop", 150, 10, 80, hint=1),
                _frag("left-bot", 10, 30, 80, hint=2),
                _frag("rightBot", 150, 30, 80, hint=3),
            ]
        )
        result = resolve_page(page, ResolverConfig(detect_columns=False))
        self.assertEqual(_texts(result.page), ["left-top rightTop", "left-bot rightBot"])

    def test_space_inserted_only_for_real_gaps(self) -> None:
        # char width 10 -> space threshold 1.5
        page = _page(
            [
                _frag("ab", 10, 10, 20, hint=0),
                _frag("cd", 31, 10, 20, hint=1),
                _frag("ef", 60, 10, 20, hint=2),
            ]
        )
        line = resolve_page(page).page.lines[0]
        self.assertEqual(line.text, "abcd ef")
        self.assertEqual([w.text for w in line.words], ["ab", "cd", "ef"])

    def test_overlapping_duplicate_word_is_dropped(self) -> None:
        page = _page(
            [
                _frag("bold", 10, 10, 40, hint=0),
                _frag("bold", 12, 10, 40, hint=1),
                _frag("text", 60, 10, 40, hint=2),
            ]
        )
        result = resolve_page(page)
        line = result.page.lines[0]
        self.assertEqual(line.text, "bold text")
        self.assertEqual([w.hint_index for w in line.words], [0, 2])
        self.assertEqual([w.code for w in result.warnings], [OVERLAPPING_WORD_DROPPED])
        self.assertEqual(result.warnings[0].detail["dropped_hint_index"], 1)

    def test_degenerate_geometry_falls_back_to_description_order(self) -> None:
        page = _page(
            [
                _frag("second", 0, 0, 0, 0, hint=1),
                _frag("first", 0, 0, 0, 0, hint=0),
            ]
        )
        result = resolve_page(page)
        self.assertTrue(result.ok)
        self.assertEqual(_texts(result.page), ["first", "second"])
        self.assertTrue(all(ln.role == LineRole.FALLBACK for ln in result.page.lines))
        self.assertEqual([w.code for w in result.warnings], [DEGENERATE_CLUSTERING])

    def test_empty_page_resolves_to_no_lines(self) -> None:
        result = resolve_page(_page([]))
        self.assertTrue(result.ok)
        self.assertEqual(result.page.lines, ())
        self.assertEqual(result.warnings, [])

    def test_page_without_size_is_rejected(self) -> None:
        result = resolve_page(_page([_frag("x", 1, 1, 5, hint=0)], width=0.0))
        self.assertFalse(result.ok)
        self.assertIsNone(result.page)
        self.assertEqual(result.errors[0].code, PARSE_MISSING_GEOMETRY)

    def test_resolve_is_pure_deterministic_and_idempotent(self) -> None:
        page = _page(
            [
                _frag("left-top", 10, 10, 80, hint=0),
                _frag("rightTop", 150, 10, 80, hint=1),
                _frag("left-bot", 10, 30, 80, hint=2),
            ]
        )
        r1 = resolve_page(page)
        r2 = resolve_page(page)

        self.assertFalse(page.is_resolved)
        self.assertEqual(len(page.fragments), 3)
        self.assertEqual(r1.page, r2.page)
        j1 = json.dumps(r1.page.to_dict(), sort_keys=True)
        j2 = json.dumps(r2.page.to_dict(), sort_keys=True)
        self.assertEqual(j1, j2)

        again = resolve_page(r1.page)
        self.assertIs(again.page, r1.page)
        self.assertTrue(again.meta["already_resolved"])

    def test_every_fragment_lands_in_exactly_one_line(self) -> None:
        frags = [_frag(f"t{i}", 10 + (i % 4) * 55, 10 + (i // 4) * 12, 20, hint=i) for i in range(12)]
        lines = resolve_page(_page(frags)).page.lines
        seen = sorted(w.hint_index for ln in lines for w in ln.words)
        self.assertEqual(seen, list(range(12)))

    def test_invalid_config_raises(self) -> None:
        with self.assertRaises(ValueError):
            resolve_page(_page([]), ResolverConfig(overlap_drop_ratio=0.0))
        with self.assertRaises(ValueError):
            ResolverConfig.from_dict({"no_such_knob": 1})


class TestResolveDocument(unittest.TestCase):
    def test_resolves_every_page(self) -> None:
        doc = Document(
            pages=(
                _page([_frag("one", 10, 10, 30, hint=0)]),
                Page(index=1, width=100.0, height=100.0, fragments=(_frag("two", 10, 10, 30, hint=0),)),
            ),
            source="mem",
        )
        result = resolve_document(doc)
        self.assertTrue(result.ok)
        self.assertTrue(all(p.is_resolved for p in result.document.pages))
        self.assertEqual([p.lines[0].text for p in result.document.pages], ["one", "two"])
        self.assertEqual(result.document.source, "mem")

    def test_page_error_fails_the_document(self) -> None:
        doc = Document(pages=(Page(index=0, width=0.0, height=0.0),))
        result = resolve_document(doc)
        self.assertFalse(result.ok)
        self.assertIsNone(result.document)
        self.assertEqual(result.errors[0].code, PARSE_MISSING_GEOMETRY)


if __name__ == "__main__":
    unittest.main()
