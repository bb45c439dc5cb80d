import unittest

from reportlab.lib.pagesizes import A4

from playbook.export.types import ReportConfig, CustomSection
from playbook.export.layout import (
    PageCursor, PageGeometry, DocumentPlan, toc_rows, toc_rows_per_page, count_toc_pages,
    count_section_pages, section_line_capacity, split_lines, truncate_to_width, sections_at,
)

from factories import make_record


class TestPageCursor(unittest.TestCase):
    def test_advance_returns_new_cursor(self):
        cursor = PageCursor()
        moved = cursor.advance(50)
        self.assertEqual(cursor.offset, 0)
        self.assertEqual(moved.offset, 50)
        self.assertEqual(moved.page, 1)

    def test_next_page_resets_offset(self):
        cursor = PageCursor(page=3, offset=120).next_page()
        self.assertEqual(cursor, PageCursor(page=4, offset=0.0))

    def test_cursor_cannot_move_up(self):
        with self.assertRaises(ValueError):
            PageCursor().advance(-1)

    def test_fits_and_remaining(self):
        geometry = PageGeometry(*A4)
        cursor = PageCursor(offset=geometry.usable_height - 10)
        self.assertAlmostEqual(cursor.remaining(geometry), 10)
        self.assertTrue(cursor.fits(10, geometry))
        self.assertFalse(cursor.fits(10.5, geometry))
        self.assertAlmostEqual(PageCursor().y(geometry), geometry.top)


class TestGeometry(unittest.TestCase):
    def test_landscape_swaps_dimensions(self):
        portrait = PageGeometry.for_config(ReportConfig(pageSize="A4"))
        landscape = PageGeometry.for_config(ReportConfig(pageSize="A4", orientation="landscape"))
        self.assertAlmostEqual(portrait.width, landscape.height)
        self.assertGreater(landscape.width, landscape.height)


class TestTextHelpers(unittest.TestCase):
    def test_split_lines_keeps_blank_lines(self):
        lines = split_lines("First paragraph\n\nSecond paragraph", 500, 10)
        self.assertEqual(lines, ["First paragraph", "", "Second paragraph"])

    def test_split_lines_wraps(self):
        lines = split_lines("word " * 200, 200, 10)
        self.assertGreater(len(lines), 1)

    def test_truncate_to_width(self):
        self.assertEqual(truncate_to_width("Short", 200, 10), "Short")
        truncated = truncate_to_width("A very long play name that cannot fit", 60, 10)
        self.assertTrue(truncated.endswith("..."))


class TestTableOfContents(unittest.TestCase):
    def test_rows_grouped_by_category_with_running_numbers(self):
        records = [
            make_record("A", "offensive"),
            make_record("B", "defensive"),
            make_record("C", "offensive"),
        ]
        rows = toc_rows(records)
        self.assertEqual(rows[0], ("category", "Offensive"))
        self.assertEqual([row[1:3] for row in rows if row[0] == "record"], [(1, 0), (2, 2), (3, 1)])
        self.assertEqual(rows[3], ("category", "Defensive"))

    def test_page_count(self):
        geometry = PageGeometry(*A4)
        self.assertEqual(count_toc_pages([], geometry), 1)
        per_page = toc_rows_per_page(geometry)
        records = [make_record(f"Play {i}") for i in range(per_page)]
        # one category row pushes the last record onto a second page
        self.assertEqual(count_toc_pages(records, geometry), 2)


class TestDocumentPlan(unittest.TestCase):
    def test_single_record_without_front_matter(self):
        config = ReportConfig(coverPage=False, tableOfContents=False)
        plan = DocumentPlan(config, [make_record()])
        self.assertEqual(plan.record_page(0), 1)

    def test_front_matter_shifts_record_pages(self):
        config = ReportConfig(
            coverPage=True,
            tableOfContents=True,
            customSections=[{'id': 's1', 'title': 'Warm-up', 'content': 'Skate', 'position': 'before-plays'},
                            {'id': 's2', 'title': 'Notes', 'content': 'Later', 'position': 'after-plays'}],
        )
        plan = DocumentPlan(config, [make_record("A"), make_record("B")])
        self.assertEqual(plan.first_record_page, 4)
        self.assertEqual(plan.record_page(1), 5)

    def test_long_section_spans_pages(self):
        config = ReportConfig()
        geometry = PageGeometry.for_config(config)
        first, following = section_line_capacity(config, geometry)
        section = CustomSection(id='s', title='Long', content="\n".join(["line"] * (first + following + 1)))
        self.assertEqual(count_section_pages(section, config, geometry), 3)

    def test_sections_at_position(self):
        config = ReportConfig(customSections=[
            {'id': 'a', 'title': 'A', 'position': 'appendix'},
            {'id': 'b', 'title': 'B'},
        ])
        self.assertEqual([s.id for s in sections_at(config, 'appendix')], ['a'])
        self.assertEqual([s.id for s in sections_at(config, 'after-plays')], ['b'])


if __name__ == '__main__':
    unittest.main()
