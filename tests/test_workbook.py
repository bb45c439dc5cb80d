import unittest
from datetime import datetime, timezone
from io import BytesIO

from openpyxl import load_workbook

from playbook.export.types import ReportConfig
from playbook.export.jobs import run_export
from playbook.export.workbook import (
    PlaybookWorkbookBuilder, plan_sheets, workbook_sheet_names, sanitize_sheet_name,
)

from factories import make_record


NOW = datetime(2025, 3, 1, tzinfo=timezone.utc)


def open_workbook(content):
    return load_workbook(BytesIO(content))


class TestSheetPlan(unittest.TestCase):
    def setUp(self):
        self.records = [
            make_record("Cycle Low", "offensive", 80),
            make_record("Box Collapse", "defensive", 40),
            make_record("Net Drive", "offensive", 60),
        ]

    def test_multi_sheet_order(self):
        config = ReportConfig(format="xlsx", includeStatistics=True, includeAnalytics=True,
                              includePlayerData=True)
        self.assertEqual(workbook_sheet_names(config, self.records), [
            'Plays Overview', 'Offensive', 'Defensive', 'Statistics', 'Analytics', 'Player Data',
            'Variations', 'Trends',
        ])

    def test_toggles_remove_sheets(self):
        config = ReportConfig(format="xlsx", includeStatistics=False, includeAnalytics=False,
                              includePlayerData=False)
        self.assertEqual(workbook_sheet_names(config, self.records),
                         ['Plays Overview', 'Offensive', 'Defensive', 'Variations', 'Trends'])

    def test_single_sheet_mode(self):
        config = ReportConfig(format="xlsx", multipleSheets=False,
                              customSheets=[{'name': 'Drills', 'headers': ['Drill', 'Minutes']}])
        self.assertEqual(workbook_sheet_names(config, self.records), ['Plays', 'Drills'])

    def test_custom_sheet_names_are_unique_and_valid(self):
        config = ReportConfig(format="xlsx", multipleSheets=False, customSheets=[
            {'name': 'Plays'},
            {'name': 'Skills: Skating/Stick [2025] with a very long name'},
        ])
        names = workbook_sheet_names(config, self.records)
        self.assertEqual(names[1], 'Plays (2)')
        self.assertLessEqual(len(names[2]), 31)
        self.assertNotIn(':', names[2])
        self.assertEqual(sanitize_sheet_name(''), 'Sheet')

    def test_plan_kinds(self):
        config = ReportConfig(format="xlsx", includeStatistics=False, includeAnalytics=False,
                              includePlayerData=False)
        kinds = [kind for _, kind, _ in plan_sheets(config, self.records)]
        self.assertEqual(kinds, ['overview', 'category', 'category', 'variations', 'trends'])


class TestWorkbookContent(unittest.TestCase):
    def test_empty_record_set_statistics(self):
        config = ReportConfig(format="xlsx", multipleSheets=True, includeStatistics=True)
        result = run_export([], config)
        self.assertTrue(result.success, result.error)

        workbook = open_workbook(result.content)
        self.assertIn('Statistics', workbook.sheetnames)
        sheet = workbook['Statistics']
        values = {row[0]: row[1] for row in sheet.iter_rows(min_row=2, max_row=11, values_only=True)}
        self.assertEqual(values['Total Plays'], 0)
        self.assertEqual(values['Average Effectiveness'], 0)
        self.assertEqual(values['Average Success Rate'], 0)
        self.assertEqual(result.metadata.sheetsCount, len(workbook.sheetnames))

    def test_overview_rows_and_autofilter(self):
        records = [
            make_record("Cycle Low", "offensive", 80, formation="2-1-2", tags=["cycle", "low"]),
            make_record("Trap", "defensive"),
        ]
        builder = PlaybookWorkbookBuilder(ReportConfig(format="xlsx"), records, now=NOW)
        workbook = builder.build()
        overview = workbook['Plays Overview']

        self.assertEqual(overview['A1'].value, 'Play ID')
        self.assertEqual(overview['B2'].value, 'Cycle Low')
        self.assertEqual(overview['C2'].value, 'Offensive')
        self.assertEqual(overview['G2'].value, 'cycle, low')
        self.assertEqual(overview['H2'].value, 80)
        self.assertEqual(overview['H3'].value, 0)
        self.assertEqual(overview['D3'].value, 'Not specified')
        self.assertEqual(overview.auto_filter.ref, 'A1:R3')
        self.assertTrue(overview['A1'].font.bold)
        self.assertEqual(overview['H2'].number_format, '#,##0.00')

    def test_control_characters_are_dropped_from_cells(self):
        records = [make_record("Cycle\x0bLow", description="line\x0bbreak\x07")]
        result = run_export(records, ReportConfig(format="xlsx"))
        self.assertTrue(result.success, result.error)

        overview = open_workbook(result.content)['Plays Overview']
        self.assertEqual(overview['B2'].value, 'CycleLow')
        self.assertEqual(overview['F2'].value, 'linebreak')
        self.assertEqual(sanitize_sheet_name('Drills\x0b'), 'Drills')

    def test_alternate_rows(self):
        records = [make_record(f"Play {i}") for i in range(3)]
        builder = PlaybookWorkbookBuilder(ReportConfig(format="xlsx", multipleSheets=False), records, now=NOW)
        sheet = builder.build()['Plays']
        self.assertEqual(sheet['A3'].fill.fill_type, 'solid')
        self.assertNotEqual(sheet['A2'].fill.fill_type, 'solid')

        builder = PlaybookWorkbookBuilder(
            ReportConfig(format="xlsx", multipleSheets=False, alternateRows=False), records, now=NOW)
        sheet = builder.build()['Plays']
        self.assertNotEqual(sheet['A3'].fill.fill_type, 'solid')

    def test_secondary_tables_move_down_when_needed(self):
        records = [
            make_record(f"Play {month}", effectiveness=50,
                        createdAt=datetime(2024, month, 1, tzinfo=timezone.utc))
            for month in range(1, 13)
        ]
        builder = PlaybookWorkbookBuilder(ReportConfig(format="xlsx", includeAnalytics=True), records, now=NOW)
        sheet = builder.build()['Analytics']
        # 12 monthly rows end on row 13, so the distribution table starts at its preferred row 15
        self.assertEqual(sheet['A15'].value, 'Effectiveness Range')
        self.assertEqual(sheet['A25'].value, 'Formation')

    def test_custom_sheet_with_chart(self):
        config = ReportConfig(format="xlsx", multipleSheets=False, customSheets=[{
            'name': 'Skating Skills',
            'headers': ['Player', 'Speed', 'Agility'],
            'rows': [['Alex', 7, 8], ['Sam', 6, 9]],
            'chartType': 'bar',
            'chartOptions': {'title': 'Skating'},
        }])
        builder = PlaybookWorkbookBuilder(config, [], now=NOW)
        sheet = builder.build()['Skating Skills']
        self.assertEqual(sheet['B2'].value, 7)
        self.assertEqual(len(sheet._charts), 1)

    def test_csv_uses_first_sheet(self):
        records = [make_record("Cycle Low", effectiveness=80), make_record("Trap, Neutral Zone", "defensive")]
        result = run_export(records, ReportConfig(format="csv"))
        self.assertTrue(result.success, result.error)
        self.assertEqual(result.mimeType, 'text/csv')
        self.assertTrue(result.fileName.endswith('.csv'))

        lines = result.content.decode('utf-8').splitlines()
        self.assertTrue(lines[0].startswith('Play ID,Play Name,Category'))
        self.assertEqual(len(lines), 3)
        self.assertIn('"Trap, Neutral Zone"', lines[2])

    def test_tsv_delimiter(self):
        result = run_export([make_record("Cycle Low")], ReportConfig(format="tsv", multipleSheets=False))
        self.assertTrue(result.success, result.error)
        header = result.content.decode('utf-8').splitlines()[0]
        self.assertEqual(header.split('\t')[:3], ['ID', 'Name', 'Category'])


if __name__ == '__main__':
    unittest.main()
