"""
Workbook builder for playbook exports.

Sheets are planned from the configuration and the record set alone, so the
number of build steps is known before the first sheet is written. CSV and TSV
output keep only the first sheet.
"""

import csv
import io
import logging
import re
from collections import OrderedDict
from datetime import datetime
from typing import Any, List, Optional, Tuple

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.chart import BarChart, LineChart, PieChart, ScatterChart, Reference, Series
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .types import ReportConfig, PlayRecord, CustomSheet
from .analytics import (
    AnalyticsSummary, calculate_monthly_activity, calculate_weekly_usage, summarize,
)
from .formatters import days_since, format_category, format_date, utc_now

logger = logging.getLogger(__name__)

COLUMN_WIDTH = 15
MAX_SHEET_NAME_LENGTH = 31

# Fixed top rows of the secondary tables on multi-table sheets
STATISTICS_CATEGORY_ROW = 15
ANALYTICS_DISTRIBUTION_ROW = 15
ANALYTICS_FORMATION_ROW = 25
TRENDS_WEEKLY_ROW = 15

SINGLE_SHEET_NAME = 'Plays'
OVERVIEW_SHEET_NAME = 'Plays Overview'
PLAYER_DATA_SHEET_NAME = 'Player Data'

CHART_TYPES = {
    'bar': BarChart,
    'line': LineChart,
    'pie': PieChart,
    'scatter': ScatterChart,
}


def sanitize_sheet_name(name: str) -> str:
    """Remove characters Excel rejects in sheet names and enforce the length limit"""
    cleaned = re.sub(r'[\[\]:*?/\\]', '', ILLEGAL_CHARACTERS_RE.sub('', name or '')).strip().strip("'")
    return (cleaned or 'Sheet')[:MAX_SHEET_NAME_LENGTH]


def _cell_value(value: Any) -> Any:
    """Drop control characters openpyxl refuses to store"""
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub('', value)
    return value


def _unique_name(name: str, used: set) -> str:
    candidate = sanitize_sheet_name(name)
    counter = 2
    while candidate.lower() in used:
        suffix = f" ({counter})"
        candidate = sanitize_sheet_name(name)[:MAX_SHEET_NAME_LENGTH - len(suffix)] + suffix
        counter += 1
    used.add(candidate.lower())
    return candidate


def distinct_categories(records: List[PlayRecord]) -> List[str]:
    return list(OrderedDict.fromkeys(record.category for record in records))


def plan_sheets(config: ReportConfig, records: List[PlayRecord]) -> List[Tuple[str, str, Any]]:
    """
    Sheets a workbook will contain, in order.

    Args:
        config: Export configuration
        records: Filtered records

    Returns:
        (sheet name, sheet kind, argument) tuples
    """
    planned = []
    if config.multipleSheets:
        planned.append((OVERVIEW_SHEET_NAME, 'overview', None))
        for category in distinct_categories(records):
            planned.append((format_category(category), 'category', category))
        if config.includeStatistics:
            planned.append(('Statistics', 'statistics', None))
        if config.includeAnalytics:
            planned.append(('Analytics', 'analytics', None))
        if config.includePlayerData:
            planned.append((PLAYER_DATA_SHEET_NAME, 'player_data', None))
        planned.append(('Variations', 'variations', None))
        planned.append(('Trends', 'trends', None))
    else:
        planned.append((SINGLE_SHEET_NAME, 'single', None))

    for sheet in config.customSheets:
        planned.append((sheet.name, 'custom', sheet))

    used = set()
    return [(_unique_name(name, used), kind, arg) for name, kind, arg in planned]


def workbook_sheet_names(config: ReportConfig, records: List[PlayRecord]) -> List[str]:
    return [name for name, _, _ in plan_sheets(config, records)]


class PlaybookWorkbookBuilder:
    """Builds the workbook one sheet at a time"""

    def __init__(self, config: ReportConfig, records: List[PlayRecord], now: Optional[datetime] = None):
        self.config = config
        self.records = records
        self.now = now or utc_now()
        self.workbook = None
        self._summary = None

    @property
    def summary(self) -> AnalyticsSummary:
        if self._summary is None:
            self._summary = summarize(self.records, now=self.now)
        return self._summary

    @property
    def sheets_count(self) -> int:
        return len(self.workbook.sheetnames) if self.workbook else 0

    def plan(self) -> List[Tuple[str, str, Any]]:
        return plan_sheets(self.config, self.records)

    def begin(self):
        """Create an empty workbook"""
        self.workbook = Workbook()
        self.workbook.remove(self.workbook.active)

    def build_sheet(self, name: str, kind: str, arg: Any = None):
        """Create and fill one planned sheet"""
        builders = {
            'single': self._build_single,
            'overview': self._build_overview,
            'category': self._build_category,
            'statistics': self._build_statistics,
            'analytics': self._build_analytics,
            'player_data': self._build_player_data,
            'variations': self._build_variations,
            'trends': self._build_trends,
            'custom': self._build_custom,
        }
        worksheet = self.workbook.create_sheet(title=name)
        builders[kind](worksheet, arg)
        logger.debug("Built sheet '%s'", name)
        return worksheet

    def build(self):
        """Build every planned sheet"""
        self.begin()
        for name, kind, arg in self.plan():
            self.build_sheet(name, kind, arg)
        return self.workbook

    def serialize(self) -> bytes:
        """Write the workbook in the configured format"""
        if self.config.format in ('csv', 'tsv'):
            return self._serialize_delimited('\t' if self.config.format == 'tsv' else ',')
        buffer = io.BytesIO()
        self.workbook.save(buffer)
        return buffer.getvalue()

    def _serialize_delimited(self, delimiter: str) -> bytes:
        output = io.StringIO()
        writer = csv.writer(output, delimiter=delimiter, lineterminator='\n')
        if self.workbook.sheetnames:
            first = self.workbook[self.workbook.sheetnames[0]]
            for row in first.iter_rows(values_only=True):
                writer.writerow(['' if value is None else value for value in row])
        return output.getvalue().encode('utf-8')

    # Formatting

    def _border(self) -> Border:
        style = self.config.formatting.borderStyle
        if style == 'none':
            return Border()
        side = Side(style=style, color='000000')
        return Border(left=side, right=side, top=side, bottom=side)

    def _write_table(self, worksheet, headers: List[str], rows: List[List[Any]], start_row: int = 1) -> int:
        """
        Write a styled table.

        Args:
            worksheet: Target sheet
            headers: Header labels
            rows: Data rows
            start_row: Row of the header

        Returns:
            Last row used by the table
        """
        formatting = self.config.formatting
        header_style = formatting.headerStyle
        header_font = Font(bold=header_style.bold, size=header_style.fontSize,
                           color=header_style.fontColor.lstrip('#').upper())
        header_fill = PatternFill(start_color=header_style.backgroundColor.lstrip('#').upper(),
                                  end_color=header_style.backgroundColor.lstrip('#').upper(),
                                  fill_type="solid")
        data_font = Font(size=formatting.dataStyle.fontSize)
        alternate = formatting.dataStyle.alternateRowColor if self.config.alternateRows else None
        alternate_fill = None
        if alternate:
            alternate_fill = PatternFill(start_color=alternate.lstrip('#').upper(),
                                         end_color=alternate.lstrip('#').upper(),
                                         fill_type="solid")
        border = self._border()

        for col, header in enumerate(headers, start=1):
            cell = worksheet.cell(row=start_row, column=col, value=_cell_value(header))
            cell.font = header_font
            cell.fill = header_fill
            cell.border = border
            cell.alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)
            worksheet.column_dimensions[get_column_letter(col)].width = COLUMN_WIDTH

        for offset, row in enumerate(rows, start=1):
            row_idx = start_row + offset
            for col, value in enumerate(row, start=1):
                cell = worksheet.cell(row=row_idx, column=col, value=_cell_value(value))
                cell.font = data_font
                cell.border = border
                if alternate_fill is not None and offset % 2 == 0:
                    cell.fill = alternate_fill
                if isinstance(value, (int, float)) and not isinstance(value, bool):
                    cell.number_format = formatting.numberFormat

        return start_row + len(rows)

    @staticmethod
    def _table_start(preferred_row: int, previous_end: int) -> int:
        """Preferred row, moved down if the previous table would run into it"""
        return max(preferred_row, previous_end + 2)

    @staticmethod
    def _apply_autofilter(worksheet, columns: int, last_row: int):
        worksheet.auto_filter.ref = f"A1:{get_column_letter(columns)}{last_row}"

    # Sheets

    def _build_single(self, worksheet, _):
        headers = ['ID', 'Name', 'Category', 'Formation', 'Situation', 'Description', 'Tags',
                   'Effectiveness', 'Success Rate', 'Usage Frequency', 'Coach Notes', 'Key Points',
                   'Variations Count', 'Created', 'Updated']
        rows = [[
            r.id,
            r.name,
            r.category,
            r.formation or '',
            r.situation or '',
            r.description,
            ', '.join(r.tags),
            r.effectiveness or 0,
            r.successRate or 0,
            r.usageFrequency or 0,
            r.coachNotes or '',
            '; '.join(r.keyPoints),
            len(r.variations),
            format_date(r.createdAt),
            format_date(r.updatedAt),
        ] for r in self.records]
        self._write_table(worksheet, headers, rows)

    def _build_overview(self, worksheet, _):
        headers = ['Play ID', 'Play Name', 'Category', 'Formation', 'Situation', 'Description', 'Tags',
                   'Effectiveness %', 'Success Rate %', 'Usage Frequency', 'Key Points Count',
                   'Variations Count', 'Player Positions', 'Coach Notes', 'Created Date', 'Updated Date',
                   'Days Since Created', 'Days Since Updated']
        rows = [[
            r.id,
            r.name,
            format_category(r.category),
            r.formation or 'Not specified',
            r.situation or 'General',
            r.description,
            ', '.join(r.tags),
            r.effectiveness or 0,
            r.successRate or 0,
            r.usageFrequency or 0,
            len(r.keyPoints),
            len(r.variations),
            len(r.playerPositions),
            r.coachNotes or '',
            format_date(r.createdAt),
            format_date(r.updatedAt),
            days_since(r.createdAt, self.now),
            days_since(r.updatedAt, self.now),
        ] for r in self.records]
        last_row = self._write_table(worksheet, headers, rows)
        self._apply_autofilter(worksheet, len(headers), last_row)

    def _build_category(self, worksheet, category: str):
        headers = ['Play Name', 'Description', 'Formation', 'Situation', 'Effectiveness %',
                   'Success Rate %', 'Times Used', 'Tags', 'Key Points', 'Coach Notes',
                   'Player Positions', 'Variations', 'Created Date', 'Last Updated', 'Age (Days)']
        rows = [[
            r.name,
            r.description,
            r.formation or 'Not specified',
            r.situation or 'General',
            r.effectiveness or 0,
            r.successRate or 0,
            r.usageFrequency or 0,
            ', '.join(r.tags),
            '; '.join(r.keyPoints),
            r.coachNotes or '',
            len(r.playerPositions),
            len(r.variations),
            format_date(r.createdAt),
            format_date(r.updatedAt),
            days_since(r.createdAt, self.now),
        ] for r in self.records if r.category == category]
        self._write_table(worksheet, headers, rows)

    def _build_statistics(self, worksheet, _):
        summary = self.summary
        overall = [
            ['Total Plays', summary.totalPlays],
            ['Average Effectiveness', summary.avgEffectiveness],
            ['Average Success Rate', summary.avgSuccessRate],
            ['Most Used Category', summary.mostUsedCategory],
            ['Most Common Formation', summary.mostCommonFormation],
            ['Total Usage Frequency', summary.totalUsage],
            ['Plays with Variations', summary.playsWithVariations],
            ['Average Variations per Play', summary.avgVariationsPerPlay],
            ['Most Tagged Play', summary.mostTaggedPlay],
            ['Recent Activity (7 days)', summary.recentActivity],
        ]
        end = self._write_table(worksheet, ['Metric', 'Value'], overall)

        categories = [[
            format_category(category),
            entry['count'],
            summary.category_share(category),
            entry['avgEffectiveness'],
            entry['totalUsage'],
            entry['mostEffectivePlay'],
        ] for category, entry in summary.categoryBreakdown.items()]
        self._write_table(
            worksheet,
            ['Category', 'Play Count', 'Percentage', 'Avg Effectiveness', 'Total Usage', 'Most Effective Play'],
            categories,
            self._table_start(STATISTICS_CATEGORY_ROW, end),
        )

    def _build_analytics(self, worksheet, _):
        summary = self.summary
        trends = [[
            t['period'], t['playsCreated'], t['avgEffectiveness'], t['totalUsage'],
            t['mostActiveCategory'], t['improvementRate'],
        ] for t in summary.monthlyTrends]
        end = self._write_table(
            worksheet,
            ['Time Period', 'Plays Created', 'Average Effectiveness', 'Total Usage',
             'Most Active Category', 'Improvement Rate'],
            trends,
        )

        distribution = [[
            b['label'], b['count'], b['percentage'], ', '.join(b['categories']),
        ] for b in summary.effectivenessDistribution]
        end = self._write_table(
            worksheet,
            ['Effectiveness Range', 'Play Count', 'Percentage', 'Category Breakdown'],
            distribution,
            self._table_start(ANALYTICS_DISTRIBUTION_ROW, end),
        )

        formations = [[
            f['formation'], f['count'], f['avgEffectiveness'], f['bestCategory'], f['avgSuccessRate'],
        ] for f in summary.formationAnalysis]
        self._write_table(
            worksheet,
            ['Formation', 'Usage Count', 'Avg Effectiveness', 'Best Category', 'Success Rate'],
            formations,
            self._table_start(ANALYTICS_FORMATION_ROW, end),
        )

    def _build_player_data(self, worksheet, _):
        headers = ['Play Name', 'Play Category', 'Player Name', 'Position', 'Role', 'Instructions',
                   'Performance Rating']
        rows = []
        for record in self.records:
            for assignment in record.playerPositions:
                rows.append([
                    record.name,
                    format_category(record.category),
                    assignment.playerName,
                    assignment.position,
                    assignment.role,
                    assignment.instructions or 'Standard execution',
                    assignment.performanceRating if assignment.performanceRating else 'Not rated',
                ])
        last_row = self._write_table(worksheet, headers, rows)
        self._apply_autofilter(worksheet, len(headers), last_row)

    def _build_variations(self, worksheet, _):
        headers = ['Original Play', 'Play Category', 'Variation Name', 'Description', 'Effectiveness %', 'Notes']
        rows = []
        for record in self.records:
            for variation in record.variations:
                rows.append([
                    record.name,
                    format_category(record.category),
                    variation.name,
                    variation.description,
                    variation.effectiveness or 0,
                    variation.notes or 'No additional notes',
                ])
        self._write_table(worksheet, headers, rows)

    def _build_trends(self, worksheet, _):
        monthly = [[
            m['month'], m['playsCreated'], m['playsUpdated'], m['avgEffectiveness'],
            m['mostActiveCategory'], m['newFormations'],
        ] for m in calculate_monthly_activity(self.records)]
        end = self._write_table(
            worksheet,
            ['Month', 'Plays Created', 'Plays Updated', 'Avg Effectiveness', 'Most Active Category',
             'New Formations'],
            monthly,
        )

        weekly = [[
            w['weekOf'], w['totalUsage'], w['mostUsedPlay'], w['bestPerformingPlay'], w['newPlays'],
        ] for w in calculate_weekly_usage(self.records, now=self.now)]
        self._write_table(
            worksheet,
            ['Week', 'Total Usage', 'Most Used Play', 'Best Performing Play', 'New Plays'],
            weekly,
            self._table_start(TRENDS_WEEKLY_ROW, end),
        )

    def _build_custom(self, worksheet, sheet: CustomSheet):
        last_row = self._write_table(worksheet, sheet.headers, sheet.rows)
        if sheet.chartType and sheet.rows and len(sheet.headers) >= 2:
            self._add_chart(worksheet, sheet, last_row)

    def _add_chart(self, worksheet, sheet: CustomSheet, last_row: int):
        """Native chart over the custom sheet's data. First column holds the labels."""
        options = sheet.chartOptions
        chart = CHART_TYPES[sheet.chartType]()
        chart.title = options.get('title')

        categories = Reference(worksheet, min_col=1, min_row=2, max_row=last_row)
        if sheet.chartType == 'scatter':
            for col in range(2, len(sheet.headers) + 1):
                values = Reference(worksheet, min_col=col, min_row=1, max_row=last_row)
                chart.series.append(Series(values, categories, title_from_data=True))
        else:
            data = Reference(worksheet, min_col=2, max_col=len(sheet.headers), min_row=1, max_row=last_row)
            chart.add_data(data, titles_from_data=True)
            chart.set_categories(categories)

        if sheet.chartType != 'pie':
            chart.x_axis.title = options.get('xAxis')
            chart.y_axis.title = options.get('yAxis')

        position = options.get('position') or {}
        anchor_col = int(position.get('col', len(sheet.headers) + 1)) + 1
        anchor_row = int(position.get('row', 0)) + 1
        worksheet.add_chart(chart, f"{get_column_letter(anchor_col)}{anchor_row}")
