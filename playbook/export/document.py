"""
Playbook document generator.

Pages are drawn directly on a reportlab canvas. Each render method starts its
own page, and the vertical position is tracked with an immutable PageCursor
that every drawing helper returns. A play always fits on a single page, so
blocks that would overflow are left out and a note is drawn instead.
"""

import logging
from datetime import datetime
from io import BytesIO
from typing import List, Optional

from reportlab.lib import colors
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import Flowable, Spacer
from reportlab.platypus.flowables import HRFlowable

from .types import ReportConfig, PlayRecord, CustomSection
from .base_generator import BasePDFGenerator, BLOCK_SPACING
from .layout import (
    DocumentPlan, PageCursor, TOC_ROW_HEIGHT, TOC_TITLE_HEIGHT, SECTION_TITLE_HEIGHT,
    body_leading, section_line_capacity, split_lines, toc_rows, toc_rows_per_page,
    truncate_to_width,
)
from .imaging import Capture, prepare_capture
from .analytics import AnalyticsSummary
from .formatters import (
    format_category, format_date, format_long_date, format_percentage,
    format_template_title, utc_now,
)

logger = logging.getLogger(__name__)

# Diagram dimensions (width, height) per size setting
DIAGRAM_SIZES = {
    "small": (100 * mm, 60 * mm),
    "medium": (140 * mm, 84 * mm),
    "large": (180 * mm, 108 * mm),
}

MAX_SCREENSHOT_FRAMES = 6
THUMB_WIDTH = 40 * mm
THUMB_HEIGHT = 25 * mm
THUMB_GAP = 5 * mm

OMISSION_NOTE_HEIGHT = 6 * mm
OMISSION_NOTE = "Some content for this play was omitted to keep it on one page."

# Marks a capture that was supplied but could not be decoded
CAPTURE_FAILED = "failed"


class PlaceholderBox(Flowable):
    """Empty framed box used where an image could not be placed"""

    def __init__(self, width, height, label="", indent=0):
        super().__init__()
        self.width = width
        self.height = height
        self.label = label
        self.indent = indent

    def wrap(self, availWidth, availHeight):
        return self.width + self.indent, self.height

    def draw(self):
        self.canv.saveState()
        self.canv.translate(self.indent, 0)
        self.canv.setStrokeColor(colors.HexColor("#C8C8C8"))
        self.canv.rect(0, 0, self.width, self.height)
        if self.label:
            self.canv.setFont("Helvetica-Oblique", 8)
            self.canv.setFillColor(colors.HexColor("#6B7280"))
            self.canv.drawCentredString(self.width / 2, self.height / 2, self.label)
        self.canv.restoreState()


class CaptureImage(Flowable):
    """Processed capture scaled into a fixed box"""

    def __init__(self, reader, width, height, indent=0):
        super().__init__()
        self.reader = reader
        self.width = width
        self.height = height
        self.indent = indent

    def wrap(self, availWidth, availHeight):
        return self.width + self.indent, self.height

    def draw(self):
        self.canv.drawImage(self.reader, self.indent, 0, self.width, self.height,
                            preserveAspectRatio=True, anchor='c', mask='auto')


class FrameGrid(Flowable):
    """Placeholder thumbnails for video screenshots"""

    def __init__(self, frames: int, available_width: float):
        super().__init__()
        self.frames = frames
        self.per_row = max(1, int(available_width // (THUMB_WIDTH + THUMB_GAP)))
        rows = (frames + self.per_row - 1) // self.per_row
        self.width = available_width
        self.height = rows * (THUMB_HEIGHT + THUMB_GAP)

    def wrap(self, availWidth, availHeight):
        return self.width, self.height

    def draw(self):
        c = self.canv
        c.saveState()
        c.setStrokeColor(colors.HexColor("#C8C8C8"))
        c.setFont("Helvetica", 6)
        for i in range(self.frames):
            row, col = divmod(i, self.per_row)
            x = col * (THUMB_WIDTH + THUMB_GAP)
            y = self.height - (row + 1) * (THUMB_HEIGHT + THUMB_GAP) + THUMB_GAP
            c.rect(x, y, THUMB_WIDTH, THUMB_HEIGHT)
            c.drawCentredString(x + THUMB_WIDTH / 2, y - 3 * mm, f"Frame {i + 1}")
        c.restoreState()


class PlaybookDocumentGenerator(BasePDFGenerator):
    """Builds a playbook document one stage at a time"""

    def __init__(self, config: ReportConfig, records: List[PlayRecord],
                 captures: Optional[List[Capture]] = None, now: Optional[datetime] = None):
        super().__init__(config)
        self.records = records
        self.captures = list(captures or [])
        self.now = now or utc_now()
        self.plan = DocumentPlan(config, records, self.geometry)

        self.buffer = BytesIO()
        self.canvas = None
        self.cursor = PageCursor()
        self.images = []
        self.record_pages = []
        self._page_open = False

    # Page management

    def begin(self):
        """Create the canvas"""
        self.canvas = canvas.Canvas(
            self.buffer,
            pagesize=self.geometry.page_size,
            pageCompression=1 if self.config.compression else 0,
        )
        self.canvas.setTitle(format_template_title(self.config.template))
        branding = self.config.customBranding
        if branding and branding.coachName:
            self.canvas.setAuthor(branding.coachName)
        self.canvas.setSubject(f"{len(self.records)} tactical plays")

    def _start_page(self):
        if self._page_open:
            self._close_page()
            self.cursor = self.cursor.next_page()
        self._page_open = True
        self._draw_watermark(self.canvas)

    def _close_page(self):
        self._draw_footer(self.canvas, self.cursor.page)
        self.canvas.showPage()
        self._page_open = False

    def finish(self) -> bytes:
        """Close the last page and return the document bytes"""
        if not self._page_open:
            self._start_page()
        self._close_page()
        self.canvas.save()
        return self.buffer.getvalue()

    @property
    def pages_count(self) -> int:
        return self.cursor.page

    # Captures

    def process_captures(self):
        """Decode and color-convert the supplied captures, one per record"""
        width, _ = self._diagram_box()
        self.images = []
        for index in range(len(self.records)):
            data = self.captures[index] if index < len(self.captures) else None
            if not data:
                self.images.append(None)
                continue
            reader = prepare_capture(data, self.config.colorMode, self.config.quality, width)
            self.images.append(reader if reader is not None else CAPTURE_FAILED)

    def _diagram_box(self):
        width, height = DIAGRAM_SIZES.get(self.config.templateCustomization.diagramSize,
                                          DIAGRAM_SIZES["medium"])
        draw_width = min(self.content_width * 0.8, width)
        return draw_width, draw_width * height / width

    # Cover page

    def render_cover(self):
        self._start_page()
        c = self.canvas
        branding = self.config.customBranding
        center = self.page_width / 2
        y = self.page_height - 50 * mm

        if branding and branding.teamLogo:
            logo = prepare_capture(branding.teamLogo, self.config.colorMode, self.config.quality, 30 * mm)
            if logo is not None:
                c.drawImage(logo, center - 15 * mm, y, 30 * mm, 30 * mm,
                            preserveAspectRatio=True, anchor='c', mask='auto')
            y -= 15 * mm

        c.setFillColor(self.primary_color)
        c.setFont("Helvetica-Bold", 28)
        c.drawCentredString(center, y, format_template_title(self.config.template))
        y -= 14 * mm

        c.setFillColor(colors.black)
        if branding and branding.teamName:
            c.setFont("Helvetica", 20)
            c.drawCentredString(center, y, branding.teamName)
            y -= 11 * mm
        if branding and branding.season:
            c.setFont("Helvetica", 16)
            c.drawCentredString(center, y, f"Season: {branding.season}")
            y -= 9 * mm
        if branding and branding.coachName:
            c.setFont("Helvetica", 14)
            c.drawCentredString(center, y, f"Coach: {branding.coachName}")
            y -= 9 * mm

        # Document information box
        box_width, box_height = 100 * mm, 60 * mm
        box_x = center - box_width / 2
        box_y = min(y - 10 * mm, self.page_height - 140 * mm) - box_height
        c.setFillColor(colors.HexColor("#F5F5F5"))
        c.setStrokeColor(colors.HexColor("#C8C8C8"))
        c.rect(box_x, box_y, box_width, box_height, fill=1, stroke=1)

        c.setFillColor(colors.black)
        c.setFont("Helvetica-Bold", 12)
        c.drawCentredString(center, box_y + box_height - 12 * mm, "Document Information")
        c.setFont("Helvetica", 10)
        lines = [
            f"Total Plays: {len(self.records)}",
            f"Generated: {format_long_date(self.now)}",
            f"Template: {self.config.template}",
            f"Format: {self.config.format.upper()}",
        ]
        line_y = box_y + box_height - 22 * mm
        for line in lines:
            c.drawString(box_x + 5 * mm, line_y, line)
            line_y -= 10 * mm

    # Table of contents

    def render_toc(self):
        rows = toc_rows(self.records)
        per_page = toc_rows_per_page(self.geometry)
        chunks = [rows[i:i + per_page] for i in range(0, len(rows), per_page)] or [[]]

        widths = [15 * mm, 0, 35 * mm, 40 * mm, 18 * mm]
        widths[1] = self.content_width - sum(widths)

        for page_number, chunk in enumerate(chunks):
            self._start_page()
            title = "Table of Contents" if page_number == 0 else "Table of Contents (continued)"
            self._draw_toc_header(title, widths)
            cursor = self.cursor.advance(TOC_TITLE_HEIGHT)
            for row in chunk:
                self._draw_toc_row(row, widths, cursor)
                cursor = cursor.advance(TOC_ROW_HEIGHT)
            self.cursor = cursor

    def _draw_toc_header(self, title: str, widths: List[float]):
        c = self.canvas
        top = self.cursor.y(self.geometry)
        c.setFillColor(colors.black)
        c.setFont("Helvetica-Bold", 18)
        c.drawString(self.margin, top - 8 * mm, title)

        header_top = top - 12 * mm
        c.setFillColor(self.primary_color)
        c.rect(self.margin, header_top - TOC_ROW_HEIGHT, self.content_width, TOC_ROW_HEIGHT, fill=1, stroke=0)
        c.setFillColor(colors.white)
        c.setFont("Helvetica-Bold", 9)
        x = self.margin
        for label, width in zip(['#', 'Play Name', 'Formation', 'Tags', 'Page'], widths):
            c.drawString(x + 2 * mm, header_top - TOC_ROW_HEIGHT + 2.3 * mm, label)
            x += width

    def _draw_toc_row(self, row, widths: List[float], cursor: PageCursor):
        c = self.canvas
        bottom = cursor.y(self.geometry) - TOC_ROW_HEIGHT
        text_y = bottom + 2.3 * mm
        c.setStrokeColor(colors.grey)
        c.setLineWidth(0.5)

        if row[0] == "category":
            c.setFillColor(self.light_grey)
            c.rect(self.margin, bottom, self.content_width, TOC_ROW_HEIGHT, fill=1, stroke=1)
            c.setFillColor(colors.black)
            c.setFont("Helvetica-Bold", 9)
            c.drawString(self.margin + widths[0] + 2 * mm, text_y, f"{row[1]} Plays")
            return

        _, number, index, record = row
        c.rect(self.margin, bottom, self.content_width, TOC_ROW_HEIGHT, fill=0, stroke=1)
        cells = [
            str(number),
            record.name,
            record.formation or '-',
            ', '.join(record.tags[:2]) or '-',
            str(self.plan.record_page(index)),
        ]
        c.setFillColor(colors.black)
        c.setFont("Helvetica", 9)
        x = self.margin
        for text, width in zip(cells, widths):
            c.drawString(x + 2 * mm, text_y, truncate_to_width(text, width - 4 * mm, 9))
            x += width

    # Custom sections

    def render_section(self, section: CustomSection):
        """Render a custom section, always starting on a new page"""
        lines = split_lines(section.content, self.content_width, self.font_sizes.body)
        first, following = section_line_capacity(self.config, self.geometry)
        leading = body_leading(self.config)

        chunks = [lines[:first]]
        rest = lines[first:]
        while rest:
            chunks.append(rest[:following])
            rest = rest[following:]

        for page_number, chunk in enumerate(chunks):
            self._start_page()
            c = self.canvas
            cursor = self.cursor
            if page_number == 0:
                c.setFillColor(self.primary_color)
                c.setFont("Helvetica-Bold", self.font_sizes.heading + 2)
                c.drawString(self.margin, cursor.y(self.geometry) - 8 * mm,
                             truncate_to_width(section.title, self.content_width,
                                               self.font_sizes.heading + 2, "Helvetica-Bold"))
                cursor = cursor.advance(SECTION_TITLE_HEIGHT)

            c.setFillColor(colors.black)
            c.setFont("Helvetica", self.font_sizes.body)
            for line in chunk:
                cursor = cursor.advance(leading)
                c.drawString(self.margin, cursor.y(self.geometry), line)
            self.cursor = cursor

    # Play pages

    def render_record(self, index: int):
        """Render one play on its own page"""
        record = self.records[index]
        self._start_page()
        self.record_pages.append(self.cursor.page)

        blocks = [self._header_block(record)]
        if self.config.includeMetadata:
            blocks.append(self._metadata_block(record))
        if self.config.includeDiagrams and index < len(self.images) and self.images[index] is not None:
            blocks.append(self._diagram_block(self.images[index]))
        if self.config.includePlayerInstructions and record.playerPositions:
            blocks.append(self._instructions_block(record))
        if self.config.includeVideoScreenshots and record.screenshots:
            blocks.append(self._screenshots_block(record))
        if self.config.includeNotes:
            blocks.extend(self._notes_blocks(record))
        if self.config.includeStatistics and self._has_statistics(record):
            blocks.append(self._statistics_block(record))

        omitted = []
        cursor = self.cursor
        for position, (name, flowables) in enumerate(blocks):
            if position > 0 and self.config.sectionDividers:
                flowables = [HRFlowable(width="100%", thickness=0.5, color=colors.HexColor("#E5E7EB"),
                                        spaceBefore=0, spaceAfter=2 * mm)] + flowables
            flowables = flowables + [Spacer(1, BLOCK_SPACING)]
            height = self._measure(self.canvas, flowables)
            if not cursor.fits(height + OMISSION_NOTE_HEIGHT, self.geometry):
                omitted.append(name)
                continue
            cursor = self._draw_flowables(self.canvas, flowables, cursor)

        if omitted:
            logger.warning("Play '%s' does not fit on one page, omitted: %s", record.name, ", ".join(omitted))
            self.canvas.setFont("Helvetica-Oblique", 8)
            self.canvas.setFillColor(self.dark_grey)
            self.canvas.drawString(self.margin, cursor.y(self.geometry) - 4 * mm, OMISSION_NOTE)
            cursor = cursor.advance(OMISSION_NOTE_HEIGHT)
        self.cursor = cursor

    def _header_block(self, record: PlayRecord):
        return "header", [self._paragraph(record.name, 'CustomTitle')]

    def _metadata_block(self, record: PlayRecord):
        rows = [
            ['Category', format_category(record.category)],
            ['Formation', record.formation or 'Not specified'],
            ['Situation', record.situation or 'General'],
            ['Tags', ', '.join(record.tags) or 'None'],
            ['Created', format_date(record.createdAt)],
            ['Updated', format_date(record.updatedAt)],
        ]
        if record.effectiveness is not None:
            rows.append(['Effectiveness', f"{record.effectiveness:g}%"])
        if record.successRate is not None:
            rows.append(['Success Rate', f"{record.successRate:g}%"])
        if record.usageFrequency is not None:
            rows.append(['Usage Frequency', str(record.usageFrequency)])
        table = self._create_key_value_table(rows, [30 * mm, self.content_width - 30 * mm])
        return "metadata", [table]

    def _diagram_block(self, image):
        width, height = self._diagram_box()
        indent = (self.content_width - width) / 2
        if image is CAPTURE_FAILED:
            picture = PlaceholderBox(width, height, "Diagram unavailable", indent)
        else:
            picture = CaptureImage(image, width, height, indent)
        return "diagram", [self._paragraph("Tactical Diagram", 'SectionHeader'), picture]

    def _instructions_block(self, record: PlayRecord):
        data = [['Player', 'Position', 'Role', 'Instructions']]
        for assignment in record.playerPositions:
            data.append([
                self._paragraph(assignment.playerName, 'TableCell'),
                self._paragraph(assignment.position, 'TableCell'),
                self._paragraph(assignment.role, 'TableCell'),
                self._paragraph(assignment.instructions or 'Standard execution', 'TableCell'),
            ])
        widths = [30 * mm, 25 * mm, 30 * mm]
        widths.append(self.content_width - sum(widths))
        table = self._create_table(data, widths)
        table.setStyle([('BACKGROUND', (0, 0), (-1, 0), self.header_color)])
        return "player instructions", [self._paragraph("Player Instructions", 'SectionHeader'), table]

    def _screenshots_block(self, record: PlayRecord):
        frames = min(len(record.screenshots), MAX_SCREENSHOT_FRAMES)
        return "video screenshots", [
            self._paragraph("Video Analysis", 'SectionHeader'),
            FrameGrid(frames, self.content_width),
        ]

    def _notes_blocks(self, record: PlayRecord):
        blocks = []
        if record.description:
            blocks.append(("description", [
                self._paragraph("Description:", 'SubHeader'),
                self._paragraph(record.description),
            ]))
        if record.coachNotes:
            blocks.append(("coach notes", [
                self._paragraph("Coach Notes:", 'SubHeader'),
                self._paragraph(record.coachNotes),
            ]))
        if record.keyPoints:
            blocks.append(("key points", [self._paragraph("Key Points:", 'SubHeader')] + [
                self._paragraph(f"• {point}", 'KeyPoint') for point in record.keyPoints
            ]))
        if record.variations:
            flowables = [self._paragraph("Variations:", 'SubHeader')]
            for number, variation in enumerate(record.variations, start=1):
                flowables.append(self._paragraph(f"{number}. {variation.name}", 'TableCellBold'))
                if variation.description:
                    flowables.append(self._paragraph(variation.description, 'KeyPoint'))
                if variation.effectiveness is not None:
                    flowables.append(self._paragraph(f"Effectiveness: {variation.effectiveness:g}%", 'KeyPoint'))
            blocks.append(("variations", flowables))
        return blocks

    @staticmethod
    def _has_statistics(record: PlayRecord) -> bool:
        return any(value is not None for value in
                   (record.effectiveness, record.successRate, record.usageFrequency))

    def _statistics_block(self, record: PlayRecord):
        rows = []
        if record.effectiveness is not None:
            rows.append(['Play Effectiveness', f"{record.effectiveness:g}%"])
        if record.successRate is not None:
            rows.append(['Success Rate', f"{record.successRate:g}%"])
        if record.usageFrequency is not None:
            rows.append(['Times Used This Season', str(record.usageFrequency)])
        return "statistics", [
            self._paragraph("Performance Statistics:", 'SubHeader'),
            self._create_key_value_table(rows, [60 * mm, 40 * mm]),
        ]

    # Analytics and index

    def _flow(self, flowables: List[Flowable]):
        """Draw flowables across as many pages as they need"""
        queue = list(flowables)
        while queue:
            flowable = queue.pop(0)
            available = self.cursor.remaining(self.geometry)
            _, height = flowable.wrapOn(self.canvas, self.content_width, available)
            if height <= available:
                self.cursor = self._draw_flowables(self.canvas, [flowable], self.cursor)
                continue

            parts = flowable.split(self.content_width, available)
            if len(parts) > 1:
                self.cursor = self._draw_flowables(self.canvas, [parts[0]], self.cursor)
                queue = list(parts[1:]) + queue
                self._start_page()
            elif self.cursor.offset > 0:
                queue.insert(0, flowable)
                self._start_page()
            else:
                logger.warning("Content block taller than a page was skipped")

    def render_analytics(self, summary: AnalyticsSummary):
        self._start_page()
        flowables = [
            self._paragraph("Analytics Summary", 'CustomTitle'),
            Spacer(1, 4 * mm),
            self._paragraph("Overall Statistics", 'SectionHeader'),
            self._create_key_value_table([
                ['Total Plays', str(summary.totalPlays)],
                ['Average Effectiveness', format_percentage(summary.avgEffectiveness)],
                ['Average Success Rate', format_percentage(summary.avgSuccessRate)],
                ['Most Used Category', summary.mostUsedCategory],
                ['Most Common Formation', summary.mostCommonFormation],
                ['Total Variations', str(summary.totalVariations)],
                ['Plays with Variations', str(summary.playsWithVariations)],
                ['Recent Activity (7 days)', str(summary.recentActivity)],
            ], [60 * mm, 60 * mm]),
            Spacer(1, 6 * mm),
        ]

        if summary.categoryBreakdown:
            data = [['Category', 'Count', 'Percentage', 'Avg Effectiveness', 'Most Effective Play']]
            for category, entry in summary.categoryBreakdown.items():
                data.append([
                    format_category(category),
                    str(entry['count']),
                    format_percentage(summary.category_share(category)),
                    format_percentage(entry['avgEffectiveness']),
                    self._paragraph(entry['mostEffectivePlay'], 'TableCell'),
                ])
            widths = [32 * mm, 18 * mm, 25 * mm, 32 * mm]
            widths.append(self.content_width - sum(widths))
            flowables += [
                self._paragraph("Category Breakdown", 'SectionHeader'),
                self._create_table(data, widths, repeat_header=True),
                Spacer(1, 6 * mm),
            ]

        data = [['Effectiveness Range', 'Plays', 'Percentage', 'Categories']]
        for bucket in summary.effectivenessDistribution:
            data.append([
                bucket['label'],
                str(bucket['count']),
                format_percentage(bucket['percentage']),
                self._paragraph(', '.join(format_category(c) for c in bucket['categories']) or '-', 'TableCell'),
            ])
        widths = [35 * mm, 18 * mm, 25 * mm]
        widths.append(self.content_width - sum(widths))
        flowables += [
            self._paragraph("Effectiveness Distribution", 'SectionHeader'),
            self._create_table(data, widths, repeat_header=True),
            Spacer(1, 6 * mm),
        ]

        if summary.formationAnalysis:
            data = [['Formation', 'Count', 'Avg Effectiveness', 'Avg Success Rate', 'Best Category']]
            for entry in summary.formationAnalysis:
                data.append([
                    self._paragraph(entry['formation'], 'TableCell'),
                    str(entry['count']),
                    format_percentage(entry['avgEffectiveness']),
                    format_percentage(entry['avgSuccessRate']),
                    format_category(entry['bestCategory']),
                ])
            widths = [18 * mm, 32 * mm, 32 * mm, 32 * mm]
            widths.insert(0, self.content_width - sum(widths))
            flowables += [
                self._paragraph("Formation Analysis", 'SectionHeader'),
                self._create_table(data, widths, repeat_header=True),
            ]

        self._flow(flowables)

    def render_index(self):
        """Alphabetical index of plays with their page numbers"""
        self._start_page()
        ordered = sorted(enumerate(self.records), key=lambda item: item[1].name.lower())

        widths = [30 * mm, 35 * mm, 18 * mm]
        widths.insert(0, self.content_width - sum(widths))
        data = [['Play Name', 'Category', 'Formation', 'Page']]
        for index, record in ordered:
            data.append([
                truncate_to_width(record.name, widths[0] - 8, 8),
                format_category(record.category),
                truncate_to_width(record.formation or '-', widths[2] - 8, 8),
                str(self.plan.record_page(index)),
            ])

        self._flow([
            self._paragraph("Play Index", 'CustomTitle'),
            Spacer(1, 4 * mm),
            self._paragraph("Alphabetical Index", 'SubHeader'),
            Spacer(1, 2 * mm),
            self._create_table(data, widths, repeat_header=True),
        ])
