"""
Base PDF generator class with common functionality for playbook documents.
"""

from typing import List, Optional

from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib import colors
from reportlab.lib.units import mm
from reportlab.platypus import Table, TableStyle, Paragraph, Flowable
from reportlab.lib.enums import TA_CENTER, TA_LEFT, TA_RIGHT
from reportlab.pdfgen import canvas
from xml.sax.saxutils import escape

from .types import ReportConfig
from .layout import PageGeometry, PageCursor
from .imaging import convert_color
from ..config import DEFAULT_FOOTER_TEXT


BLOCK_SPACING = 4 * mm
WATERMARK_FONT_SIZE = 48


class BasePDFGenerator:
    """Base class for document generators"""

    def __init__(self, config: ReportConfig):
        self.config = config
        self.geometry = PageGeometry.for_config(config)

        branding = config.customBranding
        primary = branding.colors.primary if branding else "#2980b9"
        secondary = branding.colors.secondary if branding else "#3498db"
        self.primary_color = convert_color(primary, config.colorMode)
        self.header_color = convert_color(secondary, config.colorMode)
        self.light_grey = convert_color("#F3F4F6", config.colorMode)
        self.dark_grey = colors.HexColor("#6B7280")
        self.watermark_grey = colors.HexColor("#C8C8C8")

        # Page setup
        self.page_width, self.page_height = self.geometry.page_size
        self.margin = self.geometry.margin
        self.content_width = self.geometry.content_width

        self.font_sizes = config.templateCustomization.fontSizes

        # Create styles
        self.styles = getSampleStyleSheet()
        self._create_custom_styles()

    def _create_custom_styles(self):
        """Create custom paragraph styles"""
        sizes = self.font_sizes

        self.styles.add(ParagraphStyle(
            name='CustomTitle',
            parent=self.styles['Title'],
            fontSize=sizes.title,
            leading=sizes.title * 1.2,
            spaceAfter=6,
            alignment=TA_LEFT,
            textColor=self.primary_color,
            fontName='Helvetica-Bold'
        ))

        self.styles.add(ParagraphStyle(
            name='SectionHeader',
            parent=self.styles['Heading2'],
            fontSize=sizes.heading,
            leading=sizes.heading * 1.25,
            spaceAfter=4,
            spaceBefore=0,
            alignment=TA_LEFT,
            textColor=colors.black,
            fontName='Helvetica-Bold'
        ))

        self.styles.add(ParagraphStyle(
            name='SubHeader',
            parent=self.styles['Normal'],
            fontSize=sizes.body + 2,
            leading=(sizes.body + 2) * 1.3,
            fontName='Helvetica-Bold'
        ))

        self.styles.add(ParagraphStyle(
            name='BodyCopy',
            parent=self.styles['Normal'],
            fontSize=sizes.body,
            leading=sizes.body * 1.4,
            fontName='Helvetica'
        ))

        self.styles.add(ParagraphStyle(
            name='KeyPoint',
            parent=self.styles['Normal'],
            fontSize=sizes.body,
            leading=sizes.body * 1.4,
            leftIndent=10,
            fontName='Helvetica'
        ))

        self.styles.add(ParagraphStyle(
            name='TableCell',
            parent=self.styles['Normal'],
            fontSize=9,
            alignment=TA_LEFT,
            fontName='Helvetica',
            leading=10.5
        ))

        self.styles.add(ParagraphStyle(
            name='TableCellBold',
            parent=self.styles['TableCell'],
            fontName='Helvetica-Bold'
        ))

        self.styles.add(ParagraphStyle(
            name='ImageCaption',
            parent=self.styles['Normal'],
            fontSize=sizes.caption,
            leading=sizes.caption * 1.3,
            alignment=TA_CENTER,
            textColor=self.dark_grey,
            fontName='Helvetica-Oblique'
        ))

        self.styles.add(ParagraphStyle(
            name='Footer',
            parent=self.styles['Normal'],
            fontSize=8,
            alignment=TA_RIGHT,
            textColor=self.dark_grey,
            fontName='Helvetica'
        ))

    def _paragraph(self, text, style: str = 'BodyCopy') -> Paragraph:
        return Paragraph(escape(str(text)), self.styles[style])

    def _draw_watermark(self, canvas_obj: canvas.Canvas):
        """Draw the diagonal watermark in the middle of the page"""
        if not self.config.watermark:
            return
        canvas_obj.saveState()
        canvas_obj.setFillColor(self.watermark_grey)
        canvas_obj.setFont("Helvetica-Bold", WATERMARK_FONT_SIZE)
        canvas_obj.translate(self.page_width / 2, self.page_height / 2)
        canvas_obj.rotate(45)
        canvas_obj.drawCentredString(0, 0, self.config.watermark)
        canvas_obj.restoreState()

    def _draw_footer(self, canvas_obj: canvas.Canvas, page: int):
        """Page number, organization branding and footer text"""
        footer_y = self.margin / 2
        canvas_obj.saveState()
        canvas_obj.setFont("Helvetica", 8)
        canvas_obj.setFillColor(colors.black)

        if self.config.pageNumbers:
            canvas_obj.drawRightString(self.page_width - self.margin, footer_y, f"Page {page}")

        if self.config.includeBranding and self.config.organization_name:
            canvas_obj.drawString(self.margin, footer_y, self.config.organization_name)

        canvas_obj.setFont("Helvetica", 6)
        canvas_obj.setFillColor(self.dark_grey)
        canvas_obj.drawCentredString(self.page_width / 2, footer_y,
                                     self.config.footerText or DEFAULT_FOOTER_TEXT)
        canvas_obj.restoreState()

    def _create_table(self, data: List[List], col_widths: Optional[List[float]] = None,
                      repeat_header: bool = False) -> Table:
        """Create a styled table"""
        table = Table(data, colWidths=col_widths, repeatRows=1 if repeat_header else 0)

        style = TableStyle([
            # Header row
            ('BACKGROUND', (0, 0), (-1, 0), self.primary_color),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, 0), 9),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 6),
            ('TOPPADDING', (0, 0), (-1, 0), 6),

            # Data rows
            ('BACKGROUND', (0, 1), (-1, -1), colors.white),
            ('TEXTCOLOR', (0, 1), (-1, -1), colors.black),
            ('ALIGN', (0, 1), (-1, -1), 'LEFT'),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 1), (-1, -1), 8),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('LEFTPADDING', (0, 0), (-1, -1), 4),
            ('RIGHTPADDING', (0, 0), (-1, -1), 4),
            ('TOPPADDING', (0, 1), (-1, -1), 3),
            ('BOTTOMPADDING', (0, 1), (-1, -1), 3),
        ])

        # Alternate row colors
        if self.config.alternateRows:
            for i in range(1, len(data)):
                if i % 2 == 0:
                    style.add('BACKGROUND', (0, i), (-1, i), self.light_grey)

        table.setStyle(style)
        return table

    def _create_key_value_table(self, rows: List[List], col_widths: Optional[List[float]] = None) -> Table:
        """Create a borderless two column table with bold labels"""
        data = [[self._paragraph(label, 'TableCellBold'), self._paragraph(value, 'TableCell')]
                for label, value in rows]
        table = Table(data, colWidths=col_widths, hAlign='LEFT')
        table.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('LEFTPADDING', (0, 0), (-1, -1), 2),
            ('RIGHTPADDING', (0, 0), (-1, -1), 2),
            ('TOPPADDING', (0, 0), (-1, -1), 2),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 2),
        ]))
        return table

    def _measure(self, canvas_obj: canvas.Canvas, flowables: List[Flowable]) -> float:
        """Total height of flowables stacked at the content width"""
        total = 0.0
        for flowable in flowables:
            _, height = flowable.wrapOn(canvas_obj, self.content_width, self.page_height)
            total += height
        return total

    def _draw_flowables(self, canvas_obj: canvas.Canvas, flowables: List[Flowable],
                        cursor: PageCursor) -> PageCursor:
        """Draw already wrapped flowables from the cursor down"""
        for flowable in flowables:
            width, height = flowable.wrapOn(canvas_obj, self.content_width, self.page_height)
            flowable.drawOn(canvas_obj, self.margin, cursor.y(self.geometry) - height)
            cursor = cursor.advance(height)
        return cursor
