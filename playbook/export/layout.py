"""
Page geometry and pagination for playbook documents.

The document generator threads an immutable PageCursor through every render
call. Page numbers for the table of contents and index are calculated here
from the configuration alone, before anything is drawn.
"""

import math
from collections import OrderedDict
from dataclasses import dataclass
from typing import List, Tuple

from reportlab.lib.pagesizes import A3, A4, legal, letter, landscape
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth

from .types import ReportConfig, PlayRecord, CustomSection
from .formatters import format_category


PAGE_SIZES = {
    "A4": A4,
    "Letter": letter,
    "Legal": legal,
    "A3": A3,
}

MARGIN = 20 * mm
FOOTER_HEIGHT = 15 * mm

# Table of contents rows have a fixed height so pages can be counted upfront
TOC_TITLE_HEIGHT = 20 * mm
TOC_ROW_HEIGHT = 7 * mm

SECTION_TITLE_HEIGHT = 18 * mm
LINE_SPACING = 1.4
BODY_FONT = "Helvetica"


@dataclass(frozen=True)
class PageGeometry:
    """Printable area of a page, in points"""
    width: float
    height: float
    margin: float = MARGIN
    footer_height: float = FOOTER_HEIGHT

    @classmethod
    def for_config(cls, config: ReportConfig) -> "PageGeometry":
        size = PAGE_SIZES.get(config.pageSize, A4)
        if config.orientation == "landscape":
            size = landscape(size)
        return cls(width=size[0], height=size[1])

    @property
    def page_size(self) -> Tuple[float, float]:
        return (self.width, self.height)

    @property
    def top(self) -> float:
        return self.height - self.margin

    @property
    def bottom(self) -> float:
        return self.margin + self.footer_height

    @property
    def usable_height(self) -> float:
        return self.top - self.bottom

    @property
    def content_width(self) -> float:
        return self.width - 2 * self.margin


@dataclass(frozen=True)
class PageCursor:
    """Current page number and the vertical space already used on it"""
    page: int = 1
    offset: float = 0.0

    def advance(self, height: float) -> "PageCursor":
        if height < 0:
            raise ValueError("Cursor cannot move upwards")
        return PageCursor(self.page, self.offset + height)

    def next_page(self) -> "PageCursor":
        return PageCursor(self.page + 1, 0.0)

    def y(self, geometry: PageGeometry) -> float:
        """Baseline of the cursor in canvas coordinates"""
        return geometry.top - self.offset

    def remaining(self, geometry: PageGeometry) -> float:
        return geometry.usable_height - self.offset

    def fits(self, height: float, geometry: PageGeometry) -> bool:
        return height <= self.remaining(geometry)


def body_leading(config: ReportConfig) -> float:
    return config.templateCustomization.fontSizes.body * LINE_SPACING


def split_lines(text: str, width: float, font_size: float, font_name: str = BODY_FONT) -> List[str]:
    """
    Wrap text to a width using font metrics.

    Blank lines in the source are kept so paragraphs stay separated.
    """
    lines = []
    for paragraph in (text or "").split("\n"):
        if not paragraph.strip():
            lines.append("")
            continue
        lines.extend(simpleSplit(paragraph, font_name, font_size, width))
    return lines


def truncate_to_width(text: str, width: float, font_size: float, font_name: str = BODY_FONT) -> str:
    """Shorten text with an ellipsis so it fits on one line"""
    if stringWidth(text, font_name, font_size) <= width:
        return text
    ellipsis = "..."
    while text and stringWidth(text + ellipsis, font_name, font_size) > width:
        text = text[:-1]
    return text + ellipsis


def toc_rows(records: List[PlayRecord]) -> List[Tuple]:
    """
    Rows of the table of contents, grouped by category.

    Category header rows are ("category", label). Record rows are
    ("record", number, index, record) where number is the running record
    number and index the record's position in the export.
    """
    groups = OrderedDict()
    for index, record in enumerate(records):
        groups.setdefault(record.category, []).append(index)

    rows = []
    number = 1
    for category, indexes in groups.items():
        rows.append(("category", format_category(category)))
        for index in indexes:
            rows.append(("record", number, index, records[index]))
            number += 1
    return rows


def toc_rows_per_page(geometry: PageGeometry) -> int:
    return max(1, int((geometry.usable_height - TOC_TITLE_HEIGHT) // TOC_ROW_HEIGHT))


def count_toc_pages(records: List[PlayRecord], geometry: PageGeometry) -> int:
    rows = len(toc_rows(records))
    return max(1, math.ceil(rows / toc_rows_per_page(geometry)))


def section_line_capacity(config: ReportConfig, geometry: PageGeometry) -> Tuple[int, int]:
    """Body lines that fit on the first and on each following page of a section"""
    leading = body_leading(config)
    first = max(1, int((geometry.usable_height - SECTION_TITLE_HEIGHT) // leading))
    following = max(1, int(geometry.usable_height // leading))
    return first, following


def count_section_pages(section: CustomSection, config: ReportConfig, geometry: PageGeometry) -> int:
    lines = split_lines(section.content, geometry.content_width,
                        config.templateCustomization.fontSizes.body)
    first, following = section_line_capacity(config, geometry)
    if len(lines) <= first:
        return 1
    return 1 + math.ceil((len(lines) - first) / following)


def sections_at(config: ReportConfig, position: str) -> List[CustomSection]:
    return [section for section in config.customSections if section.position == position]


class DocumentPlan:
    """Page numbers of every fixed part of a document, known before rendering"""

    def __init__(self, config: ReportConfig, records: List[PlayRecord], geometry: PageGeometry = None):
        self.config = config
        self.records = records
        self.geometry = geometry or PageGeometry.for_config(config)

        self.cover_pages = 1 if config.coverPage else 0
        self.toc_pages = count_toc_pages(records, self.geometry) if config.tableOfContents else 0
        self.before_section_pages = sum(
            count_section_pages(section, config, self.geometry)
            for section in sections_at(config, "before-plays")
        )

    @property
    def first_record_page(self) -> int:
        return 1 + self.cover_pages + self.toc_pages + self.before_section_pages

    def record_page(self, index: int) -> int:
        """Page on which the record at the given export position starts"""
        return self.first_record_page + index
