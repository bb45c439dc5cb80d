"""
Type definitions for the export engine.

These types define the data contract for generating playbook documents and
workbooks. Field names follow the camelCase JSON payloads sent by the coach
tools front end.
"""

from typing import Optional, List, Dict, Any, Literal
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, validator


PlayCategory = Literal["offensive", "defensive", "special-teams", "faceoff", "transition"]
ExportFormat = Literal["pdf", "xlsx", "csv", "tsv"]
TemplateId = Literal["practice-plan", "game-analysis", "player-development", "playbook", "custom"]
Quality = Literal["low", "medium", "high", "ultra"]
PageSizeName = Literal["A4", "Letter", "Legal", "A3"]
ColorMode = Literal["color", "grayscale", "blackwhite"]
SectionPosition = Literal["before-plays", "after-plays", "appendix"]


def _check_percentage(value):
    if value is not None and not 0 <= value <= 100:
        raise ValueError('Value must be between 0 and 100')
    return value


class Variation(BaseModel):
    """Alternative way of running a play"""
    id: str
    name: str
    description: str = ""
    effectiveness: Optional[float] = None
    notes: Optional[str] = None

    @validator('effectiveness')
    def validate_effectiveness(cls, v):
        return _check_percentage(v)


class PlayerAssignment(BaseModel):
    """A player's job within a play"""
    playerId: str
    playerName: str = ""
    position: str = ""
    role: str = ""
    instructions: str = ""
    performanceRating: Optional[float] = None


class PlayRecord(BaseModel):
    """Tactical play record"""
    id: str
    name: str
    description: str = ""
    category: PlayCategory
    situation: str = ""
    formation: Optional[str] = None
    createdAt: datetime
    updatedAt: datetime
    tags: List[str] = Field(default_factory=list)
    coachNotes: Optional[str] = None
    keyPoints: List[str] = Field(default_factory=list)
    variations: List[Variation] = Field(default_factory=list)
    effectiveness: Optional[float] = None
    successRate: Optional[float] = None
    usageFrequency: Optional[int] = None
    playerPositions: List[PlayerAssignment] = Field(default_factory=list)
    screenshots: List[str] = Field(default_factory=list)  # video frame references

    @validator('effectiveness', 'successRate')
    def validate_percentages(cls, v):
        return _check_percentage(v)

    @validator('usageFrequency')
    def validate_usage(cls, v):
        if v is not None and v < 0:
            raise ValueError('Usage frequency cannot be negative')
        return v


class DateRange(BaseModel):
    start: datetime
    end: datetime


class EffectivenessRange(BaseModel):
    min: float = 0
    max: float = 100


class FilterSpec(BaseModel):
    """Record selection criteria. Empty criteria impose no restriction."""
    categories: List[str] = Field(default_factory=list)
    formations: List[str] = Field(default_factory=list)
    dateRange: Optional[DateRange] = None
    effectiveness: Optional[EffectivenessRange] = None
    tags: List[str] = Field(default_factory=list)


class BrandColors(BaseModel):
    primary: str = "#2980b9"
    secondary: str = "#3498db"


class BrandingOptions(BaseModel):
    """Team branding shown on the cover page and footer"""
    teamLogo: Optional[str] = None  # base64 or data URL
    coachName: Optional[str] = None
    teamName: Optional[str] = None
    organizationName: Optional[str] = None
    season: Optional[str] = None
    colors: BrandColors = Field(default_factory=BrandColors)


class CustomSection(BaseModel):
    """Free-text section inserted into the document"""
    id: str
    title: str
    content: str = ""
    position: SectionPosition = "after-plays"


class FontSizes(BaseModel):
    title: float = 22
    heading: float = 14
    body: float = 10
    caption: float = 8


class TemplateCustomization(BaseModel):
    diagramSize: Literal["small", "medium", "large"] = "medium"
    fontSizes: FontSizes = Field(default_factory=FontSizes)


class HeaderStyle(BaseModel):
    backgroundColor: str = "#2980b9"
    fontColor: str = "#ffffff"
    bold: bool = True
    fontSize: float = 11


class DataStyle(BaseModel):
    fontSize: float = 10
    alternateRowColor: str = "#f8f9fa"


class WorkbookFormatting(BaseModel):
    """Cell styling applied to every generated sheet"""
    headerStyle: HeaderStyle = Field(default_factory=HeaderStyle)
    dataStyle: DataStyle = Field(default_factory=DataStyle)
    numberFormat: str = "#,##0.00"
    borderStyle: Literal["thin", "medium", "thick", "none"] = "thin"


class CustomSheet(BaseModel):
    """Caller supplied sheet appended after the generated ones"""
    name: str
    headers: List[str] = Field(default_factory=list)
    rows: List[List[Any]] = Field(default_factory=list)
    chartType: Optional[Literal["bar", "line", "pie", "scatter"]] = None
    chartOptions: Dict[str, Any] = Field(default_factory=dict)


class ReportConfig(BaseModel):
    """Export configuration. Immutable for the duration of a run."""
    model_config = ConfigDict(frozen=True)

    format: ExportFormat = "pdf"
    template: TemplateId = "playbook"
    quality: Quality = "high"
    pageSize: PageSizeName = "A4"
    orientation: Literal["portrait", "landscape"] = "portrait"
    colorMode: ColorMode = "color"

    # Content toggles
    includeMetadata: bool = True
    includeNotes: bool = True
    includeStatistics: bool = True
    includePlayerInstructions: bool = True
    includeVideoScreenshots: bool = False
    includeDiagrams: bool = True
    includeAnalytics: bool = False
    includePlayerData: bool = True
    includeBranding: bool = False
    pageNumbers: bool = True
    tableOfContents: bool = True
    coverPage: bool = True
    sectionDividers: bool = True
    playIndex: bool = False
    compression: bool = True
    multipleSheets: bool = True
    alternateRows: bool = True

    customBranding: Optional[BrandingOptions] = None
    watermark: Optional[str] = None
    footerText: Optional[str] = None
    customSections: List[CustomSection] = Field(default_factory=list)
    templateCustomization: TemplateCustomization = Field(default_factory=TemplateCustomization)
    filters: Optional[FilterSpec] = None
    formatting: WorkbookFormatting = Field(default_factory=WorkbookFormatting)
    customSheets: List[CustomSheet] = Field(default_factory=list)

    @property
    def is_document(self) -> bool:
        return self.format == "pdf"

    @property
    def team_name(self) -> Optional[str]:
        return self.customBranding.teamName if self.customBranding else None

    @property
    def organization_name(self) -> Optional[str]:
        return self.customBranding.organizationName if self.customBranding else None


class ProgressEvent(BaseModel):
    """Emitted once after every completed stage"""
    stage: str
    currentStep: int
    totalSteps: int
    progress: float  # percentage
    message: str
    timeRemaining: Optional[float] = None  # seconds


class RunMetadata(BaseModel):
    exportTime: datetime
    playsCount: int
    pagesCount: Optional[int] = None
    sheetsCount: Optional[int] = None
    template: str
    format: str
    quality: str
    processingTime: float  # milliseconds
    options: Dict[str, Any] = Field(default_factory=dict)


class RunResult(BaseModel):
    """Outcome of one export run"""
    success: bool
    content: Optional[bytes] = None
    fileName: Optional[str] = None
    fileSize: int = 0
    mimeType: Optional[str] = None
    error: Optional[str] = None
    shareUrl: Optional[str] = None
    qrCode: Optional[str] = None
    shareError: Optional[str] = None
    metadata: Optional[RunMetadata] = None
