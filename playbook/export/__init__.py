"""
Playbook Studio export engine

Turns tactical play records into:
1. Playbook documents (PDF) - cover page, contents, one page per play, analytics and index
2. Workbooks (XLSX) - overview, per-category, statistics, analytics, player, variation and trend sheets
3. Flat tables (CSV/TSV) - the first workbook sheet
"""

from .types import PlayRecord, ReportConfig, FilterSpec, ProgressEvent, RunResult
from .filters import filter_records, matches_filter
from .analytics import AnalyticsSummary, summarize
from .jobs import ExportJob, calculate_total_steps, plan_stages, run_batch, run_export
from .presets import TEMPLATE_PRESETS, build_config

__all__ = [
    'PlayRecord',
    'ReportConfig',
    'FilterSpec',
    'ProgressEvent',
    'RunResult',
    'filter_records',
    'matches_filter',
    'AnalyticsSummary',
    'summarize',
    'ExportJob',
    'calculate_total_steps',
    'plan_stages',
    'run_batch',
    'run_export',
    'TEMPLATE_PRESETS',
    'build_config',
]
