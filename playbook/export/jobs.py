"""
Export job controller.

A job filters the records, works out every stage of the run upfront, executes
the stages in order and reports progress once per completed stage. Any error
raised by a stage ends the run with a failed result.
"""

import logging
import time
import uuid
from collections import namedtuple
from typing import Callable, List, Optional, Sequence

from .types import ReportConfig, PlayRecord, ProgressEvent, RunResult
from .filters import matches_filter
from .layout import sections_at
from .analytics import summarize
from .document import PlaybookDocumentGenerator
from .workbook import PlaybookWorkbookBuilder, plan_sheets
from .imaging import Capture
from .results import build_success_result, build_failure_result, attach_share_link
from .formatters import utc_now
from ..sharing import SharingClient, ShareOptions

logger = logging.getLogger(__name__)

Stage = namedtuple('Stage', ['name', 'message', 'action', 'arg'])

ProgressCallback = Callable[[ProgressEvent], None]
CancelCheck = Callable[[], bool]


class ExportCancelled(Exception):
    """Raised between stages when the caller cancels a run"""


def calculate_total_steps(config: ReportConfig, records: List[PlayRecord]) -> int:
    """
    Number of progress events a run will emit.

    Args:
        config: Export configuration
        records: Records left after filtering

    Returns:
        Total step count
    """
    if config.is_document:
        steps = 2  # Initialize + Capture
        if config.coverPage:
            steps += 1
        if config.tableOfContents:
            steps += 1
        steps += len(config.customSections)
        steps += len(records)
        if config.includeAnalytics:
            steps += 1
        if config.playIndex:
            steps += 1
        return steps + 1  # Finalize

    return 1 + len(plan_sheets(config, records)) + 1


def plan_stages(config: ReportConfig, records: List[PlayRecord]) -> List[Stage]:
    """Stages of a run in execution order"""
    stages = [Stage('Initializing', 'Setting up export...', 'initialize', None)]

    if config.is_document:
        stages.append(Stage('Capture', 'Processing tactical diagrams...', 'capture', None))
        if config.coverPage:
            stages.append(Stage('Cover', 'Creating cover page...', 'cover', None))
        if config.tableOfContents:
            stages.append(Stage('TOC', 'Creating table of contents...', 'toc', None))
        for section in sections_at(config, 'before-plays'):
            stages.append(Stage('Sections', f'Adding section: {section.title}', 'section', section))
        for index, record in enumerate(records):
            stages.append(Stage('Plays', f'Generating play {index + 1}/{len(records)}: {record.name}',
                                'record', index))
        for section in sections_at(config, 'after-plays'):
            stages.append(Stage('Sections', f'Adding section: {section.title}', 'section', section))
        if config.includeAnalytics:
            stages.append(Stage('Analytics', 'Generating analytics...', 'analytics', None))
        if config.playIndex:
            stages.append(Stage('Index', 'Creating play index...', 'index', None))
        for section in sections_at(config, 'appendix'):
            stages.append(Stage('Appendix', f'Adding appendix: {section.title}', 'section', section))
        stages.append(Stage('Finalize', 'Finalizing document...', 'finalize', None))
    else:
        for name, kind, arg in plan_sheets(config, records):
            stages.append(Stage('Sheets', f'Building sheet: {name}', 'sheet', (name, kind, arg)))
        stages.append(Stage('Finalize', 'Writing workbook...', 'finalize', None))

    return stages


class ExportJob:
    """One export run. Create a new job for every run."""

    def __init__(self, config: ReportConfig, progress_callback: Optional[ProgressCallback] = None,
                 cancel_check: Optional[CancelCheck] = None,
                 sharing_client: Optional[SharingClient] = None):
        self.config = config.model_copy(deep=True)
        self.progress_callback = progress_callback
        self.cancel_check = cancel_check
        self.sharing_client = sharing_client
        self.job_id = uuid.uuid4().hex

        self.engine = None
        self.records = []
        self.captures = []
        self.content = None
        self._started = None

    def select(self, records: Sequence[PlayRecord], captures: Optional[Sequence[Capture]] = None):
        """Filter records, keeping each capture with its record"""
        captures = list(captures or [])
        selected, selected_captures = [], []
        for index, record in enumerate(records):
            if matches_filter(record, self.config.filters):
                selected.append(record)
                selected_captures.append(captures[index] if index < len(captures) else None)
        return selected, selected_captures

    def run(self, records: Sequence[PlayRecord], captures: Optional[Sequence[Capture]] = None,
            share: Optional[ShareOptions] = None) -> RunResult:
        """
        Execute the export.

        Args:
            records: Candidate records, filtered with the configured filters
            captures: Optional diagram captures aligned with records
            share: Sharing preferences, or None to skip sharing

        Returns:
            RunResult, failed if any stage raised
        """
        self._started = time.monotonic()
        export_time = utc_now()
        try:
            self.records, self.captures = self.select(records, captures)
            stages = plan_stages(self.config, self.records)
            total = len(stages)
            logger.info("Starting %s export %s: %d plays, %d steps",
                        self.config.format, self.job_id, len(self.records), total)

            if self.config.is_document:
                self.engine = PlaybookDocumentGenerator(self.config, self.records, self.captures, now=export_time)
            else:
                self.engine = PlaybookWorkbookBuilder(self.config, self.records, now=export_time)

            for step, stage in enumerate(stages, start=1):
                if step > 1 and self.cancel_check is not None and self.cancel_check():
                    raise ExportCancelled(f"Export cancelled before stage '{stage.name}'")
                self._execute(stage)
                self._emit(stage, step, total)

            result = build_success_result(
                self.config,
                self.records,
                self.content,
                self._elapsed_ms(),
                pages_count=self.engine.pages_count if self.config.is_document else None,
                sheets_count=None if self.config.is_document else self.engine.sheets_count,
                export_time=export_time,
            )
        except Exception as e:
            logger.exception("Export %s failed", self.job_id)
            return build_failure_result(str(e))

        logger.info("Export %s finished: %s (%d bytes)", self.job_id, result.fileName, result.fileSize)

        if share is not None and self.sharing_client is not None:
            try:
                result = attach_share_link(result, self.sharing_client, share, resource_id=self.job_id)
            except Exception as e:
                # Sharing never fails a finished export
                logger.exception("Sharing failed for export %s", self.job_id)
                result = result.model_copy(update={'shareError': f"Sharing failed: {e}"})
        return result

    def _execute(self, stage: Stage):
        engine = self.engine
        action = stage.action

        if action == 'initialize':
            engine.begin()
        elif action == 'capture':
            engine.process_captures()
        elif action == 'cover':
            engine.render_cover()
        elif action == 'toc':
            engine.render_toc()
        elif action == 'section':
            engine.render_section(stage.arg)
        elif action == 'record':
            engine.render_record(stage.arg)
        elif action == 'analytics':
            engine.render_analytics(summarize(self.records, now=engine.now))
        elif action == 'index':
            engine.render_index()
        elif action == 'sheet':
            engine.build_sheet(*stage.arg)
        elif action == 'finalize':
            self.content = engine.finish() if self.config.is_document else engine.serialize()
        else:
            raise ValueError(f"Unknown stage action: {action}")

    def _emit(self, stage: Stage, step: int, total: int):
        if self.progress_callback is None:
            return
        elapsed = time.monotonic() - self._started
        self.progress_callback(ProgressEvent(
            stage=stage.name,
            currentStep=step,
            totalSteps=total,
            progress=step / total * 100,
            message=stage.message,
            timeRemaining=elapsed / step * (total - step),
        ))

    def _elapsed_ms(self) -> float:
        return (time.monotonic() - self._started) * 1000


def run_export(records: Sequence[PlayRecord], config: ReportConfig,
               captures: Optional[Sequence[Capture]] = None,
               progress_callback: Optional[ProgressCallback] = None) -> RunResult:
    """Run a single export with a fresh job"""
    return ExportJob(config, progress_callback=progress_callback).run(records, captures)


def run_batch(record_sets: Sequence[Sequence[PlayRecord]], config: ReportConfig,
              overrides: Optional[Sequence[Optional[ReportConfig]]] = None,
              captures: Optional[Sequence[Optional[Sequence[Capture]]]] = None,
              progress_callback: Optional[ProgressCallback] = None,
              cancel_check: Optional[CancelCheck] = None,
              sharing_client: Optional[SharingClient] = None,
              share: Optional[ShareOptions] = None) -> List[RunResult]:
    """
    Run several exports one after another.

    Each record set gets its own job. A per-item override replaces the shared
    configuration for that item. Progress from every job goes to the same
    callback.

    Returns:
        One result per record set, in order
    """
    overrides = list(overrides or [])
    captures = list(captures or [])
    results = []
    for index, records in enumerate(record_sets):
        item_config = overrides[index] if index < len(overrides) and overrides[index] is not None else config
        item_captures = captures[index] if index < len(captures) else None
        job = ExportJob(item_config, progress_callback=progress_callback,
                        cancel_check=cancel_check, sharing_client=sharing_client)
        results.append(job.run(records, item_captures, share=share))
    logger.info("Batch finished: %d of %d exports succeeded",
                sum(1 for r in results if r.success), len(results))
    return results
