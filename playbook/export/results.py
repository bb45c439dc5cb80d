"""
Run result assembly.

A successful run carries the artifact bytes and a description of them. A
failed run carries only the error. Sharing is attempted after the artifact
exists and its failure never turns a successful run into a failed one.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from .types import ReportConfig, PlayRecord, RunResult, RunMetadata
from .formatters import MIME_TYPES, generate_filename, utc_now
from ..sharing import SharingClient, SharingError, ShareOptions, build_share_request

logger = logging.getLogger(__name__)


def build_success_result(config: ReportConfig, records: List[PlayRecord], content: bytes,
                         processing_time_ms: float, pages_count: Optional[int] = None,
                         sheets_count: Optional[int] = None,
                         export_time: Optional[datetime] = None) -> RunResult:
    """
    Package a produced artifact.

    Args:
        config: Configuration used for the run
        records: Exported records
        content: Artifact bytes
        processing_time_ms: Wall-clock duration of the run
        pages_count: Pages in a document
        sheets_count: Sheets in a workbook
        export_time: Time of the run, defaults to now

    Returns:
        Successful RunResult
    """
    export_time = export_time or utc_now()
    file_name = generate_filename(config.team_name, config.template,
                                  [record.name for record in records], config.format, export_time)
    return RunResult(
        success=True,
        content=content,
        fileName=file_name,
        fileSize=len(content),
        mimeType=MIME_TYPES.get(config.format, 'application/octet-stream'),
        metadata=RunMetadata(
            exportTime=export_time,
            playsCount=len(records),
            pagesCount=pages_count,
            sheetsCount=sheets_count,
            template=config.template,
            format=config.format,
            quality=config.quality,
            processingTime=processing_time_ms,
            options=config.model_dump(mode='json'),
        ),
    )


def build_failure_result(error: str) -> RunResult:
    """Failed run with no artifact"""
    return RunResult(success=False, error=error or 'Unknown error occurred')


def attach_share_link(result: RunResult, client: SharingClient, options: ShareOptions,
                      resource_id: Optional[str] = None) -> RunResult:
    """
    Request a share link for a successful result and merge it in.

    Args:
        result: Result of a finished run
        client: Sharing service client
        options: Caller's sharing preferences
        resource_id: Identifier of the export, generated when omitted

    Returns:
        A copy of the result with shareUrl/qrCode set, or shareError on failure
    """
    if not result.success or result.metadata is None:
        return result

    share_request = build_share_request(
        options,
        resource_id=resource_id or uuid.uuid4().hex,
        file_name=result.fileName,
        export_format=result.metadata.format,
        file_size=result.fileSize,
        plays_count=result.metadata.playsCount,
    )
    try:
        link = client.create_share_link(share_request)
    except SharingError as e:
        logger.warning("Failed to create share link for %s: %s", result.fileName, e)
        return result.model_copy(update={'shareError': str(e)})

    return result.model_copy(update={'shareUrl': link.url, 'qrCode': link.qrCode})
