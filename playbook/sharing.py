"""
Client for the sharing service that issues public links and QR codes for
exported files.

Only descriptive metadata is sent. The exported bytes never leave this
application.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests
from pydantic import BaseModel, Field, ValidationError

from .config import SHARE_LINK_EXPIRATION_DAYS, SHARING_SERVICE_URL, SHARING_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class SharingError(Exception):
    """Raised when a share link could not be created"""


class ShareOptions(BaseModel):
    """Caller's sharing preferences for one export"""
    title: Optional[str] = None
    expiresInDays: Optional[int] = SHARE_LINK_EXPIRATION_DAYS
    passwordProtected: bool = False
    password: Optional[str] = None
    allowDownload: bool = True
    generateQRCode: bool = True


class ShareRequest(BaseModel):
    title: str
    description: str
    type: str = "export"
    resourceId: str
    resourceData: Dict[str, Any] = Field(default_factory=dict)
    permissions: List[str] = Field(default_factory=lambda: ["view", "download"])
    expiration: Optional[datetime] = None
    passwordProtected: bool = False
    password: Optional[str] = None
    allowDownload: bool = True
    generateQRCode: bool = True


class ShareLink(BaseModel):
    url: str
    qrCode: Optional[str] = None


def build_share_request(options: ShareOptions, resource_id: str, file_name: str,
                        export_format: str, file_size: int, plays_count: int) -> ShareRequest:
    """
    Describe an exported file for the sharing service.

    Args:
        options: Caller's sharing preferences
        resource_id: Identifier of the export
        file_name: Generated filename
        export_format: Output format id
        file_size: Size of the export in bytes
        plays_count: Number of plays in the export

    Returns:
        ShareRequest without any file content
    """
    expiration = None
    if options.expiresInDays:
        expiration = datetime.now(timezone.utc) + timedelta(days=options.expiresInDays)

    permissions = ["view", "download"] if options.allowDownload else ["view"]
    return ShareRequest(
        title=options.title or file_name,
        description=f"Exported {plays_count} tactical play{'s' if plays_count != 1 else ''}",
        resourceId=resource_id,
        resourceData={"fileName": file_name, "format": export_format, "fileSize": file_size},
        permissions=permissions,
        expiration=expiration,
        passwordProtected=options.passwordProtected,
        password=options.password if options.passwordProtected else None,
        allowDownload=options.allowDownload,
        generateQRCode=options.generateQRCode,
    )


class SharingClient:
    """HTTP client for the sharing service"""

    def __init__(self, base_url: str = SHARING_SERVICE_URL, timeout: float = SHARING_TIMEOUT_SECONDS,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def create_share_link(self, share_request: ShareRequest) -> ShareLink:
        """
        Ask the sharing service for a public link.

        Raises:
            SharingError: If the service is unreachable or rejects the request
        """
        url = f"{self.base_url}/links"
        try:
            response = self.session.post(
                url,
                json=share_request.model_dump(mode='json'),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SharingError(f"Sharing service unreachable: {e}")

        if response.status_code not in (200, 201):
            raise SharingError(f"Sharing service returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError:
            raise SharingError("Sharing service returned an invalid response")

        if not isinstance(payload, dict) or not payload.get('url'):
            raise SharingError("Sharing service response has no link")

        try:
            link = ShareLink(url=payload['url'], qrCode=payload.get('qrCode'))
        except ValidationError as e:
            raise SharingError(f"Sharing service response is malformed: {e.error_count()} invalid field(s)")

        logger.info("Share link created for %s", share_request.resourceId)
        return link
