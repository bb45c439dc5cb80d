"""
Formatting utilities for labels, dates, numbers and filenames.

All formatting must be consistent between documents and workbooks.
"""

import re
from datetime import datetime, timezone
from typing import Optional

from ..config import DEFAULT_TEAM_NAME


TEMPLATE_TITLES = {
    "practice-plan": "Practice Plan",
    "game-analysis": "Game Analysis",
    "player-development": "Player Development Guide",
    "playbook": "Hockey Playbook",
    "custom": "Tactical Manual",
}

FILE_EXTENSIONS = {
    "pdf": "pdf",
    "xlsx": "xlsx",
    "csv": "csv",
    "tsv": "tsv",
}

MIME_TYPES = {
    "pdf": "application/pdf",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "csv": "text/csv",
    "tsv": "text/tab-separated-values",
}


def to_utc(value: datetime) -> datetime:
    """
    Normalize a timestamp so naive and aware values can be compared.

    Naive timestamps are taken to be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def month_key(value: datetime) -> str:
    """Year-month bucket key (e.g. "2025-03")"""
    return to_utc(value).strftime("%Y-%m")


def format_category(category: str) -> str:
    """
    Capitalize the first letter of a category id.

    Args:
        category: Category id (e.g., "special-teams")

    Returns:
        Display label (e.g., "Special-teams")
    """
    if not category:
        return category
    return category[0].upper() + category[1:]


def format_template_title(template: str) -> str:
    """Cover page title for a template id"""
    return TEMPLATE_TITLES.get(template, "Tactical Manual")


def format_date(value: Optional[datetime]) -> str:
    """
    Format a timestamp for tables (MM/DD/YYYY).

    Args:
        value: Timestamp or None

    Returns:
        Formatted date, or "Not recorded"
    """
    if value is None:
        return "Not recorded"
    return value.strftime("%m/%d/%Y")


def format_long_date(value: datetime) -> str:
    """Format a timestamp for the cover page (e.g., "March 4, 2025")"""
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def format_percentage(value: Optional[float], decimals: int = 1) -> str:
    """
    Format a 0-100 score as a percentage string.

    Args:
        value: Score, absent values count as 0
        decimals: Number of decimal places

    Returns:
        Formatted string (e.g., "72.5%")
    """
    return f"{(value or 0):.{decimals}f}%"


def days_since(value: datetime, now: Optional[datetime] = None) -> int:
    """Whole days elapsed since a timestamp, rounded up"""
    now = now or utc_now()
    seconds = abs((to_utc(now) - to_utc(value)).total_seconds())
    days, remainder = divmod(seconds, 86400)
    return int(days) + (1 if remainder > 0 else 0)


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe file operations"""
    filename = re.sub(r'[<>:"/\\|?*]', '_', filename)
    filename = re.sub(r'_+', '_', filename)
    filename = filename.strip('_.')
    return filename


def generate_filename(team_name: Optional[str], template: str, record_names: list,
                      export_format: str, export_date: Optional[datetime] = None) -> str:
    """
    Build the export filename.

    Multi-record runs: {team}_{template}_{n}plays_{YYYY-MM-DD}.{ext}
    Single-record runs: {team}_{recordName}_{YYYY-MM-DD}.{ext}

    Args:
        team_name: Branding team name, DEFAULT_TEAM_NAME when not set
        template: Template id
        record_names: Names of the exported records
        export_format: Output format id
        export_date: Date of the run, defaults to today

    Returns:
        Filename with extension
    """
    team = team_name or DEFAULT_TEAM_NAME
    date_str = (export_date or utc_now()).strftime("%Y-%m-%d")
    extension = FILE_EXTENSIONS.get(export_format, export_format)

    if len(record_names) == 1:
        record_name = re.sub(r'\s+', '_', record_names[0])
        filename = f"{team}_{record_name}_{date_str}"
    else:
        filename = f"{team}_{template}_{len(record_names)}plays_{date_str}"

    return f"{sanitize_filename(filename)}.{extension}"
