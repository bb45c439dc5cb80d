"""
Record selection for exports.

Each criterion is an independent predicate, so the order in which they are
applied does not matter and filtering is idempotent.
"""

from typing import List, Optional

from .types import PlayRecord, FilterSpec
from .formatters import to_utc


def matches_filter(record: PlayRecord, spec: Optional[FilterSpec]) -> bool:
    """
    Check whether a record satisfies every criterion of a filter.

    Args:
        record: Play record to test
        spec: Filter criteria, or None for no restriction

    Returns:
        True if the record should be exported
    """
    if spec is None:
        return True

    if spec.categories and record.category not in spec.categories:
        return False

    if spec.formations and (not record.formation or record.formation not in spec.formations):
        return False

    if spec.dateRange is not None:
        created = to_utc(record.createdAt)
        if created < to_utc(spec.dateRange.start) or created > to_utc(spec.dateRange.end):
            return False

    if spec.effectiveness is not None:
        effectiveness = record.effectiveness or 0
        if effectiveness < spec.effectiveness.min or effectiveness > spec.effectiveness.max:
            return False

    if spec.tags and not any(tag in spec.tags for tag in record.tags):
        return False

    return True


def filter_records(records: List[PlayRecord], spec: Optional[FilterSpec]) -> List[PlayRecord]:
    """
    Select the records matching a filter, preserving input order.

    Args:
        records: Play records
        spec: Filter criteria

    Returns:
        Matching records (possibly empty)
    """
    return [record for record in records if matches_filter(record, spec)]
