"""
Analytics calculations for playbook exports.

Documents and workbooks must report the same numbers, so every aggregate is
calculated here. Absent numeric fields count as 0 and are never excluded.
"""

from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Any

from .types import PlayRecord
from .formatters import to_utc, utc_now, month_key


# Inclusive on both ends, so a score of exactly 20 lands in the first two buckets
DISTRIBUTION_BUCKETS = [(0, 20), (20, 40), (40, 60), (60, 80), (80, 100)]

RECENT_ACTIVITY_DAYS = 7
WEEKLY_WINDOW_WEEKS = 12


def _first_max(counts: Dict[str, int]) -> str:
    """Key with the highest count. The first key seen wins ties."""
    best_key = None
    best_count = None
    for key, count in counts.items():
        if best_key is None or count > best_count:
            best_key = key
            best_count = count
    return best_key if best_key is not None else 'None'


def _average(total: float, count: int) -> float:
    return total / count if count > 0 else 0.0


class AnalyticsSummary:
    """Aggregate statistics for a set of play records"""

    def __init__(self, records: List[PlayRecord], now: Optional[datetime] = None):
        self.records = list(records)
        self.now = to_utc(now) if now is not None else utc_now()
        self._calculate_all()

    def _calculate_all(self):
        """Calculate all metrics"""
        records = self.records

        # Basic totals
        self.totalPlays = len(records)
        self.totalEffectiveness = sum(r.effectiveness or 0 for r in records)
        self.totalSuccessRate = sum(r.successRate or 0 for r in records)
        self.totalUsage = sum(r.usageFrequency or 0 for r in records)
        self.totalVariations = sum(len(r.variations) for r in records)

        self.avgEffectiveness = _average(self.totalEffectiveness, self.totalPlays)
        self.avgSuccessRate = _average(self.totalSuccessRate, self.totalPlays)

        # Breakdowns
        self.categoryBreakdown = self._calculate_category_breakdown()
        self.mostUsedCategory = _first_max(
            OrderedDict((category, data['count']) for category, data in self.categoryBreakdown.items())
        )

        formation_counts = OrderedDict()
        for record in records:
            if record.formation:
                formation_counts[record.formation] = formation_counts.get(record.formation, 0) + 1
        self.mostCommonFormation = _first_max(formation_counts)

        # Variations
        self.playsWithVariations = sum(1 for r in records if r.variations)
        self.avgVariationsPerPlay = _average(self.totalVariations, self.totalPlays)

        # sorted() is stable, so ties keep input order
        by_tags = sorted(records, key=lambda r: len(r.tags), reverse=True)
        self.mostTaggedPlay = by_tags[0].name if by_tags else 'None'

        cutoff = self.now - timedelta(days=RECENT_ACTIVITY_DAYS)
        self.recentActivity = sum(1 for r in records if to_utc(r.updatedAt) >= cutoff)

        self.effectivenessDistribution = calculate_effectiveness_distribution(records)
        self.monthlyTrends = calculate_monthly_trends(records)
        self.formationAnalysis = calculate_formation_analysis(records)

    def _calculate_category_breakdown(self) -> Dict[str, Dict[str, Any]]:
        breakdown = OrderedDict()
        for record in self.records:
            if record.category not in breakdown:
                breakdown[record.category] = {
                    'count': 0,
                    'totalEffectiveness': 0,
                    'avgEffectiveness': 0.0,
                    'totalUsage': 0,
                    'mostEffectivePlay': '',
                }

            entry = breakdown[record.category]
            entry['count'] += 1
            entry['totalEffectiveness'] += record.effectiveness or 0
            entry['totalUsage'] += record.usageFrequency or 0

            # Compared against the first record carrying the candidate's name,
            # not against the candidate record itself
            candidate = entry['mostEffectivePlay']
            if not candidate or (record.effectiveness or 0) > self._effectiveness_of(candidate):
                entry['mostEffectivePlay'] = record.name

        for entry in breakdown.values():
            entry['avgEffectiveness'] = _average(entry['totalEffectiveness'], entry['count'])

        return breakdown

    def _effectiveness_of(self, name: str) -> float:
        for record in self.records:
            if record.name == name:
                return record.effectiveness or 0
        return 0

    def category_share(self, category: str) -> float:
        """Percentage of all records that belong to a category"""
        entry = self.categoryBreakdown.get(category)
        if not entry or self.totalPlays == 0:
            return 0.0
        return entry['count'] / self.totalPlays * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalPlays': self.totalPlays,
            'avgEffectiveness': self.avgEffectiveness,
            'avgSuccessRate': self.avgSuccessRate,
            'totalUsage': self.totalUsage,
            'totalVariations': self.totalVariations,
            'mostUsedCategory': self.mostUsedCategory,
            'mostCommonFormation': self.mostCommonFormation,
            'playsWithVariations': self.playsWithVariations,
            'avgVariationsPerPlay': self.avgVariationsPerPlay,
            'mostTaggedPlay': self.mostTaggedPlay,
            'recentActivity': self.recentActivity,
            'categoryBreakdown': {k: dict(v) for k, v in self.categoryBreakdown.items()},
            'effectivenessDistribution': self.effectivenessDistribution,
            'monthlyTrends': self.monthlyTrends,
            'formationAnalysis': self.formationAnalysis,
        }


def calculate_effectiveness_distribution(records: List[PlayRecord]) -> List[Dict[str, Any]]:
    """
    Count records per effectiveness bucket.

    Args:
        records: Play records

    Returns:
        One entry per bucket with min, max, label, count, percentage and the
        categories present in the bucket
    """
    total = len(records)
    distribution = []
    for low, high in DISTRIBUTION_BUCKETS:
        in_range = [r for r in records if low <= (r.effectiveness or 0) <= high]
        categories = list(OrderedDict.fromkeys(r.category for r in in_range))
        distribution.append({
            'min': low,
            'max': high,
            'label': f"{low}-{high}%",
            'count': len(in_range),
            'percentage': _average(len(in_range) * 100, total),
            'categories': categories,
        })
    return distribution


def calculate_monthly_trends(records: List[PlayRecord]) -> List[Dict[str, Any]]:
    """
    Bucket records by creation month, oldest first.

    The improvement rate is the percentage change in average effectiveness
    against the previous bucket, 0 for the first bucket or when the previous
    average is 0.
    """
    buckets = {}
    for record in records:
        key = month_key(record.createdAt)
        bucket = buckets.setdefault(key, {
            'playsCreated': 0,
            'totalEffectiveness': 0,
            'totalUsage': 0,
            'categories': OrderedDict(),
        })
        bucket['playsCreated'] += 1
        bucket['totalEffectiveness'] += record.effectiveness or 0
        bucket['totalUsage'] += record.usageFrequency or 0
        bucket['categories'][record.category] = bucket['categories'].get(record.category, 0) + 1

    trends = []
    previous_avg = None
    for period in sorted(buckets):
        bucket = buckets[period]
        avg = _average(bucket['totalEffectiveness'], bucket['playsCreated'])
        if previous_avg:
            improvement = (avg - previous_avg) / previous_avg * 100
        else:
            improvement = 0.0
        trends.append({
            'period': period,
            'playsCreated': bucket['playsCreated'],
            'avgEffectiveness': avg,
            'totalUsage': bucket['totalUsage'],
            'mostActiveCategory': _first_max(bucket['categories']),
            'improvementRate': improvement,
        })
        previous_avg = avg
    return trends


def calculate_formation_analysis(records: List[PlayRecord]) -> List[Dict[str, Any]]:
    """Per-formation usage and performance, in order of first appearance"""
    formations = OrderedDict()
    for record in records:
        if not record.formation:
            continue
        data = formations.setdefault(record.formation, {
            'count': 0,
            'totalEffectiveness': 0,
            'totalSuccessRate': 0,
            'categories': OrderedDict(),
        })
        data['count'] += 1
        data['totalEffectiveness'] += record.effectiveness or 0
        data['totalSuccessRate'] += record.successRate or 0
        data['categories'][record.category] = data['categories'].get(record.category, 0) + 1

    return [
        {
            'formation': formation,
            'count': data['count'],
            'avgEffectiveness': _average(data['totalEffectiveness'], data['count']),
            'avgSuccessRate': _average(data['totalSuccessRate'], data['count']),
            'bestCategory': _first_max(data['categories']),
        }
        for formation, data in formations.items()
    ]


def calculate_monthly_activity(records: List[PlayRecord]) -> List[Dict[str, Any]]:
    """
    Creation and update activity per month, oldest first.

    A record updated in a later month than it was created also counts as an
    update in that later month.
    """
    def new_bucket():
        return {
            'playsCreated': 0,
            'playsUpdated': 0,
            'totalEffectiveness': 0,
            'categories': OrderedDict(),
            'formations': set(),
        }

    buckets = {}
    for record in records:
        created = month_key(record.createdAt)
        updated = month_key(record.updatedAt)

        bucket = buckets.setdefault(created, new_bucket())
        bucket['playsCreated'] += 1
        bucket['totalEffectiveness'] += record.effectiveness or 0
        bucket['categories'][record.category] = bucket['categories'].get(record.category, 0) + 1
        if record.formation:
            bucket['formations'].add(record.formation)

        if updated != created:
            buckets.setdefault(updated, new_bucket())['playsUpdated'] += 1

    return [
        {
            'month': month,
            'playsCreated': data['playsCreated'],
            'playsUpdated': data['playsUpdated'],
            'avgEffectiveness': _average(data['totalEffectiveness'], data['playsCreated']),
            'mostActiveCategory': _first_max(data['categories']),
            'newFormations': len(data['formations']),
        }
        for month, data in sorted(buckets.items())
    ]


def calculate_weekly_usage(records: List[PlayRecord], now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """
    Usage over a synthetic window of twelve weeks, oldest first.

    Week i starts i * 7 days before now and spans six days. Records are
    assigned to a week by their update timestamp.
    """
    now = to_utc(now) if now is not None else utc_now()
    weeks = []
    for i in range(WEEKLY_WINDOW_WEEKS):
        week_start = now - timedelta(days=7 * i)
        week_end = week_start + timedelta(days=6)

        week_records = [r for r in records if week_start <= to_utc(r.updatedAt) <= week_end]
        by_usage = sorted(week_records, key=lambda r: r.usageFrequency or 0, reverse=True)
        by_effectiveness = sorted(by_usage, key=lambda r: r.effectiveness or 0, reverse=True)

        weeks.append({
            'weekOf': week_start.strftime("%Y-%m-%d"),
            'totalUsage': sum(r.usageFrequency or 0 for r in week_records),
            'mostUsedPlay': by_usage[0].name if by_usage else 'None',
            'bestPerformingPlay': by_effectiveness[0].name if by_effectiveness else 'None',
            'newPlays': sum(1 for r in week_records if week_start <= to_utc(r.createdAt) <= week_end),
        })

    weeks.reverse()
    return weeks


def summarize(records: List[PlayRecord], now: Optional[datetime] = None) -> AnalyticsSummary:
    """
    Calculate all analytics for a list of records.

    Args:
        records: Play records (may be empty)
        now: Reference time for recent activity, defaults to the current time

    Returns:
        AnalyticsSummary with all calculated metrics
    """
    return AnalyticsSummary(records, now=now)
