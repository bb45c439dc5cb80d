import unittest
from datetime import datetime, timedelta, timezone

from playbook.export.analytics import (
    summarize, calculate_effectiveness_distribution, calculate_monthly_trends,
    calculate_monthly_activity, calculate_weekly_usage, calculate_formation_analysis,
)

from factories import make_record


NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestAnalyticsSummary(unittest.TestCase):
    def test_category_breakdown(self):
        records = [
            make_record("Cycle Low", "offensive", 80),
            make_record("Net Drive", "offensive", 60),
            make_record("Box Collapse", "defensive", 40),
        ]
        summary = summarize(records, now=NOW)

        self.assertEqual(summary.categoryBreakdown['offensive']['count'], 2)
        self.assertAlmostEqual(summary.categoryBreakdown['offensive']['avgEffectiveness'], 70)
        self.assertEqual(summary.categoryBreakdown['defensive']['count'], 1)
        self.assertAlmostEqual(summary.categoryBreakdown['defensive']['avgEffectiveness'], 40)
        self.assertEqual(summary.mostUsedCategory, 'offensive')
        self.assertEqual(summary.categoryBreakdown['offensive']['mostEffectivePlay'], 'Cycle Low')
        self.assertAlmostEqual(summary.category_share('offensive'), 200 / 3)

    def test_empty_records(self):
        summary = summarize([], now=NOW)
        self.assertEqual(summary.totalPlays, 0)
        self.assertEqual(summary.avgEffectiveness, 0)
        self.assertEqual(summary.avgSuccessRate, 0)
        self.assertEqual(summary.avgVariationsPerPlay, 0)
        self.assertEqual(summary.mostUsedCategory, 'None')
        self.assertEqual(summary.mostCommonFormation, 'None')
        self.assertEqual(summary.mostTaggedPlay, 'None')
        self.assertEqual(summary.monthlyTrends, [])
        for bucket in summary.effectivenessDistribution:
            self.assertEqual(bucket['count'], 0)
            self.assertEqual(bucket['percentage'], 0)

    def test_absent_values_count_as_zero(self):
        records = [make_record("A", effectiveness=90), make_record("B", effectiveness=None)]
        summary = summarize(records, now=NOW)
        self.assertAlmostEqual(summary.avgEffectiveness, 45)

    def test_first_wins_on_ties(self):
        records = [
            make_record("First", "defensive", 70),
            make_record("Second", "defensive", 70),
            make_record("Third", "offensive", 50),
        ]
        summary = summarize(records, now=NOW)
        self.assertEqual(summary.categoryBreakdown['defensive']['mostEffectivePlay'], 'First')

        # Two categories with equal counts: the first seen wins
        records = [make_record("A", "transition"), make_record("B", "faceoff")]
        self.assertEqual(summarize(records, now=NOW).mostUsedCategory, 'transition')

    def test_most_common_formation_first_wins(self):
        records = [
            make_record("A", formation="1-2-2"),
            make_record("B", formation="2-1-2"),
            make_record("C", formation="2-1-2"),
            make_record("D", formation="1-2-2"),
        ]
        self.assertEqual(summarize(records, now=NOW).mostCommonFormation, '1-2-2')

    def test_most_tagged_play_keeps_input_order_on_ties(self):
        records = [
            make_record("Few", tags=["a"]),
            make_record("Many", tags=["a", "b", "c"]),
            make_record("Also Many", tags=["x", "y", "z"]),
        ]
        self.assertEqual(summarize(records, now=NOW).mostTaggedPlay, 'Many')

    def test_variations_and_recent_activity(self):
        records = [
            make_record("A", variations=[{'id': 'v1', 'name': 'Wide'}, {'id': 'v2', 'name': 'Tight'}],
                        updatedAt=NOW - timedelta(days=2)),
            make_record("B", updatedAt=NOW - timedelta(days=30)),
        ]
        summary = summarize(records, now=NOW)
        self.assertEqual(summary.totalVariations, 2)
        self.assertEqual(summary.playsWithVariations, 1)
        self.assertAlmostEqual(summary.avgVariationsPerPlay, 1)
        self.assertEqual(summary.recentActivity, 1)

    def test_to_dict_has_every_metric(self):
        data = summarize([make_record("A", effectiveness=50)], now=NOW).to_dict()
        for key in ('totalPlays', 'avgEffectiveness', 'categoryBreakdown', 'effectivenessDistribution',
                    'monthlyTrends', 'formationAnalysis', 'mostTaggedPlay'):
            self.assertIn(key, data)


class TestDistribution(unittest.TestCase):
    def test_boundary_value_counts_in_both_buckets(self):
        distribution = calculate_effectiveness_distribution([make_record("Edge", effectiveness=20)])
        counts = [bucket['count'] for bucket in distribution]
        self.assertEqual(counts, [1, 1, 0, 0, 0])
        self.assertEqual(distribution[0]['label'], '0-20%')
        self.assertEqual(distribution[1]['categories'], ['offensive'])

    def test_same_policy_in_summary(self):
        records = [make_record("Edge", effectiveness=20), make_record("Top", effectiveness=100)]
        summary = summarize(records, now=NOW)
        self.assertEqual(summary.effectivenessDistribution, calculate_effectiveness_distribution(records))
        self.assertEqual(summary.effectivenessDistribution[4]['count'], 1)
        self.assertAlmostEqual(summary.effectivenessDistribution[4]['percentage'], 50)


class TestTrends(unittest.TestCase):
    def test_monthly_improvement_rate(self):
        records = [
            make_record("Jan", effectiveness=50, createdAt=datetime(2025, 1, 10, tzinfo=timezone.utc)),
            make_record("Feb", effectiveness=75, createdAt=datetime(2025, 2, 10, tzinfo=timezone.utc)),
        ]
        trends = calculate_monthly_trends(records)
        self.assertEqual([t['period'] for t in trends], ['2025-01', '2025-02'])
        self.assertEqual(trends[0]['improvementRate'], 0)
        self.assertAlmostEqual(trends[1]['improvementRate'], 50)

    def test_improvement_rate_zero_after_zero_average(self):
        records = [
            make_record("Jan", effectiveness=0, createdAt=datetime(2025, 1, 10, tzinfo=timezone.utc)),
            make_record("Feb", effectiveness=75, createdAt=datetime(2025, 2, 10, tzinfo=timezone.utc)),
        ]
        self.assertEqual(calculate_monthly_trends(records)[1]['improvementRate'], 0)

    def test_monthly_activity_counts_updates_in_later_month(self):
        records = [
            make_record("A", formation="1-2-2",
                        createdAt=datetime(2025, 1, 10, tzinfo=timezone.utc),
                        updatedAt=datetime(2025, 2, 3, tzinfo=timezone.utc)),
        ]
        activity = calculate_monthly_activity(records)
        self.assertEqual([a['month'] for a in activity], ['2025-01', '2025-02'])
        self.assertEqual(activity[0]['playsCreated'], 1)
        self.assertEqual(activity[0]['newFormations'], 1)
        self.assertEqual(activity[1]['playsUpdated'], 1)

    def test_weekly_usage_window(self):
        records = [make_record("Recent", usageFrequency=4, updatedAt=NOW + timedelta(days=1))]
        weeks = calculate_weekly_usage(records, now=NOW)
        self.assertEqual(len(weeks), 12)
        self.assertEqual(weeks[-1]['weekOf'], '2025-03-01')
        self.assertEqual(weeks[-1]['totalUsage'], 4)
        self.assertEqual(weeks[-1]['mostUsedPlay'], 'Recent')
        self.assertEqual(weeks[0]['mostUsedPlay'], 'None')

    def test_formation_analysis(self):
        records = [
            make_record("A", "offensive", 80, formation="2-1-2", successRate=60),
            make_record("B", "defensive", 40, formation="2-1-2", successRate=20),
            make_record("C", "offensive", 10),
        ]
        analysis = calculate_formation_analysis(records)
        self.assertEqual(len(analysis), 1)
        self.assertEqual(analysis[0]['count'], 2)
        self.assertAlmostEqual(analysis[0]['avgEffectiveness'], 60)
        self.assertAlmostEqual(analysis[0]['avgSuccessRate'], 40)
        self.assertEqual(analysis[0]['bestCategory'], 'offensive')


if __name__ == '__main__':
    unittest.main()
