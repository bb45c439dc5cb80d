"""
Built-in export presets.

Each preset is a named set of configuration values that is applied on top of
the ReportConfig defaults.
"""

from copy import deepcopy
from typing import Any, Dict, List

from .types import ReportConfig


TEMPLATE_PRESETS: List[Dict[str, Any]] = [
    {
        'id': 'practice-plan-basic',
        'name': 'Basic Practice Plan',
        'description': 'Simple practice plan with plays and drills',
        'category': 'practice',
        'tags': ['practice', 'basic', 'coaching', 'drills'],
        'options': {
            'format': 'pdf',
            'template': 'practice-plan',
            'pageSize': 'A4',
            'orientation': 'portrait',
            'includeMetadata': True,
            'includeNotes': True,
            'includePlayerInstructions': True,
            'includeDiagrams': True,
            'coverPage': True,
            'tableOfContents': False,
            'pageNumbers': True,
        },
    },
    {
        'id': 'practice-plan-advanced',
        'name': 'Advanced Practice Plan',
        'description': 'Comprehensive practice plan with analytics and performance tracking',
        'category': 'practice',
        'tags': ['practice', 'advanced', 'analytics', 'tracking'],
        'options': {
            'format': 'pdf',
            'template': 'practice-plan',
            'pageSize': 'A4',
            'orientation': 'portrait',
            'includeMetadata': True,
            'includeNotes': True,
            'includeStatistics': True,
            'includePlayerInstructions': True,
            'includeAnalytics': True,
            'includeDiagrams': True,
            'coverPage': True,
            'tableOfContents': True,
            'pageNumbers': True,
            'sectionDividers': True,
            'customSections': [
                {'id': 'warmup', 'title': 'Warm-up Protocol',
                 'content': 'Dynamic stretching and basic skating drills', 'position': 'before-plays'},
                {'id': 'cooldown', 'title': 'Cool-down Activities',
                 'content': 'Recovery stretches and team discussion', 'position': 'after-plays'},
            ],
        },
    },
    {
        'id': 'game-analysis-summary',
        'name': 'Game Analysis Summary',
        'description': 'Post-game analysis with key plays and statistics',
        'category': 'game-analysis',
        'tags': ['game', 'analysis', 'statistics', 'video'],
        'options': {
            'format': 'pdf',
            'template': 'game-analysis',
            'pageSize': 'A4',
            'orientation': 'landscape',
            'includeMetadata': True,
            'includeNotes': True,
            'includeStatistics': True,
            'includeAnalytics': True,
            'includeDiagrams': True,
            'includeVideoScreenshots': True,
            'coverPage': True,
            'tableOfContents': False,
            'pageNumbers': True,
            'customSections': [
                {'id': 'game-overview', 'title': 'Game Overview',
                 'content': 'Score, key moments, and overall performance', 'position': 'before-plays'},
                {'id': 'improvement-areas', 'title': 'Areas for Improvement',
                 'content': 'Tactical adjustments and focus areas for next practice', 'position': 'after-plays'},
            ],
        },
    },
    {
        'id': 'scouting-report',
        'name': 'Opposition Scouting Report',
        'description': 'Detailed scouting report for upcoming opponents',
        'category': 'scouting',
        'tags': ['scouting', 'analysis', 'opposition', 'tactics'],
        'options': {
            'format': 'pdf',
            'template': 'custom',
            'pageSize': 'A4',
            'orientation': 'portrait',
            'includeMetadata': True,
            'includeNotes': True,
            'includeStatistics': True,
            'includeAnalytics': True,
            'includeDiagrams': True,
            'coverPage': True,
            'tableOfContents': True,
            'pageNumbers': True,
            'watermark': 'CONFIDENTIAL',
        },
    },
    {
        'id': 'player-development-plan',
        'name': 'Individual Development Plan',
        'description': 'Personalized development plan for individual players',
        'category': 'player-development',
        'tags': ['development', 'individual', 'goals', 'progress'],
        'options': {
            'format': 'pdf',
            'template': 'player-development',
            'pageSize': 'A4',
            'orientation': 'portrait',
            'includeMetadata': True,
            'includeNotes': True,
            'includeStatistics': True,
            'includePlayerInstructions': True,
            'includeAnalytics': True,
            'includeDiagrams': True,
            'coverPage': True,
            'tableOfContents': False,
            'pageNumbers': True,
            'customSections': [
                {'id': 'goals', 'title': 'Development Goals',
                 'content': 'Short-term and long-term objectives', 'position': 'before-plays'},
                {'id': 'timeline', 'title': 'Development Timeline',
                 'content': 'Milestone tracking and progress indicators', 'position': 'after-plays'},
            ],
        },
    },
    {
        'id': 'team-skills-assessment',
        'name': 'Team Skills Assessment',
        'description': 'Skills evaluation workbook for the entire team',
        'category': 'player-development',
        'tags': ['assessment', 'skills', 'team', 'evaluation'],
        'options': {
            'format': 'xlsx',
            'includeStatistics': True,
            'includeAnalytics': True,
            'multipleSheets': True,
            'customSheets': [
                {'name': 'Skating Skills',
                 'headers': ['Player', 'Speed', 'Agility', 'Backwards', 'Stopping', 'Overall'],
                 'chartType': 'bar'},
                {'name': 'Stick Skills',
                 'headers': ['Player', 'Shooting', 'Passing', 'Stickhandling', 'Receiving', 'Overall'],
                 'chartType': 'line'},
            ],
        },
    },
    {
        'id': 'playbook-complete',
        'name': 'Complete Team Playbook',
        'description': 'Comprehensive playbook with all team plays and strategies',
        'category': 'team-management',
        'tags': ['playbook', 'complete', 'strategies', 'comprehensive'],
        'options': {
            'format': 'pdf',
            'template': 'playbook',
            'pageSize': 'A4',
            'orientation': 'landscape',
            'includeMetadata': True,
            'includeNotes': True,
            'includeStatistics': True,
            'includePlayerInstructions': True,
            'includeAnalytics': True,
            'includeDiagrams': True,
            'coverPage': True,
            'tableOfContents': True,
            'playIndex': True,
            'pageNumbers': True,
            'sectionDividers': True,
            'compression': True,
        },
    },
    {
        'id': 'seasonal-plan',
        'name': 'Season Planning Guide',
        'description': 'Long-term seasonal planning with periodization',
        'category': 'team-management',
        'tags': ['planning', 'season', 'periodization', 'goals'],
        'options': {
            'format': 'pdf',
            'template': 'custom',
            'pageSize': 'A3',
            'orientation': 'landscape',
            'includeMetadata': True,
            'includeNotes': True,
            'includeAnalytics': True,
            'coverPage': True,
            'tableOfContents': True,
            'pageNumbers': True,
            'customSections': [
                {'id': 'preseason', 'title': 'Pre-season Preparation',
                 'content': 'Conditioning, skill development, and team building', 'position': 'before-plays'},
                {'id': 'regular-season', 'title': 'Regular Season Focus',
                 'content': 'Game strategies, tactical development, and maintenance', 'position': 'before-plays'},
                {'id': 'playoffs', 'title': 'Playoff Preparation',
                 'content': 'Peak performance and tournament strategies', 'position': 'after-plays'},
            ],
        },
    },
    {
        'id': 'plays-workbook',
        'name': 'Plays Workbook',
        'description': 'All plays with statistics, player data and trends in one workbook',
        'category': 'reports',
        'tags': ['excel', 'data', 'statistics'],
        'options': {
            'format': 'xlsx',
            'multipleSheets': True,
            'includeStatistics': True,
            'includeAnalytics': True,
            'includePlayerData': True,
        },
    },
]


def get_preset(preset_id: str) -> Dict[str, Any]:
    """
    Look up a preset by id.

    Raises:
        KeyError: If no preset has the id
    """
    for preset in TEMPLATE_PRESETS:
        if preset['id'] == preset_id:
            return deepcopy(preset)
    raise KeyError(f"Unknown export preset: {preset_id}")


def build_config(preset_id: str, **overrides) -> ReportConfig:
    """
    Build a configuration from a preset.

    Args:
        preset_id: Preset id (e.g., "playbook-complete")
        **overrides: Configuration values that replace the preset's

    Returns:
        Validated ReportConfig
    """
    options = get_preset(preset_id)['options']
    options.update(overrides)
    return ReportConfig.model_validate(options)
