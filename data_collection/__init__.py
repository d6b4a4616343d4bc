"""
Fixture Predictor - Data Collection Module

This module provides tools for collecting fixture odds from The Odds API
and loading or writing the per-team statistics document.
"""

from .odds_data import FixtureOdds, calculate_best_value, generate_match_id
from .odds_fetcher import OddsFetcher, UpstreamFetchError, RateLimitExceeded
from .team_stats import (
    TeamRecord,
    TeamStatsProvider,
    UnavailableStatsProvider,
    StatisticsUnavailable,
    TEAM_NAME_ALIASES,
    load_team_stats,
    normalize_team_name,
)
from .stats_scraper import build_document, write_team_stats

__all__ = [
    'FixtureOdds',
    'calculate_best_value',
    'generate_match_id',
    'OddsFetcher',
    'UpstreamFetchError',
    'RateLimitExceeded',
    # Team statistics
    'TeamRecord',
    'TeamStatsProvider',
    'UnavailableStatsProvider',
    'StatisticsUnavailable',
    'TEAM_NAME_ALIASES',
    'load_team_stats',
    'normalize_team_name',
    'build_document',
    'write_team_stats',
]
