"""
Analysis module for the Fixture Predictor.

This module contains the prediction core:
- Odds normalization into outcome probabilities
- Match-result tip selection with a double chance fallback
- Goals, corners, shots and fouls estimates
- Recommended bets (banker and accumulators)
"""

from .odds_analyzer import (
    PredictionError,
    InvalidOddsError,
    InvalidFixtureError,
    OddsTriple,
    ProbabilityTriple,
    decimal_to_probability,
    remove_overround,
    calculate_overround,
    normalize,
    double_chance_odds,
    format_fractional,
)

from .tip_selector import (
    Tip,
    select_tip,
    MIN_WIN_PROBABILITY,
)

from .match_stats import (
    TeamAverages,
    RealStats,
    SimulatedStats,
    StatsMode,
    MatchStatistics,
    classify_band,
    synthesize,
)

from .predictor import (
    MatchPrediction,
    PredictionBatch,
    predict_fixture,
    predict_fixtures,
)

from .bet_recommender import (
    BetKind,
    ComposerConfig,
    RecommendedBet,
    compose,
)

__all__ = [
    # Odds Analyzer
    'PredictionError',
    'InvalidOddsError',
    'InvalidFixtureError',
    'OddsTriple',
    'ProbabilityTriple',
    'decimal_to_probability',
    'remove_overround',
    'calculate_overround',
    'normalize',
    'double_chance_odds',
    'format_fractional',
    # Tip Selector
    'Tip',
    'select_tip',
    'MIN_WIN_PROBABILITY',
    # Match Statistics
    'TeamAverages',
    'RealStats',
    'SimulatedStats',
    'StatsMode',
    'MatchStatistics',
    'classify_band',
    'synthesize',
    # Predictor
    'MatchPrediction',
    'PredictionBatch',
    'predict_fixture',
    'predict_fixtures',
    # Bet Recommender
    'BetKind',
    'ComposerConfig',
    'RecommendedBet',
    'compose',
]
