#!/usr/bin/env python3
"""
Per-fixture prediction pipeline.

Runs one fixture through normalize -> select_tip -> resolve stats mode ->
synthesize, and batches fixtures so that a bad fixture is dropped instead
of failing the whole fetch cycle.

A fixture is any object with ``home_team``, ``away_team``, ``odds``
(OddsTriple) and ``sport_key`` attributes, such as
``data_collection.odds_data.FixtureOdds``. A stats provider is any object
with ``resolve_mode(home_team, away_team, league)``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import logging

import numpy as np

from .match_stats import MatchStatistics, SimulatedStats, StatsMode, synthesize
from .odds_analyzer import PredictionError, ProbabilityTriple, normalize
from .tip_selector import Tip, select_tip

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchPrediction:
    """Everything derived for one fixture in one fetch cycle."""
    fixture: Any
    probabilities: ProbabilityTriple
    tip: Tip
    statistics: MatchStatistics

    @property
    def home_team(self) -> str:
        return self.fixture.home_team

    @property
    def away_team(self) -> str:
        return self.fixture.away_team

    def to_dict(self) -> Dict[str, Any]:
        fixture = self.fixture.to_dict() if hasattr(self.fixture, "to_dict") else {
            "home_team": self.home_team,
            "away_team": self.away_team,
        }
        return {
            "fixture": fixture,
            "result": {
                **self.probabilities.to_dict(),
                "tip": self.tip.label,
                "confidence": self.tip.confidence,
                "reference_odd": round(self.tip.reference_odd, 2),
            },
            **self.statistics.to_dict(),
        }


@dataclass
class PredictionBatch:
    """Predictions for a fetch cycle plus the fixtures that were dropped."""
    predictions: List[MatchPrediction] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.predictions


def _resolve_mode(fixture: Any, stats_provider: Optional[Any]) -> StatsMode:
    if stats_provider is None:
        return SimulatedStats()
    return stats_provider.resolve_mode(
        fixture.home_team,
        fixture.away_team,
        getattr(fixture, "sport_key", None),
    )


def predict_fixture(
    fixture: Any,
    stats_provider: Optional[Any] = None,
    rng: Optional[np.random.Generator] = None,
) -> MatchPrediction:
    """
    Build the prediction for a single fixture.

    Raises:
        InvalidOddsError: If the fixture's prices are unusable
        InvalidFixtureError: If a team name is missing
    """
    probs = normalize(fixture.odds)
    tip = select_tip(probs, fixture.home_team, fixture.away_team, fixture.odds)
    mode = _resolve_mode(fixture, stats_provider)
    statistics = synthesize(fixture.home_team, fixture.away_team, probs, mode, rng=rng)
    return MatchPrediction(fixture=fixture, probabilities=probs, tip=tip, statistics=statistics)


def predict_fixtures(
    fixtures: List[Any],
    stats_provider: Optional[Any] = None,
    rng: Optional[np.random.Generator] = None,
) -> PredictionBatch:
    """
    Predict every fixture, keeping input order and skipping invalid ones.

    Args:
        fixtures: Fixtures for the current fetch cycle
        stats_provider: Team statistics provider (None means simulated mode)
        rng: numpy Generator shared across the batch

    Returns:
        PredictionBatch with the predictions and (fixture, reason) pairs
        for every fixture that was dropped
    """
    rng = rng if rng is not None else np.random.default_rng()
    batch = PredictionBatch()

    for fixture in fixtures:
        name = f"{getattr(fixture, 'home_team', '?')} vs {getattr(fixture, 'away_team', '?')}"
        try:
            batch.predictions.append(predict_fixture(fixture, stats_provider, rng))
        except PredictionError as e:
            logger.warning(f"Skipping fixture {name}: {e}")
            batch.skipped.append((name, str(e)))

    logger.info(f"Predicted {len(batch.predictions)} fixtures ({len(batch.skipped)} skipped)")
    return batch
