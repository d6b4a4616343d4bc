#!/usr/bin/env python3
"""
Match Statistics Synthesizer for the Fixture Predictor.

Produces expected goals, corners, shots, shots on target and fouls for a
fixture. Two modes are supported:

- RealStats: per-team home/away averages from the statistics document,
  each scaled by an independent random factor within +/-15%.
- SimulatedStats: no averages available. Shots and corners are drawn
  from integer ranges chosen by how far apart the two sides' win
  probabilities are (strong favourite, moderate favourite, balanced).

Both modes use the same expected goals formula, goals label and bet
builder wording. Randomness comes from an injected numpy Generator so
callers can seed it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union
import logging

import numpy as np

from .odds_analyzer import ProbabilityTriple, round_half_up

logger = logging.getLogger(__name__)


# ==========================================================================
# CONSTANTS
# ==========================================================================

JITTER = 0.15                       # +/- fraction applied to real averages
FOULS_RANGE = (18, 26)              # fouls estimate ignores team averages
SOT_CONVERSION_RANGE = (35, 45)     # percent of shots that hit the target

HOME_SOT_GOAL_WEIGHT = 0.30
AWAY_SOT_GOAL_WEIGHT = 0.25

OVER_GOALS_THRESHOLD = 2.6          # labelled "Over 2.5" but cut at 2.6
BET_BUILDER_GOALS_THRESHOLD = 2.2

STRONG_FAVOURITE_GAP = 25
MODERATE_FAVOURITE_GAP = 15

GOALS_CONFIDENCE_STRONG = 75
GOALS_CONFIDENCE_DEFAULT = 60

OVER_2_5_LABEL = "Over 2.5 Goals"
UNDER_2_5_LABEL = "Under 2.5 Goals"

BAND_STRONG = "strong_favourite"
BAND_MODERATE = "moderate_favourite"
BAND_BALANCED = "balanced"

# Inclusive integer ranges per band. Strong and moderate bands are keyed by
# favoured/unfavoured side; the balanced band is keyed by home/away.
SIMULATION_BANDS: Dict[str, Dict[str, Dict[str, Tuple[int, int]]]] = {
    BAND_STRONG: {
        "shots": {"favoured": (14, 20), "unfavoured": (5, 9)},
        "corners": {"favoured": (6, 10), "unfavoured": (2, 4)},
    },
    BAND_MODERATE: {
        "shots": {"favoured": (12, 16), "unfavoured": (7, 11)},
        "corners": {"favoured": (5, 8), "unfavoured": (3, 5)},
    },
    BAND_BALANCED: {
        "shots": {"home": (10, 14), "away": (9, 13)},
        "corners": {"home": (4, 6), "away": (3, 6)},
    },
}


# ==========================================================================
# DATA CLASSES
# ==========================================================================

@dataclass(frozen=True)
class TeamAverages:
    """Per-game averages for one team at one venue (home or away)."""
    shots_per_game: float
    shots_on_target_per_game: float
    corners_per_game: float
    fouls_per_game: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TeamAverages':
        return cls(
            shots_per_game=float(data["shotsPerGame"]),
            shots_on_target_per_game=float(data["shotsOnTargetPerGame"]),
            corners_per_game=float(data["cornersPerGame"]),
            fouls_per_game=float(data["foulsPerGame"]),
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "shotsPerGame": self.shots_per_game,
            "shotsOnTargetPerGame": self.shots_on_target_per_game,
            "cornersPerGame": self.corners_per_game,
            "foulsPerGame": self.fouls_per_game,
        }


@dataclass(frozen=True)
class RealStats:
    """Real averages for both sides: home team at home, away team away."""
    home: TeamAverages
    away: TeamAverages
    source: str = field(default="real", init=False)


@dataclass(frozen=True)
class SimulatedStats:
    """No averages available for this fixture."""
    source: str = field(default="simulated", init=False)


StatsMode = Union[RealStats, SimulatedStats]


@dataclass(frozen=True)
class SideCounts:
    home: int
    away: int

    def to_dict(self) -> Dict[str, int]:
        return {"home": self.home, "away": self.away}


@dataclass(frozen=True)
class CornerCounts(SideCounts):
    @property
    def total(self) -> int:
        return self.home + self.away

    def to_dict(self) -> Dict[str, int]:
        return {"home": self.home, "away": self.away, "total": self.total}


@dataclass(frozen=True)
class MatchStatistics:
    """Goals, corners, shots and fouls estimates for one fixture."""
    expected_goals: float
    goals_label: str
    goals_confidence: int
    corners: CornerCounts
    shots: SideCounts
    shots_on_target: SideCounts
    fouls: int
    bet_builder: str
    stats_source: str

    @property
    def fouls_label(self) -> str:
        return f"{self.fouls} (Avg)"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expected_goals": round(self.expected_goals, 2),
            "goals": {
                "prediction": self.goals_label,
                "confidence": self.goals_confidence,
                "value": f"{self.expected_goals:.1f}",
            },
            "corners": self.corners.to_dict(),
            "shots": self.shots.to_dict(),
            "shots_on_target": self.shots_on_target.to_dict(),
            "fouls": self.fouls_label,
            "bet_builder": self.bet_builder,
            "stats_source": self.stats_source,
        }


# ==========================================================================
# HELPERS
# ==========================================================================

def classify_band(gap: int) -> str:
    """Map a home/away probability gap to a simulation band."""
    if gap > STRONG_FAVOURITE_GAP:
        return BAND_STRONG
    if gap > MODERATE_FAVOURITE_GAP:
        return BAND_MODERATE
    return BAND_BALANCED


def _randint(rng: np.random.Generator, bounds: Tuple[int, int]) -> int:
    low, high = bounds
    return int(rng.integers(low, high, endpoint=True))


def _jitter(rng: np.random.Generator, value: float, jitter: float) -> int:
    factor = 1.0 + rng.uniform(-jitter, jitter)
    return round_half_up(value * factor)


def expected_goals(home_sot: int, away_sot: int) -> float:
    return home_sot * HOME_SOT_GOAL_WEIGHT + away_sot * AWAY_SOT_GOAL_WEIGHT


def goals_label(xg: float) -> str:
    return OVER_2_5_LABEL if xg > OVER_GOALS_THRESHOLD else UNDER_2_5_LABEL


def bet_builder(favoured_team: str, xg: float) -> str:
    goals_leg = "Over 1.5 Goals" if xg > BET_BUILDER_GOALS_THRESHOLD else "Under 3.5 Goals"
    return f"{favoured_team} to Win + {goals_leg}"


# ==========================================================================
# SYNTHESIZER
# ==========================================================================

def _from_real_stats(
    mode: RealStats,
    rng: np.random.Generator,
    jitter: float,
) -> Tuple[SideCounts, SideCounts, CornerCounts]:
    shots = SideCounts(
        home=_jitter(rng, mode.home.shots_per_game, jitter),
        away=_jitter(rng, mode.away.shots_per_game, jitter),
    )
    sot = SideCounts(
        home=_jitter(rng, mode.home.shots_on_target_per_game, jitter),
        away=_jitter(rng, mode.away.shots_on_target_per_game, jitter),
    )
    corners = CornerCounts(
        home=_jitter(rng, mode.home.corners_per_game, jitter),
        away=_jitter(rng, mode.away.corners_per_game, jitter),
    )
    return shots, sot, corners


def _simulate(
    probs: ProbabilityTriple,
    rng: np.random.Generator,
) -> Tuple[SideCounts, SideCounts, CornerCounts]:
    band = classify_band(probs.gap)
    ranges = SIMULATION_BANDS[band]

    if band == BAND_BALANCED:
        home_key, away_key = "home", "away"
    elif probs.home >= probs.away:
        home_key, away_key = "favoured", "unfavoured"
    else:
        home_key, away_key = "unfavoured", "favoured"

    shots = SideCounts(
        home=_randint(rng, ranges["shots"][home_key]),
        away=_randint(rng, ranges["shots"][away_key]),
    )
    corners = CornerCounts(
        home=_randint(rng, ranges["corners"][home_key]),
        away=_randint(rng, ranges["corners"][away_key]),
    )
    sot = SideCounts(
        home=shots.home * _randint(rng, SOT_CONVERSION_RANGE) // 100,
        away=shots.away * _randint(rng, SOT_CONVERSION_RANGE) // 100,
    )
    return shots, sot, corners


def synthesize(
    home_team: str,
    away_team: str,
    probs: ProbabilityTriple,
    mode: Optional[StatsMode] = None,
    rng: Optional[np.random.Generator] = None,
    jitter: float = JITTER,
) -> MatchStatistics:
    """
    Build goals, corners, shots and fouls estimates for a fixture.

    Args:
        home_team: Home team display name
        away_team: Away team display name
        probs: Normalized outcome percentages
        mode: RealStats or SimulatedStats (defaults to SimulatedStats)
        rng: numpy Generator used for every random draw
        jitter: Maximum relative variance applied to real averages

    Returns:
        MatchStatistics for the fixture
    """
    rng = rng if rng is not None else np.random.default_rng()
    mode = mode if mode is not None else SimulatedStats()

    if isinstance(mode, RealStats):
        shots, sot, corners = _from_real_stats(mode, rng, jitter)
    else:
        shots, sot, corners = _simulate(probs, rng)

    fouls = _randint(rng, FOULS_RANGE)
    xg = expected_goals(sot.home, sot.away)
    favoured = home_team if probs.home >= probs.away else away_team

    return MatchStatistics(
        expected_goals=xg,
        goals_label=goals_label(xg),
        goals_confidence=(
            GOALS_CONFIDENCE_STRONG if probs.gap > STRONG_FAVOURITE_GAP
            else GOALS_CONFIDENCE_DEFAULT
        ),
        corners=corners,
        shots=shots,
        shots_on_target=sot,
        fouls=fouls,
        bet_builder=bet_builder(favoured, xg),
        stats_source=mode.source,
    )
