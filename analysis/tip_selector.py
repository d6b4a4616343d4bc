#!/usr/bin/env python3
"""
Tip Selector for the Fixture Predictor.

Chooses a single match-result tip from normalized probabilities. Outcomes
are checked in the order home, away, draw, so a tie at the top goes to the
home side. When no side is convincing, the tip falls back to a double
chance on the stronger team.
"""

from dataclasses import dataclass
from typing import Any, Dict
import logging

from .odds_analyzer import (
    InvalidFixtureError,
    OddsTriple,
    ProbabilityTriple,
    double_chance_odds,
)

logger = logging.getLogger(__name__)

# Minimum percentage for a straight win tip
MIN_WIN_PROBABILITY = 45
MAX_CONFIDENCE = 100


@dataclass(frozen=True)
class Tip:
    """A single selection with its confidence (0-100) and decimal price."""
    label: str
    confidence: int
    reference_odd: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "confidence": self.confidence,
            "reference_odd": round(self.reference_odd, 2),
        }


def _check_team_names(home_team: str, away_team: str) -> None:
    if not home_team or not str(home_team).strip():
        raise InvalidFixtureError("Home team name is empty")
    if not away_team or not str(away_team).strip():
        raise InvalidFixtureError("Away team name is empty")


def select_tip(
    probs: ProbabilityTriple,
    home_team: str,
    away_team: str,
    odds: OddsTriple,
    min_win_probability: int = MIN_WIN_PROBABILITY,
) -> Tip:
    """
    Select the match-result tip for a fixture.

    Args:
        probs: Normalized outcome percentages
        home_team: Home team display name
        away_team: Away team display name
        odds: Decimal odds used as the tip's reference price
        min_win_probability: Percentage a side needs for a straight win tip

    Returns:
        Tip with label, confidence and reference odd

    Raises:
        InvalidFixtureError: If either team name is empty
    """
    _check_team_names(home_team, away_team)

    home_is_top = probs.home >= probs.away and probs.home >= probs.draw
    away_is_top = probs.away > probs.home and probs.away >= probs.draw

    if home_is_top and probs.home >= min_win_probability:
        return Tip(f"{home_team} Win", probs.home, odds.home)

    if away_is_top and probs.away >= min_win_probability:
        return Tip(f"{away_team} Win", probs.away, odds.away)

    if probs.draw > probs.home and probs.draw > probs.away:
        return Tip("Draw", probs.draw, odds.draw)

    # Double chance on the stronger side
    if probs.home >= probs.away:
        team, side_prob, side_odd = home_team, probs.home, odds.home
    else:
        team, side_prob, side_odd = away_team, probs.away, odds.away

    confidence = min(MAX_CONFIDENCE, side_prob + probs.draw)
    logger.debug(f"No clear favourite in {home_team} vs {away_team}, using double chance on {team}")
    return Tip(
        f"{team} or Draw",
        confidence,
        double_chance_odds(side_odd, odds.draw),
    )
