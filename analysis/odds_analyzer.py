#!/usr/bin/env python3
"""
Odds Analyzer Module for the Fixture Predictor.

This module provides functionality to:
- Convert decimal odds to implied probabilities
- Measure and remove bookmaker overround (margin)
- Normalize a home/draw/away odds triple into integer percentages
- Price double chance selections from two decimal odds
"""

from dataclasses import dataclass
from typing import Dict, List, Optional
import logging
import math

logger = logging.getLogger(__name__)


# ==========================================================================
# EXCEPTIONS
# ==========================================================================

class PredictionError(ValueError):
    """Base class for per-fixture errors raised by the prediction core."""
    pass


class InvalidOddsError(PredictionError):
    """Raised when a decimal price is missing, non-numeric or not above 1.0."""
    pass


class InvalidFixtureError(PredictionError):
    """Raised when a fixture is missing a team name."""
    pass


# ==========================================================================
# DATA CLASSES
# ==========================================================================

@dataclass(frozen=True)
class OddsTriple:
    """Decimal odds for the three outcomes of a head-to-head market."""
    home: float
    draw: float
    away: float

    def to_dict(self) -> Dict[str, float]:
        return {"home": self.home, "draw": self.draw, "away": self.away}


@dataclass(frozen=True)
class ProbabilityTriple:
    """
    Normalized outcome probabilities as integer percentages.

    Each field is rounded on its own, so ``total`` can drift one or two
    points away from 100.
    """
    home: int
    draw: int
    away: int

    @property
    def total(self) -> int:
        return self.home + self.draw + self.away

    @property
    def gap(self) -> int:
        """Absolute difference between the home and away percentages."""
        return abs(self.home - self.away)

    def to_dict(self) -> Dict[str, int]:
        return {"home": self.home, "draw": self.draw, "away": self.away}


# ==========================================================================
# STANDALONE FUNCTIONS
# ==========================================================================

def _validate_odd(name: str, odd: Optional[float]) -> float:
    if odd is None:
        raise InvalidOddsError(f"Missing {name} price")
    if isinstance(odd, bool):
        raise InvalidOddsError(f"{name} price must be numeric, got {odd!r}")
    try:
        value = float(odd)
    except (TypeError, ValueError):
        raise InvalidOddsError(f"{name} price must be numeric, got {odd!r}")
    if math.isnan(value) or value <= 1.0:
        raise InvalidOddsError(f"Decimal odds must be greater than 1.0, got {name}={odd}")
    return value


def decimal_to_probability(odds: float) -> float:
    """
    Convert decimal odds to implied probability.

    Args:
        odds: Decimal odds (must be > 1.0)

    Returns:
        Implied probability as a float between 0 and 1

    Raises:
        InvalidOddsError: If odds are missing or not greater than 1.0

    Example:
        >>> decimal_to_probability(2.0)
        0.5
    """
    return 1.0 / _validate_odd("decimal", odds)


def remove_overround(probabilities: List[float]) -> List[float]:
    """
    Scale implied probabilities so they sum to 1.

    Args:
        probabilities: Implied probabilities (each between 0 and 1)

    Returns:
        Probabilities divided by their sum (the bookmaker margin)

    Raises:
        ValueError: If the list is empty or holds values outside [0, 1]
    """
    if not probabilities:
        raise ValueError("Probabilities list cannot be empty")

    for p in probabilities:
        if not 0 <= p <= 1:
            raise ValueError(f"Each probability must be between 0 and 1, got {p}")

    total = sum(probabilities)
    if total == 0:
        raise ValueError("Sum of probabilities cannot be zero")

    return [p / total for p in probabilities]


def calculate_overround(odds: OddsTriple) -> float:
    """
    Bookmaker margin for a 1X2 market, as a percentage (e.g. 105.2).

    Example:
        >>> round(calculate_overround(OddsTriple(2.0, 3.0, 4.0)), 2)
        108.33
    """
    return sum(decimal_to_probability(o) for o in (odds.home, odds.draw, odds.away)) * 100


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up."""
    return int(math.floor(value + 0.5))


def normalize(odds: OddsTriple) -> ProbabilityTriple:
    """
    Convert a home/draw/away odds triple into normalized percentages.

    Implied probabilities (1 / odd) are divided by the margin, then each
    one is rounded to a whole percentage independently. No remainder is
    redistributed.

    Args:
        odds: Decimal odds for the three outcomes

    Returns:
        ProbabilityTriple with integer percentages

    Raises:
        InvalidOddsError: If any price is missing or not greater than 1.0

    Example:
        >>> normalize(OddsTriple(home=2.0, draw=3.0, away=4.0))
        ProbabilityTriple(home=46, draw=31, away=23)
    """
    if odds is None:
        raise InvalidOddsError("Missing odds triple")

    implied = [
        1.0 / _validate_odd("home", odds.home),
        1.0 / _validate_odd("draw", odds.draw),
        1.0 / _validate_odd("away", odds.away),
    ]
    home, draw, away = remove_overround(implied)

    result = ProbabilityTriple(
        home=round_half_up(home * 100),
        draw=round_half_up(draw * 100),
        away=round_half_up(away * 100),
    )
    logger.debug(
        f"Normalized {odds.home}/{odds.draw}/{odds.away} -> "
        f"{result.home}/{result.draw}/{result.away} (margin {sum(implied):.4f})"
    )
    return result


def double_chance_odds(side_odd: float, draw_odd: float) -> float:
    """
    Combined decimal price for a double chance selection.

    Formula: 1 / (1/side + 1/draw)

    Example:
        >>> round(double_chance_odds(2.5, 3.2), 3)
        1.404
    """
    side = _validate_odd("side", side_odd)
    draw = _validate_odd("draw", draw_odd)
    return 1.0 / (1.0 / side + 1.0 / draw)


def format_fractional(decimal_odds: float) -> str:
    """Render decimal odds the way accumulators are quoted, e.g. ``4.5/1 (5.50)``."""
    return f"{decimal_odds - 1:.1f}/1 ({decimal_odds:.2f})"
