#!/usr/bin/env python3
"""
Bet Recommendation Composer for the Fixture Predictor.

Turns the predictions of a fetch cycle into a short list of suggested bets:
- Safest Banker: the single highest-confidence tip
- Value Acca: top tips multiplied together while the price stays under a
  target ceiling
- Goals Acca: up to three fixtures predicted to go over 2.5 goals

Recommendations are rebuilt from scratch on every fetch and never modify
the predictions they are built from.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union
import logging

from .match_stats import OVER_2_5_LABEL
from .odds_analyzer import format_fractional
from .predictor import MatchPrediction
from .tip_selector import Tip

logger = logging.getLogger(__name__)


# ==========================================================================
# ENUMS AND CONSTANTS
# ==========================================================================

class BetKind(Enum):
    """Types of recommended bet, in output order."""
    SAFEST_BANKER = "Safest Banker"
    VALUE_ACCUMULATOR = "Value Acca"
    GOALS_ACCUMULATOR = "Goals Acca"


BANKER_STAKE = 20.0
VALUE_ACCA_STAKE = 10.0
GOALS_ACCA_STAKE = 5.0

VALUE_ACCA_CEILING = 5.5        # combined price must stay below this
VALUE_ACCA_DAMPING = 0.9        # applied to the weakest leg's confidence
MIN_ACCA_LEGS = 2
MAX_GOALS_LEGS = 3
GOALS_LEG_ESTIMATED_ODD = 1.60  # used when no Over 2.5 price was quoted
GOALS_ACCA_CONFIDENCE = "Medium"

DEFAULT_CURRENCY = "£"


@dataclass
class ComposerConfig:
    """Tunable parameters for the composer."""
    banker_stake: float = BANKER_STAKE
    value_acca_stake: float = VALUE_ACCA_STAKE
    goals_acca_stake: float = GOALS_ACCA_STAKE
    value_acca_ceiling: float = VALUE_ACCA_CEILING
    value_acca_damping: float = VALUE_ACCA_DAMPING
    min_acca_legs: int = MIN_ACCA_LEGS
    max_goals_legs: int = MAX_GOALS_LEGS
    goals_leg_estimated_odd: float = GOALS_LEG_ESTIMATED_ODD
    currency: str = DEFAULT_CURRENCY


# ==========================================================================
# DATA CLASSES
# ==========================================================================

@dataclass(frozen=True)
class RecommendedBet:
    """A suggested single or accumulator with its price and projected return."""
    kind: BetKind
    legs: List[Tip]
    combined_odds: float
    combined_confidence: Union[int, str]
    stake: float
    projected_return: float
    currency: str = DEFAULT_CURRENCY

    @property
    def odds_label(self) -> str:
        if len(self.legs) > 1:
            return format_fractional(self.combined_odds)
        return f"{self.combined_odds:.2f}"

    @property
    def confidence_label(self) -> str:
        if isinstance(self.combined_confidence, int):
            return f"{self.combined_confidence}%"
        return str(self.combined_confidence)

    @property
    def stake_label(self) -> str:
        return f"{self.currency}{self.stake:.0f}"

    @property
    def return_label(self) -> str:
        return f"{self.currency}{self.projected_return:.2f}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "selections": [leg.to_dict() for leg in self.legs],
            "combined_odds": round(self.combined_odds, 2),
            "odds": self.odds_label,
            "confidence": self.combined_confidence,
            "stake": self.stake_label,
            "return": self.return_label,
        }


# ==========================================================================
# COMPOSER
# ==========================================================================

def _projected_return(stake: float, odds: float) -> float:
    return round(stake * odds, 2)


def safest_banker(
    predictions: List[MatchPrediction],
    config: ComposerConfig,
) -> Optional[RecommendedBet]:
    """Highest-confidence tip as a single. The first of any tied fixtures wins."""
    if not predictions:
        return None

    best = predictions[0]
    for prediction in predictions[1:]:
        if prediction.tip.confidence > best.tip.confidence:
            best = prediction

    odds = best.tip.reference_odd
    return RecommendedBet(
        kind=BetKind.SAFEST_BANKER,
        legs=[best.tip],
        combined_odds=odds,
        combined_confidence=best.tip.confidence,
        stake=config.banker_stake,
        projected_return=_projected_return(config.banker_stake, odds),
        currency=config.currency,
    )


def value_accumulator(
    predictions: List[MatchPrediction],
    config: ComposerConfig,
) -> Optional[RecommendedBet]:
    """
    Greedy accumulator of the most confident tips.

    Legs are taken in descending confidence (stable for ties) and added
    while the running price stays below ``value_acca_ceiling``. The first
    leg that would take it to or past the ceiling ends the accumulator.
    """
    ranked = sorted(predictions, key=lambda p: p.tip.confidence, reverse=True)

    legs: List[Tip] = []
    combined = 1.0
    for prediction in ranked:
        next_odds = combined * prediction.tip.reference_odd
        if next_odds >= config.value_acca_ceiling:
            break
        legs.append(prediction.tip)
        combined = next_odds

    if len(legs) < config.min_acca_legs:
        logger.debug(f"Value acca needs {config.min_acca_legs} legs, found {len(legs)}")
        return None

    weakest = min(leg.confidence for leg in legs)
    return RecommendedBet(
        kind=BetKind.VALUE_ACCUMULATOR,
        legs=legs,
        combined_odds=combined,
        combined_confidence=int(round(weakest * config.value_acca_damping)),
        stake=config.value_acca_stake,
        projected_return=_projected_return(config.value_acca_stake, combined),
        currency=config.currency,
    )


def goals_accumulator(
    predictions: List[MatchPrediction],
    config: ComposerConfig,
) -> Optional[RecommendedBet]:
    """Up to ``max_goals_legs`` fixtures tipped for Over 2.5 goals, in input order."""
    selected = [
        p for p in predictions if p.statistics.goals_label == OVER_2_5_LABEL
    ][:config.max_goals_legs]

    if len(selected) < config.min_acca_legs:
        return None

    legs = []
    combined = 1.0
    for prediction in selected:
        leg_odd = getattr(prediction.fixture, "over_2_5", None) or config.goals_leg_estimated_odd
        legs.append(Tip(
            label=f"Over 2.5 Goals in {prediction.home_team} vs {prediction.away_team}",
            confidence=prediction.statistics.goals_confidence,
            reference_odd=leg_odd,
        ))
        combined *= leg_odd

    return RecommendedBet(
        kind=BetKind.GOALS_ACCUMULATOR,
        legs=legs,
        combined_odds=combined,
        combined_confidence=GOALS_ACCA_CONFIDENCE,
        stake=config.goals_acca_stake,
        projected_return=_projected_return(config.goals_acca_stake, combined),
        currency=config.currency,
    )


def compose(
    predictions: List[MatchPrediction],
    config: Optional[ComposerConfig] = None,
) -> List[RecommendedBet]:
    """
    Build the recommended bets for a fetch cycle.

    Args:
        predictions: Predictions in fetch order (used for tie-breaks)
        config: Stakes, ceiling and damping (defaults to ComposerConfig())

    Returns:
        Banker first, then the accumulators that qualified. Empty when
        there are no predictions.
    """
    config = config or ComposerConfig()
    predictions = list(predictions)
    if not predictions:
        return []

    bets = []
    for builder in (safest_banker, value_accumulator, goals_accumulator):
        bet = builder(predictions, config)
        if bet is not None:
            bets.append(bet)

    logger.info(f"Composed {len(bets)} recommended bets from {len(predictions)} predictions")
    return bets
