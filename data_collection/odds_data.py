#!/usr/bin/env python3
"""
Fixture Odds Parsing

This module provides:
- FixtureOdds: one fixture with the home/draw/away prices used by the
  prediction core, parsed from a The Odds API event
- calculate_best_value: best price per outcome across bookmakers
- generate_match_id: standardized YYYYMMDD_HOME_AWAY identifiers

Event format (The Odds API v4, oddsFormat=decimal):
{
    "id": "...",
    "sport_key": "soccer_epl",
    "commence_time": "ISO8601 datetime",
    "home_team": "...",
    "away_team": "...",
    "bookmakers": [{"key": "...", "markets": [{"key": "h2h", "outcomes": [...]}]}]
}
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from analysis.odds_analyzer import InvalidOddsError, OddsTriple

logger = logging.getLogger(__name__)

H2H_MARKETS = ("home_win", "draw", "away_win")
BOOKMAKER_STRATEGIES = ("first", "best")

# Team abbreviation mapping for match IDs
TEAM_ABBREV = {
    "arsenal": "ARS", "chelsea": "CHE", "liverpool": "LIV",
    "manchester city": "MCI", "manchester united": "MUN",
    "tottenham": "TOT", "aston villa": "AVL", "newcastle": "NEW",
    "brighton": "BHA", "brighton & hove albion": "BHA",
    "brighton and hove albion": "BHA", "west ham": "WHU",
    "bournemouth": "BOU", "crystal palace": "CRY", "fulham": "FUL",
    "brentford": "BRE", "everton": "EVE", "nottingham forest": "NFO",
    "wolves": "WOL", "wolverhampton": "WOL", "wolverhampton wanderers": "WOL",
    "ipswich": "IPS", "leicester": "LEI", "southampton": "SOU",
    "burnley": "BUR", "sunderland": "SUN", "leeds": "LEE",
}


def generate_match_id(match_date: str, home_team: str, away_team: str) -> str:
    """
    Generate a standardized match ID.

    Args:
        match_date: ISO format date string
        home_team: Home team name
        away_team: Away team name

    Returns:
        Match ID string (format: YYYYMMDD_HOME_AWAY)
    """
    dt = datetime.fromisoformat(match_date.replace('Z', '+00:00'))
    date_str = dt.strftime('%Y%m%d')

    def get_abbrev(name: str) -> str:
        name_lower = name.lower().strip()
        if name_lower in TEAM_ABBREV:
            return TEAM_ABBREV[name_lower]
        name_lower = re.sub(r'\s+(fc|afc|cf|town|city|united|hotspur)$', '', name_lower)
        return TEAM_ABBREV.get(name_lower.strip(), name[:3].upper())

    return f"{date_str}_{get_abbrev(home_team)}_{get_abbrev(away_team)}"


def _bookmaker_prices(bookmaker: Dict[str, Any], home_team: str, away_team: str) -> Dict[str, Any]:
    """Extract 1X2 and Over 2.5 prices from one bookmaker entry."""
    prices: Dict[str, Any] = {
        "bookmaker": bookmaker.get("key", bookmaker.get("title", "unknown"))
    }

    for market in bookmaker.get("markets", []):
        market_key = market.get("key")
        outcomes = market.get("outcomes", [])

        if market_key == "h2h":
            for outcome in outcomes:
                name = outcome.get("name", "")
                price = outcome.get("price")
                if name.lower() == "draw":
                    prices["draw"] = price
                elif name == home_team:
                    prices["home_win"] = price
                elif name == away_team:
                    prices["away_win"] = price

        elif market_key == "totals":
            for outcome in outcomes:
                # Only the Over side of the 2.5 goals line is used
                if outcome.get("point") == 2.5 and outcome.get("name", "").lower() == "over":
                    prices["over_2_5"] = outcome.get("price")

    return prices


def calculate_best_value(bookmaker_odds: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """
    Calculate best odds across all bookmakers for each market.

    Args:
        bookmaker_odds: List of bookmaker price dictionaries

    Returns:
        Dictionary of best value by market, e.g.
        {"home_win": {"bookmaker": "bet365", "odds": 2.1}, ...}
    """
    best: Dict[str, Dict[str, Any]] = {}

    for bm in bookmaker_odds:
        bookmaker = bm.get('bookmaker', '')
        for market in H2H_MARKETS + ('over_2_5',):
            odds = bm.get(market)
            if odds is None:
                continue
            if market not in best or odds > best[market]['odds']:
                best[market] = {'bookmaker': bookmaker, 'odds': odds}

    return best


@dataclass(frozen=True)
class FixtureOdds:
    """One fixture with the prices the prediction core needs."""
    event_id: str
    sport_key: str
    home_team: str
    away_team: str
    commence_time: str
    odds: OddsTriple
    bookmaker: str = ""
    over_2_5: Optional[float] = None

    @property
    def match_id(self) -> str:
        try:
            return generate_match_id(self.commence_time, self.home_team, self.away_team)
        except ValueError:
            return f"{self.home_team[:3].upper()}_{self.away_team[:3].upper()}"

    @classmethod
    def from_api_event(
        cls,
        event: Dict[str, Any],
        bookmaker_strategy: str = "first",
    ) -> 'FixtureOdds':
        """
        Parse a The Odds API event.

        Args:
            event: Event dictionary from /sports/{sport}/odds
            bookmaker_strategy: "first" uses the first bookmaker quoting all
                three outcomes; "best" takes the best price per outcome
                across every complete bookmaker

        Returns:
            FixtureOdds instance

        Raises:
            InvalidOddsError: If no bookmaker quotes home, draw and away
        """
        if bookmaker_strategy not in BOOKMAKER_STRATEGIES:
            raise ValueError(f"Unknown bookmaker strategy: {bookmaker_strategy}")

        home_team = event.get("home_team", "")
        away_team = event.get("away_team", "")

        complete = []
        for bookmaker in event.get("bookmakers", []):
            prices = _bookmaker_prices(bookmaker, home_team, away_team)
            if all(prices.get(k) is not None for k in H2H_MARKETS):
                complete.append(prices)

        if not complete:
            raise InvalidOddsError(
                f"No complete h2h market for {home_team or '?'} vs {away_team or '?'}"
            )

        if bookmaker_strategy == "first":
            chosen = complete[0]
            triple = OddsTriple(chosen["home_win"], chosen["draw"], chosen["away_win"])
            bookmaker = chosen["bookmaker"]
            over_2_5 = chosen.get("over_2_5")
        else:
            best = calculate_best_value(complete)
            triple = OddsTriple(
                best["home_win"]["odds"], best["draw"]["odds"], best["away_win"]["odds"]
            )
            bookmaker = "best"
            over_2_5 = best.get("over_2_5", {}).get("odds")

        return cls(
            event_id=event.get("id", ""),
            sport_key=event.get("sport_key", ""),
            home_team=home_team,
            away_team=away_team,
            commence_time=event.get("commence_time", ""),
            odds=triple,
            bookmaker=bookmaker,
            over_2_5=over_2_5,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "match_id": self.match_id,
            "event_id": self.event_id,
            "sport_key": self.sport_key,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "commence_time": self.commence_time,
            "odds": self.odds.to_dict(),
            "bookmaker": self.bookmaker,
        }
        if self.over_2_5 is not None:
            result["over_2_5"] = self.over_2_5
        return result
