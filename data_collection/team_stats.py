#!/usr/bin/env python3
"""
Team Statistics Source

Loads the static team statistics document and answers per-team lookups
for the match statistics synthesizer.

Document format:
{
    "lastUpdated": "ISO8601 datetime",
    "season": "2025-26",
    "dataSource": "...",
    "leagues": {
        "soccer_epl": {
            "Arsenal": {
                "home": {"shotsPerGame": 17, "shotsOnTargetPerGame": 6.5,
                         "cornersPerGame": 7, "foulsPerGame": 10},
                "away": {...}
            }
        }
    }
}

Older documents with a top-level "teams" mapping are read as the default
league. Lookups are by exact team name; bookmaker naming variants are
mapped through TEAM_NAME_ALIASES first.

A document that cannot be loaded raises StatisticsUnavailable, which the
orchestrator turns into an UnavailableStatsProvider (simulated mode for
every fixture in the cycle).
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import requests

from analysis.match_stats import RealStats, SimulatedStats, StatsMode, TeamAverages

logger = logging.getLogger(__name__)

# Default paths
BASE_DIR = Path(__file__).parent.parent
DEFAULT_STATS_PATH = BASE_DIR / "data" / "teamStats.json"

DEFAULT_LEAGUE = "soccer_epl"
DEFAULT_TIMEOUT_SECONDS = 10

# Bookmaker and short names -> names used in the statistics document
TEAM_NAME_ALIASES = {
    "Man Utd": "Manchester United",
    "Man United": "Manchester United",
    "Man City": "Manchester City",
    "Spurs": "Tottenham Hotspur",
    "Tottenham": "Tottenham Hotspur",
    "Wolves": "Wolverhampton Wanderers",
    "Newcastle": "Newcastle United",
    "West Ham": "West Ham United",
    "Brighton": "Brighton & Hove Albion",
    "Brighton and Hove Albion": "Brighton & Hove Albion",
    "Nott'm Forest": "Nottingham Forest",
    "Leicester": "Leicester City",
    "Ipswich": "Ipswich Town",
}


class StatisticsUnavailable(Exception):
    """Raised when the statistics document cannot be loaded or parsed."""
    pass


def normalize_team_name(name: str) -> str:
    """Map a known naming variant to its canonical display name."""
    name = (name or "").strip()
    return TEAM_NAME_ALIASES.get(name, name)


@dataclass(frozen=True)
class TeamRecord:
    """Home and away averages for one team."""
    home: TeamAverages
    away: TeamAverages

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TeamRecord':
        return cls(
            home=TeamAverages.from_dict(data["home"]),
            away=TeamAverages.from_dict(data["away"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"home": self.home.to_dict(), "away": self.away.to_dict()}


class UnavailableStatsProvider:
    """Provider used when no statistics document could be loaded."""

    data_source = "simulated"
    last_updated: Optional[str] = None

    def resolve_mode(self, home_team: str, away_team: str, league: Optional[str] = None) -> StatsMode:
        return SimulatedStats()


@dataclass
class TeamStatsProvider:
    """
    Read-only view over a loaded statistics document.

    Attributes:
        leagues: League key -> team name -> TeamRecord
        last_updated: ISO timestamp from the document
        season: Season label, if present
        source_description: The document's own dataSource note
    """
    leagues: Dict[str, Dict[str, TeamRecord]]
    last_updated: Optional[str] = None
    season: Optional[str] = None
    source_description: Optional[str] = None
    data_source: str = field(default="real", init=False)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> 'TeamStatsProvider':
        """
        Build a provider from a decoded statistics document.

        Raises:
            StatisticsUnavailable: If the document is not in the expected shape
        """
        if not isinstance(document, dict):
            raise StatisticsUnavailable("Statistics document must be a JSON object")

        raw_leagues = document.get("leagues")
        if raw_leagues is None and "teams" in document:
            raw_leagues = {DEFAULT_LEAGUE: document["teams"]}
        if not isinstance(raw_leagues, dict):
            raise StatisticsUnavailable("Statistics document has no 'leagues' mapping")

        leagues: Dict[str, Dict[str, TeamRecord]] = {}
        try:
            for league, teams in raw_leagues.items():
                leagues[league] = {
                    team: TeamRecord.from_dict(record) for team, record in teams.items()
                }
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise StatisticsUnavailable(f"Malformed team statistics: {e}")

        return cls(
            leagues=leagues,
            last_updated=document.get("lastUpdated"),
            season=document.get("season"),
            source_description=document.get("dataSource"),
        )

    @property
    def team_count(self) -> int:
        return sum(len(teams) for teams in self.leagues.values())

    def lookup(self, team: str, league: Optional[str] = None, venue: str = "home") -> Optional[TeamAverages]:
        """
        Exact-name lookup of a team's averages at a venue.

        Args:
            team: Canonical team display name
            league: League key; None searches every league
            venue: "home" or "away"

        Returns:
            TeamAverages, or None if the team is not in the document
        """
        if venue not in ("home", "away"):
            raise ValueError(f"venue must be 'home' or 'away', got {venue!r}")

        if league is not None:
            candidates = [self.leagues.get(league, {})]
        else:
            candidates = list(self.leagues.values())

        for teams in candidates:
            record = teams.get(team)
            if record is not None:
                return record.home if venue == "home" else record.away
        return None

    def resolve_mode(self, home_team: str, away_team: str, league: Optional[str] = None) -> StatsMode:
        """
        Pick real or simulated statistics for a fixture.

        Real mode needs both the home team's home averages and the away
        team's away averages; otherwise the fixture is simulated.
        """
        if league is not None and league not in self.leagues:
            league = None

        home = self.lookup(normalize_team_name(home_team), league, "home")
        away = self.lookup(normalize_team_name(away_team), league, "away")

        if home is None or away is None:
            missing = home_team if home is None else away_team
            logger.warning(f"No stats found for {missing}, using simulated stats")
            return SimulatedStats()

        return RealStats(home=home, away=away)


def load_team_stats(
    source: Union[str, Path, None] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> TeamStatsProvider:
    """
    Load the statistics document from a file path or an http(s) URL.

    Args:
        source: Path or URL (default: data/teamStats.json)
        timeout: HTTP timeout in seconds for URL sources

    Returns:
        TeamStatsProvider for the document

    Raises:
        StatisticsUnavailable: On any I/O, HTTP or parse failure
    """
    source = source or DEFAULT_STATS_PATH
    source_str = str(source)

    if source_str.startswith(("http://", "https://")):
        try:
            response = requests.get(source_str, timeout=timeout)
            response.raise_for_status()
            document = response.json()
        except requests.exceptions.RequestException as e:
            raise StatisticsUnavailable(f"Failed to fetch team stats from {source_str}: {e}")
        except ValueError as e:
            raise StatisticsUnavailable(f"Team stats at {source_str} are not valid JSON: {e}")
    else:
        try:
            with open(source_str, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except OSError as e:
            raise StatisticsUnavailable(f"Could not read team stats file {source_str}: {e}")
        except ValueError as e:
            raise StatisticsUnavailable(f"Team stats file {source_str} is not valid JSON: {e}")

    provider = TeamStatsProvider.from_document(document)
    logger.info(f"Loaded real team statistics ({provider.team_count} teams)")
    logger.info(f"Last updated: {provider.last_updated}")
    return provider
