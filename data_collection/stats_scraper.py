#!/usr/bin/env python3
"""
Team Statistics File Writer

Writes the static per-team statistics document read by
data_collection.team_stats. The Premier League stats page is probed first;
the curated averages below are then written either way, with dataSource
recording whether the probe succeeded.

Usage:
    python -m data_collection.stats_scraper
    python -m data_collection.stats_scraper --output public/teamStats.json
"""

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from .team_stats import DEFAULT_LEAGUE, DEFAULT_STATS_PATH, normalize_team_name

logger = logging.getLogger(__name__)

STATS_PAGE_URL = "https://www.premierleague.com/stats/top/clubs/total_scoring_att"
USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
PROBE_TIMEOUT_SECONDS = 10
SEASON = "2025-26"

SOURCE_CURATED = "Curated averages based on Premier League patterns"
SOURCE_FALLBACK = "Fallback data (scraping failed)"

# Typical Premier League per-game averages: shots, shots on target, corners, fouls
CURATED_AVERAGES = {
    'Arsenal': {'home': (17, 6.5, 7, 10), 'away': (15, 5.8, 6, 11)},
    'Liverpool': {'home': (18, 7, 7.5, 9), 'away': (16, 6.2, 6.5, 10)},
    'Man City': {'home': (19, 7.2, 8, 10), 'away': (17, 6.5, 7, 11)},
    'Chelsea': {'home': (15, 5.5, 6.5, 11), 'away': (13, 4.8, 5.5, 12)},
    'Spurs': {'home': (16, 6, 6.8, 10), 'away': (14, 5.2, 5.8, 11)},
    'Man Utd': {'home': (14, 5.2, 6, 11), 'away': (12, 4.5, 5, 12)},
    'Newcastle': {'home': (13, 4.8, 5.5, 11), 'away': (11, 4, 4.5, 12)},
    'Aston Villa': {'home': (14, 5, 6, 11), 'away': (12, 4.3, 5, 12)},
    'Brighton': {'home': (13, 4.8, 5.5, 10), 'away': (11, 4, 4.5, 11)},
    'West Ham': {'home': (12, 4.5, 5.5, 12), 'away': (10, 3.8, 4.5, 13)},
    'Brentford': {'home': (12, 4.5, 5, 12), 'away': (10, 3.8, 4.2, 13)},
    'Fulham': {'home': (11, 4.2, 5, 12), 'away': (9, 3.5, 4, 13)},
    'Crystal Palace': {'home': (11, 4, 5, 12), 'away': (9, 3.3, 4, 13)},
    'Bournemouth': {'home': (11, 4, 5, 12), 'away': (9, 3.3, 4, 13)},
    "Nott'm Forest": {'home': (10, 3.8, 4.5, 13), 'away': (8, 3, 3.5, 14)},
    'Everton': {'home': (10, 3.5, 4.5, 13), 'away': (8, 2.8, 3.5, 14)},
    'Leicester': {'home': (10, 3.5, 4.5, 13), 'away': (8, 2.8, 3.5, 14)},
    'Ipswich': {'home': (9, 3.2, 4, 13), 'away': (7, 2.5, 3, 14)},
    'Wolves': {'home': (9, 3.2, 4, 13), 'away': (7, 2.5, 3, 14)},
    'Southampton': {'home': (9, 3, 4, 13), 'away': (7, 2.3, 3, 14)},
}


def _venue_dict(values) -> Dict[str, float]:
    shots, sot, corners, fouls = values
    return {
        "shotsPerGame": shots,
        "shotsOnTargetPerGame": sot,
        "cornersPerGame": corners,
        "foulsPerGame": fouls,
    }


def probe_stats_page(url: str = STATS_PAGE_URL, timeout: float = PROBE_TIMEOUT_SECONDS) -> bool:
    """
    Check that the official stats page is reachable.

    Returns:
        True if the page answered with a success status, False otherwise
    """
    try:
        response = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error(f"Error scraping stats: {e}")
        return False

    logger.info("Successfully fetched data from Premier League site")
    return True


def build_document(data_source: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Build the statistics document from the curated averages."""
    now = now or datetime.now(timezone.utc)
    teams = {
        normalize_team_name(team): {
            "home": _venue_dict(venues["home"]),
            "away": _venue_dict(venues["away"]),
        }
        for team, venues in CURATED_AVERAGES.items()
    }
    return {
        "lastUpdated": now.isoformat().replace("+00:00", "Z"),
        "season": SEASON,
        "dataSource": data_source,
        "leagues": {DEFAULT_LEAGUE: teams},
    }


def write_team_stats(output: Path = DEFAULT_STATS_PATH, probe: bool = True) -> Dict[str, Any]:
    """
    Probe the stats page and write the statistics document.

    Args:
        output: Destination JSON file
        probe: Whether to contact the stats page first

    Returns:
        The document that was written
    """
    reachable = probe_stats_page() if probe else True
    if not reachable:
        logger.warning("Falling back to default stats")

    document = build_document(SOURCE_CURATED if reachable else SOURCE_FALLBACK)

    output = Path(output)
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, 'w', encoding='utf-8') as f:
        json.dump(document, f, indent=2, ensure_ascii=False)

    teams = document["leagues"][DEFAULT_LEAGUE]
    logger.info(f"Created {output}")
    logger.info(f"Last updated: {document['lastUpdated']}")
    logger.info(f"Teams included: {len(teams)}")
    return document


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Write the static team statistics file")
    parser.add_argument(
        '--output', '-o',
        default=str(DEFAULT_STATS_PATH),
        help=f'Output JSON file (default: {DEFAULT_STATS_PATH})'
    )
    parser.add_argument(
        '--no-probe',
        action='store_true',
        help='Skip contacting the Premier League stats page'
    )
    parser.add_argument('--verbose', '-V', action='store_true', help='Enable verbose logging')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    args = parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        write_team_stats(Path(args.output), probe=not args.no_probe)
    except OSError as e:
        logger.error(f"Could not write team stats: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
