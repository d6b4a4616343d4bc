#!/usr/bin/env python3
"""
Tests for loading the team statistics document and resolving stats modes.
"""

import json

import pytest
import requests
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from analysis.match_stats import RealStats, SimulatedStats
from data_collection.team_stats import (
    StatisticsUnavailable,
    TeamStatsProvider,
    UnavailableStatsProvider,
    load_team_stats,
    normalize_team_name,
)


def _venue(shots, sot, corners, fouls):
    return {
        "shotsPerGame": shots,
        "shotsOnTargetPerGame": sot,
        "cornersPerGame": corners,
        "foulsPerGame": fouls,
    }


@pytest.fixture
def stats_document():
    return {
        "lastUpdated": "2026-01-18T09:00:00Z",
        "season": "2025-26",
        "dataSource": "Curated averages",
        "leagues": {
            "soccer_epl": {
                "Arsenal": {"home": _venue(17, 6.5, 7, 10), "away": _venue(15, 5.8, 6, 11)},
                "Manchester City": {"home": _venue(19, 7.2, 8, 10), "away": _venue(17, 6.5, 7, 11)},
                "Chelsea": {"home": _venue(15, 5.5, 6.5, 11), "away": _venue(13, 4.8, 5.5, 12)},
            },
            "soccer_spain_la_liga": {
                "Real Madrid": {"home": _venue(18, 7, 7, 11), "away": _venue(16, 6, 6, 12)},
            },
        },
    }


@pytest.fixture
def stats_file(tmp_path, stats_document):
    path = tmp_path / "teamStats.json"
    path.write_text(json.dumps(stats_document), encoding="utf-8")
    return path


class TestNormalizeTeamName:

    def test_alias(self):
        assert normalize_team_name("Man City") == "Manchester City"
        assert normalize_team_name("Spurs") == "Tottenham Hotspur"

    def test_unknown_name_unchanged(self):
        assert normalize_team_name(" Arsenal ") == "Arsenal"


class TestTeamStatsProvider:

    def test_from_document(self, stats_document):
        provider = TeamStatsProvider.from_document(stats_document)
        assert provider.team_count == 4
        assert provider.last_updated == "2026-01-18T09:00:00Z"
        assert provider.data_source == "real"

    def test_lookup_exact_name(self, stats_document):
        provider = TeamStatsProvider.from_document(stats_document)
        assert provider.lookup("Arsenal", "soccer_epl", "home").shots_per_game == 17
        assert provider.lookup("Arsenal", "soccer_epl", "away").shots_per_game == 15
        assert provider.lookup("arsenal", "soccer_epl", "home") is None

    def test_lookup_invalid_venue(self, stats_document):
        provider = TeamStatsProvider.from_document(stats_document)
        with pytest.raises(ValueError):
            provider.lookup("Arsenal", venue="neutral")

    def test_resolve_real(self, stats_document):
        provider = TeamStatsProvider.from_document(stats_document)
        mode = provider.resolve_mode("Arsenal", "Chelsea", "soccer_epl")
        assert isinstance(mode, RealStats)
        assert mode.home.shots_per_game == 17
        assert mode.away.shots_per_game == 13

    def test_resolve_through_alias(self, stats_document):
        provider = TeamStatsProvider.from_document(stats_document)
        mode = provider.resolve_mode("Man City", "Arsenal", "soccer_epl")
        assert isinstance(mode, RealStats)
        assert mode.home.shots_per_game == 19

    def test_missing_team_is_simulated(self, stats_document):
        provider = TeamStatsProvider.from_document(stats_document)
        assert isinstance(provider.resolve_mode("Arsenal", "Burnley", "soccer_epl"), SimulatedStats)
        assert isinstance(provider.resolve_mode("Burnley", "Arsenal", "soccer_epl"), SimulatedStats)

    def test_league_scoping(self, stats_document):
        provider = TeamStatsProvider.from_document(stats_document)
        assert isinstance(provider.resolve_mode("Real Madrid", "Arsenal", "soccer_epl"), SimulatedStats)

    def test_unknown_league_searches_all(self, stats_document):
        provider = TeamStatsProvider.from_document(stats_document)
        assert isinstance(provider.resolve_mode("Arsenal", "Chelsea", "soccer_fa_cup"), RealStats)

    def test_legacy_teams_key(self, stats_document):
        legacy = {"lastUpdated": "2026-01-01T00:00:00Z", "teams": stats_document["leagues"]["soccer_epl"]}
        provider = TeamStatsProvider.from_document(legacy)
        assert provider.team_count == 3
        assert isinstance(provider.resolve_mode("Arsenal", "Chelsea", "soccer_epl"), RealStats)

    @pytest.mark.parametrize("document", [
        [],
        {"season": "2025-26"},
        {"leagues": {"soccer_epl": {"Arsenal": {"home": {"shotsPerGame": 17}}}}},
    ])
    def test_malformed_document(self, document):
        with pytest.raises(StatisticsUnavailable):
            TeamStatsProvider.from_document(document)


class TestUnavailableStatsProvider:

    def test_always_simulated(self):
        provider = UnavailableStatsProvider()
        assert provider.data_source == "simulated"
        assert isinstance(provider.resolve_mode("Arsenal", "Chelsea"), SimulatedStats)


class TestLoadTeamStats:

    def test_load_from_file(self, stats_file):
        provider = load_team_stats(stats_file)
        assert provider.team_count == 4

    def test_missing_file(self, tmp_path):
        with pytest.raises(StatisticsUnavailable):
            load_team_stats(tmp_path / "missing.json")

    def test_invalid_json_file(self, tmp_path):
        path = tmp_path / "teamStats.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StatisticsUnavailable):
            load_team_stats(path)

    @patch("data_collection.team_stats.requests.get")
    def test_load_from_url(self, mock_get, stats_document):
        response = MagicMock()
        response.json.return_value = stats_document
        mock_get.return_value = response

        provider = load_team_stats("https://example.com/teamStats.json", timeout=5)
        assert provider.team_count == 4
        mock_get.assert_called_once_with("https://example.com/teamStats.json", timeout=5)

    @patch("data_collection.team_stats.requests.get")
    def test_url_failure(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError("unreachable")
        with pytest.raises(StatisticsUnavailable):
            load_team_stats("https://example.com/teamStats.json")

    @patch("data_collection.team_stats.requests.get")
    def test_url_http_error(self, mock_get):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("404")
        mock_get.return_value = response
        with pytest.raises(StatisticsUnavailable):
            load_team_stats("https://example.com/teamStats.json")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
