#!/usr/bin/env python3
"""
Tests for the dashboard renderer.
"""

import json

import numpy as np
import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from analysis.bet_recommender import compose
from analysis.odds_analyzer import OddsTriple
from analysis.predictor import predict_fixtures
from data_collection.odds_data import FixtureOdds
from reporting.report_builder import (
    Dashboard,
    DashboardBuilder,
    confidence_class,
    format_kickoff,
    result_bar_class,
)


def _fixture(event_id, home, away, odds, commence_time="2026-01-20T20:00:00Z"):
    return FixtureOdds(
        event_id=event_id,
        sport_key="soccer_epl",
        home_team=home,
        away_team=away,
        commence_time=commence_time,
        odds=odds,
    )


@pytest.fixture
def dashboard():
    fixtures = [
        _fixture("1", "Arsenal", "Chelsea", OddsTriple(1.8, 3.6, 4.5)),
        _fixture("2", "Brighton & Hove Albion", "<Everton>", OddsTriple(2.6, 3.2, 2.9)),
    ]
    batch = predict_fixtures(fixtures, rng=np.random.default_rng(3))
    bets = compose(batch.predictions)
    return DashboardBuilder(timezone="Europe/London").build(batch.predictions, bets)


class TestFormatting:

    @pytest.mark.parametrize("confidence,css", [(90, "conf-high"), (85, "conf-high"), (70, "conf-medium"), (69, "conf-low")])
    def test_confidence_class(self, confidence, css):
        assert confidence_class(confidence) == css

    @pytest.mark.parametrize("pct,css", [(60, "bar-strong"), (45, "bar-medium"), (39, "bar-weak")])
    def test_result_bar_class(self, pct, css):
        assert result_bar_class(pct) == css

    def test_format_kickoff_converts_timezone(self):
        # 20:00 UTC in January is 20:00 in London and 21:00 in Madrid
        assert format_kickoff("2026-01-20T20:00:00Z", "Europe/London") == "Tue 20 Jan, 20:00"
        assert format_kickoff("2026-01-20T20:00:00Z", "Europe/Madrid") == "Tue 20 Jan, 21:00"

    def test_format_kickoff_summer_time(self):
        assert format_kickoff("2026-08-15T14:00:00Z", "Europe/London") == "Sat 15 Aug, 15:00"

    def test_format_kickoff_missing(self):
        assert format_kickoff("") == "TBD"
        assert format_kickoff("not a date") == "not a date"


class TestDashboard:

    def test_html(self, dashboard):
        html = dashboard.to_html()
        assert "Football Fixture Predictor" in html
        assert "Recommended Bets" in html
        assert "Safest Banker" in html
        assert "Arsenal" in html
        assert "Tue 20 Jan, 20:00" in html

    def test_html_escapes_team_names(self, dashboard):
        html = dashboard.to_html()
        assert "<Everton>" not in html
        assert "&lt;Everton&gt;" in html
        assert "Brighton &amp; Hove Albion" in html

    def test_markdown(self, dashboard):
        markdown = dashboard.to_markdown()
        assert markdown.startswith("# Football Fixture Predictor")
        assert "## Arsenal vs Chelsea" in markdown
        assert "**Fouls:**" in markdown

    def test_json(self, dashboard):
        data = json.loads(dashboard.to_json())
        assert data["fixture_count"] == 2
        assert data["recommended_bets"][0]["type"] == "Safest Banker"
        match = data["matches"][0]
        assert match["fixture"]["home_team"] == "Arsenal"
        assert match["result"]["home"] + match["result"]["draw"] + match["result"]["away"] in range(98, 103)
        assert match["stats_source"] == "simulated"

    def test_empty_dashboard(self):
        dashboard = DashboardBuilder().build([], [])
        assert dashboard.is_empty
        assert "No fixtures available" in dashboard.to_html()
        assert "No fixtures available for this cycle." in dashboard.to_markdown()
        assert json.loads(dashboard.to_json())["matches"] == []

    def test_stats_source_shown(self):
        dashboard = Dashboard(predictions=[], bets=[], stats_source="real",
                              stats_last_updated="2026-01-18T09:00:00Z")
        assert "(updated 2026-01-18T09:00:00Z)" in dashboard.to_markdown()

    def test_timezone_from_environment(self, monkeypatch):
        monkeypatch.setenv("USER_TIMEZONE", "America/New_York")
        assert DashboardBuilder().timezone == "America/New_York"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
