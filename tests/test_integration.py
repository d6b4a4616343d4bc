#!/usr/bin/env python3
"""
Integration Tests for the Fixture Predictor

This module tests the complete fetch cycle:
fetch -> predict -> compose -> render

Test scenarios covered:
1. Happy path: odds and team statistics available
2. Partial data: statistics unavailable, every fixture simulated
3. No data: odds source down or API key missing, empty dashboard
4. Last-writer-wins: a newer refresh supersedes one in flight and only
   the current cycle is written to disk
"""

import asyncio
import json
import threading
import time

import pytest
import sys
from pathlib import Path
from unittest.mock import MagicMock

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from analysis.odds_analyzer import OddsTriple
from data_collection.odds_data import FixtureOdds
from data_collection.odds_fetcher import UpstreamFetchError
from data_collection.stats_scraper import write_team_stats
from data_collection.team_stats import UnavailableStatsProvider
from orchestrator import (
    CycleResult,
    DashboardRefresher,
    DataCollector,
    FetchCycle,
    OUTPUT_FORMATS,
    PipelineConfig,
    ReportGenerator,
    main,
    parse_args,
)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def fixtures():
    return [
        FixtureOdds("1", "soccer_epl", "Arsenal", "Chelsea", "2026-01-20T20:00:00Z",
                    OddsTriple(1.8, 3.6, 4.5), over_2_5=1.7),
        FixtureOdds("2", "soccer_epl", "Man City", "Spurs", "2026-01-21T17:30:00Z",
                    OddsTriple(1.5, 4.4, 6.0)),
        FixtureOdds("3", "soccer_epl", "Burnley", "Sunderland", "2026-01-21T15:00:00Z",
                    OddsTriple(2.6, 3.2, 2.9)),
    ]


@pytest.fixture
def stats_path(tmp_path):
    path = tmp_path / "teamStats.json"
    write_team_stats(path, probe=False)
    return path


@pytest.fixture
def config(tmp_path, stats_path):
    return PipelineConfig(
        odds_api_key="test-key",
        stats_source=str(stats_path),
        output_dir=tmp_path / "reports",
        output_format="both",
        seed=7,
    )


def _fetcher_factory(fixtures=None, error=None):
    fetcher = MagicMock()
    if error is not None:
        fetcher.fetch_fixtures.side_effect = error
    else:
        fetcher.fetch_fixtures.return_value = fixtures
    return MagicMock(return_value=fetcher)


# =============================================================================
# HAPPY PATH
# =============================================================================

class TestHappyPath:

    def test_full_cycle(self, config, fixtures):
        collector = DataCollector(config, fetcher_factory=_fetcher_factory(fixtures))
        refresher = DashboardRefresher(lambda: FetchCycle(config, collector),
                                       publish=ReportGenerator(config).publish)
        result = asyncio.run(refresher.refresh())

        assert result.success
        assert result.generation == 1
        assert result.get_phase("report_generation").success
        assert result.get_phase("odds_collection").success
        dashboard = result.dashboard
        assert [p.home_team for p in dashboard.predictions] == ["Arsenal", "Man City", "Burnley"]
        assert dashboard.stats_source == "real"
        assert [p.statistics.stats_source for p in dashboard.predictions] == ["real", "real", "simulated"]
        assert dashboard.bets[0].kind.value == "Safest Banker"

        report_dir = Path(config.output_dir)
        assert (report_dir / "dashboard.html").exists()
        data = json.loads((report_dir / "dashboard.json").read_text(encoding="utf-8"))
        assert data["fixture_count"] == 3

    def test_fetcher_configured_from_pipeline(self, config, fixtures):
        factory = _fetcher_factory(fixtures)
        config.bookmaker_strategy = "best"
        DataCollector(config, fetcher_factory=factory).fetch_odds()
        factory.assert_called_once_with(api_key="test-key", regions="uk", bookmaker_strategy="best")

    def test_cycle_writes_nothing(self, config, fixtures):
        """Building the dashboard leaves the output directory untouched."""
        collector = DataCollector(config, fetcher_factory=_fetcher_factory(fixtures))
        result = asyncio.run(FetchCycle(config, collector).run())
        assert result.report_paths == []
        assert not Path(config.output_dir).exists()

    def test_seed_makes_cycle_repeatable(self, config, fixtures):
        def run():
            collector = DataCollector(config, fetcher_factory=_fetcher_factory(fixtures))
            cycle = FetchCycle(config, collector)
            return asyncio.run(cycle.run())

        first, second = run(), run()
        assert [p.statistics for p in first.dashboard.predictions] == \
            [p.statistics for p in second.dashboard.predictions]


# =============================================================================
# PARTIAL AND MISSING DATA
# =============================================================================

class TestDegradedSources:

    def test_statistics_unavailable(self, config, fixtures, tmp_path):
        config.stats_source = str(tmp_path / "missing.json")
        collector = DataCollector(config, fetcher_factory=_fetcher_factory(fixtures))
        result = asyncio.run(FetchCycle(config, collector).run())

        stats_phase = result.get_phase("team_stats")
        assert isinstance(stats_phase.data, UnavailableStatsProvider)
        assert stats_phase.error
        assert result.dashboard.stats_source == "simulated"
        assert all(p.statistics.stats_source == "simulated" for p in result.dashboard.predictions)
        assert len(result.dashboard.predictions) == 3

    def test_upstream_failure_gives_empty_dashboard(self, config):
        factory = _fetcher_factory(error=UpstreamFetchError("Invalid API key", status_code=401))
        collector = DataCollector(config, fetcher_factory=factory)
        result = asyncio.run(FetchCycle(config, collector).run())
        ReportGenerator(config).publish(result)

        odds_phase = result.get_phase("odds_collection")
        assert not odds_phase.success
        assert "Invalid API key" in odds_phase.error
        assert result.dashboard.is_empty
        assert result.dashboard.bets == []
        assert "No fixtures available" in (Path(config.output_dir) / "dashboard.html").read_text(encoding="utf-8")

    def test_missing_api_key(self, config):
        config.odds_api_key = None
        phase = DataCollector(config).fetch_odds()
        assert not phase.success
        assert phase.data == []

    def test_invalid_fixture_skipped(self, config, fixtures):
        fixtures.insert(1, FixtureOdds("x", "soccer_epl", "Fulham", "Brentford", "",
                                       OddsTriple(1.0, 3.0, 4.0)))
        collector = DataCollector(config, fetcher_factory=_fetcher_factory(fixtures))
        result = asyncio.run(FetchCycle(config, collector).run())

        assert len(result.dashboard.predictions) == 3
        assert result.dashboard.skipped[0][0] == "Fulham vs Brentford"


class TestSharedCollector:
    """One collector serves every cycle of a refresher."""

    def test_fetches_never_overlap(self, config, fixtures):
        state = {"active": 0, "max_active": 0}
        guard = threading.Lock()

        def fetch_fixtures(sports, use_cache=True):
            with guard:
                state["active"] += 1
                state["max_active"] = max(state["max_active"], state["active"])
            time.sleep(0.05)
            with guard:
                state["active"] -= 1
            return fixtures

        fetcher = MagicMock()
        fetcher.fetch_fixtures.side_effect = fetch_fixtures
        factory = MagicMock(return_value=fetcher)
        collector = DataCollector(config, fetcher_factory=factory)

        threads = [threading.Thread(target=collector.fetch_odds) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert state["max_active"] == 1
        assert fetcher.fetch_fixtures.call_count == 4
        factory.assert_called_once()

    def test_superseded_cycle_shares_fetcher(self, config, fixtures):
        factory = _fetcher_factory(fixtures)
        collector = DataCollector(config, fetcher_factory=factory)

        async def scenario():
            refresher = DashboardRefresher(lambda: FetchCycle(config, collector))
            first = asyncio.ensure_future(refresher.refresh())
            await asyncio.sleep(0)
            second = await refresher.refresh()
            return await first, second

        first, second = asyncio.run(scenario())
        assert first is None
        assert second.generation == 2
        factory.assert_called_once()


# =============================================================================
# REFRESH SEMANTICS
# =============================================================================

class SlowCycle:
    """Fetch cycle stand-in that finishes after a fixed delay."""

    def __init__(self, delay):
        self.delay = delay

    async def run(self, generation=0):
        await asyncio.sleep(self.delay)
        return CycleResult(generation=generation)


class StubbornCycle(SlowCycle):
    """Fetch cycle stand-in that ignores cancellation and returns anyway."""

    async def run(self, generation=0):
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            await asyncio.sleep(self.delay)
        return CycleResult(generation=generation)


class TestDashboardRefresher:

    def test_newer_refresh_supersedes_in_flight_cycle(self):
        delays = iter([0.5, 0.01])

        async def scenario():
            refresher = DashboardRefresher(lambda: SlowCycle(next(delays)))
            first = asyncio.ensure_future(refresher.refresh())
            await asyncio.sleep(0.01)
            second = await refresher.refresh()
            return await first, second, refresher

        first, second, refresher = asyncio.run(scenario())
        assert first is None
        assert second.generation == 2
        assert refresher.latest is second

    def test_sequential_refreshes_publish_latest(self):
        async def scenario():
            refresher = DashboardRefresher(lambda: SlowCycle(0))
            await refresher.refresh()
            await refresher.refresh()
            return refresher

        refresher = asyncio.run(scenario())
        assert refresher.generation == 2
        assert refresher.latest.generation == 2

    def test_superseded_cycle_never_published(self, tmp_path):
        """A slow cycle overtaken by a newer refresh leaves the newer file on disk."""
        output = tmp_path / "dashboard.txt"
        published = []
        delays = iter([0.5, 0.01])

        def publish(result):
            published.append(result.generation)
            output.write_text(f"generation {result.generation}", encoding="utf-8")

        async def scenario():
            refresher = DashboardRefresher(lambda: SlowCycle(next(delays)), publish=publish)
            first = asyncio.ensure_future(refresher.refresh())
            await asyncio.sleep(0.1)
            await refresher.refresh()
            await first
            # Give any leftover work from the first cycle time to finish
            await asyncio.sleep(0.6)

        asyncio.run(scenario())
        assert published == [2]
        assert output.read_text(encoding="utf-8") == "generation 2"

    def test_result_after_cancellation_discarded(self):
        """A cycle that finishes despite cancellation is still not published."""
        published = []
        cycles = iter([StubbornCycle(0.3), SlowCycle(0.01)])

        async def scenario():
            refresher = DashboardRefresher(lambda: next(cycles), publish=published.append)
            first = asyncio.ensure_future(refresher.refresh())
            await asyncio.sleep(0.05)
            second = await refresher.refresh()
            return await first, second, refresher

        first, second, refresher = asyncio.run(scenario())
        assert first is None
        assert [r.generation for r in published] == [2]
        assert refresher.latest is second

    def test_publish_failure_marks_cycle_failed(self, config, fixtures):
        collector = DataCollector(config, fetcher_factory=_fetcher_factory(fixtures))
        result = asyncio.run(FetchCycle(config, collector).run())
        generator = ReportGenerator(config)
        generator.save = MagicMock(side_effect=OSError("disk full"))

        generator.publish(result)
        assert not result.success
        phase = result.get_phase("report_generation")
        assert not phase.success
        assert phase.error == "disk full"


# =============================================================================
# COMMAND LINE
# =============================================================================

class TestCommandLine:

    def test_config_from_env_and_args(self, monkeypatch):
        monkeypatch.setenv("THE_ODDS_API_KEY", "env-key")
        monkeypatch.setenv("ODDS_SPORTS", "soccer_epl, soccer_spain_la_liga")
        monkeypatch.setenv("PREDICTOR_SEED", "11")
        monkeypatch.setenv("USER_TIMEZONE", "Europe/Madrid")

        config = PipelineConfig.from_env_and_args(parse_args(["--bookmaker", "best", "--no-cache"]))
        assert config.odds_api_key == "env-key"
        assert config.sports == ["soccer_epl", "soccer_spain_la_liga"]
        assert config.seed == 11
        assert config.timezone == "Europe/Madrid"
        assert config.bookmaker_strategy == "best"
        assert config.use_cache is False

    def test_args_override_environment(self, monkeypatch):
        monkeypatch.setenv("ODDS_SPORTS", "soccer_epl")
        monkeypatch.setenv("PREDICTOR_SEED", "11")
        args = parse_args(["--sports", "soccer_italy_serie_a", "--seed", "3", "--output-format", "json"])
        config = PipelineConfig.from_env_and_args(args)
        assert config.sports == ["soccer_italy_serie_a"]
        assert config.seed == 3
        assert config.output_format == "json"

    def test_non_integer_seed_ignored(self, monkeypatch, caplog):
        monkeypatch.setenv("PREDICTOR_SEED", "abc")
        with caplog.at_level("WARNING"):
            config = PipelineConfig.from_env_and_args(parse_args([]))
        assert config.seed is None
        assert "PREDICTOR_SEED" in caplog.text

    def test_seed_flag_must_be_integer(self):
        with pytest.raises(SystemExit):
            parse_args(["--seed", "abc"])

    @pytest.mark.parametrize("output_format,files", [
        ("html", ["dashboard.html"]),
        ("json", ["dashboard.json"]),
        ("markdown", ["dashboard.md"]),
        ("both", ["dashboard.html", "dashboard.json"]),
        ("all", ["dashboard.html", "dashboard.json", "dashboard.md"]),
    ])
    def test_output_formats(self, monkeypatch, tmp_path, output_format, files):
        monkeypatch.delenv("THE_ODDS_API_KEY", raising=False)
        output_dir = tmp_path / "out"
        exit_code = main([
            "--output-dir", str(output_dir),
            "--output-format", output_format,
            "--stats-source", str(tmp_path / "missing.json"),
        ])
        assert exit_code == 0
        assert sorted(p.name for p in output_dir.iterdir()) == files

    def test_markdown_dashboard(self, config, fixtures):
        config.output_format = "markdown"
        collector = DataCollector(config, fetcher_factory=_fetcher_factory(fixtures))
        refresher = DashboardRefresher(lambda: FetchCycle(config, collector),
                                       publish=ReportGenerator(config).publish)
        result = asyncio.run(refresher.refresh())

        assert [Path(p).name for p in result.report_paths] == ["dashboard.md"]
        text = Path(result.report_paths[0]).read_text(encoding="utf-8")
        assert "Arsenal" in text
        assert "Safest Banker" in text

    def test_output_format_choices(self):
        assert set(OUTPUT_FORMATS) == {"html", "json", "markdown", "both", "all"}
        with pytest.raises(SystemExit):
            parse_args(["--output-format", "pdf"])

    def test_main_without_api_key(self, monkeypatch, tmp_path):
        monkeypatch.delenv("THE_ODDS_API_KEY", raising=False)
        exit_code = main([
            "--output-dir", str(tmp_path),
            "--output-format", "json",
            "--stats-source", str(tmp_path / "missing.json"),
        ])
        assert exit_code == 0
        data = json.loads((tmp_path / "dashboard.json").read_text(encoding="utf-8"))
        assert data["matches"] == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
