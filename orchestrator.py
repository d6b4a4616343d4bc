#!/usr/bin/env python3
"""
Fixture Predictor Orchestrator

This module runs one fetch cycle of the prediction dashboard:

1. Data Collection Phase:
   - Fetch fixture odds from The Odds API
   - Load the team statistics document (falls back to simulated stats)

2. Analysis Phase:
   - Normalize odds, select tips, synthesize match statistics
   - Compose recommended bets

3. Report Generation Phase:
   - Write the dashboard as HTML, JSON and/or Markdown

Usage:
    # Basic usage
    python orchestrator.py

    # With all options
    python orchestrator.py --sports soccer_epl soccer_spain_la_liga \
        --stats-source data/teamStats.json --output-format both --seed 7

    # Environment variables:
    # THE_ODDS_API_KEY  - Required for odds fetching
    # ODDS_SPORTS       - Comma-separated sport keys (default: soccer_epl)
    # ODDS_REGIONS      - Bookmaker regions (default: uk)
    # TEAM_STATS_SOURCE - Path or URL of the team statistics document
    # USER_TIMEZONE     - Timezone for kickoff times (default: Europe/London)
    # PREDICTOR_SEED    - Optional integer seed for the random source
"""

import argparse
import asyncio
import logging
import os
import sys
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Optional

import numpy as np

from analysis.bet_recommender import ComposerConfig, compose
from analysis.predictor import predict_fixtures
from data_collection.odds_fetcher import DEFAULT_REGIONS, DEFAULT_SPORT, OddsFetcher
from data_collection.team_stats import (
    DEFAULT_STATS_PATH,
    StatisticsUnavailable,
    UnavailableStatsProvider,
    load_team_stats,
)
from reporting.report_builder import DEFAULT_TIMEZONE, Dashboard, DashboardBuilder

logger = logging.getLogger(__name__)

# Project paths
BASE_DIR = Path(__file__).parent
REPORTS_DIR = BASE_DIR / "reports"

# Output format -> files written (dashboard.<ext>)
OUTPUT_FORMATS = {
    "html": ("html",),
    "json": ("json",),
    "markdown": ("md",),
    "both": ("html", "json"),
    "all": ("html", "json", "md"),
}


# =============================================================================
# CONFIGURATION
# =============================================================================

def _split_list(value: Optional[str]) -> List[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


@dataclass
class PipelineConfig:
    """Configuration for one fetch cycle."""
    # Odds source
    odds_api_key: Optional[str] = None
    sports: List[str] = field(default_factory=lambda: [DEFAULT_SPORT])
    regions: str = DEFAULT_REGIONS
    bookmaker_strategy: str = "first"
    use_cache: bool = True

    # Team statistics source (path or URL)
    stats_source: str = str(DEFAULT_STATS_PATH)

    # Output options
    output_dir: Path = REPORTS_DIR
    output_format: str = "html"  # key of OUTPUT_FORMATS
    timezone: str = DEFAULT_TIMEZONE

    # Random source
    seed: Optional[int] = None

    composer: ComposerConfig = field(default_factory=ComposerConfig)

    @classmethod
    def from_env_and_args(cls, args: argparse.Namespace) -> 'PipelineConfig':
        """Create config from environment variables and command-line args."""
        sports = args.sports or _split_list(os.environ.get("ODDS_SPORTS")) or [DEFAULT_SPORT]

        seed = args.seed
        if seed is None and os.environ.get("PREDICTOR_SEED"):
            try:
                seed = int(os.environ["PREDICTOR_SEED"])
            except ValueError:
                logger.warning(
                    f"Ignoring PREDICTOR_SEED={os.environ['PREDICTOR_SEED']!r}: not an integer"
                )

        return cls(
            odds_api_key=os.environ.get("THE_ODDS_API_KEY"),
            sports=sports,
            regions=os.environ.get("ODDS_REGIONS", DEFAULT_REGIONS),
            bookmaker_strategy=args.bookmaker,
            use_cache=not args.no_cache,
            stats_source=args.stats_source or os.environ.get("TEAM_STATS_SOURCE", str(DEFAULT_STATS_PATH)),
            output_dir=Path(args.output_dir) if args.output_dir else REPORTS_DIR,
            output_format=args.output_format,
            timezone=os.environ.get("USER_TIMEZONE", DEFAULT_TIMEZONE),
            seed=seed,
        )


# =============================================================================
# PIPELINE RESULTS
# =============================================================================

@dataclass
class PhaseResult:
    """Result of a pipeline phase."""
    phase_name: str
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    duration_seconds: float = 0.0
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat() + "Z")


@dataclass
class CycleResult:
    """Complete result of one fetch cycle."""
    generation: int = 0
    phases: List[PhaseResult] = field(default_factory=list)
    dashboard: Optional[Dashboard] = None
    report_paths: List[str] = field(default_factory=list)
    total_duration_seconds: float = 0.0
    success: bool = True
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat() + "Z")

    def add_phase(self, phase: PhaseResult):
        """Add a phase result."""
        self.phases.append(phase)

    def get_phase(self, name: str) -> Optional[PhaseResult]:
        """Get a phase result by name."""
        for phase in self.phases:
            if phase.phase_name == name:
                return phase
        return None


# =============================================================================
# DATA COLLECTION PHASE
# =============================================================================

class DataCollector:
    """
    Handles all data collection operations.

    One collector is shared by every cycle of a refresher. It owns a single
    odds client, and odds fetches are serialized on a lock, so a cancelled
    cycle's worker thread and the next cycle never update the request
    count or the response cache at the same time.
    """

    def __init__(self, config: PipelineConfig, fetcher_factory: Optional[Callable[..., Any]] = None):
        self.config = config
        self.fetcher_factory = fetcher_factory or OddsFetcher
        self._fetcher = None
        self._fetch_lock = threading.Lock()
        self.logger = logging.getLogger(f"{__name__}.DataCollector")

    def _get_fetcher(self):
        if self._fetcher is None:
            self._fetcher = self.fetcher_factory(
                api_key=self.config.odds_api_key,
                regions=self.config.regions,
                bookmaker_strategy=self.config.bookmaker_strategy,
            )
        return self._fetcher

    def fetch_odds(self) -> PhaseResult:
        """Fetch fixtures from The Odds API. Failure means no fixtures this cycle."""
        start_time = datetime.utcnow()
        self.logger.info("Starting odds collection...")

        if not self.config.odds_api_key:
            return PhaseResult(
                phase_name="odds_collection",
                success=False,
                data=[],
                error="THE_ODDS_API_KEY environment variable not set",
            )

        try:
            with self._fetch_lock:
                fetcher = self._get_fetcher()
                fixtures = fetcher.fetch_fixtures(self.config.sports, use_cache=self.config.use_cache)

            duration = (datetime.utcnow() - start_time).total_seconds()
            self.logger.info(f"Odds collection completed in {duration:.2f}s - {len(fixtures)} fixtures")

            return PhaseResult(
                phase_name="odds_collection",
                success=True,
                data=fixtures,
                duration_seconds=duration
            )

        except Exception as e:
            duration = (datetime.utcnow() - start_time).total_seconds()
            self.logger.error(f"Odds collection failed: {e}")
            return PhaseResult(
                phase_name="odds_collection",
                success=False,
                data=[],
                error=str(e),
                duration_seconds=duration
            )

    def load_team_stats(self) -> PhaseResult:
        """Load the team statistics document, degrading to simulated stats."""
        start_time = datetime.utcnow()
        self.logger.info("Loading team statistics...")

        try:
            provider = load_team_stats(self.config.stats_source)
            error = None
        except StatisticsUnavailable as e:
            self.logger.warning(f"Could not load team stats, using simulated data: {e}")
            provider = UnavailableStatsProvider()
            error = str(e)

        duration = (datetime.utcnow() - start_time).total_seconds()
        return PhaseResult(
            phase_name="team_stats",
            success=True,
            data=provider,
            error=error,
            duration_seconds=duration
        )


# =============================================================================
# ANALYSIS PHASE
# =============================================================================

class Analyzer:
    """Handles prediction and recommendation."""

    def __init__(self, config: PipelineConfig):
        self.config = config
        self.logger = logging.getLogger(f"{__name__}.Analyzer")

    def run_predictions(self, fixtures: List[Any], stats_provider: Any, rng: np.random.Generator) -> PhaseResult:
        start_time = datetime.utcnow()
        batch = predict_fixtures(fixtures, stats_provider, rng)
        duration = (datetime.utcnow() - start_time).total_seconds()

        return PhaseResult(
            phase_name="predictions",
            success=True,
            data=batch,
            error=f"{len(batch.skipped)} fixtures skipped" if batch.skipped else None,
            duration_seconds=duration
        )

    def compose_bets(self, predictions: List[Any]) -> PhaseResult:
        start_time = datetime.utcnow()
        bets = compose(predictions, self.config.composer)
        duration = (datetime.utcnow() - start_time).total_seconds()

        return PhaseResult(
            phase_name="recommendations",
            success=True,
            data=bets,
            duration_seconds=duration
        )


# =============================================================================
# REPORT GENERATION PHASE
# =============================================================================

class ReportGenerator:
    """Writes rendered dashboards to disk."""

    def __init__(self, config: PipelineConfig):
        self.config = config
        self.logger = logging.getLogger(f"{__name__}.ReportGenerator")

    def save(self, dashboard: Dashboard) -> List[str]:
        """Write the dashboard in every format selected by ``output_format``."""
        output_dir = Path(self.config.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        renderers = {
            "html": dashboard.to_html,
            "json": dashboard.to_json,
            "md": dashboard.to_markdown,
        }

        paths = []
        for extension in OUTPUT_FORMATS[self.config.output_format]:
            path = output_dir / f"dashboard.{extension}"
            path.write_text(renderers[extension](), encoding="utf-8")
            paths.append(str(path))

        for path in paths:
            self.logger.info(f"Saved dashboard to {path}")
        return paths

    def publish(self, result: CycleResult) -> None:
        """Save a cycle's dashboard and record the report_generation phase."""
        start_time = datetime.utcnow()
        try:
            result.report_paths = self.save(result.dashboard)
        except OSError as e:
            self.logger.error(f"Report generation failed: {e}")
            result.add_phase(PhaseResult(phase_name="report_generation", success=False, error=str(e)))
            result.success = False
            return

        result.add_phase(PhaseResult(
            phase_name="report_generation",
            success=True,
            data={"report_paths": result.report_paths},
            duration_seconds=(datetime.utcnow() - start_time).total_seconds()
        ))


# =============================================================================
# FETCH CYCLE
# =============================================================================

class FetchCycle:
    """
    One run of the pipeline: collect, analyze, build the dashboard.

    Network I/O runs in worker threads via asyncio.to_thread. Nothing is
    written to disk here; DashboardRefresher publishes the result once it
    knows the cycle is still current.
    """

    def __init__(self, config: PipelineConfig, collector: Optional[DataCollector] = None):
        self.config = config
        self.collector = collector or DataCollector(config)
        self.analyzer = Analyzer(config)
        self.builder = DashboardBuilder(timezone=config.timezone)
        self.logger = logging.getLogger(f"{__name__}.FetchCycle")

    async def run(self, generation: int = 0) -> CycleResult:
        start_time = datetime.utcnow()
        result = CycleResult(generation=generation)

        self.logger.info("[PHASE 1] DATA COLLECTION")
        odds_result, stats_result = await asyncio.gather(
            asyncio.to_thread(self.collector.fetch_odds),
            asyncio.to_thread(self.collector.load_team_stats),
        )
        result.add_phase(odds_result)
        result.add_phase(stats_result)

        fixtures = odds_result.data or []
        provider = stats_result.data

        self.logger.info("[PHASE 2] ANALYSIS")
        rng = np.random.default_rng(self.config.seed)
        prediction_result = self.analyzer.run_predictions(fixtures, provider, rng)
        result.add_phase(prediction_result)
        batch = prediction_result.data

        bets_result = self.analyzer.compose_bets(batch.predictions)
        result.add_phase(bets_result)

        self.logger.info("[PHASE 3] DASHBOARD")
        result.dashboard = self.builder.build(
            batch.predictions,
            bets_result.data,
            stats_source=provider.data_source,
            stats_last_updated=provider.last_updated,
            skipped=batch.skipped,
        )

        result.total_duration_seconds = (datetime.utcnow() - start_time).total_seconds()
        if not odds_result.success:
            self.logger.warning(f"No fixture data this cycle: {odds_result.error}")
        self.logger.info(
            f"Cycle {generation} complete in {result.total_duration_seconds:.2f}s - "
            f"{len(batch.predictions)} predictions, {len(bets_result.data)} bets"
        )
        return result


class DashboardRefresher:
    """
    Runs fetch cycles on demand with last-writer-wins semantics.

    Every refresh gets a new generation number and cancels the cycle that
    is still in flight. A finished cycle is published only if no newer
    refresh has started in the meantime. Publishing (``publish``, e.g.
    ReportGenerator.publish) runs on the event loop right after that
    check, without yielding, so a superseded cycle never writes output.
    """

    def __init__(
        self,
        cycle_factory: Callable[[], FetchCycle],
        publish: Optional[Callable[[CycleResult], None]] = None,
    ):
        self.cycle_factory = cycle_factory
        self.publish = publish
        self.generation = 0
        self.latest: Optional[CycleResult] = None
        self._task: Optional[asyncio.Task] = None
        self.logger = logging.getLogger(f"{__name__}.DashboardRefresher")

    async def refresh(self) -> Optional[CycleResult]:
        """
        Start a new fetch cycle and wait for it.

        Returns:
            The cycle's result if it was published, None if a newer
            refresh superseded it
        """
        self.generation += 1
        generation = self.generation

        if self._task is not None and not self._task.done():
            self.logger.info(f"Cancelling superseded cycle before starting {generation}")
            self._task.cancel()

        task = asyncio.ensure_future(self.cycle_factory().run(generation))
        self._task = task
        try:
            result = await task
        except asyncio.CancelledError:
            if generation == self.generation:
                raise
            self.logger.info(f"Cycle {generation} cancelled")
            return None

        if generation != self.generation:
            self.logger.info(f"Discarding stale result from cycle {generation}")
            return None

        if self.publish is not None:
            self.publish(result)
        self.latest = result
        return result


# =============================================================================
# COMMAND LINE INTERFACE
# =============================================================================

def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Football fixture prediction dashboard",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python orchestrator.py
  python orchestrator.py --sports soccer_epl soccer_germany_bundesliga
  python orchestrator.py --stats-source https://example.com/teamStats.json --output-format both

Environment Variables:
  THE_ODDS_API_KEY   - API key for The Odds API
  ODDS_SPORTS        - Comma-separated sport keys
  ODDS_REGIONS       - Bookmaker regions
  TEAM_STATS_SOURCE  - Path or URL of the team statistics document
  USER_TIMEZONE      - Timezone for kickoff times
  PREDICTOR_SEED     - Integer seed for reproducible statistics
        """
    )

    parser.add_argument(
        '--sports', '-s',
        nargs='+',
        help=f'Sport keys to fetch (default: {DEFAULT_SPORT})'
    )
    parser.add_argument(
        '--stats-source',
        help='Path or URL of the team statistics document'
    )
    parser.add_argument(
        '--output-dir',
        default=str(REPORTS_DIR),
        help='Output directory for the dashboard'
    )
    parser.add_argument(
        '--output-format',
        choices=list(OUTPUT_FORMATS),
        default='html',
        help='Output format: html, json, markdown, both (html + json) or all (default: html)'
    )
    parser.add_argument(
        '--bookmaker',
        choices=['first', 'best'],
        default='first',
        help='Use the first complete bookmaker or the best price per outcome'
    )
    parser.add_argument(
        '--seed',
        type=int,
        help='Seed for the random source'
    )
    parser.add_argument(
        '--no-cache',
        action='store_true',
        help='Ignore cached odds responses'
    )
    parser.add_argument(
        '--verbose', '-V',
        action='store_true',
        help='Enable verbose logging'
    )

    return parser.parse_args(argv)


async def run_once(config: PipelineConfig) -> Optional[CycleResult]:
    collector = DataCollector(config)
    refresher = DashboardRefresher(
        lambda: FetchCycle(config, collector),
        publish=ReportGenerator(config).publish,
    )
    return await refresher.refresh()


def main(argv=None) -> int:
    """Main entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    args = parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = PipelineConfig.from_env_and_args(args)
    result = asyncio.run(run_once(config))

    if result is None or not result.success:
        return 1
    if result.dashboard is not None and result.dashboard.is_empty:
        logger.warning("No predictions this cycle")
    return 0


if __name__ == "__main__":
    sys.exit(main())
