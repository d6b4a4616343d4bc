#!/usr/bin/env python3
"""
Dashboard Builder for the Fixture Predictor

Renders the predictions and recommended bets of one fetch cycle as a
static dashboard: a row of recommended bet cards followed by one card per
fixture (probability bar, match winner, goals, bet builder idea and a
corners / shots on target / fouls strip).

Outputs:
- HTML via an inline Jinja2 template (autoescaped)
- Markdown
- JSON
"""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytz
from jinja2 import Environment, select_autoescape

from analysis.bet_recommender import RecommendedBet
from analysis.predictor import MatchPrediction

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Europe/London"
DASHBOARD_TITLE = "Football Fixture Predictor"
DISCLAIMER = "Odds sourced from live market data. Predictions are estimates. ROI not guaranteed."


def confidence_class(confidence: int) -> str:
    """CSS class for a confidence badge."""
    if confidence >= 85:
        return "conf-high"
    if confidence >= 70:
        return "conf-medium"
    return "conf-low"


def result_bar_class(percentage: int) -> str:
    """CSS class for a probability bar segment."""
    if percentage >= 60:
        return "bar-strong"
    if percentage >= 40:
        return "bar-medium"
    return "bar-weak"


def format_kickoff(commence_time: str, timezone_name: str = DEFAULT_TIMEZONE) -> str:
    """
    Format an ISO 8601 kickoff in the viewer's timezone, e.g. "Sat 14 Feb, 15:00".

    Unparseable values are returned unchanged.
    """
    if not commence_time:
        return "TBD"
    try:
        kickoff = datetime.fromisoformat(commence_time.replace('Z', '+00:00'))
        if kickoff.tzinfo is None:
            kickoff = pytz.utc.localize(kickoff)
        local = kickoff.astimezone(pytz.timezone(timezone_name))
    except (ValueError, pytz.UnknownTimeZoneError) as e:
        logger.warning(f"Could not format kickoff {commence_time!r}: {e}")
        return commence_time
    return local.strftime('%a %d %b, %H:%M')


@dataclass
class Dashboard:
    """One rendered fetch cycle."""
    predictions: List[MatchPrediction]
    bets: List[RecommendedBet]
    stats_source: str = "simulated"
    stats_last_updated: Optional[str] = None
    timezone: str = DEFAULT_TIMEZONE
    skipped: List[Any] = field(default_factory=list)
    generated_at: str = field(default_factory=lambda: datetime.utcnow().isoformat() + "Z")

    @property
    def is_empty(self) -> bool:
        return not self.predictions

    def kickoff(self, prediction: MatchPrediction) -> str:
        return format_kickoff(getattr(prediction.fixture, "commence_time", ""), self.timezone)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "generated_at": self.generated_at,
            "stats_source": self.stats_source,
            "stats_last_updated": self.stats_last_updated,
            "fixture_count": len(self.predictions),
            "skipped_count": len(self.skipped),
            "recommended_bets": [bet.to_dict() for bet in self.bets],
            "matches": [p.to_dict() for p in self.predictions],
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def to_html(self) -> str:
        """
        Generate HTML output using the Jinja2 template.

        Returns:
            Self-contained HTML page
        """
        env = Environment(autoescape=select_autoescape(default=True, default_for_string=True))
        env.filters["confidence_class"] = confidence_class
        env.filters["bar_class"] = result_bar_class
        template = env.from_string(INLINE_HTML_TEMPLATE)
        return template.render(
            dashboard=self,
            title=DASHBOARD_TITLE,
            disclaimer=DISCLAIMER,
        )

    def to_markdown(self) -> str:
        """
        Generate Markdown output.

        Returns:
            Markdown string for documentation/display
        """
        lines = [
            f"# {DASHBOARD_TITLE}",
            "",
            f"**Generated:** {self.generated_at}",
            f"**Team stats:** {self.stats_source}"
            + (f" (updated {self.stats_last_updated})" if self.stats_last_updated else ""),
            "",
            "---",
            "",
        ]

        if self.is_empty:
            lines.extend(["No fixtures available for this cycle.", ""])
            return "\n".join(lines)

        if self.bets:
            lines.extend(["## Recommended Bets", ""])
            for bet in self.bets:
                lines.append(f"### {bet.kind.value}")
                for leg in bet.legs:
                    lines.append(f"- {leg.label} ({leg.reference_odd:.2f})")
                lines.extend([
                    "",
                    f"Odds: {bet.odds_label} | Confidence: {bet.confidence_label} | "
                    f"{bet.stake_label} -> {bet.return_label}",
                    "",
                ])
            lines.extend(["---", ""])

        for p in self.predictions:
            stats = p.statistics
            probs = p.probabilities
            lines.extend([
                f"## {p.home_team} vs {p.away_team}",
                "",
                f"*Kickoff: {self.kickoff(p)}*",
                "",
                f"- Home {probs.home}% | Draw {probs.draw}% | Away {probs.away}%",
                f"- **Match winner:** {p.tip.label} ({p.tip.confidence}% conf.)",
                f"- **Goals:** {stats.goals_label} ({stats.goals_confidence}% conf., xG {stats.expected_goals:.1f})",
                f"- **Corners:** {stats.corners.home} - {stats.corners.away} ({stats.corners.total} total)",
                f"- **Shots on target:** {stats.shots_on_target.home} - {stats.shots_on_target.away}",
                f"- **Fouls:** {stats.fouls_label}",
                f"- **Bet builder:** {stats.bet_builder}",
                "",
            ])

        lines.extend(["---", "", f"*{DISCLAIMER}*"])
        return "\n".join(lines)


class DashboardBuilder:
    """
    Builds Dashboard objects for a fetch cycle.

    Usage:
        builder = DashboardBuilder(timezone="Europe/London")
        dashboard = builder.build(predictions, bets, stats_source="real")
        html = dashboard.to_html()
    """

    def __init__(self, timezone: Optional[str] = None):
        self.timezone = timezone or os.environ.get("USER_TIMEZONE", DEFAULT_TIMEZONE)
        self.logger = logging.getLogger(f"{__name__}.DashboardBuilder")

    def build(
        self,
        predictions: List[MatchPrediction],
        bets: List[RecommendedBet],
        stats_source: str = "simulated",
        stats_last_updated: Optional[str] = None,
        skipped: Optional[List[Any]] = None,
    ) -> Dashboard:
        if not predictions:
            self.logger.warning("No fixtures available, dashboard will be empty")

        dashboard = Dashboard(
            predictions=list(predictions),
            bets=list(bets),
            stats_source=stats_source,
            stats_last_updated=stats_last_updated,
            timezone=self.timezone,
            skipped=list(skipped or []),
        )
        self.logger.info(
            f"Built dashboard: {len(dashboard.predictions)} fixtures, {len(dashboard.bets)} bets"
        )
        return dashboard


# =============================================================================
# INLINE TEMPLATE
# =============================================================================

INLINE_HTML_TEMPLATE = '''<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ title }}</title>
    <style>
        * { margin: 0; padding: 0; box-sizing: border-box; }

        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;
            line-height: 1.5;
            color: #fff;
            background: linear-gradient(135deg, #3b0764 0%, #312e81 50%, #1e3a8a 100%);
            min-height: 100vh;
            padding: 24px;
        }

        .container { max-width: 1100px; margin: 0 auto; }

        .header { text-align: center; margin-bottom: 32px; }
        .header h1 { font-size: 32px; }
        .header .meta { color: #ddd6fe; font-size: 14px; }

        .panel {
            background: rgba(255, 255, 255, 0.1);
            border: 1px solid rgba(255, 255, 255, 0.2);
            border-radius: 12px;
            padding: 20px;
            margin-bottom: 24px;
        }

        .panel h2 { color: #facc15; font-size: 22px; margin-bottom: 12px; }

        .bets { display: grid; grid-template-columns: repeat(auto-fit, minmax(260px, 1fr)); gap: 16px; }
        .bet { background: rgba(255, 255, 255, 0.05); border-radius: 8px; padding: 16px; }
        .bet h3 { color: #facc15; margin-bottom: 8px; }
        .bet ul { list-style: none; font-size: 14px; margin-bottom: 8px; }
        .bet .row { display: flex; justify-content: space-between; font-size: 14px; }
        .bet .odds { color: #4ade80; font-weight: bold; }
        .bet .return { color: #facc15; font-weight: bold; }

        .match { padding: 0; overflow: hidden; }
        .match-header { background: linear-gradient(90deg, #4f46e5, #9333ea); padding: 16px; }
        .teams { display: flex; justify-content: space-between; align-items: center; font-size: 22px; font-weight: bold; }
        .teams .vs { color: #facc15; font-size: 18px; text-align: center; }
        .teams .kickoff { display: block; font-size: 12px; color: #e5e7eb; font-weight: normal; }

        .bar { display: flex; height: 14px; border-radius: 7px; overflow: hidden; margin-top: 12px; background: rgba(0, 0, 0, 0.3); }
        .bar-strong { background: #22c55e; }
        .bar-medium { background: #3b82f6; }
        .bar-weak, .bar-draw { background: #9ca3af; }
        .bar-labels { display: flex; justify-content: space-between; font-size: 12px; color: #e5e7eb; margin-top: 4px; }

        .predictions { display: grid; grid-template-columns: repeat(auto-fit, minmax(240px, 1fr)); gap: 16px; padding: 16px; }
        .prediction { background: rgba(255, 255, 255, 0.05); border-radius: 8px; padding: 12px; }
        .prediction .label { font-size: 11px; text-transform: uppercase; letter-spacing: 1px; color: #ddd6fe; }
        .prediction .value { font-weight: bold; font-size: 17px; }
        .prediction .reason { font-size: 12px; color: rgba(255, 255, 255, 0.6); font-style: italic; }

        .badge { font-size: 12px; padding: 2px 8px; border-radius: 4px; font-weight: bold; }
        .conf-high { color: #15803d; background: #f0fdf4; }
        .conf-medium { color: #1d4ed8; background: #eff6ff; }
        .conf-low { color: #c2410c; background: #fff7ed; }

        .stats { display: grid; grid-template-columns: repeat(3, 1fr); text-align: center; padding: 0 16px 16px; font-size: 14px; }
        .stats .label { font-size: 11px; color: rgba(255, 255, 255, 0.5); }

        .empty { text-align: center; color: #ddd6fe; }
        .footer { text-align: center; font-size: 12px; color: #ddd6fe; opacity: 0.7; margin-top: 40px; }
    </style>
</head>
<body>
<div class="container">
    <div class="header">
        <h1>{{ title }}</h1>
        <p class="meta">
            Team stats: {{ dashboard.stats_source }}{% if dashboard.stats_last_updated %} (updated {{ dashboard.stats_last_updated }}){% endif %}
            &middot; Generated {{ dashboard.generated_at }}
        </p>
    </div>

    {% if dashboard.is_empty %}
    <div class="panel empty">
        <h2>No fixtures available</h2>
        <p>The odds source returned no usable fixtures for this cycle.</p>
    </div>
    {% else %}

    {% if dashboard.bets %}
    <div class="panel">
        <h2>Recommended Bets</h2>
        <div class="bets">
            {% for bet in dashboard.bets %}
            <div class="bet">
                <h3>{{ bet.kind.value }}</h3>
                <ul>
                    {% for leg in bet.legs %}
                    <li>&bull; {{ leg.label }} ({{ "%.2f"|format(leg.reference_odd) }})</li>
                    {% endfor %}
                </ul>
                <div class="row"><span>Odds:</span><span class="odds">{{ bet.odds_label }}</span></div>
                <div class="row"><span>Confidence:</span><span>{{ bet.confidence_label }}</span></div>
                <div class="row"><span>{{ bet.stake_label }} &rarr;</span><span class="return">{{ bet.return_label }}</span></div>
            </div>
            {% endfor %}
        </div>
    </div>
    {% endif %}

    {% for p in dashboard.predictions %}
    <div class="panel match">
        <div class="match-header">
            <div class="teams">
                <span>{{ p.home_team }}</span>
                <span class="vs">vs<span class="kickoff">{{ dashboard.kickoff(p) }}</span></span>
                <span>{{ p.away_team }}</span>
            </div>
            <div class="bar">
                <div class="{{ p.probabilities.home|bar_class }}" style="width: {{ p.probabilities.home }}%"></div>
                <div class="bar-draw" style="width: {{ p.probabilities.draw }}%"></div>
                <div class="{{ p.probabilities.away|bar_class }}" style="width: {{ p.probabilities.away }}%"></div>
            </div>
            <div class="bar-labels">
                <span>Home {{ p.probabilities.home }}%</span>
                <span>Draw {{ p.probabilities.draw }}%</span>
                <span>Away {{ p.probabilities.away }}%</span>
            </div>
        </div>

        <div class="predictions">
            <div class="prediction">
                <div class="label">Match Winner</div>
                <div class="value">{{ p.tip.label }}</div>
                <span class="badge {{ p.tip.confidence|confidence_class }}">{{ p.tip.confidence }}% Conf.</span>
            </div>
            <div class="prediction">
                <div class="label">Goals</div>
                <div class="value">{{ p.statistics.goals_label }}</div>
                <span class="badge {{ p.statistics.goals_confidence|confidence_class }}">{{ p.statistics.goals_confidence }}% Conf.</span>
                <div class="reason">Expected goals {{ "%.1f"|format(p.statistics.expected_goals) }} ({{ p.statistics.stats_source }} stats)</div>
            </div>
            <div class="prediction">
                <div class="label">Bet Builder Idea</div>
                <div class="value">{{ p.statistics.bet_builder }}</div>
            </div>
        </div>

        <div class="stats">
            <div><div class="label">Corners</div>{{ p.statistics.corners.home }} - {{ p.statistics.corners.away }} ({{ p.statistics.corners.total }})</div>
            <div><div class="label">Shots on Target</div>{{ p.statistics.shots_on_target.home }} - {{ p.statistics.shots_on_target.away }}</div>
            <div><div class="label">Fouls</div>{{ p.statistics.fouls_label }}</div>
        </div>
    </div>
    {% endfor %}
    {% endif %}

    <div class="footer">{{ disclaimer }}</div>
</div>
</body>
</html>
'''
