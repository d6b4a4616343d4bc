#!/usr/bin/env python3
"""
Reporting Module for the Fixture Predictor

This module renders a fetch cycle's predictions and recommended bets:
- DashboardBuilder: assembles a Dashboard from predictions and bets
- HTML via an inline Jinja2 template, plus Markdown and JSON output

Usage:
    from reporting import DashboardBuilder

    builder = DashboardBuilder()
    dashboard = builder.build(predictions, bets, stats_source="real")

    html = dashboard.to_html()
    markdown = dashboard.to_markdown()
"""

from .report_builder import (
    Dashboard,
    DashboardBuilder,
    confidence_class,
    result_bar_class,
    format_kickoff,
)

__all__ = [
    'Dashboard',
    'DashboardBuilder',
    'confidence_class',
    'result_bar_class',
    'format_kickoff',
]

__version__ = '1.0.0'
