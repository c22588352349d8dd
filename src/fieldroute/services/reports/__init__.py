"""Optimization report exports."""

from .summary import (
    build_fleet_summary,
    efficiency_score,
    estimate_savings,
    route_violations,
    summarize_route,
    unoptimized_baseline,
)

__all__ = [
    "build_fleet_summary",
    "efficiency_score",
    "estimate_savings",
    "route_violations",
    "summarize_route",
    "unoptimized_baseline",
]
