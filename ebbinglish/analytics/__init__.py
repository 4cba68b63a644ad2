"""
Analytics package exports.
"""

from ebbinglish.analytics.heatmap import build_heatmap
from ebbinglish.analytics.service import build_stats_dashboard
from ebbinglish.analytics.types import DifficultWord, HeatmapCell, StatsDashboard

__all__ = [
    "build_heatmap",
    "build_stats_dashboard",
    "DifficultWord",
    "HeatmapCell",
    "StatsDashboard",
]
