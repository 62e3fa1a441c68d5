"""Histogram arithmetic and distribution merging."""

from .histogram import (
    fractional_distribution,
    cumulative_distribution,
    reverse_cumulative_distribution,
    merge_runs,
    compute_confidence_bounds,
    build_bar_data,
)

__all__ = [
    "fractional_distribution",
    "cumulative_distribution",
    "reverse_cumulative_distribution",
    "merge_runs",
    "compute_confidence_bounds",
    "build_bar_data",
]
