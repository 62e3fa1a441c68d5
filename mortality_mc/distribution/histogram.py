"""
Death-count histogram arithmetic.

Fractional distributions, cumulative and reverse-cumulative sums, merging
of runs and the tail exclusion counts that delimit the confidence interval.
All functions accept a single [n+1] row or an [R, n+1] matrix and operate
along the last axis.
"""

import numpy as np
from typing import List, Dict

from ..types import ConfidenceBounds, DEFAULT_TAIL_PROBABILITY


def fractional_distribution(histograms: np.ndarray) -> np.ndarray:
    """
    Divide each histogram row by its total (the number of simulations).

    Rows with no trials stay all-zero instead of producing NaNs.
    """
    histograms = np.asarray(histograms)
    totals = histograms.sum(axis=-1, keepdims=True)
    safe_totals = np.where(totals > 0, totals, 1)
    return histograms / safe_totals


def cumulative_distribution(fractional: np.ndarray) -> np.ndarray:
    """
    Running sum left to right: P(deaths <= d).

    Clipped to 1.0 so float round-off never pushes a value above 1.
    """
    return np.minimum(np.cumsum(fractional, axis=-1), 1.0)


def reverse_cumulative_distribution(fractional: np.ndarray) -> np.ndarray:
    """
    Running sum right to left: P(deaths >= d).

    Suffix sum: cumsum of reversed, then reverse back.
    """
    suffix = np.cumsum(np.flip(fractional, axis=-1), axis=-1)
    return np.minimum(np.flip(suffix, axis=-1), 1.0)


def merge_runs(run_matrix: np.ndarray) -> np.ndarray:
    """
    Combine all runs into a single distribution.

    Equivalent to one run of R x S simulations: sum the histograms element-wise
    and normalize by the grand total.

    Args:
        run_matrix: [R, n+1] int histograms

    Returns:
        [n+1] float64 merged distribution summing to 1
    """
    combined = np.asarray(run_matrix).sum(axis=0)
    total = combined.sum()
    if total <= 0:
        raise ValueError("Cannot merge runs containing no simulations")
    return combined / total


def compute_confidence_bounds(
    distribution: np.ndarray,
    tail_probability: float = DEFAULT_TAIL_PROBABILITY
) -> ConfidenceBounds:
    """
    Count death counts lying in each excluded tail of a distribution.

    lower_count = #{d : P(deaths <= d) < tail}
    upper_count = #{d : P(deaths >= d) < tail}

    The inclusive range lower_count .. n - upper_count is inside the interval.
    """
    distribution = np.asarray(distribution, dtype=np.float64)
    below_lower = cumulative_distribution(distribution) < tail_probability
    above_upper = reverse_cumulative_distribution(distribution) < tail_probability

    return ConfidenceBounds(
        lower_count=int(np.count_nonzero(below_lower)),
        upper_count=int(np.count_nonzero(above_upper)),
        n=len(distribution) - 1,
    )


def build_bar_data(distribution: np.ndarray, bounds: ConfidenceBounds) -> List[Dict]:
    """
    Presenter-ready rows, one per death count.

    Bars flagged ``outside_ci`` are drawn red by the chart, the rest green.
    """
    outside = bounds.outside_mask
    return [
        {
            'deaths': d,
            'probability': float(p),
            'outside_ci': bool(outside[d]),
        }
        for d, p in enumerate(distribution)
    ]
