"""
Cross-run stability tests for the confidence interval boundaries.

A resolution is accepted only when every run agrees, death count by death
count, on which counts fall in each excluded tail. Disagreement means the
boundary still moves with resampling noise and more simulations are needed.
"""

import numpy as np
from typing import Tuple
import logging

from ..types import StabilityVerdict, DEFAULT_TAIL_PROBABILITY
from ..distribution.histogram import (
    fractional_distribution,
    cumulative_distribution,
    reverse_cumulative_distribution,
)

logger = logging.getLogger(__name__)


def tail_agreement_counts(
    run_matrix: np.ndarray,
    tail_probability: float = DEFAULT_TAIL_PROBABILITY
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Count, per death count, how many runs place it in each excluded tail.

    Args:
        run_matrix: [R, n+1] int histograms
        tail_probability: Mass in each tail (0.025 for a 95% interval)

    Returns:
        below_counts: [n+1] runs with cumulative[d] < tail
        above_counts: [n+1] runs with reverse_cumulative[d] < tail
    """
    fractional = fractional_distribution(run_matrix)

    below_lci = cumulative_distribution(fractional) < tail_probability
    above_uci = reverse_cumulative_distribution(fractional) < tail_probability

    return below_lci.sum(axis=0), above_uci.sum(axis=0)


def _runs_disagree(counts: np.ndarray, n_runs: int) -> bool:
    """True if some death count is in the tail for some runs but not all."""
    return bool(np.any((counts != 0) & (counts != n_runs)))


def evaluate_convergence(
    run_matrix: np.ndarray,
    tail_probability: float = DEFAULT_TAIL_PROBABILITY
) -> StabilityVerdict:
    """
    Apply both stability tests to one resolution level.

    Test 1: the highest death count below the lower limit must be the same
    for all runs. Test 2: the lowest death count above the upper limit must
    be the same for all runs.

    Args:
        run_matrix: [R, n+1] int histograms from collect_runs
        tail_probability: Mass in each tail (0.025 for a 95% interval)

    Returns:
        StabilityVerdict with test1_failed / test2_failed
    """
    run_matrix = np.atleast_2d(run_matrix)
    n_runs = run_matrix.shape[0]

    below_counts, above_counts = tail_agreement_counts(run_matrix, tail_probability)

    verdict = StabilityVerdict(
        test1_failed=_runs_disagree(below_counts, n_runs),
        test2_failed=_runs_disagree(above_counts, n_runs),
    )

    logger.debug(
        "Stability tests: lower=%s, upper=%s",
        "failed" if verdict.test1_failed else "passed",
        "failed" if verdict.test2_failed else "passed",
    )

    return verdict
