"""
Monte Carlo simulation engine for death counts.

Each trial draws one uniform variate per individual; an individual dies when
its variate falls below its risk. A run tallies the number of deaths in each
of its trials into a histogram over 0..n.
"""

import numpy as np
from typing import Callable, Optional, Union
import logging

from ..types import ProgressEvent, RiskVector

logger = logging.getLogger(__name__)


# Upper bound on uniform variates drawn per vectorized block
MAX_BLOCK_VARIATES = 1 << 22

ProgressCallback = Callable[[ProgressEvent], None]
SeedLike = Union[None, int, np.random.SeedSequence]


def default_batch_size(n_individuals: int) -> int:
    """Trials per block so that a block holds about MAX_BLOCK_VARIATES variates."""
    return max(1, MAX_BLOCK_VARIATES // max(n_individuals, 1))


def simulate_run(
    risks: np.ndarray,
    n_simulations: int,
    rng: np.random.Generator,
    batch_size: Optional[int] = None
) -> np.ndarray:
    """
    Simulate one run and return its death-count histogram.

    Trials are drawn in blocks of ``batch_size`` rows to bound memory. For a
    given generator state and batch size the histogram is reproducible.

    Args:
        risks: [n] float64 death probabilities
        n_simulations: Number of trials in the run (S)
        rng: Generator supplying the uniform variates
        batch_size: Trials per block (default: about 4M variates per block)

    Returns:
        histogram: [n+1] int64, histogram[d] = trials with exactly d deaths
    """
    risks = np.asarray(risks, dtype=np.float64)
    n = len(risks)
    histogram = np.zeros(n + 1, dtype=np.int64)

    if n_simulations <= 0:
        return histogram

    if n == 0:
        histogram[0] = n_simulations
        return histogram

    if batch_size is None:
        batch_size = default_batch_size(n)

    remaining = n_simulations
    while remaining > 0:
        rows = min(batch_size, remaining)
        deaths = (rng.random((rows, n)) < risks).sum(axis=1)
        histogram += np.bincount(deaths, minlength=n + 1)
        remaining -= rows

    return histogram


def collect_runs(
    risks: Union[RiskVector, np.ndarray],
    n_simulations: int,
    n_runs: int = 100,
    seed: SeedLike = None,
    progress: Optional[ProgressCallback] = None,
    round_index: int = 0,
    batch_size: Optional[int] = None
) -> np.ndarray:
    """
    Execute ``n_runs`` independent runs at one resolution.

    Every run draws from its own child generator spawned from a single
    SeedSequence, so the matrix is reproducible for a fixed seed and does not
    depend on the order runs execute in.

    Args:
        risks: Risk vector (or [n] probabilities)
        n_simulations: Trials per run (S)
        n_runs: Number of runs (R)
        seed: Random seed (accepts int or SeedSequence)
        progress: Optional callback receiving a ProgressEvent after each run
        round_index: Escalation level, forwarded to progress events
        batch_size: Trials per vectorized block

    Returns:
        run_matrix: [n_runs, n+1] int64 histograms
    """
    if isinstance(risks, RiskVector):
        risks = risks.probabilities
    n = len(risks)

    seed_seq = seed if isinstance(seed, np.random.SeedSequence) else np.random.SeedSequence(seed)
    run_seeds = seed_seq.spawn(n_runs)

    run_matrix = np.zeros((n_runs, n + 1), dtype=np.int64)

    for run_idx, run_seed in enumerate(run_seeds):
        rng = np.random.default_rng(run_seed)
        run_matrix[run_idx] = simulate_run(risks, n_simulations, rng, batch_size=batch_size)
        logger.debug("Run %d/%d complete (%d simulations)", run_idx + 1, n_runs, n_simulations)

        if progress is not None:
            progress(ProgressEvent(
                round_index=round_index,
                simulations=n_simulations,
                runs_completed=run_idx + 1,
                runs_total=n_runs,
            ))

    return run_matrix
