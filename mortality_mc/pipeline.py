"""
Full analysis pipeline.

Wires validation, the escalation loop and the distribution merger together
for end-to-end execution.
"""

import numpy as np
from typing import Optional, Sequence, Union
import logging

from .types import (
    AnalysisResult,
    AnalysisStatus,
    ConvergenceConfig,
    NonConvergenceError,
    RiskVector,
)
from .data.loader import load_risk_vector, validate_risk_vector
from .simulation.engine import ProgressCallback
from .simulation.escalation import escalate
from .distribution.histogram import merge_runs, compute_confidence_bounds

logger = logging.getLogger(__name__)


def run_analysis(
    risks: Union[RiskVector, Sequence[float], np.ndarray],
    config: Optional[ConvergenceConfig] = None,
    seed: Optional[int] = None,
    progress: Optional[ProgressCallback] = None,
    raise_on_nonconvergence: bool = True
) -> AnalysisResult:
    """
    Estimate the death-count distribution and its 95% confidence interval.

    Steps:
    1. Validate the risk vector
    2. Escalate resolution until the interval boundaries are stable
    3. Merge all runs of the final level into one distribution
    4. Derive the confidence bounds

    Args:
        risks: Per-individual death probabilities in [0, 1]
        config: Escalation settings (default: ConvergenceConfig())
        seed: Random seed (default: fresh entropy, recorded in the result)
        progress: Optional callback receiving a ProgressEvent after each run
        raise_on_nonconvergence: If False, return the best-effort result
            tagged NOT_CONVERGED instead of raising

    Returns:
        AnalysisResult

    Raises:
        InvalidInputError: Before any simulation, if the risk vector is invalid
        NonConvergenceError: If a bound was hit first and raise_on_nonconvergence
    """
    risk_vector = validate_risk_vector(risks)
    if config is None:
        config = ConvergenceConfig()
    if seed is None:
        # Record fresh entropy so any run can be reproduced from its result
        seed = int(np.random.SeedSequence().entropy)

    logger.info(
        "Analysing %d individuals (expected deaths %.2f), %d runs per level",
        risk_vector.n, risk_vector.expected_deaths, config.n_runs
    )

    outcome = escalate(risk_vector, config, seed=seed, progress=progress)

    distribution = merge_runs(outcome.run_matrix)
    bounds = compute_confidence_bounds(distribution, config.tail_probability)

    result = AnalysisResult(
        status=outcome.status,
        distribution=distribution,
        bounds=bounds,
        simulations=outcome.simulations,
        runs=config.n_runs,
        rounds=outcome.rounds,
        seed=seed,
        elapsed_seconds=outcome.elapsed_seconds,
        stop_reason=outcome.stop_reason,
    )

    low, high = bounds.interval
    logger.info(
        "%s: %d-%d deaths inside the 95%% interval (%d simulations x %d runs, %.1fs)",
        "Converged" if result.converged else "Not converged",
        low, high, result.simulations, result.runs, result.elapsed_seconds
    )

    if outcome.status is AnalysisStatus.NOT_CONVERGED and raise_on_nonconvergence:
        raise NonConvergenceError(outcome.stop_reason, result)

    return result


def run_analysis_from_csv(
    csv_path: str,
    config: Optional[ConvergenceConfig] = None,
    seed: Optional[int] = None,
    progress: Optional[ProgressCallback] = None,
    raise_on_nonconvergence: bool = True
) -> AnalysisResult:
    """Load a risk vector from CSV and run the full analysis on it."""
    logger.info(f"Loading risk predictions from {csv_path}...")
    risks = load_risk_vector(csv_path)
    return run_analysis(
        risks,
        config=config,
        seed=seed,
        progress=progress,
        raise_on_nonconvergence=raise_on_nonconvergence,
    )
