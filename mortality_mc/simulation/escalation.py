"""
Precision escalation loop.

Runs collection + stability evaluation at increasing resolution until both
tests pass. Every level starts from a fresh run matrix; a failed level's
matrix is discarded. The loop is bounded by a maximum resolution, an
optional round cap and an optional wall-clock budget, and ends in an
explicit NOT_CONVERGED state when any of them is hit.
"""

import time
import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional, Union
import logging

from ..types import (
    AnalysisStatus,
    ConvergenceConfig,
    RiskVector,
    RoundRecord,
)
from .engine import collect_runs, ProgressCallback, SeedLike
from .convergence import evaluate_convergence

logger = logging.getLogger(__name__)


STOP_MAX_SIMULATIONS = "max_simulations"
STOP_MAX_ROUNDS = "max_rounds"
STOP_TIME_BUDGET = "time_budget"


@dataclass
class EscalationOutcome:
    """
    Terminal state of the escalation loop.

    Attributes:
        status: CONVERGED or NOT_CONVERGED
        run_matrix: [R, n+1] histograms of the last attempted level
        simulations: Simulations per run at that level
        rounds: One record per attempted level, in order
        stop_reason: Bound that ended a NOT_CONVERGED loop
        elapsed_seconds: Wall-clock time spent in the loop
    """
    status: AnalysisStatus
    run_matrix: np.ndarray
    simulations: int
    rounds: List[RoundRecord] = field(default_factory=list)
    stop_reason: Optional[str] = None
    elapsed_seconds: float = 0.0


def _next_stop_reason(
    config: ConvergenceConfig,
    simulations: int,
    rounds_done: int,
    elapsed: float
) -> Optional[str]:
    """Return the bound that forbids another level, or None if one may start."""
    if simulations * config.growth_factor > config.max_simulations:
        return STOP_MAX_SIMULATIONS
    if config.max_rounds is not None and rounds_done >= config.max_rounds:
        return STOP_MAX_ROUNDS
    if config.time_budget_seconds is not None and elapsed >= config.time_budget_seconds:
        return STOP_TIME_BUDGET
    return None


def escalate(
    risks: Union[RiskVector, np.ndarray],
    config: Optional[ConvergenceConfig] = None,
    seed: SeedLike = None,
    progress: Optional[ProgressCallback] = None
) -> EscalationOutcome:
    """
    Drive RUNNING(S) levels until CONVERGED or NOT_CONVERGED.

    RUNNING(S) -> CONVERGED when both stability tests pass;
    RUNNING(S) -> RUNNING(growth_factor * S) when either fails and no bound
    is hit; otherwise -> NOT_CONVERGED with the last level's matrix.

    Args:
        risks: Validated risk vector
        config: Loop settings (default: ConvergenceConfig())
        seed: Root seed; each level gets a child spawned from it
        progress: Optional per-run progress callback

    Returns:
        EscalationOutcome
    """
    if config is None:
        config = ConvergenceConfig()

    root_seq = seed if isinstance(seed, np.random.SeedSequence) else np.random.SeedSequence(seed)

    simulations = config.initial_simulations
    rounds: List[RoundRecord] = []
    start = time.perf_counter()

    while True:
        round_index = len(rounds)
        round_start = time.perf_counter()
        logger.info("%d simulations running (round %d)", simulations, round_index + 1)

        round_seed = root_seq.spawn(1)[0]
        run_matrix = collect_runs(
            risks,
            simulations,
            n_runs=config.n_runs,
            seed=round_seed,
            progress=progress,
            round_index=round_index,
            batch_size=config.batch_size,
        )

        verdict = evaluate_convergence(run_matrix, config.tail_probability)
        rounds.append(RoundRecord(
            round_index=round_index,
            simulations=simulations,
            verdict=verdict,
            elapsed_seconds=time.perf_counter() - round_start,
        ))

        elapsed = time.perf_counter() - start

        if verdict.converged:
            logger.info(
                "Both stability tests passed at %d simulations per run after %d rounds",
                simulations, len(rounds)
            )
            return EscalationOutcome(
                status=AnalysisStatus.CONVERGED,
                run_matrix=run_matrix,
                simulations=simulations,
                rounds=rounds,
                elapsed_seconds=elapsed,
            )

        logger.info(
            "At least one stability test failed (lower=%s, upper=%s)",
            verdict.test1_failed, verdict.test2_failed
        )

        stop_reason = _next_stop_reason(config, simulations, len(rounds), elapsed)
        if stop_reason is not None:
            logger.warning(
                "Stopping without convergence (%s) at %d simulations per run",
                stop_reason, simulations
            )
            return EscalationOutcome(
                status=AnalysisStatus.NOT_CONVERGED,
                run_matrix=run_matrix,
                simulations=simulations,
                rounds=rounds,
                stop_reason=stop_reason,
                elapsed_seconds=elapsed,
            )

        simulations *= config.growth_factor
