"""
Core data structures for the Monte Carlo death-count analysis.

Risk vectors, run matrices, stability verdicts, confidence bounds,
analysis results and the error types raised by the core.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Optional, Sequence, Union
import numpy as np


# Fraction of probability mass in each tail outside the 95% interval
DEFAULT_TAIL_PROBABILITY = 0.025


# =============================================================================
# Errors
# =============================================================================

class InvalidInputError(ValueError):
    """Risk vector is empty, unparseable, or contains values outside [0, 1]."""


class NonConvergenceError(RuntimeError):
    """
    Escalation stopped before both stability tests passed.

    Attributes:
        reason: Which bound stopped the loop (max_simulations, max_rounds, time_budget)
        result: Best-effort AnalysisResult from the last attempted resolution,
                tagged NOT_CONVERGED
    """

    def __init__(self, reason: str, result: 'AnalysisResult'):
        self.reason = reason
        self.result = result
        super().__init__(
            f"Confidence bounds did not stabilise ({reason}) after "
            f"{result.n_rounds} rounds, last resolution {result.simulations} simulations per run"
        )


# =============================================================================
# Inputs
# =============================================================================

@dataclass(frozen=True)
class RiskVector:
    """
    Immutable per-individual death probabilities.

    Order is kept for traceability; it does not affect the distribution.
    """
    probabilities: np.ndarray  # [n] float64, read-only

    def __post_init__(self) -> None:
        probs = np.array(self.probabilities, dtype=np.float64).ravel()
        probs.setflags(write=False)
        object.__setattr__(self, 'probabilities', probs)

    def __len__(self) -> int:
        return len(self.probabilities)

    @property
    def n(self) -> int:
        return len(self.probabilities)

    @property
    def expected_deaths(self) -> float:
        """Mean of the Poisson-binomial death count (sum of risks)."""
        return float(self.probabilities.sum())

    @classmethod
    def from_values(cls, values: Union['RiskVector', Sequence[float], np.ndarray]) -> 'RiskVector':
        if isinstance(values, RiskVector):
            return values
        return cls(probabilities=np.asarray(values, dtype=np.float64))


@dataclass
class ConvergenceConfig:
    """
    Escalation loop settings.

    Attributes:
        n_runs: Runs per resolution level (R)
        initial_simulations: Simulations per run at the first level (S0)
        growth_factor: Multiplier applied to S after a failed level
        max_simulations: Highest S the loop may attempt
        max_rounds: Optional cap on the number of levels attempted
        time_budget_seconds: Optional wall-clock budget, checked between levels
        tail_probability: Mass in each tail outside the confidence interval
        batch_size: Trials drawn per vectorized block (None = auto)
    """
    n_runs: int = 100
    initial_simulations: int = 1000
    growth_factor: int = 10
    max_simulations: int = 10_000_000
    max_rounds: Optional[int] = None
    time_budget_seconds: Optional[float] = None
    tail_probability: float = DEFAULT_TAIL_PROBABILITY
    batch_size: Optional[int] = None

    def __post_init__(self) -> None:
        if self.n_runs < 1:
            raise ValueError("ConvergenceConfig.n_runs must be at least 1.")
        if self.initial_simulations < 1:
            raise ValueError("ConvergenceConfig.initial_simulations must be positive.")
        if self.growth_factor < 2:
            raise ValueError(
                "ConvergenceConfig.growth_factor must be at least 2 so that "
                "resolution strictly increases after a failed round."
            )
        if self.max_simulations < self.initial_simulations:
            raise ValueError(
                "ConvergenceConfig.max_simulations must be >= initial_simulations."
            )
        if self.max_rounds is not None and self.max_rounds < 1:
            raise ValueError("ConvergenceConfig.max_rounds must be positive when set.")
        if self.time_budget_seconds is not None and self.time_budget_seconds < 0:
            raise ValueError("ConvergenceConfig.time_budget_seconds cannot be negative.")
        if not 0.0 < self.tail_probability < 0.5:
            raise ValueError("ConvergenceConfig.tail_probability must lie in (0, 0.5).")
        if self.batch_size is not None and self.batch_size < 1:
            raise ValueError("ConvergenceConfig.batch_size must be positive when set.")

    def to_dict(self) -> Dict:
        return {
            'n_runs': self.n_runs,
            'initial_simulations': self.initial_simulations,
            'growth_factor': self.growth_factor,
            'max_simulations': self.max_simulations,
            'max_rounds': self.max_rounds,
            'time_budget_seconds': self.time_budget_seconds,
            'tail_probability': self.tail_probability,
            'batch_size': self.batch_size,
        }


# =============================================================================
# Intermediate results
# =============================================================================

@dataclass(frozen=True)
class ProgressEvent:
    """Emitted after each completed run. Read-only side channel."""
    round_index: int
    simulations: int
    runs_completed: int
    runs_total: int

    @property
    def fraction_complete(self) -> float:
        return self.runs_completed / self.runs_total if self.runs_total > 0 else 1.0


@dataclass(frozen=True)
class StabilityVerdict:
    """
    Outcome of the two cross-run stability tests.

    test1_failed: runs disagree on which counts lie below the lower limit
    test2_failed: runs disagree on which counts lie above the upper limit
    """
    test1_failed: bool
    test2_failed: bool

    @property
    def converged(self) -> bool:
        return not (self.test1_failed or self.test2_failed)


@dataclass(frozen=True)
class RoundRecord:
    """One attempted resolution level."""
    round_index: int
    simulations: int
    verdict: StabilityVerdict
    elapsed_seconds: float

    def to_dict(self) -> Dict:
        return {
            'round_index': self.round_index,
            'simulations': self.simulations,
            'test1_failed': self.verdict.test1_failed,
            'test2_failed': self.verdict.test2_failed,
            'elapsed_seconds': self.elapsed_seconds,
        }


class AnalysisStatus(Enum):
    CONVERGED = "converged"
    NOT_CONVERGED = "not_converged"


@dataclass(frozen=True)
class ConfidenceBounds:
    """
    Tail exclusion counts for the merged distribution.

    Attributes:
        lower_count: Death counts whose cumulative mass is below the lower tail
        upper_count: Death counts whose reverse-cumulative mass is below the upper tail
        n: Number of individuals (largest possible death count)
    """
    lower_count: int
    upper_count: int
    n: int

    @property
    def interval(self) -> tuple:
        """Inclusive (low, high) death counts inside the confidence interval."""
        return (self.lower_count, self.n - self.upper_count)

    @property
    def outside_mask(self) -> np.ndarray:
        """[n+1] bool, True where a death count lies outside the interval."""
        idx = np.arange(self.n + 1)
        return (idx < self.lower_count) | (idx > self.n - self.upper_count)


# =============================================================================
# Final output
# =============================================================================

@dataclass
class AnalysisResult:
    """
    Merged distribution, confidence bounds and diagnostics for one analysis.

    Attributes:
        status: CONVERGED, or NOT_CONVERGED for a best-effort result
        distribution: [n+1] float64, P(exactly d deaths)
        bounds: Confidence bounds derived from the distribution
        simulations: Simulations per run at the final resolution
        runs: Runs per resolution level
        rounds: History of every attempted level
        seed: Root seed of the escalation (fresh entropy when none was given)
        elapsed_seconds: Wall-clock time for the whole escalation
        stop_reason: Why a NOT_CONVERGED analysis stopped
    """
    status: AnalysisStatus
    distribution: np.ndarray
    bounds: ConfidenceBounds
    simulations: int
    runs: int
    rounds: List[RoundRecord] = field(default_factory=list)
    seed: Optional[int] = None
    elapsed_seconds: float = 0.0
    stop_reason: Optional[str] = None

    @property
    def converged(self) -> bool:
        return self.status is AnalysisStatus.CONVERGED

    @property
    def n(self) -> int:
        return len(self.distribution) - 1

    @property
    def n_rounds(self) -> int:
        return len(self.rounds)

    @property
    def total_trials(self) -> int:
        """Trials merged into the final distribution (runs x simulations)."""
        return self.runs * self.simulations

    def to_dict(self) -> Dict:
        """Convert to serializable dict."""
        low, high = self.bounds.interval
        return {
            'status': self.status.value,
            'converged': self.converged,
            'stop_reason': self.stop_reason,
            'n_individuals': self.n,
            'distribution': [float(p) for p in self.distribution],
            'lower_count': self.bounds.lower_count,
            'upper_count': self.bounds.upper_count,
            'interval': [low, high],
            'simulations': self.simulations,
            'runs': self.runs,
            'n_rounds': self.n_rounds,
            'rounds': [r.to_dict() for r in self.rounds],
            'seed': self.seed,
            'elapsed_seconds': self.elapsed_seconds,
        }
