"""Monte Carlo simulation engine and convergence loop."""

from .engine import simulate_run, collect_runs
from .convergence import evaluate_convergence, tail_agreement_counts
from .escalation import escalate, EscalationOutcome

__all__ = [
    "simulate_run",
    "collect_runs",
    "evaluate_convergence",
    "tail_agreement_counts",
    "escalate",
    "EscalationOutcome",
]
