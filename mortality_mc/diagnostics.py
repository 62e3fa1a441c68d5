"""
Analysis diagnostics.

Summary statistics of the merged distribution, interval coverage and the
escalation history, plus console formatting.
"""

import numpy as np
from typing import Dict

from .types import AnalysisResult


def compute_distribution_summary(distribution: np.ndarray) -> Dict:
    """Mean, standard deviation and mode of a death-count distribution."""
    distribution = np.asarray(distribution, dtype=np.float64)
    deaths = np.arange(len(distribution))

    mean = float(np.dot(deaths, distribution))
    variance = float(np.dot((deaths - mean) ** 2, distribution))

    return {
        'mean_deaths': mean,
        'std_deaths': float(np.sqrt(max(variance, 0.0))),
        'mode_deaths': int(np.argmax(distribution)),
    }


def compute_diagnostics(result: AnalysisResult) -> Dict:
    """
    Collect everything a reader needs to judge an analysis.

    Coverage is the merged probability mass inside the interval; it is at
    least 0.95 by construction of the tail counts.
    """
    low, high = result.bounds.interval
    coverage = float(result.distribution[low:high + 1].sum()) if high >= low else 0.0

    diag = {
        'status': result.status.value,
        'converged': result.converged,
        'stop_reason': result.stop_reason,
        'n_individuals': result.n,
        'interval_low': low,
        'interval_high': high,
        'interval_coverage': coverage,
        'lower_count': result.bounds.lower_count,
        'upper_count': result.bounds.upper_count,
        'final_simulations': result.simulations,
        'runs': result.runs,
        'total_trials': result.total_trials,
        'n_rounds': result.n_rounds,
        'rounds': [r.to_dict() for r in result.rounds],
        'elapsed_seconds': result.elapsed_seconds,
    }
    diag.update(compute_distribution_summary(result.distribution))
    return diag


def interval_sentence(result: AnalysisResult) -> str:
    """Plain-language reading of the confidence interval."""
    low, high = result.bounds.interval
    return (
        f"If the observed number of deaths is in the range {low} to {high}, "
        f"it lies within the 95% confidence intervals."
    )


def format_diagnostics(diag: Dict) -> str:
    """Format diagnostics dict into readable console output."""
    lines = []
    lines.append("DEATH-COUNT DISTRIBUTION")
    lines.append("=" * 60)

    status = "converged" if diag['converged'] else f"NOT CONVERGED ({diag['stop_reason']})"
    lines.append(f"  Status:           {status}")
    lines.append(f"  Individuals:      {diag['n_individuals']}")
    lines.append(
        f"  Expected deaths:  {diag['mean_deaths']:.2f} "
        f"(sd {diag['std_deaths']:.2f}, mode {diag['mode_deaths']})"
    )
    lines.append(
        f"  95% interval:     {diag['interval_low']} to {diag['interval_high']} deaths "
        f"({diag['interval_coverage']:.2%} of mass)"
    )
    lines.append(
        f"  Resolution:       {diag['final_simulations']:,} simulations x "
        f"{diag['runs']} runs"
    )

    lines.append(f"\n  Escalation ({diag['n_rounds']} rounds, {diag['elapsed_seconds']:.1f}s):")
    for r in diag['rounds']:
        lower = "FAIL" if r['test1_failed'] else "pass"
        upper = "FAIL" if r['test2_failed'] else "pass"
        lines.append(
            f"    {r['round_index'] + 1}. {r['simulations']:>12,} sims  "
            f"lower {lower}  upper {upper}  ({r['elapsed_seconds']:.1f}s)"
        )

    return "\n".join(lines)
