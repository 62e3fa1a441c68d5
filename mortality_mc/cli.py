"""
Command-line interface for the death-count Monte Carlo analysis.
"""

import click
import logging
import sys
from dataclasses import replace

from .types import InvalidInputError, NonConvergenceError, ProgressEvent
from .config import CONVERGENCE_PRESETS, get_preset, load_config_from_json
from .pipeline import run_analysis_from_csv
from .diagnostics import compute_diagnostics, format_diagnostics, interval_sentence
from .export import default_output_paths, write_distribution_csv, write_result_json

# Exit code for a best-effort (unconverged) result
EXIT_NOT_CONVERGED = 3


class _RunProgress:
    """Renders one click progress bar per escalation round."""

    def __init__(self):
        self._bar = None

    def __call__(self, event: ProgressEvent) -> None:
        if event.runs_completed == 1:
            self._bar = click.progressbar(
                length=event.runs_total,
                label=f"{event.simulations:,} simulations",
                file=sys.stderr,
            )
        self._bar.update(1)
        if event.runs_completed == event.runs_total:
            self._bar.render_finish()
            self._bar = None


@click.command()
@click.argument('risk_csv', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--config', '-c', 'config_path',
    type=click.Path(exists=True, dir_okay=False),
    help='Analysis config JSON (overrides --preset)'
)
@click.option(
    '--preset', '-p',
    type=click.Choice(list(CONVERGENCE_PRESETS.keys())),
    default='standard',
    help='Convergence preset (default: standard)'
)
@click.option(
    '--runs', '-r',
    type=int,
    help='Runs per resolution level (default: 100)'
)
@click.option(
    '--initial-sims',
    type=int,
    help='Simulations per run in the first round (default: 1000)'
)
@click.option(
    '--max-sims',
    type=int,
    help='Largest simulations per run before giving up'
)
@click.option(
    '--max-rounds',
    type=int,
    help='Maximum escalation rounds'
)
@click.option(
    '--time-budget',
    type=float,
    help='Wall-clock budget in seconds, checked between rounds'
)
@click.option(
    '--seed',
    type=int,
    help='Random seed for reproducibility'
)
@click.option(
    '--output', '-o',
    type=click.Path(dir_okay=False),
    help='Distribution CSV path (default: <input>_RESULTS.csv)'
)
@click.option(
    '--json', 'json_output',
    type=click.Path(dir_okay=False),
    help='Also write result + diagnostics JSON to this path'
)
@click.option(
    '--allow-unconverged',
    is_flag=True,
    default=False,
    help='Write best-effort results when the bounds do not stabilise'
)
@click.option(
    '--progress/--no-progress',
    default=True,
    help='Show a progress bar per round'
)
@click.option(
    '--verbose/--quiet', '-v/-q',
    default=True,
    help='Verbose output'
)
def main(
    risk_csv,
    config_path,
    preset,
    runs,
    initial_sims,
    max_sims,
    max_rounds,
    time_budget,
    seed,
    output,
    json_output,
    allow_unconverged,
    progress,
    verbose
):
    """
    Estimate the distribution of the number of deaths and its 95% interval.

    RISK_CSV: CSV holding one predicted mortality (fraction of 1) per patient
    """
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    # Load configuration: file > preset, then command-line overrides
    if config_path:
        try:
            config, file_seed = load_config_from_json(config_path)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="'--config'")
        if seed is None:
            seed = file_seed
    else:
        config = get_preset(preset)

    overrides = {
        'n_runs': runs,
        'initial_simulations': initial_sims,
        'max_simulations': max_sims,
        'max_rounds': max_rounds,
        'time_budget_seconds': time_budget,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    try:
        config = replace(config, **overrides)
    except ValueError as e:
        raise click.BadParameter(str(e))

    click.echo("Running analysis...")
    click.echo(f"  Input: {risk_csv}")
    click.echo(f"  Runs per round: {config.n_runs}")
    click.echo(f"  Simulations: {config.initial_simulations:,} -> max {config.max_simulations:,}")
    if config.max_rounds is not None:
        click.echo(f"  Max rounds: {config.max_rounds}")
    if config.time_budget_seconds is not None:
        click.echo(f"  Time budget: {config.time_budget_seconds:.0f}s")
    if seed is not None:
        click.echo(f"  Seed: {seed}")

    try:
        result = run_analysis_from_csv(
            risk_csv,
            config=config,
            seed=seed,
            progress=_RunProgress() if progress else None,
            raise_on_nonconvergence=not allow_unconverged,
        )
    except InvalidInputError as e:
        raise click.BadParameter(str(e), param_hint="'RISK_CSV'")
    except NonConvergenceError as e:
        click.echo(f"Error: {e}", err=True)
        click.echo("Re-run with a larger --max-sims or with --allow-unconverged.", err=True)
        sys.exit(EXIT_NOT_CONVERGED)

    diag = compute_diagnostics(result)
    click.echo("\n" + format_diagnostics(diag))
    click.echo("\n" + interval_sentence(result))

    default_csv, _ = default_output_paths(risk_csv)
    csv_output = output or default_csv
    write_distribution_csv(result, csv_output)
    click.echo(f"\nDistribution exported to {csv_output}")

    if json_output:
        write_result_json(result, json_output)
        click.echo(f"Diagnostics saved to {json_output}")

    if not result.converged:
        click.echo(
            "Warning: results are best-effort; the confidence bounds did not stabilise.",
            err=True
        )
        sys.exit(EXIT_NOT_CONVERGED)


if __name__ == '__main__':
    main()
