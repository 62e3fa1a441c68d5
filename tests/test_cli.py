"""
Tests for cli.py and export.py - command line runs and written outputs.
"""

import csv
import json

import pytest
from click.testing import CliRunner

from mortality_mc.cli import main, EXIT_NOT_CONVERGED
from mortality_mc.export import default_output_paths


@pytest.fixture
def runner():
    return CliRunner()


def _write_csv(tmp_path, text, name="patients.csv"):
    path = tmp_path / name
    path.write_text(text)
    return path


def _read_rows(path):
    with open(path, newline='') as f:
        return list(csv.DictReader(f))


class TestCli:

    def test_converged_run_writes_distribution(self, runner, tmp_path):
        input_path = _write_csv(tmp_path, "1.0,1.0\n")

        result = runner.invoke(main, [str(input_path), '--seed', '1', '--quiet', '--no-progress'])

        assert result.exit_code == 0, result.output
        assert "range 2 to 2" in result.output

        csv_path, _ = default_output_paths(input_path)
        rows = _read_rows(csv_path)
        assert [int(r['deaths']) for r in rows] == [0, 1, 2]
        assert [r['outside_ci'] for r in rows] == ['True', 'True', 'False']
        assert float(rows[2]['probability']) == 1.0

    def test_json_output(self, runner, tmp_path):
        input_path = _write_csv(tmp_path, "0.5,0.5\n")
        json_path = tmp_path / "out.json"
        csv_path = tmp_path / "dist.csv"

        result = runner.invoke(main, [
            str(input_path), '--seed', '3', '--runs', '20', '--quiet', '--no-progress',
            '--output', str(csv_path), '--json', str(json_path),
        ])

        assert result.exit_code == 0, result.output
        data = json.loads(json_path.read_text())
        assert data['status'] == 'converged'
        assert data['runs'] == 20
        assert data['interval'] == [0, 2]
        assert data['diagnostics']['final_simulations'] == 1000
        assert len(_read_rows(csv_path)) == 3

    def test_not_converged_exits_without_output(self, runner, tmp_path):
        input_path = _write_csv(tmp_path, "0.975\n")

        result = runner.invoke(main, [
            str(input_path), '--seed', '0', '--runs', '30', '--max-sims', '1000',
            '--quiet', '--no-progress',
        ])

        assert result.exit_code == EXIT_NOT_CONVERGED
        csv_path, _ = default_output_paths(input_path)
        assert not csv_path.exists()

    def test_allow_unconverged_writes_best_effort(self, runner, tmp_path):
        input_path = _write_csv(tmp_path, "0.975\n")

        result = runner.invoke(main, [
            str(input_path), '--seed', '0', '--runs', '30', '--max-rounds', '1',
            '--allow-unconverged', '--quiet', '--no-progress',
        ])

        assert result.exit_code == EXIT_NOT_CONVERGED
        assert "NOT CONVERGED" in result.output
        csv_path, _ = default_output_paths(input_path)
        assert len(_read_rows(csv_path)) == 2

    def test_invalid_risks_are_usage_error(self, runner, tmp_path):
        input_path = _write_csv(tmp_path, "0.2,1.5\n")

        result = runner.invoke(main, [str(input_path), '--quiet', '--no-progress'])

        assert result.exit_code == 2
        assert "outside" in result.output

    def test_inconsistent_overrides_rejected(self, runner, tmp_path):
        input_path = _write_csv(tmp_path, "0.5\n")

        result = runner.invoke(main, [
            str(input_path), '--initial-sims', '5000', '--max-sims', '1000', '--quiet',
        ])

        assert result.exit_code == 2

    def test_mistyped_config_is_usage_error(self, runner, tmp_path):
        input_path = _write_csv(tmp_path, "0.5\n")
        config_path = tmp_path / "analysis.json"
        config_path.write_text(json.dumps({
            'version': '1.0',
            'analysis': {'n_runs': "10"},
        }))

        result = runner.invoke(main, [
            str(input_path), '--config', str(config_path), '--quiet', '--no-progress',
        ])

        assert result.exit_code == 2
        assert "n_runs" in result.output

    def test_config_file_supplies_seed(self, runner, tmp_path):
        input_path = _write_csv(tmp_path, "0.3,0.6\n")
        config_path = tmp_path / "analysis.json"
        config_path.write_text(json.dumps({
            'version': '1.0',
            'analysis': {'n_runs': 10},
            'seed': 77,
        }))
        json_path = tmp_path / "out.json"

        result = runner.invoke(main, [
            str(input_path), '--config', str(config_path), '--json', str(json_path),
            '--quiet', '--no-progress',
        ])

        assert result.exit_code == 0, result.output
        data = json.loads(json_path.read_text())
        assert data['seed'] == 77
        assert data['runs'] == 10

    def test_progress_bar_enabled(self, runner, tmp_path):
        input_path = _write_csv(tmp_path, "1.0\n")

        result = runner.invoke(main, [str(input_path), '--runs', '5', '--quiet'])

        assert result.exit_code == 0, result.output


class TestOutputPaths:

    def test_results_suffix(self, tmp_path):
        csv_path, json_path = default_output_paths(tmp_path / "ward.v2.csv")
        assert csv_path.name == "ward.v2_RESULTS.csv"
        assert json_path.name == "ward.v2_RESULTS.json"
