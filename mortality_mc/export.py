"""
Result export.

Writes the merged distribution as CSV (one row per death count) and the full
result with diagnostics as JSON.
"""

import csv
import json
from pathlib import Path
from typing import Tuple, Union

from .types import AnalysisResult
from .diagnostics import compute_diagnostics
from .distribution.histogram import build_bar_data


def default_output_paths(input_path: Union[str, Path]) -> Tuple[Path, Path]:
    """<stem>_RESULTS.csv and <stem>_RESULTS.json next to the input file."""
    input_path = Path(input_path)
    stem = input_path.stem
    return (
        input_path.with_name(f"{stem}_RESULTS.csv"),
        input_path.with_name(f"{stem}_RESULTS.json"),
    )


def write_distribution_csv(result: AnalysisResult, path: Union[str, Path]) -> Path:
    """Write deaths, probability and outside_ci columns."""
    rows = build_bar_data(result.distribution, result.bounds)

    with open(path, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=['deaths', 'probability', 'outside_ci'])
        writer.writeheader()
        writer.writerows(rows)

    return Path(path)


def write_result_json(result: AnalysisResult, path: Union[str, Path]) -> Path:
    """Write the result and its diagnostics."""
    output_data = result.to_dict()
    output_data['diagnostics'] = compute_diagnostics(result)

    with open(path, 'w') as f:
        json.dump(output_data, f, indent=2, default=str)

    return Path(path)
