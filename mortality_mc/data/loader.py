"""
CSV loader for individual risk-of-death predictions.

The expected file holds one row of comma-separated probabilities, each the
predicted mortality of one patient as a fraction of 1. Files laid out as a
column (or several rows) are flattened in row-major order.
"""

import logging
import numpy as np
import pandas as pd
from typing import Sequence, Union
from pathlib import Path

from ..types import RiskVector, InvalidInputError

logger = logging.getLogger(__name__)


def validate_risk_vector(values: Union[RiskVector, Sequence[float], np.ndarray]) -> RiskVector:
    """
    Check that a risk vector is usable before any simulation starts.

    Raises:
        InvalidInputError: If empty, non-finite, or any value is outside [0, 1]
    """
    try:
        risks = RiskVector.from_values(values)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Risk vector is not numeric: {e}") from e

    probs = risks.probabilities

    if len(probs) == 0:
        raise InvalidInputError("Risk vector is empty; at least one probability is required")

    non_finite = ~np.isfinite(probs)
    if non_finite.any():
        first = int(np.flatnonzero(non_finite)[0])
        raise InvalidInputError(
            f"Risk vector contains {int(non_finite.sum())} non-finite values "
            f"(first at position {first})"
        )

    out_of_range = (probs < 0.0) | (probs > 1.0)
    if out_of_range.any():
        first = int(np.flatnonzero(out_of_range)[0])
        raise InvalidInputError(
            f"Risk vector contains {int(out_of_range.sum())} values outside [0, 1] "
            f"(first at position {first}: {probs[first]})"
        )

    return risks


def load_risk_vector(csv_path: Union[str, Path]) -> RiskVector:
    """
    Load predicted mortalities from a CSV file.

    Args:
        csv_path: Path to the CSV (no header, values as fractions of 1)

    Returns:
        Validated RiskVector

    Raises:
        InvalidInputError: If a cell is non-numeric or the vector is invalid
    """
    # Only truly empty cells count as blanks; "NaN", "NA" and friends are bad values
    try:
        df = pd.read_csv(
            csv_path,
            header=None,
            dtype=str,
            skip_blank_lines=True,
            skipinitialspace=True,
            keep_default_na=False,
            na_values=[''],
        )
    except pd.errors.EmptyDataError as e:
        raise InvalidInputError(f"No data in {csv_path}") from e

    numeric = df.apply(pd.to_numeric, errors='coerce')
    bad_cells = numeric.isna() & df.notna()
    if bad_cells.values.any():
        row, col = np.argwhere(bad_cells.values)[0]
        raise InvalidInputError(
            f"Non-numeric value {df.iat[row, col]!r} in {csv_path} "
            f"(row {row + 1}, column {col + 1})"
        )

    # Row-major flatten; blank cells (trailing commas, ragged rows) are dropped
    values = numeric.to_numpy(dtype=np.float64).ravel()
    values = values[~np.isnan(values)]

    risks = validate_risk_vector(values)
    logger.info(
        "Loaded %d risk predictions from %s (expected deaths %.2f)",
        risks.n, csv_path, risks.expected_deaths
    )
    return risks
