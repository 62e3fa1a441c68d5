"""
Tests for data/loader.py - reading and validating risk predictions.
"""

import numpy as np
import pytest

from mortality_mc.types import InvalidInputError, RiskVector
from mortality_mc.data.loader import load_risk_vector, validate_risk_vector


class TestValidateRiskVector:

    def test_valid_values(self):
        risks = validate_risk_vector([0.0, 0.25, 1.0])
        assert isinstance(risks, RiskVector)
        assert risks.n == 3
        assert risks.expected_deaths == pytest.approx(1.25)

    def test_result_is_read_only(self):
        risks = validate_risk_vector([0.1, 0.2])
        with pytest.raises(ValueError):
            risks.probabilities[0] = 0.9

    def test_empty_rejected(self):
        with pytest.raises(InvalidInputError, match="empty"):
            validate_risk_vector([])

    def test_out_of_range_rejected(self):
        with pytest.raises(InvalidInputError, match="outside"):
            validate_risk_vector([0.2, 1.5, 0.3])

    def test_infinite_rejected(self):
        with pytest.raises(InvalidInputError, match="non-finite"):
            validate_risk_vector([0.2, np.inf])

    def test_non_numeric_rejected(self):
        with pytest.raises(InvalidInputError):
            validate_risk_vector(["high", "low"])


class TestLoadRiskVector:

    def test_single_row(self, tmp_path):
        path = tmp_path / "mortality.csv"
        path.write_text("0.1,0.2,0.35,0.05\n")

        risks = load_risk_vector(path)
        np.testing.assert_allclose(risks.probabilities, [0.1, 0.2, 0.35, 0.05])

    def test_single_column(self, tmp_path):
        path = tmp_path / "mortality.csv"
        path.write_text("0.1\n0.2\n0.3\n")

        risks = load_risk_vector(path)
        np.testing.assert_allclose(risks.probabilities, [0.1, 0.2, 0.3])

    def test_trailing_comma_ignored(self, tmp_path):
        path = tmp_path / "mortality.csv"
        path.write_text("0.1,0.2,0.3,\n")

        assert load_risk_vector(path).n == 3

    def test_order_preserved(self, tmp_path):
        path = tmp_path / "mortality.csv"
        path.write_text("0.9,0.1,0.5\n")

        np.testing.assert_allclose(load_risk_vector(path).probabilities, [0.9, 0.1, 0.5])

    def test_non_numeric_cell(self, tmp_path):
        path = tmp_path / "mortality.csv"
        path.write_text("0.1,abc,0.3\n")

        with pytest.raises(InvalidInputError, match="abc"):
            load_risk_vector(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "mortality.csv"
        path.write_text("")

        with pytest.raises(InvalidInputError):
            load_risk_vector(path)

    def test_percentages_rejected(self, tmp_path):
        """Risks must be fractions of 1, not percentages."""
        path = tmp_path / "mortality.csv"
        path.write_text("12,45,3\n")

        with pytest.raises(InvalidInputError, match="outside"):
            load_risk_vector(path)

    @pytest.mark.parametrize("marker", ["NaN", "NA", "nan", "null", "N/A"])
    def test_missing_value_marker_rejected(self, tmp_path, marker):
        """A patient written as a missing-value marker is an error, not a dropped row."""
        path = tmp_path / "mortality.csv"
        path.write_text(f"0.5,{marker},0.3\n")

        with pytest.raises(InvalidInputError, match="Non-numeric"):
            load_risk_vector(path)

    def test_padded_values(self, tmp_path):
        path = tmp_path / "mortality.csv"
        path.write_text("0.1, 0.2, 0.3\n")

        np.testing.assert_allclose(load_risk_vector(path).probabilities, [0.1, 0.2, 0.3])
