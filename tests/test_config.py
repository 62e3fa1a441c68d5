"""
Tests for config.py and ConvergenceConfig validation.
"""

import json
import pytest

from mortality_mc.types import ConvergenceConfig
from mortality_mc.config import (
    CONVERGENCE_PRESETS,
    DEFAULT_CONVERGENCE_CONFIG,
    config_from_dict,
    get_preset,
    load_config_from_json,
    save_config_to_json,
)


class TestConvergenceConfig:

    def test_defaults_match_reference_design(self):
        config = ConvergenceConfig()
        assert config.n_runs == 100
        assert config.initial_simulations == 1000
        assert config.growth_factor == 10
        assert config.tail_probability == 0.025
        assert config.max_simulations >= config.initial_simulations

    @pytest.mark.parametrize("kwargs", [
        {'n_runs': 0},
        {'initial_simulations': 0},
        {'growth_factor': 1},
        {'max_simulations': 999},
        {'max_rounds': 0},
        {'time_budget_seconds': -1.0},
        {'tail_probability': 0.5},
        {'batch_size': 0},
    ])
    def test_invalid_settings_rejected(self, kwargs):
        with pytest.raises(ValueError):
            ConvergenceConfig(**kwargs)


class TestPresets:

    def test_standard_is_default(self):
        assert CONVERGENCE_PRESETS['standard'] == DEFAULT_CONVERGENCE_CONFIG

    def test_quick_is_bounded_in_time(self):
        assert get_preset('quick').time_budget_seconds is not None

    def test_get_preset_returns_copy(self):
        preset = get_preset('standard')
        preset.n_runs = 7
        assert CONVERGENCE_PRESETS['standard'].n_runs == 100

    def test_unknown_preset(self):
        with pytest.raises(ValueError, match="Unknown preset"):
            get_preset('turbo')


class TestJsonConfig:

    def test_save_then_load(self, tmp_path):
        path = tmp_path / "analysis.json"
        config = ConvergenceConfig(n_runs=40, max_simulations=50_000, max_rounds=3)
        save_config_to_json(config, str(path), seed=11)

        loaded, seed = load_config_from_json(str(path))
        assert loaded == config
        assert seed == 11

    def test_partial_file_uses_preset(self, tmp_path):
        path = tmp_path / "analysis.json"
        path.write_text(json.dumps({
            'version': '1.0',
            'preset': 'quick',
            'analysis': {'n_runs': 25},
        }))

        loaded, seed = load_config_from_json(str(path))
        assert loaded.n_runs == 25
        assert loaded.max_simulations == CONVERGENCE_PRESETS['quick'].max_simulations
        assert seed is None

    def test_unsupported_version(self, tmp_path):
        path = tmp_path / "analysis.json"
        path.write_text(json.dumps({'version': '0.1', 'analysis': {}}))

        with pytest.raises(ValueError, match="Unsupported config version"):
            load_config_from_json(str(path))

    def test_unknown_setting(self):
        with pytest.raises(ValueError, match="Unknown analysis settings"):
            config_from_dict({'n_sims': 10})

    def test_invalid_value_in_file(self):
        with pytest.raises(ValueError):
            config_from_dict({'growth_factor': 1})

    @pytest.mark.parametrize("data", [
        {'n_runs': "10"},
        {'max_simulations': [1000]},
        {'growth_factor': True},
    ])
    def test_mistyped_value_names_setting(self, data):
        key = next(iter(data))
        with pytest.raises(ValueError, match=key):
            config_from_dict(data)

    def test_null_required_setting_is_value_error(self):
        with pytest.raises(ValueError):
            config_from_dict({'n_runs': None})
