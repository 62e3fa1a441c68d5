"""
Configuration management for the death-count Monte Carlo analysis.

Convergence presets, the default loop settings, and versioned JSON
loading/saving so a run can be reproduced from a single file.

Config file format:
{
    "version": "1.0",
    "analysis": {
        "n_runs": 100,
        "initial_simulations": 1000,
        ...
    },
    "seed": 42
}
"""

import json
from typing import Dict, Any, Optional, Tuple
from dataclasses import fields, replace

from .types import ConvergenceConfig


CONFIG_VERSION = "1.0"


# =============================================================================
# Convergence Presets
# =============================================================================

DEFAULT_CONVERGENCE_CONFIG = ConvergenceConfig()

CONVERGENCE_PRESETS: Dict[str, ConvergenceConfig] = {
    # 100 runs, 1000 -> 10M simulations per run, no time limit.
    'standard': DEFAULT_CONVERGENCE_CONFIG,

    # Interactive use: stops after 100k simulations per run or two minutes.
    'quick': ConvergenceConfig(
        max_simulations=100_000,
        time_budget_seconds=120.0,
    ),

    # Very large cohorts or probabilities sitting on a tail boundary.
    'thorough': ConvergenceConfig(
        max_simulations=100_000_000,
    ),
}


def get_preset(name: str) -> ConvergenceConfig:
    """Look up a preset by name (returns a copy)."""
    if name not in CONVERGENCE_PRESETS:
        raise ValueError(
            f"Unknown preset '{name}'. Available: {', '.join(CONVERGENCE_PRESETS)}"
        )
    return replace(CONVERGENCE_PRESETS[name])


# =============================================================================
# JSON Loading Utilities
# =============================================================================

_CONFIG_FIELDS = {f.name for f in fields(ConvergenceConfig)}


def _validate_version(config: Dict[str, Any]) -> None:
    """Validate config file version."""
    version = config.get('version', CONFIG_VERSION)
    if version != CONFIG_VERSION:
        raise ValueError(
            f"Unsupported config version '{version}'. "
            f"Expected '{CONFIG_VERSION}'."
        )


def config_from_dict(
    data: Dict[str, Any],
    base: Optional[ConvergenceConfig] = None
) -> ConvergenceConfig:
    """
    Build a ConvergenceConfig from a plain dict, overriding ``base``.

    Raises:
        ValueError: On unknown keys or invalid values
    """
    unknown = set(data) - _CONFIG_FIELDS
    if unknown:
        raise ValueError(f"Unknown analysis settings: {', '.join(sorted(unknown))}")

    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(
                f"Analysis setting '{key}' must be a number, got {value!r}"
            )

    try:
        return replace(base or DEFAULT_CONVERGENCE_CONFIG, **data)
    except TypeError as e:
        raise ValueError(f"Invalid analysis settings: {e}") from e


def load_config_from_json(path: str) -> Tuple[ConvergenceConfig, Optional[int]]:
    """
    Load analysis settings and seed from a JSON file.

    Missing settings fall back to the named "preset" in the file, or to the
    standard preset.

    Returns:
        (config, seed) - seed is None when the file does not pin one

    Raises:
        ValueError: If config version is unsupported or a setting is invalid
    """
    with open(path, 'r') as f:
        data = json.load(f)

    _validate_version(data)

    base = get_preset(data.get('preset', 'standard'))
    config = config_from_dict(data.get('analysis', {}), base=base)
    return config, data.get('seed')


def save_config_to_json(
    config: ConvergenceConfig,
    path: str,
    seed: Optional[int] = None
):
    """Save analysis settings (and optional seed) to JSON file."""
    data = {
        'version': CONFIG_VERSION,
        'analysis': config.to_dict(),
        'seed': seed,
    }

    with open(path, 'w') as f:
        json.dump(data, f, indent=2)


def create_sample_config_json(path: str = 'analysis_config_sample.json'):
    """Create a sample config JSON file for reference."""
    save_config_to_json(DEFAULT_CONVERGENCE_CONFIG, path, seed=42)
    print(f"Sample analysis config saved to {path}")
