"""Risk vector loading and validation."""

from .loader import load_risk_vector, validate_risk_vector

__all__ = [
    "load_risk_vector",
    "validate_risk_vector",
]
