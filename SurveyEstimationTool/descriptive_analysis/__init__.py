"""Descriptive estimation module for survey data."""

from .weighted_estimates import WeightedEstimator, estimate, Z_95

__all__ = [
    'WeightedEstimator',
    'estimate',
    'Z_95'
]
