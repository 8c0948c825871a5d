"""Numeric services not offered by NumPy.

This module contains:
- Conditional Poisson sampling of fixed-size subsets
- An arena of independent generators for partitioned sampling
"""

from cross_entropy_lab.numerics.random_streams import DEFAULT_SEED, GeneratorPool
from cross_entropy_lab.numerics.sampling import (
    UnequalProbabilitySampler,
    symmetric_polynomials,
)

__all__ = [
    "DEFAULT_SEED",
    "GeneratorPool",
    "UnequalProbabilitySampler",
    "symmetric_polynomials",
]
