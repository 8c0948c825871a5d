"""Conditional Poisson sampling without replacement.

A conditional Poisson (maximum entropy) design draws exactly ``n`` distinct
units from a population of ``N`` units, each unit carrying a Bernoulli
probability ``p_j``. The design is the distribution of independent Bernoulli
trials conditioned on exactly ``n`` successes.

Draws are performed sequentially: every step picks one of the remaining units
with probabilities expressed through elementary symmetric polynomials of the
odds ``w_j = p_j / (1 - p_j)``.

References:
- Chen, Dempster & Liu, "Weighted finite population sampling to maximize
  entropy", Biometrika 81 (1994)
- Tillé, "Sampling Algorithms" (2006), §5.6
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from cross_entropy_lab.errors import OutOfRangeError, ShapeMismatchError, require

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


def symmetric_polynomials(order: int, weights: NDArray[np.float64]) -> NDArray[np.float64]:
    """Elementary symmetric polynomials of a set and its leave-one-out subsets.

    Args:
        order: Highest polynomial degree to compute.
        weights: Weights of the ``m`` units in the set.

    Returns:
        Array ``r`` of shape ``(order + 1, m + 1)`` where ``r[i, 0]`` is the
        degree-``i`` polynomial of the full set and ``r[i, j + 1]`` the one of
        the set without unit ``j``.
    """
    weights = np.asarray(weights, dtype=np.float64)
    m = weights.shape[0]
    r = np.zeros((order + 1, m + 1), dtype=np.float64)
    r[0, :] = 1.0

    # Product expansion one unit at a time; column j + 1 skips unit j.
    mask = np.ones(m + 1, dtype=np.float64)
    for j, weight in enumerate(weights):
        mask[j + 1] = 0.0
        r[1:, :] += r[:-1, :] * (weight * mask)
        mask[j + 1] = 1.0

    return r


class UnequalProbabilitySampler:
    """Draws fixed-size subsets with conditional Poisson inclusion.

    Example:
        >>> sampler = UnequalProbabilitySampler([0.2, 0.5, 0.9, 0.4], sample_size=2)
        >>> indexes = sampler.next_indexes(np.random.default_rng(0))
        >>> len(set(indexes.tolist()))
        2
    """

    __slots__ = ("_weights", "_sample_size", "_inclusion_probabilities", "_first_draw")

    def __init__(self, bernoulli_probabilities: ArrayLike, sample_size: int) -> None:
        """Initialize from per-unit Bernoulli probabilities.

        Args:
            bernoulli_probabilities: Probabilities in the open interval (0, 1),
                one per population unit.
            sample_size: Number of distinct units per draw.

        Raises:
            MissingArgumentError: If ``bernoulli_probabilities`` is None.
            OutOfRangeError: If the population has one unit or fewer, a
                probability is not in (0, 1), or ``sample_size`` is not positive.
            ShapeMismatchError: If ``sample_size`` is not below the population size.
        """
        require(bernoulli_probabilities, "bernoulli_probabilities")
        probabilities = np.asarray(bernoulli_probabilities, dtype=np.float64).ravel()
        population_size = probabilities.shape[0]

        if population_size <= 1:
            raise OutOfRangeError("bernoulli_probabilities", "population size must be greater than 1")
        if np.any((probabilities <= 0.0) | (probabilities >= 1.0)):
            raise OutOfRangeError(
                "bernoulli_probabilities", "entries must lie in the open interval (0, 1)"
            )
        if sample_size <= 0:
            raise OutOfRangeError("sample_size", "must be positive")
        if sample_size >= population_size:
            raise ShapeMismatchError(
                "sample_size", "must be less than the number of Bernoulli probabilities"
            )

        self._weights = probabilities / (1.0 - probabilities)
        self._sample_size = sample_size

        r = symmetric_polynomials(sample_size, self._weights)
        self._inclusion_probabilities = self._weights * r[sample_size - 1, 1:] / r[sample_size, 0]
        self._first_draw = self._inclusion_probabilities / sample_size

    @property
    def population_size(self) -> int:
        """Number of units in the population."""
        return int(self._weights.shape[0])

    @property
    def sample_size(self) -> int:
        """Number of units per draw."""
        return self._sample_size

    @property
    def inclusion_probabilities(self) -> NDArray[np.float64]:
        """First-order inclusion probabilities (they sum to ``sample_size``)."""
        return self._inclusion_probabilities.copy()

    def next_indexes(self, generator: np.random.Generator) -> NDArray[np.intp]:
        """Draw ``sample_size`` distinct unit indexes, in draw order."""
        n = self._sample_size
        remaining = np.arange(self.population_size)
        drawn = np.empty(n, dtype=np.intp)

        probabilities = self._first_draw
        for k in range(n):
            if k > 0:
                order = n - k
                weights = self._weights[remaining]
                r = symmetric_polynomials(order, weights)
                probabilities = weights * r[order - 1, 1:] / (order * r[order, 0])

            position = _pick(probabilities, generator)
            drawn[k] = remaining[position]
            remaining = np.delete(remaining, position)

        return drawn

    def next_indicator(self, generator: np.random.Generator) -> NDArray[np.float64]:
        """Draw a 0/1 vector over the population with ``sample_size`` ones."""
        indicator = np.zeros(self.population_size, dtype=np.float64)
        indicator[self.next_indexes(generator)] = 1.0
        return indicator

    def __repr__(self) -> str:
        return (
            f"UnequalProbabilitySampler(population_size={self.population_size}, "
            f"sample_size={self._sample_size})"
        )


def _pick(probabilities: NDArray[np.float64], generator: np.random.Generator) -> int:
    """Inverse-CDF pick of a position; rounding slack falls on the last one."""
    cumulative = np.cumsum(probabilities)
    position = int(np.searchsorted(cumulative, generator.random(), side="left"))
    return min(position, probabilities.shape[0] - 1)


__all__ = [
    "UnequalProbabilitySampler",
    "symmetric_polynomials",
]
