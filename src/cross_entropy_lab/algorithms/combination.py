"""Cross-Entropy optimization over fixed-size combinations.

A state is the 0/1 indicator of a subset of ``k`` items chosen among ``n``.
The reference parameter is a 1×n row of inclusion propensities; sampling
draws subsets by conditional Poisson sampling so that every drawn state
selects exactly ``k`` items.

References:
- Rubinstein & Kroese, "The Cross-Entropy Method" (2004), §4.7
- Chen, Dempster & Liu, "Weighted finite population sampling to maximize
  entropy", Biometrika 81 (1994)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

import numpy as np

from cross_entropy_lab.algorithms.convergence import DecisionHistory
from cross_entropy_lab.algorithms.optimization import (
    OptimizationGoal,
    SystemPerformanceOptimizationContext,
)
from cross_entropy_lab.errors import InvalidArgumentError, OutOfRangeError, require
from cross_entropy_lab.numerics.sampling import UnequalProbabilitySampler

if TYPE_CHECKING:
    from numpy.typing import NDArray

PROBABILITY_FLOOR = 1e-9
PROBABILITY_CEILING = 0.999999999


class CombinationOptimizationContext(SystemPerformanceOptimizationContext):
    """Context selecting the best ``combination_dimension`` items among ``state_dimension``.

    Example:
        >>> weights = np.array([1.0, 5.0, 2.0, 4.0, 1.5])
        >>> context = CombinationOptimizationContext(
        ...     objective_function=lambda x: float(x @ weights),
        ...     state_dimension=5,
        ...     combination_dimension=2,
        ...     probability_smoothing_coefficient=0.8,
        ...     optimization_goal="maximization",
        ...     minimum_number_of_iterations=3,
        ...     maximum_number_of_iterations=1000,
        ... )
    """

    def __init__(
        self,
        objective_function: Callable[[NDArray[np.float64]], float],
        state_dimension: int,
        combination_dimension: int,
        probability_smoothing_coefficient: float,
        optimization_goal: OptimizationGoal | str,
        minimum_number_of_iterations: int,
        maximum_number_of_iterations: int,
    ) -> None:
        """Initialize the combination context.

        Raises:
            MissingArgumentError: If ``objective_function`` is None.
            OutOfRangeError: If ``combination_dimension`` is not positive or the
                smoothing coefficient is not in (0, 1).
            InvalidArgumentError: If ``combination_dimension`` is not below
                ``state_dimension``.
        """
        require(objective_function, "objective_function")
        if state_dimension < 1:
            raise OutOfRangeError("state_dimension", "must be positive")
        if combination_dimension < 1:
            raise OutOfRangeError("combination_dimension", "must be positive")
        if combination_dimension >= state_dimension:
            raise InvalidArgumentError(
                "combination_dimension", "must be less than state_dimension"
            )
        if not 0.0 < probability_smoothing_coefficient < 1.0:
            raise OutOfRangeError(
                "probability_smoothing_coefficient", "must lie in the open interval (0, 1)"
            )

        super().__init__(
            state_dimension,
            np.full((1, state_dimension), 0.5),
            optimization_goal,
            minimum_number_of_iterations,
            maximum_number_of_iterations,
        )

        self._objective_function = objective_function
        self._combination_dimension = combination_dimension
        self._probability_smoothing_coefficient = probability_smoothing_coefficient
        self._largest_probability_positions = DecisionHistory(minimum_number_of_iterations)

    @property
    def combination_dimension(self) -> int:
        """Number of items selected by every state."""
        return self._combination_dimension

    @property
    def probability_smoothing_coefficient(self) -> float:
        """Weight of the newest parameter in the smoothed parameter."""
        return self._probability_smoothing_coefficient

    def performance(self, state: NDArray[np.float64]) -> float:
        return float(self._objective_function(state))

    def partial_sample(
        self,
        destination: NDArray[np.float64],
        sample_range: tuple[int, int],
        generator: np.random.Generator,
        parameter: NDArray[np.float64],
        sample_size: int,
    ) -> None:
        sampler = UnequalProbabilitySampler(parameter[0], self._combination_dimension)
        for i in range(*sample_range):
            destination[i, sampler.next_indexes(generator)] = 1.0

    def update_parameter(
        self,
        parameters: list[NDArray[np.float64]],
        elite_sample: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """Elite column means, with certain inclusions kept strictly inside (0, 1)."""
        parameter = elite_sample.mean(axis=0, keepdims=True)
        parameter[parameter == 0.0] = PROBABILITY_FLOOR
        parameter[parameter == 1.0] = PROBABILITY_CEILING
        return parameter

    def on_executed_iteration(
        self,
        iteration: int,
        sample: NDArray[np.float64],
        levels: list[float],
        parameters: list[NDArray[np.float64]],
    ) -> None:
        self._largest_probability_positions.record(self._largest_positions(parameters[-1]))
        super().on_executed_iteration(iteration, sample, levels, parameters)

    def get_optimal_state(self, parameter: NDArray[np.float64]) -> NDArray[np.float64]:
        optimal_state = np.zeros(self.state_dimension, dtype=np.float64)
        optimal_state[list(self._largest_positions(parameter))] = 1.0
        return optimal_state

    def smooth_parameter(self, parameters: list[NDArray[np.float64]]) -> None:
        if len(parameters) > 1:
            alpha = self._probability_smoothing_coefficient
            parameters[-1] = alpha * parameters[-1] + (1.0 - alpha) * parameters[-2]

    def stop_at_intermediate_iteration(
        self,
        iteration: int,
        levels: list[float],
        parameters: list[NDArray[np.float64]],
    ) -> bool:
        """Stop once the top-k positions have been stable for the minimum number of iterations."""
        return self._largest_probability_positions.is_stable()

    def _largest_positions(self, parameter: NDArray[np.float64]) -> frozenset[int]:
        order = np.argsort(np.ravel(parameter), kind="stable")
        return frozenset(int(j) for j in order[self.state_dimension - self._combination_dimension :])


__all__ = [
    "PROBABILITY_CEILING",
    "PROBABILITY_FLOOR",
    "CombinationOptimizationContext",
]
