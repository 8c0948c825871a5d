"""Cross-Entropy optimization over partitions.

A state assigns each of ``n`` items a part label in ``{0, ..., k - 1}``. The
reference parameter is a k×n array whose column ``j`` is the categorical
distribution of the label of item ``j``.
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

if TYPE_CHECKING:
    from numpy.typing import NDArray


class PartitionOptimizationContext(SystemPerformanceOptimizationContext):
    """Context searching for the best partition of items into ``partition_dimension`` parts."""

    def __init__(
        self,
        objective_function: Callable[[NDArray[np.float64]], float],
        state_dimension: int,
        partition_dimension: int,
        probability_smoothing_coefficient: float,
        optimization_goal: OptimizationGoal | str,
        minimum_number_of_iterations: int,
        maximum_number_of_iterations: int,
    ) -> None:
        """Initialize the partition context.

        Raises:
            MissingArgumentError: If ``objective_function`` is None.
            OutOfRangeError: If ``state_dimension`` is not positive,
                ``partition_dimension`` is below 2 or the smoothing coefficient
                is not in (0, 1).
            InvalidArgumentError: If ``partition_dimension`` is not below
                ``state_dimension``.
        """
        require(objective_function, "objective_function")
        if state_dimension <= 0:
            raise OutOfRangeError("state_dimension", "must be positive")
        if partition_dimension < 2:
            raise OutOfRangeError("partition_dimension", "must be greater than or equal to 2")
        if partition_dimension >= state_dimension:
            raise InvalidArgumentError("partition_dimension", "must be less than state_dimension")
        if not 0.0 < probability_smoothing_coefficient < 1.0:
            raise OutOfRangeError(
                "probability_smoothing_coefficient", "must lie in the open interval (0, 1)"
            )

        super().__init__(
            state_dimension,
            np.full((partition_dimension, state_dimension), 1.0 / partition_dimension),
            optimization_goal,
            minimum_number_of_iterations,
            maximum_number_of_iterations,
        )

        self._objective_function = objective_function
        self._partition_dimension = partition_dimension
        self._probability_smoothing_coefficient = probability_smoothing_coefficient
        self._part_identifiers = np.arange(partition_dimension, dtype=np.float64)
        self._most_probable_parts = DecisionHistory(minimum_number_of_iterations)

    @property
    def partition_dimension(self) -> int:
        """Number of parts."""
        return self._partition_dimension

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
        start, stop = sample_range
        for j in range(self.state_dimension):
            probabilities = parameter[:, j] / parameter[:, j].sum()
            destination[start:stop, j] = generator.choice(
                self._part_identifiers, size=stop - start, p=probabilities
            )

    def update_parameter(
        self,
        parameters: list[NDArray[np.float64]],
        elite_sample: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """Frequency of every part label in each elite column."""
        labels = self._part_identifiers[:, np.newaxis, np.newaxis]
        return (elite_sample[np.newaxis, :, :] == labels).mean(axis=1)

    def on_executed_iteration(
        self,
        iteration: int,
        sample: NDArray[np.float64],
        levels: list[float],
        parameters: list[NDArray[np.float64]],
    ) -> None:
        self._most_probable_parts.record(tuple(np.argmax(parameters[-1], axis=0).tolist()))
        super().on_executed_iteration(iteration, sample, levels, parameters)

    def get_optimal_state(self, parameter: NDArray[np.float64]) -> NDArray[np.float64]:
        """Most probable part of every item (first one on ties)."""
        return np.argmax(parameter, axis=0).astype(np.float64)

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
        """Stop once the most probable parts have been stable for the minimum number of iterations."""
        return self._most_probable_parts.is_stable()


__all__ = ["PartitionOptimizationContext"]
