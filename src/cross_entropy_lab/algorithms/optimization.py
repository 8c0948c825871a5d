"""Cross-Entropy optimization of system performances.

The optimization specialization ranks states by performance, takes the best
``rarity`` fraction as the elite and stops once the level stabilizes or the
iteration budget is exhausted. The optimal state is decoded from the final
reference parameter.

Key Components:
- OptimizationGoal: Maximization or minimization
- SystemPerformanceOptimizationContext: Level update, stop rule, smoothing
- SystemPerformanceOptimizer: Driver returning the optimal state

References:
- Rubinstein & Kroese, "The Cross-Entropy Method" (2004), §4
"""

from __future__ import annotations

import math
from abc import abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, final

import numpy as np

from cross_entropy_lab.algorithms.context import CrossEntropyContext, EliteSampleDefinition
from cross_entropy_lab.algorithms.program import CrossEntropyProgram, CrossEntropyResults
from cross_entropy_lab.errors import (
    InvalidArgumentError,
    OutOfRangeError,
    UnsupportedValueError,
)

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

DEFAULT_SMOOTHING_COEFFICIENT = 0.7
"""Weight of the newest parameter in the default smoothing rule."""


class OptimizationGoal(Enum):
    """Direction of the optimization."""

    MAXIMIZATION = "maximization"
    MINIMIZATION = "minimization"

    @classmethod
    def parse(cls, value: OptimizationGoal | str) -> OptimizationGoal:
        """Convert a goal or its string value (case-insensitive) to a goal."""
        if isinstance(value, cls):
            return value
        goals = {goal.value: goal for goal in cls}
        if isinstance(value, str) and value.lower() in goals:
            return goals[value.lower()]
        raise UnsupportedValueError(
            "optimization_goal", f"{value!r} is not one of {[goal.value for goal in cls]}"
        )


class SystemPerformanceOptimizationContext(CrossEntropyContext):
    """Context of a Cross-Entropy optimization.

    Subclasses provide sampling, the parameter update and
    :meth:`get_optimal_state`; they may refine
    :meth:`stop_at_intermediate_iteration` and :meth:`smooth_parameter`.
    """

    def __init__(
        self,
        state_dimension: int,
        initial_parameter: ArrayLike,
        optimization_goal: OptimizationGoal | str,
        minimum_number_of_iterations: int,
        maximum_number_of_iterations: int,
    ) -> None:
        """Initialize the optimization context.

        Args:
            state_dimension: Number of entries in a state.
            initial_parameter: Parameter of the first sampling distribution.
            optimization_goal: Maximization or minimization.
            minimum_number_of_iterations: Iterations before any early stop.
            maximum_number_of_iterations: Hard iteration budget.

        Raises:
            UnsupportedValueError: If the goal is not recognized.
            OutOfRangeError: If an iteration bound is not positive.
            InvalidArgumentError: If the maximum is below the minimum.
        """
        super().__init__(state_dimension, initial_parameter)

        goal = OptimizationGoal.parse(optimization_goal)
        if minimum_number_of_iterations < 1:
            raise OutOfRangeError("minimum_number_of_iterations", "must be positive")
        if maximum_number_of_iterations < 1:
            raise OutOfRangeError("maximum_number_of_iterations", "must be positive")
        if maximum_number_of_iterations < minimum_number_of_iterations:
            raise InvalidArgumentError(
                "maximum_number_of_iterations",
                "must be greater than or equal to minimum_number_of_iterations",
            )

        self._optimization_goal = goal
        self._minimum_number_of_iterations = minimum_number_of_iterations
        self._maximum_number_of_iterations = maximum_number_of_iterations

    @property
    def optimization_goal(self) -> OptimizationGoal:
        """Direction of the optimization."""
        return self._optimization_goal

    @property
    def minimum_number_of_iterations(self) -> int:
        """Iterations executed before any early stop."""
        return self._minimum_number_of_iterations

    @property
    def maximum_number_of_iterations(self) -> int:
        """Hard iteration budget."""
        return self._maximum_number_of_iterations

    @property
    def elite_sample_definition(self) -> EliteSampleDefinition:
        if self._optimization_goal is OptimizationGoal.MINIMIZATION:
            return EliteSampleDefinition.LOWER_THAN_LEVEL
        return EliteSampleDefinition.HIGHER_THAN_LEVEL

    @final
    def update_level(
        self,
        performances: NDArray[np.float64],
        sample: NDArray[np.float64],
        elite_sample_definition: EliteSampleDefinition,
        rarity: float,
    ) -> tuple[float, NDArray[np.float64]]:
        """Level and elite sample at the ``rarity`` quantile of performances.

        Higher-than-level elites are rows ``ceil(N(1 - r))`` to ``N - 1`` of the
        ascending order and the level is the first of them; lower-than-level
        elites are rows ``0`` to ``floor(N r)`` and the level is the last.
        """
        sorted_performances, permutation = self.sort_by_performance(performances)
        sample_size = sorted_performances.shape[0]

        if elite_sample_definition is EliteSampleDefinition.HIGHER_THAN_LEVEL:
            first = math.ceil(sample_size * (1.0 - rarity))
            elite_range = range(first, sample_size)
            level = sorted_performances[first]
        else:
            last = math.floor(sample_size * rarity)
            elite_range = range(0, last + 1)
            level = sorted_performances[last]

        ordered_sample = sample[permutation, :]
        self.trace_elite_selection(sorted_performances, ordered_sample, elite_range)

        elite_sample = ordered_sample[elite_range.start : elite_range.stop, :]
        return float(level), elite_sample

    @final
    def stop_execution(
        self,
        iteration: int,
        levels: list[float],
        parameters: list[NDArray[np.float64]],
    ) -> bool:
        """Stop at the budget, never before the minimum, else delegate."""
        if iteration == self._maximum_number_of_iterations:
            return True
        if iteration <= self._minimum_number_of_iterations:
            return False
        return self.stop_at_intermediate_iteration(iteration, levels, parameters)

    def stop_at_intermediate_iteration(
        self,
        iteration: int,
        levels: list[float],
        parameters: list[NDArray[np.float64]],
    ) -> bool:
        """Stop when the last ``minimum_number_of_iterations`` levels equal the latest."""
        window = self._minimum_number_of_iterations
        latest = levels[-1]
        previous = levels[-1 - window : -1]
        return len(previous) == window and all(level == latest for level in previous)

    def on_executed_iteration(
        self,
        iteration: int,
        sample: NDArray[np.float64],
        levels: list[float],
        parameters: list[NDArray[np.float64]],
    ) -> None:
        self.smooth_parameter(parameters)
        super().on_executed_iteration(iteration, sample, levels, parameters)

    def smooth_parameter(self, parameters: list[NDArray[np.float64]]) -> None:
        """Blend the newest parameter with its predecessor, in place in the history."""
        if len(parameters) > 1:
            alpha = DEFAULT_SMOOTHING_COEFFICIENT
            parameters[-1] = alpha * parameters[-1] + (1.0 - alpha) * parameters[-2]

    @abstractmethod
    def get_optimal_state(self, parameter: NDArray[np.float64]) -> NDArray[np.float64]:
        """Decode the state that ``parameter`` considers optimal."""


@dataclass(frozen=True, slots=True)
class SystemPerformanceOptimizationResults(CrossEntropyResults):
    """Outcome of a Cross-Entropy optimization."""

    optimal_state: NDArray[np.float64]
    """State decoded from the final reference parameter."""

    optimal_performance: float
    """Performance of the optimal state."""


class SystemPerformanceOptimizer(CrossEntropyProgram):
    """Cross-Entropy driver for system performance optimization.

    Example:
        >>> optimizer = SystemPerformanceOptimizer()
        >>> results = optimizer.optimize(context, rarity=0.1, sample_size=1000)
        >>> results.optimal_state, results.optimal_performance
    """

    __slots__ = ()

    def optimize(
        self,
        context: SystemPerformanceOptimizationContext,
        rarity: float,
        sample_size: int,
    ) -> SystemPerformanceOptimizationResults:
        """Run the Cross-Entropy iteration and decode the optimum.

        Args:
            context: Optimization context.
            rarity: Elite fraction in (0, 1).
            sample_size: Sample rows per iteration.

        Returns:
            SystemPerformanceOptimizationResults; ``has_converged`` is False
            only if the iteration budget was exhausted.
        """
        results = self._run(context, sample_size, rarity)

        optimal_state = np.asarray(context.get_optimal_state(results.parameters[-1]), dtype=np.float64)
        optimal_performance = float(context.performance(optimal_state))

        return SystemPerformanceOptimizationResults(
            levels=results.levels,
            parameters=results.parameters,
            has_converged=results.iterations < context.maximum_number_of_iterations,
            optimal_state=optimal_state,
            optimal_performance=optimal_performance,
        )


__all__ = [
    "DEFAULT_SMOOTHING_COEFFICIENT",
    "OptimizationGoal",
    "SystemPerformanceOptimizationContext",
    "SystemPerformanceOptimizationResults",
    "SystemPerformanceOptimizer",
]
