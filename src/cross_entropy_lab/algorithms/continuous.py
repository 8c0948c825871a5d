"""Cross-Entropy optimization of continuous functions.

States are real vectors sampled from independent Gaussian marginals. The
reference parameter is a 2×n array: row 0 holds the means and row 1 the
standard deviations. Elite rows update both by their sample moments, and the
standard deviations are smoothed with a schedule that decays toward zero so
the sampling distribution collapses onto the optimum.

Key Features:
- Means smoothed with the fixed weight 0.7
- Dynamic standard deviation smoothing α_t = β (1 - (1 - 1/t)^q), β = 0.9
- Early stop once every standard deviation falls below a tolerance
- ``minimize`` / ``maximize`` front-ends with tuned defaults

References:
- Kroese, Porotsky & Rubinstein, "The Cross-Entropy Method for Continuous
  Multi-Extremal Optimization", Methodology and Computing in Applied
  Probability 8 (2006)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

import numpy as np

from cross_entropy_lab.algorithms.optimization import (
    DEFAULT_SMOOTHING_COEFFICIENT,
    OptimizationGoal,
    SystemPerformanceOptimizationContext,
    SystemPerformanceOptimizer,
)
from cross_entropy_lab.errors import (
    OutOfRangeError,
    ShapeMismatchError,
    require,
)

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

ObjectiveFunction = Callable[["NDArray[np.float64]"], float]

STANDARD_DEVIATION_SMOOTHING_COEFFICIENT = 0.9
"""β of the standard deviation smoothing schedule."""


class ContinuousOptimizationContext(SystemPerformanceOptimizationContext):
    """Gaussian Cross-Entropy context over real vectors.

    Example:
        >>> def sphere(x):
        ...     return float(np.sum(x**2))
        >>> context = ContinuousOptimizationContext(sphere, [3.0, -2.0])
        >>> results = SystemPerformanceOptimizer().optimize(context, 0.1, 200)
    """

    def __init__(
        self,
        objective_function: ObjectiveFunction,
        initial_argument: ArrayLike,
        *,
        mean_smoothing_coefficient: float = 0.7,
        standard_deviation_smoothing_coefficient: float = 0.9,
        standard_deviation_smoothing_exponent: int = 6,
        initial_standard_deviation: float = 100.0,
        termination_tolerance: float = 1e-3,
        optimization_goal: OptimizationGoal | str = OptimizationGoal.MINIMIZATION,
        minimum_number_of_iterations: int = 3,
        maximum_number_of_iterations: int = 1000,
    ) -> None:
        """Initialize the continuous context.

        Args:
            objective_function: Function of a state returning its performance.
            initial_argument: Initial means, a 1-D or 1×n array.
            mean_smoothing_coefficient: Recorded mean smoothing setting, in (0, 1).
            standard_deviation_smoothing_coefficient: Recorded standard deviation
                smoothing setting, in (0, 1).
                Smoothing itself always weights new means by 0.7 and uses
                β = 0.9 in the standard deviation schedule.
            standard_deviation_smoothing_exponent: q of the schedule (at least 1).
            initial_standard_deviation: Standard deviation of every marginal
                at the first iteration (positive).
            termination_tolerance: Early stop threshold on standard deviations.
            optimization_goal: Maximization or minimization.
            minimum_number_of_iterations: Iterations before any early stop.
            maximum_number_of_iterations: Hard iteration budget.

        Raises:
            MissingArgumentError: If a required argument is None.
            ShapeMismatchError: If ``initial_argument`` is not a row vector.
            OutOfRangeError: If a coefficient or tolerance is out of range.
        """
        require(objective_function, "objective_function")
        require(initial_argument, "initial_argument")

        argument = np.asarray(initial_argument, dtype=np.float64)
        if argument.ndim == 2 and argument.shape[0] == 1:
            argument = argument[0]
        if argument.ndim != 1 or argument.shape[0] == 0:
            raise ShapeMismatchError("initial_argument", "must be a non-empty row vector")

        if not 0.0 < mean_smoothing_coefficient < 1.0:
            raise OutOfRangeError(
                "mean_smoothing_coefficient", "must lie in the open interval (0, 1)"
            )
        if not 0.0 < standard_deviation_smoothing_coefficient < 1.0:
            raise OutOfRangeError(
                "standard_deviation_smoothing_coefficient", "must lie in the open interval (0, 1)"
            )
        if standard_deviation_smoothing_exponent < 1:
            raise OutOfRangeError(
                "standard_deviation_smoothing_exponent", "must be greater than or equal to 1"
            )
        if initial_standard_deviation <= 0.0:
            raise OutOfRangeError("initial_standard_deviation", "must be positive")
        if termination_tolerance <= 0.0:
            raise OutOfRangeError("termination_tolerance", "must be positive")

        dimension = argument.shape[0]
        initial_parameter = np.vstack((argument, np.full(dimension, initial_standard_deviation)))

        super().__init__(
            dimension,
            initial_parameter,
            optimization_goal,
            minimum_number_of_iterations,
            maximum_number_of_iterations,
        )

        self._objective_function = objective_function
        self._mean_smoothing_coefficient = mean_smoothing_coefficient
        self._standard_deviation_smoothing_coefficient = standard_deviation_smoothing_coefficient
        self._standard_deviation_smoothing_exponent = standard_deviation_smoothing_exponent
        self._initial_standard_deviation = initial_standard_deviation
        self._termination_tolerance = termination_tolerance

    @property
    def mean_smoothing_coefficient(self) -> float:
        """Recorded mean smoothing setting."""
        return self._mean_smoothing_coefficient

    @property
    def standard_deviation_smoothing_coefficient(self) -> float:
        """Recorded standard deviation smoothing setting."""
        return self._standard_deviation_smoothing_coefficient

    @property
    def standard_deviation_smoothing_exponent(self) -> int:
        """q of the standard deviation schedule."""
        return self._standard_deviation_smoothing_exponent

    @property
    def initial_standard_deviation(self) -> float:
        """Standard deviation of every marginal at the first iteration."""
        return self._initial_standard_deviation

    @property
    def termination_tolerance(self) -> float:
        """Early stop threshold on the standard deviations."""
        return self._termination_tolerance

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
        means, standard_deviations = parameter[0], parameter[1]
        for j in range(self.state_dimension):
            destination[start:stop, j] = generator.normal(
                means[j], standard_deviations[j], size=stop - start
            )

    def update_parameter(
        self,
        parameters: list[NDArray[np.float64]],
        elite_sample: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """Elite column means and population standard deviations."""
        return np.vstack((elite_sample.mean(axis=0), elite_sample.std(axis=0)))

    def get_optimal_state(self, parameter: NDArray[np.float64]) -> NDArray[np.float64]:
        return np.array(parameter[0], dtype=np.float64)

    def smooth_parameter(self, parameters: list[NDArray[np.float64]]) -> None:
        """Smooth means with the fixed weight 0.7 and deviations with a decaying one.

        The deviation weight is ``0.9 * (1 - (1 - 1/t)^q)`` with ``t`` the
        history length and ``q`` the configured exponent.
        """
        iteration = len(parameters)
        if iteration <= 1:
            return

        current, previous = parameters[-1], parameters[-2]

        mean_alpha = DEFAULT_SMOOTHING_COEFFICIENT
        beta = STANDARD_DEVIATION_SMOOTHING_COEFFICIENT
        q = self._standard_deviation_smoothing_exponent
        deviation_alpha = beta * (1.0 - (1.0 - 1.0 / iteration) ** q)

        parameters[-1] = np.vstack(
            (
                mean_alpha * current[0] + (1.0 - mean_alpha) * previous[0],
                deviation_alpha * current[1] + (1.0 - deviation_alpha) * previous[1],
            )
        )

    def stop_at_intermediate_iteration(
        self,
        iteration: int,
        levels: list[float],
        parameters: list[NDArray[np.float64]],
    ) -> bool:
        """Stop once every standard deviation is below the tolerance."""
        return bool(np.all(parameters[-1][1] < self._termination_tolerance))


def _optimize(
    objective_function: Callable[..., float],
    initial_argument: ArrayLike,
    args: tuple[Any, ...],
    goal: OptimizationGoal,
) -> NDArray[np.float64]:
    require(objective_function, "objective_function")
    require(initial_argument, "initial_argument")

    if args:

        def objective(state: NDArray[np.float64]) -> float:
            return objective_function(state, *args)

    else:
        objective = objective_function

    context = ContinuousOptimizationContext(
        objective,
        initial_argument,
        mean_smoothing_coefficient=0.8,
        standard_deviation_smoothing_coefficient=0.7,
        standard_deviation_smoothing_exponent=6,
        initial_standard_deviation=100.0,
        termination_tolerance=1e-3,
        optimization_goal=goal,
        minimum_number_of_iterations=3,
        maximum_number_of_iterations=1000,
    )
    results = SystemPerformanceOptimizer().optimize(
        context, rarity=0.01, sample_size=100 * context.state_dimension
    )
    return results.optimal_state


def minimize(
    objective_function: Callable[..., float],
    initial_argument: ArrayLike,
    args: tuple[Any, ...] = (),
) -> NDArray[np.float64]:
    """Minimize a function of real vectors by the Cross-Entropy method.

    Args:
        objective_function: Called as ``objective_function(x, *args)``.
        initial_argument: Starting point (1-D or 1×n).
        args: Extra positional arguments of the objective.

    Returns:
        The argument estimated to minimize the objective.

    Example:
        >>> minimize(lambda x: float((x[0] - 1) ** 2 + (x[1] + 2) ** 2), [0.0, 0.0])
        array([ 1., -2.])  # approximately
    """
    return _optimize(objective_function, initial_argument, args, OptimizationGoal.MINIMIZATION)


def maximize(
    objective_function: Callable[..., float],
    initial_argument: ArrayLike,
    args: tuple[Any, ...] = (),
) -> NDArray[np.float64]:
    """Maximize a function of real vectors by the Cross-Entropy method.

    See :func:`minimize` for the arguments.
    """
    return _optimize(objective_function, initial_argument, args, OptimizationGoal.MAXIMIZATION)


__all__ = [
    "STANDARD_DEVIATION_SMOOTHING_COEFFICIENT",
    "ContinuousOptimizationContext",
    "maximize",
    "minimize",
]
