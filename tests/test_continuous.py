"""Tests for continuous Cross-Entropy optimization."""

import numpy as np
import pytest

from cross_entropy_lab.algorithms.continuous import (
    ContinuousOptimizationContext,
    maximize,
    minimize,
)
from cross_entropy_lab.algorithms.optimization import OptimizationGoal
from cross_entropy_lab.errors import MissingArgumentError, OutOfRangeError, ShapeMismatchError


def sphere(x: np.ndarray) -> float:
    """Sum of squares."""
    return float(np.sum(x**2))


class TestConstruction:
    """Tests for ContinuousOptimizationContext validation."""

    def test_initial_parameter(self) -> None:
        """Parameter rows should be initial means and standard deviations."""
        context = ContinuousOptimizationContext(sphere, [1.0, -2.0], initial_standard_deviation=5.0)
        np.testing.assert_array_equal(context.initial_parameter, [[1.0, -2.0], [5.0, 5.0]])
        assert context.state_dimension == 2
        assert context.optimization_goal is OptimizationGoal.MINIMIZATION

    def test_defaults(self) -> None:
        """Defaults should match the documented settings."""
        context = ContinuousOptimizationContext(sphere, [0.0])
        assert context.mean_smoothing_coefficient == 0.7
        assert context.standard_deviation_smoothing_coefficient == 0.9
        assert context.standard_deviation_smoothing_exponent == 6
        assert context.initial_standard_deviation == 100.0
        assert context.termination_tolerance == 1e-3
        assert context.minimum_number_of_iterations == 3
        assert context.maximum_number_of_iterations == 1000

    def test_row_matrix_accepted(self) -> None:
        """A 1×n initial argument is a row vector."""
        context = ContinuousOptimizationContext(sphere, np.array([[1.0, 2.0, 3.0]]))
        assert context.state_dimension == 3

    @pytest.mark.parametrize("argument", [np.zeros((2, 2)), np.zeros(0), np.zeros((2, 1))])
    def test_non_row_argument_rejected(self, argument: np.ndarray) -> None:
        """Initial arguments must be non-empty row vectors."""
        with pytest.raises(ShapeMismatchError) as excinfo:
            ContinuousOptimizationContext(sphere, argument)
        assert excinfo.value.parameter == "initial_argument"

    def test_missing_objective(self) -> None:
        """The objective function is required."""
        with pytest.raises(MissingArgumentError) as excinfo:
            ContinuousOptimizationContext(None, [0.0])  # type: ignore[arg-type]
        assert excinfo.value.parameter == "objective_function"

    @pytest.mark.parametrize(
        "keyword,value",
        [
            ("mean_smoothing_coefficient", 0.0),
            ("mean_smoothing_coefficient", 1.0),
            ("standard_deviation_smoothing_coefficient", 1.5),
            ("standard_deviation_smoothing_exponent", 0),
            ("initial_standard_deviation", 0.0),
            ("termination_tolerance", -1e-3),
        ],
    )
    def test_out_of_range_settings(self, keyword: str, value: float) -> None:
        """Settings outside their domain should name the offending keyword."""
        with pytest.raises(OutOfRangeError) as excinfo:
            ContinuousOptimizationContext(sphere, [0.0], **{keyword: value})
        assert excinfo.value.parameter == keyword


class TestPrimitiveOperations:
    """Tests for sampling, update and decoding."""

    def test_partial_sample_fills_range_only(self) -> None:
        """Rows outside the range should stay untouched."""
        context = ContinuousOptimizationContext(sphere, [0.0, 0.0], initial_standard_deviation=1.0)
        destination = np.zeros((8, 2), order="F")
        context.partial_sample(destination, (3, 6), np.random.default_rng(0), context.initial_parameter, 8)
        assert np.all(destination[3:6] != 0.0)
        assert np.all(destination[:3] == 0.0)
        assert np.all(destination[6:] == 0.0)

    def test_update_parameter(self) -> None:
        """Means and population standard deviations of elite columns."""
        context = ContinuousOptimizationContext(sphere, [0.0, 0.0])
        elite = np.array([[1.0, 0.0], [3.0, 0.0]])
        parameter = context.update_parameter([context.initial_parameter], elite)
        np.testing.assert_allclose(parameter, [[2.0, 0.0], [1.0, 0.0]])

    def test_optimal_state_is_means(self) -> None:
        """The optimal state is the means row."""
        context = ContinuousOptimizationContext(sphere, [0.0, 0.0])
        np.testing.assert_array_equal(
            context.get_optimal_state(np.array([[1.5, -2.5], [0.1, 0.1]])), [1.5, -2.5]
        )

    def test_smoothing(self) -> None:
        """Means use the fixed weight; deviations use beta * (1 - (1 - 1/t)^q)."""
        context = ContinuousOptimizationContext(sphere, [0.0])
        previous = np.array([[0.0], [10.0]])
        current = np.array([[1.0], [2.0]])
        parameters = [previous, current]
        context.smooth_parameter(parameters)

        alpha = 0.9 * (1.0 - (1.0 - 1.0 / 2.0) ** 6)
        np.testing.assert_allclose(parameters[-1], [[0.7], [alpha * 2.0 + (1.0 - alpha) * 10.0]])
        np.testing.assert_array_equal(parameters[0], previous)

    def test_smoothing_weights_are_fixed(self) -> None:
        """Recorded smoothing settings do not change the 0.7 and 0.9 weights."""
        context = ContinuousOptimizationContext(
            sphere,
            [0.0],
            mean_smoothing_coefficient=0.8,
            standard_deviation_smoothing_coefficient=0.7,
        )
        assert context.mean_smoothing_coefficient == 0.8
        parameters = [np.array([[0.0], [1.0]]), np.array([[10.0], [1.0]])]
        context.smooth_parameter(parameters)
        np.testing.assert_allclose(parameters[-1], [[7.0], [1.0]])

    def test_smoothing_exponent_is_configurable(self) -> None:
        """The exponent q enters the deviation weight."""
        context = ContinuousOptimizationContext(sphere, [0.0], standard_deviation_smoothing_exponent=1)
        parameters = [np.array([[0.0], [10.0]]), np.array([[0.0], [2.0]])]
        context.smooth_parameter(parameters)
        alpha = 0.9 * (1.0 - (1.0 - 1.0 / 2.0))
        np.testing.assert_allclose(parameters[-1][1], [alpha * 2.0 + (1.0 - alpha) * 10.0])

    def test_smoothing_single_parameter(self) -> None:
        """A lone initial parameter is left alone."""
        context = ContinuousOptimizationContext(sphere, [0.0])
        parameters = [context.initial_parameter]
        context.smooth_parameter(parameters)
        assert parameters[0] is context.initial_parameter

    def test_intermediate_stop_on_small_deviations(self) -> None:
        """Stop only when every deviation is below the tolerance."""
        context = ContinuousOptimizationContext(sphere, [0.0, 0.0], termination_tolerance=1e-2)
        assert context.stop_at_intermediate_iteration(4, [], [np.array([[0.0, 0.0], [1e-3, 5e-3]])])
        assert not context.stop_at_intermediate_iteration(4, [], [np.array([[0.0, 0.0], [1e-3, 2e-2]])])


class TestFrontEnds:
    """Tests for minimize and maximize."""

    def test_minimize_shifted_quadratic(self) -> None:
        """Minimizer of a shifted quadratic is its center."""
        result = minimize(lambda x: float((x[0] - 1.0) ** 2 + (x[1] + 2.0) ** 2), [0.0, 0.0])
        np.testing.assert_allclose(result, [1.0, -2.0], atol=0.05)

    def test_minimize_with_arguments(self) -> None:
        """Extra arguments should be forwarded to the objective."""
        center = np.array([3.0, -1.0])
        result = minimize(lambda x, c: float(np.sum((x - c) ** 2)), [0.0, 0.0], args=(center,))
        np.testing.assert_allclose(result, center, atol=0.05)

    def test_maximize_concave(self) -> None:
        """Maximizer of a concave parabola is its vertex."""
        result = maximize(lambda x: float(-((x[0] - 4.0) ** 2)), [0.0])
        np.testing.assert_allclose(result, [4.0], atol=0.05)

    def test_missing_arguments(self) -> None:
        """Objective and initial argument are required."""
        with pytest.raises(MissingArgumentError):
            minimize(None, [0.0])  # type: ignore[arg-type]
        with pytest.raises(MissingArgumentError):
            maximize(sphere, None)  # type: ignore[arg-type]
