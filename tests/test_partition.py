"""Tests for partition optimization."""

import numpy as np
import pytest

from cross_entropy_lab.algorithms.partition import PartitionOptimizationContext
from cross_entropy_lab.errors import InvalidArgumentError, MissingArgumentError, OutOfRangeError


def make_context(**overrides) -> PartitionOptimizationContext:
    """Context splitting 6 items into 3 parts."""
    settings = dict(
        objective_function=lambda x: float(np.sum(x)),
        state_dimension=6,
        partition_dimension=3,
        probability_smoothing_coefficient=0.7,
        optimization_goal="minimization",
        minimum_number_of_iterations=2,
        maximum_number_of_iterations=100,
    )
    settings.update(overrides)
    return PartitionOptimizationContext(**settings)


class TestConstruction:
    """Tests for PartitionOptimizationContext validation."""

    def test_initial_parameter_uniform(self) -> None:
        """Every item starts uniformly spread over the parts."""
        context = make_context()
        np.testing.assert_allclose(context.initial_parameter, np.full((3, 6), 1.0 / 3.0))
        assert context.partition_dimension == 3

    def test_missing_objective(self) -> None:
        """The objective function is required."""
        with pytest.raises(MissingArgumentError):
            make_context(objective_function=None)

    def test_single_part_rejected(self) -> None:
        """At least two parts are needed."""
        with pytest.raises(OutOfRangeError) as excinfo:
            make_context(partition_dimension=1)
        assert excinfo.value.parameter == "partition_dimension"

    def test_parts_not_below_items(self) -> None:
        """There must be fewer parts than items."""
        with pytest.raises(InvalidArgumentError):
            make_context(partition_dimension=6)

    def test_smoothing_domain(self) -> None:
        """The smoothing coefficient lies in (0, 1)."""
        with pytest.raises(OutOfRangeError):
            make_context(probability_smoothing_coefficient=1.0)


class TestPrimitiveOperations:
    """Tests for sampling, update and decoding."""

    def test_labels_in_range(self) -> None:
        """Sampled labels are part identifiers."""
        context = make_context()
        destination = np.full((40, 6), -1.0, order="F")
        context.partial_sample(destination, (0, 40), np.random.default_rng(4), context.initial_parameter, 40)
        assert set(np.unique(destination).tolist()) <= {0.0, 1.0, 2.0}

    def test_degenerate_column_is_deterministic(self) -> None:
        """A column concentrated on one part always yields that part."""
        context = make_context()
        parameter = np.full((3, 6), 1.0 / 3.0)
        parameter[:, 2] = [0.0, 0.0, 1.0]
        destination = np.zeros((20, 6), order="F")
        context.partial_sample(destination, (0, 20), np.random.default_rng(0), parameter, 20)
        np.testing.assert_array_equal(destination[:, 2], np.full(20, 2.0))

    def test_update_counts_label_frequencies(self) -> None:
        """Row k of the parameter is the frequency of label k per item."""
        context = make_context()
        elite = np.array(
            [
                [0.0, 1.0, 2.0, 0.0, 1.0, 2.0],
                [0.0, 2.0, 2.0, 1.0, 1.0, 0.0],
            ]
        )
        parameter = context.update_parameter([context.initial_parameter], elite)
        assert parameter.shape == (3, 6)
        np.testing.assert_allclose(parameter.sum(axis=0), np.ones(6))
        np.testing.assert_allclose(parameter[:, 0], [1.0, 0.0, 0.0])
        np.testing.assert_allclose(parameter[:, 1], [0.0, 0.5, 0.5])
        np.testing.assert_allclose(parameter[:, 5], [0.5, 0.0, 0.5])

    def test_optimal_state_first_on_ties(self) -> None:
        """The most probable part wins; ties go to the lowest label."""
        context = make_context()
        parameter = np.array(
            [
                [0.2, 0.5, 0.4, 0.1, 0.3, 0.0],
                [0.7, 0.5, 0.2, 0.1, 0.3, 0.0],
                [0.1, 0.0, 0.4, 0.8, 0.4, 1.0],
            ]
        )
        np.testing.assert_array_equal(context.get_optimal_state(parameter), [1.0, 0.0, 0.0, 2.0, 2.0, 2.0])

    def test_stop_after_stable_parts(self) -> None:
        """Early stop once the most probable parts repeat minimum + 1 times."""
        context = make_context(minimum_number_of_iterations=2)
        parameter = np.eye(3, 6)
        parameters = [context.initial_parameter]
        levels: list[float] = []
        stops = []
        for iteration in range(1, 4):
            parameters.append(parameter.copy())
            levels.append(float(iteration))
            context.on_executed_iteration(iteration, np.zeros((1, 6)), levels, parameters)
            stops.append(context.stop_execution(iteration, levels, parameters))
        assert stops == [False, False, True]
