"""Cross-Entropy optimization of categorical entailment ensembles.

A categorical entailment is a rule

    IF feature_1 in P_1 AND ... AND feature_F in P_F THEN response = r

weighted by a truth value in [0, 1]. An ensemble of ``J`` entailments is
encoded as a state made of ``J`` consecutive blocks; each block holds one
0/1 cell per feature category (the premises), a one-hot response block and
the truth value:

    [ premise cells (Σ counts) | response cells (R) | truth value (1) ]

The reference parameter is a single row holding, for each entailment, the
inclusion probability of every premise cell followed by the response
distribution.

References:
- Rubinstein & Kroese, "The Cross-Entropy Method" (2004), §4
- Agresti, "Categorical Data Analysis" (3rd ed.), §1.2
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

import numpy as np

from cross_entropy_lab.algorithms.optimization import (
    OptimizationGoal,
    SystemPerformanceOptimizationContext,
)
from cross_entropy_lab.errors import (
    InvalidArgumentError,
    OutOfRangeError,
    ShapeMismatchError,
    require,
)

if TYPE_CHECKING:
    from numpy.typing import NDArray

TIE_BREAKING_SEED = 777777
"""Seed of the stream choosing among equally probable responses."""


@dataclass(frozen=True, slots=True)
class CategoricalEntailment:
    """Decoded entailment: premises per feature, concluded response, truth value."""

    feature_category_counts: tuple[int, ...]
    """Number of categories of each feature."""

    premises: tuple[frozenset[int], ...]
    """Admitted category codes of each feature."""

    response: int
    """Concluded response category code."""

    truth_value: float
    """Weight of the entailment, in [0, 1]."""

    def __post_init__(self) -> None:
        if len(self.premises) != len(self.feature_category_counts):
            raise ShapeMismatchError("premises", "must hold one premise per feature")
        if not 0.0 <= self.truth_value <= 1.0:
            raise OutOfRangeError("truth_value", "must lie in the closed interval [0, 1]")

    def constrains(self, feature: int) -> bool:
        """Whether the premise on ``feature`` excludes some category.

        Empty premises and premises admitting every category place no
        constraint on the feature.
        """
        premise = self.premises[feature]
        return 0 < len(premise) < self.feature_category_counts[feature]

    def validate_premises(self, item: Sequence[int] | NDArray[np.float64]) -> bool:
        """Whether the feature category codes of ``item`` satisfy every premise."""
        if len(item) != len(self.premises):
            raise ShapeMismatchError("item", "must hold one category code per feature")
        return all(
            int(code) in premise or not self.constrains(feature)
            for feature, (code, premise) in enumerate(zip(item, self.premises))
        )

    def __str__(self) -> str:
        clauses = []
        for feature, premise in enumerate(self.premises):
            codes = premise if self.constrains(feature) else range(self.feature_category_counts[feature])
            clauses.append(f"F{feature} in {{{', '.join(str(c) for c in sorted(codes))}}}")
        return f"IF {' AND '.join(clauses)} THEN R = {self.response} (truth {self.truth_value:.4f})"


class CategoricalEntailmentEnsembleOptimizationContext(SystemPerformanceOptimizationContext):
    """Context optimizing an ensemble of categorical entailments.

    Args:
        objective_function: Function of a state returning its performance.
        feature_category_counts: Number of categories of each feature.
        number_of_response_categories: Number of response categories.
        number_of_categorical_entailments: Entailments per ensemble.
        allow_entailment_partial_truth_values: Derive truth values from the
            response distribution instead of always using 1.
        probability_smoothing_coefficient: Weight of the newest parameter, in (0, 1).
        optimization_goal: Maximization or minimization.
        minimum_number_of_iterations: Iterations before any early stop.
        maximum_number_of_iterations: Hard iteration budget.
    """

    def __init__(
        self,
        objective_function: Callable[[NDArray[np.float64]], float],
        feature_category_counts: Sequence[int],
        number_of_response_categories: int,
        number_of_categorical_entailments: int,
        allow_entailment_partial_truth_values: bool,
        probability_smoothing_coefficient: float,
        optimization_goal: OptimizationGoal | str,
        minimum_number_of_iterations: int,
        maximum_number_of_iterations: int,
    ) -> None:
        require(objective_function, "objective_function")
        if not 0.0 < probability_smoothing_coefficient < 1.0:
            raise OutOfRangeError(
                "probability_smoothing_coefficient", "must lie in the open interval (0, 1)"
            )
        require(feature_category_counts, "feature_category_counts")
        counts = tuple(int(count) for count in feature_category_counts)
        if not counts:
            raise InvalidArgumentError("feature_category_counts", "must be non-empty")
        if number_of_response_categories < 1:
            raise OutOfRangeError("number_of_response_categories", "must be positive")
        if number_of_categorical_entailments < 1:
            raise OutOfRangeError("number_of_categorical_entailments", "must be positive")
        if any(count <= 0 for count in counts):
            raise OutOfRangeError("feature_category_counts", "entries must be positive")

        feature_categories = sum(counts)
        categories = feature_categories + number_of_response_categories
        block = np.concatenate(
            (
                np.full(feature_categories, 0.5),
                np.full(number_of_response_categories, 1.0 / number_of_response_categories),
            )
        )

        super().__init__(
            (categories + 1) * number_of_categorical_entailments,
            np.tile(block, (1, number_of_categorical_entailments)),
            optimization_goal,
            minimum_number_of_iterations,
            maximum_number_of_iterations,
        )

        self._objective_function = objective_function
        self._feature_category_counts = counts
        self._number_of_response_categories = number_of_response_categories
        self._number_of_categorical_entailments = number_of_categorical_entailments
        self._allow_partial_truth_values = bool(allow_entailment_partial_truth_values)
        self._probability_smoothing_coefficient = probability_smoothing_coefficient
        self._overall_number_of_feature_categories = feature_categories
        self._tie_breaker = np.random.default_rng(TIE_BREAKING_SEED)

        # State columns carrying probabilities, in parameter order.
        representation_length = categories + 1
        self._probability_columns = np.concatenate(
            [
                np.arange(e * representation_length, e * representation_length + categories)
                for e in range(number_of_categorical_entailments)
            ]
        )

    @property
    def feature_category_counts(self) -> tuple[int, ...]:
        """Number of categories of each feature."""
        return self._feature_category_counts

    @property
    def number_of_response_categories(self) -> int:
        """Number of response categories."""
        return self._number_of_response_categories

    @property
    def number_of_categorical_entailments(self) -> int:
        """Entailments per ensemble."""
        return self._number_of_categorical_entailments

    @property
    def allow_entailment_partial_truth_values(self) -> bool:
        """Whether truth values are derived from the response distribution."""
        return self._allow_partial_truth_values

    @property
    def overall_number_of_feature_categories(self) -> int:
        """Total number of premise cells per entailment."""
        return self._overall_number_of_feature_categories

    @property
    def probability_smoothing_coefficient(self) -> float:
        """Weight of the newest parameter in the smoothed parameter."""
        return self._probability_smoothing_coefficient

    def performance(self, state: NDArray[np.float64]) -> float:
        return float(self._objective_function(state))

    def truth_value(self, response_probabilities: NDArray[np.float64]) -> float:
        """Truth value implied by a response distribution.

        ``1 + Σ p log_R p`` over positive probabilities when partial truth
        values are allowed and there is more than one response category;
        otherwise 1.
        """
        r = self._number_of_response_categories
        if not self._allow_partial_truth_values or r == 1:
            return 1.0
        p = response_probabilities[response_probabilities > 0.0]
        return float(1.0 + np.sum(p * np.log(p)) / np.log(r))

    def partial_sample(
        self,
        destination: NDArray[np.float64],
        sample_range: tuple[int, int],
        generator: np.random.Generator,
        parameter: NDArray[np.float64],
        sample_size: int,
    ) -> None:
        start, stop = sample_range
        rows = np.arange(start, stop)
        f = self._overall_number_of_feature_categories
        r = self._number_of_response_categories
        row_parameter = parameter[0]

        for e in range(self._number_of_categorical_entailments):
            representation_index = e * (f + r + 1)
            parameter_index = e * (f + r)

            premise_probabilities = row_parameter[parameter_index : parameter_index + f]
            destination[start:stop, representation_index : representation_index + f] = (
                generator.random((stop - start, f)) < premise_probabilities
            )

            response_probabilities = row_parameter[parameter_index + f : parameter_index + f + r]
            responses = generator.choice(
                r, size=stop - start, p=response_probabilities / response_probabilities.sum()
            )
            destination[rows, representation_index + f + responses] = 1.0

            destination[start:stop, representation_index + f + r] = self.truth_value(
                response_probabilities
            )

    def update_parameter(
        self,
        parameters: list[NDArray[np.float64]],
        elite_sample: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """Elite means of the premise and response columns."""
        return elite_sample[:, self._probability_columns].mean(axis=0, keepdims=True)

    def get_optimal_state(self, parameter: NDArray[np.float64]) -> NDArray[np.float64]:
        """Premises above one half, most probable response, implied truth value.

        Ties between equally probable responses are broken at random.
        """
        f = self._overall_number_of_feature_categories
        r = self._number_of_response_categories
        row_parameter = np.ravel(parameter)
        optimal_state = np.zeros(self.state_dimension, dtype=np.float64)

        for e in range(self._number_of_categorical_entailments):
            representation_index = e * (f + r + 1)
            parameter_index = e * (f + r)

            premise_probabilities = row_parameter[parameter_index : parameter_index + f]
            optimal_state[representation_index : representation_index + f] = premise_probabilities > 0.5

            response_probabilities = row_parameter[parameter_index + f : parameter_index + f + r]
            candidates = np.flatnonzero(response_probabilities == response_probabilities.max())
            if candidates.shape[0] == 1:
                response = int(candidates[0])
            else:
                response = int(self._tie_breaker.choice(candidates))
            optimal_state[representation_index + f + response] = 1.0

            optimal_state[representation_index + f + r] = self.truth_value(response_probabilities)

        return optimal_state

    def smooth_parameter(self, parameters: list[NDArray[np.float64]]) -> None:
        if len(parameters) > 1:
            alpha = self._probability_smoothing_coefficient
            parameters[-1] = alpha * parameters[-1] + (1.0 - alpha) * parameters[-2]

    def get_entailments(self, state: NDArray[np.float64] | Sequence[float]) -> list[CategoricalEntailment]:
        """Decode a state into its categorical entailments.

        Raises:
            MissingArgumentError: If ``state`` is None.
            ShapeMismatchError: If the state length differs from ``state_dimension``.
        """
        require(state, "state")
        values = np.ravel(np.asarray(state, dtype=np.float64))
        if values.shape[0] != self.state_dimension:
            raise ShapeMismatchError(
                "state", f"expected {self.state_dimension} entries, got {values.shape[0]}"
            )

        f = self._overall_number_of_feature_categories
        r = self._number_of_response_categories
        boundaries = np.cumsum((0,) + self._feature_category_counts)

        entailments = []
        for e in range(self._number_of_categorical_entailments):
            block = values[e * (f + r + 1) : (e + 1) * (f + r + 1)]
            premises = tuple(
                frozenset(np.flatnonzero(block[lower:upper] == 1.0).tolist())
                for lower, upper in zip(boundaries[:-1], boundaries[1:])
            )
            response = int(np.argmax(block[f : f + r] == 1.0))
            truth_value = float(np.clip(block[f + r], 0.0, 1.0))
            entailments.append(
                CategoricalEntailment(
                    feature_category_counts=self._feature_category_counts,
                    premises=premises,
                    response=response,
                    truth_value=truth_value,
                )
            )
        return entailments


__all__ = [
    "TIE_BREAKING_SEED",
    "CategoricalEntailment",
    "CategoricalEntailmentEnsembleOptimizationContext",
]
