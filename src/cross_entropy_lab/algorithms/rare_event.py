"""Cross-Entropy estimation of rare-event probabilities.

The probability that a system performance exceeds (or falls below) a
threshold is estimated by importance sampling. The Cross-Entropy iteration
tilts the sampling distribution towards the rare event, moving the level
toward the threshold until it is reached; the final reference parameter then
drives a likelihood-ratio estimator.

Key Components:
- RareEventPerformanceBoundedness: Whether the threshold bounds from above or below
- RareEventProbabilityEstimationContext: Clamped level update and threshold stop rule
- RareEventProbabilityEstimator: Driver computing the importance sampling estimate

References:
- Rubinstein & Kroese, "The Cross-Entropy Method" (2004), §3
- Asmussen & Glynn, "Stochastic Simulation" (2007), §V.1
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
from cross_entropy_lab.errors import OutOfRangeError, UnsupportedValueError

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


class RareEventPerformanceBoundedness(Enum):
    """How the threshold bounds the performances of typical states.

    ``LOWER`` means the rare event is ``performance >= threshold``; ``UPPER``
    means the rare event is ``performance <= threshold``.
    """

    LOWER = "lower"
    UPPER = "upper"

    @classmethod
    def parse(cls, value: RareEventPerformanceBoundedness | str) -> RareEventPerformanceBoundedness:
        """Convert a boundedness or its string value (case-insensitive)."""
        if isinstance(value, cls):
            return value
        members = {member.value: member for member in cls}
        if isinstance(value, str) and value.lower() in members:
            return members[value.lower()]
        raise UnsupportedValueError(
            "rare_event_performance_boundedness",
            f"{value!r} is not one of {[member.value for member in cls]}",
        )


class RareEventProbabilityEstimationContext(CrossEntropyContext):
    """Context of a Cross-Entropy rare-event probability estimation.

    Subclasses provide sampling, the parameter update and
    :meth:`get_likelihood_ratio`. The likelihood ratio must belong to the
    same distribution family ``partial_sample`` draws from.
    """

    def __init__(
        self,
        state_dimension: int,
        initial_parameter: ArrayLike,
        threshold_level: float,
        rare_event_performance_boundedness: RareEventPerformanceBoundedness | str,
    ) -> None:
        """Initialize the estimation context.

        Args:
            state_dimension: Number of entries in a state.
            initial_parameter: Nominal parameter of the system.
            threshold_level: Performance level defining the rare event.
            rare_event_performance_boundedness: Side of the threshold on which
                typical performances lie.

        Raises:
            UnsupportedValueError: If the boundedness is not recognized.
        """
        super().__init__(state_dimension, initial_parameter)
        self._boundedness = RareEventPerformanceBoundedness.parse(
            rare_event_performance_boundedness
        )
        self._threshold_level = float(threshold_level)

    @property
    def threshold_level(self) -> float:
        """Performance level defining the rare event."""
        return self._threshold_level

    @property
    def rare_event_performance_boundedness(self) -> RareEventPerformanceBoundedness:
        """Side of the threshold on which typical performances lie."""
        return self._boundedness

    @property
    def elite_sample_definition(self) -> EliteSampleDefinition:
        if self._boundedness is RareEventPerformanceBoundedness.UPPER:
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
        """Quantile level clamped to the threshold, with the quantile elite.

        The elite set is always the ``rarity`` quantile of the sample, even
        when the level is clamped.
        """
        sorted_performances, permutation = self.sort_by_performance(performances)
        sample_size = sorted_performances.shape[0]

        if elite_sample_definition is EliteSampleDefinition.HIGHER_THAN_LEVEL:
            first = math.ceil(sample_size * (1.0 - rarity))
            elite_range = range(first, sample_size)
            level = min(float(sorted_performances[first]), self._threshold_level)
        else:
            last = math.ceil(sample_size * rarity)
            elite_range = range(0, last + 1)
            level = max(float(sorted_performances[last]), self._threshold_level)

        ordered_sample = sample[permutation, :]
        self.trace_elite_selection(sorted_performances, ordered_sample, elite_range)

        return level, ordered_sample[elite_range.start : elite_range.stop, :]

    @final
    def stop_execution(
        self,
        iteration: int,
        levels: list[float],
        parameters: list[NDArray[np.float64]],
    ) -> bool:
        """Stop once the level has reached the threshold."""
        if self.elite_sample_definition is EliteSampleDefinition.HIGHER_THAN_LEVEL:
            return levels[-1] >= self._threshold_level
        return levels[-1] <= self._threshold_level

    @abstractmethod
    def get_likelihood_ratio(
        self,
        sample_point: NDArray[np.float64],
        nominal_parameter: NDArray[np.float64],
        reference_parameter: NDArray[np.float64],
    ) -> float:
        """Density ratio of ``sample_point`` under nominal and reference parameters.

        Must use the same distribution family that :meth:`partial_sample`
        draws from, or the final estimate is biased.
        """


@dataclass(frozen=True, slots=True)
class RareEventProbabilityEstimationResults(CrossEntropyResults):
    """Outcome of a Cross-Entropy rare-event estimation."""

    rare_event_probability: float
    """Importance sampling estimate of the rare-event probability."""


class RareEventProbabilityEstimator(CrossEntropyProgram):
    """Cross-Entropy driver for rare-event probability estimation.

    Example:
        >>> estimator = RareEventProbabilityEstimator()
        >>> results = estimator.estimate(
        ...     context, rarity=0.1, sample_size=1000, estimation_sample_size=100_000
        ... )
        >>> results.rare_event_probability
    """

    __slots__ = ()

    def estimate(
        self,
        context: RareEventProbabilityEstimationContext,
        rarity: float,
        sample_size: int,
        estimation_sample_size: int,
    ) -> RareEventProbabilityEstimationResults:
        """Tilt the sampling distribution, then estimate the probability.

        Args:
            context: Estimation context.
            rarity: Elite fraction in (0, 1).
            sample_size: Sample rows per Cross-Entropy iteration.
            estimation_sample_size: Rows drawn for the final estimate.

        Returns:
            RareEventProbabilityEstimationResults with the estimate.

        Raises:
            OutOfRangeError: If ``estimation_sample_size`` is not positive.
        """
        if estimation_sample_size < 1:
            raise OutOfRangeError("estimation_sample_size", "must be positive")

        results = self._run(context, sample_size, rarity)

        reference_parameter = results.parameters[-1]
        nominal_parameter = context.initial_parameter

        final_sample = self.sample(context, estimation_sample_size, reference_parameter)
        performances = self.evaluate_performances(context, final_sample)

        if context.elite_sample_definition is EliteSampleDefinition.LOWER_THAN_LEVEL:
            matches = performances <= context.threshold_level
        else:
            matches = performances >= context.threshold_level

        ratios = np.array(
            [
                context.get_likelihood_ratio(final_sample[i, :], nominal_parameter, reference_parameter)
                for i in range(estimation_sample_size)
            ],
            dtype=np.float64,
        )
        probability = float(ratios[matches].sum()) / estimation_sample_size

        return RareEventProbabilityEstimationResults(
            levels=results.levels,
            parameters=results.parameters,
            has_converged=True,
            rare_event_probability=probability,
        )


__all__ = [
    "RareEventPerformanceBoundedness",
    "RareEventProbabilityEstimationContext",
    "RareEventProbabilityEstimationResults",
    "RareEventProbabilityEstimator",
]
