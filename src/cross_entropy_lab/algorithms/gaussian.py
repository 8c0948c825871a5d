"""Rare-event estimation for systems driven by independent Gaussian inputs.

The system state is a vector of independent normal variables with nominal
means and standard deviations. The reference parameter is a 2×n array: row 0
holds the means and row 1 the standard deviations. Likelihood ratios are
products of normal density ratios and are computed in log space.

References:
- Rubinstein & Kroese, "The Cross-Entropy Method" (2004), §3.3
- Bucklew, "Introduction to Rare Event Simulation" (2004), §4
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

import numpy as np

from cross_entropy_lab.algorithms.rare_event import (
    RareEventPerformanceBoundedness,
    RareEventProbabilityEstimationContext,
)
from cross_entropy_lab.errors import OutOfRangeError, ShapeMismatchError, require

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


def log_likelihood_ratios(
    sample: NDArray[np.float64],
    nominal_parameter: NDArray[np.float64],
    reference_parameter: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Log density ratios, nominal over reference, of every sample row."""
    nominal_means, nominal_deviations = nominal_parameter[0], nominal_parameter[1]
    reference_means, reference_deviations = reference_parameter[0], reference_parameter[1]

    nominal_z = (sample - nominal_means) / nominal_deviations
    reference_z = (sample - reference_means) / reference_deviations
    terms = (
        np.log(reference_deviations)
        - np.log(nominal_deviations)
        - 0.5 * nominal_z**2
        + 0.5 * reference_z**2
    )
    return terms.sum(axis=-1)


class GaussianProbabilityEstimationContext(RareEventProbabilityEstimationContext):
    """Context tilting independent Gaussian inputs toward a rare event.

    Example:
        >>> context = GaussianProbabilityEstimationContext(
        ...     performance_function=lambda x: float(x[0]),
        ...     nominal_means=[0.0],
        ...     nominal_standard_deviations=[1.0],
        ...     threshold_level=2.0,
        ...     rare_event_performance_boundedness="lower",
        ... )
        >>> RareEventProbabilityEstimator().estimate(context, 0.1, 1000, 100_000)
    """

    def __init__(
        self,
        performance_function: Callable[[NDArray[np.float64]], float],
        nominal_means: ArrayLike,
        nominal_standard_deviations: ArrayLike,
        threshold_level: float,
        rare_event_performance_boundedness: RareEventPerformanceBoundedness | str,
        *,
        update_standard_deviations: bool = False,
    ) -> None:
        """Initialize the Gaussian estimation context.

        Args:
            performance_function: Function of a state returning its performance.
            nominal_means: Means of the inputs under the nominal model.
            nominal_standard_deviations: Standard deviations under the nominal model.
            threshold_level: Performance level defining the rare event.
            rare_event_performance_boundedness: Side of the threshold on which
                typical performances lie.
            update_standard_deviations: Also tilt standard deviations (means only
                by default).

        Raises:
            MissingArgumentError: If a required argument is None.
            ShapeMismatchError: If means and standard deviations differ in length.
            OutOfRangeError: If a standard deviation is not positive.
        """
        require(performance_function, "performance_function")
        require(nominal_means, "nominal_means")
        require(nominal_standard_deviations, "nominal_standard_deviations")

        means = np.ravel(np.asarray(nominal_means, dtype=np.float64))
        deviations = np.ravel(np.asarray(nominal_standard_deviations, dtype=np.float64))
        if means.shape != deviations.shape or means.shape[0] == 0:
            raise ShapeMismatchError(
                "nominal_standard_deviations", "must have one entry per nominal mean"
            )
        if np.any(deviations <= 0.0):
            raise OutOfRangeError("nominal_standard_deviations", "entries must be positive")

        super().__init__(
            means.shape[0],
            np.vstack((means, deviations)),
            threshold_level,
            rare_event_performance_boundedness,
        )

        self._performance_function = performance_function
        self._update_standard_deviations = update_standard_deviations

    @property
    def update_standard_deviations(self) -> bool:
        """Whether parameter updates tilt the standard deviations too."""
        return self._update_standard_deviations

    def performance(self, state: NDArray[np.float64]) -> float:
        return float(self._performance_function(state))

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
            destination[start:stop, j] = generator.normal(
                parameter[0, j], parameter[1, j], size=stop - start
            )

    def update_parameter(
        self,
        parameters: list[NDArray[np.float64]],
        elite_sample: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """Likelihood-ratio weighted elite moments."""
        nominal_parameter, reference_parameter = parameters[0], parameters[-1]

        log_weights = log_likelihood_ratios(elite_sample, nominal_parameter, reference_parameter)
        weights = np.exp(log_weights - log_weights.max())
        weights /= weights.sum()

        means = weights @ elite_sample
        if self._update_standard_deviations:
            deviations = np.sqrt(weights @ (elite_sample - means) ** 2)
        else:
            deviations = np.array(reference_parameter[1], dtype=np.float64)

        return np.vstack((means, deviations))

    def get_likelihood_ratio(
        self,
        sample_point: NDArray[np.float64],
        nominal_parameter: NDArray[np.float64],
        reference_parameter: NDArray[np.float64],
    ) -> float:
        point = np.ravel(sample_point)[np.newaxis, :]
        return float(np.exp(log_likelihood_ratios(point, nominal_parameter, reference_parameter)[0]))


__all__ = [
    "GaussianProbabilityEstimationContext",
    "log_likelihood_ratios",
]
