"""Abstract Cross-Entropy context.

A context describes one problem to the Cross-Entropy engine: how states are
encoded, how a sample is drawn from a parameter, how performances rank the
sample, how the elite rows update the parameter and when iterations stop.
The engine in :mod:`cross_entropy_lab.algorithms.program` only orchestrates
these primitive operations.

References:
- Rubinstein & Kroese, "The Cross-Entropy Method" (2004), §2-§4
- Gamma et al., "Design Patterns" (1994), Template Method
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

from cross_entropy_lab.errors import OutOfRangeError, require

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)


class EliteSampleDefinition(Enum):
    """Side of the level on which elite sample points lie."""

    HIGHER_THAN_LEVEL = "higher_than_level"
    LOWER_THAN_LEVEL = "lower_than_level"


class CrossEntropyContext(ABC):
    """State space and primitive operations of a Cross-Entropy problem.

    Subclasses implement sampling, level and parameter updates and the stop
    criterion. Parameters are 2-D float arrays whose shape is fixed by the
    initial parameter; states are 1-D arrays of length ``state_dimension``.
    """

    def __init__(self, state_dimension: int, initial_parameter: ArrayLike) -> None:
        """Initialize the context.

        Args:
            state_dimension: Number of entries in a state (positive).
            initial_parameter: Parameter used to draw the first sample.
                One-dimensional input is treated as a single row.

        Raises:
            OutOfRangeError: If ``state_dimension`` is not positive.
            MissingArgumentError: If ``initial_parameter`` is None.
        """
        if state_dimension < 1:
            raise OutOfRangeError("state_dimension", "must be positive")
        require(initial_parameter, "initial_parameter")

        parameter = np.array(initial_parameter, dtype=np.float64, ndmin=2)
        parameter.setflags(write=False)

        self._state_dimension = int(state_dimension)
        self._initial_parameter = parameter

        self.trace_execution = False
        """Log iteration diagnostics at INFO level when True."""

    @property
    def state_dimension(self) -> int:
        """Number of entries in a state."""
        return self._state_dimension

    @property
    def initial_parameter(self) -> NDArray[np.float64]:
        """Read-only parameter of the first iteration."""
        return self._initial_parameter

    @property
    @abstractmethod
    def elite_sample_definition(self) -> EliteSampleDefinition:
        """Whether elite points lie above or below the level."""

    @abstractmethod
    def performance(self, state: NDArray[np.float64]) -> float:
        """Evaluate the performance of a single state."""

    @abstractmethod
    def partial_sample(
        self,
        destination: NDArray[np.float64],
        sample_range: tuple[int, int],
        generator: np.random.Generator,
        parameter: NDArray[np.float64],
        sample_size: int,
    ) -> None:
        """Fill rows ``[start, stop)`` of ``destination`` with drawn states.

        Args:
            destination: Sample array of shape ``(sample_size, state_dimension)``.
            sample_range: Half-open row range ``(start, stop)`` to fill.
            generator: Stream to draw from; the only source of randomness.
            parameter: Reference parameter of the sampling distribution.
            sample_size: Overall number of sample rows.
        """

    @abstractmethod
    def update_level(
        self,
        performances: NDArray[np.float64],
        sample: NDArray[np.float64],
        elite_sample_definition: EliteSampleDefinition,
        rarity: float,
    ) -> tuple[float, NDArray[np.float64]]:
        """Compute the iteration level and the elite sample.

        Returns:
            Tuple ``(level, elite_sample)``.
        """

    @abstractmethod
    def update_parameter(
        self,
        parameters: list[NDArray[np.float64]],
        elite_sample: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """Compute the next reference parameter from the elite sample."""

    @abstractmethod
    def stop_execution(
        self,
        iteration: int,
        levels: list[float],
        parameters: list[NDArray[np.float64]],
    ) -> bool:
        """Whether the run ends after ``iteration``."""

    def on_executed_iteration(
        self,
        iteration: int,
        sample: NDArray[np.float64],
        levels: list[float],
        parameters: list[NDArray[np.float64]],
    ) -> None:
        """Hook invoked after the parameter update of each iteration."""

    @staticmethod
    def sort_by_performance(
        performances: NDArray[np.float64],
    ) -> tuple[NDArray[np.float64], NDArray[np.intp]]:
        """Stable ascending sort of performances.

        Returns:
            Tuple ``(sorted_performances, permutation)`` where
            ``sorted_performances == performances[permutation]``.
        """
        permutation = np.argsort(performances, kind="stable")
        return performances[permutation], permutation

    def trace_elite_selection(
        self,
        sorted_performances: NDArray[np.float64],
        ordered_sample: NDArray[np.float64],
        elite_range: range,
    ) -> None:
        """Log the ordered sample with its performances and the elite rows."""
        if not self.trace_execution:
            return
        table = np.column_stack((ordered_sample, sorted_performances))
        logger.info("Ordered sample with performances (last column):\n%s", table)
        logger.info("Elite positions: %d to %d", elite_range.start, elite_range.stop - 1)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(state_dimension={self._state_dimension}, "
            f"parameter_shape={self._initial_parameter.shape})"
        )


__all__ = [
    "CrossEntropyContext",
    "EliteSampleDefinition",
]
