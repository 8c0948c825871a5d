"""Cross-Entropy engine.

Implements the generic iteration shared by every Cross-Entropy algorithm:

    sample -> evaluate -> update level -> update parameter -> hook -> stop?

The problem-specific steps are delegated to a
:class:`~cross_entropy_lab.algorithms.context.CrossEntropyContext`.

Key Features:
- Sample buffer allocated once per iteration in column-major layout
- Row-partitioned fan-out of sampling and performance evaluation on a
  thread pool, with one independent generator per partition
- Deterministic sequential mode (``max_degree_of_parallelism=1``)

References:
- Rubinstein & Kroese, "The Cross-Entropy Method" (2004), Algorithm 2.3.1
- de Boer et al., "A Tutorial on the Cross-Entropy Method",
  Annals of Operations Research 134 (2005)
"""

from __future__ import annotations

import logging
import math
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

import numpy as np

from cross_entropy_lab.algorithms.context import CrossEntropyContext, EliteSampleDefinition
from cross_entropy_lab.errors import (
    OutOfRangeError,
    RarityConfigurationError,
    ShapeMismatchError,
    require,
)
from cross_entropy_lab.numerics.random_streams import DEFAULT_SEED, GeneratorPool

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ParallelOptions:
    """Degree of parallelism of a fan-out step."""

    max_degree_of_parallelism: int = -1
    """Worker bound: -1 for one worker per CPU, 1 for sequential execution."""

    def __post_init__(self) -> None:
        if self.max_degree_of_parallelism == 0 or self.max_degree_of_parallelism < -1:
            raise OutOfRangeError(
                "max_degree_of_parallelism", "must be -1 or a positive integer"
            )

    @property
    def is_sequential(self) -> bool:
        """True when execution happens on the calling thread only."""
        return self.max_degree_of_parallelism == 1

    @property
    def worker_count(self) -> int:
        """Number of workers this option resolves to on the current machine."""
        if self.max_degree_of_parallelism == -1:
            return os.cpu_count() or 1
        return self.max_degree_of_parallelism


@dataclass(frozen=True, slots=True)
class CrossEntropyResults:
    """Histories produced by one execution of the Cross-Entropy engine."""

    levels: list[float]
    """Level reached at each iteration."""

    parameters: list[NDArray[np.float64]]
    """Initial parameter followed by the parameter of each iteration."""

    has_converged: bool
    """Whether the run ended on a convergence criterion."""

    @property
    def iterations(self) -> int:
        """Number of executed iterations."""
        return len(self.levels)


def partition_rows(total: int, parts: int) -> list[tuple[int, int]]:
    """Split ``[0, total)`` into at most ``parts`` contiguous non-empty ranges.

    Example:
        >>> partition_rows(10, 3)
        [(0, 4), (4, 7), (7, 10)]
    """
    parts = max(1, min(parts, total))
    base, remainder = divmod(total, parts)
    ranges = []
    start = 0
    for i in range(parts):
        stop = start + base + (1 if i < remainder else 0)
        ranges.append((start, stop))
        start = stop
    return ranges


class CrossEntropyProgram:
    """Engine executing the Cross-Entropy iteration on a context.

    Drivers such as
    :class:`~cross_entropy_lab.algorithms.optimization.SystemPerformanceOptimizer`
    call :meth:`_run` and post-process its histories.

    Example:
        >>> program = CrossEntropyProgram(
        ...     sample_generation_parallel_options=ParallelOptions(1),
        ... )
        >>> sample = program.sample(context, 100, context.initial_parameter)
    """

    __slots__ = (
        "_performance_evaluation_parallel_options",
        "_sample_generation_parallel_options",
        "_seed",
        "_generator_pool",
    )

    def __init__(
        self,
        *,
        performance_evaluation_parallel_options: ParallelOptions | None = None,
        sample_generation_parallel_options: ParallelOptions | None = None,
        seed: int = DEFAULT_SEED,
    ) -> None:
        """Initialize the engine.

        Args:
            performance_evaluation_parallel_options: Fan-out of performance
                evaluation (default: one worker per CPU).
            sample_generation_parallel_options: Fan-out of sampling
                (default: one worker per CPU).
            seed: Seed of the sequential stream and of the partition arena.
        """
        self._performance_evaluation_parallel_options = (
            performance_evaluation_parallel_options or ParallelOptions()
        )
        self._sample_generation_parallel_options = (
            sample_generation_parallel_options or ParallelOptions()
        )
        self._seed = seed
        self._generator_pool = GeneratorPool(seed)

    @property
    def performance_evaluation_parallel_options(self) -> ParallelOptions:
        """Fan-out of performance evaluation."""
        return self._performance_evaluation_parallel_options

    @performance_evaluation_parallel_options.setter
    def performance_evaluation_parallel_options(self, value: ParallelOptions) -> None:
        require(value, "value")
        self._performance_evaluation_parallel_options = value

    @property
    def sample_generation_parallel_options(self) -> ParallelOptions:
        """Fan-out of sample generation."""
        return self._sample_generation_parallel_options

    @sample_generation_parallel_options.setter
    def sample_generation_parallel_options(self, value: ParallelOptions) -> None:
        require(value, "value")
        self._sample_generation_parallel_options = value

    @property
    def seed(self) -> int:
        """Seed of the program random streams."""
        return self._seed

    # ------------------------------------------------------------------
    # Primitive operations
    # ------------------------------------------------------------------

    def sample(
        self,
        context: CrossEntropyContext,
        sample_size: int,
        parameter: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """Draw ``sample_size`` states from the distribution of ``parameter``.

        Args:
            context: Problem context providing ``partial_sample``.
            sample_size: Number of rows to draw (positive).
            parameter: Parameter with the shape of the initial parameter.

        Returns:
            Column-major array of shape ``(sample_size, state_dimension)``.

        Raises:
            MissingArgumentError: If ``context`` or ``parameter`` is None.
            OutOfRangeError: If ``sample_size`` is not positive.
            ShapeMismatchError: If ``parameter`` does not match the context.
        """
        require(context, "context")
        if sample_size < 1:
            raise OutOfRangeError("sample_size", "must be positive")
        require(parameter, "parameter")
        if np.shape(parameter) != context.initial_parameter.shape:
            raise ShapeMismatchError(
                "parameter",
                f"shape {np.shape(parameter)} is incompatible with the context "
                f"parameter shape {context.initial_parameter.shape}",
            )

        destination = np.zeros((sample_size, context.state_dimension), order="F")
        options = self._sample_generation_parallel_options

        if options.is_sequential:
            generator = np.random.default_rng(self._seed)
            context.partial_sample(destination, (0, sample_size), generator, parameter, sample_size)
            return destination

        ranges = partition_rows(sample_size, options.worker_count)
        generators = self._generator_pool.acquire(len(ranges))
        with ThreadPoolExecutor(max_workers=len(ranges)) as executor:
            futures = [
                executor.submit(
                    context.partial_sample,
                    destination,
                    sample_range,
                    generator,
                    parameter,
                    sample_size,
                )
                for sample_range, generator in zip(ranges, generators)
            ]
            for future in futures:
                future.result()

        return destination

    def evaluate_performances(
        self,
        context: CrossEntropyContext,
        sample: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """Evaluate the context performance of every sample row.

        Raises:
            MissingArgumentError: If ``context`` or ``sample`` is None.
            ShapeMismatchError: If the sample column count differs from the
                context state dimension.
        """
        require(context, "context")
        require(sample, "sample")
        if np.ndim(sample) != 2 or np.shape(sample)[1] != context.state_dimension:
            raise ShapeMismatchError(
                "sample",
                f"expected {context.state_dimension} columns, got shape {np.shape(sample)}",
            )

        sample_size = sample.shape[0]
        performances = np.empty(sample_size, dtype=np.float64)
        performance: Callable[[NDArray[np.float64]], float] = context.performance

        def evaluate(row_range: tuple[int, int]) -> None:
            for i in range(*row_range):
                performances[i] = performance(sample[i, :])

        options = self._performance_evaluation_parallel_options
        if options.is_sequential:
            evaluate((0, sample_size))
            return performances

        ranges = partition_rows(sample_size, options.worker_count)
        with ThreadPoolExecutor(max_workers=len(ranges)) as executor:
            for future in [executor.submit(evaluate, row_range) for row_range in ranges]:
                future.result()

        return performances

    # ------------------------------------------------------------------
    # Template method
    # ------------------------------------------------------------------

    def _run(
        self,
        context: CrossEntropyContext,
        sample_size: int,
        rarity: float,
    ) -> CrossEntropyResults:
        """Iterate until the context stop criterion holds.

        Raises:
            MissingArgumentError: If ``context`` is None.
            OutOfRangeError: If ``sample_size`` is not positive or ``rarity``
                is not in (0, 1).
            RarityConfigurationError: If the rarity leaves no elite rows.
            ShapeMismatchError: If a parameter update changes the parameter shape.
        """
        require(context, "context")
        if sample_size < 1:
            raise OutOfRangeError("sample_size", "must be positive")
        if not 0.0 < rarity < 1.0:
            raise OutOfRangeError("rarity", "must lie in the open interval (0, 1)")

        elite_sample_definition = context.elite_sample_definition
        _check_elite_range(elite_sample_definition, sample_size, rarity)

        parameter_shape = context.initial_parameter.shape
        parameters: list[NDArray[np.float64]] = [context.initial_parameter]
        levels: list[float] = []

        iteration = 1
        continue_execution = True
        while continue_execution:
            parameter = parameters[-1]
            if context.trace_execution:
                logger.info("Iteration: %d", iteration)

            sample = self.sample(context, sample_size, parameter)
            performances = self.evaluate_performances(context, sample)

            level, elite_sample = context.update_level(
                performances, sample, elite_sample_definition, rarity
            )
            levels.append(float(level))

            updated = np.asarray(context.update_parameter(parameters, elite_sample), dtype=np.float64)
            if updated.shape != parameter_shape:
                raise ShapeMismatchError(
                    "parameter",
                    f"updated shape {updated.shape} differs from {parameter_shape}",
                )
            parameters.append(updated)

            context.on_executed_iteration(iteration, sample, levels, parameters)

            continue_execution = not context.stop_execution(iteration, levels, parameters)

            if context.trace_execution:
                logger.info("Level: %s", levels[-1])
                logger.info("Parameter:\n%s", parameters[-1])

            iteration += 1

        return CrossEntropyResults(levels=levels, parameters=parameters, has_converged=False)


def _check_elite_range(
    elite_sample_definition: EliteSampleDefinition,
    sample_size: int,
    rarity: float,
) -> None:
    """Reject rarities whose elite range is empty or covers every row.

    Lower-than-level elites span rows 0 to ``floor(N r)`` or ``ceil(N r)``, so
    ``ceil(N r) + 1`` must stay below ``N``.
    """
    if elite_sample_definition is EliteSampleDefinition.HIGHER_THAN_LEVEL:
        if math.ceil(sample_size * (1.0 - rarity)) >= sample_size:
            raise RarityConfigurationError(
                "rarity", f"too low to select elite points from sample_size={sample_size}"
            )
    elif math.ceil(sample_size * rarity) + 1 >= sample_size:
        raise RarityConfigurationError(
            "rarity", f"too high to select elite points from sample_size={sample_size}"
        )


__all__ = [
    "CrossEntropyProgram",
    "CrossEntropyResults",
    "ParallelOptions",
    "partition_rows",
]
