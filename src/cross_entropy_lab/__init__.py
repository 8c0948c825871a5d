"""Cross-Entropy Lab: the Cross-Entropy method for optimization and rare-event estimation."""

__version__ = "0.1.0"

from cross_entropy_lab.algorithms import (
    CombinationOptimizationContext,
    ContinuousOptimizationContext,
    GaussianProbabilityEstimationContext,
    OptimizationGoal,
    ParallelOptions,
    PartitionOptimizationContext,
    RareEventPerformanceBoundedness,
    RareEventProbabilityEstimator,
    SystemPerformanceOptimizer,
    maximize,
    minimize,
)
from cross_entropy_lab.errors import InvalidArgumentError

__all__ = [
    "__version__",
    "CombinationOptimizationContext",
    "ContinuousOptimizationContext",
    "GaussianProbabilityEstimationContext",
    "InvalidArgumentError",
    "OptimizationGoal",
    "ParallelOptions",
    "PartitionOptimizationContext",
    "RareEventPerformanceBoundedness",
    "RareEventProbabilityEstimator",
    "SystemPerformanceOptimizer",
    "maximize",
    "minimize",
]
