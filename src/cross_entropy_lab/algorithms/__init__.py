"""Cross-Entropy algorithms module.

This module contains implementations of:
- The generic Cross-Entropy engine and its abstract context
- System performance optimization and rare-event probability estimation
- Concrete contexts for continuous, combination, partition and categorical
  entailment ensemble problems, and Gaussian rare events
"""

from cross_entropy_lab.algorithms.combination import CombinationOptimizationContext
from cross_entropy_lab.algorithms.context import CrossEntropyContext, EliteSampleDefinition
from cross_entropy_lab.algorithms.continuous import (
    ContinuousOptimizationContext,
    maximize,
    minimize,
)
from cross_entropy_lab.algorithms.convergence import DecisionHistory
from cross_entropy_lab.algorithms.entailment import (
    CategoricalEntailment,
    CategoricalEntailmentEnsembleOptimizationContext,
)
from cross_entropy_lab.algorithms.gaussian import GaussianProbabilityEstimationContext
from cross_entropy_lab.algorithms.optimization import (
    OptimizationGoal,
    SystemPerformanceOptimizationContext,
    SystemPerformanceOptimizationResults,
    SystemPerformanceOptimizer,
)
from cross_entropy_lab.algorithms.partition import PartitionOptimizationContext
from cross_entropy_lab.algorithms.program import (
    CrossEntropyProgram,
    CrossEntropyResults,
    ParallelOptions,
)
from cross_entropy_lab.algorithms.rare_event import (
    RareEventPerformanceBoundedness,
    RareEventProbabilityEstimationContext,
    RareEventProbabilityEstimationResults,
    RareEventProbabilityEstimator,
)

__all__ = [
    # Engine
    "CrossEntropyContext",
    "CrossEntropyProgram",
    "CrossEntropyResults",
    "EliteSampleDefinition",
    "ParallelOptions",
    # Optimization
    "OptimizationGoal",
    "SystemPerformanceOptimizationContext",
    "SystemPerformanceOptimizationResults",
    "SystemPerformanceOptimizer",
    "DecisionHistory",
    # Rare events
    "RareEventPerformanceBoundedness",
    "RareEventProbabilityEstimationContext",
    "RareEventProbabilityEstimationResults",
    "RareEventProbabilityEstimator",
    # Contexts
    "CategoricalEntailment",
    "CategoricalEntailmentEnsembleOptimizationContext",
    "CombinationOptimizationContext",
    "ContinuousOptimizationContext",
    "GaussianProbabilityEstimationContext",
    "PartitionOptimizationContext",
    # Front-ends
    "maximize",
    "minimize",
]
