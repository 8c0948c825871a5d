"""
Command-line interface for Cross-Entropy Lab.

Usage:
    cross-entropy-lab info        Show available Cross-Entropy contexts
    cross-entropy-lab minimize    Minimize a test function
    cross-entropy-lab estimate    Estimate a Gaussian tail probability
"""

import logging
import math
from typing import Annotated

import numpy as np
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from cross_entropy_lab import __version__
from cross_entropy_lab.algorithms import (
    ContinuousOptimizationContext,
    GaussianProbabilityEstimationContext,
    ParallelOptions,
    RareEventProbabilityEstimator,
    SystemPerformanceOptimizer,
)
from cross_entropy_lab.errors import InvalidArgumentError

app = typer.Typer(
    name="cross-entropy-lab",
    help="The Cross-Entropy method for optimization and rare-event estimation",
    add_completion=False,
)
console = Console()

TEST_FUNCTIONS = {
    "rosenbrock": lambda x: float(np.sum(100.0 * (x[1:] - x[:-1] ** 2) ** 2 + (1.0 - x[:-1]) ** 2)),
    "sphere": lambda x: float(np.sum(x**2)),
}

CONTEXTS = [
    ("Continuous", "real vector", "2×n means / std devs", "by goal"),
    ("Combination", "0/1 vector with k ones", "1×n probabilities", "by goal"),
    ("Partition", "part label per item", "k×n probabilities", "by goal"),
    ("Categorical entailment ensemble", "J premise/response/truth blocks", "1×J(F+R) probabilities", "by goal"),
    ("Gaussian rare event", "real vector", "2×n means / std devs", "by boundedness"),
]

# Library argument names that differ from their command-line option.
OPTION_NAMES = {
    "initial_argument": "--dimension",
    "estimation_sample_size": "--estimation-sample-size",
    "threshold_level": "--threshold",
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"cross-entropy-lab version {__version__}")
        raise typer.Exit()


def configure_tracing(enabled: bool) -> None:
    """Route library trace records to a rich console handler."""
    if not enabled:
        return
    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )


def parallel_options(sequential: bool) -> ParallelOptions:
    """Resolve the fan-out requested on the command line."""
    return ParallelOptions(1) if sequential else ParallelOptions()


def bad_parameter(error: InvalidArgumentError) -> typer.BadParameter:
    """Translate a library argument error into a usage error."""
    hint = OPTION_NAMES.get(error.parameter, "--" + error.parameter.replace("_", "-"))
    return typer.BadParameter(error.reason, param_hint=hint)


@app.callback()  # type: ignore[misc]
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Cross-Entropy Lab - Cross-Entropy method experiments."""
    pass


@app.command()  # type: ignore[misc]
def info() -> None:
    """Display the available Cross-Entropy contexts."""
    table = Table(title="Available Cross-Entropy Contexts")

    table.add_column("Context", style="cyan", no_wrap=True)
    table.add_column("State")
    table.add_column("Parameter")
    table.add_column("Elite side", justify="center")

    for row in CONTEXTS:
        table.add_row(*row)

    console.print(table)


@app.command()  # type: ignore[misc]
def minimize(
    function: Annotated[
        str,
        typer.Option("--function", "-f", help="Test function (rosenbrock, sphere)"),
    ] = "rosenbrock",
    dimension: Annotated[
        int,
        typer.Option("--dimension", "-n", help="Number of arguments"),
    ] = 2,
    sample_size: Annotated[
        int | None,
        typer.Option("--sample-size", "-s", help="Sample size (default 100 per argument)"),
    ] = None,
    rarity: Annotated[
        float,
        typer.Option("--rarity", "-r", help="Elite fraction in (0, 1)"),
    ] = 0.01,
    sequential: Annotated[
        bool,
        typer.Option("--sequential", help="Deterministic single-threaded execution"),
    ] = False,
    trace: Annotated[
        bool,
        typer.Option("--trace", help="Log iteration diagnostics"),
    ] = False,
) -> None:
    """Minimize a test function starting from the origin."""
    objective = TEST_FUNCTIONS.get(function.lower())
    if objective is None:
        msg = f"Unknown function: {function}. Available: {list(TEST_FUNCTIONS)}"
        raise typer.BadParameter(msg, param_hint="--function")

    configure_tracing(trace)

    options = parallel_options(sequential)
    optimizer = SystemPerformanceOptimizer(
        performance_evaluation_parallel_options=options,
        sample_generation_parallel_options=options,
    )
    if sample_size is None:
        sample_size = 100 * dimension

    try:
        context = ContinuousOptimizationContext(
            objective,
            np.zeros(dimension),
            mean_smoothing_coefficient=0.8,
            standard_deviation_smoothing_coefficient=0.7,
            standard_deviation_smoothing_exponent=6,
        )
        context.trace_execution = trace
        results = optimizer.optimize(context, rarity, sample_size)
    except InvalidArgumentError as error:
        raise bad_parameter(error) from error

    table = Table(title=f"Cross-Entropy Minimization: {function.lower()}")
    table.add_column("Property", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Optimal state", np.array2string(results.optimal_state, precision=6))
    table.add_row("Optimal performance", f"{results.optimal_performance:.6e}")
    table.add_row("Iterations", str(results.iterations))
    table.add_row("Converged", "✓" if results.has_converged else "✗")

    console.print(table)


@app.command()  # type: ignore[misc]
def estimate(
    threshold: Annotated[
        float,
        typer.Option("--threshold", "-t", help="Rare event is X >= threshold, X ~ N(0, 1)"),
    ] = 2.0,
    rarity: Annotated[
        float,
        typer.Option("--rarity", "-r", help="Elite fraction in (0, 1)"),
    ] = 0.1,
    sample_size: Annotated[
        int,
        typer.Option("--sample-size", "-s", help="Sample size per iteration"),
    ] = 1000,
    estimation_sample_size: Annotated[
        int,
        typer.Option("--estimation-sample-size", "-m", help="Sample size of the final estimate"),
    ] = 100_000,
    sequential: Annotated[
        bool,
        typer.Option("--sequential", help="Deterministic single-threaded execution"),
    ] = False,
    trace: Annotated[
        bool,
        typer.Option("--trace", help="Log iteration diagnostics"),
    ] = False,
) -> None:
    """Estimate a standard Gaussian tail probability by importance sampling."""
    configure_tracing(trace)

    options = parallel_options(sequential)
    estimator = RareEventProbabilityEstimator(
        performance_evaluation_parallel_options=options,
        sample_generation_parallel_options=options,
    )

    try:
        context = GaussianProbabilityEstimationContext(
            performance_function=lambda x: float(x[0]),
            nominal_means=[0.0],
            nominal_standard_deviations=[1.0],
            threshold_level=threshold,
            rare_event_performance_boundedness="lower",
        )
        context.trace_execution = trace
        results = estimator.estimate(context, rarity, sample_size, estimation_sample_size)
    except InvalidArgumentError as error:
        raise bad_parameter(error) from error
    exact = 0.5 * math.erfc(threshold / math.sqrt(2.0))

    table = Table(title=f"P(X ≥ {threshold:g}), X ~ N(0, 1)")
    table.add_column("Property", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Estimate", f"{results.rare_event_probability:.6e}")
    table.add_row("Exact", f"{exact:.6e}")
    table.add_row("Relative error", f"{abs(results.rare_event_probability - exact) / exact:.2%}")
    table.add_row("Iterations", str(results.iterations))
    table.add_row("Reference mean", f"{results.parameters[-1][0, 0]:.4f}")

    console.print(table)


if __name__ == "__main__":
    app()
