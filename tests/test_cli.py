"""Tests for the command-line interface."""

import logging

import numpy as np
import pytest
from typer.testing import CliRunner

from cross_entropy_lab import __version__
from cross_entropy_lab.algorithms import ParallelOptions
from cross_entropy_lab.cli import TEST_FUNCTIONS, app, bad_parameter, parallel_options
from cross_entropy_lab.errors import OutOfRangeError, ShapeMismatchError

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handlers installed by --trace."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestCli:
    """Tests for the cross-entropy-lab commands."""

    def test_version(self) -> None:
        """--version prints the package version."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_info(self) -> None:
        """info lists every context."""
        result = runner.invoke(app, ["info"])
        assert result.exit_code == 0
        for name in ("Continuous", "Combination", "Partition"):
            assert name in result.stdout

    def test_minimize_sphere(self) -> None:
        """minimize reports the optimum of the sphere function."""
        result = runner.invoke(app, ["minimize", "--function", "sphere", "--sequential"])
        assert result.exit_code == 0, result.output
        assert "Optimal state" in result.stdout
        assert "Iterations" in result.stdout

    def test_minimize_unknown_function(self) -> None:
        """Unknown test functions are a usage error."""
        result = runner.invoke(app, ["minimize", "--function", "himmelblau"])
        assert result.exit_code != 0

    @pytest.mark.parametrize(
        "arguments",
        [
            ["--dimension", "0"],
            ["--rarity", "1.5"],
            ["--sample-size", "0"],
        ],
    )
    def test_minimize_invalid_arguments(self, arguments: list[str]) -> None:
        """Out-of-range settings are usage errors rather than crashes."""
        result = runner.invoke(app, ["minimize", "--function", "sphere", "--sequential", *arguments])
        assert result.exit_code == 2, result.output
        assert isinstance(result.exception, SystemExit)

    @pytest.mark.parametrize(
        "arguments",
        [
            ["--rarity", "1.5"],
            ["--sample-size", "0"],
            ["--estimation-sample-size", "0"],
        ],
    )
    def test_estimate_invalid_arguments(self, arguments: list[str]) -> None:
        """Estimation settings are checked the same way."""
        result = runner.invoke(app, ["estimate", "--sequential", *arguments])
        assert result.exit_code == 2, result.output
        assert isinstance(result.exception, SystemExit)

    def test_estimate(self) -> None:
        """estimate compares the estimate with the exact tail."""
        result = runner.invoke(
            app,
            ["estimate", "--threshold", "1.0", "--estimation-sample-size", "20000", "--sequential"],
        )
        assert result.exit_code == 0, result.output
        assert "Estimate" in result.stdout
        assert "Exact" in result.stdout

    def test_estimate_trace(self) -> None:
        """--trace routes iteration diagnostics to the console."""
        result = runner.invoke(
            app,
            ["estimate", "-t", "1.0", "-m", "1000", "--sequential", "--trace"],
        )
        assert result.exit_code == 0, result.output
        assert "Iteration" in result.stdout


class TestHelpers:
    """Tests for CLI helpers."""

    def test_parallel_options(self) -> None:
        """--sequential selects a single worker."""
        assert parallel_options(True) == ParallelOptions(1)
        assert not parallel_options(False).is_sequential

    def test_functions(self) -> None:
        """Test functions vanish at their minimizers."""
        assert TEST_FUNCTIONS["sphere"](np.zeros(3)) == 0.0
        assert TEST_FUNCTIONS["rosenbrock"](np.ones(3)) == 0.0

    def test_bad_parameter_hint(self) -> None:
        """Library argument names map onto command-line options."""
        error = bad_parameter(OutOfRangeError("rarity", "must lie in the open interval (0, 1)"))
        assert error.param_hint == "--rarity"
        assert error.message == "must lie in the open interval (0, 1)"
        assert bad_parameter(OutOfRangeError("sample_size", "must be positive")).param_hint == "--sample-size"
        assert bad_parameter(ShapeMismatchError("initial_argument", "empty")).param_hint == "--dimension"
