"""Invalid-argument taxonomy shared by every Cross-Entropy component.

All errors derive from ``ValueError`` so callers can catch them generically,
while the subclasses let tests and applications distinguish the kind of
violation. Each error records the name of the offending parameter.
"""

from __future__ import annotations


class InvalidArgumentError(ValueError):
    """An argument violates a documented precondition."""

    def __init__(self, parameter: str, reason: str) -> None:
        self.parameter = parameter
        """Name of the offending parameter."""

        self.reason = reason
        """Human readable description of the violation."""

        super().__init__(f"{parameter}: {reason}")


class MissingArgumentError(InvalidArgumentError, TypeError):
    """A required argument is ``None``."""

    def __init__(self, parameter: str) -> None:
        super().__init__(parameter, "must not be None")


class OutOfRangeError(InvalidArgumentError):
    """A numeric argument lies outside its admissible domain."""


class ShapeMismatchError(InvalidArgumentError):
    """An array has a shape incompatible with the context it is used with."""


class RarityConfigurationError(InvalidArgumentError):
    """The rarity leaves no elite rows for the requested sample size."""


class UnsupportedValueError(InvalidArgumentError):
    """A value is not a member of the enumeration it is parsed into."""


def require(value: object, parameter: str) -> None:
    """Raise :class:`MissingArgumentError` if ``value`` is ``None``."""
    if value is None:
        raise MissingArgumentError(parameter)


__all__ = [
    "InvalidArgumentError",
    "MissingArgumentError",
    "OutOfRangeError",
    "RarityConfigurationError",
    "ShapeMismatchError",
    "UnsupportedValueError",
    "require",
]
