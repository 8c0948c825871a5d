"""Decision stability tracking for discrete Cross-Entropy contexts.

Discrete contexts (combinations, partitions) stop early once the decision
implied by the reference parameter has not changed for a number of
consecutive iterations. The history is bounded to the window it inspects.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Hashable

from cross_entropy_lab.errors import OutOfRangeError


class DecisionHistory:
    """Rolling record of the latest decisions.

    Args:
        window: Number of past decisions that must agree with the latest one.

    Example:
        >>> history = DecisionHistory(window=2)
        >>> for decision in ("a", "b", "b", "b"):
        ...     history.record(decision)
        >>> history.is_stable()
        True
    """

    __slots__ = ("_window", "_decisions")

    def __init__(self, window: int) -> None:
        if window < 1:
            raise OutOfRangeError("window", "must be positive")
        self._window = window
        self._decisions: deque[Hashable] = deque(maxlen=window + 1)

    @property
    def window(self) -> int:
        """Number of past decisions compared with the latest one."""
        return self._window

    def record(self, decision: Hashable) -> None:
        """Append the decision of the latest iteration."""
        self._decisions.append(decision)

    def is_stable(self) -> bool:
        """True iff the last ``window + 1`` decisions are all equal."""
        if len(self._decisions) <= self._window:
            return False
        latest = self._decisions[-1]
        return all(decision == latest for decision in self._decisions)

    def clear(self) -> None:
        """Forget every recorded decision."""
        self._decisions.clear()

    def __len__(self) -> int:
        return len(self._decisions)

    def __repr__(self) -> str:
        return f"DecisionHistory(window={self._window}, recorded={len(self._decisions)})"


__all__ = ["DecisionHistory"]
