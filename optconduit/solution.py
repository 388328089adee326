"""Uniform solution record produced by every solve path."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

import numpy as np

from .problem import Array

if TYPE_CHECKING:
    from .cache import OptimizationCache
    from .optimizers import Optimizer


class ConvergenceStatus(str, Enum):
    """Convergence flag reported by the solver, as a symbol."""

    TRUE = "true"
    FALSE = "false"

    @classmethod
    def from_bool(cls, converged: bool) -> "ConvergenceStatus":
        return cls.TRUE if converged else cls.FALSE

    def __bool__(self) -> bool:
        return self is ConvergenceStatus.TRUE


@dataclass(frozen=True)
class Solution:
    """Result of one ``solve`` call.

    Attributes:
        minimizer: Best point found, same dimension as the initial point.
        minimum: Objective value at ``minimizer`` in the problem's own sense.
        convergence_status: Whether the solver reported convergence.
        solve_time: Wall-clock seconds spent inside the solver call.
        original: The solver's raw ``OptimizeResult``.
        optimizer: Optimizer descriptor that produced the result.
        cache: The cache that was solved.
    """

    minimizer: Array
    minimum: float
    convergence_status: ConvergenceStatus
    solve_time: float
    original: Any = None
    optimizer: Optional["Optimizer"] = None
    cache: Optional["OptimizationCache"] = None

    @property
    def converged(self) -> bool:
        return bool(self.convergence_status)


def converged(result: Any) -> bool:
    """Read the success flag of a SciPy result."""
    success = getattr(result, "success", None)
    if success is None:
        lowest = getattr(result, "lowest_optimization_result", None)
        success = getattr(lowest, "success", False)
    return bool(success)


def build_solution(
    cache: "OptimizationCache",
    optimizer: "Optimizer",
    minimizer: Array,
    minimum: float,
    *,
    original: Any,
    convergence_status: ConvergenceStatus,
    solve_time: float,
) -> Solution:
    return Solution(
        minimizer=np.array(minimizer, dtype=float),
        minimum=float(minimum),
        convergence_status=convergence_status,
        solve_time=float(solve_time),
        original=original,
        optimizer=optimizer,
        cache=cache,
    )


__all__ = ["ConvergenceStatus", "Solution", "build_solution", "converged"]
