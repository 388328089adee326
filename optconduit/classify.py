"""Capability classification of optimizers and bounds-driven reclassification."""

from __future__ import annotations

import warnings
from enum import Enum
from typing import TYPE_CHECKING

from .errors import IncompatibleBoundsWarning
from .logging import get_logger
from .optimizers import DifferentialEvolution, Fminbox, Optimizer
from .problem import Problem

if TYPE_CHECKING:
    from .solvers import SolvePath

logger = get_logger(__name__)


class Capability(Enum):
    UNCONSTRAINED = "unconstrained"
    BOX_CONSTRAINED = "box_constrained"
    CONSTRAINED = "constrained"


def allows_bounds(optimizer: Optimizer) -> bool:
    return bool(optimizer.supports_bounds)


def requires_bounds(optimizer: Optimizer) -> bool:
    return bool(optimizer.requires_bounds)


def allows_constraints(optimizer: Optimizer) -> bool:
    return bool(optimizer.supports_constraints)


def requires_constraints(optimizer: Optimizer) -> bool:
    return bool(optimizer.requires_constraints)


def classify(optimizer: Optimizer) -> Capability:
    """Return the single capability class of ``optimizer``.

    Constraint support wins over bound requirements, so an optimizer that
    handles both is treated as constrained.
    """
    if allows_constraints(optimizer):
        return Capability.CONSTRAINED
    if requires_bounds(optimizer):
        return Capability.BOX_CONSTRAINED
    return Capability.UNCONSTRAINED


def solve_path(optimizer: Optimizer) -> "SolvePath":
    """Solve path object matching ``classify(optimizer)``."""
    from .solvers import PATHS

    return PATHS[classify(optimizer)]


def prepare_optimizer(problem: Problem, optimizer: Optimizer) -> Optimizer:
    """Rewrite ``optimizer`` so it can honor ``problem``'s variable bounds.

    Problems without bounds, and optimizers that already take bounds natively
    (box family or constrained family), are returned unchanged.

    Raises:
        ValueError: A population-based optimizer ends up without finite lower
            and upper bounds.
    """
    if isinstance(optimizer, DifferentialEvolution):
        if problem.has_bounds:
            logger.debug("Passing problem bounds to %s", optimizer.name)
            optimizer = optimizer.with_bounds(
                problem.lower_bounds, problem.upper_bounds
            )
        optimizer.check_bounds()
        return optimizer

    if not problem.has_bounds:
        return optimizer
    if requires_bounds(optimizer) or allows_constraints(optimizer):
        return optimizer

    if not allows_bounds(optimizer):
        warnings.warn(
            f"{optimizer.name} does not support box constraints. "
            "Either remove the bounds from the problem or use a different "
            "optimizer; solving without bounds.",
            IncompatibleBoundsWarning,
            stacklevel=3,
        )
        return optimizer

    wrapped = Fminbox(optimizer)
    logger.debug("Wrapped %s as %s", optimizer.name, wrapped.name)
    return wrapped


__all__ = [
    "Capability",
    "allows_bounds",
    "allows_constraints",
    "classify",
    "prepare_optimizer",
    "requires_bounds",
    "requires_constraints",
    "solve_path",
]
