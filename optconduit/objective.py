"""Minimization-oriented objective and constraint bundles for each solve path.

Every callable handed to SciPy is built here. Objective callables inject the
current mini-batch element from the :class:`~optconduit.data.SolveState` and,
for maximization problems, negate the value and every derivative. Constraint
callables are never negated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import numpy as np
from scipy.optimize import BFGS, Bounds, NonlinearConstraint

from .data import SolveState
from .problem import Array, InstantiatedFunction, Sense, first_value


@dataclass(frozen=True)
class ObjectiveBundle:
    """Objective callables in SciPy's conventions.

    ``fun_and_jac`` returns ``(value, gradient)`` for use with ``jac=True``.
    """

    fun: Callable[[Array], float]
    jac: Optional[Callable[[Array], Array]] = None
    hess: Optional[Callable[[Array], Array]] = None
    hessp: Optional[Callable[[Array, Array], Array]] = None
    fun_and_jac: Optional[Callable[[Array], tuple[float, Array]]] = None


def sense_sign(sense: Sense) -> float:
    return -1.0 if sense is Sense.MAXIMIZE else 1.0


def _loss(f: InstantiatedFunction, state: SolveState, sign: float):
    def loss(theta: Array) -> float:
        output = f.f(theta, *state.batch)
        state.record(output)
        return sign * float(first_value(output))

    return loss


def _signed_grad(f: InstantiatedFunction, state: SolveState, sign: float):
    if f.grad is None:
        return None

    def grad(theta: Array) -> Array:
        return sign * f.grad(theta, *state.batch)

    return grad


def _signed_hess(f: InstantiatedFunction, state: SolveState, sign: float):
    if f.hess is None:
        return None

    def hess(theta: Array) -> Array:
        return sign * f.hess(theta, *state.batch)

    return hess


def _signed_hvp(f: InstantiatedFunction, state: SolveState, sign: float):
    if f.hvp is None:
        return None

    def hessp(theta: Array, v: Array) -> Array:
        return sign * f.hvp(theta, v, *state.batch)

    return hessp


def build_unconstrained_objective(
    f: InstantiatedFunction, state: SolveState, sense: Sense
) -> ObjectiveBundle:
    """Value, gradient, Hessian and Hessian-vector product."""
    sign = sense_sign(sense)
    return ObjectiveBundle(
        fun=_loss(f, state, sign),
        jac=_signed_grad(f, state, sign),
        hess=_signed_hess(f, state, sign),
        hessp=_signed_hvp(f, state, sign),
    )


def build_box_objective(
    f: InstantiatedFunction, state: SolveState, sense: Sense
) -> ObjectiveBundle:
    """Value, gradient and the combined value-and-gradient callable."""
    sign = sense_sign(sense)
    loss = _loss(f, state, sign)
    grad = _signed_grad(f, state, sign)
    fun_and_jac = None
    if grad is not None:

        def fun_and_jac(theta: Array) -> tuple[float, Array]:
            return loss(theta), grad(theta)

    return ObjectiveBundle(fun=loss, jac=grad, fun_and_jac=fun_and_jac)


def build_constrained_objective(
    f: InstantiatedFunction, state: SolveState, sense: Sense
) -> ObjectiveBundle:
    """Value, gradient and Hessian; constraints come from :func:`build_constraints`."""
    sign = sense_sign(sense)
    return ObjectiveBundle(
        fun=_loss(f, state, sign),
        jac=_signed_grad(f, state, sign),
        hess=_signed_hess(f, state, sign),
    )


def box_bounds(
    lower: Optional[Array], upper: Optional[Array], dim: int
) -> Bounds:
    """Hyper-rectangle ``[lower, upper]``; a missing side is open-ended."""
    lb = np.full(dim, -np.inf) if lower is None else np.asarray(lower, dtype=float)
    ub = np.full(dim, np.inf) if upper is None else np.asarray(upper, dtype=float)
    return Bounds(lb, ub)


def lagrangian_hessian(
    cons_hess: Callable[[Array], Sequence[Array]]
) -> Callable[[Array, Array], Array]:
    """Combinator forming ``sum_i lam_i * hess(cons_i)(theta)``."""

    def hess(theta: Array, lam: Array) -> Array:
        n = np.asarray(theta).size
        total = np.zeros((n, n), dtype=float)
        for weight, h in zip(np.asarray(lam, dtype=float), cons_hess(theta)):
            total += weight * np.asarray(h, dtype=float)
        return total

    return hess


@dataclass(frozen=True)
class ConstraintBundle:
    """Nonlinear constraints plus variable bounds for the constrained path.

    Empty bound vectors mean "no bound on that side".
    """

    cons: Optional[Callable[[Array], Array]]
    jac: Optional[Callable[[Array], Array]]
    lagrangian_hess: Optional[Callable[[Array, Array], Array]]
    cons_lower: Array
    cons_upper: Array
    lower_bounds: Array
    upper_bounds: Array

    def nonlinear_constraint(self) -> NonlinearConstraint:
        hess = self.lagrangian_hess if self.lagrangian_hess is not None else BFGS()
        return NonlinearConstraint(
            self.cons,
            self.cons_lower,
            self.cons_upper,
            jac=self.jac,
            hess=hess,
        )

    def bounds(self, dim: int) -> Optional[Bounds]:
        if self.lower_bounds.size == 0 and self.upper_bounds.size == 0:
            return None
        return box_bounds(
            self.lower_bounds if self.lower_bounds.size else None,
            self.upper_bounds if self.upper_bounds.size else None,
            dim,
        )


def _vector_or_empty(values: Optional[Array]) -> Array:
    return np.zeros(0) if values is None else np.asarray(values, dtype=float)


def build_constraints(
    f: InstantiatedFunction,
    cons_lower: Optional[Array],
    cons_upper: Optional[Array],
    lower_bounds: Optional[Array],
    upper_bounds: Optional[Array],
) -> ConstraintBundle:
    return ConstraintBundle(
        cons=f.cons,
        jac=f.cons_jac,
        lagrangian_hess=(
            lagrangian_hessian(f.cons_hess) if f.cons_hess is not None else None
        ),
        cons_lower=_vector_or_empty(cons_lower),
        cons_upper=_vector_or_empty(cons_upper),
        lower_bounds=_vector_or_empty(lower_bounds),
        upper_bounds=_vector_or_empty(upper_bounds),
    )


__all__ = [
    "ConstraintBundle",
    "ObjectiveBundle",
    "box_bounds",
    "build_box_objective",
    "build_constrained_objective",
    "build_constraints",
    "build_unconstrained_objective",
    "lagrangian_hessian",
    "sense_sign",
]
