"""Problem and objective-function containers shared across solve paths."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Sequence

import numpy as np

if TYPE_CHECKING:
    from .autodiff import ADBackend

Array = np.ndarray
Objective = Callable[..., Any]


class Sense(Enum):
    """Optimization sense. All solvers minimize; maximization flips signs."""

    MINIMIZE = "minimize"
    MAXIMIZE = "maximize"


@dataclass(frozen=True)
class SymbolicSystem:
    """Ordered names of the states and parameters of a symbolic model.

    A problem whose objective carries a ``SymbolicSystem`` can be re-initialized
    with ``{name: value}`` mappings instead of positional vectors.
    """

    states: tuple[str, ...]
    parameters: tuple[str, ...] = ()

    def remap_states(self, mapping: Mapping[str, float], current: Any) -> Array:
        return _remap(self.states, mapping, current, "state")

    def remap_parameters(self, mapping: Mapping[str, float], current: Any) -> Array:
        return _remap(self.parameters, mapping, current, "parameter")


def _remap(
    names: Sequence[str], mapping: Mapping[str, float], current: Any, kind: str
) -> Array:
    unknown = sorted(set(mapping) - set(names))
    if unknown:
        raise ValueError(f"Unknown {kind} names: {unknown}. Known: {list(names)}")
    if current is None:
        values = np.full(len(names), np.nan)
    else:
        values = np.array(current, dtype=float).reshape(-1).copy()
        if values.size != len(names):
            raise ValueError(
                f"Current {kind} vector has {values.size} entries, "
                f"expected {len(names)}"
            )
    for i, name in enumerate(names):
        if name in mapping:
            values[i] = float(mapping[name])
    missing = [name for i, name in enumerate(names) if np.isnan(values[i])]
    if missing:
        raise ValueError(f"No value given for {kind}s {missing}")
    return values


@dataclass(frozen=True)
class ObjectiveFunction:
    """Objective with optional derivative and constraint callables.

    Signatures follow ``fun(theta, p, *batch)``: ``theta`` is the decision
    vector, ``p`` the problem parameters and ``batch`` the current mini-batch
    element. ``fun`` may return a scalar or a tuple whose first entry is the
    objective value; the remaining entries are forwarded to the user callback.

    Args:
        fun: Objective ``fun(theta, p, *batch)``.
        grad: Gradient ``grad(theta, p, *batch) -> (n,)``.
        hess: Hessian ``hess(theta, p, *batch) -> (n, n)``.
        hvp: Hessian-vector product ``hvp(theta, v, p, *batch) -> (n,)``.
        cons: Constraint values ``cons(theta, p) -> (m,)``.
        cons_jac: Constraint Jacobian ``cons_jac(theta, p) -> (m, n)``.
        cons_hess: Constraint Hessians ``cons_hess(theta, p) -> [(n, n)] * m``.
        adtype: Optional autodiff backend filling in missing derivatives.
        sys: Optional symbolic system enabling name-based re-init.
    """

    fun: Objective
    grad: Optional[Callable[..., Any]] = None
    hess: Optional[Callable[..., Any]] = None
    hvp: Optional[Callable[..., Any]] = None
    cons: Optional[Callable[..., Any]] = None
    cons_jac: Optional[Callable[..., Any]] = None
    cons_hess: Optional[Callable[..., Any]] = None
    adtype: Optional["ADBackend"] = None
    sys: Optional[SymbolicSystem] = None


@dataclass(frozen=True)
class Problem:
    """Solver-agnostic optimization problem."""

    objective: ObjectiveFunction
    initial_point: Array
    parameters: Any = None
    lower_bounds: Optional[Array] = None
    upper_bounds: Optional[Array] = None
    cons_lower: Optional[Array] = None
    cons_upper: Optional[Array] = None
    sense: Sense = Sense.MINIMIZE

    def __post_init__(self) -> None:
        if not isinstance(self.objective, ObjectiveFunction):
            object.__setattr__(self, "objective", ObjectiveFunction(self.objective))
        u0 = np.asarray(self.initial_point, dtype=float)
        if u0.ndim != 1:
            raise ValueError(
                f"initial_point must be a 1D vector, got shape {u0.shape}"
            )
        object.__setattr__(self, "initial_point", u0)
        for name in ("lower_bounds", "upper_bounds"):
            bound = getattr(self, name)
            if bound is None:
                continue
            bound = np.asarray(bound, dtype=float)
            if bound.shape != u0.shape:
                raise ValueError(
                    f"{name} has shape {bound.shape}, expected {u0.shape}"
                )
            object.__setattr__(self, name, bound)
        for name in ("cons_lower", "cons_upper"):
            bound = getattr(self, name)
            if bound is not None:
                object.__setattr__(
                    self, name, np.atleast_1d(np.asarray(bound, dtype=float))
                )
        if self.objective.cons is not None:
            if self.cons_lower is None or self.cons_upper is None:
                raise ValueError(
                    "cons_lower and cons_upper are required when constraints are given"
                )
            if self.cons_lower.shape != self.cons_upper.shape:
                raise ValueError(
                    "cons_lower and cons_upper must have the same length, got "
                    f"{self.cons_lower.size} and {self.cons_upper.size}"
                )

    @property
    def dim(self) -> int:
        return int(self.initial_point.size)

    @property
    def num_cons(self) -> int:
        return 0 if self.cons_upper is None else int(self.cons_upper.size)

    @property
    def has_bounds(self) -> bool:
        return self.lower_bounds is not None or self.upper_bounds is not None


@dataclass
class ReinitState:
    """The parts of a cache that ``reinit`` may replace between solves."""

    initial_point: Array
    parameters: Any = None


@dataclass(frozen=True)
class InstantiatedFunction:
    """Objective callables bound to a :class:`ReinitState`.

    Objective derivatives take ``(theta, *batch)``; constraint callables take
    ``theta`` only. Parameters are read from the state on every call.
    """

    f: Callable[..., Any]
    grad: Optional[Callable[..., Array]] = None
    hess: Optional[Callable[..., Array]] = None
    hvp: Optional[Callable[..., Array]] = None
    cons: Optional[Callable[[Array], Array]] = None
    cons_jac: Optional[Callable[[Array], Array]] = None
    cons_hess: Optional[Callable[[Array], Sequence[Array]]] = None
    sys: Optional[SymbolicSystem] = field(default=None)


def first_value(output: Any) -> Any:
    """Return the objective value from a scalar-or-tuple objective output."""
    if isinstance(output, tuple):
        return output[0]
    return output


def instantiate_function(
    objective: ObjectiveFunction,
    state: ReinitState,
    adtype: Optional["ADBackend"] = None,
    num_cons: int = 0,
) -> InstantiatedFunction:
    """Bind ``objective`` to ``state`` and fill missing derivatives via ``adtype``."""

    def to_input(theta: Array) -> Any:
        return adtype.to_input(theta) if adtype is not None else theta

    def raw_f(theta: Any, *batch: Any) -> Any:
        return objective.fun(theta, state.parameters, *batch)

    def f(theta: Array, *batch: Any) -> Any:
        return raw_f(to_input(theta), *batch)

    grad = hess = hvp = None
    if objective.grad is not None:

        def grad(theta: Array, *batch: Any) -> Array:
            value = objective.grad(to_input(theta), state.parameters, *batch)
            return np.asarray(value, dtype=float)

    if objective.hess is not None:

        def hess(theta: Array, *batch: Any) -> Array:
            value = objective.hess(to_input(theta), state.parameters, *batch)
            return np.asarray(value, dtype=float)

    if objective.hvp is not None:

        def hvp(theta: Array, v: Array, *batch: Any) -> Array:
            value = objective.hvp(to_input(theta), v, state.parameters, *batch)
            return np.asarray(value, dtype=float)

    cons = cons_jac = cons_hess = None
    if objective.cons is not None:

        def cons(theta: Array) -> Array:
            values = objective.cons(to_input(theta), state.parameters)
            return np.atleast_1d(np.asarray(values, dtype=float))

    if objective.cons_jac is not None:

        def cons_jac(theta: Array) -> Array:
            value = objective.cons_jac(to_input(theta), state.parameters)
            return np.atleast_2d(np.asarray(value, dtype=float))

    if objective.cons_hess is not None:

        def cons_hess(theta: Array) -> list[Array]:
            hessians = objective.cons_hess(to_input(theta), state.parameters)
            return [np.asarray(h, dtype=float) for h in hessians]

    if adtype is not None:
        grad = grad or adtype.gradient(raw_f)
        hess = hess or adtype.hessian(raw_f)
        hvp = hvp or adtype.hvp(raw_f)
        if objective.cons is not None and num_cons > 0:

            def raw_cons(theta: Any) -> Any:
                return objective.cons(theta, state.parameters)

            cons_jac = cons_jac or adtype.jacobian(raw_cons)
            cons_hess = cons_hess or adtype.constraint_hessians(raw_cons, num_cons)

    if hvp is None and hess is not None:
        dense_hess = hess

        def hvp(theta: Array, v: Array, *batch: Any) -> Array:
            return dense_hess(theta, *batch) @ np.asarray(v, dtype=float)

    return InstantiatedFunction(
        f=f,
        grad=grad,
        hess=hess,
        hvp=hvp,
        cons=cons,
        cons_jac=cons_jac,
        cons_hess=cons_hess,
        sys=objective.sys,
    )


__all__ = [
    "Array",
    "InstantiatedFunction",
    "ObjectiveFunction",
    "Problem",
    "ReinitState",
    "Sense",
    "SymbolicSystem",
    "first_value",
    "instantiate_function",
]
