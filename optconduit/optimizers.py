"""Optimizer descriptors for the SciPy algorithm family.

A descriptor names one concrete algorithm, carries its static capability tags
and knows how to invoke SciPy once with prepared callables. Descriptors are
immutable; bounds-related rewrites produce new descriptors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, ClassVar, Optional, Sequence

import numpy as np
from scipy import optimize as sciopt

if TYPE_CHECKING:
    from .objective import ObjectiveBundle
    from .options import AlgorithmOptions

MINIMIZE = "minimize"
DIFFERENTIAL_EVOLUTION = "differential_evolution"
DUAL_ANNEALING = "dual_annealing"
BASINHOPPING = "basinhopping"

FAMILIES = (MINIMIZE, DIFFERENTIAL_EVOLUTION, DUAL_ANNEALING, BASINHOPPING)

# L-BFGS-B ignores ``disp`` since SciPy 1.15.
_UNMAPPED_BY_METHOD: dict[str, frozenset[str]] = {
    "L-BFGS-B": frozenset({"progress"}),
}


@dataclass(frozen=True, eq=False)
class Optimizer(ABC):
    """Base descriptor.

    Capability tags are plain class attributes:

    * ``supports_bounds`` - bounds can be honored, natively or by wrapping.
    * ``requires_bounds`` - the algorithm only runs inside a box.
    * ``supports_constraints`` / ``requires_constraints`` - nonlinear constraints.
    * ``derivative_free`` - no gradient needed.
    * ``population_based`` - iterates a population; bounds are constructor
      parameters and the reported iterate is the population centroid.
    * ``uses_hess`` / ``uses_hvp`` - second-order information consumed.
    """

    family = MINIMIZE
    scipy_method: ClassVar[Optional[str]] = None
    box_method = "L-BFGS-B"
    hook_style = "intermediate_result"

    supports_bounds = True
    requires_bounds = False
    supports_constraints = False
    requires_constraints = False
    derivative_free = False
    population_based = False
    uses_hess = False
    uses_hvp = False

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def unmapped_options(self) -> frozenset[str]:
        """Common knobs this algorithm accepts by name but does not act on."""
        return frozenset()

    def native_options(self) -> dict[str, Any]:
        """Algorithm-specific options merged under the caller's passthrough kwargs."""
        return {}

    @abstractmethod
    def run(
        self,
        objective: "ObjectiveBundle",
        x0: np.ndarray,
        options: "AlgorithmOptions",
        bounds: Optional[sciopt.Bounds] = None,
        constraints: Sequence[sciopt.NonlinearConstraint] = (),
    ) -> sciopt.OptimizeResult:
        """Invoke SciPy once and return its raw result."""


@dataclass(frozen=True)
class _ScipyMinimizer(Optimizer):
    """Shared ``scipy.optimize.minimize`` invocation."""

    @property
    def unmapped_options(self) -> frozenset[str]:
        return _UNMAPPED_BY_METHOD.get(self.scipy_method, frozenset())

    def _derivative_kwargs(self, objective: "ObjectiveBundle") -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if self.derivative_free:
            return kwargs
        kwargs["jac"] = objective.jac
        if self.uses_hvp and objective.hessp is not None:
            kwargs["hessp"] = objective.hessp
        elif self.uses_hess and objective.hess is not None:
            kwargs["hess"] = objective.hess
        return kwargs

    def _minimize(
        self,
        fun: Any,
        x0: np.ndarray,
        method: str,
        options: "AlgorithmOptions",
        **kwargs: Any,
    ) -> sciopt.OptimizeResult:
        if options.tol is not None:
            kwargs["tol"] = options.tol
        return sciopt.minimize(
            fun,
            x0,
            method=method,
            callback=options.callback,
            options=dict(options.options),
            **kwargs,
        )

    def run(self, objective, x0, options, bounds=None, constraints=()):
        kwargs = self._derivative_kwargs(objective)
        if bounds is not None:
            kwargs["bounds"] = bounds
        return self._minimize(objective.fun, x0, self.scipy_method, options, **kwargs)


@dataclass(frozen=True)
class BFGS(_ScipyMinimizer):
    """Quasi-Newton BFGS."""

    scipy_method = "BFGS"


@dataclass(frozen=True)
class LBFGS(_ScipyMinimizer):
    """Limited-memory BFGS keeping ``m`` correction pairs."""

    m: int = 10
    scipy_method = "L-BFGS-B"

    def __post_init__(self) -> None:
        if self.m <= 0:
            raise ValueError("Memory parameter m must be positive.")

    def native_options(self) -> dict[str, Any]:
        return {"maxcor": self.m}


@dataclass(frozen=True)
class ConjugateGradient(_ScipyMinimizer):
    """Nonlinear conjugate gradient (Polak-Ribiere)."""

    scipy_method = "CG"


@dataclass(frozen=True)
class NewtonCG(_ScipyMinimizer):
    """Line-search Newton with conjugate-gradient inner solves."""

    scipy_method = "Newton-CG"
    uses_hess = True


@dataclass(frozen=True)
class NewtonTrustRegion(_ScipyMinimizer):
    """Trust-region Newton with exact subproblem solves; needs a dense Hessian."""

    scipy_method = "trust-exact"
    uses_hess = True


@dataclass(frozen=True)
class KrylovTrustRegion(_ScipyMinimizer):
    """Trust-region Newton driven by Hessian-vector products only."""

    scipy_method = "trust-krylov"
    uses_hvp = True


@dataclass(frozen=True)
class NelderMead(_ScipyMinimizer):
    """Nelder-Mead simplex search."""

    adaptive: bool = False
    scipy_method = "Nelder-Mead"
    box_method = "Nelder-Mead"
    derivative_free = True

    def native_options(self) -> dict[str, Any]:
        return {"adaptive": self.adaptive} if self.adaptive else {}


@dataclass(frozen=True)
class Fminbox(_ScipyMinimizer):
    """Box-constraint decorator around an unbounded ``minimize`` method.

    The inner method runs as its bounded SciPy counterpart (``box_method``),
    with missing bounds open-ended.
    """

    inner: Optimizer = field(default_factory=lambda: LBFGS())
    requires_bounds = True

    def __post_init__(self) -> None:
        inner = self.inner
        if (
            inner.family != MINIMIZE
            or inner.requires_bounds
            or inner.supports_constraints
        ):
            raise ValueError(f"{inner.name} cannot be wrapped in Fminbox")

    @property
    def scipy_method(self) -> str:  # type: ignore[override]
        return self.inner.box_method

    @property
    def derivative_free(self) -> bool:  # type: ignore[override]
        return self.inner.derivative_free

    @property
    def name(self) -> str:
        return f"Fminbox({self.inner.name})"

    def native_options(self) -> dict[str, Any]:
        if self.inner.box_method == self.inner.scipy_method:
            return self.inner.native_options()
        return {}

    def run(self, objective, x0, options, bounds=None, constraints=()):
        if self.derivative_free:
            return self._minimize(
                objective.fun, x0, self.scipy_method, options, bounds=bounds
            )
        return self._minimize(
            objective.fun_and_jac,
            x0,
            self.scipy_method,
            options,
            jac=True,
            bounds=bounds,
        )


@dataclass(frozen=True)
class TrustConstr(_ScipyMinimizer):
    """Trust-region interior-point method for nonlinear constraints."""

    scipy_method = "trust-constr"
    supports_constraints = True
    requires_constraints = True
    uses_hess = True

    def run(self, objective, x0, options, bounds=None, constraints=()):
        hess = objective.hess if objective.hess is not None else sciopt.BFGS()
        return self._minimize(
            objective.fun,
            x0,
            self.scipy_method,
            options,
            jac=objective.jac,
            hess=hess,
            bounds=bounds,
            constraints=list(constraints),
        )


@dataclass(frozen=True, eq=False)
class DifferentialEvolution(Optimizer):
    """Population-based global search; bounds are constructor parameters.

    SciPy's ``popsize`` is a multiplier: the population holds
    ``popsize * len(x0)`` members.
    """

    lower: Optional[np.ndarray] = None
    upper: Optional[np.ndarray] = None
    popsize: int = 15

    family = DIFFERENTIAL_EVOLUTION
    derivative_free = True
    population_based = True

    def with_bounds(
        self, lower: Optional[np.ndarray], upper: Optional[np.ndarray]
    ) -> "DifferentialEvolution":
        return replace(self, lower=lower, upper=upper)

    def check_bounds(self) -> None:
        """Raise ``ValueError`` unless both bound vectors are present and finite."""
        for side in (self.lower, self.upper):
            if side is None or not np.all(np.isfinite(np.asarray(side, dtype=float))):
                raise ValueError(
                    f"{self.name} needs finite lower and upper bounds, got "
                    f"lower={self.lower!r} upper={self.upper!r}"
                )

    def run(self, objective, x0, options, bounds=None, constraints=()):
        self.check_bounds()
        box = sciopt.Bounds(
            np.asarray(self.lower, dtype=float), np.asarray(self.upper, dtype=float)
        )
        return sciopt.differential_evolution(
            objective.fun,
            box,
            x0=x0,
            popsize=self.popsize,
            callback=options.callback,
            **options.kwargs,
        )


@dataclass(frozen=True)
class BasinHopping(Optimizer):
    """Annealing-style global search; cannot honor bounds."""

    T: float = 1.0
    stepsize: float = 0.5

    family = BASINHOPPING
    hook_style = "positional"
    supports_bounds = False
    derivative_free = True

    def run(self, objective, x0, options, bounds=None, constraints=()):
        kwargs = dict(options.kwargs)
        kwargs.setdefault("minimizer_kwargs", {"method": "L-BFGS-B"})
        return sciopt.basinhopping(
            objective.fun,
            x0,
            T=self.T,
            stepsize=self.stepsize,
            callback=options.callback,
            **kwargs,
        )


@dataclass(frozen=True)
class DualAnnealing(Optimizer):
    """Generalized simulated annealing inside a finite box."""

    family = DUAL_ANNEALING
    hook_style = "positional"
    requires_bounds = True
    derivative_free = True

    def run(self, objective, x0, options, bounds=None, constraints=()):
        if bounds is None:
            raise ValueError("DualAnnealing needs lower and upper bounds")
        return sciopt.dual_annealing(
            objective.fun,
            list(zip(bounds.lb, bounds.ub)),
            x0=x0,
            callback=options.callback,
            **options.kwargs,
        )


_REGISTRY: dict[str, type[Optimizer]] = {
    "bfgs": BFGS,
    "lbfgs": LBFGS,
    "l_bfgs": LBFGS,
    "cg": ConjugateGradient,
    "conjugate_gradient": ConjugateGradient,
    "newton_cg": NewtonCG,
    "newton_trust_region": NewtonTrustRegion,
    "krylov_trust_region": KrylovTrustRegion,
    "nelder_mead": NelderMead,
    "differential_evolution": DifferentialEvolution,
    "basinhopping": BasinHopping,
    "basin_hopping": BasinHopping,
    "dual_annealing": DualAnnealing,
    "trust_constr": TrustConstr,
    "fminbox": Fminbox,
}


def create_optimizer(name: str, **kwargs: Any) -> Optimizer:
    """Create an optimizer descriptor from its name.

    Names are case-insensitive and ``-`` is treated as ``_``. For
    ``"fminbox"``, ``inner`` may itself be a name.

    Raises:
        ValueError: If the name is not supported.
    """
    key = name.lower().replace("-", "_")
    if key not in _REGISTRY:
        raise ValueError(
            f"Unsupported optimizer name '{name}'. "
            f"Supported names: {sorted(_REGISTRY)}"
        )
    if key == "fminbox" and isinstance(kwargs.get("inner"), str):
        kwargs["inner"] = create_optimizer(kwargs["inner"])
    return _REGISTRY[key](**kwargs)


__all__ = [
    "BASINHOPPING",
    "BFGS",
    "BasinHopping",
    "ConjugateGradient",
    "DIFFERENTIAL_EVOLUTION",
    "DUAL_ANNEALING",
    "DifferentialEvolution",
    "DualAnnealing",
    "FAMILIES",
    "Fminbox",
    "KrylovTrustRegion",
    "LBFGS",
    "MINIMIZE",
    "NelderMead",
    "NewtonCG",
    "NewtonTrustRegion",
    "Optimizer",
    "TrustConstr",
    "create_optimizer",
]
