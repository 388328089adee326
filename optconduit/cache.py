"""Pre-solve context: validated derivatives, re-initializable state, solve path."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Optional

import numpy as np

from .classify import classify, solve_path
from .data import DEFAULT_DATA
from .errors import (
    MissingConstraintDerivativeError,
    MissingDerivativeError,
    UnsupportedSymbolicRemapError,
)
from .logging import get_logger
from .optimizers import Optimizer
from .options import CommonOptions, default_callback
from .problem import Array, Problem, ReinitState, Sense, instantiate_function

if TYPE_CHECKING:
    from .solution import Solution

logger = get_logger(__name__)

_MISSING = object()


class OptimizationCache:
    """Everything needed to solve ``problem`` with ``optimizer``, minus the solve.

    Construction instantiates the objective (filling derivatives through the
    objective's autodiff backend, if any) and fails early when the optimizer
    needs derivatives that are not available. The initial point and the
    parameters can be swapped with :meth:`reinit` between solves without
    rebuilding any derivative callable.

    Args:
        problem: The problem to solve.
        optimizer: A descriptor already reclassified against the problem's
            bounds (see :func:`optconduit.classify.prepare_optimizer`).
        data: Mini-batch stream; ``None`` means :data:`DEFAULT_DATA`.
        callback: ``callback(iterate, *objective_outputs) -> bool``.
        progress: Ask the solver to print progress.
        **solver_args: ``maxiters``, ``maxtime``, ``abstol``, ``reltol`` and
            algorithm-native passthrough options.
    """

    has_reinit = True

    def __init__(
        self,
        problem: Problem,
        optimizer: Optimizer,
        data: Optional[Iterable[Any]] = None,
        *,
        callback: Optional[Callable[..., Any]] = None,
        progress: bool = False,
        maxiters: Optional[int] = None,
        maxtime: Optional[float] = None,
        abstol: Optional[float] = None,
        reltol: Optional[float] = None,
        **solver_args: Any,
    ) -> None:
        self.problem = problem
        self.optimizer = optimizer
        self.data = DEFAULT_DATA if data is None else data
        self.options = CommonOptions(
            callback=default_callback if callback is None else callback,
            maxiters=maxiters,
            maxtime=maxtime,
            abstol=abstol,
            reltol=reltol,
            progress=progress,
            extra=dict(solver_args),
        )
        self.reinit_cache = ReinitState(
            initial_point=np.array(problem.initial_point, dtype=float),
            parameters=problem.parameters,
        )
        objective = problem.objective
        self.f = instantiate_function(
            objective, self.reinit_cache, objective.adtype, problem.num_cons
        )

        if not optimizer.derivative_free and self.f.grad is None:
            raise MissingDerivativeError(
                f"{optimizer.name} requires the gradient but none is available. "
                "Use ObjectiveFunction to pass the derivatives or generate them "
                "with an autodiff backend, e.g. ObjectiveFunction(f, "
                "adtype=AutoFiniteDiff())."
            )
        if optimizer.supports_constraints and self.f.cons_jac is None:
            raise MissingConstraintDerivativeError(
                f"{optimizer.name} requires the constraint Jacobian but none is "
                "available. Pass cons_jac to ObjectiveFunction or generate it "
                "with an autodiff backend."
            )

        self.lower_bounds = problem.lower_bounds
        self.upper_bounds = problem.upper_bounds
        self.cons_lower = problem.cons_lower
        self.cons_upper = problem.cons_upper
        self.sense = problem.sense
        self.capability = classify(optimizer)
        self.path = solve_path(optimizer)
        logger.debug(
            "Built cache for %s (%s path, dim=%d, num_cons=%d)",
            optimizer.name,
            self.capability.value,
            problem.dim,
            problem.num_cons,
        )

    @property
    def initial_point(self) -> Array:
        return self.reinit_cache.initial_point

    @property
    def parameters(self) -> Any:
        return self.reinit_cache.parameters

    @property
    def callback(self) -> Callable[..., Any]:
        return self.options.callback

    @property
    def progress(self) -> bool:
        return self.options.progress

    @property
    def maximize(self) -> bool:
        return self.sense is Sense.MAXIMIZE

    def reinit(
        self, parameters: Any = _MISSING, initial_point: Any = _MISSING
    ) -> "OptimizationCache":
        """Replace the initial point and/or parameters for the next solve.

        Either argument may be a numeric vector or, when the objective carries
        a :class:`~optconduit.problem.SymbolicSystem`, a ``{name: value}``
        mapping. Omitted arguments keep their current value. Returns ``self``.

        Raises:
            UnsupportedSymbolicRemapError: A non-empty mapping was given but
                the objective has no symbolic system.
            ValueError: A numeric initial point of the wrong dimension.
        """
        state = self.reinit_cache
        new_u0 = state.initial_point
        new_p = state.parameters

        if initial_point is not _MISSING:
            if isinstance(initial_point, Mapping):
                if initial_point:
                    new_u0 = self._symbolic_system().remap_states(
                        initial_point, state.initial_point
                    )
            else:
                new_u0 = np.array(initial_point, dtype=float)
                if new_u0.shape != state.initial_point.shape:
                    raise ValueError(
                        f"initial_point has shape {new_u0.shape}, "
                        f"expected {state.initial_point.shape}"
                    )

        if parameters is not _MISSING:
            if isinstance(parameters, Mapping):
                if parameters:
                    new_p = self._symbolic_system().remap_parameters(
                        parameters, state.parameters
                    )
            else:
                new_p = parameters

        state.initial_point = new_u0
        state.parameters = new_p
        logger.debug("Re-initialized cache for %s", self.optimizer.name)
        return self

    def _symbolic_system(self):
        if self.f.sys is None:
            raise UnsupportedSymbolicRemapError(
                "This problem does not support symbolic maps with `reinit`, i.e. "
                "it does not have a symbolic origin. Please use `reinit` with "
                "numeric vectors instead."
            )
        return self.f.sys

    def solve(self) -> "Solution":
        return self.path.solve(self)

    def __repr__(self) -> str:
        return (
            f"OptimizationCache(optimizer={self.optimizer.name}, "
            f"path={self.capability.value}, dim={self.problem.dim})"
        )


__all__ = ["OptimizationCache"]
