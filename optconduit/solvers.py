"""Solve paths and the public ``init``/``solve`` entry points.

Each capability class has one solve path. All paths share the template in
:meth:`SolvePath.solve`; they differ in which objective callables they build
and in how bounds and constraints reach SciPy.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Sized
from typing import Any, Callable, Iterable, Optional

import numpy as np
from scipy.optimize import Bounds, OptimizeResult

from .cache import OptimizationCache
from .classify import Capability, prepare_optimizer
from .data import SolveState, TraceBridge, is_default_data
from .logging import get_logger
from .objective import (
    ObjectiveBundle,
    box_bounds,
    build_box_objective,
    build_constrained_objective,
    build_constraints,
    build_unconstrained_objective,
    sense_sign,
)
from .optimizers import Optimizer
from .options import (
    AlgorithmOptions,
    check_and_convert_maxiters,
    check_and_convert_maxtime,
    map_optimizer_args,
)
from .problem import Problem
from .solution import ConvergenceStatus, Solution, build_solution, converged

logger = get_logger(__name__)


class SolvePath(ABC):
    """Shared solve template.

    Subclasses provide :meth:`build_objective` and :meth:`invoke`.
    """

    capability: Capability

    @abstractmethod
    def build_objective(
        self, cache: OptimizationCache, state: SolveState
    ) -> ObjectiveBundle:
        """Objective callables for this path."""

    @abstractmethod
    def invoke(
        self,
        cache: OptimizationCache,
        bundle: ObjectiveBundle,
        x0: np.ndarray,
        options: AlgorithmOptions,
    ) -> OptimizeResult:
        """Run SciPy once."""

    def solve(self, cache: OptimizationCache) -> Solution:
        optimizer = cache.optimizer
        state = SolveState.start(cache.data)
        bundle = self.build_objective(cache, state)
        bridge = TraceBridge(state, cache.callback, optimizer)
        options = map_optimizer_args(
            optimizer, callback=bridge, **cache.options.mapping_kwargs()
        )
        x0 = np.array(cache.initial_point, dtype=float)

        logger.debug(
            "Solving with %s on the %s path", optimizer.name, self.capability.value
        )
        start = time.perf_counter()
        result = self.invoke(cache, bundle, x0, options)
        solve_time = time.perf_counter() - start

        status = ConvergenceStatus.from_bool(converged(result) and not bridge.halted)
        value = float(np.asarray(result.fun).reshape(-1)[0])
        minimum = sense_sign(cache.sense) * value
        logger.info(
            "%s finished in %.3gs after %d iterations (converged=%s)",
            optimizer.name,
            solve_time,
            state.iterations,
            status.value,
        )
        return build_solution(
            cache,
            optimizer,
            result.x,
            minimum,
            original=result,
            convergence_status=status,
            solve_time=solve_time,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class UnconstrainedPath(SolvePath):
    capability = Capability.UNCONSTRAINED

    def build_objective(self, cache, state):
        return build_unconstrained_objective(cache.f, state, cache.sense)

    def invoke(self, cache, bundle, x0, options):
        return cache.optimizer.run(bundle, x0, options)


class BoxConstrainedPath(SolvePath):
    capability = Capability.BOX_CONSTRAINED

    def build_objective(self, cache, state):
        return build_box_objective(cache.f, state, cache.sense)

    def invoke(self, cache, bundle, x0, options):
        bounds = box_bounds(cache.lower_bounds, cache.upper_bounds, x0.size)
        return cache.optimizer.run(bundle, x0, options, bounds=bounds)


class ConstrainedPath(SolvePath):
    capability = Capability.CONSTRAINED

    def build_objective(self, cache, state):
        return build_constrained_objective(cache.f, state, cache.sense)

    def invoke(self, cache, bundle, x0, options):
        constraints = build_constraints(
            cache.f,
            cache.cons_lower,
            cache.cons_upper,
            cache.lower_bounds,
            cache.upper_bounds,
        )
        nonlinear = []
        if constraints.cons is not None:
            nonlinear.append(constraints.nonlinear_constraint())
        bounds: Optional[Bounds] = constraints.bounds(x0.size)
        return cache.optimizer.run(
            bundle, x0, options, bounds=bounds, constraints=nonlinear
        )


PATHS: dict[Capability, SolvePath] = {
    Capability.UNCONSTRAINED: UnconstrainedPath(),
    Capability.BOX_CONSTRAINED: BoxConstrainedPath(),
    Capability.CONSTRAINED: ConstrainedPath(),
}


def init(
    problem: Problem,
    optimizer: Optimizer,
    data: Optional[Iterable[Any]] = None,
    *,
    callback: Optional[Callable[..., Any]] = None,
    maxiters: Optional[float] = None,
    maxtime: Optional[float] = None,
    abstol: Optional[float] = None,
    reltol: Optional[float] = None,
    progress: bool = False,
    **kwargs: Any,
) -> OptimizationCache:
    """Validate ``problem`` against ``optimizer`` and build a solvable cache.

    The optimizer is first rewritten for the problem's bounds. A sized,
    non-default ``data`` stream sets ``maxiters`` to its length, so each batch
    is visited once.

    Raises:
        ValueError: ``maxiters`` or ``maxtime`` is not positive.
        MissingDerivativeError: The optimizer needs a gradient that is missing.
        MissingConstraintDerivativeError: The optimizer needs a constraint
            Jacobian that is missing.
    """
    optimizer = prepare_optimizer(problem, optimizer)
    if not is_default_data(data) and isinstance(data, Sized):
        maxiters = len(data)
    return OptimizationCache(
        problem,
        optimizer,
        data,
        callback=callback,
        progress=progress,
        maxiters=check_and_convert_maxiters(maxiters),
        maxtime=check_and_convert_maxtime(maxtime),
        abstol=abstol,
        reltol=reltol,
        **kwargs,
    )


def solve(
    problem: Problem,
    optimizer: Optimizer,
    data: Optional[Iterable[Any]] = None,
    **kwargs: Any,
) -> Solution:
    """One-shot ``init(problem, optimizer, data, **kwargs).solve()``."""
    return init(problem, optimizer, data, **kwargs).solve()


__all__ = [
    "BoxConstrainedPath",
    "ConstrainedPath",
    "PATHS",
    "SolvePath",
    "UnconstrainedPath",
    "init",
    "solve",
]
