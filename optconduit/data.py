"""Mini-batch streams and the trace bridge that couples them to solver callbacks.

The solver owns its iteration loop and calls back into :class:`TraceBridge`
once per iteration. Each call hands the current iterate to the user callback,
then advances the mini-batch stream; exhausting the stream halts the solve
regardless of what the callback answered.
"""

from __future__ import annotations

import itertools
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator, Optional

import numpy as np

from .errors import InvalidCallbackReturnError
from .logging import get_logger

if TYPE_CHECKING:
    from .optimizers import Optimizer

logger = get_logger(__name__)


class NoData:
    """The "no data" stream: a single empty batch, cycled so it never runs out."""

    def __iter__(self) -> Iterator[tuple]:
        return itertools.repeat(())

    def __repr__(self) -> str:
        return "DEFAULT_DATA"


DEFAULT_DATA = NoData()


def is_default_data(data: Optional[Iterable[Any]]) -> bool:
    return data is None or isinstance(data, NoData)


def as_batch(element: Any) -> tuple:
    """Turn a stream element into trailing objective arguments."""
    return element if isinstance(element, tuple) else (element,)


class BridgeState(Enum):
    ACTIVE = "active"
    HALTED = "halted"


@dataclass
class SolveState:
    """Per-solve mutable state shared by the objective closures and the bridge."""

    iterator: Iterator[Any]
    batch: tuple = ()
    last_output: tuple = ()
    status: BridgeState = BridgeState.ACTIVE
    iterations: int = 0

    @classmethod
    def start(cls, data: Iterable[Any]) -> "SolveState":
        iterator = iter(data)
        try:
            first = next(iterator)
        except StopIteration:
            raise ValueError("The data stream is empty.") from None
        return cls(iterator=iterator, batch=as_batch(first))

    def advance(self) -> bool:
        """Move to the next batch; False once the stream is exhausted."""
        try:
            element = next(self.iterator)
        except StopIteration:
            return False
        self.batch = as_batch(element)
        return True

    def record(self, output: Any) -> None:
        self.last_output = output if isinstance(output, tuple) else (output,)


class TraceBridge:
    """Per-iteration hook between a SciPy solver and the user callback.

    Args:
        state: The solve's :class:`SolveState`.
        callback: ``callback(iterate, *objective_outputs) -> bool``; ``True``
            requests a halt.
        optimizer: The optimizer being run; population-based optimizers
            report their population centroid as the iterate.
        time_limit: Optional wall-clock budget in seconds, counted from
            construction.
    """

    def __init__(
        self,
        state: SolveState,
        callback: Callable[..., Any],
        optimizer: "Optimizer",
        time_limit: Optional[float] = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.state = state
        self.callback = callback
        self.optimizer = optimizer
        self.time_limit = time_limit
        self._clock = clock
        self._started = clock()

    @property
    def halted(self) -> bool:
        return self.state.status is BridgeState.HALTED

    def current_iterate(self, trace: Any) -> np.ndarray:
        """Best current point of a trace: population centroid or raw iterate."""
        if self.optimizer.population_based:
            population = getattr(trace, "population", None)
            if population is not None:
                return np.mean(np.asarray(population, dtype=float), axis=0)
        return np.array(trace.x, dtype=float)

    def step(self, iterate: np.ndarray) -> bool:
        """Handle one trace event; returns True when the solver should halt."""
        state = self.state
        if state.status is BridgeState.HALTED:
            return True
        halt = self.callback(iterate, *state.last_output)
        if not isinstance(halt, (bool, np.bool_)):
            raise InvalidCallbackReturnError(
                "The callback should return a boolean `halt` for whether to stop "
                f"the optimization process, got {type(halt).__name__}."
            )
        halt = bool(halt)
        state.iterations += 1
        if not state.advance():
            logger.debug("Data exhausted after %d iterations", state.iterations)
            halt = True
        elif (
            self.time_limit is not None
            and self._clock() - self._started >= self.time_limit
        ):
            logger.debug("Time limit of %.3gs reached", self.time_limit)
            halt = True
        if halt:
            state.status = BridgeState.HALTED
        return halt

    def hook(self, style: str) -> Callable[..., Any]:
        """Adapt :meth:`step` to a SciPy callback convention.

        ``"intermediate_result"`` is the extended form taking the current
        ``OptimizeResult`` and halting by ``StopIteration``; ``"positional"``
        is the ``(x, f, context)`` form of the annealing solvers, halting by
        returning True.
        """
        if style == "intermediate_result":

            def trace_hook(intermediate_result: Any) -> None:
                if self.step(self.current_iterate(intermediate_result)):
                    raise StopIteration

            return trace_hook

        if style == "positional":

            def positional_hook(x: np.ndarray, f: float, *context: Any) -> bool:
                return self.step(np.array(x, dtype=float))

            return positional_hook

        raise ValueError(f"Unknown callback style {style!r}")


__all__ = [
    "BridgeState",
    "DEFAULT_DATA",
    "NoData",
    "SolveState",
    "TraceBridge",
    "as_batch",
    "is_default_data",
]
