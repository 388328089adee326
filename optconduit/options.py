"""Translation of common solver options into each SciPy family's vocabulary."""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional

from .errors import UnmappedOptionWarning
from .logging import get_logger
from .optimizers import (
    BASINHOPPING,
    DIFFERENTIAL_EVOLUTION,
    DUAL_ANNEALING,
    MINIMIZE,
    Optimizer,
)

if TYPE_CHECKING:
    from .data import TraceBridge

logger = get_logger(__name__)

# knob -> (slot, name); slot is "options" (minimize's options dict),
# "kwargs" (call keyword) or "tol" (minimize's top-level tol).
OPTION_TABLE: dict[str, dict[str, tuple[str, str]]] = {
    MINIMIZE: {
        "maxiters": ("options", "maxiter"),
        "reltol": ("tol", "tol"),
        "progress": ("options", "disp"),
    },
    DIFFERENTIAL_EVOLUTION: {
        "maxiters": ("kwargs", "maxiter"),
        "reltol": ("kwargs", "tol"),
        "progress": ("kwargs", "disp"),
    },
    DUAL_ANNEALING: {
        "maxiters": ("kwargs", "maxiter"),
    },
    BASINHOPPING: {
        "maxiters": ("kwargs", "niter"),
        "progress": ("kwargs", "disp"),
    },
}


def default_callback(*args: Any) -> bool:
    """Never halt."""
    return False


@dataclass(frozen=True)
class CommonOptions:
    """Solver-agnostic knobs accepted by ``init``/``solve``.

    Unset knobs stay ``None`` and are never forwarded; defaults belong to
    SciPy. ``extra`` holds algorithm-native passthrough options.
    """

    callback: Callable[..., Any] = default_callback
    maxiters: Optional[int] = None
    maxtime: Optional[float] = None
    abstol: Optional[float] = None
    reltol: Optional[float] = None
    progress: bool = False
    extra: Mapping[str, Any] = field(default_factory=dict)

    def mapping_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for :func:`map_optimizer_args`, callback excluded."""
        return dict(
            maxiters=self.maxiters,
            maxtime=self.maxtime,
            abstol=self.abstol,
            reltol=self.reltol,
            progress=self.progress,
            **self.extra,
        )


@dataclass(frozen=True)
class AlgorithmOptions:
    """Options in the vocabulary of one SciPy family.

    Attributes:
        callback: Trace hook handed to SciPy.
        tol: ``minimize``'s top-level tolerance.
        options: ``minimize``'s ``options`` dict.
        kwargs: Extra keyword arguments of the family's entry point.
        time_limit: Wall-clock budget enforced by the trace hook.
    """

    callback: Optional[Callable[..., Any]] = None
    tol: Optional[float] = None
    options: dict[str, Any] = field(default_factory=dict)
    kwargs: dict[str, Any] = field(default_factory=dict)
    time_limit: Optional[float] = None


def check_and_convert_maxiters(maxiters: Optional[float]) -> Optional[int]:
    if maxiters is None:
        return None
    if maxiters <= 0:
        raise ValueError(
            "The number of maxiters has to be a non-negative and non-zero number."
        )
    return int(round(maxiters))


def check_and_convert_maxtime(maxtime: Optional[float]) -> Optional[float]:
    if maxtime is None:
        return None
    if maxtime <= 0:
        raise ValueError(
            "The maximum time has to be a non-negative and non-zero number."
        )
    return float(maxtime)


def _warn_unmapped(knob: str, optimizer: Optimizer) -> None:
    warnings.warn(
        f"common {knob} is currently not used by {optimizer.name}",
        UnmappedOptionWarning,
        stacklevel=3,
    )
    logger.debug("Dropped option %s for %s", knob, optimizer.name)


def map_optimizer_args(
    optimizer: Optimizer,
    *,
    callback: Optional["TraceBridge"] = None,
    maxiters: Optional[int] = None,
    maxtime: Optional[float] = None,
    abstol: Optional[float] = None,
    reltol: Optional[float] = None,
    progress: bool = False,
    **kwargs: Any,
) -> AlgorithmOptions:
    """Translate common options into ``optimizer``'s family vocabulary.

    ``abstol`` has no destination in any SciPy family and is dropped with an
    :class:`UnmappedOptionWarning`, as is any other knob the family lacks or
    the optimizer lists in ``unmapped_options``.
    ``maxtime`` becomes the time limit of the trace hook. Remaining ``kwargs``
    pass through untouched, on top of the optimizer's native options.
    """
    table = OPTION_TABLE[optimizer.family]
    slots: dict[str, dict[str, Any]] = {"options": {}, "kwargs": {}, "tol": {}}
    passthrough = "options" if optimizer.family == MINIMIZE else "kwargs"
    slots[passthrough].update(optimizer.native_options())

    if abstol is not None:
        _warn_unmapped("abstol", optimizer)

    requested = {
        "maxiters": maxiters,
        "reltol": reltol,
        "progress": True if progress else None,
    }
    for knob, value in requested.items():
        if value is None:
            continue
        if knob not in table or knob in optimizer.unmapped_options:
            _warn_unmapped(knob, optimizer)
            continue
        slot, name = table[knob]
        slots[slot][name] = value

    slots[passthrough].update(kwargs)

    hook = None
    if callback is not None:
        callback.time_limit = maxtime
        hook = callback.hook(optimizer.hook_style)

    mapped = AlgorithmOptions(
        callback=hook,
        tol=slots["tol"].get("tol"),
        options=slots["options"],
        kwargs=slots["kwargs"],
        time_limit=maxtime,
    )
    logger.debug(
        "Mapped options for %s: options=%s kwargs=%s tol=%s time_limit=%s",
        optimizer.name,
        mapped.options,
        mapped.kwargs,
        mapped.tol,
        mapped.time_limit,
    )
    return mapped


__all__ = [
    "AlgorithmOptions",
    "CommonOptions",
    "OPTION_TABLE",
    "check_and_convert_maxiters",
    "check_and_convert_maxtime",
    "default_callback",
    "map_optimizer_args",
]
