"""Exceptions and warnings raised by optconduit."""

from __future__ import annotations


class OptConduitError(Exception):
    """Base class for all optconduit errors."""


class MissingDerivativeError(OptConduitError, ValueError):
    """A derivative-based optimizer was chosen but no gradient is available."""


class MissingConstraintDerivativeError(OptConduitError, ValueError):
    """A constrained optimizer was chosen but no constraint Jacobian is available."""


class InvalidCallbackReturnError(OptConduitError, TypeError):
    """The user callback returned something other than a ``bool``."""


class UnsupportedSymbolicRemapError(OptConduitError, ValueError):
    """Re-init with a symbolic mapping against a problem without a symbolic system."""


class IncompatibleBoundsWarning(UserWarning):
    """Bounds were supplied to an optimizer that cannot honor them; they are dropped."""


class UnmappedOptionWarning(UserWarning):
    """A common option has no destination in the target algorithm's options."""


__all__ = [
    "IncompatibleBoundsWarning",
    "InvalidCallbackReturnError",
    "MissingConstraintDerivativeError",
    "MissingDerivativeError",
    "OptConduitError",
    "UnmappedOptionWarning",
    "UnsupportedSymbolicRemapError",
]
