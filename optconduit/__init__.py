"""optconduit - solve generic optimization problems with SciPy's optimizers."""

__version__ = "0.1.0"

# Derivative backends
from .autodiff import ADBackend, AutoFiniteDiff, AutoTorch

# Cache and solve entry points
from .cache import OptimizationCache

# Capability classification
from .classify import (
    Capability,
    allows_bounds,
    allows_constraints,
    classify,
    prepare_optimizer,
    requires_bounds,
    requires_constraints,
)

# Mini-batch data
from .data import DEFAULT_DATA

# Errors and warnings
from .errors import (
    IncompatibleBoundsWarning,
    InvalidCallbackReturnError,
    MissingConstraintDerivativeError,
    MissingDerivativeError,
    OptConduitError,
    UnmappedOptionWarning,
    UnsupportedSymbolicRemapError,
)

# Logging
from .logging import configure_logging, get_logger, set_log_level

# Optimizer descriptors
from .optimizers import (
    BFGS,
    LBFGS,
    BasinHopping,
    ConjugateGradient,
    DifferentialEvolution,
    DualAnnealing,
    Fminbox,
    KrylovTrustRegion,
    NelderMead,
    NewtonCG,
    NewtonTrustRegion,
    Optimizer,
    TrustConstr,
    create_optimizer,
)
from .options import CommonOptions, map_optimizer_args

# Problem definition
from .problem import ObjectiveFunction, Problem, Sense, SymbolicSystem
from .solution import ConvergenceStatus, Solution
from .solvers import init, solve

__all__ = [
    "ADBackend",
    "AutoFiniteDiff",
    "AutoTorch",
    "BFGS",
    "BasinHopping",
    "Capability",
    "CommonOptions",
    "ConjugateGradient",
    "ConvergenceStatus",
    "DEFAULT_DATA",
    "DifferentialEvolution",
    "DualAnnealing",
    "Fminbox",
    "IncompatibleBoundsWarning",
    "InvalidCallbackReturnError",
    "KrylovTrustRegion",
    "LBFGS",
    "MissingConstraintDerivativeError",
    "MissingDerivativeError",
    "NelderMead",
    "NewtonCG",
    "NewtonTrustRegion",
    "ObjectiveFunction",
    "OptConduitError",
    "OptimizationCache",
    "Optimizer",
    "Problem",
    "Sense",
    "Solution",
    "SymbolicSystem",
    "TrustConstr",
    "UnmappedOptionWarning",
    "UnsupportedSymbolicRemapError",
    "allows_bounds",
    "allows_constraints",
    "classify",
    "configure_logging",
    "create_optimizer",
    "get_logger",
    "init",
    "map_optimizer_args",
    "prepare_optimizer",
    "requires_bounds",
    "requires_constraints",
    "set_log_level",
    "solve",
]
