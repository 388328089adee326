"""Derivative backends used to instantiate objectives without hand-written derivatives.

Two backends are provided:

* :class:`AutoFiniteDiff` - deterministic central differences in pure NumPy.
* :class:`AutoTorch` - exact derivatives through ``torch.func``. The objective
  must then be written with torch operations on its ``theta`` argument.

Each backend turns an objective ``f(theta, *batch)`` (possibly returning a
tuple whose first entry is the value) into NumPy-valued callables.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, List

import numpy as np
import torch

from .problem import Array, first_value

ObjectiveFn = Callable[..., Any]


class ADBackend(ABC):
    """Interface every derivative backend implements."""

    def to_input(self, theta: Array) -> Any:
        """Convert a NumPy iterate into the type the objective expects."""
        return theta

    @abstractmethod
    def gradient(self, fun: ObjectiveFn) -> Callable[..., Array]:
        """Return ``grad(theta, *batch)``."""

    @abstractmethod
    def hessian(self, fun: ObjectiveFn) -> Callable[..., Array]:
        """Return ``hess(theta, *batch)``."""

    @abstractmethod
    def hvp(self, fun: ObjectiveFn) -> Callable[..., Array]:
        """Return ``hvp(theta, v, *batch)``."""

    @abstractmethod
    def jacobian(self, cons: Callable[[Any], Any]) -> Callable[[Array], Array]:
        """Return the Jacobian ``jac(theta)`` of a vector-valued ``cons``."""

    @abstractmethod
    def constraint_hessians(
        self, cons: Callable[[Any], Any], num_cons: int
    ) -> Callable[[Array], List[Array]]:
        """Return ``hessians(theta)``, one ``(n, n)`` matrix per constraint."""


def central_gradient(fun: Callable[[Array], float], x: Array, eps: float) -> Array:
    """Central-difference gradient of a scalar function."""
    x = np.asarray(x, dtype=float)
    grad = np.zeros_like(x)
    for i in range(x.size):
        ei = np.zeros_like(x)
        ei[i] = eps
        grad[i] = (fun(x + ei) - fun(x - ei)) / (2.0 * eps)
    return grad


def central_hessian(fun: Callable[[Array], float], x: Array, eps: float) -> Array:
    """Second-order central-difference Hessian of a scalar function."""
    x = np.asarray(x, dtype=float)
    n = x.size
    hess = np.zeros((n, n), dtype=float)
    fx = fun(x)
    for i in range(n):
        ei = np.zeros_like(x)
        ei[i] = eps
        hess[i, i] = (fun(x + ei) - 2 * fx + fun(x - ei)) / (eps**2)
        for j in range(i + 1, n):
            ej = np.zeros_like(x)
            ej[j] = eps
            value = (
                fun(x + ei + ej)
                - fun(x + ei - ej)
                - fun(x - ei + ej)
                + fun(x - ei - ej)
            ) / (4 * eps**2)
            hess[i, j] = value
            hess[j, i] = value
    return hess


def central_jacobian(fun: Callable[[Array], Array], x: Array, eps: float) -> Array:
    """Central-difference Jacobian of a vector function, shape ``(m, n)``."""
    x = np.asarray(x, dtype=float)
    columns = []
    for i in range(x.size):
        ei = np.zeros_like(x)
        ei[i] = eps
        plus = np.atleast_1d(np.asarray(fun(x + ei), dtype=float))
        minus = np.atleast_1d(np.asarray(fun(x - ei), dtype=float))
        columns.append((plus - minus) / (2.0 * eps))
    return np.stack(columns, axis=1)


@dataclass(frozen=True)
class AutoFiniteDiff(ADBackend):
    """Central finite differences.

    Args:
        eps: Step used for gradients and Jacobians.
        hess_eps: Step used for Hessians and Hessian-vector products.
    """

    eps: float = 1e-6
    hess_eps: float = 1e-4

    def __post_init__(self) -> None:
        if self.eps <= 0 or self.hess_eps <= 0:
            raise ValueError("eps must be positive")

    def gradient(self, fun: ObjectiveFn) -> Callable[..., Array]:
        def grad(theta: Array, *batch: Any) -> Array:
            return central_gradient(
                lambda x: float(first_value(fun(x, *batch))), theta, self.eps
            )

        return grad

    def hessian(self, fun: ObjectiveFn) -> Callable[..., Array]:
        def hess(theta: Array, *batch: Any) -> Array:
            return central_hessian(
                lambda x: float(first_value(fun(x, *batch))), theta, self.hess_eps
            )

        return hess

    def hvp(self, fun: ObjectiveFn) -> Callable[..., Array]:
        grad = self.gradient(fun)

        def hvp(theta: Array, v: Array, *batch: Any) -> Array:
            theta = np.asarray(theta, dtype=float)
            v = np.asarray(v, dtype=float)
            h = self.hess_eps
            return (grad(theta + h * v, *batch) - grad(theta - h * v, *batch)) / (2 * h)

        return hvp

    def jacobian(self, cons: Callable[[Any], Any]) -> Callable[[Array], Array]:
        def jac(theta: Array) -> Array:
            return central_jacobian(cons, theta, self.eps)

        return jac

    def constraint_hessians(
        self, cons: Callable[[Any], Any], num_cons: int
    ) -> Callable[[Array], List[Array]]:
        def hessians(theta: Array) -> List[Array]:
            return [
                central_hessian(
                    lambda x, i=i: float(np.atleast_1d(cons(x))[i]),
                    theta,
                    self.hess_eps,
                )
                for i in range(num_cons)
            ]

        return hessians


@dataclass(frozen=True)
class AutoTorch(ADBackend):
    """Exact derivatives through ``torch.func`` transforms.

    ``theta`` is handed to the objective as a ``torch.Tensor`` of ``dtype``;
    batch elements and parameters are passed through untouched.
    """

    dtype: torch.dtype = torch.float64

    def _tensor(self, x: Array) -> torch.Tensor:
        return torch.as_tensor(np.asarray(x, dtype=float), dtype=self.dtype)

    def to_input(self, theta: Array) -> torch.Tensor:
        return self._tensor(theta)

    @staticmethod
    def _numpy(t: torch.Tensor) -> Array:
        return t.detach().cpu().numpy().astype(float)

    @staticmethod
    def _scalar(fun: ObjectiveFn) -> ObjectiveFn:
        def value(theta: torch.Tensor, *batch: Any) -> torch.Tensor:
            return first_value(fun(theta, *batch))

        return value

    def gradient(self, fun: ObjectiveFn) -> Callable[..., Array]:
        grad_fn = torch.func.grad(self._scalar(fun))

        def grad(theta: Array, *batch: Any) -> Array:
            return self._numpy(grad_fn(self._tensor(theta), *batch))

        return grad

    def hessian(self, fun: ObjectiveFn) -> Callable[..., Array]:
        hess_fn = torch.func.hessian(self._scalar(fun))

        def hess(theta: Array, *batch: Any) -> Array:
            return self._numpy(hess_fn(self._tensor(theta), *batch))

        return hess

    def hvp(self, fun: ObjectiveFn) -> Callable[..., Array]:
        grad_fn = torch.func.grad(self._scalar(fun))

        def hvp(theta: Array, v: Array, *batch: Any) -> Array:
            _, tangent = torch.func.jvp(
                lambda t: grad_fn(t, *batch), (self._tensor(theta),), (self._tensor(v),)
            )
            return self._numpy(tangent)

        return hvp

    def jacobian(self, cons: Callable[[Any], Any]) -> Callable[[Array], Array]:
        jac_fn = torch.func.jacrev(cons)

        def jac(theta: Array) -> Array:
            return np.atleast_2d(self._numpy(jac_fn(self._tensor(theta))))

        return jac

    def constraint_hessians(
        self, cons: Callable[[Any], Any], num_cons: int
    ) -> Callable[[Array], List[Array]]:
        hess_fn = torch.func.hessian(cons)

        def hessians(theta: Array) -> List[Array]:
            n = np.asarray(theta).size
            stacked = self._numpy(hess_fn(self._tensor(theta)))
            stacked = stacked.reshape(num_cons, n, n)
            return [stacked[i] for i in range(num_cons)]

        return hessians


__all__ = [
    "ADBackend",
    "AutoFiniteDiff",
    "AutoTorch",
    "central_gradient",
    "central_hessian",
    "central_jacobian",
]
