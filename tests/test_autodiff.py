"""Tests for the finite-difference and torch derivative backends."""

import numpy as np
import pytest
import torch

from optconduit.autodiff import (
    AutoFiniteDiff,
    AutoTorch,
    central_gradient,
    central_hessian,
    central_jacobian,
)


def cubic(x):
    return x[0] ** 3 + 2.0 * x[0] * x[1] + x[1] ** 2


def cubic_grad(x):
    return np.array([3.0 * x[0] ** 2 + 2.0 * x[1], 2.0 * x[0] + 2.0 * x[1]])


def cubic_hess(x):
    return np.array([[6.0 * x[0], 2.0], [2.0, 2.0]])


def test_central_gradient_matches_analytic():
    x = np.array([0.7, -1.3])
    np.testing.assert_allclose(central_gradient(cubic, x, 1e-6), cubic_grad(x), atol=1e-6)


def test_central_hessian_matches_analytic():
    x = np.array([0.7, -1.3])
    np.testing.assert_allclose(central_hessian(cubic, x, 1e-4), cubic_hess(x), atol=1e-4)


def test_central_jacobian_shape():
    jac = central_jacobian(lambda x: np.array([x[0] * x[1], x[0], x[1] ** 2]), np.ones(2), 1e-6)
    assert jac.shape == (3, 2)
    np.testing.assert_allclose(jac, [[1.0, 1.0], [1.0, 0.0], [0.0, 2.0]], atol=1e-6)


def test_finite_diff_rejects_non_positive_step():
    with pytest.raises(ValueError):
        AutoFiniteDiff(eps=0.0)


def test_finite_diff_uses_first_output_and_batch():
    def fun(x, scale):
        return scale * cubic(x), "aux"

    backend = AutoFiniteDiff()
    x = np.array([0.5, 0.5])
    np.testing.assert_allclose(backend.gradient(fun)(x, 2.0), 2.0 * cubic_grad(x), atol=1e-5)
    np.testing.assert_allclose(
        backend.hvp(fun)(x, np.array([0.0, 1.0]), 2.0),
        2.0 * cubic_hess(x) @ np.array([0.0, 1.0]),
        atol=1e-4,
    )


def test_finite_diff_input_is_identity():
    x = np.ones(3)
    assert AutoFiniteDiff().to_input(x) is x


class TestAutoTorch:
    def test_to_input_is_tensor(self):
        t = AutoTorch().to_input(np.array([1.0, 2.0]))
        assert isinstance(t, torch.Tensor)
        assert t.dtype == torch.float64

    def test_gradient_and_hessian(self):
        def fun(x):
            return x[0] ** 3 + 2.0 * x[0] * x[1] + x[1] ** 2

        backend = AutoTorch()
        x = np.array([0.7, -1.3])
        np.testing.assert_allclose(backend.gradient(fun)(x), cubic_grad(x), rtol=1e-12)
        np.testing.assert_allclose(backend.hessian(fun)(x), cubic_hess(x), rtol=1e-12)

    def test_hvp(self):
        def fun(x):
            return x[0] ** 3 + 2.0 * x[0] * x[1] + x[1] ** 2

        x = np.array([0.7, -1.3])
        v = np.array([1.0, -2.0])
        np.testing.assert_allclose(AutoTorch().hvp(fun)(x, v), cubic_hess(x) @ v, rtol=1e-12)

    def test_tuple_output_and_batch(self):
        def fun(x, weight):
            loss = weight * torch.sum(x**2)
            return loss, loss.detach()

        grad = AutoTorch().gradient(fun)
        np.testing.assert_allclose(grad(np.array([1.0, 2.0]), 3.0), [6.0, 12.0])

    def test_constraint_jacobian_and_hessians(self):
        def cons(x):
            return torch.stack([x[0] ** 2 + x[1] ** 2, x[0] * x[1]])

        backend = AutoTorch()
        x = np.array([1.0, 2.0])
        np.testing.assert_allclose(backend.jacobian(cons)(x), [[2.0, 4.0], [2.0, 1.0]])
        hessians = backend.constraint_hessians(cons, 2)(x)
        assert len(hessians) == 2
        np.testing.assert_allclose(hessians[0], 2 * np.eye(2))
        np.testing.assert_allclose(hessians[1], [[0.0, 1.0], [1.0, 0.0]])


def test_backends_agree_at_random_points(rng):
    def fun(x):
        if isinstance(x, torch.Tensor):
            return torch.sum(torch.sin(x) * x**2)
        return float(np.sum(np.sin(x) * x**2))

    x = rng.normal(size=4)
    np.testing.assert_allclose(
        AutoFiniteDiff().gradient(fun)(x), AutoTorch().gradient(fun)(x), atol=1e-6
    )
    np.testing.assert_allclose(
        AutoFiniteDiff().hessian(fun)(x), AutoTorch().hessian(fun)(x), atol=1e-4
    )
