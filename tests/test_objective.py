"""Tests for objective bundles and the bounds/constraint adapter."""

import numpy as np
import pytest
from scipy.optimize import NonlinearConstraint

from optconduit import ObjectiveFunction, Sense
from optconduit.data import DEFAULT_DATA, SolveState
from optconduit.objective import (
    box_bounds,
    build_box_objective,
    build_constrained_objective,
    build_constraints,
    build_unconstrained_objective,
    lagrangian_hessian,
    sense_sign,
)
from optconduit.problem import ReinitState, instantiate_function


def fun(x, p, *batch):
    return float(x[0] ** 2 + 3 * x[1] ** 2), "aux"


def grad(x, p, *batch):
    return np.array([2 * x[0], 6 * x[1]])


def hess(x, p, *batch):
    return np.diag([2.0, 6.0])


@pytest.fixture
def instantiated():
    objective = ObjectiveFunction(fun, grad=grad, hess=hess)
    return instantiate_function(objective, ReinitState(initial_point=np.zeros(2)))


def test_sense_sign():
    assert sense_sign(Sense.MINIMIZE) == 1.0
    assert sense_sign(Sense.MAXIMIZE) == -1.0


def test_unconstrained_bundle_records_outputs(instantiated):
    state = SolveState.start(DEFAULT_DATA)
    bundle = build_unconstrained_objective(instantiated, state, Sense.MINIMIZE)
    x = np.array([1.0, 1.0])
    assert bundle.fun(x) == pytest.approx(4.0)
    assert state.last_output == (4.0, "aux")
    np.testing.assert_allclose(bundle.jac(x), [2.0, 6.0])
    np.testing.assert_allclose(bundle.hess(x), np.diag([2.0, 6.0]))
    np.testing.assert_allclose(bundle.hessp(x, np.ones(2)), [2.0, 6.0])


def test_maximize_negates_value_and_every_derivative(instantiated):
    state = SolveState.start(DEFAULT_DATA)
    bundle = build_unconstrained_objective(instantiated, state, Sense.MAXIMIZE)
    x = np.array([1.0, 1.0])
    assert bundle.fun(x) == pytest.approx(-4.0)
    # the callback still sees the objective's own value
    assert state.last_output == (4.0, "aux")
    np.testing.assert_allclose(bundle.jac(x), [-2.0, -6.0])
    np.testing.assert_allclose(bundle.hess(x), -np.diag([2.0, 6.0]))
    np.testing.assert_allclose(bundle.hessp(x, np.ones(2)), [-2.0, -6.0])


def test_box_bundle_combines_value_and_gradient(instantiated):
    state = SolveState.start(DEFAULT_DATA)
    bundle = build_box_objective(instantiated, state, Sense.MAXIMIZE)
    value, gradient = bundle.fun_and_jac(np.array([1.0, 2.0]))
    assert value == pytest.approx(-13.0)
    np.testing.assert_allclose(gradient, [-2.0, -12.0])
    assert bundle.hess is None


def test_box_bundle_without_gradient():
    f = instantiate_function(ObjectiveFunction(fun), ReinitState(initial_point=np.zeros(2)))
    bundle = build_box_objective(f, SolveState.start(DEFAULT_DATA), Sense.MINIMIZE)
    assert bundle.jac is None
    assert bundle.fun_and_jac is None


def test_constrained_bundle_has_hessian(instantiated):
    state = SolveState.start(DEFAULT_DATA)
    bundle = build_constrained_objective(instantiated, state, Sense.MAXIMIZE)
    np.testing.assert_allclose(bundle.hess(np.zeros(2)), -np.diag([2.0, 6.0]))
    assert bundle.hessp is None


def test_bundle_uses_current_batch():
    def weighted(x, p, w):
        return w * float(x[0])

    f = instantiate_function(ObjectiveFunction(weighted), ReinitState(initial_point=np.zeros(1)))
    state = SolveState.start([(2.0,), (5.0,)])
    bundle = build_unconstrained_objective(f, state, Sense.MINIMIZE)
    assert bundle.fun(np.array([1.0])) == pytest.approx(2.0)
    state.advance()
    assert bundle.fun(np.array([1.0])) == pytest.approx(5.0)


def test_box_bounds_default_to_infinite():
    bounds = box_bounds(None, np.array([1.0, 2.0]), 2)
    np.testing.assert_array_equal(bounds.lb, [-np.inf, -np.inf])
    np.testing.assert_array_equal(bounds.ub, [1.0, 2.0])
    bounds = box_bounds(np.zeros(2), None, 2)
    np.testing.assert_array_equal(bounds.ub, [np.inf, np.inf])


def test_lagrangian_hessian():
    combined = lagrangian_hessian(lambda x: [np.eye(2), np.ones((2, 2))])
    np.testing.assert_allclose(
        combined(np.zeros(2), np.array([2.0, 3.0])), [[5.0, 3.0], [3.0, 5.0]]
    )


def test_constraints_are_never_negated():
    def cons(x, p):
        return np.array([x[0] + x[1]])

    def cons_jac(x, p):
        return np.array([[1.0, 1.0]])

    objective = ObjectiveFunction(fun, grad=grad, cons=cons, cons_jac=cons_jac)
    f = instantiate_function(objective, ReinitState(initial_point=np.zeros(2)))
    bundle = build_constraints(f, np.array([1.0]), np.array([1.0]), None, None)
    np.testing.assert_allclose(bundle.cons(np.array([0.25, 0.5])), [0.75])
    np.testing.assert_allclose(bundle.jac(np.zeros(2)), [[1.0, 1.0]])
    assert bundle.lagrangian_hess is None
    assert bundle.bounds(2) is None
    assert isinstance(bundle.nonlinear_constraint(), NonlinearConstraint)


def test_constraint_bounds_keep_open_sides():
    f = instantiate_function(ObjectiveFunction(fun), ReinitState(initial_point=np.zeros(2)))
    bundle = build_constraints(f, None, None, np.zeros(2), None)
    assert bundle.cons_lower.size == 0
    bounds = bundle.bounds(2)
    np.testing.assert_array_equal(bounds.lb, [0.0, 0.0])
    np.testing.assert_array_equal(bounds.ub, [np.inf, np.inf])
