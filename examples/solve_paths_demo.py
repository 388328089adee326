"""
Example: one problem description, many SciPy optimizers

The same Rosenbrock problem is solved on each of the three solve paths:
unconstrained, box-constrained (bounds added to the problem) and nonlinearly
constrained. A mini-batch run shows the data stream driving the iterations.
"""

import numpy as np

from optconduit import (
    BFGS,
    AutoFiniteDiff,
    DifferentialEvolution,
    KrylovTrustRegion,
    NelderMead,
    ObjectiveFunction,
    Problem,
    TrustConstr,
    init,
    solve,
)


def rosenbrock(x, p):
    return (p[0] - x[0]) ** 2 + p[1] * (x[1] - x[0] ** 2) ** 2


def report(title, sol):
    print(f"{title:<32} x = {np.round(sol.minimizer, 4)}  f = {sol.minimum:.3e}  "
          f"converged = {sol.convergence_status.value}  ({sol.solve_time * 1e3:.1f} ms)")


def example_unconstrained():
    print("=" * 60)
    print("Example 1: Unconstrained")
    print("=" * 60)
    objective = ObjectiveFunction(rosenbrock, adtype=AutoFiniteDiff())
    problem = Problem(objective, [-1.2, 1.0], parameters=[1.0, 100.0])
    report("BFGS", solve(problem, BFGS()))
    report("KrylovTrustRegion", solve(problem, KrylovTrustRegion()))
    report("NelderMead", solve(problem, NelderMead()))
    print()


def example_box_constrained():
    print("=" * 60)
    print("Example 2: Box constraints")
    print("=" * 60)
    objective = ObjectiveFunction(rosenbrock, adtype=AutoFiniteDiff())
    problem = Problem(
        objective,
        [0.0, 0.0],
        parameters=[1.0, 100.0],
        lower_bounds=[-1.0, -1.0],
        upper_bounds=[0.8, 0.8],
    )
    sol = solve(problem, BFGS())
    report(sol.optimizer.name, sol)
    sol = solve(problem, DifferentialEvolution(), seed=0)
    report(sol.optimizer.name, sol)
    print()


def example_constrained():
    print("=" * 60)
    print("Example 3: Nonlinear constraint x0^2 + x1^2 <= 0.5")
    print("=" * 60)
    objective = ObjectiveFunction(
        rosenbrock,
        cons=lambda x, p: np.array([x[0] ** 2 + x[1] ** 2]),
        adtype=AutoFiniteDiff(),
    )
    problem = Problem(
        objective,
        [0.0, 0.0],
        parameters=[1.0, 100.0],
        cons_lower=[-np.inf],
        cons_upper=[0.5],
    )
    report("TrustConstr", solve(problem, TrustConstr()))
    print()


def example_mini_batches():
    print("=" * 60)
    print("Example 4: Mini-batch least squares")
    print("=" * 60)
    rng = np.random.default_rng(0)
    true_w = np.array([2.0, -1.0])
    batches = []
    for _ in range(25):
        features = rng.normal(size=(16, 2))
        targets = features @ true_w + 0.01 * rng.normal(size=16)
        batches.append((features, targets))

    def loss(w, p, features, targets):
        residual = features @ w - targets
        return float(residual @ residual) / len(targets), residual

    def loss_grad(w, p, features, targets):
        return 2.0 * features.T @ (features @ w - targets) / len(targets)

    def callback(w, value, residual):
        return bool(value < 1e-3)

    cache = init(
        Problem(ObjectiveFunction(loss, grad=loss_grad), [0.0, 0.0]),
        BFGS(),
        batches,
        callback=callback,
    )
    report("BFGS over 25 batches", cache.solve())
    print()


def main():
    example_unconstrained()
    example_box_constrained()
    example_constrained()
    example_mini_batches()
    print("All examples finished")


if __name__ == "__main__":
    main()
