"""
Example: Optimization Conduit bridges

This example walks through the three pieces of the package: a quadratic
program solved on a nonlinear engine through the callback adapter, the
host-order entry point with host options, and a small mixed-integer program
loaded into an engine session from row-major sparse data.
"""

import numpy as np

from optconduit import (
    MILPSession,
    QuadraticProblem,
    SolveOptions,
    Status,
    from_host,
    is_kkt_optimal,
    kkt_residuals,
    solve,
    solve_qp,
)


def example_quadratic_program():
    """Example: Minimum-norm split of a unit budget."""
    print("=" * 60)
    print("Example 1: Quadratic Program on a Nonlinear Engine")
    print("=" * 60)

    # Minimize x^T Q x subject to x1 + x2 = 1, 0 <= x <= 1
    problem = QuadraticProblem(
        q=np.array([[2.0, 0.0], [0.0, 2.0]]),
        linear=np.zeros(2),
        a=np.array([[1.0, 1.0]]),
        lb=np.zeros(2),
        ub=np.ones(2),
        con_lb=np.array([1.0]),
        con_ub=np.array([1.0]),
    )
    record = solve(problem, SolveOptions(tol=1e-8))
    print(f"Status: {record.status.name} ({record.message})")
    print(f"Solution: x = {record.x}")
    print(f"Objective: {record.objective:.6f}")
    print(f"Iterations: {record.iterations}")

    residuals = kkt_residuals(problem, record)
    print(f"KKT optimal: {is_kkt_optimal(problem, record, tol=1e-4)}")
    print(f"Dual residual: {residuals['dual']:.2e}")
    print()


def example_host_entry_point():
    """Example: Host-order arguments with an iteration cap."""
    print("=" * 60)
    print("Example 2: Host Entry Point")
    print("=" * 60)

    x, objective, status, iterations, z_l, z_u, lagrange = solve_qp(
        3,
        1,
        np.diag([1.0, 2.0, 3.0]),
        np.array([-1.0, 0.0, 1.0]),
        np.ones((1, 3)),
        np.array([-np.inf]),
        np.array([2.0]),
        np.full(3, -5.0),
        np.full(3, 5.0),
        x0=np.ones(3),
        options={"maxIterations": 200},
    )
    print(f"Status code: {status}")
    print(f"Solution: x = {x}")
    print(f"Objective: {objective:.6f}")
    print(f"Constraint multiplier: {lagrange}")
    print()


def example_mixed_integer_session():
    """Example: Integer production plan from row-major sparse data."""
    print("=" * 60)
    print("Example 3: Mixed-Integer Session")
    print("=" * 60)

    # Maximize 3x + 2y + 4z subject to
    #   x + z <= 4, 2y + z <= 5, x, y, z in {0, ..., 3}
    matrix = from_host(2, 3, [2, 2], [1, 3, 2, 3], [1.0, 1.0, 2.0, 1.0])
    with MILPSession() as session:
        session.load_problem(
            3,
            2,
            lb=np.zeros(3),
            ub=np.full(3, 3.0),
            objective=np.array([3.0, 2.0, 4.0]),
            is_integer=np.ones(3, dtype=bool),
            sense=-1,
            con_matrix=matrix,
            con_lb=np.full(2, -np.inf),
            con_ub=np.array([4.0, 5.0]),
        )
        print(f"Row senses: {session.row_sense.tolist()}")
        result = session.solve()
        print(f"Status: {result.status}")
        if result.status == Status.OPTIMAL:
            print(f"Plan: {np.round(result.x).astype(int).tolist()}")
            print(f"Value: {result.fun:.1f}")
            counts, positions, values = session.get_matrix_host()
            print(f"Stored matrix (host layout): {counts.tolist()} {positions.tolist()}")
    print()


if __name__ == "__main__":
    example_quadratic_program()
    example_host_entry_point()
    example_mixed_integer_session()
    print("All examples completed.")
