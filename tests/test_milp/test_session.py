import numpy as np
import pytest

from optconduit.convex import Status
from optconduit.milp import MAXIMIZE, MINIMIZE, MILPSession, SessionError
from optconduit.sparse import from_host, to_dense


def _knapsack(session, sense=MAXIMIZE):
    session.load_problem_dense(
        2,
        1,
        lb=[0.0, 0.0],
        ub=[4.0, 4.0],
        objective=[1.0, 1.0],
        is_integer=[True, True],
        sense=sense,
        con_matrix=[[2.0, 3.0]],
        con_lb=[-np.inf],
        con_ub=[12.0],
    )


def test_dense_problem_solves():
    with MILPSession() as session:
        _knapsack(session)
        result = session.solve()
        assert result.status is Status.OPTIMAL
        assert result.fun == pytest.approx(5.0)
        assert session.objective_value == pytest.approx(5.0)
        x = session.solution
        assert np.allclose(x, np.round(x))
        assert np.allclose(session.row_activity, [2.0 * x[0] + 3.0 * x[1]])
        assert session.row_activity[0] <= 12.0 + 1e-9


def test_minimize_sense():
    with MILPSession() as session:
        _knapsack(session, sense=MINIMIZE)
        assert session.solve().fun == pytest.approx(0.0)


def test_relaxation_after_set_continuous():
    with MILPSession() as session:
        _knapsack(session)
        session.set_continuous(1)
        assert session.solve().fun == pytest.approx(16.0 / 3.0)
        session.set_integer(1)
        assert session.solve().fun == pytest.approx(5.0)


def test_problem_queries():
    with MILPSession() as session:
        _knapsack(session)
        assert session.num_vars == 2
        assert session.num_constraints == 1
        assert session.num_elements == 2
        assert session.var_lower.tolist() == [0.0, 0.0]
        assert session.var_upper.tolist() == [4.0, 4.0]
        assert session.obj_coeff.tolist() == [1.0, 1.0]
        assert session.obj_sense == MAXIMIZE
        assert session.is_integer.tolist() == [True, True]
        assert session.row_sense.tolist() == ["L"]
        assert session.rhs.tolist() == [12.0]
        assert session.constr_range.tolist() == [0.0]
        assert session.constr_lower.tolist() == [-np.inf]
        assert session.constr_upper.tolist() == [12.0]


def test_dense_load_declares_zero_coefficients():
    with MILPSession() as session:
        session.load_problem_dense(
            3, 2, lb=np.zeros(3), ub=np.ones(3), objective=np.ones(3), is_integer=np.zeros(3),
            sense=MINIMIZE, con_matrix=[[1.0, 0.0, 2.0], [0.0, 0.0, 3.0]],
            con_lb=[0.0, 0.0], con_ub=[1.0, 1.0],
        )
        assert session.num_elements == 6
        counts, positions, values = session.get_matrix_host()
        assert counts.tolist() == [3, 3]
        assert positions.tolist() == [1, 2, 3, 1, 2, 3]
        assert values.tolist() == [1.0, 0.0, 2.0, 0.0, 0.0, 3.0]


def test_sparse_load_and_matrix_query():
    matrix = from_host(2, 3, [2, 1], [1, 3, 2], [1.0, 2.0, 4.0])
    with MILPSession() as session:
        session.load_problem(
            3, 2, lb=np.zeros(3), ub=np.full(3, 10.0), objective=[-1.0, -1.0, -1.0],
            is_integer=[False] * 3, sense=MINIMIZE, con_matrix=matrix,
            con_lb=[-np.inf, -np.inf], con_ub=[4.0, 8.0],
        )
        native = session.get_native_matrix()
        assert native.column_start.tolist() == [0, 1, 2, 3]
        assert session.num_elements == 3

        back = session.get_matrix()
        assert back.count_per_row.tolist() == [2, 1]
        assert back.column_position.tolist() == [0, 2, 1]
        assert np.array_equal(to_dense(back), to_dense(matrix))

        counts, positions, values = session.get_matrix_host()
        assert positions.tolist() == [1, 3, 2]
        assert values.tolist() == [1.0, 2.0, 4.0]

        result = session.solve()
        assert result.status is Status.OPTIMAL
        assert result.fun == pytest.approx(-6.0)


def test_infeasible_problem():
    with MILPSession() as session:
        session.load_problem_dense(
            1, 1, lb=[0.0], ub=[1.0], objective=[1.0], is_integer=[True], sense=MINIMIZE,
            con_matrix=[[1.0]], con_lb=[2.0], con_ub=[np.inf],
        )
        result = session.solve()
        assert result.status is Status.INFEASIBLE
        assert session.status is Status.INFEASIBLE
        with pytest.raises(SessionError):
            session.solution


def test_queries_before_load_or_solve_raise():
    session = MILPSession()
    assert not session.is_loaded
    with pytest.raises(SessionError):
        session.num_vars
    with pytest.raises(SessionError):
        session.solve()
    _knapsack(session)
    with pytest.raises(SessionError):
        session.solution
    session.close()
    with pytest.raises(SessionError):
        session.get_matrix()


def test_sessions_are_independent():
    first = MILPSession()
    second = MILPSession()
    _knapsack(first)
    _knapsack(second, sense=MINIMIZE)
    assert first.solve().fun == pytest.approx(5.0)
    assert second.solve().fun == pytest.approx(0.0)
    assert first.objective_value == pytest.approx(5.0)


def test_load_rejects_inconsistent_bounds():
    with pytest.raises(ValueError, match="constraint 0"):
        MILPSession().load_problem_dense(
            1, 1, lb=[0.0], ub=[1.0], objective=[1.0], is_integer=[False], sense=MINIMIZE,
            con_matrix=[[1.0]], con_lb=[3.0], con_ub=[2.0],
        )


def test_load_rejects_bad_sense_and_shapes():
    session = MILPSession()
    with pytest.raises(ValueError):
        _knapsack(session, sense=0)
    with pytest.raises(ValueError):
        session.load_problem_dense(
            2, 1, lb=[0.0, 0.0], ub=[1.0, 1.0], objective=[1.0, 1.0], is_integer=[True],
            sense=MINIMIZE, con_matrix=[[1.0, 1.0]], con_lb=[0.0], con_ub=[1.0],
        )
    with pytest.raises(TypeError):
        session.load_problem(
            1, 1, lb=[0.0], ub=[1.0], objective=[1.0], is_integer=[False], sense=MINIMIZE,
            con_matrix=[[1.0]], con_lb=[0.0], con_ub=[1.0],
        )


def test_unconstrained_problem():
    with MILPSession() as session:
        session.load_problem_dense(
            2, 0, lb=[1.0, -2.0], ub=[3.0, 2.0], objective=[1.0, -1.0], is_integer=[True, False],
            sense=MINIMIZE, con_matrix=None, con_lb=None, con_ub=None,
        )
        assert session.num_elements == 0
        result = session.solve()
        assert result.status is Status.OPTIMAL
        assert result.fun == pytest.approx(-1.0)
        assert session.row_activity.shape == (0,)


def _dense(session):
    return to_dense(session.get_matrix())


def test_set_obj_coeff_changes_optimum():
    with MILPSession() as session:
        _knapsack(session)
        session.set_obj_coeff(0, 3.0)
        assert session.obj_coeff.tolist() == [3.0, 1.0]
        assert session.solve().fun == pytest.approx(13.0)
        with pytest.raises(IndexError):
            session.set_obj_coeff(2, 1.0)


def test_constraint_bounds_and_type_rededuce_senses():
    with MILPSession() as session:
        _knapsack(session)
        session.set_constr_lower(0, 3.0)
        assert session.row_sense.tolist() == ["R"]
        assert session.rhs.tolist() == [12.0]
        assert session.constr_range.tolist() == [9.0]

        session.set_constr_upper(0, np.inf)
        assert session.row_sense.tolist() == ["G"]
        assert session.rhs.tolist() == [3.0]

        session.set_constr_type(0, "e", 6.0)
        assert session.row_sense.tolist() == ["E"]
        assert session.constr_lower.tolist() == [6.0]
        assert session.constr_upper.tolist() == [6.0]

        # A ranged row keeps the larger value as its right-hand side.
        session.set_constr_type(0, "R", 10.0, 4.0)
        assert session.row_sense.tolist() == ["R"]
        assert session.rhs.tolist() == [10.0]
        assert session.constr_range.tolist() == [6.0]
        assert session.solve().fun == pytest.approx(4.0)

        with pytest.raises(ValueError, match="constraint 0"):
            session.set_constr_lower(0, 11.0)
        with pytest.raises(ValueError):
            session.set_constr_type(0, "R", 1.0)
        with pytest.raises(ValueError):
            session.set_constr_type(0, "L", 1.0, 2.0)
        with pytest.raises(ValueError):
            session.set_constr_type(0, "X", 1.0)
        with pytest.raises(IndexError):
            session.set_constr_upper(1, 1.0)


def test_add_constraint_keeps_matrix_consistent():
    with MILPSession() as session:
        _knapsack(session)
        index = session.add_constraint([1.0, 0.0], "L", 1.0)
        assert index == 1
        assert session.num_constraints == 2
        assert session.num_elements == 3
        assert np.array_equal(_dense(session), [[2.0, 3.0], [1.0, 0.0]])
        native = session.get_native_matrix()
        assert native.column_start.tolist() == [0, 2, 3]
        assert native.row_index.tolist() == [0, 1, 0]
        assert session.row_sense.tolist() == ["L", "L"]

        result = session.solve()
        assert result.x[0] <= 1.0 + 1e-9
        assert result.fun == pytest.approx(4.0)

        session.add_constraint([0.0, 1.0], "r", 3.0, 1.0)
        assert session.row_sense.tolist() == ["L", "L", "R"]
        assert session.rhs.tolist() == [12.0, 1.0, 3.0]
        assert session.constr_range.tolist() == [0.0, 0.0, 2.0]
        assert np.array_equal(_dense(session), [[2.0, 3.0], [1.0, 0.0], [0.0, 1.0]])


def test_add_variable_keeps_matrix_consistent():
    with MILPSession() as session:
        _knapsack(session)
        index = session.add_variable([1.0], 0.0, 1.0, 2.0, is_integer=True)
        assert index == 2
        assert session.num_vars == 3
        assert session.var_upper.tolist() == [4.0, 4.0, 1.0]
        assert session.obj_coeff.tolist() == [1.0, 1.0, 2.0]
        assert session.is_integer.tolist() == [True, True, True]
        assert np.array_equal(_dense(session), [[2.0, 3.0, 1.0]])
        counts, positions, values = session.get_matrix_host()
        assert counts.tolist() == [3]
        assert positions.tolist() == [1, 2, 3]
        assert values.tolist() == [2.0, 3.0, 1.0]
        assert session.solve().fun == pytest.approx(7.0)

        session.add_variable([0.0], 0.0, 5.0, 0.0)
        assert session.num_elements == 3
        assert session.get_native_matrix().column_start.tolist() == [0, 1, 2, 3, 3]


def test_delete_rows_and_cols_keep_matrix_consistent():
    dense = np.array([[1.0, 0.0, 2.0], [0.0, 3.0, 0.0], [4.0, 5.0, 6.0]])
    with MILPSession() as session:
        session.load_problem(
            3, 3, lb=np.zeros(3), ub=np.ones(3), objective=[1.0, 2.0, 3.0],
            is_integer=[True, False, True], sense=MINIMIZE,
            con_matrix=from_host(3, 3, [2, 1, 3], [1, 3, 2, 1, 2, 3], [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]),
            con_lb=[0.0, -np.inf, 1.0], con_ub=[2.0, 3.0, np.inf],
        )
        session.delete_rows([1])
        assert session.num_constraints == 2
        assert np.array_equal(_dense(session), dense[[0, 2]])
        assert session.row_sense.tolist() == ["R", "G"]

        session.delete_cols([0, 0])
        assert session.num_vars == 2
        assert np.array_equal(_dense(session), dense[[0, 2]][:, [1, 2]])
        assert session.num_elements == 3
        assert session.obj_coeff.tolist() == [2.0, 3.0]
        assert session.is_integer.tolist() == [False, True]

        with pytest.raises(IndexError):
            session.delete_rows([2])
        with pytest.raises(ValueError):
            session.delete_cols([0, 1])

        session.delete_rows([0, 1])
        assert session.num_constraints == 0
        assert session.num_elements == 0
        assert session.get_matrix().count_per_row.shape == (0,)


def test_variable_type_queries():
    with MILPSession() as session:
        session.load_problem_dense(
            3, 0, lb=[0.0, 0.0, -1.0], ub=[1.0, 4.0, 1.0], objective=np.ones(3),
            is_integer=[True, True, False], sense=MINIMIZE,
            con_matrix=None, con_lb=None, con_ub=None,
        )
        assert session.num_integer == 2
        assert session.is_binary(0)
        assert not session.is_binary(1)
        assert not session.is_binary(2)
        assert session.is_continuous(2)
        assert not session.is_continuous(0)
        with pytest.raises(IndexError):
            session.is_binary(3)


def test_primal_bound_cuts_off_solutions():
    with MILPSession() as session:
        _knapsack(session)
        assert session.primal_bound == -np.inf
        session.primal_bound = 6.0
        assert session.primal_bound == 6.0
        assert session.solve().status is Status.INFEASIBLE

        session.primal_bound = 4.0
        assert session.solve().fun == pytest.approx(5.0)
        assert session.primal_bound == pytest.approx(5.0)


def test_set_col_solution_validates_input():
    with MILPSession() as session:
        _knapsack(session)
        session.set_col_solution([3.0, 2.0])
        with pytest.raises(ValueError, match="infeasible"):
            session.set_col_solution([4.0, 2.0])
        with pytest.raises(ValueError, match="infeasible"):
            session.set_col_solution([0.5, 0.0])
        with pytest.raises(ValueError):
            session.set_col_solution([1.0])

        session.solve()
        with pytest.raises(ValueError, match="worse"):
            session.set_col_solution([1.0, 1.0])
        session.set_col_solution(session.solution)


def test_iteration_count_after_solve():
    with MILPSession() as session:
        _knapsack(session)
        with pytest.raises(SessionError):
            session.iteration_count
        session.solve()
        assert session.iteration_count >= 0
