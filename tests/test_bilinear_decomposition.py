"""Tests for the convex decomposition of the bilinear torque terms."""
import numpy as np
import pytest
import scipy.sparse as sp

from graspmip.optimization.grasp_planning_problem import LEGS, BilinearDecomposition
from graspmip.utils.polygon_utils import polygon_gauge, unit_circle_polygon

RNG = np.random.default_rng(7)
P = RNG.uniform(-1, 1, (3, 3))
F = RNG.uniform(-1, 1, (3, 3))


def fix_values(program, **values):
    """Pin named variables to the given values with equality rows."""
    for name, value in values.items():
        idx = program.vars[name].i.ravel()
        A = sp.coo_matrix((np.ones(idx.size), (np.arange(idx.size), idx)), shape=(idx.size, program.nv))
        program.add_linear_constraints(None, None, A.tocsr(), np.asarray(value, dtype=float).ravel())


def u_from_legs(legs, bound):
    u_plus = np.vstack([bound(legs[name]) for name, u_name, _, _, _ in LEGS if u_name == "u_plus"])
    u_min = np.vstack([bound(legs[name]) for name, u_name, _, _, _ in LEGS if u_name == "u_min"])
    return u_plus, u_min


def squared_norms(leg):
    return np.sum(leg ** 2, axis=0)


class TestLegDefinitions:

    def test_leg_identity(self, legs_for):
        legs = legs_for(P, F)
        torque = np.cross(P.T, F.T).T
        for plus, minus, axis in [("a_p_d", "a_m_d", 0), ("b_p_e", "b_m_e", 1), ("c_p_f", "c_m_f", 2)]:
            diff = squared_norms(legs[plus]) - squared_norms(legs[minus])
            assert np.allclose(diff, 4 * torque[axis])

    @pytest.mark.parametrize("decomposition", list(BilinearDecomposition))
    def test_leg_rows(self, make_problem, assign, legs_for, decomposition):
        problem = make_problem(decomposition=decomposition).add_convex_decomposition_of_bilinear_terms()
        program = problem.program
        assert program.n_eq == 2 * 6 * 3

        legs = legs_for(P, F)
        _, _, A_eq, b_eq = program.assemble()
        assert np.allclose(A_eq @ assign(program, p=P, f_e=F, **legs), b_eq)

        legs["b_m_e"][1, 2] += 0.1
        assert not np.allclose(A_eq @ assign(program, p=P, f_e=F, **legs), b_eq)


class TestLinearDecomposition:

    @pytest.mark.parametrize("sides", [4, 8, 12])
    def test_row_count(self, make_problem, sides):
        problem = make_problem(decomposition="linear", sides=sides).add_convex_decomposition_of_bilinear_terms()
        assert problem.program.n_ineq == sides * 6 * 3
        assert problem.program.quadcons == []

    def test_gauge_is_tight(self, make_problem, assign, legs_for):
        problem = make_problem(decomposition="linear", sides=8).add_convex_decomposition_of_bilinear_terms()
        program = problem.program
        As, bs = unit_circle_polygon(8)
        legs = legs_for(P, F)

        def gauge(leg):
            return np.array([polygon_gauge(As, bs, leg[:, j]) for j in range(leg.shape[1])])

        A_ineq, b_ineq, _, _ = program.assemble()
        u_plus, u_min = u_from_legs(legs, gauge)
        x = assign(program, p=P, f_e=F, u_plus=u_plus, u_min=u_min, **legs)
        assert np.all(A_ineq @ x <= b_ineq + 1e-12)

        x = assign(program, p=P, f_e=F, u_plus=0.99 * u_plus, u_min=u_min, **legs)
        assert not np.all(A_ineq @ x <= b_ineq)

    def test_solver_finds_gauge(self, make_problem):
        problem = make_problem(decomposition="linear", sides=8).add_convex_decomposition_of_bilinear_terms()
        fix_values(problem.program, p=P, f_e=F)
        solution = problem.program.solve()
        assert solution.is_optimal

        As, bs = unit_circle_polygon(8)
        values = solution.values
        for name, u_name, component, _, _ in LEGS:
            for j in range(3):
                expected = polygon_gauge(As, bs, values[name][:, j])
                assert values[u_name][component, j] == pytest.approx(expected, abs=1e-5)


class TestQuadraticDecomposition:

    def test_quadcon_count(self, make_problem):
        problem = make_problem(decomposition="quadratic").add_convex_decomposition_of_bilinear_terms()
        assert len(problem.program.quadcons) == 6 * 3
        assert problem.program.n_ineq == 0

    def test_bound_is_tight(self, make_problem, assign, legs_for):
        problem = make_problem(decomposition="quadratic").add_convex_decomposition_of_bilinear_terms()
        program = problem.program
        legs = legs_for(P, F)
        u_plus, u_min = u_from_legs(legs, squared_norms)

        x = assign(program, p=P, f_e=F, u_plus=u_plus, u_min=u_min, epsilon=0.1, **legs)
        assert program.constraint_violation(x) <= 1e-12

        x = assign(program, p=P, f_e=F, u_plus=u_plus, u_min=u_min - 0.05, epsilon=0.1, **legs)
        assert program.constraint_violation(x) == pytest.approx(0.05)

    def test_solver_recovers_cross_product(self, make_problem):
        problem = make_problem(decomposition=BilinearDecomposition.QUADRATIC).add_convex_decomposition_of_bilinear_terms()
        fix_values(problem.program, p=P, f_e=F)
        solution = problem.program.solve()
        assert solution.is_optimal

        values = solution.values
        decomposed = (values["u_plus"] - values["u_min"]) / 4
        assert np.allclose(decomposed, np.cross(P.T, F.T).T, atol=1e-4)


class TestDecompositionCost:

    def test_cost_is_sum_of_squares(self, make_problem, assign):
        problem = make_problem(q_u=2.0).add_convex_decomposition_of_bilinear_terms()
        u_plus = np.arange(9, dtype=float).reshape(3, 3)
        u_min = np.ones((3, 3))
        x = assign(problem.program, u_plus=u_plus, u_min=u_min)
        assert problem.program.objective_value(x) == pytest.approx(2.0 * (np.sum(u_plus ** 2) + 9))

    def test_decompose_twice(self, make_problem):
        problem = make_problem().add_convex_decomposition_of_bilinear_terms()
        with pytest.raises(RuntimeError):
            problem.add_convex_decomposition_of_bilinear_terms()

    def test_variant_from_string(self, make_problem):
        assert make_problem(decomposition="quadratic").decomposition is BilinearDecomposition.QUADRATIC
        with pytest.raises(ValueError):
            make_problem(decomposition="cubic")
