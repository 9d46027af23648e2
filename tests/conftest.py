"""
Shared test fixtures for the grasp planning formulation tests.
"""
import numpy as np
import pytest

from graspmip.geometry.shapes import create_cube, create_pyramid
from graspmip.optimization.grasp_planning_problem import MixedIntegerGraspPlanningProblem


@pytest.fixture
def cube_regions():
    """Unit cube (half size 0.5): one region per face, order +x, -x, +y, -y, +z, -z."""
    return create_cube(half_size=0.5)


@pytest.fixture
def pyramid_regions():
    return create_pyramid()


@pytest.fixture
def make_problem(cube_regions):
    """Factory for a formulation over the cube regions with keyword overrides."""
    def _make(**kwargs):
        regions = kwargs.pop("safe_regions", cube_regions)
        return MixedIntegerGraspPlanningProblem(regions, **kwargs)
    return _make


@pytest.fixture
def assign():
    """Build a flat variable vector from named values; unnamed variables are zero."""
    def _assign(program, **values):
        x = np.zeros(program.nv)
        for name, value in values.items():
            var = program.vars[name]
            x[var.i] = np.broadcast_to(np.asarray(value, dtype=float), var.shape)
        return x
    return _assign


def cross_product_legs(p, f):
    """Auxiliary legs of p x f for a single contact, written out per axis."""
    px, py, pz = p
    fx, fy, fz = f
    return {
        "a_p_d": np.array([fy - pz, py + fz]),
        "a_m_d": np.array([-pz - fy, py - fz]),
        "b_p_e": np.array([pz + fx, fz - px]),
        "b_m_e": np.array([pz - fx, -px - fz]),
        "c_p_f": np.array([fx - py, px + fy]),
        "c_m_f": np.array([-py - fx, px - fy]),
    }


@pytest.fixture
def legs_for():
    """Leg values of all contacts as {name: (2, n_contacts)} for positions/forces of shape (3, n_contacts)."""
    def _legs(P, F):
        per_contact = [cross_product_legs(P[:, j], F[:, j]) for j in range(P.shape[1])]
        return {name: np.column_stack([legs[name] for legs in per_contact]) for name in per_contact[0]}
    return _legs
