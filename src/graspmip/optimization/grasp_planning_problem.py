import logging
from enum import Enum

import numpy as np
import scipy.sparse as sp

from ..utils.angle_utils import rotate_vector_to_align
from ..utils.polygon_utils import unit_circle_polygon
from .mixed_integer_program import MixedIntegerConvexProgram

logger = logging.getLogger(__name__)

Z_AXIS = np.array([0.0, 0.0, 1.0])

# all sign combinations of (+-1, +-1, +-1)
OCTAHEDRON_NORMALS = np.array([[1, 1, 1],
                               [-1, 1, 1],
                               [1, -1, 1],
                               [-1, -1, 1],
                               [1, 1, -1],
                               [-1, 1, -1],
                               [1, -1, -1],
                               [-1, -1, -1]], dtype=float)


class BilinearDecomposition(Enum):
    LINEAR = "linear"
    QUADRATIC = "quadratic"


# Auxiliary legs of the cross product p x f. Each leg is a 2-vector defined by
# two rows of (variable, component, coefficient) terms; the '+' and '-' legs of
# one axis satisfy ||leg+||^2 - ||leg-||^2 = 4 (p x f)[axis], and each leg is
# bounded by component `axis` of u_plus or u_min.
LEGS = [
    ("a_p_d", "u_plus", 0, [("f_e", 1, 1), ("p", 2, -1)], [("p", 1, 1), ("f_e", 2, 1)]),
    ("a_m_d", "u_min", 0, [("p", 2, -1), ("f_e", 1, -1)], [("p", 1, 1), ("f_e", 2, -1)]),
    ("b_p_e", "u_plus", 1, [("p", 2, 1), ("f_e", 0, 1)], [("p", 0, -1), ("f_e", 2, 1)]),
    ("b_m_e", "u_min", 1, [("p", 2, 1), ("f_e", 0, -1)], [("p", 0, -1), ("f_e", 2, -1)]),
    ("c_p_f", "u_plus", 2, [("p", 1, -1), ("f_e", 0, 1)], [("p", 0, 1), ("f_e", 1, 1)]),
    ("c_m_f", "u_min", 2, [("p", 1, -1), ("f_e", 0, -1)], [("p", 0, 1), ("f_e", 1, -1)]),
]


class MixedIntegerGraspPlanningProblem:
    """
    Grasp planning as a mixed-integer convex program.

    For a gripper with `n_contacts` fingers, picks a contact point p_j and force
    f_j per finger such that every contact lies in one of `safe_regions`, the
    net force and the decomposed net torque vanish, forces stay inside a
    linearised friction cone and fingers stay kinematically separated.

    The problem is written into `self.program` (a MixedIntegerConvexProgram)
    by the add_* builders, each of which returns self so calls can be chained.
    The friction cone needs the region indicators, so add_convex_regions()
    must come before add_friction_cones_constraints(); everything else can be
    called in any order.
    """

    def __init__(self, safe_regions, n_contacts=3, decomposition=BilinearDecomposition.LINEAR, sides=8,
                 mu_object=1.0, num_edges=4, tau_max=1.0, min_margin=0.1,
                 q_cws=1.0, q_u=1.0, q_eta=1.0, d_max=2.0,
                 region_big_m=10.0, cone_big_m_factor=10.0,
                 inward_forces=False, maximize_cone_margin=False, program=None):
        safe_regions = list(safe_regions)
        if not safe_regions:
            raise ValueError("at least one safe region is required")
        if n_contacts < 1:
            raise ValueError(f"n_contacts must be positive, got {n_contacts}")
        if len(safe_regions) < n_contacts:
            # each region takes at most one finger
            raise ValueError(f"{n_contacts} contacts need at least {n_contacts} safe regions, "
                             f"got {len(safe_regions)}")
        if num_edges < 3:
            raise ValueError(f"a friction cone needs at least 3 edges, got {num_edges}")

        self.safe_regions = safe_regions
        self.n_contacts = int(n_contacts)
        self.decomposition = BilinearDecomposition(decomposition)
        self.sides = int(sides)

        self.mu_object = mu_object
        self.num_edges = int(num_edges)
        self.tau_max = tau_max
        self.min_margin = min_margin
        self.q_cws = q_cws
        self.q_u = q_u
        self.q_eta = q_eta
        self.d_max = d_max
        self.region_big_m = region_big_m
        self.cone_big_m_factor = cone_big_m_factor
        self.inward_forces = inward_forces
        self.maximize_cone_margin = maximize_cone_margin

        self._decomposed = False
        self.program = program if program is not None else MixedIntegerConvexProgram("grasp_planning")

        n = self.n_contacts
        inf = np.inf
        # contact locations and forces
        self.program.add_variable("p", "C", (3, n), -inf, inf)
        self.program.add_variable("f_e", "C", (3, n), -inf, inf)
        # cone margins along the normal and the shared worst-case margin
        self.program.add_variable("alpha", "C", (1, n), 0, inf)
        self.program.add_variable("epsilon", "C", (1, 1), min_margin, inf)
        # weights of the friction cone edges
        self.program.add_variable("lambda_e", "C", (self.num_edges, n), 0, inf)
        # convex and concave parts of p x f
        self.program.add_variable("u_plus", "C", (3, n), 0, inf)
        self.program.add_variable("u_min", "C", (3, n), 0, inf)

    @classmethod
    def from_config(cls, safe_regions, config, program=None):
        return cls(safe_regions,
                   n_contacts=config.n_contacts,
                   decomposition=config.decomposition,
                   sides=config.sides,
                   mu_object=config.mu_object,
                   num_edges=config.num_edges,
                   tau_max=config.tau_max,
                   min_margin=config.min_margin,
                   q_cws=config.q_cws,
                   q_u=config.q_u,
                   q_eta=config.q_eta,
                   d_max=config.d_max,
                   region_big_m=config.region_big_m,
                   cone_big_m_factor=config.cone_big_m_factor,
                   inward_forces=config.inward_forces,
                   maximize_cone_margin=config.maximize_cone_margin,
                   program=program)

    @property
    def vars(self):
        return self.program.vars

    @property
    def nv(self):
        return self.program.nv

    def build(self):
        """Emit every constraint group."""
        return (self.add_convex_regions()
                .add_force_closure_constraints()
                .add_kinematic_constraints()
                .add_convex_decomposition_of_bilinear_terms()
                .add_friction_cones_constraints())

    # ------------------------------------------------------------------
    # region assignment
    # ------------------------------------------------------------------

    def add_convex_regions(self):
        """
        Each contact lies within exactly one safe region.

        With H = region (nr x n_contacts, binary), H[r, j] = 1 implies that p_j
        satisfies the in-plane polygon of region r and lies on its plane. Every
        row is relaxed by M when H[r, j] = 0.
        """
        nr = len(self.safe_regions)
        n = self.n_contacts
        self.program.add_variable("region", "B", (nr, n), 0, 1)
        p = self.vars["p"].i
        region = self.vars["region"].i
        M = self.region_big_m

        n_rows = n * sum(r.A.shape[0] + 2 for r in self.safe_regions)
        Ai = sp.lil_matrix((n_rows, self.nv))
        bi = np.zeros(n_rows)
        offset = 0

        for r, safe_region in enumerate(self.safe_regions):
            G, h = safe_region.world_inequalities()
            normal = safe_region.normal
            Ar = np.vstack([G, normal, -normal])
            br = np.concatenate([h, [normal @ safe_region.point], [-normal @ safe_region.point]])
            s = Ar.shape[0]
            for j in range(n):
                rows = np.arange(offset, offset + s)
                Ai[np.ix_(rows, p[:, j])] = Ar
                Ai[rows, region[r, j]] = M
                bi[rows] = br + M
                offset += s
        assert offset == n_rows

        Aeq = sp.lil_matrix((n, self.nv))
        beq = np.ones(n)
        for j in range(n):
            Aeq[j, region[:, j]] = 1
        self.program.add_linear_constraints(Ai.tocsr(), bi, Aeq.tocsr(), beq)

        # each region holds at most one contact
        A_cap = sp.lil_matrix((nr, self.nv))
        for r in range(nr):
            A_cap[r, region[r, :]] = 1
        self.program.add_linear_constraints(A_cap.tocsr(), np.ones(nr), None, None)

        logger.debug("Region assignment: %d regions, %d big-M rows", nr, n_rows)
        return self

    # ------------------------------------------------------------------
    # force closure
    # ------------------------------------------------------------------

    def add_force_closure_constraints(self):
        """Zero net force and zero decomposed net torque sum_j (u_plus_j - u_min_j) / 4."""
        f = self.vars["f_e"].i
        u_plus = self.vars["u_plus"].i
        u_min = self.vars["u_min"].i
        axes = np.arange(3)

        Aeq = sp.lil_matrix((3, self.nv))
        for j in range(self.n_contacts):
            Aeq[axes, f[:, j]] = 1
        self.program.add_linear_constraints(None, None, Aeq.tocsr(), np.zeros(3))

        Aeq = sp.lil_matrix((3, self.nv))
        for j in range(self.n_contacts):
            Aeq[axes, u_plus[:, j]] = 0.25
            Aeq[axes, u_min[:, j]] = -0.25
        self.program.add_linear_constraints(None, None, Aeq.tocsr(), np.zeros(3))
        return self

    # ------------------------------------------------------------------
    # kinematics
    # ------------------------------------------------------------------

    def add_kinematic_constraints(self):
        """Keep every pair of fingers inside an octahedron of size d_max around each other."""
        p = self.vars["p"].i
        n = self.n_contacts
        s = OCTAHEDRON_NORMALS.shape[0]
        n_rows = s * n * (n - 1) // 2
        if n_rows == 0:
            return self

        Ai = sp.lil_matrix((n_rows, self.nv))
        offset = 0
        for j in range(n):
            for i in range(j + 1, n):
                rows = np.arange(offset, offset + s)
                Ai[np.ix_(rows, p[:, j])] = OCTAHEDRON_NORMALS
                Ai[np.ix_(rows, p[:, i])] = -OCTAHEDRON_NORMALS
                offset += s
        assert offset == n_rows

        self.program.add_linear_constraints(Ai.tocsr(), self.d_max * np.ones(n_rows), None, None)
        return self

    # ------------------------------------------------------------------
    # bilinear terms
    # ------------------------------------------------------------------

    def add_convex_decomposition_of_bilinear_terms(self):
        """
        Decompose the torque contribution p_j x f_j of every contact as
        (u_plus_j - u_min_j) / 4 with u bounding the squared legs from above,
        either by polygons (LINEAR) or exactly by convex quadratics (QUADRATIC).
        """
        if self._decomposed:
            raise RuntimeError("bilinear terms are already decomposed for this problem")
        self._add_leg_definitions()
        if self.decomposition is BilinearDecomposition.LINEAR:
            self._add_polygon_bounds(self.sides)
        else:
            self._add_quadratic_bounds()
        self._add_decomposition_cost()
        self._decomposed = True
        return self

    def _add_leg_definitions(self):
        n = self.n_contacts
        for name, _, _, _, _ in LEGS:
            self.program.add_variable(name, "C", (2, n), -np.inf, np.inf)

        n_rows = 2 * len(LEGS) * n
        Aeq = sp.lil_matrix((n_rows, self.nv))
        offset = 0
        for j in range(n):
            for name, _, _, first, second in LEGS:
                leg = self.vars[name].i[:, j]
                for row, terms in enumerate((first, second)):
                    Aeq[offset + row, leg[row]] = -1
                    for var, component, coefficient in terms:
                        Aeq[offset + row, self.vars[var].i[component, j]] = coefficient
                offset += 2
        assert offset == n_rows
        self.program.add_linear_constraints(None, None, Aeq.tocsr(), np.zeros(n_rows))

    def _add_polygon_bounds(self, sides):
        As, bs = unit_circle_polygon(sides)
        k = As.shape[0]
        n_rows = k * len(LEGS) * self.n_contacts

        Ai = sp.lil_matrix((n_rows, self.nv))
        offset = 0
        for j in range(self.n_contacts):
            for name, u_name, component, _, _ in LEGS:
                rows = np.arange(offset, offset + k)
                Ai[np.ix_(rows, self.vars[name].i[:, j])] = As
                Ai[rows, self.vars[u_name].i[component, j]] = -bs
                offset += k
        assert offset == n_rows

        self.program.add_linear_constraints(Ai.tocsr(), np.zeros(n_rows), None, None)
        logger.debug("Linear decomposition with %d-sided polygons: %d rows", k, n_rows)

    def _add_quadratic_bounds(self):
        for j in range(self.n_contacts):
            for name, u_name, component, _, _ in LEGS:
                leg = self.vars[name].i[:, j]
                Qc = sp.coo_matrix((np.ones(2), (leg, leg)), shape=(self.nv, self.nv))
                q = np.zeros(self.nv)
                q[self.vars[u_name].i[component, j]] = -1
                self.program.add_quadcon(Qc, q, 0.0)

    def _add_decomposition_cost(self):
        # minimise the magnitude of the decomposition of each contact torque
        for j in range(self.n_contacts):
            idx = np.concatenate([self.vars["u_plus"].i[:, j], self.vars["u_min"].i[:, j]])
            Q = sp.coo_matrix((self.q_u * np.ones(idx.size), (idx, idx)), shape=(self.nv, self.nv))
            self.program.add_cost(Q, None, 0.0)

    # ------------------------------------------------------------------
    # friction cones
    # ------------------------------------------------------------------

    def cone_axis(self, safe_region):
        return -safe_region.normal if self.inward_forces else safe_region.normal

    def friction_cone_edges(self, safe_region):
        """(3, num_edges) edge rays of the linearised friction cone about the region's cone axis."""
        theta = 2 * np.pi * np.arange(self.num_edges) / self.num_edges
        edges_0 = np.vstack([self.mu_object * np.cos(theta),
                             self.mu_object * np.sin(theta),
                             np.ones(self.num_edges)])
        return rotate_vector_to_align(Z_AXIS, self.cone_axis(safe_region)) @ edges_0

    def add_friction_cones_constraints(self):
        """
        If contact j is assigned to region r, its force is a non-negative
        combination of the cone edges of r plus alpha_j along the cone axis,
        and its normal component is at most tau_max. epsilon is the smallest
        alpha over all contacts.
        """
        if "region" not in self.vars:
            raise RuntimeError("add_convex_regions() must be called before add_friction_cones_constraints()")

        nr = len(self.safe_regions)
        n = self.n_contacts
        f = self.vars["f_e"].i
        alpha = self.vars["alpha"].i
        lambda_e = self.vars["lambda_e"].i
        region = self.vars["region"].i
        epsilon = self.vars["epsilon"].i[0, 0]
        M = self.cone_big_m_factor * self.tau_max

        if self.maximize_cone_margin:
            c = np.zeros(self.nv)
            c[epsilon] = -self.q_cws
            self.program.add_cost(None, c, 0.0)

        region_edges = [self.friction_cone_edges(r) for r in self.safe_regions]
        eye = np.eye(3)

        n_rows = 6 * nr * n
        Ai = sp.lil_matrix((n_rows, self.nv))
        offset = 0
        for r, safe_region in enumerate(self.safe_regions):
            axis = self.cone_axis(safe_region)
            for j in range(n):
                upper = np.arange(offset, offset + 3)
                lower = np.arange(offset + 3, offset + 6)

                # H[r, j] => f_j == alpha_j * axis + E_r @ lambda_j
                Ai[np.ix_(upper, f[:, j])] = eye
                Ai[upper, alpha[0, j]] = -axis
                Ai[upper, region[r, j]] = M
                Ai[np.ix_(upper, lambda_e[:, j])] = -region_edges[r]

                Ai[np.ix_(lower, f[:, j])] = -eye
                Ai[lower, alpha[0, j]] = axis
                Ai[lower, region[r, j]] = M
                Ai[np.ix_(lower, lambda_e[:, j])] = region_edges[r]
                offset += 6
        assert offset == n_rows
        self.program.add_linear_constraints(Ai.tocsr(), M * np.ones(n_rows), None, None)

        # epsilon <= alpha_j
        Ai = sp.lil_matrix((n, self.nv))
        for j in range(n):
            Ai[j, alpha[0, j]] = -1
            Ai[j, epsilon] = 1
        self.program.add_linear_constraints(Ai.tocsr(), np.zeros(n), None, None)

        # bound the normal force of the assigned region
        Ai = sp.lil_matrix((n * nr, self.nv))
        offset = 0
        for j in range(n):
            for r, safe_region in enumerate(self.safe_regions):
                Ai[offset, f[:, j]] = self.cone_axis(safe_region)
                Ai[offset, region[r, j]] = M
                offset += 1
        assert offset == n * nr
        self.program.add_linear_constraints(Ai.tocsr(), (self.tau_max + M) * np.ones(n * nr), None, None)

        logger.debug("Friction cones: %d regions, %d edges, big-M %.3g", nr, self.num_edges, M)
        return self
