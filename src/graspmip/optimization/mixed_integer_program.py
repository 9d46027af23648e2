import logging
import time
from dataclasses import dataclass

import numpy as np
import scipy.sparse as sp
import gurobipy as gp
from gurobipy import GRB

logger = logging.getLogger(__name__)

VARIABLE_KINDS = {"C": GRB.CONTINUOUS, "B": GRB.BINARY}

STATUS_NAMES = {
    GRB.OPTIMAL: "OPTIMAL",
    GRB.INFEASIBLE: "INFEASIBLE",
    GRB.INF_OR_UNBD: "INF_OR_UNBD",
    GRB.UNBOUNDED: "UNBOUNDED",
    GRB.TIME_LIMIT: "TIME_LIMIT",
    GRB.SUBOPTIMAL: "SUBOPTIMAL",
    GRB.NUMERIC: "NUMERIC",
    GRB.INTERRUPTED: "INTERRUPTED",
}


@dataclass
class Variable:
    """A named block of decision variables; `i` holds their global indices."""
    name: str
    kind: str
    shape: tuple
    lb: np.ndarray
    ub: np.ndarray
    i: np.ndarray


@dataclass
class Solution:
    status: int
    status_name: str
    objective: float
    x: np.ndarray
    values: dict
    runtime: float

    @property
    def is_optimal(self):
        return self.status == GRB.OPTIMAL

    @property
    def has_solution(self):
        return self.x is not None


class MixedIntegerConvexProgram:
    """
    Sparse container for a mixed-integer program with a convex quadratic
    objective and convex quadratic constraints:

        minimize    x' Q x + c' x + alpha
        subject to  A_ineq x <= b_ineq
                    A_eq x == b_eq
                    x' Qc_k x + q_k' x <= rhs_k
                    lb <= x <= ub,  x_i binary for kind "B"

    Variables are declared in named blocks that own a contiguous slice of the
    global index space. Constraint and cost matrices are given with as many
    columns as variables existed at the time of the call; columns declared
    later are treated as zero.
    """

    def __init__(self, name="miqcp"):
        self.name = name
        self.vars = {}
        self.nv = 0

        self._A_ineq = []
        self._b_ineq = []
        self._A_eq = []
        self._b_eq = []
        self._costs = []
        self.quadcons = []

    # ------------------------------------------------------------------
    # declaration
    # ------------------------------------------------------------------

    def add_variable(self, name, kind, shape, lb, ub):
        if name in self.vars:
            raise ValueError(f"variable '{name}' is already declared")
        if kind not in VARIABLE_KINDS:
            raise ValueError(f"variable kind must be one of {sorted(VARIABLE_KINDS)}, got '{kind}'")

        shape = tuple(int(s) for s in np.atleast_1d(shape))
        size = int(np.prod(shape))
        lb = np.broadcast_to(np.asarray(lb, dtype=float), shape).copy()
        ub = np.broadcast_to(np.asarray(ub, dtype=float), shape).copy()
        if kind == "B":
            lb = np.maximum(lb, 0.0)
            ub = np.minimum(ub, 1.0)

        idx = np.arange(self.nv, self.nv + size).reshape(shape)
        self.vars[name] = Variable(name, kind, shape, lb, ub, idx)
        self.nv += size
        logger.debug("Declared %s '%s' %s (nv=%d)", kind, name, shape, self.nv)
        return self

    def add_linear_constraints(self, A_ineq, b_ineq, A_eq, b_eq):
        if A_ineq is not None and A_ineq.shape[0] > 0:
            self._A_ineq.append(self._check_rows(A_ineq, b_ineq))
            self._b_ineq.append(np.asarray(b_ineq, dtype=float).reshape(-1))
        if A_eq is not None and A_eq.shape[0] > 0:
            self._A_eq.append(self._check_rows(A_eq, b_eq))
            self._b_eq.append(np.asarray(b_eq, dtype=float).reshape(-1))
        return self

    def add_cost(self, Q=None, c=None, alpha=0.0):
        if Q is not None:
            Q = sp.coo_matrix(Q)
            if Q.shape[0] != Q.shape[1] or Q.shape[0] > self.nv:
                raise ValueError(f"cost matrix of shape {Q.shape} does not fit {self.nv} variables")
        if c is not None:
            c = np.asarray(c, dtype=float).reshape(-1)
            if c.size > self.nv:
                raise ValueError(f"cost vector of size {c.size} does not fit {self.nv} variables")
        self._costs.append((Q, c, float(alpha)))
        return self

    def add_quadcon(self, Qc, q, rhs):
        """Register x' Qc x + q' x <= rhs; Qc must be positive semidefinite."""
        Qc = sp.coo_matrix(Qc)
        q = np.asarray(q, dtype=float).reshape(-1)
        if Qc.shape[0] != Qc.shape[1] or Qc.shape[0] > self.nv or q.size > self.nv:
            raise ValueError("quadratic constraint does not fit the declared variables")
        self.quadcons.append((Qc, q, float(rhs)))
        return self

    def _check_rows(self, A, b):
        A = sp.coo_matrix(A)
        b = np.asarray(b, dtype=float).reshape(-1)
        if A.shape[0] != b.shape[0]:
            raise ValueError(f"constraint matrix has {A.shape[0]} rows but right-hand side has {b.shape[0]}")
        if A.shape[1] > self.nv:
            raise ValueError(f"constraint matrix has {A.shape[1]} columns but only {self.nv} variables exist")
        return A

    # ------------------------------------------------------------------
    # assembly
    # ------------------------------------------------------------------

    def _pad(self, M, rows=None):
        rows = M.shape[0] if rows is None else rows
        return sp.csr_matrix((M.data, (M.row, M.col)), shape=(rows, self.nv))

    def _pad_vector(self, v):
        out = np.zeros(self.nv)
        if v is not None:
            out[:v.size] = v
        return out

    @property
    def n_ineq(self):
        return sum(b.size for b in self._b_ineq)

    @property
    def n_eq(self):
        return sum(b.size for b in self._b_eq)

    def assemble(self):
        """Global (A_ineq, b_ineq, A_eq, b_eq) over all nv variables."""
        if self._A_ineq:
            A_ineq = sp.vstack([self._pad(A) for A in self._A_ineq], format="csr")
            b_ineq = np.concatenate(self._b_ineq)
        else:
            A_ineq, b_ineq = sp.csr_matrix((0, self.nv)), np.zeros(0)
        if self._A_eq:
            A_eq = sp.vstack([self._pad(A) for A in self._A_eq], format="csr")
            b_eq = np.concatenate(self._b_eq)
        else:
            A_eq, b_eq = sp.csr_matrix((0, self.nv)), np.zeros(0)
        return A_ineq, b_ineq, A_eq, b_eq

    def objective_terms(self):
        """Accumulated (Q, c, alpha) of the objective x' Q x + c' x + alpha."""
        Q = sp.csr_matrix((self.nv, self.nv))
        c = np.zeros(self.nv)
        alpha = 0.0
        for Qi, ci, ai in self._costs:
            if Qi is not None:
                Q = Q + self._pad(Qi, rows=self.nv)
            if ci is not None:
                c += self._pad_vector(ci)
            alpha += ai
        return Q, c, alpha

    def padded_quadcons(self):
        return [(self._pad(Qc, rows=self.nv), self._pad_vector(q), rhs) for Qc, q, rhs in self.quadcons]

    def bounds(self):
        lb = np.empty(self.nv)
        ub = np.empty(self.nv)
        for var in self.vars.values():
            lb[var.i.ravel()] = var.lb.ravel()
            ub[var.i.ravel()] = var.ub.ravel()
        return lb, ub

    def vtypes(self):
        vtype = np.empty(self.nv, dtype="<U1")
        for var in self.vars.values():
            vtype[var.i.ravel()] = VARIABLE_KINDS[var.kind]
        return vtype

    # ------------------------------------------------------------------
    # evaluation
    # ------------------------------------------------------------------

    def objective_value(self, x):
        Q, c, alpha = self.objective_terms()
        return float(x @ (Q @ x) + c @ x + alpha)

    def constraint_violation(self, x):
        """Largest violation of any bound, linear or quadratic constraint at x."""
        x = np.asarray(x, dtype=float)
        A_ineq, b_ineq, A_eq, b_eq = self.assemble()
        lb, ub = self.bounds()

        worst = [0.0, float(np.max(lb - x, initial=0.0)), float(np.max(x - ub, initial=0.0))]
        if A_ineq.shape[0]:
            worst.append(float(np.max(A_ineq @ x - b_ineq)))
        if A_eq.shape[0]:
            worst.append(float(np.max(np.abs(A_eq @ x - b_eq))))
        for Qc, q, rhs in self.padded_quadcons():
            worst.append(float(x @ (Qc @ x) + q @ x - rhs))
        return max(worst)

    def extract(self, x):
        """Split a flat solution vector into per-variable arrays."""
        x = np.asarray(x, dtype=float)
        return {name: x[var.i] for name, var in self.vars.items()}

    # ------------------------------------------------------------------
    # solving
    # ------------------------------------------------------------------

    def solve(self, time_limit=None, mip_gap=None, feasibility_tol=None, qcp_conv_tol=None, verbose=False,
              iis_path=None):
        A_ineq, b_ineq, A_eq, b_eq = self.assemble()
        Q, c, alpha = self.objective_terms()
        lb, ub = self.bounds()
        lb = np.where(np.isneginf(lb), -GRB.INFINITY, lb)
        ub = np.where(np.isposinf(ub), GRB.INFINITY, ub)

        logger.info("Solving %s: %d variables (%d binary), %d inequalities, %d equalities, %d quadratic constraints",
                    self.name, self.nv, int(np.sum(self.vtypes() == GRB.BINARY)),
                    A_ineq.shape[0], A_eq.shape[0], len(self.quadcons))

        with gp.Env(params={"OutputFlag": int(bool(verbose))}) as env, gp.Model(self.name, env=env) as model:
            x = model.addMVar(self.nv, lb=lb, ub=ub, vtype=self.vtypes(), name="x")
            if A_ineq.shape[0]:
                model.addMConstr(A_ineq, x, GRB.LESS_EQUAL, b_ineq, name="ineq")
            if A_eq.shape[0]:
                model.addMConstr(A_eq, x, GRB.EQUAL, b_eq, name="eq")
            for k, (Qc, q, rhs) in enumerate(self.padded_quadcons()):
                model.addMQConstr(Qc, q, GRB.LESS_EQUAL, rhs, xQ_L=x, xQ_R=x, xc=x, name=f"quadcon{k}")
            model.setMObjective(Q, c, alpha, xQ_L=x, xQ_R=x, xc=x, sense=GRB.MINIMIZE)

            if time_limit is not None:
                model.setParam("TimeLimit", time_limit)
            if mip_gap is not None:
                model.setParam("MIPGap", mip_gap)
            if feasibility_tol is not None:
                model.setParam("FeasibilityTol", feasibility_tol)
            if qcp_conv_tol is not None:
                model.setParam("BarQCPConvTol", qcp_conv_tol)

            start = time.perf_counter()
            model.optimize()
            runtime = time.perf_counter() - start

            status = model.Status
            if status == GRB.INF_OR_UNBD and iis_path is not None:
                # resolve without dual reductions to tell infeasible from unbounded
                model.setParam("DualReductions", 0)
                model.optimize()
                status = model.Status
            status_name = STATUS_NAMES.get(status, str(status))
            if model.SolCount > 0:
                x_val = np.array(x.X, dtype=float)
                objective = float(model.ObjVal)
            else:
                x_val, objective = None, float("nan")

            if status == GRB.INFEASIBLE and iis_path is not None:
                model.computeIIS()
                model.write(str(iis_path))
                logger.warning("Model is infeasible. IIS written to %s", iis_path)

        logger.info("Solver finished with status %s in %.3fs (objective %.6g)", status_name, runtime, objective)
        values = self.extract(x_val) if x_val is not None else {}
        return Solution(status, status_name, objective, x_val, values, runtime)
