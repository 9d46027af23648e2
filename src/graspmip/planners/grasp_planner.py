import logging
from dataclasses import dataclass, field

import numpy as np

from ..optimization.grasp_planning_problem import MixedIntegerGraspPlanningProblem
from ..utils.load_config import load_config

logger = logging.getLogger(__name__)


class NoGraspFoundError(RuntimeError):
    """No valid grasp exists under the given regions and parameters (or the solver found none)."""

    def __init__(self, status_name, message=None):
        self.status_name = status_name
        super().__init__(message or f"no valid grasp found under these regions/parameters (solver status {status_name})")


@dataclass
class ContactAssignment:
    finger: int
    region: int
    position: np.ndarray
    force: np.ndarray
    alpha: float
    region_name: str = ""


@dataclass
class GraspPlan:
    contacts: list
    epsilon: float
    objective: float
    status_name: str
    runtime: float
    values: dict = field(repr=False, default_factory=dict)

    @property
    def positions(self):
        return np.array([c.position for c in self.contacts])

    @property
    def forces(self):
        return np.array([c.force for c in self.contacts])

    @property
    def net_force(self):
        return self.forces.sum(axis=0)

    @property
    def net_torque(self):
        """Exact net torque sum_j p_j x f_j of the returned contacts."""
        return np.cross(self.positions, self.forces).sum(axis=0)

    @property
    def decomposed_torque(self):
        """Net torque as seen by the model, sum_j (u_plus_j - u_min_j) / 4."""
        return ((self.values["u_plus"] - self.values["u_min"]) / 4).sum(axis=1)


def extract_grasp(problem, solution):
    values = solution.values
    H = values["region"]
    contacts = []
    for j in range(problem.n_contacts):
        r = int(np.argmax(H[:, j]))
        contacts.append(ContactAssignment(
            finger=j,
            region=r,
            position=values["p"][:, j].copy(),
            force=values["f_e"][:, j].copy(),
            alpha=float(values["alpha"][0, j]),
            region_name=problem.safe_regions[r].name,
        ))
    return GraspPlan(contacts=contacts,
                     epsilon=float(values["epsilon"][0, 0]),
                     objective=solution.objective,
                     status_name=solution.status_name,
                     runtime=solution.runtime,
                     values=values)


def plan_grasp(safe_regions, config=None, **overrides):
    """
    Build the full grasp planning problem for `safe_regions`, solve it and
    return the per-finger assignment.

    config: a loaded config (see utils.load_config); keyword overrides are
    applied on top of the default config when no config is given.
    Raises NoGraspFoundError when the solver returns no solution.

    Friction cones open around the outward normal by default, so the planned
    forces pull on the object. Pass inward_forces=True for a squeezing grasp.
    """
    if config is None:
        config = load_config(**overrides)
    elif overrides:
        raise ValueError("pass either a config or keyword overrides, not both")

    problem = MixedIntegerGraspPlanningProblem.from_config(safe_regions, config).build()
    logger.info("Planning %d-finger grasp over %d regions (%s decomposition, %d sides)",
                problem.n_contacts, len(problem.safe_regions), problem.decomposition.value, problem.sides)

    solver = config.solver
    solution = problem.program.solve(time_limit=solver.get("time_limit"),
                                     mip_gap=solver.get("mip_gap"),
                                     feasibility_tol=solver.get("feasibility_tol"),
                                     qcp_conv_tol=solver.get("qcp_conv_tol"),
                                     verbose=solver.get("verbose", False),
                                     iis_path=solver.get("iis_path"))
    if not solution.has_solution:
        raise NoGraspFoundError(solution.status_name)
    if not solution.is_optimal:
        logger.warning("Returning non-optimal grasp (solver status %s)", solution.status_name)

    return extract_grasp(problem, solution)
