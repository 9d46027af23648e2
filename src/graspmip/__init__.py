# graspmip/__init__.py
"""
graspmip: grasp planning as a mixed-integer convex program over safe contact regions.
"""

__version__ = "0.1.0"

from . import geometry
from . import optimization
from . import planners
from . import utils

from .geometry.safe_region import SafeRegion
from .optimization.grasp_planning_problem import BilinearDecomposition, MixedIntegerGraspPlanningProblem
from .optimization.mixed_integer_program import MixedIntegerConvexProgram
from .planners.grasp_planner import GraspPlan, NoGraspFoundError, plan_grasp

__all__ = [
    "geometry",
    "optimization",
    "planners",
    "utils",
    "SafeRegion",
    "BilinearDecomposition",
    "MixedIntegerGraspPlanningProblem",
    "MixedIntegerConvexProgram",
    "GraspPlan",
    "NoGraspFoundError",
    "plan_grasp",
]
