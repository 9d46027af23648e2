import matplotlib
import numpy as np
import pytest

matplotlib.use("Agg")

from graspmip.planners.grasp_planner import ContactAssignment, GraspPlan  # noqa: E402
from graspmip.planners.visualize_grasp import plot_grasp, region_outline  # noqa: E402


@pytest.fixture
def plan(cube_regions):
    contacts = []
    for j, r in enumerate([0, 1, 2]):
        region = cube_regions[r]
        contacts.append(ContactAssignment(j, r, region.point.copy(), -0.5 * region.normal, 0.5, region.name))
    return GraspPlan(contacts, epsilon=0.5, objective=0.0, status_name="OPTIMAL", runtime=0.0)


def test_region_outline_lies_on_face(cube_regions):
    outline = region_outline(cube_regions[0])
    assert outline.shape == (4, 3)
    assert np.allclose(outline[:, 0], 0.5)
    assert np.allclose(np.abs(outline[:, 1:]), 0.5)


def test_plot_grasp(plan, cube_regions):
    ax = plot_grasp(plan, cube_regions, show=False)
    assert ax.get_title() == "Grasp plan"
    matplotlib.pyplot.close("all")


def test_plot_without_plan(cube_regions):
    with pytest.raises(ValueError):
        plot_grasp(None, cube_regions, show=False)
