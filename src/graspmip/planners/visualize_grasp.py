import numpy as np
import matplotlib.pyplot as plt
from mpl_toolkits.mplot3d import Axes3D  # noqa: F401 (needed for 3D projection)
from mpl_toolkits.mplot3d.art3d import Poly3DCollection


def region_outline(safe_region):
    """
    World-frame corner points of a region's footprint, for plotting.

    Only footprints given as boxes |u| <= a, |v| <= b (the shapes module
    generators) are drawn exactly; other polygons are drawn as their
    bounding box in the local frame.
    """
    A, b = safe_region.A, safe_region.b
    half_u = min((bi / ai for ai, bi in zip(np.abs(A[:, 0]), b) if ai > 1e-9), default=0.0)
    half_v = min((bi / ai for ai, bi in zip(np.abs(A[:, 1]), b) if ai > 1e-9), default=0.0)
    corners = np.array([[half_u, half_v], [-half_u, half_v], [-half_u, -half_v], [half_u, -half_v]])
    return safe_region.point + corners @ safe_region.plane_axes


def plot_grasp(plan, safe_regions, scale_force=0.5, ax=None, show=True, title="Grasp plan"):
    """
    Plot the safe regions, the contact points and the contact forces of a GraspPlan.

    Regions holding a contact are highlighted; forces are drawn as arrows of
    length scale_force * |f| starting at the contact.
    """
    if plan is None:
        raise ValueError("plan is None (optimization failed)")

    if ax is None:
        fig = plt.figure(figsize=(8, 8))
        ax = fig.add_subplot(111, projection='3d')

    used = {c.region for c in plan.contacts}
    for r, safe_region in enumerate(safe_regions):
        outline = region_outline(safe_region)
        color = 'tab:orange' if r in used else 'lightgray'
        ax.add_collection3d(Poly3DCollection([outline], alpha=0.35, facecolor=color, edgecolor='k', linewidths=0.5))
        n = 0.15 * safe_region.normal
        ax.quiver(*safe_region.point, *n, color='gray', linewidth=0.8)

    colors = plt.cm.tab10(np.linspace(0, 1, 10))
    for c in plan.contacts:
        color = colors[c.finger % 10]
        ax.scatter(*c.position, color=color, s=60, label=f"finger {c.finger} ({c.region_name or c.region})")
        ax.quiver(*c.position, *(scale_force * c.force), color=color, linewidth=2)

    pts = np.vstack([plan.positions] + [region_outline(r) for r in safe_regions])
    center = pts.mean(axis=0)
    radius = np.max(np.abs(pts - center)) + 0.2
    ax.set_xlim(center[0] - radius, center[0] + radius)
    ax.set_ylim(center[1] - radius, center[1] + radius)
    ax.set_zlim(center[2] - radius, center[2] + radius)
    ax.set_xlabel('x')
    ax.set_ylabel('y')
    ax.set_zlabel('z')

    info = (f"eps = {plan.epsilon:.3f}\n"
            f"|net force| = {np.linalg.norm(plan.net_force):.2e}\n"
            f"|net torque| = {np.linalg.norm(plan.net_torque):.2e}")
    ax.text2D(0.02, 0.98, info, transform=ax.transAxes, fontsize=9, verticalalignment='top',
              bbox=dict(boxstyle='round', facecolor='wheat', alpha=0.5))
    ax.set_title(title)
    ax.legend(loc='upper right', fontsize=9)

    if show:
        plt.show()
    return ax
