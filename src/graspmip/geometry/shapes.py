import numpy as np

from .safe_region import SafeRegion


def square_patch(half_width):
    """Axis-aligned square footprint |u| <= w, |v| <= w in the plane's local frame."""
    A = np.array([[1, 0], [-1, 0], [0, 1], [0, -1]], dtype=float)
    b = half_width * np.ones(4)
    return A, b


BALL_DIRECTIONS = [
    # octants
    [1, 1, 1], [1, -1, 1], [-1, 1, 1], [-1, -1, 1],
    [1, 1, -1], [1, -1, -1], [-1, 1, -1], [-1, -1, -1],
    # diagonal edges in the xz and yz planes
    [1, 0, 1], [0, -1, 1], [-1, 0, 1], [0, 1, 1],
    [1, 0, -1], [0, -1, -1], [-1, 0, -1], [0, 1, -1],
    # axes
    [1, 0, 0], [-1, 0, 0], [0, 1, 0], [0, -1, 0], [0, 0, 1], [0, 0, -1],
]


def create_ball(radius=1.0, patch_size=None):
    """
    Hand-coded ball: 22 planar patches with anchors at radius * d and normals
    along d, for the octant, diagonal-edge and axis directions d.
    """
    if patch_size is None:
        patch_size = 0.25 * radius
    A, b = square_patch(patch_size)

    safe_regions = []
    for d in BALL_DIRECTIONS:
        d = np.array(d, dtype=float)
        safe_regions.append(SafeRegion(A, b, radius * d, d, name=f"ball{d.astype(int).tolist()}"))
    return safe_regions


def create_pyramid(size=0.4, patch_size=0.2):
    """
    Diamond-like object: four slanted upper faces and a flat base.

    Face anchors sit at size * normal direction, so any two faces are at
    most 4 * size apart in L1 (within the default d_max for size <= 0.5).
    """
    A, b = square_patch(patch_size)
    directions = [[1, 1, 1], [1, -1, 1], [-1, 1, 1], [-1, -1, 1], [0, 0, -1]]

    safe_regions = []
    for i, d in enumerate(directions):
        d = np.array(d, dtype=float)
        safe_regions.append(SafeRegion(A, b, size * d, d, name=f"pyramid_face{i}"))
    return safe_regions


def create_cube(half_size=0.5, patch_size=None):
    """
    Cube centred at the origin with one region per face.

    The footprint defaults to the whole face (half-width = half_size).
    """
    if patch_size is None:
        patch_size = half_size
    A, b = square_patch(patch_size)

    safe_regions = []
    for axis, label in enumerate("xyz"):
        for sign in (1.0, -1.0):
            normal = np.zeros(3)
            normal[axis] = sign
            name = ("+" if sign > 0 else "-") + label
            safe_regions.append(SafeRegion(A, b, half_size * normal, normal, name=name))
    return safe_regions


SHAPES = {
    "ball": create_ball,
    "pyramid": create_pyramid,
    "cube": create_cube,
}
