import numpy as np

# apothem of the regular octagon inscribed in the unit circle
COS_PI_8 = np.sqrt(2.0 + np.sqrt(2.0)) / 2.0


def vertices_to_halfspaces(xs, ys):
    """
    Half-space form A @ x <= b of the convex polygon with the given vertices.

    Vertices must be listed counter-clockwise. Row k is the outward (unnormalised)
    normal of the edge from vertex k to vertex k + 1.
    """
    xs = np.asarray(xs, dtype=float)
    ys = np.asarray(ys, dtype=float)
    if xs.shape != ys.shape or xs.size < 3:
        raise ValueError("a polygon needs at least three vertices")

    xn = np.roll(xs, -1)
    yn = np.roll(ys, -1)
    A = np.column_stack([yn - ys, xs - xn])
    b = A[:, 0] * xs + A[:, 1] * ys
    return A, b


def unit_circle_polygon(sides=8):
    """
    Polygon (As, bs) inscribed in the unit circle, used to bound a 2-vector
    norm from above: As @ v <= bs * u implies u >= ||v||.

    sides == 4 and sides == 8 use closed-form rows; any other count builds the
    polygon from `sides` uniformly spaced points on the unit circle.
    """
    sides = int(sides)
    if sides < 3:
        raise ValueError(f"decomposition polygon needs at least 3 sides, got {sides}")

    if sides == 4:
        As = np.array([[1, 1], [-1, 1], [1, -1], [-1, -1]], dtype=float)
        bs = np.ones(4)
    elif sides == 8:
        As = np.array([[1, 1],
                       [0, 1],
                       [-1, 1],
                       [-1, 0],
                       [-1, -1],
                       [0, -1],
                       [1, -1],
                       [1, 0]], dtype=float)
        bs = COS_PI_8 * np.linalg.norm(As, axis=1)
    else:
        angles = 2 * np.pi * np.arange(sides) / sides
        As, bs = vertices_to_halfspaces(np.cos(angles), np.sin(angles))
    return As, bs


def polygon_gauge(As, bs, v):
    """Smallest u >= 0 with As @ v <= bs * u."""
    return max(0.0, float(np.max(As @ np.asarray(v, dtype=float) / bs)))
