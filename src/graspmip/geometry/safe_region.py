from dataclasses import dataclass, field

import numpy as np

from ..utils.angle_utils import plane_frame


@dataclass
class SafeRegion:
    """
    Convex patch of the object surface where a finger may be placed.

    A, b: in-plane polygon A @ (u, v) <= b, in the local frame of the plane
          centred at `point` (u, v are coordinates along the plane axes).
    point: anchor point on the plane.
    normal: outward surface normal, normalised on construction.
    """
    A: np.ndarray
    b: np.ndarray
    point: np.ndarray
    normal: np.ndarray
    name: str = ""
    rotation: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        self.A = np.atleast_2d(np.asarray(self.A, dtype=float))
        self.b = np.asarray(self.b, dtype=float).reshape(-1)
        self.point = np.asarray(self.point, dtype=float).reshape(3)
        normal = np.asarray(self.normal, dtype=float).reshape(3)

        if self.A.shape[1] != 2:
            raise ValueError(f"region polygon must act on 2 in-plane coordinates, got A of shape {self.A.shape}")
        if self.A.shape[0] != self.b.shape[0]:
            raise ValueError(f"A has {self.A.shape[0]} rows but b has {self.b.shape[0]} entries")
        n = np.linalg.norm(normal)
        if n < 1e-12:
            raise ValueError("region normal must be non-zero")

        self.normal = normal / n
        self.rotation, _ = plane_frame(self.normal)

    @property
    def plane_axes(self):
        """(2, 3) in-plane axes; rows are the local u and v directions."""
        return self.rotation[:, :2].T

    def world_inequalities(self):
        """
        In-plane containment as a world-frame inequality G @ p <= h.

        Only the footprint rows; the plane itself is enforced separately.
        """
        G = self.A @ self.plane_axes
        h = self.b + G @ self.point
        return G, h

    def contains(self, p, tol=1e-6):
        p = np.asarray(p, dtype=float)
        G, h = self.world_inequalities()
        on_plane = abs(self.normal @ (p - self.point)) <= tol
        return bool(on_plane and np.all(G @ p <= h + tol))
