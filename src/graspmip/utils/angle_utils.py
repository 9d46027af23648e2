import numpy as np
from scipy.spatial.transform import Rotation as R


def normalize(v):
    a = np.array(v, dtype=float)
    n = np.linalg.norm(a)
    return a / n if n > 0 else a


def rotate_vector_to_align(a, b):
    """
    Rotation matrix R (3x3) such that R @ a is parallel to b.

    a, b: 3-vectors, need not be unit length.
    Anti-parallel inputs rotate by pi about an axis perpendicular to a.
    """
    a = normalize(a)
    b = normalize(b)
    if not np.any(a) or not np.any(b):
        raise ValueError("cannot align zero-length vectors")

    axis = np.cross(a, b)
    sin_angle = np.linalg.norm(axis)
    cos_angle = float(np.dot(a, b))

    if sin_angle < 1e-12:
        if cos_angle > 0:
            return np.eye(3)
        # any axis perpendicular to a works for the half turn
        helper = np.eye(3)[np.argmin(np.abs(a))]
        axis = normalize(np.cross(a, helper))
        return R.from_rotvec(np.pi * axis).as_matrix()

    angle = np.arctan2(sin_angle, cos_angle)
    return R.from_rotvec(angle * axis / sin_angle).as_matrix()


def plane_frame(normal):
    """
    Local frame of a plane with the given normal.

    Returns (R, T) where R maps +Z onto the normal and T (2x3) stacks the two
    in-plane axes (first two columns of R) as rows, i.e. T @ v gives the
    in-plane coordinates of v.
    """
    rot = rotate_vector_to_align([0.0, 0.0, 1.0], normal)
    return rot, rot[:, :2].T

