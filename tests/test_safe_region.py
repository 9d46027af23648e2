"""Tests for SafeRegion and the region generators."""
import numpy as np
import pytest

from graspmip.geometry.safe_region import SafeRegion
from graspmip.geometry.shapes import create_ball, create_cube, create_pyramid, square_patch


class TestSafeRegion:

    def test_normal_is_normalised(self):
        A, b = square_patch(0.1)
        region = SafeRegion(A, b, [1, 1, 1], [1, 1, 1])
        assert np.linalg.norm(region.normal) == pytest.approx(1.0)
        assert np.allclose(region.normal, np.ones(3) / np.sqrt(3))

    def test_zero_normal_rejected(self):
        A, b = square_patch(0.1)
        with pytest.raises(ValueError):
            SafeRegion(A, b, [0, 0, 0], [0, 0, 0])

    def test_row_mismatch_rejected(self):
        A, _ = square_patch(0.1)
        with pytest.raises(ValueError):
            SafeRegion(A, [1, 1, 1], [0, 0, 0], [0, 0, 1])

    def test_three_column_polygon_rejected(self):
        with pytest.raises(ValueError):
            SafeRegion(np.eye(3), np.ones(3), [0, 0, 0], [0, 0, 1])

    def test_plane_axes_are_orthonormal_and_tangent(self):
        A, b = square_patch(0.1)
        region = SafeRegion(A, b, [0, 0, 0], [0, 1, 1])
        T = region.plane_axes
        assert np.allclose(T @ T.T, np.eye(2))
        assert np.allclose(T @ region.normal, 0.0)

    def test_contains(self):
        A, b = square_patch(0.2)
        region = SafeRegion(A, b, [0, 0, 1], [0, 0, 1])
        assert region.contains([0, 0, 1])
        assert region.contains([0.2, -0.2, 1])
        assert not region.contains([0.3, 0, 1])
        assert not region.contains([0, 0, 1.1])

    def test_world_inequalities_shift_with_anchor(self):
        A, b = square_patch(0.5)
        region = SafeRegion(A, b, [2, 3, 0], [0, 0, 1])
        G, h = region.world_inequalities()
        assert np.all(G @ [2, 3, 0] <= h)
        assert np.all(G @ [2.5, 3.5, 0] <= h + 1e-12)
        assert not np.all(G @ [0, 0, 0] <= h)


class TestShapes:

    def test_cube_faces(self, cube_regions):
        assert len(cube_regions) == 6
        assert [r.name for r in cube_regions] == ["+x", "-x", "+y", "-y", "+z", "-z"]
        for region in cube_regions:
            assert np.allclose(region.point, 0.5 * region.normal)
            assert region.contains(region.point)

    def test_cube_footprint_covers_face(self, cube_regions):
        plus_x = cube_regions[0]
        for corner in [(0.5, 0.5, 0.5), (0.5, -0.5, 0.5), (0.5, 0.5, -0.5), (0.5, -0.5, -0.5)]:
            assert plus_x.contains(corner)
        assert not plus_x.contains((0.5, 0.6, 0.0))

    def test_ball(self):
        regions = create_ball(radius=2.0)
        assert len(regions) == 22
        for region in regions:
            assert np.linalg.norm(region.normal) == pytest.approx(1.0)
            assert np.allclose(np.cross(region.point, region.normal), 0.0)
            assert region.point @ region.normal > 0

    def test_pyramid(self, pyramid_regions):
        assert len(pyramid_regions) == 5
        assert np.allclose(pyramid_regions[-1].normal, [0, 0, -1])
