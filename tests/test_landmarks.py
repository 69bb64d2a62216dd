"""Tests for FaceMesh region extraction (synthetic mesh, no model)."""

from types import SimpleNamespace

import pytest

from backend.smile_engine.geometry import mouth_width
from backend.smile_engine.landmarks import REGION_INDICES, extract_regions, to_pixels
from backend.smile_engine.observation import BoundingBox, LandmarkRegion


def _mesh(n=468, fill=(0.5, 0.5), overrides=None):
    points = [SimpleNamespace(x=fill[0], y=fill[1], z=0.0) for _ in range(n)]
    for idx, (x, y) in (overrides or {}).items():
        points[idx] = SimpleNamespace(x=x, y=y, z=0.0)
    return SimpleNamespace(landmark=points)


def test_outer_lips_run_corner_to_corner():
    indices = REGION_INDICES[LandmarkRegion.OUTER_LIPS]
    assert indices[0] == 61
    assert indices[-1] == 291


def test_full_frame_crop_keeps_coordinates():
    mesh = _mesh(overrides={61: (0.25, 0.6), 291: (0.75, 0.6)})
    regions = extract_regions(mesh, BoundingBox(0.0, 0.0, 1.0, 1.0))
    lips = regions[LandmarkRegion.OUTER_LIPS]
    assert lips[0] == pytest.approx((0.25, 0.6))
    assert lips[-1] == pytest.approx((0.75, 0.6))
    assert mouth_width(regions) == pytest.approx(0.5)


def test_crop_coordinates_mapped_back_to_frame():
    mesh = _mesh(overrides={61: (0.0, 0.5), 291: (1.0, 0.5)})
    crop = BoundingBox(0.2, 0.4, 0.5, 0.2)
    regions = extract_regions(mesh, crop)
    lips = regions[LandmarkRegion.OUTER_LIPS]
    assert lips[0] == pytest.approx((0.2, 0.5))
    assert lips[-1] == pytest.approx((0.7, 0.5))
    assert mouth_width(regions) == pytest.approx(0.5)


def test_short_mesh_reports_missing_regions():
    regions = extract_regions(_mesh(n=300), BoundingBox(0.0, 0.0, 1.0, 1.0))
    assert regions[LandmarkRegion.OUTER_LIPS] is None
    assert regions[LandmarkRegion.LEFT_EYE] is not None
    assert mouth_width(regions) is None


def test_every_region_present_on_full_mesh():
    regions = extract_regions(_mesh(), BoundingBox(0.0, 0.0, 1.0, 1.0))
    assert set(regions) == set(LandmarkRegion)
    assert all(len(points) == len(REGION_INDICES[r]) for r, points in regions.items())


def test_to_pixels():
    assert to_pixels([(0.5, 0.25)], (480, 640, 3)) == [(320, 120)]


class TestBoundingBox:

    def test_expanded(self):
        box = BoundingBox(0.4, 0.4, 0.2, 0.2).expanded(0.5)
        assert (box.x, box.y, box.width, box.height) == pytest.approx((0.3, 0.3, 0.4, 0.4))

    def test_clamped(self):
        box = BoundingBox(-0.1, 0.8, 0.5, 0.5).clamped()
        assert (box.x, box.y, box.width, box.height) == pytest.approx((0.0, 0.8, 0.4, 0.2))

    def test_to_pixels(self):
        assert BoundingBox(0.25, 0.5, 0.5, 0.25).to_pixels(640, 480) == (160, 240, 480, 360)
