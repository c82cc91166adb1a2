"""Rhumb-line projection tests."""

import math

import numpy as np
import pytest

from buildingmesh.constants import EARTH_RADIUS_M
from buildingmesh.errors import InvalidCoordinate
from buildingmesh.models import ReferencePoint
from buildingmesh.projection import RhumbProjector, rhumb_distance, to_meters

ONE_DEGREE_M = math.radians(1) * EARTH_RADIUS_M


@pytest.mark.parametrize("point", [(0, 0), (-122.33, 47.6), (151.2, -33.86),
                                   (179.9, 0.5)])
def test_point_against_itself_is_origin(point):
    x, y = to_meters(point, point)
    assert x == pytest.approx(0, abs=1e-9)
    assert y == pytest.approx(0, abs=1e-9)


def test_projection_is_antisymmetric():
    a, b = (2.35, 48.85), (2.36, 48.86)
    ab = np.array(to_meters(a, b))
    ba = np.array(to_meters(b, a))
    assert ab == pytest.approx(-ba, rel=1e-9)


def test_north_offset_lands_on_x_axis():
    x, y = to_meters((0, 1), (0, 0), flip_x=True)
    assert x == pytest.approx(ONE_DEGREE_M, rel=1e-9)
    assert y == pytest.approx(0, abs=1e-6)


def test_east_offset_lands_on_negative_y():
    x, y = to_meters((1, 0), (0, 0), flip_x=True)
    assert x == pytest.approx(0, abs=1e-6)
    assert y == pytest.approx(-ONE_DEGREE_M, rel=1e-9)


def test_flip_x_only_mirrors_x():
    flipped = to_meters((0.01, 0.02), (0, 0), flip_x=True)
    plain = to_meters((0.01, 0.02), (0, 0), flip_x=False)
    assert flipped[0] == pytest.approx(-plain[0])
    assert flipped[1] == pytest.approx(plain[1])


def test_distance_is_symmetric_across_antimeridian():
    d1 = rhumb_distance(179.5, 0.0, -179.5, 0.0)
    d2 = rhumb_distance(-179.5, 0.0, 179.5, 0.0)
    assert float(d1) == pytest.approx(ONE_DEGREE_M, rel=1e-9)
    assert float(d1) == pytest.approx(float(d2))


def test_project_many_matches_single_points():
    projector = RhumbProjector((5.0, 45.0))
    points = [[5.001, 45.0], [5.0, 45.002], [4.999, 44.999]]
    many = projector.project_many(points)
    assert many.shape == (3, 2)
    for row, point in zip(many, points):
        assert tuple(row) == pytest.approx(projector.project(point))


def test_project_many_empty():
    assert RhumbProjector((0, 0)).project_many([]).shape == (0, 2)


@pytest.mark.parametrize("point", [[1.0], [1.0, 2.0, 3.0], [float('nan'), 0.0],
                                   {'lng': 1.0, 'lat': 2.0}, {1.0, 2.0},
                                   ['a', 1.0], [True, 1.0], None, "1,2"])
def test_invalid_point(point):
    with pytest.raises(InvalidCoordinate):
        to_meters(point, (0, 0))


class TestReferencePoint:

    def test_from_pair_and_mapping_agree(self):
        assert ReferencePoint.coerce([1.5, 2.5]) == ReferencePoint.coerce(
            {'lng': 1.5, 'lat': 2.5})

    def test_numeric_strings_are_accepted(self):
        assert ReferencePoint.coerce(("1.5", "2")) == ReferencePoint(1.5, 2.0)

    def test_numpy_pair(self):
        assert ReferencePoint.coerce(np.array([3.0, 4.0])).as_pair() == (3.0, 4.0)

    @pytest.mark.parametrize("value", [None, [1.0], {'lng': 1.0},
                                       {'lat': 1.0, 'lng': None},
                                       [float('inf'), 0.0], ['x', 'y'], 42])
    def test_unresolvable_reference(self, value):
        with pytest.raises(InvalidCoordinate):
            ReferencePoint.coerce(value)

    def test_projector_rejects_missing_reference(self):
        with pytest.raises(InvalidCoordinate):
            RhumbProjector(None)
