import numpy as np
import pytest
import trimesh

from buildingmesh import geometry
from buildingmesh.errors import InsufficientPoints, UnsupportedRoofKind
from buildingmesh.geometry import (UP_AXIS, extrude_shape, generate_roof,
                                   generate_tower, generate_walls, lifted)
from buildingmesh.models import PolygonShape, RoofKind, SolidRole


def y_range(solid):
    ys = solid.world_vertices()[:, 1]
    return float(ys.min()), float(ys.max())


def test_up_axis_maps_local_to_world():
    local = np.array([1.0, 2.0, 3.0, 1.0])
    assert (UP_AXIS @ local)[:3] == pytest.approx([-1.0, 3.0, 2.0], abs=1e-12)


class TestWalls:

    def test_stands_on_ground(self, square_shape):
        walls = generate_walls(square_shape, 6.0)
        lo, hi = y_range(walls)
        assert lo == pytest.approx(0.0, abs=1e-9)
        assert hi == pytest.approx(6.0)
        assert walls.role is SolidRole.WALLS
        assert walls.name == 'BuildingWalls'

    def test_footprint_lands_on_world_xz(self, square_shape):
        verts = generate_walls(square_shape, 3.0).world_vertices()
        assert verts[:, 0].min() == pytest.approx(-10.0)
        assert verts[:, 0].max() == pytest.approx(0.0, abs=1e-9)
        assert verts[:, 2].min() == pytest.approx(0.0, abs=1e-9)
        assert verts[:, 2].max() == pytest.approx(10.0)

    def test_closed_and_outward_facing(self, square_shape):
        world = generate_walls(square_shape, 6.0).world_mesh()
        assert world.is_watertight
        assert world.volume == pytest.approx(600.0)

    def test_hole_reduces_volume(self):
        hole = np.array([[4.0, 4.0], [6.0, 4.0], [6.0, 6.0], [4.0, 6.0]])
        shape = PolygonShape(np.array([[0.0, 0.0], [10.0, 0.0],
                                       [10.0, 10.0], [0.0, 10.0]]), [hole])
        world = generate_walls(shape, 1.0).world_mesh()
        assert world.volume == pytest.approx(96.0)

    def test_clockwise_input_is_still_outward(self):
        cw = PolygonShape(np.array([[0.0, 0.0], [0.0, 10.0],
                                    [10.0, 10.0], [10.0, 0.0]]))
        assert generate_walls(cw, 2.0).world_mesh().volume == pytest.approx(200.0)

    def test_uv_per_vertex(self, square_shape):
        walls = generate_walls(square_shape, 6.0)
        assert walls.uv.shape == (walls.vertex_count, 2)

    @pytest.mark.parametrize("height", [0.0, -1.0, float('nan')])
    def test_no_height_is_rejected(self, square_shape, height):
        with pytest.raises(InsufficientPoints):
            extrude_shape(square_shape, height)


class TestRoofs:

    def test_flat_roof_is_a_slab(self, square_shape):
        roof = generate_roof(square_shape, 2.0, RoofKind.FLAT)
        lo, hi = y_range(roof)
        assert (lo, hi) == pytest.approx((0.0, 2.0), abs=1e-9)
        assert roof.role is SolidRole.ROOF
        assert not roof.smooth

    def test_lifted_onto_walls(self, square_shape):
        roof = lifted(generate_roof(square_shape, 2.0), 4.0)
        assert y_range(roof) == pytest.approx((4.0, 6.0))

    def test_pyramidal_fan(self, square_shape):
        roof = generate_roof(square_shape, 2.0, RoofKind.PYRAMIDAL)
        assert roof.vertex_count == 5
        assert roof.face_count == 4
        assert roof.uv is None
        assert roof.smooth

        verts = roof.world_vertices()
        top = np.flatnonzero(np.isclose(verts[:, 1], 2.0))
        assert len(top) == 1
        # apex over the outline centroid, local (5, 5)
        assert verts[top[0]] == pytest.approx([-5.0, 2.0, 5.0])

    def test_pyramidal_faces_point_up(self, square_shape):
        world = generate_roof(square_shape, 2.0, RoofKind.PYRAMIDAL).world_mesh()
        assert (world.face_normals[:, 1] > 0).all()

    def test_pyramidal_ignores_holes(self):
        hole = np.array([[4.0, 4.0], [6.0, 4.0], [6.0, 6.0]])
        shape = PolygonShape(np.array([[0.0, 0.0], [10.0, 0.0],
                                       [10.0, 10.0], [0.0, 10.0]]), [hole])
        roof = generate_roof(shape, 1.0, RoofKind.PYRAMIDAL)
        assert roof.vertex_count == 5

    def test_pyramidal_degrades_to_flat(self, monkeypatch):
        slab = trimesh.creation.box(extents=[1.0, 1.0, 1.0])
        monkeypatch.setattr(geometry, 'extrude_shape', lambda shape, h: slab)
        degenerate = PolygonShape(np.array([[0.0, 0.0], [1.0, 0.0]]))
        roof = generate_roof(degenerate, 1.0, RoofKind.PYRAMIDAL)
        assert roof.mesh is slab
        assert roof.uv.shape == (len(slab.vertices), 2)

    @pytest.mark.parametrize("value, kind", [(None, RoofKind.FLAT),
                                             ("", RoofKind.FLAT),
                                             ("flat", RoofKind.FLAT),
                                             ("Pyramidal ", RoofKind.PYRAMIDAL)])
    def test_roof_kind_from_tag(self, value, kind):
        assert RoofKind.from_tag(value) is kind

    def test_unknown_roof_kind(self):
        with pytest.raises(UnsupportedRoofKind) as info:
            RoofKind.from_tag("gabled")
        assert info.value.roof_shape == "gabled"


class TestTower:

    def test_stands_at_center(self):
        tower = generate_tower((3.0, 4.0), 10.0)
        verts = tower.world_vertices()
        assert y_range(tower) == pytest.approx((0.0, 10.0), abs=1e-9)
        assert (verts[:, 0].min() + verts[:, 0].max()) / 2 == pytest.approx(-3.0)
        assert (verts[:, 2].min() + verts[:, 2].max()) / 2 == pytest.approx(4.0)
        assert verts[:, 2].max() - verts[:, 2].min() == pytest.approx(2.0)
        assert tower.role is SolidRole.TOWER

    def test_zero_height(self):
        with pytest.raises(InsufficientPoints):
            generate_tower((0.0, 0.0), 0.0)
