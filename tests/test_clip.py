import pytest
from pyproj import Geod
from shapely.geometry import Polygon, shape

from buildingmesh.clip import ClipRegion, clip_features, ground_solid
from buildingmesh.errors import InsufficientPoints
from buildingmesh.models import FeatureCollection

from conftest import SMALL, make_feature, offset_ring


class TestClipRegion:

    def test_circle_ring(self):
        region = ClipRegion.from_circle(13.4, 52.5, 250.0, steps=32)
        assert len(region.ring) == 33
        assert region.ring[0] == region.ring[-1]

        geod = Geod(ellps='WGS84')
        for lng, lat in region.ring[:-1]:
            _, _, dist = geod.inv(13.4, 52.5, lng, lat)
            assert dist == pytest.approx(250.0, rel=1e-6)

    def test_circle_is_counter_clockwise(self):
        region = ClipRegion.from_circle(0.0, 0.0, 100.0)
        assert region.to_polygon().exterior.is_ccw

    def test_polygon_from_records_is_closed(self):
        region = ClipRegion.from_polygon([{'lng': 0, 'lat': 0}, {'lng': 0, 'lat': 1},
                                          {'lng': 1, 'lat': 1}])
        assert region.ring == ((0, 0), (0, 1), (1, 1), (0, 0))
        assert region.bbox == [0.0, 0.0, 1.0, 1.0]

    def test_too_few_points(self):
        with pytest.raises(InsufficientPoints):
            ClipRegion.from_polygon([[0, 0], [1, 1]])

    def test_zero_radius(self):
        with pytest.raises(InsufficientPoints):
            ClipRegion.from_circle(0.0, 0.0, 0.0)

    def test_config(self):
        circle = ClipRegion.from_circle(1.0, 2.0, 50.0)
        assert circle.to_config() == {'center': {'lng': 1.0, 'lat': 2.0},
                                      'radius': 50.0}
        square = ClipRegion.from_polygon([[0, 0], [0, 1], [1, 1]])
        assert square.to_config()[0] == {'lng': 0, 'lat': 0}


def test_clip_features():
    region = ClipRegion.from_polygon(offset_ring(0, 0, 0.01))
    collection = FeatureCollection.from_geojson([
        make_feature({'building': 'yes'}, fid='inside'),
        make_feature({'building': 'yes'}, [offset_ring(0.009, 0.009, 0.002)],
                     fid='edge'),
        make_feature({'building': 'yes'}, [offset_ring(1, 1, 0.001)], fid='outside'),
        make_feature({'building': 'yes'}, [0.005, 0.005], geometry_type='Point',
                     fid='point'),
    ])
    clipped = clip_features(collection, region)
    assert [f.feature_id for f in clipped] == ['inside', 'edge']

    inside, edge = clipped.features
    assert shape(inside.to_geojson()['geometry']).area == pytest.approx(
        Polygon(SMALL).area)
    west, south, east, north = shape(edge.to_geojson()['geometry']).bounds
    assert (east, north) == pytest.approx((0.01, 0.01))
    assert edge.tags.is_whole_building
    assert isinstance(edge.outer_ring()[0], list)


def test_ground_slab(projector):
    solid = ground_solid(ClipRegion.from_circle(0.0, 0.0, 200.0), projector)
    ys = solid.world_vertices()[:, 1]
    assert ys.max() == pytest.approx(0.0, abs=1e-6)
    assert ys.min() == pytest.approx(-2.0)
    assert solid.name == 'Ground'
