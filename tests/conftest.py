import numpy as np
import pytest

from buildingmesh.models import Feature, PolygonShape, ReferencePoint
from buildingmesh.projection import RhumbProjector

# Ten-degree square, first vertex at the origin
SQUARE = [[0, 0], [0, 10], [10, 10], [10, 0], [0, 0]]
# Roughly 110 m on a side
SMALL = [[0, 0], [0, 0.001], [0.001, 0.001], [0.001, 0], [0, 0]]


def make_feature(properties, coords=None, geometry_type='Polygon', fid=None):
    """GeoJSON-style feature; ``coords`` defaults to a single SMALL ring."""
    if coords is None:
        coords = [SMALL] if geometry_type == 'Polygon' else [[SMALL]]
    data = {
        'type': 'Feature',
        'geometry': {'type': geometry_type, 'coordinates': coords},
        'properties': properties,
    }
    if fid is not None:
        data['id'] = fid
    return data


def offset_ring(x0, y0, size):
    return [[x0, y0], [x0, y0 + size], [x0 + size, y0 + size],
            [x0 + size, y0], [x0, y0]]


@pytest.fixture
def reference():
    return ReferencePoint(0.0, 0.0)


@pytest.fixture
def projector(reference):
    return RhumbProjector(reference, flip_x=True)


@pytest.fixture
def feature():
    def _feature(properties, coords=None, geometry_type='Polygon', fid=None):
        return Feature.from_geojson(make_feature(properties, coords,
                                                 geometry_type, fid))
    return _feature


@pytest.fixture
def square_shape():
    """10 m x 10 m footprint in local metres."""
    return PolygonShape(np.array([[0.0, 0.0], [10.0, 0.0],
                                  [10.0, 10.0], [0.0, 10.0]]))
