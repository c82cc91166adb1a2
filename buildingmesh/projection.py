"""Rhumb-line projection from (lng, lat) to local planar metres.

Distance and bearing follow the constant-bearing (loxodrome) formulas
on a sphere of radius ``EARTH_RADIUS_M``. A point at distance ``d`` and
rhumb bearing ``b`` (from the point towards the reference) maps to::

    x = d * cos(b) * sign      (sign = -1 when flip_x)
    y = d * sin(b)

The mapping is not inverted anywhere; it only needs to be consistent
for every vertex of one run.
"""

import math
import logging
from typing import Sequence, Tuple

import numpy as np

from .constants import EARTH_RADIUS_M, FLIP_X
from .errors import InvalidCoordinate
from .models import ReferencePoint, is_finite_number

logger = logging.getLogger(__name__)


def _mercator_psi(lat_rad):
    return np.log(np.tan(lat_rad / 2 + math.pi / 4))


def rhumb_distance(lng, lat, ref_lng, ref_lat, radius=EARTH_RADIUS_M):
    """Rhumb-line distance in metres (element-wise over arrays)."""
    lng = np.asarray(lng, dtype=float)
    lat = np.asarray(lat, dtype=float)
    # Take the shorter way round the antimeridian
    ref_lng = ref_lng + np.where(ref_lng - lng > 180, -360.0,
                                 np.where(lng - ref_lng > 180, 360.0, 0.0))

    phi1 = np.radians(lat)
    phi2 = np.radians(ref_lat)
    d_phi = phi2 - phi1
    d_lambda = np.radians(np.abs(ref_lng - lng))
    d_lambda = np.where(d_lambda > math.pi, d_lambda - 2 * math.pi, d_lambda)

    d_psi = _mercator_psi(phi2) - _mercator_psi(phi1)
    # E-W course: d_psi vanishes, use cos(phi1) directly
    with np.errstate(divide='ignore', invalid='ignore'):
        q = np.where(np.abs(d_psi) > 1e-11, d_phi / d_psi, np.cos(phi1))
    delta = np.sqrt(d_phi * d_phi + q * q * d_lambda * d_lambda)
    return delta * radius


def rhumb_bearing(lng, lat, ref_lng, ref_lat):
    """Rhumb bearing in radians from the point towards the reference."""
    lng = np.asarray(lng, dtype=float)
    lat = np.asarray(lat, dtype=float)
    d_lambda = np.radians(ref_lng - lng)
    d_lambda = np.where(d_lambda > math.pi, d_lambda - 2 * math.pi, d_lambda)
    d_lambda = np.where(d_lambda < -math.pi, d_lambda + 2 * math.pi, d_lambda)
    d_psi = _mercator_psi(np.radians(ref_lat)) - _mercator_psi(np.radians(lat))
    return np.arctan2(d_lambda, d_psi)


def _as_point_array(points) -> np.ndarray:
    """Validate a sequence of (lng, lat) pairs and return an (N, 2) array."""
    for point in points:
        if not isinstance(point, (list, tuple, np.ndarray)) or len(point) != 2:
            raise InvalidCoordinate(
                f"Invalid coordinate format {point!r}. "
                f"Expected [longitude, latitude].")
        if not (is_finite_number(point[0]) and is_finite_number(point[1])):
            raise InvalidCoordinate(
                f"Coordinate values must be finite numbers: {point!r}")
    return np.asarray(points, dtype=float).reshape(-1, 2)


class RhumbProjector:
    """Projects geodesic points into the planar frame of one reference."""

    def __init__(self, reference, flip_x: bool = FLIP_X):
        self.reference = ReferencePoint.coerce(reference)
        self.flip_x = flip_x

    def project_many(self, points: Sequence[Sequence[float]]) -> np.ndarray:
        """Project ``(lng, lat)`` pairs into an (N, 2) array of metres.

        Raises InvalidCoordinate when any pair is malformed.
        """
        arr = _as_point_array(points)
        if len(arr) == 0:
            return arr
        ref_lng, ref_lat = self.reference.as_pair()
        dist = rhumb_distance(arr[:, 0], arr[:, 1], ref_lng, ref_lat)
        bearing = rhumb_bearing(arr[:, 0], arr[:, 1], ref_lng, ref_lat)
        sign = -1.0 if self.flip_x else 1.0
        return np.column_stack([dist * np.cos(bearing) * sign,
                                dist * np.sin(bearing)])

    def project(self, point: Sequence[float]) -> Tuple[float, float]:
        x, y = self.project_many([point])[0]
        return float(x), float(y)


def to_meters(point, reference, flip_x: bool = FLIP_X) -> Tuple[float, float]:
    """Project one ``(lng, lat)`` point relative to ``reference``."""
    return RhumbProjector(reference, flip_x=flip_x).project(point)
