"""Data classes for the input features and the generated solids."""

import math
import numbers
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Mapping, Optional, Sequence, Tuple

import numpy as np
import trimesh
from shapely.geometry import LinearRing, Polygon
from shapely.geometry.polygon import orient

from .errors import InsufficientPoints, InvalidCoordinate, UnsupportedGeometry, UnsupportedRoofKind


def is_finite_number(value) -> bool:
    return (isinstance(value, numbers.Real) and not isinstance(value, bool)
            and math.isfinite(value))


def _as_float(value) -> float:
    if isinstance(value, bool):
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


# ── Reference point ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class ReferencePoint:
    """Geodesic origin of the local planar frame for one synthesis run."""
    lng: float
    lat: float

    def __post_init__(self):
        if not (is_finite_number(self.lng) and is_finite_number(self.lat)):
            raise InvalidCoordinate(
                f"Invalid reference coordinate: ({self.lng!r}, {self.lat!r})")

    @classmethod
    def from_pair(cls, pair: Sequence[float]) -> "ReferencePoint":
        """Build from an ordered ``(lng, lat)`` pair."""
        if isinstance(pair, (str, bytes)) or len(pair) < 2:
            raise InvalidCoordinate(f"Invalid reference coordinate: {pair!r}")
        return cls(_as_float(pair[0]), _as_float(pair[1]))

    @classmethod
    def from_mapping(cls, record: Mapping) -> "ReferencePoint":
        """Build from a record with ``lng`` and ``lat`` fields."""
        if record.get('lng') is None or record.get('lat') is None:
            raise InvalidCoordinate(f"Invalid reference coordinate: {record!r}")
        return cls(_as_float(record['lng']), _as_float(record['lat']))

    @classmethod
    def coerce(cls, value) -> "ReferencePoint":
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            return cls.from_mapping(value)
        if isinstance(value, (Sequence, np.ndarray)) and not isinstance(value, (str, bytes)):
            return cls.from_pair(value)
        raise InvalidCoordinate(f"Invalid reference coordinate: {value!r}")

    def as_pair(self) -> Tuple[float, float]:
        return (float(self.lng), float(self.lat))


# ── Tags ────────────────────────────────────────────────────────────────

class Tag(str, Enum):
    BUILDING = 'building'
    BUILDING_PART = 'building:part'
    HEIGHT = 'height'
    BUILDING_HEIGHT = 'building:height'
    BUILDING_LEVELS = 'building:levels'
    ROOF_SHAPE = 'roof:shape'
    ROOF_HEIGHT = 'roof:height'
    TOWER_HEIGHT = 'tower:height'
    AMENITY = 'amenity'


_TAGS_BY_KEY = {tag.value: tag for tag in Tag}


@dataclass(frozen=True)
class BuildingTags:
    """Typed view over the recognized subset of a feature's properties.

    Empty strings and ``None`` count as absent. Unrecognized keys are
    dropped here; the raw properties stay on the :class:`Feature`.
    """
    values: Mapping[Tag, object] = field(default_factory=dict)

    @classmethod
    def from_properties(cls, properties: Optional[Mapping]) -> "BuildingTags":
        values = {}
        for key, value in (properties or {}).items():
            tag = _TAGS_BY_KEY.get(key)
            if tag is None or value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            values[tag] = value
        return cls(values)

    def get(self, tag: Tag, default=None):
        return self.values.get(tag, default)

    def has(self, tag: Tag) -> bool:
        return tag in self.values

    def text(self, tag: Tag) -> Optional[str]:
        """Lower-cased, stripped string form of a tag, or None."""
        value = self.values.get(tag)
        if value is None:
            return None
        return str(value).strip().lower()

    @property
    def is_part(self) -> bool:
        return self.has(Tag.BUILDING_PART)

    @property
    def is_whole_building(self) -> bool:
        return self.has(Tag.BUILDING) and not self.has(Tag.BUILDING_PART)


# ── Features ────────────────────────────────────────────────────────────

POLYGONAL_TYPES = ('Polygon', 'MultiPolygon')


def pairs_from_flat(values: Sequence) -> List[list]:
    """Group a flat ``[x0, y0, x1, y1, ...]`` sequence into pairs.

    A trailing odd value yields an incomplete pair, which the shape
    builder later rejects.
    """
    pairs = []
    for i in range(0, len(values), 2):
        pairs.append(list(values[i:i + 2]))
    return pairs


def _normalize_ring(ring) -> list:
    if not isinstance(ring, (list, tuple)):
        return []
    if ring and isinstance(ring[0], numbers.Real) and not isinstance(ring[0], bool):
        return pairs_from_flat(ring)
    return list(ring)


def _normalize_coordinates(geometry_type, coordinates):
    if not isinstance(coordinates, (list, tuple)):
        return []
    if geometry_type == 'Polygon':
        return [_normalize_ring(r) for r in coordinates]
    if geometry_type == 'MultiPolygon':
        return [[_normalize_ring(r) for r in poly]
                if isinstance(poly, (list, tuple)) else []
                for poly in coordinates]
    return list(coordinates)


@dataclass(frozen=True)
class Feature:
    """One building or building part from the input collection."""
    geometry_type: Optional[str]
    coordinates: list
    tags: BuildingTags
    properties: Mapping = field(default_factory=dict)
    feature_id: Optional[str] = None

    @classmethod
    def from_geojson(cls, data: Mapping) -> "Feature":
        geometry = data.get('geometry') or {}
        properties = dict(data.get('properties') or {})
        gtype = geometry.get('type')
        coords = _normalize_coordinates(gtype, geometry.get('coordinates'))
        fid = data.get('id', properties.get('id'))
        return cls(
            geometry_type=gtype,
            coordinates=coords,
            tags=BuildingTags.from_properties(properties),
            properties=properties,
            feature_id=str(fid) if fid is not None else None,
        )

    @property
    def is_polygonal(self) -> bool:
        return self.geometry_type in POLYGONAL_TYPES

    def rings(self) -> Tuple[list, List[list]]:
        """Return ``(outer_ring, hole_rings)``.

        Only the first sub-polygon of a MultiPolygon is represented.
        """
        if self.geometry_type == 'Polygon':
            rings = self.coordinates
        elif self.geometry_type == 'MultiPolygon':
            rings = self.coordinates[0] if self.coordinates else []
        else:
            raise UnsupportedGeometry(
                f"Unsupported geometry type: {self.geometry_type}")
        if not rings:
            raise InsufficientPoints("geometry has no rings")
        return rings[0], list(rings[1:])

    def outer_ring(self) -> list:
        return self.rings()[0]

    def with_geometry(self, geometry_type: str, coordinates) -> "Feature":
        return Feature(geometry_type,
                       _normalize_coordinates(geometry_type, coordinates),
                       self.tags, self.properties, self.feature_id)

    def to_geojson(self) -> dict:
        data = {
            'type': 'Feature',
            'geometry': {'type': self.geometry_type,
                         'coordinates': self.coordinates},
            'properties': dict(self.properties),
        }
        if self.feature_id is not None:
            data['id'] = self.feature_id
        return data


@dataclass(frozen=True)
class FeatureCollection:
    features: Tuple[Feature, ...] = ()

    @classmethod
    def from_geojson(cls, data) -> "FeatureCollection":
        """Accept a GeoJSON FeatureCollection, a single Feature or a list."""
        if isinstance(data, Mapping):
            if data.get('type') == 'Feature':
                items = [data]
            else:
                items = data.get('features')
        else:
            items = data
        if not isinstance(items, (list, tuple)):
            raise ValueError("Expected a GeoJSON FeatureCollection")
        return cls(tuple(Feature.from_geojson(f) for f in items
                         if isinstance(f, Mapping)))

    def to_geojson(self) -> dict:
        return {'type': 'FeatureCollection',
                'features': [f.to_geojson() for f in self.features]}

    def __len__(self):
        return len(self.features)

    def __iter__(self):
        return iter(self.features)


# ── Planar shapes and heights ───────────────────────────────────────────

@dataclass
class PolygonShape:
    """Projected footprint: open outer ring plus hole rings, in metres."""
    outer: np.ndarray
    holes: List[np.ndarray] = field(default_factory=list)

    def polygon(self) -> Polygon:
        return orient(Polygon(self.outer, [h for h in self.holes]), sign=1.0)

    def outline(self) -> np.ndarray:
        """Outer ring points, wound counter-clockwise."""
        pts = np.asarray(self.outer, dtype=float)
        if len(pts) >= 3 and not LinearRing(pts).is_ccw:
            pts = pts[::-1]
        return pts

    def centroid(self) -> np.ndarray:
        """Mean of the outline points (not the area centroid)."""
        return np.asarray(self.outer, dtype=float).mean(axis=0)


@dataclass(frozen=True)
class HeightSpec:
    wall_height: float
    roof_height: float

    @classmethod
    def split(cls, total_height: float, roof_height: float) -> "HeightSpec":
        """Split a total height into wall and roof portions."""
        roof_height = max(0.0, roof_height)
        if total_height > roof_height:
            return cls(total_height - roof_height, roof_height)
        return cls(total_height, 0.0)

    @property
    def total_height(self) -> float:
        return self.wall_height + self.roof_height

    @property
    def has_roof(self) -> bool:
        return self.roof_height > 0


class RoofKind(Enum):
    FLAT = 'flat'
    PYRAMIDAL = 'pyramidal'

    @classmethod
    def from_tag(cls, value) -> "RoofKind":
        """Resolve a ``roof:shape`` value; raises for unsupported shapes."""
        if value is None or not str(value).strip():
            return cls.FLAT
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedRoofKind(value) from None


# ── Solids ──────────────────────────────────────────────────────────────

class SolidRole(Enum):
    WALLS = 'Walls'
    ROOF = 'Roof'
    TOWER = 'Tower'
    PART = 'Part'
    GROUND = 'Ground'


@dataclass
class SolidMesh:
    """A mesh in its local Z-up frame plus the transform placing it."""
    name: str
    role: SolidRole
    mesh: trimesh.Trimesh
    transform: np.ndarray = field(default_factory=lambda: np.eye(4))
    uv: Optional[np.ndarray] = None
    # shade with averaged vertex normals instead of flat face normals
    smooth: bool = False

    @property
    def vertex_count(self) -> int:
        return len(self.mesh.vertices)

    @property
    def face_count(self) -> int:
        return len(self.mesh.faces)

    def world_mesh(self, parent: Optional[np.ndarray] = None) -> trimesh.Trimesh:
        matrix = self.transform if parent is None else parent @ self.transform
        return self.mesh.copy().apply_transform(matrix)

    def world_vertices(self) -> np.ndarray:
        return self.world_mesh().vertices


@dataclass
class Building:
    name: str
    solids: List[SolidMesh] = field(default_factory=list)
    heights: Optional[HeightSpec] = None
    feature_id: Optional[str] = None
    transform: np.ndarray = field(default_factory=lambda: np.eye(4))

    def by_role(self, role: SolidRole) -> List[SolidMesh]:
        return [s for s in self.solids if s.role is role]

    @property
    def walls(self) -> SolidMesh:
        return self.by_role(SolidRole.WALLS)[0]

    @property
    def roof(self) -> Optional[SolidMesh]:
        roofs = self.by_role(SolidRole.ROOF)
        return roofs[0] if roofs else None


@dataclass
class Scene:
    buildings: List[Building] = field(default_factory=list)
    ground: Optional[SolidMesh] = None

    def solids(self):
        """Yield ``(building, solid)`` for every building solid."""
        for building in self.buildings:
            for solid in building.solids:
                yield building, solid

    @property
    def solid_count(self) -> int:
        return sum(len(b.solids) for b in self.buildings)

    def __len__(self):
        return len(self.buildings)


@dataclass
class MergedGeometry:
    """Flat triangle list ready for export: every 3 vertices form a face."""
    positions: np.ndarray
    uv: np.ndarray
    normals: Optional[np.ndarray] = None
    groups: List[Tuple[int, int, str]] = field(default_factory=list)

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def triangle_count(self) -> int:
        return len(self.positions) // 3

    def to_trimesh(self) -> trimesh.Trimesh:
        faces = np.arange(self.vertex_count, dtype=np.int64).reshape(-1, 3)
        visual = trimesh.visual.TextureVisuals(uv=self.uv)
        return trimesh.Trimesh(vertices=self.positions, faces=faces,
                               vertex_normals=self.normals, visual=visual,
                               process=False)
