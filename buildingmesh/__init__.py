"""buildingmesh package: closed 3D building meshes from OSM-style footprints.

Import constants FIRST so ``.env`` overrides are loaded before any
module reads its defaults.
"""

from buildingmesh import constants as _constants  # noqa: F401

from buildingmesh.builder import BuildingMeshBuilder, assemble_building, assemble_scene
from buildingmesh.clip import ClipRegion
from buildingmesh.merge import merge_scene
from buildingmesh.models import Feature, FeatureCollection, ReferencePoint
