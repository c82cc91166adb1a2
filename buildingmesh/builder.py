"""Building and scene assembly: thin orchestration over the generators."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional, Sequence

from .clip import ClipRegion, clip_features, ground_solid
from .constants import FLIP_X, WORKERS
from .containment import filter_contained
from .errors import BuildingMeshError, Diagnostics, UnsupportedRoofKind
from .export import export_scene, write_bundle
from .extras import generate_extra_parts
from .geometry import generate_roof, generate_walls, lifted
from .heights import resolve_heights
from .merge import merge_scene
from .models import (Building, Feature, FeatureCollection, MergedGeometry,
                     RoofKind, Scene, Tag)
from .projection import RhumbProjector
from .shapes import build_shape

logger = logging.getLogger(__name__)


def _projector(reference, flip_x: bool) -> RhumbProjector:
    if isinstance(reference, RhumbProjector):
        return reference
    return RhumbProjector(reference, flip_x=flip_x)


def _collection(features) -> FeatureCollection:
    if isinstance(features, FeatureCollection):
        return features
    return FeatureCollection.from_geojson(features)


def assemble_building(feature: Feature, reference, flip_x: bool = FLIP_X,
                      diagnostics: Optional[Diagnostics] = None,
                      name: Optional[str] = None) -> Optional[Building]:
    """Walls, optional roof and auxiliary solids for one feature.

    Returns None when the feature is not a building, has unsupported
    geometry, or its outer ring cannot be built. Failures are reported
    to ``diagnostics``.
    """
    projector = _projector(reference, flip_x)
    if diagnostics is None:
        diagnostics = Diagnostics()
    fid = feature.feature_id
    tags = feature.tags
    if not (tags.has(Tag.BUILDING) or tags.has(Tag.BUILDING_PART)):
        return None

    try:
        outer, holes = feature.rings()
    except BuildingMeshError as e:
        diagnostics.report(e, fid)
        return None

    shape = build_shape(outer, holes, projector, diagnostics, fid)
    if shape is None:
        return None

    heights = resolve_heights(tags, tags.is_part)
    try:
        walls = generate_walls(shape, heights.wall_height)
    except BuildingMeshError as e:
        diagnostics.report(e, fid)
        return None
    solids = [walls]

    if heights.has_roof:
        try:
            kind = RoofKind.from_tag(tags.get(Tag.ROOF_SHAPE))
        except UnsupportedRoofKind as e:
            diagnostics.report(e, fid)
            kind = RoofKind.FLAT
        try:
            roof = generate_roof(shape, heights.roof_height, kind)
            solids.append(lifted(roof, heights.wall_height))
        except BuildingMeshError as e:
            diagnostics.report(e, fid)

    solids.extend(generate_extra_parts(feature, projector, diagnostics))
    return Building(name or fid or 'Building', solids, heights, fid)


def _assemble_indexed(index, feature, projector, name):
    local = Diagnostics()
    return index, assemble_building(feature, projector, diagnostics=local,
                                    name=name), local


def _assemble_all(features: Sequence[Feature], projector: RhumbProjector,
                  workers: int, diagnostics: Diagnostics) -> List[Building]:
    names = [f.feature_id or f"building_{i}" for i, f in enumerate(features)]
    if workers <= 1 or len(features) <= 1:
        results = [assemble_building(f, projector, diagnostics=diagnostics,
                                     name=n)
                   for f, n in zip(features, names)]
        return [b for b in results if b is not None]

    results = [None] * len(features)
    collected = [None] * len(features)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(_assemble_indexed, i, f, projector, n)
                   for i, (f, n) in enumerate(zip(features, names))]
        for future in as_completed(futures):
            index, building, local = future.result()
            results[index] = building
            collected[index] = local
    # Restore input order for buildings and diagnostics alike
    for local in collected:
        diagnostics.extend(local)
    return [b for b in results if b is not None]


def assemble_scene(features, reference, flip_x: bool = FLIP_X,
                   workers: int = WORKERS,
                   diagnostics: Optional[Diagnostics] = None) -> Scene:
    """Assemble every renderable building of a feature collection.

    Whole buildings come first (minus those superseded by explicit
    parts), then all parts, each group in input order. An unusable
    reference point raises InvalidCoordinate; everything else is
    reported and skipped.
    """
    projector = _projector(reference, flip_x)
    if diagnostics is None:
        diagnostics = Diagnostics()
    collection = _collection(features)

    whole = [f for f in collection if f.tags.is_whole_building]
    parts = [f for f in collection if f.tags.is_part]
    survivors = filter_contained(whole, parts, diagnostics)
    to_render = survivors + parts

    buildings = _assemble_all(to_render, projector, workers, diagnostics)
    logger.info(f"Assembled {len(buildings)} buildings from "
                f"{len(collection)} features")
    return Scene(buildings)


class BuildingMeshBuilder:
    """One synthesis run: reference point, settings and diagnostics."""

    def __init__(self, reference, flip_x: bool = FLIP_X,
                 workers: int = WORKERS,
                 region: Optional[ClipRegion] = None):
        self.projector = RhumbProjector(reference, flip_x=flip_x)
        self.workers = workers
        self.region = region
        self.diagnostics = Diagnostics()

    @property
    def reference(self):
        return self.projector.reference

    def prepare(self, features) -> FeatureCollection:
        """Parse the input and clip it to the region, if any."""
        collection = _collection(features)
        if self.region is not None:
            collection = clip_features(collection, self.region,
                                       self.diagnostics)
        return collection

    def build_scene(self, features) -> Scene:
        return self._assemble(self.prepare(features))

    def _assemble(self, collection: FeatureCollection) -> Scene:
        scene = assemble_scene(collection, self.projector,
                               workers=self.workers,
                               diagnostics=self.diagnostics)
        if self.region is not None:
            try:
                scene.ground = ground_solid(self.region, self.projector)
            except BuildingMeshError as e:
                self.diagnostics.report(e, 'ground')
        return scene

    def build_merged(self, features) -> Optional[MergedGeometry]:
        return merge_scene(self.build_scene(features))

    def export(self, features, output_path: str,
               bundle_path: Optional[str] = None) -> str:
        """Build the scene and write it; returns the written path.

        With ``bundle_path`` a zip of the clipped features, the run
        config and the GLB scene is written as well.
        """
        collection = self.prepare(features)
        scene = self._assemble(collection)
        merged = merge_scene(scene)
        path = export_scene(merged, output_path, ground=scene.ground)
        if bundle_path is not None:
            write_bundle(bundle_path, collection, self.reference, merged,
                         ground=scene.ground, region=self.region)
        return path
