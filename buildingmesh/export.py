"""GLB/STL/PLY export and zipped scene bundles."""

import json
import logging
import pathlib
import zipfile
from typing import Dict, Optional

import trimesh

from .models import FeatureCollection, MergedGeometry, ReferencePoint, SolidMesh

logger = logging.getLogger(__name__)

SCENE_FORMATS = ('.glb',)
MESH_FORMATS = ('.stl', '.ply')


def _named_meshes(merged: Optional[MergedGeometry],
                  ground: Optional[SolidMesh]) -> Dict[str, trimesh.Trimesh]:
    meshes = {}
    if merged is not None:
        meshes['Buildings'] = merged.to_trimesh()
    if ground is not None:
        meshes['Ground'] = ground.world_mesh()
    if not meshes:
        raise ValueError("No valid geometry to export")
    return meshes


def build_export_scene(merged: Optional[MergedGeometry],
                       ground: Optional[SolidMesh] = None) -> trimesh.Scene:
    scene = trimesh.Scene()
    for name, mesh in _named_meshes(merged, ground).items():
        scene.add_geometry(mesh, node_name=name, geom_name=name)
    return scene


def export_scene(merged: Optional[MergedGeometry], output_path,
                 ground: Optional[SolidMesh] = None) -> str:
    """Write the merged buildings (and ground) to ``output_path``.

    ``.glb`` keeps ``Buildings`` and ``Ground`` as named nodes; ``.stl``
    and ``.ply`` get one concatenated mesh without texture coordinates.
    """
    output_path = pathlib.Path(output_path)
    suffix = output_path.suffix.lower()
    if suffix not in SCENE_FORMATS + MESH_FORMATS:
        raise ValueError(f"Unsupported export format: {suffix or output_path.name}")
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if suffix in SCENE_FORMATS:
        build_export_scene(merged, ground).export(str(output_path))
    else:
        plain = [trimesh.Trimesh(vertices=m.vertices, faces=m.faces, process=False)
                 for m in _named_meshes(merged, ground).values()]
        trimesh.util.concatenate(plain).export(str(output_path))

    size_kb = output_path.stat().st_size / 1024
    logger.info(f"Exported {output_path} ({size_kb:.1f} KB)")
    return str(output_path)


def bundle_config(reference: ReferencePoint, region=None) -> dict:
    return {
        'bbox': region.bbox if region is not None else None,
        'clipPath': region.to_config() if region is not None else None,
        'referencePoint': {'lng': reference.lng, 'lat': reference.lat},
    }


def write_bundle(output_path, collection: FeatureCollection,
                 reference: ReferencePoint,
                 merged: Optional[MergedGeometry],
                 ground: Optional[SolidMesh] = None,
                 region=None) -> str:
    """Zip the clipped features, the run config and the GLB scene."""
    output_path = pathlib.Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(output_path, 'w', compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr('buildings.geojson',
                    json.dumps(collection.to_geojson(), indent=2))
        zf.writestr('config.json',
                    json.dumps(bundle_config(reference, region), indent=2))
        if merged is not None or ground is not None:
            glb = build_export_scene(merged, ground).export(file_type='glb')
            zf.writestr('scene.glb', glb)
        else:
            logger.warning("Bundle has no geometry; scene.glb omitted")
    logger.info(f"Wrote bundle {output_path}")
    return str(output_path)
