"""Flatten a scene into one non-indexed vertex buffer for export."""

import logging
from typing import Optional

import numpy as np

from .models import MergedGeometry, Scene

logger = logging.getLogger(__name__)


def merge_scene(scene: Scene, include_ground: bool = False) -> Optional[MergedGeometry]:
    """Bake transforms and concatenate every solid into a triangle list.

    Each solid becomes three vertices per face, carrying the face normal
    (or the averaged vertex normal for smooth solids such as pyramidal
    roofs). Solids without UVs get zero-filled ones so the merged
    buffer has a single attribute schema.
    Returns None when there is nothing to merge.
    """
    items = [(building.transform, solid) for building, solid in scene.solids()]
    if include_ground and scene.ground is not None:
        items.append((np.eye(4), scene.ground))
    if not items:
        return None

    positions, uvs, normals, groups = [], [], [], []
    start = 0
    for parent, solid in items:
        if solid.face_count == 0:
            continue
        mesh = solid.world_mesh(parent)
        faces = mesh.faces
        flat_pos = mesh.vertices[faces].reshape(-1, 3)
        if solid.smooth:
            flat_norm = mesh.vertex_normals[faces].reshape(-1, 3)
        else:
            flat_norm = np.repeat(mesh.face_normals, 3, axis=0)
        if solid.uv is not None:
            flat_uv = np.asarray(solid.uv)[faces].reshape(-1, 2)
        else:
            flat_uv = np.zeros((len(flat_pos), 2))

        positions.append(flat_pos)
        normals.append(flat_norm)
        uvs.append(flat_uv)
        groups.append((start, len(flat_pos), solid.name))
        start += len(flat_pos)

    if not positions:
        return None

    merged = MergedGeometry(
        positions=np.concatenate(positions).astype(np.float32),
        uv=np.concatenate(uvs).astype(np.float32),
        normals=np.concatenate(normals).astype(np.float32),
        groups=groups,
    )
    logger.info(f"Merged {len(groups)} solids into "
                f"{merged.triangle_count} triangles")
    return merged
